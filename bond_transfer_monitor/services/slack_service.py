"""
Slack 通知服务

把通知记录渲染为 Slack Block Kit 消息，POST 到 Incoming Webhook
未配置 Webhook 时只记录模拟日志，不发起网络请求
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from bond_transfer_monitor.config.monitor_config import SlackConfig
from bond_transfer_monitor.models.data_types import (
    ComplianceViolationRecord,
    MonitoringAlert,
    OverduePaymentRecord,
    PaymentEnforcedRecord,
    TransferRecord,
)
from bond_transfer_monitor.services.notification_channel import NotificationChannel, failure
from bond_transfer_monitor.utils.log_utils import epoch_to_localhost, get_logger

logger = get_logger(__name__)

SYSTEM_NAME = "OpenZeppelin Bond Monitoring System"


def _header(text: str) -> Dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _fields(*pairs) -> Dict[str, Any]:
    """两列字段区，每项为 (标签, 值)"""
    return {
        "type": "section",
        "fields": [{"type": "mrkdwn", "text": f"*{label}:*\n{value}"} for label, value in pairs],
    }


def _text(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _bullets(title: str, items: List[str]) -> Dict[str, Any]:
    return _text(f"*{title}:*\n" + "\n".join(f"• {item}" for item in items))


DIVIDER = {"type": "divider"}


class SlackService(NotificationChannel):
    """Slack 通知服务"""

    name = "slack"

    def __init__(self, config: Optional[SlackConfig] = None):
        self.config = config or SlackConfig.from_config()
        self.webhook_url = self.config.webhook_url
        self.enabled = self.config.enabled

        # 统计信息
        self.total_sent = 0
        self.total_failed = 0

    # ------------------------------------------------------------------
    # 消息
    # ------------------------------------------------------------------

    async def send_transfer_alert(self, transfer: TransferRecord) -> Dict[str, Any]:
        """发送转账告警（成功或被拦截）"""
        status = transfer.status.value
        blocks = [
            _header(f"🔄 TRANSFER {status}"),
            _fields(
                ("From", f"`{transfer.from_address}`"),
                ("To", f"`{transfer.to_address}`"),
                ("Amount", f"{transfer.amount} tokens"),
                ("Status", status),
            ),
            _text(
                f"*Contract:* `{transfer.contract_address}`\n"
                f"*Transaction Hash:* `{transfer.transaction_hash}`\n"
                f"*Block:* {transfer.block_number}\n"
                f"*Time:* {epoch_to_localhost(transfer.timestamp)}"
            ),
            DIVIDER,
            _bullets("Monitoring Information", [
                "✅ Transfer event detected and logged",
                "📊 Compliance check completed",
                "📋 Audit trail updated",
                "🔍 Transaction details recorded",
            ]),
        ]
        if transfer.is_blocked:
            blocks.append(_text(f"*Block Reason:* {transfer.reason}"))

        message = {"text": f"🔄 *TRANSFER {status}* - Tokenized Bond", "blocks": blocks}
        return await self.send_slack_message(message)

    async def send_blocked_transfer_alert(self, transfer: TransferRecord) -> Dict[str, Any]:
        """发送转账拦截告警"""
        message = {
            "text": "🚫 *BLOCKED TRANSFER ALERT*",
            "blocks": [
                _header("🚫 BLOCKED TRANSFER ALERT"),
                _fields(
                    ("From", f"`{transfer.from_address}`"),
                    ("To", f"`{transfer.to_address}`"),
                    ("Amount", f"{transfer.amount} tokens"),
                    ("Reason", transfer.reason),
                ),
                _text(
                    f"*Contract:* `{transfer.contract_address}`\n"
                    f"*Time:* {epoch_to_localhost(transfer.timestamp)}"
                ),
                DIVIDER,
                _bullets("Actions Taken", [
                    "✅ Transfer automatically blocked",
                    "📊 Security event logged",
                    "🔍 Compliance team notified",
                    "📋 Regulatory report generated",
                ]),
            ],
        }
        return await self.send_slack_message(message)

    async def send_compliance_violation_alert(self, violation: ComplianceViolationRecord) -> Dict[str, Any]:
        """发送合规违规告警"""
        message = {
            "text": "🚨 *COMPLIANCE VIOLATION*",
            "blocks": [
                _header("🚨 COMPLIANCE VIOLATION"),
                _fields(
                    ("Violation Type", violation.violation_type),
                    ("Account", f"`{violation.account}`"),
                    ("Severity", violation.severity.value),
                    ("Timestamp", epoch_to_localhost(violation.timestamp)),
                ),
                _text(
                    f"*Contract:* `{violation.contract_address}`\n"
                    f"*Details:* {violation.details}"
                ),
                DIVIDER,
                _bullets("Enforcement Actions", [
                    "🔒 Account frozen pending investigation",
                    "📋 Regulatory report generated",
                    "📧 Authorities notified",
                    "📊 Audit trail updated",
                ]),
                _bullets("Required Actions", [
                    "Review violation details in compliance dashboard",
                    "Investigate account activity and history",
                    "Determine appropriate enforcement actions",
                    "Update regulatory authorities if required",
                    "Document all actions taken",
                ]),
            ],
        }
        return await self.send_slack_message(message)

    async def send_overdue_payment_alert(self, payment: OverduePaymentRecord) -> Dict[str, Any]:
        """发送逾期付息告警"""
        message = {
            "text": "⚠️ *OVERDUE PAYMENT ALERT*",
            "blocks": [
                _header("⚠️ OVERDUE PAYMENT ALERT"),
                _fields(
                    ("Payment ID", payment.payment_id),
                    ("Amount", f"{payment.amount} tokens"),
                    ("Due Date", epoch_to_localhost(payment.due_date)),
                    ("Days Overdue", f"{payment.days_overdue} days"),
                ),
                _text(
                    f"*Contract:* `{payment.contract_address}`\n"
                    f"*Grace Period:* {payment.grace_period} hours"
                ),
                DIVIDER,
                _bullets("Risk Assessment", [
                    "🔴 *High Risk:* Payment default may trigger bond acceleration",
                    "💰 *Financial Impact:* Potential loss of investor confidence",
                    "📋 *Regulatory Impact:* May require regulatory reporting",
                    "⚖️ *Legal Impact:* Could trigger legal proceedings",
                ]),
                _bullets("Immediate Actions Required", [
                    "Review treasury reserves for payment capability",
                    "Execute automatic payment if sufficient funds available",
                    "Notify bondholders of payment status",
                    "Prepare regulatory notifications if necessary",
                ]),
            ],
        }
        return await self.send_slack_message(message)

    async def send_payment_enforced_alert(self, payment: PaymentEnforcedRecord) -> Dict[str, Any]:
        """发送强制付息完成通知"""
        message = {
            "text": "✅ *PAYMENT ENFORCED*",
            "blocks": [
                _header("✅ PAYMENT ENFORCED"),
                _fields(
                    ("Payment ID", payment.payment_id),
                    ("Amount Paid", f"{payment.amount} tokens"),
                    ("Transaction Hash", f"`{payment.transaction_hash}`"),
                    ("Enforcement Time", epoch_to_localhost(payment.timestamp)),
                ),
                _text(
                    f"*Contract:* `{payment.contract_address}`\n"
                    f"*Method:* Automatic from reserve"
                ),
                DIVIDER,
                _bullets("Actions Completed", [
                    "✅ Payment automatically executed from reserve funds",
                    "📊 Transaction confirmed on blockchain",
                    "📋 Payment records updated",
                    "📧 Bondholders notified of payment",
                    "📊 Compliance records updated",
                ]),
                _bullets("System Status", [
                    "🟢 Bond payment status: UP TO DATE",
                    "🟢 Default risk: MITIGATED",
                    "🟢 Regulatory compliance: MAINTAINED",
                    "🟢 Investor confidence: PRESERVED",
                ]),
            ],
        }
        return await self.send_slack_message(message)

    async def send_monitoring_alert(self, alert: MonitoringAlert) -> Dict[str, Any]:
        """发送通用监控告警"""
        alert_type = alert.alert_type.upper()
        message = {
            "text": f"🔔 *{alert_type} ALERT*",
            "blocks": [
                _header(f"🔔 {alert_type} ALERT"),
                _text(f"*{alert.title}*\n{alert.message}"),
                _fields(
                    ("Contract", f"`{alert.contract_address}`"),
                    ("Time", epoch_to_localhost(alert.timestamp)),
                ),
            ],
        }
        return await self.send_slack_message(message)

    # ------------------------------------------------------------------
    # NotificationChannel
    # ------------------------------------------------------------------

    async def send_transfer(self, record: TransferRecord) -> Dict[str, Any]:
        return await self.send_transfer_alert(record)

    async def send_compliance_violation(self, record: ComplianceViolationRecord) -> Dict[str, Any]:
        return await self.send_compliance_violation_alert(record)

    async def send_overdue_payment(self, record: OverduePaymentRecord) -> Dict[str, Any]:
        return await self.send_overdue_payment_alert(record)

    async def send_payment_enforced(self, record: PaymentEnforcedRecord) -> Dict[str, Any]:
        return await self.send_payment_enforced_alert(record)

    async def test_configuration(self) -> bool:
        return await self.test_slack_configuration()

    # ------------------------------------------------------------------
    # 发送
    # ------------------------------------------------------------------

    async def send_slack_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST 消息到 Slack Webhook（单次尝试）

        Args:
            message: Slack 消息体

        Returns:
            Dict[str, Any]: 发送结果，失败时包含 error 字段，不抛出异常
        """
        if not self.enabled:
            logger.info(f"📱 Slack 通知模拟: {message.get('text')}")
            return failure("Slack webhook not configured")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.webhook_url,
                    json=message,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                    headers={"Content-Type": "application/json"},
                ) as response:
                    if response.status == 200:
                        self.total_sent += 1
                        logger.info(f"📱 Slack 通知已发送: {message.get('text')}")
                        return {"success": True, "status_code": response.status}

                    error = f"HTTP {response.status}"
                    logger.error(f"❌ Slack 通知发送失败: {error}")

        except asyncio.TimeoutError:
            error = f"请求超时 ({self.config.timeout}s)"
            logger.error(f"❌ Slack 通知发送超时: {error}")
        except aiohttp.ClientError as e:
            error = f"网络错误: {e}"
            logger.error(f"❌ Slack 通知发送网络错误: {error}")
        except Exception as e:
            error = f"未知错误: {e}"
            logger.error(f"❌ Slack 通知发送异常: {error}", exc_info=True)

        self.total_failed += 1
        return failure(error)

    async def test_slack_configuration(self) -> bool:
        """
        发送测试消息

        Returns:
            bool: 是否发送成功，未配置时直接返回 False
        """
        if not self.enabled:
            logger.warning("⚠️ Slack Webhook 未配置")
            return False

        test_message = {
            "text": f"🧪 *TEST ALERT* - {SYSTEM_NAME}",
            "blocks": [
                _text(
                    f"🧪 *TEST ALERT*\nThis is a test notification from the {SYSTEM_NAME}.\n\n"
                    "If you receive this message, Slack integration is working correctly!"
                ),
            ],
        }
        result = await self.send_slack_message(test_message)
        return result["success"]

    def get_stats(self) -> Dict[str, Any]:
        """获取 Slack 服务统计信息"""
        return {
            "enabled": self.enabled,
            "total_sent": self.total_sent,
            "total_failed": self.total_failed,
        }
