"""
邮件通知服务

把通知记录渲染为 HTML 邮件，通过 SMTP 中继发送给固定收件人
单次尝试，不重试不排队；发送失败只记录日志并返回失败结果
"""

import asyncio
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bond_transfer_monitor.config.monitor_config import EmailConfig
from bond_transfer_monitor.models.data_types import (
    ComplianceViolationRecord,
    OverduePaymentRecord,
    PaymentEnforcedRecord,
    TransferRecord,
    TransferStatus,
)
from bond_transfer_monitor.services.notification_channel import NotificationChannel, failure
from bond_transfer_monitor.utils.log_utils import epoch_to_localhost, get_logger

logger = get_logger(__name__)

SUBJECT_SUFFIX = "Tokenized Bond"
FOOTER_SYSTEM = "OpenZeppelin Bond Monitoring System"

GREEN = "#28a745"
RED = "#dc3545"
YELLOW = "#ffc107"

CELL_STYLE = "padding: 8px; border: 1px solid #ddd;"


def _table(rows: Iterable[Tuple[str, Any]]) -> str:
    """两列明细表，值会做 HTML 转义"""
    body = "".join(
        f'<tr><td style="{CELL_STYLE}"><strong>{escape(label)}:</strong></td>'
        f'<td style="{CELL_STYLE}">{escape(str(value))}</td></tr>'
        for label, value in rows
    )
    return f'<table style="width: 100%; border-collapse: collapse;">{body}</table>'


def _list(title: str, items: List[str], ordered: bool = False) -> str:
    tag = "ol" if ordered else "ul"
    lis = "".join(f"<li>{item}</li>" for item in items)
    return f"<h3>{title}</h3><{tag}>{lis}</{tag}>"


def _render(color: str, title: str, subtitle: str, heading: str, table: str,
            sections: List[str], contract_address: str, kind: str = "alert") -> str:
    """统一的邮件骨架：彩色标题栏 + 明细表 + 说明段落 + 页脚"""
    return f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <div style="background-color: {color}; color: white; padding: 20px; text-align: center;">
          <h1>{title}</h1>
          <p>{subtitle}</p>
        </div>
        <div style="padding: 20px; background-color: #f8f9fa;">
          <h2>{heading}</h2>
          {table}
          {''.join(sections)}
        </div>
        <div style="background-color: #e9ecef; padding: 15px; text-align: center; font-size: 12px; color: #6c757d;">
          <p>This is an automated {kind} from the {FOOTER_SYSTEM}</p>
          <p>Contract: {escape(contract_address)}</p>
        </div>
      </div>
    """


class EmailService(NotificationChannel):
    """邮件通知服务"""

    name = "email"

    def __init__(self, config: Optional[EmailConfig] = None):
        self.config = config or EmailConfig.from_config()
        self.from_email = self.config.from_email
        self.to_email = self.config.to_email

        # 统计信息
        self.total_sent = 0
        self.total_failed = 0

    # ------------------------------------------------------------------
    # 模板
    # ------------------------------------------------------------------

    async def send_transfer_notification_email(self, transfer: TransferRecord) -> Dict[str, Any]:
        """发送转账通知（成功或被拦截）"""
        status = transfer.status.value
        successful = transfer.status == TransferStatus.SUCCESSFUL
        subject = f"🔄 TRANSFER {status} - {SUBJECT_SUFFIX}"

        rows = [
            ("From Address", transfer.from_address),
            ("To Address", transfer.to_address),
            ("Amount", f"{transfer.amount} tokens"),
            ("Status", status),
            ("Transaction Hash", transfer.transaction_hash),
            ("Block Number", transfer.block_number),
            ("Time", epoch_to_localhost(transfer.timestamp)),
        ]
        if transfer.is_blocked:
            rows.append(("Block Reason", transfer.reason))

        html = _render(
            GREEN if successful else RED,
            f"🔄 TRANSFER {status}",
            "Transfer completed successfully" if successful
            else "Transfer was BLOCKED and did not go through.",
            "Transfer Details",
            _table(rows),
            [_list("Monitoring Information", [
                "✅ Transfer event detected and logged",
                "📊 Compliance check completed",
                "📋 Audit trail updated",
                "🔍 Transaction details recorded",
            ])],
            transfer.contract_address,
            kind="notification",
        )
        return await self.send_email(subject, html)

    async def send_blocked_transfer_email(self, transfer: TransferRecord) -> Dict[str, Any]:
        """发送转账拦截告警"""
        subject = f"🚫 BLOCKED TRANSFER ALERT - {SUBJECT_SUFFIX}"
        html = _render(
            RED,
            "🚫 TRANSFER BLOCKED",
            "Unauthorized transfer attempt detected and blocked",
            "Transfer Details",
            _table([
                ("From Address", transfer.from_address),
                ("To Address", transfer.to_address),
                ("Amount", f"{transfer.amount} tokens"),
                ("Block Reason", transfer.reason),
                ("Timestamp", epoch_to_localhost(transfer.timestamp)),
            ]),
            [
                _list("Action Taken", [
                    "✅ Transfer automatically blocked by smart contract",
                    "📊 Security event logged in audit trail",
                    "🔍 Compliance team notified for review",
                    "📋 Regulatory report generated",
                ]),
                _list("Next Steps", [
                    "Review the blocked transfer in the compliance dashboard",
                    "Investigate the source address for potential risks",
                    "Update blacklist if necessary",
                    "Generate regulatory report if required",
                ], ordered=True),
            ],
            transfer.contract_address,
        )
        return await self.send_email(subject, html)

    async def send_compliance_violation_email(self, violation: ComplianceViolationRecord) -> Dict[str, Any]:
        """发送合规违规告警"""
        subject = f"🚨 COMPLIANCE VIOLATION - {SUBJECT_SUFFIX}"
        html = _render(
            RED,
            "🚨 COMPLIANCE VIOLATION",
            "Regulatory compliance violation detected",
            "Violation Details",
            _table([
                ("Violation Type", violation.violation_type),
                ("Account", violation.account),
                ("Details", violation.details),
                ("Severity", violation.severity.value),
                ("Transaction Hash", violation.transaction_hash),
                ("Timestamp", epoch_to_localhost(violation.timestamp)),
            ]),
            [
                _list("Enforcement Actions", [
                    "🔒 Account frozen pending investigation",
                    "📋 Regulatory report generated",
                    "📧 Authorities notified",
                    "📊 Audit trail updated",
                ]),
                _list("Required Actions", [
                    "Review violation details in compliance dashboard",
                    "Investigate account activity and history",
                    "Determine appropriate enforcement actions",
                    "Update regulatory authorities if required",
                    "Document all actions taken",
                ], ordered=True),
            ],
            violation.contract_address,
        )
        return await self.send_email(subject, html)

    async def send_overdue_payment_email(self, payment: OverduePaymentRecord) -> Dict[str, Any]:
        """发送逾期付息告警"""
        subject = f"⚠️ OVERDUE PAYMENT ALERT - {SUBJECT_SUFFIX}"
        html = _render(
            YELLOW,
            "⚠️ PAYMENT OVERDUE",
            "Interest payment is overdue and requires immediate attention",
            "Payment Details",
            _table([
                ("Payment ID", payment.payment_id),
                ("Due Date", epoch_to_localhost(payment.due_date)),
                ("Amount", f"{payment.amount} tokens"),
                ("Days Overdue", f"{payment.days_overdue} days"),
                ("Grace Period", f"{payment.grace_period} hours"),
            ]),
            [
                _list("Risk Assessment", [
                    "🔴 <strong>High Risk:</strong> Payment default may trigger bond acceleration",
                    "💰 <strong>Financial Impact:</strong> Potential loss of investor confidence",
                    "📋 <strong>Regulatory Impact:</strong> May require regulatory reporting",
                    "⚖️ <strong>Legal Impact:</strong> Could trigger legal proceedings",
                ]),
                _list("Immediate Actions Required", [
                    "Review treasury reserves for payment capability",
                    "Execute automatic payment if sufficient funds available",
                    "Notify bondholders of payment status",
                    "Prepare regulatory notifications if necessary",
                ], ordered=True),
            ],
            payment.contract_address,
        )
        return await self.send_email(subject, html)

    async def send_payment_enforced_email(self, payment: PaymentEnforcedRecord) -> Dict[str, Any]:
        """发送强制付息完成通知"""
        subject = f"✅ PAYMENT ENFORCED - {SUBJECT_SUFFIX}"
        html = _render(
            GREEN,
            "✅ PAYMENT ENFORCED",
            "Overdue payment has been automatically enforced",
            "Payment Details",
            _table([
                ("Payment ID", payment.payment_id),
                ("Amount Paid", f"{payment.amount} tokens"),
                ("Transaction Hash", payment.transaction_hash),
                ("Enforcement Time", epoch_to_localhost(payment.timestamp)),
                ("Method", "Automatic from reserve"),
            ]),
            [
                _list("Actions Completed", [
                    "✅ Payment automatically executed from reserve funds",
                    "📊 Transaction confirmed on blockchain",
                    "📋 Payment records updated",
                    "📧 Bondholders notified of payment",
                    "📊 Compliance records updated",
                ]),
                _list("System Status", [
                    "🟢 Bond payment status: UP TO DATE",
                    "🟢 Default risk: MITIGATED",
                    "🟢 Regulatory compliance: MAINTAINED",
                    "🟢 Investor confidence: PRESERVED",
                ]),
            ],
            payment.contract_address,
            kind="notification",
        )
        return await self.send_email(subject, html)

    # ------------------------------------------------------------------
    # NotificationChannel
    # ------------------------------------------------------------------

    async def send_transfer(self, record: TransferRecord) -> Dict[str, Any]:
        return await self.send_transfer_notification_email(record)

    async def send_compliance_violation(self, record: ComplianceViolationRecord) -> Dict[str, Any]:
        return await self.send_compliance_violation_email(record)

    async def send_overdue_payment(self, record: OverduePaymentRecord) -> Dict[str, Any]:
        return await self.send_overdue_payment_email(record)

    async def send_payment_enforced(self, record: PaymentEnforcedRecord) -> Dict[str, Any]:
        return await self.send_payment_enforced_email(record)

    async def test_configuration(self) -> bool:
        return await self.test_email_configuration()

    # ------------------------------------------------------------------
    # 发送
    # ------------------------------------------------------------------

    def _connect(self) -> smtplib.SMTP:
        """建立 SMTP 连接，按配置执行 STARTTLS 和登录"""
        server = smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=self.config.timeout)
        try:
            server.ehlo()
            if self.config.use_tls:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            if self.config.smtp_user and self.config.smtp_pass:
                server.login(self.config.smtp_user, self.config.smtp_pass)
        except Exception:
            server.close()
            raise
        return server

    def _build_message(self, subject: str, html: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_email
        message["To"] = self.to_email
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    def _deliver(self, message: MIMEMultipart) -> Dict[str, Any]:
        with self._connect() as server:
            refused = server.sendmail(self.from_email, [self.to_email], message.as_string())
        return {"success": True, "recipients": [self.to_email], "refused": refused}

    async def send_email(self, subject: str, html: str) -> Dict[str, Any]:
        """
        发送邮件（单次尝试）

        Args:
            subject: 邮件主题
            html: HTML 正文

        Returns:
            Dict[str, Any]: 发送结果，失败时包含 error 字段，不抛出异常
        """
        message = self._build_message(subject, html)
        try:
            result = await asyncio.to_thread(self._deliver, message)
            self.total_sent += 1
            logger.info(f"📧 邮件发送成功: {subject}")
            return result
        except (smtplib.SMTPException, OSError) as e:
            error = str(e) or type(e).__name__
            logger.error(f"❌ 邮件发送失败: {error}")
        except Exception as e:
            error = f"未知错误: {e}"
            logger.error(f"❌ 邮件发送异常: {error}", exc_info=True)

        self.total_failed += 1
        logger.info("📧 邮件模拟: 本应发送通知")
        return failure(error)

    async def test_email_configuration(self) -> bool:
        """
        测试 SMTP 连接和登录

        Returns:
            bool: 配置是否可用
        """
        def _probe() -> None:
            with self._connect() as server:
                server.noop()

        try:
            await asyncio.to_thread(_probe)
            logger.info("✅ 邮件配置有效")
            return True
        except Exception as e:
            logger.error(f"❌ 邮件配置测试失败: {e}")
            return False

    def get_stats(self) -> Dict[str, Any]:
        """获取邮件服务统计信息"""
        return {
            "total_sent": self.total_sent,
            "total_failed": self.total_failed,
            "smtp_host": self.config.smtp_host,
            "recipient": self.to_email,
        }
