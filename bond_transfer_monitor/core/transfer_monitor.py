"""
转账事件监控器

订阅 TokenizedBond 合约的 Transfer / TransferAttempt / ComplianceViolation 事件，
分类统计后把通知同时分发给邮件和 Slack 两个渠道
"""

import asyncio
import signal
import sys
import time
from typing import Any, Dict, List, Optional

from bond_transfer_monitor.config.monitor_config import MonitorConfig
from bond_transfer_monitor.core.startup_logger import StartupLogger
from bond_transfer_monitor.managers.event_subscriber import EventHandler, EventSubscriber, Web3EventSubscriber
from bond_transfer_monitor.models.bond_abi import (
    COMPLIANCE_VIOLATION_EVENT,
    TRANSFER_ATTEMPT_EVENT,
    TRANSFER_EVENT,
)
from bond_transfer_monitor.models.data_types import (
    ComplianceViolationRecord,
    ContractEvent,
    MonitoringStats,
    MonitorStatus,
    Severity,
    TransferRecord,
    TransferStatus,
)
from bond_transfer_monitor.reports.statistics_reporter import StatisticsReporter
from bond_transfer_monitor.services.email_service import EmailService
from bond_transfer_monitor.services.notification_channel import NotificationChannel, failure
from bond_transfer_monitor.services.slack_service import SlackService
from bond_transfer_monitor.utils.log_utils import get_logger
from bond_transfer_monitor.utils.token_units import format_units

logger = get_logger(__name__)

# 违规类型 -> 严重程度，未列出的类型为 LOW
VIOLATION_SEVERITY = {
    'UNAUTHORIZED_TRANSFER': Severity.HIGH,
    'TRANSFER_LIMIT_EXCEEDED': Severity.MEDIUM,
    'HOLDING_LIMIT_EXCEEDED': Severity.MEDIUM,
    'BLACKLISTED_SENDER': Severity.HIGH,
    'BLACKLISTED_RECEIVER': Severity.HIGH,
}

SUCCESSFUL_REASON = 'Transfer successful'
BLOCKED_REASON = 'Transfer blocked by contract'


def get_violation_severity(violation_type: str) -> Severity:
    """按违规类型查询严重程度"""
    return VIOLATION_SEVERITY.get(violation_type, Severity.LOW)


class TransferMonitor:
    """转账事件监控器"""

    def __init__(
        self,
        config: MonitorConfig,
        subscriber: Optional[EventSubscriber] = None,
        channels: Optional[List[NotificationChannel]] = None,
        install_signal_handlers: bool = True,
    ):
        """
        初始化监控器

        Args:
            config: 监控配置
            subscriber: 事件订阅器，不提供时启动监控时按配置创建 Web3 订阅器
            channels: 通知渠道，默认为邮件和 Slack
            install_signal_handlers: 启动时是否注册 SIGINT/SIGTERM 处理器
        """
        self.config = config
        self.contract_address = config.contract_address
        self.subscriber = subscriber
        self.channels: List[NotificationChannel] = (
            channels if channels is not None
            else [EmailService(config.email), SlackService(config.slack)]
        )
        self.install_signal_handlers = install_signal_handlers

        self.is_monitoring = False
        self.monitoring_stats = MonitoringStats()
        self._stats_lock = asyncio.Lock()
        self._subscribed = False

        self.stats_reporter = StatisticsReporter()
        self.startup_logger = StartupLogger(config)

    @property
    def event_handlers(self) -> Dict[str, EventHandler]:
        """事件名 -> 处理函数"""
        return {
            TRANSFER_EVENT: self.handle_transfer_event,
            TRANSFER_ATTEMPT_EVENT: self.handle_transfer_attempt_event,
            COMPLIANCE_VIOLATION_EVENT: self.handle_compliance_violation_event,
        }

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    async def start_monitoring(self) -> None:
        """
        开始监控

        Raises:
            ValueError: 合约地址或 RPC 未配置时抛出
        """
        if self.is_monitoring:
            logger.warning("⚠️ 转账监控已在运行中")
            return

        logger.info("🔍 正在启动转账事件监控器...")

        if not self.contract_address:
            raise ValueError("缺少必需配置: contract_address")
        if self.subscriber is None:
            self.config.validate()
            self.subscriber = Web3EventSubscriber(self.config)
            await self._check_network()

        if not self._subscribed:
            for event_name, handler in self.event_handlers.items():
                self.subscriber.subscribe(event_name, handler)
            self._subscribed = True

        await self.subscriber.start()
        self.is_monitoring = True

        self.startup_logger.log_startup_info(self.event_handlers.keys(), self.channels)

        if self.install_signal_handlers:
            setup_signal_handlers(self)

    async def _check_network(self) -> None:
        """检查 RPC 连接，失败只记录日志"""
        rpc_manager = getattr(self.subscriber, 'rpc_manager', None)
        if rpc_manager is None:
            return

        connection_info = await rpc_manager.test_connection()
        if connection_info['success']:
            logger.info(
                f"🌐 {connection_info['network']} 连接成功 - "
                f"区块: {connection_info['latest_block']}, "
                f"Chain ID: {connection_info['chain_id']}"
            )
        else:
            logger.error(f"网络连接失败: {connection_info['error']}")

    def stop_monitoring(self) -> None:
        """停止监控"""
        if not self.is_monitoring:
            return

        self.is_monitoring = False
        if self.subscriber:
            self.subscriber.stop()
        logger.info("🛑 转账监控已停止")
        self.stats_reporter.log_final_stats(self.monitoring_stats)
        self._log_service_stats()

    def _log_service_stats(self) -> None:
        rpc_manager = getattr(self.subscriber, 'rpc_manager', None)
        rpc_stats = rpc_manager.get_stats() if rpc_manager is not None else None
        self.stats_reporter.log_service_stats(self.channels, rpc_stats)

    async def run_until_stopped(self) -> None:
        """保持运行直到监控停止，按间隔输出统计"""
        last_stats_log = time.time()
        while self.is_monitoring:
            await asyncio.sleep(1)
            if time.time() - last_stats_log >= self.config.stats_log_interval:
                self.stats_reporter.log_monitoring_stats(self.monitoring_stats)
                self._log_service_stats()
                last_stats_log = time.time()

    def get_status(self) -> MonitorStatus:
        """获取当前监控状态"""
        return MonitorStatus(
            is_monitoring=self.is_monitoring,
            contract_address=self.contract_address,
            stats=self.monitoring_stats.copy(),
        )

    # ------------------------------------------------------------------
    # 事件处理
    # ------------------------------------------------------------------

    async def handle_transfer_event(self, event: ContractEvent) -> None:
        """处理 Transfer 事件（一律视为成功转账）"""
        now = time.time()
        async with self._stats_lock:
            self.monitoring_stats.record_successful(now)

        transfer = self._build_transfer_record(
            event, event.args['value'], now, TransferStatus.SUCCESSFUL, SUCCESSFUL_REASON
        )
        self._log_transfer("🔄 检测到转账事件", transfer)

        await self.send_notifications(transfer)
        self.stats_reporter.log_monitoring_stats(self.monitoring_stats)

    async def handle_transfer_attempt_event(self, event: ContractEvent) -> None:
        """处理 TransferAttempt 事件（只处理被拦截的尝试）"""
        # 成功的尝试已由 Transfer 事件覆盖
        if not event.args['blocked']:
            return

        now = time.time()
        async with self._stats_lock:
            self.monitoring_stats.record_blocked(now)

        transfer = self._build_transfer_record(
            event, event.args['amount'], now, TransferStatus.BLOCKED, BLOCKED_REASON
        )
        self._log_transfer("🎯 转账尝试被拦截", transfer)

        await self.send_notifications(transfer)
        self.stats_reporter.log_monitoring_stats(self.monitoring_stats)

    async def handle_compliance_violation_event(self, event: ContractEvent) -> None:
        """处理 ComplianceViolation 事件（不影响转账统计）"""
        violation_type = event.args['violationType']
        violation = ComplianceViolationRecord(
            account=event.args['account'],
            violation_type=violation_type,
            details=event.args['details'],
            transaction_hash=event.transaction_hash,
            block_number=event.block_number,
            timestamp=time.time(),
            contract_address=self.contract_address,
            severity=get_violation_severity(violation_type),
        )

        logger.warning(
            f"🚨 检测到合规违规 | 账户: {violation.account} | 类型: {violation.violation_type} | "
            f"详情: {violation.details} | 严重程度: {violation.severity.value} | "
            f"TX: {violation.transaction_hash}"
        )

        await self.send_notifications(violation)

    def get_violation_severity(self, violation_type: str) -> Severity:
        return get_violation_severity(violation_type)

    def _build_transfer_record(self, event: ContractEvent, raw_amount: int, timestamp: float,
                               status: TransferStatus, reason: str) -> TransferRecord:
        return TransferRecord(
            from_address=event.args['from'],
            to_address=event.args['to'],
            amount=format_units(raw_amount, self.config.token_decimals),
            transaction_hash=event.transaction_hash,
            block_number=event.block_number,
            timestamp=timestamp,
            contract_address=self.contract_address,
            status=status,
            reason=reason,
        )

    def _log_transfer(self, title: str, transfer: TransferRecord) -> None:
        logger.info(
            f"{title} | {transfer.from_address} => {transfer.to_address} | "
            f"数量: {transfer.amount} tokens | 状态: {transfer.status.value} | "
            f"TX: {transfer.transaction_hash}"
        )

    # ------------------------------------------------------------------
    # 通知分发
    # ------------------------------------------------------------------

    async def send_notifications(self, record: Any) -> List[Dict[str, Any]]:
        """
        把记录分发给所有通知渠道

        每个渠道独立尝试，单个渠道失败不影响其他渠道，也不会向事件处理函数抛出异常

        Returns:
            List[Dict[str, Any]]: 各渠道的发送结果
        """
        results = await asyncio.gather(*(self._deliver(channel, record) for channel in self.channels))

        sent = sum(1 for result in results if isinstance(result, dict) and result.get('success'))
        if sent == len(results):
            logger.info(f"📧 通知已发送 ({sent}/{len(results)})")
        else:
            logger.warning(f"⚠️ 部分通知未送达 ({sent}/{len(results)})")
        return list(results)

    async def _deliver(self, channel: NotificationChannel, record: Any) -> Dict[str, Any]:
        try:
            return await channel.deliver(record)
        except Exception as e:
            logger.error(f"❌ {channel.name} 通知发送失败: {e}", exc_info=True)
            return failure(str(e))


def setup_signal_handlers(monitor: TransferMonitor) -> None:
    """设置信号处理器：停止监控后退出进程"""
    def signal_handler(signum, frame):
        """信号处理器"""
        logger.info(f"🛑 接收到信号 {signum}，正在停止转账监控...")
        monitor.stop_monitoring()
        sys.exit(0)

    # 注册信号处理器
    try:
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
        logger.info("信号处理器已注册")
    except Exception as e:
        logger.warning(f"注册信号处理器失败: {e}")
