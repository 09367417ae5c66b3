"""
启动信息记录模块

负责记录监控器启动时的配置状态
"""

from typing import Iterable

from bond_transfer_monitor.config.monitor_config import MonitorConfig
from bond_transfer_monitor.services.notification_channel import NotificationChannel
from bond_transfer_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class StartupLogger:
    """启动信息记录器"""

    def __init__(self, config: MonitorConfig):
        self.config = config

    def log_startup_info(self, event_names: Iterable[str], channels: Iterable[NotificationChannel]) -> None:
        """记录启动信息"""
        logger.info("✅ 转账监控已启动")
        logger.info(f"📡 监控合约: {self.config.contract_address}")
        logger.info(f"🔗 RPC URL: {self.config.rpc_url}")
        logger.info(f"📊 监控事件: {', '.join(event_names)}")
        self._log_channels(channels)

    def _log_channels(self, channels: Iterable[NotificationChannel]) -> None:
        for channel in channels:
            if channel.name == "email":
                logger.info(f"📧 邮件通知: {self.config.email.smtp_host} -> {self.config.email.to_email}")
            elif channel.name == "slack":
                state = "已启用" if self.config.slack.enabled else "未配置（模拟模式）"
                logger.info(f"📱 Slack 通知: {state}")
            else:
                logger.info(f"🔔 通知渠道: {channel.name}")
