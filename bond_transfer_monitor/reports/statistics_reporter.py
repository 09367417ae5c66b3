"""
统计报告器

负责输出转账统计日志，提供监控运行状态的报告
"""

import time
from typing import Any, Dict, Iterable, Optional

from bond_transfer_monitor.models.data_types import MonitoringStats
from bond_transfer_monitor.utils.log_utils import epoch_to_localhost, extended_seconds_to_hms, get_logger

logger = get_logger(__name__)


class StatisticsReporter:
    """统计报告器 - 负责统计日志输出"""

    def __init__(self):
        self.start_time: float = time.time()

    def log_monitoring_stats(self, stats: MonitoringStats) -> None:
        """输出当前统计"""
        last_event = epoch_to_localhost(stats.last_event_time) if stats.last_event_time else 'None'
        logger.info(
            f"📊 监控统计 | "
            f"总转账: {stats.total_transfers} | "
            f"成功: {stats.successful_transfers} | "
            f"拦截: {stats.blocked_transfers} | "
            f"最近事件: {last_event}"
        )

    def log_final_stats(self, stats: MonitoringStats) -> None:
        """输出最终统计报告"""
        runtime = time.time() - self.start_time
        logger.info("=" * 60)
        logger.info("📋 最终统计报告")
        logger.info(f"⏱️ 运行时间: {extended_seconds_to_hms(runtime)}")
        self.log_monitoring_stats(stats)
        if stats.total_transfers > 0:
            blocked_rate = stats.blocked_transfers / stats.total_transfers * 100
            logger.info(f"🚫 拦截比例: {blocked_rate:.1f}%")
        logger.info("=" * 60)

    def log_service_stats(self, channels: Iterable[Any], rpc_stats: Optional[Dict[str, Any]] = None) -> None:
        """输出通知渠道和 RPC 调用统计"""
        for channel in channels:
            get_stats = getattr(channel, 'get_stats', None)
            if get_stats is None:
                continue
            stats = get_stats()
            logger.info(
                f"🔔 {channel.name} 通知 | 成功: {stats['total_sent']} | 失败: {stats['total_failed']}"
            )

        if rpc_stats:
            logger.info(
                f"🔗 RPC 调用 | 总计: {rpc_stats['rpc_calls']} | 错误: {rpc_stats['rpc_errors']} | "
                f"平均: {rpc_stats['avg_rpc_per_second']:.2f}/s | 分类: {rpc_stats['rpc_calls_by_type']}"
            )
