#!/usr/bin/env python3
"""
TokenizedBond 转账监控器 - 程序入口

  python -m bond_transfer_monitor start          启动监控
  python -m bond_transfer_monitor test-channels  测试邮件和 Slack 配置
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from bond_transfer_monitor.config.monitor_config import MonitorConfig
from bond_transfer_monitor.core.transfer_monitor import TransferMonitor
from bond_transfer_monitor.services.email_service import EmailService
from bond_transfer_monitor.services.slack_service import SlackService
from bond_transfer_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


async def run_monitor(config: MonitorConfig) -> int:
    """启动监控并保持运行"""
    logger.info("🚀 正在启动 TokenizedBond 转账监控器...")
    monitor = TransferMonitor(config)

    try:
        await monitor.start_monitoring()
    except Exception as e:
        logger.error(f"❌ 启动转账监控失败: {e}", exc_info=True)
        return 1

    logger.info("🎯 转账监控运行中，按 Ctrl+C 停止")
    try:
        await monitor.run_until_stopped()
    finally:
        monitor.stop_monitoring()
    return 0


async def test_channels(config: MonitorConfig) -> int:
    """测试两个通知渠道的配置"""
    email_ok = await EmailService(config.email).test_email_configuration()
    slack_ok = await SlackService(config.slack).test_slack_configuration()

    logger.info(f"📧 邮件: {'✅' if email_ok else '❌'} | 📱 Slack: {'✅' if slack_ok else '❌'}")
    return 0 if email_ok and slack_ok else 1


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TokenizedBond 转账事件监控器")
    parser.add_argument(
        'command', nargs='?', default='start', choices=['start', 'test-channels'],
        help="start: 启动监控；test-channels: 测试通知渠道配置",
    )
    parser.add_argument('--config', help="配置文件路径（默认 config.yml）")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = MonitorConfig.from_config(args.config)

    if args.command == 'test-channels':
        return asyncio.run(test_channels(config))

    try:
        return asyncio.run(run_monitor(config))
    except KeyboardInterrupt:
        logger.info("接收到键盘中断")
        return 0


if __name__ == '__main__':
    sys.exit(main())
