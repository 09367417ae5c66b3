"""
程序入口测试
"""

from unittest.mock import AsyncMock, patch

import pytest

from bond_transfer_monitor import main as entry
from bond_transfer_monitor.config.monitor_config import MonitorConfig


def test_parse_args_defaults_to_start():
    args = entry.parse_args([])
    assert args.command == "start"
    assert args.config is None


def test_parse_args_test_channels_with_config():
    args = entry.parse_args(["test-channels", "--config", "prod.yml"])
    assert args.command == "test-channels"
    assert args.config == "prod.yml"


@pytest.mark.asyncio
@pytest.mark.parametrize("email_ok,slack_ok,exit_code", [
    (True, True, 0),
    (True, False, 1),
    (False, True, 1),
])
async def test_test_channels_exit_code(monitor_config, email_ok, slack_ok, exit_code):
    with patch.object(entry.EmailService, "test_email_configuration", AsyncMock(return_value=email_ok)), \
            patch.object(entry.SlackService, "test_slack_configuration", AsyncMock(return_value=slack_ok)):
        assert await entry.test_channels(monitor_config) == exit_code


@pytest.mark.asyncio
async def test_run_monitor_reports_startup_failure():
    config = MonitorConfig(rpc_url="", contract_address="")
    assert await entry.run_monitor(config) == 1
