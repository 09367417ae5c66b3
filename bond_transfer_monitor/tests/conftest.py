"""
测试公共夹具
"""

import pytest

from bond_transfer_monitor.config.monitor_config import EmailConfig, MonitorConfig, SlackConfig
from bond_transfer_monitor.core.transfer_monitor import TransferMonitor
from bond_transfer_monitor.tests.fakes import CONTRACT_ADDRESS, CountingSubscriber, RecordingChannel


@pytest.fixture
def monitor_config() -> MonitorConfig:
    return MonitorConfig(
        chain_name="testnet",
        rpc_url="http://localhost:8545",
        contract_address=CONTRACT_ADDRESS,
        email=EmailConfig(smtp_host="smtp.test.local", smtp_user="monitor@test.local", smtp_pass="secret"),
        slack=SlackConfig(webhook_url=""),
    )


@pytest.fixture
def subscriber() -> CountingSubscriber:
    return CountingSubscriber()


@pytest.fixture
def email_channel() -> RecordingChannel:
    return RecordingChannel("email")


@pytest.fixture
def slack_channel() -> RecordingChannel:
    return RecordingChannel("slack")


@pytest.fixture
def monitor(monitor_config, subscriber, email_channel, slack_channel) -> TransferMonitor:
    return TransferMonitor(
        monitor_config,
        subscriber=subscriber,
        channels=[email_channel, slack_channel],
        install_signal_handlers=False,
    )
