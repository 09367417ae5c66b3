"""
配置加载测试
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from bond_transfer_monitor.config import base_config
from bond_transfer_monitor.config.monitor_config import (
    DEFAULT_RECIPIENT,
    SLACK_WEBHOOK_PLACEHOLDER,
    EmailConfig,
    MonitorConfig,
    SlackConfig,
)
from bond_transfer_monitor.core import transfer_monitor
from bond_transfer_monitor.managers import event_subscriber
from bond_transfer_monitor.utils.log_utils import configure_logging

ENV_NAMES = [
    "ETHEREUM_RPC_URL",
    "BOND_CONTRACT_ADDRESS",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "NOTIFICATION_EMAIL",
    "SLACK_WEBHOOK_URL",
]

CONFIG_YAML = """
monitor:
  chain_name: holesky
  rpc_url: http://yaml-node:8545
  contract_address: "0x2222222222222222222222222222222222222222"
  poll_interval: 2
  max_block_range: 100
email:
  smtp_host: smtp.yaml.local
  smtp_port: 465
  to_email: risk@yaml.local
slack:
  webhook_url: your_slack_webhook_url_here
logging:
  level: DEBUG
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    yield str(path)
    base_config.reload_config()
    configure_logging()


class TestEnvOverride:

    def test_env_wins_over_section(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.env.local")
        assert base_config.env_override("SMTP_HOST", {"smtp_host": "smtp.yaml.local"}, "smtp_host") == "smtp.env.local"

    def test_blank_env_is_ignored(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "   ")
        assert base_config.env_override("SMTP_HOST", {"smtp_host": "smtp.yaml.local"}, "smtp_host") == "smtp.yaml.local"

    def test_default_when_missing(self):
        assert base_config.env_override("SMTP_HOST", {}, "smtp_host", "smtp.gmail.com") == "smtp.gmail.com"


class TestMonitorConfig:

    def test_from_yaml(self, yaml_config):
        config = MonitorConfig.from_config(yaml_config)

        assert config.chain_name == "holesky"
        assert config.rpc_url == "http://yaml-node:8545"
        assert config.contract_address == "0x2222222222222222222222222222222222222222"
        assert config.poll_interval == 2.0
        assert config.max_block_range == 100
        assert config.email.smtp_host == "smtp.yaml.local"
        assert config.email.smtp_port == 465
        assert config.email.to_email == "risk@yaml.local"
        assert config.slack.webhook_url == SLACK_WEBHOOK_PLACEHOLDER
        assert config.slack.enabled is False
        assert base_config.LoggingConfig["level"] == "DEBUG"

    def test_env_overrides_yaml(self, yaml_config, monkeypatch):
        monkeypatch.setenv("ETHEREUM_RPC_URL", "http://env-node:8545")
        monkeypatch.setenv("SMTP_PORT", "2525")
        monkeypatch.setenv("NOTIFICATION_EMAIL", "oncall@env.local")
        monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.test/services/T/B/X")

        config = MonitorConfig.from_config(yaml_config)

        assert config.rpc_url == "http://env-node:8545"
        assert config.contract_address == "0x2222222222222222222222222222222222222222"
        assert config.email.smtp_port == 2525
        assert config.email.to_email == "oncall@env.local"
        assert config.slack.enabled is True

    def test_missing_file_uses_defaults(self, tmp_path):
        try:
            config = MonitorConfig.from_config(str(tmp_path / "absent.yml"))
        finally:
            base_config.reload_config()
            configure_logging()

        assert config.chain_name == "sepolia"
        assert config.rpc_url == ""
        assert config.email.to_email == DEFAULT_RECIPIENT
        assert config.slack.enabled is False

    def test_validate(self):
        with pytest.raises(ValueError, match="rpc_url, contract_address"):
            MonitorConfig().validate()

        MonitorConfig(rpc_url="http://localhost:8545", contract_address="0x1").validate()

    def test_to_dict_has_no_credentials(self):
        config = MonitorConfig(
            rpc_url="http://localhost:8545",
            email=EmailConfig(smtp_user="bot", smtp_pass="secret"),
            slack=SlackConfig(webhook_url="https://hooks.slack.test/x"),
        )
        data = config.to_dict()

        assert data["slack_enabled"] is True
        assert "secret" not in data.values()
        assert "smtp_pass" not in data


class TestLoggingConfig:
    """--config 指定的 logging 配置段作用于已创建的日志器"""

    def test_reloaded_logging_section_applies(self, tmp_path):
        log_file = tmp_path / "logs" / "monitor.log"
        path = tmp_path / "alt.yml"
        path.write_text(
            "monitor:\n"
            "  contract_address: \"0x3333333333333333333333333333333333333333\"\n"
            "logging:\n"
            "  level: DEBUG\n"
            f"  file: '{log_file}'\n",
            encoding="utf-8",
        )

        level_before = transfer_monitor.logger.level
        try:
            config = MonitorConfig.from_config(str(path))

            assert config.contract_address == "0x3333333333333333333333333333333333333333"
            for logger in (transfer_monitor.logger, event_subscriber.logger):
                assert logger.level == logging.DEBUG
                file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
                assert [h.baseFilename for h in file_handlers] == [str(log_file)]

            transfer_monitor.logger.debug("日志配置已刷新")
            for handler in transfer_monitor.logger.handlers:
                handler.flush()
            assert "日志配置已刷新" in log_file.read_text(encoding="utf-8")
        finally:
            base_config.reload_config()
            configure_logging()

        assert transfer_monitor.logger.level == level_before
        assert str(log_file) not in [
            h.baseFilename for h in transfer_monitor.logger.handlers if isinstance(h, RotatingFileHandler)
        ]
