"""
监控配置管理模块

统一管理监控器和两个通知渠道的配置参数，便于维护和调整
配置来源：config.yml 中的各配置段，环境变量优先
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bond_transfer_monitor.config import base_config
from bond_transfer_monitor.config.base_config import env_override
from bond_transfer_monitor.utils.log_utils import configure_logging

DEFAULT_RECIPIENT = 'compliance@financial-institution.com'
SLACK_WEBHOOK_PLACEHOLDER = 'your_slack_webhook_url_here'


@dataclass
class EmailConfig:
    """邮件通知配置"""

    smtp_host: str = 'smtp.gmail.com'
    smtp_port: int = 587
    smtp_user: str = ''
    smtp_pass: str = ''
    use_tls: bool = True
    from_email: str = ''
    to_email: str = DEFAULT_RECIPIENT
    timeout: int = 30  # 秒

    def __post_init__(self):
        """发件人默认使用 SMTP 用户，收件人为空时使用默认收件人"""
        if not self.from_email:
            self.from_email = self.smtp_user
        if not self.to_email:
            self.to_email = DEFAULT_RECIPIENT

    @classmethod
    def from_config(cls) -> 'EmailConfig':
        """从配置文件和环境变量创建邮件配置"""
        section = base_config.EmailSection
        return cls(
            smtp_host=env_override('SMTP_HOST', section, 'smtp_host', 'smtp.gmail.com'),
            smtp_port=int(env_override('SMTP_PORT', section, 'smtp_port', 587)),
            smtp_user=env_override('SMTP_USER', section, 'smtp_user', ''),
            smtp_pass=env_override('SMTP_PASS', section, 'smtp_pass', ''),
            use_tls=bool(section.get('use_tls', True)),
            from_email=section.get('from_email', '') or '',
            to_email=env_override('NOTIFICATION_EMAIL', section, 'to_email', DEFAULT_RECIPIENT),
            timeout=int(section.get('timeout', 30)),
        )


@dataclass
class SlackConfig:
    """Slack Webhook 通知配置"""

    webhook_url: str = ''
    timeout: int = 10  # 秒

    @property
    def enabled(self) -> bool:
        """配置了真实的 Webhook URL（非占位符）时才启用"""
        return bool(self.webhook_url) and self.webhook_url != SLACK_WEBHOOK_PLACEHOLDER

    @classmethod
    def from_config(cls) -> 'SlackConfig':
        """从配置文件和环境变量创建 Slack 配置"""
        section = base_config.SlackSection
        return cls(
            webhook_url=env_override('SLACK_WEBHOOK_URL', section, 'webhook_url', ''),
            timeout=int(section.get('timeout', 10)),
        )


@dataclass
class MonitorConfig:
    """监控配置类 - 集中管理所有配置参数"""

    # 基础连接配置
    chain_name: str = 'sepolia'
    rpc_url: str = ''
    contract_address: str = ''

    # 日志轮询配置
    poll_interval: float = 5.0  # 秒
    max_block_range: int = 500  # 单次 get_logs 的最大区块跨度
    cache_ttl: float = 1.5  # 区块号缓存时间
    token_decimals: int = 18

    # 统计日志间隔（秒）
    stats_log_interval: int = 300

    email: EmailConfig = field(default_factory=EmailConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)

    def missing_fields(self) -> List[str]:
        """返回缺失的必需配置项"""
        missing = []
        if not self.rpc_url:
            missing.append('rpc_url')
        if not self.contract_address:
            missing.append('contract_address')
        return missing

    def validate(self) -> None:
        """
        校验必需配置

        Raises:
            ValueError: 合约地址或 RPC 地址未配置时抛出
        """
        missing = self.missing_fields()
        if missing:
            raise ValueError(f"缺少必需配置: {', '.join(missing)}")

    def to_dict(self) -> Dict:
        """转换为字典格式，便于序列化（不包含凭据）"""
        return {
            'chain_name': self.chain_name,
            'rpc_url': self.rpc_url,
            'contract_address': self.contract_address,
            'poll_interval': self.poll_interval,
            'max_block_range': self.max_block_range,
            'cache_ttl': self.cache_ttl,
            'token_decimals': self.token_decimals,
            'stats_log_interval': self.stats_log_interval,
            'email_recipient': self.email.to_email,
            'smtp_host': self.email.smtp_host,
            'slack_enabled': self.slack.enabled,
        }

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> 'MonitorConfig':
        """通过配置文件（以及环境变量）创建监控配置实例

        Args:
            config_path: 配置文件路径，提供时重新加载配置并刷新日志配置

        Returns:
            MonitorConfig: 配置实例
        """
        if config_path:
            base_config.reload_config(config_path)
            configure_logging()

        section = base_config.MonitorSection
        return cls(
            chain_name=section.get('chain_name', 'sepolia'),
            rpc_url=env_override('ETHEREUM_RPC_URL', section, 'rpc_url', ''),
            contract_address=env_override('BOND_CONTRACT_ADDRESS', section, 'contract_address', ''),
            poll_interval=float(section.get('poll_interval', 5.0)),
            max_block_range=int(section.get('max_block_range', 500)),
            cache_ttl=float(section.get('cache_ttl', 1.5)),
            token_decimals=int(section.get('token_decimals', 18)),
            stats_log_interval=int(section.get('stats_log_interval', 300)),
            email=EmailConfig.from_config(),
            slack=SlackConfig.from_config(),
        )
