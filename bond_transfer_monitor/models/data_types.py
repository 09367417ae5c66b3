"""
监控数据类型定义

定义监控过程中使用的各种数据结构：统计、通知记录和监控状态
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Any, Optional


class TransferStatus(str, Enum):
    """转账结果"""
    SUCCESSFUL = "SUCCESSFUL"
    BLOCKED = "BLOCKED"


class Severity(str, Enum):
    """合规违规严重程度"""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass
class ContractEvent:
    """合约事件 - 由事件订阅器解码后投递给处理函数"""
    name: str
    args: Dict[str, Any]
    transaction_hash: str
    block_number: int
    log_index: int = 0

    def __str__(self) -> str:
        return (f"ContractEvent(name={self.name}, "
                f"tx={self.transaction_hash[:10]}..., block={self.block_number})")


@dataclass
class MonitoringStats:
    """监控统计数据类"""
    total_transfers: int = 0
    successful_transfers: int = 0
    blocked_transfers: int = 0
    last_event_time: Optional[float] = None

    def record_successful(self, event_time: float) -> None:
        """记录一笔成功转账"""
        self.total_transfers += 1
        self.successful_transfers += 1
        self.last_event_time = event_time

    def record_blocked(self, event_time: float) -> None:
        """记录一笔被拦截的转账"""
        self.total_transfers += 1
        self.blocked_transfers += 1
        self.last_event_time = event_time

    def copy(self) -> 'MonitoringStats':
        return replace(self)


@dataclass
class TransferRecord:
    """转账通知记录"""
    from_address: str
    to_address: str
    amount: str
    transaction_hash: str
    block_number: int
    timestamp: float
    contract_address: str
    status: TransferStatus
    reason: str

    @property
    def is_blocked(self) -> bool:
        return self.status == TransferStatus.BLOCKED


@dataclass
class ComplianceViolationRecord:
    """合规违规通知记录"""
    account: str
    violation_type: str
    details: str
    transaction_hash: str
    block_number: int
    timestamp: float
    contract_address: str
    severity: Severity


@dataclass
class OverduePaymentRecord:
    """逾期付息通知记录（暂未接入监控器）"""
    payment_id: str
    due_date: int  # 秒级时间戳
    amount: str
    days_overdue: int
    grace_period: int  # 小时
    contract_address: str


@dataclass
class PaymentEnforcedRecord:
    """强制付息完成通知记录（暂未接入监控器）"""
    payment_id: str
    amount: str
    transaction_hash: str
    timestamp: float
    contract_address: str


@dataclass
class MonitoringAlert:
    """通用监控告警"""
    alert_type: str
    title: str
    message: str
    contract_address: str
    timestamp: float


@dataclass
class MonitorStatus:
    """监控状态数据类（只读快照）"""
    is_monitoring: bool = False
    contract_address: str = ''
    stats: MonitoringStats = field(default_factory=MonitoringStats)
