"""
通知渠道接口

邮件和 Slack 两个渠道实现同一组发送方法，监控器只依赖 deliver()
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from bond_transfer_monitor.models.data_types import (
    ComplianceViolationRecord,
    MonitoringAlert,
    OverduePaymentRecord,
    PaymentEnforcedRecord,
    TransferRecord,
)


def failure(error: str) -> Dict[str, Any]:
    """构造失败结果"""
    return {"success": False, "error": error}


class NotificationChannel(ABC):
    """通知渠道基类"""

    name = "channel"

    @abstractmethod
    async def send_transfer(self, record: TransferRecord) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def send_compliance_violation(self, record: ComplianceViolationRecord) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def send_overdue_payment(self, record: OverduePaymentRecord) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def send_payment_enforced(self, record: PaymentEnforcedRecord) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def test_configuration(self) -> bool:
        ...

    async def send_monitoring_alert(self, alert: MonitoringAlert) -> Dict[str, Any]:
        return failure(f"{self.name} 不支持通用告警")

    async def deliver(self, record: Any) -> Dict[str, Any]:
        """
        按记录类型选择发送方法

        Args:
            record: 通知记录

        Returns:
            Dict[str, Any]: 发送结果，包含 success 字段
        """
        if isinstance(record, TransferRecord):
            return await self.send_transfer(record)
        if isinstance(record, ComplianceViolationRecord):
            return await self.send_compliance_violation(record)
        if isinstance(record, OverduePaymentRecord):
            return await self.send_overdue_payment(record)
        if isinstance(record, PaymentEnforcedRecord):
            return await self.send_payment_enforced(record)
        if isinstance(record, MonitoringAlert):
            return await self.send_monitoring_alert(record)
        return failure(f"不支持的通知记录类型: {type(record).__name__}")
