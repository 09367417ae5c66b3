"""
邮件通知服务测试

SMTP 连接通过 mock 替换，不发起真实网络请求
"""

import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from bond_transfer_monitor.config.monitor_config import DEFAULT_RECIPIENT, EmailConfig
from bond_transfer_monitor.models.data_types import (
    ComplianceViolationRecord,
    OverduePaymentRecord,
    PaymentEnforcedRecord,
    Severity,
    TransferRecord,
    TransferStatus,
)
from bond_transfer_monitor.services.email_service import EmailService
from bond_transfer_monitor.tests.fakes import CONTRACT_ADDRESS, RECIPIENT, SENDER

SMTP_PATH = "bond_transfer_monitor.services.email_service.smtplib.SMTP"
NOW = 1_700_000_000.0


def _transfer(status: TransferStatus = TransferStatus.SUCCESSFUL,
              reason: str = "Transfer successful") -> TransferRecord:
    return TransferRecord(
        from_address=SENDER,
        to_address=RECIPIENT,
        amount="10",
        transaction_hash="0xfeed",
        block_number=1234,
        timestamp=NOW,
        contract_address=CONTRACT_ADDRESS,
        status=status,
        reason=reason,
    )


def _violation(details: str = "daily cap") -> ComplianceViolationRecord:
    return ComplianceViolationRecord(
        account=SENDER,
        violation_type="TRANSFER_LIMIT_EXCEEDED",
        details=details,
        transaction_hash="0xccc",
        block_number=102,
        timestamp=NOW,
        contract_address=CONTRACT_ADDRESS,
        severity=Severity.MEDIUM,
    )


def _overdue() -> OverduePaymentRecord:
    return OverduePaymentRecord(
        payment_id="PAY-7", due_date=int(NOW), amount="250", days_overdue=3,
        grace_period=72, contract_address=CONTRACT_ADDRESS,
    )


def _enforced() -> PaymentEnforcedRecord:
    return PaymentEnforcedRecord(
        payment_id="PAY-7", amount="250", transaction_hash="0xddd",
        timestamp=NOW, contract_address=CONTRACT_ADDRESS,
    )


def _smtp_server() -> MagicMock:
    """模拟 SMTP 连接，支持 with 语句"""
    server = MagicMock()
    server.__enter__.return_value = server
    server.__exit__.return_value = False
    server.sendmail.return_value = {}
    return server


@pytest.fixture
def email_config() -> EmailConfig:
    return EmailConfig(
        smtp_host="smtp.test.local",
        smtp_port=2525,
        smtp_user="monitor@test.local",
        smtp_pass="secret",
        to_email="ops@test.local",
    )


@pytest.fixture
def service(email_config) -> EmailService:
    return EmailService(email_config)


# (模板方法名, 记录构造函数)
TEMPLATES = [
    ("send_transfer_notification_email", _transfer),
    ("send_blocked_transfer_email", lambda: _transfer(TransferStatus.BLOCKED, "Transfer blocked by contract")),
    ("send_compliance_violation_email", _violation),
    ("send_overdue_payment_email", _overdue),
    ("send_payment_enforced_email", _enforced),
]


class TestConfig:

    def test_defaults(self):
        config = EmailConfig(smtp_user="bot@example.com")
        assert config.smtp_host == "smtp.gmail.com"
        assert config.smtp_port == 587
        assert config.from_email == "bot@example.com"
        assert config.to_email == DEFAULT_RECIPIENT

    def test_empty_recipient_falls_back_to_default(self):
        service = EmailService(EmailConfig(to_email=""))
        assert service.to_email == "compliance@financial-institution.com"


class TestTransport:
    """SMTP 发送"""

    @pytest.mark.asyncio
    async def test_send_email_success(self, service):
        server = _smtp_server()
        with patch(SMTP_PATH, return_value=server) as smtp_cls:
            result = await service.send_email("subject", "<p>body</p>")

        assert result["success"] is True
        assert result["recipients"] == ["ops@test.local"]
        smtp_cls.assert_called_once_with("smtp.test.local", 2525, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("monitor@test.local", "secret")

        from_addr, to_addrs, _ = server.sendmail.call_args.args
        assert from_addr == "monitor@test.local"
        assert to_addrs == ["ops@test.local"]
        assert service.total_sent == 1
        assert service.total_failed == 0

    @pytest.mark.asyncio
    async def test_login_skipped_without_credentials(self):
        service = EmailService(EmailConfig(smtp_host="relay.local", use_tls=False))
        server = _smtp_server()
        with patch(SMTP_PATH, return_value=server):
            result = await service.send_email("subject", "<p>body</p>")

        assert result["success"] is True
        server.starttls.assert_not_called()
        server.login.assert_not_called()

    @pytest.mark.asyncio
    async def test_authentication_error_returns_failure(self, service):
        server = _smtp_server()
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with patch(SMTP_PATH, return_value=server):
            result = await service.send_email("subject", "<p>body</p>")

        assert result["success"] is False
        assert "bad credentials" in result["error"]
        server.close.assert_called_once()
        assert service.total_failed == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method_name,build_record", TEMPLATES)
    async def test_unreachable_relay_never_raises(self, service, method_name, build_record):
        with patch(SMTP_PATH, side_effect=ConnectionRefusedError("connection refused")):
            result = await getattr(service, method_name)(build_record())

        assert result == {"success": False, "error": "connection refused"}
        assert service.total_failed == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_failure(self, service):
        server = _smtp_server()
        server.sendmail.side_effect = ValueError("boom")
        with patch(SMTP_PATH, return_value=server):
            result = await service.send_email("subject", "<p>body</p>")

        assert result["success"] is False
        assert "boom" in result["error"]

    @pytest.mark.asyncio
    async def test_configuration_probe(self, service):
        server = _smtp_server()
        with patch(SMTP_PATH, return_value=server):
            assert await service.test_email_configuration() is True
        server.noop.assert_called_once()

        with patch(SMTP_PATH, side_effect=OSError("no route to host")):
            assert await service.test_email_configuration() is False


class TestTemplates:
    """邮件主题和正文"""

    @pytest.mark.asyncio
    async def test_successful_transfer(self, service):
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.send_transfer_notification_email(_transfer())

        subject, html = send.call_args.args
        assert subject == "🔄 TRANSFER SUCCESSFUL - Tokenized Bond"
        assert SENDER in html
        assert RECIPIENT in html
        assert "10 tokens" in html
        assert "0xfeed" in html
        assert "Block Reason" not in html
        assert CONTRACT_ADDRESS in html

    @pytest.mark.asyncio
    async def test_blocked_transfer_includes_reason(self, service):
        transfer = _transfer(TransferStatus.BLOCKED, "Transfer blocked by contract")
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.send_transfer_notification_email(transfer)

        subject, html = send.call_args.args
        assert subject == "🔄 TRANSFER BLOCKED - Tokenized Bond"
        assert "Block Reason" in html
        assert "Transfer blocked by contract" in html
        assert "#dc3545" in html

    @pytest.mark.asyncio
    async def test_compliance_violation(self, service):
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.send_compliance_violation_email(_violation())

        subject, html = send.call_args.args
        assert subject == "🚨 COMPLIANCE VIOLATION - Tokenized Bond"
        assert "TRANSFER_LIMIT_EXCEEDED" in html
        assert "MEDIUM" in html
        assert "daily cap" in html

    @pytest.mark.asyncio
    async def test_record_values_are_escaped(self, service):
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.send_compliance_violation_email(_violation(details="<script>x</script>"))

        _, html = send.call_args.args
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    @pytest.mark.asyncio
    async def test_payment_templates(self, service):
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.send_overdue_payment_email(_overdue())
            await service.send_payment_enforced_email(_enforced())

        overdue_subject, overdue_html = send.call_args_list[0].args
        enforced_subject, enforced_html = send.call_args_list[1].args
        assert overdue_subject.endswith("OVERDUE PAYMENT ALERT - Tokenized Bond")
        assert "3 days" in overdue_html
        assert "72 hours" in overdue_html
        assert enforced_subject == "✅ PAYMENT ENFORCED - Tokenized Bond"
        assert "0xddd" in enforced_html

    @pytest.mark.asyncio
    async def test_deliver_routes_by_record_type(self, service):
        with patch.object(service, "send_email", AsyncMock(return_value={"success": True})) as send:
            await service.deliver(_transfer())
            await service.deliver(_violation())

        subjects = [call.args[0] for call in send.call_args_list]
        assert subjects == [
            "🔄 TRANSFER SUCCESSFUL - Tokenized Bond",
            "🚨 COMPLIANCE VIOLATION - Tokenized Bond",
        ]
