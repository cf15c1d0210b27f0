import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from otp_service.features.verification.services.mail_transport import (
    ConsoleMailTransport,
    EmailMailTransport,
)
from otp_service.platform.config import Settings, settings
from otp_service.platform.services.email import EmailDeliveryError, send_email


class TestEmailMailTransport:
    """Test suite for the templated email transport"""

    def test_render_includes_code_and_expiry(self):
        transport = EmailMailTransport(ttl_minutes=5)

        html = transport.render("482913")

        assert "482913" in html
        assert "5 minutes" in html

    @pytest.mark.asyncio
    async def test_send_success(self):
        transport = EmailMailTransport(subject_line="Verify")

        with patch("otp_service.features.verification.services.mail_transport.send_email") as mock_send:
            result = await transport.send("user@example.com", "482913")

        assert result is True
        mock_send.assert_called_once()
        to_email, subject, body = mock_send.call_args.args
        assert to_email == "user@example.com"
        assert subject == "Verify"
        assert "482913" in body

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self):
        transport = EmailMailTransport()

        with patch(
            "otp_service.features.verification.services.mail_transport.send_email",
            side_effect=EmailDeliveryError("SMTP delivery failed"),
        ):
            result = await transport.send("user@example.com", "482913")

        assert result is False


class TestConsoleMailTransport:
    @pytest.mark.asyncio
    async def test_console_transport_logs_code(self, caplog):
        caplog.set_level("INFO")

        result = await ConsoleMailTransport().send("user@example.com", "482913")

        assert result is True
        assert "482913" in caplog.text


class TestSendEmail:
    """Test suite for relay delivery with SMTP fallback"""

    @pytest.fixture
    def relay_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_RELAY_URL", "https://relay.example.com/send")
        monkeypatch.setattr(settings, "EMAIL_RELAY_API_KEY", "relay-key")

    @pytest.fixture
    def no_relay_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_RELAY_URL", "")
        monkeypatch.setattr(settings, "EMAIL_RELAY_API_KEY", "")
        monkeypatch.setattr(settings, "MAIL_PORT", 587)

    def test_relay_used_when_configured(self, relay_settings):
        with patch("otp_service.platform.services.email.requests.post") as mock_post, patch(
            "otp_service.platform.services.email.smtplib.SMTP"
        ) as mock_smtp:
            mock_post.return_value = MagicMock(status_code=200)

            send_email("user@example.com", "Verify", "<p>482913</p>")

        mock_post.assert_called_once()
        assert mock_post.call_args.kwargs["headers"]["X-API-Key"] == "relay-key"
        assert mock_post.call_args.kwargs["json"]["to_email"] == "user@example.com"
        mock_smtp.assert_not_called()

    def test_relay_failure_falls_back_to_smtp(self, relay_settings):
        with patch(
            "otp_service.platform.services.email.requests.post",
            side_effect=requests.exceptions.ConnectionError("relay down"),
        ), patch("otp_service.platform.services.email.smtplib.SMTP") as mock_smtp:
            send_email("user@example.com", "Verify", "<p>482913</p>")

        server = mock_smtp.return_value.__enter__.return_value
        server.sendmail.assert_called_once()

    def test_smtp_without_relay(self, no_relay_settings):
        with patch("otp_service.platform.services.email.smtplib.SMTP") as mock_smtp:
            send_email("user@example.com", "Verify", "<p>482913</p>")

        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once()
        server.sendmail.assert_called_once()

    def test_smtp_failure_raises(self, no_relay_settings):
        with patch(
            "otp_service.platform.services.email.smtplib.SMTP",
            side_effect=smtplib.SMTPConnectError(421, "unavailable"),
        ):
            with pytest.raises(EmailDeliveryError):
                send_email("user@example.com", "Verify", "<p>482913</p>")

    def test_worker_timeouts_fit_inside_dispatch_timeout(self):
        """Relay plus SMTP fallback give up before the service stops waiting"""
        fields = Settings.model_fields
        relay_timeout = fields["EMAIL_RELAY_TIMEOUT"].default
        dispatch_timeout = fields["MAIL_DISPATCH_TIMEOUT_SECONDS"].default

        assert 2 * relay_timeout < dispatch_timeout

    def test_socket_timeouts_use_relay_timeout(self, relay_settings, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_RELAY_TIMEOUT", 3)
        monkeypatch.setattr(settings, "MAIL_PORT", 587)
        with patch(
            "otp_service.platform.services.email.requests.post",
            side_effect=requests.exceptions.Timeout("slow"),
        ) as mock_post, patch("otp_service.platform.services.email.smtplib.SMTP") as mock_smtp:
            send_email("user@example.com", "Verify", "<p>482913</p>")

        assert mock_post.call_args.kwargs["timeout"] == 3
        assert mock_smtp.call_args.kwargs["timeout"] == 3
