"""Tests for SMTP and sendmail alert transports (no network)."""

from __future__ import annotations

import smtplib
import subprocess
from unittest.mock import patch

import pytest

from faultwatch.alerting.transport import (
    SendmailTransport,
    SmtpTransport,
    build_transport,
)
from faultwatch.core.config import AlertConfig, MailConfig
from faultwatch.core.exceptions import TransportError


def _mail(**overrides: object) -> MailConfig:
    defaults: dict[str, object] = {
        "host": "smtp.example.com",
        "port": 2525,
        "username": "ops@example.com",
        "password": "s3cret",
    }
    defaults.update(overrides)
    return MailConfig(**defaults)  # type: ignore[arg-type]


def _smtp(**overrides: object) -> SmtpTransport:
    return SmtpTransport(
        _mail(**overrides),
        from_email="ops@example.com",
        from_name="website",
        failure_marker="Email Send Failure",
    )


# ── SMTP ────────────────────────────────────────────────────────


class TestSmtpTransport:
    def test_send_success(self) -> None:
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            server = mock_cls.return_value.__enter__.return_value
            ok = _smtp().send("web1 Error Notification", "body text", ["OPS@example.com"])

        assert ok is True
        mock_cls.assert_called_once_with("smtp.example.com", 2525, timeout=10.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("ops@example.com", "s3cret")
        msg = server.send_message.call_args.args[0]
        assert msg["Subject"] == "web1 Error Notification"
        assert msg["To"] == "ops@example.com"
        assert msg["From"] == "website <ops@example.com>"
        assert msg["Return-Path"] == "ops@example.com"
        assert msg.get_content().strip() == "body text"

    def test_no_tls(self) -> None:
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            server = mock_cls.return_value.__enter__.return_value
            _smtp(use_tls=False).send("s", "b", ["a@example.com"])
        server.starttls.assert_not_called()

    def test_default_port(self) -> None:
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            _smtp(port=None).send("s", "b", ["a@example.com"])
        assert mock_cls.call_args.args[1] == 587

    def test_recipients_deduplicated(self) -> None:
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            server = mock_cls.return_value.__enter__.return_value
            _smtp().send("s", "b", ["A@example.com", " a@example.com ", "", "b@example.com"])
        assert server.send_message.call_args.kwargs["to_addrs"] == ["a@example.com", "b@example.com"]

    def test_failure_sets_error_info(self) -> None:
        transport = _smtp()
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            server = mock_cls.return_value.__enter__.return_value
            server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
            ok = transport.send("subj", "body", ["a@example.com"])

        assert ok is False
        assert transport.error_info is not None
        assert transport.error_info.startswith("Email Send Failure: ")
        assert "subject: subj" in transport.error_info
        assert "body: body" in transport.error_info
        assert "to: a@example.com" in transport.error_info
        assert "from: ops@example.com" in transport.error_info

    def test_connection_refused(self) -> None:
        transport = _smtp()
        with patch(
            "faultwatch.alerting.transport.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            assert transport.send("s", "b", ["a@example.com"]) is False
        assert "refused" in (transport.error_info or "")

    def test_success_clears_error_info(self) -> None:
        transport = _smtp()
        with patch("faultwatch.alerting.transport.smtplib.SMTP", side_effect=OSError("down")):
            transport.send("s", "b", ["a@example.com"])
        with patch("faultwatch.alerting.transport.smtplib.SMTP"):
            transport.send("s", "b", ["a@example.com"])
        assert transport.error_info is None

    def test_no_valid_recipient_raises(self) -> None:
        with patch("faultwatch.alerting.transport.smtplib.SMTP") as mock_cls:
            with pytest.raises(TransportError, match="No valid email"):
                _smtp().send("s", "b", ["", "   "])
        mock_cls.assert_not_called()


# ── Sendmail ────────────────────────────────────────────────────


class TestSendmailTransport:
    def _transport(self) -> SendmailTransport:
        return SendmailTransport(
            MailConfig(protocol="sendmail", sendmail_path="/usr/bin/sendmail"),
            from_email="ops@example.com",
            failure_marker="Email Send Failure",
        )

    def test_pipes_message(self) -> None:
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"", stderr=b"")
        with patch("faultwatch.alerting.transport.subprocess.run", return_value=done) as mock_run:
            ok = self._transport().send("subj", "body", ["a@example.com"])

        assert ok is True
        argv = mock_run.call_args.args[0]
        assert argv == ["/usr/bin/sendmail", "-t", "-i", "-f", "ops@example.com"]
        assert b"Subject: subj" in mock_run.call_args.kwargs["input"]

    def test_nonzero_exit(self) -> None:
        failed = subprocess.CompletedProcess(args=[], returncode=75, stdout=b"", stderr=b"queue full")
        transport = self._transport()
        with patch("faultwatch.alerting.transport.subprocess.run", return_value=failed):
            assert transport.send("s", "b", ["a@example.com"]) is False
        assert "sendmail exited with 75: queue full" in (transport.error_info or "")

    def test_timeout(self) -> None:
        transport = self._transport()
        with patch(
            "faultwatch.alerting.transport.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="sendmail", timeout=10),
        ):
            assert transport.send("s", "b", ["a@example.com"]) is False

    def test_missing_binary(self) -> None:
        transport = self._transport()
        with patch(
            "faultwatch.alerting.transport.subprocess.run",
            side_effect=FileNotFoundError("no sendmail"),
        ):
            assert transport.send("s", "b", ["a@example.com"]) is False


# ── Factory ─────────────────────────────────────────────────────


class TestBuildTransport:
    def test_disabled(self) -> None:
        assert build_transport(AlertConfig()) is None

    def test_smtp(self) -> None:
        cfg = AlertConfig(
            enabled=True,
            recipient="ops@example.com",
            window_store_path="/tmp/w.txt",
            mail=_mail(),
        )
        assert isinstance(build_transport(cfg), SmtpTransport)

    def test_sendmail(self) -> None:
        cfg = AlertConfig(
            enabled=True,
            recipient="ops@example.com",
            window_store_path="/tmp/w.txt",
            mail=MailConfig(protocol="sendmail"),
        )
        assert isinstance(build_transport(cfg), SendmailTransport)
