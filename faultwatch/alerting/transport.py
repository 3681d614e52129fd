"""Mail transports: SMTP and sendmail delivery of alert emails."""

from __future__ import annotations

import abc
import smtplib
import subprocess
from collections.abc import Iterable
from email.message import EmailMessage
from email.utils import formataddr

import structlog

from faultwatch.core.config import AlertConfig, MailConfig
from faultwatch.core.exceptions import TransportError

logger = structlog.get_logger(__name__)


def _unique_addresses(recipients: Iterable[str]) -> list[str]:
    addresses: list[str] = []
    for address in recipients:
        if not isinstance(address, str) or not address.strip():
            continue
        normalized = address.strip().lower()
        if normalized not in addresses:
            addresses.append(normalized)
    return addresses


class MailTransport(abc.ABC):
    """Base class for alert email delivery.

    ``send`` reports delivery failure by returning False and leaving the
    detail in ``error_info``; the detail starts with the configured
    failure marker so that alerting about it can be recognised and
    refused.
    """

    def __init__(
        self,
        from_email: str,
        from_name: str = "",
        failure_marker: str = "",
    ) -> None:
        self._from_email = from_email
        self._from_name = from_name
        self._failure_marker = failure_marker
        self._error_info: str | None = None

    @property
    def error_info(self) -> str | None:
        """Detail of the last failed send, None after a success."""
        return self._error_info

    def send(self, subject: str, body: str, recipients: Iterable[str]) -> bool:
        """Deliver a plain-text email. Returns True on success.

        Raises:
            TransportError: if no usable recipient address was given.
        """
        addresses = _unique_addresses(recipients)
        if not addresses:
            raise TransportError("No valid email(s) provided")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((self._from_name, self._from_email))
        msg["To"] = ", ".join(addresses)
        msg["Return-Path"] = self._from_email
        msg.set_content(body)

        try:
            self._deliver(msg, addresses)
        except (OSError, smtplib.SMTPException, subprocess.SubprocessError, TransportError) as exc:
            self._error_info = (
                f"{self._failure_marker}: {exc}\n"
                f"subject: {subject}\n"
                f"body: {body}\n"
                f"to: {' '.join(addresses)}\n"
                f"from: {self._from_email}"
            )
            logger.warning(
                "alert_send_failed",
                transport=type(self).__name__,
                error=str(exc),
            )
            return False

        self._error_info = None
        return True

    @abc.abstractmethod
    def _deliver(self, msg: EmailMessage, addresses: list[str]) -> None:
        """Hand the message to the delivery mechanism; raise on failure."""


class SmtpTransport(MailTransport):
    """Delivers through an authenticated SMTP server (STARTTLS by default)."""

    def __init__(
        self,
        config: MailConfig,
        from_email: str,
        from_name: str = "",
        failure_marker: str = "",
    ) -> None:
        super().__init__(from_email, from_name, failure_marker)
        self._host = config.host
        self._port = config.port or 587
        self._username = config.username
        self._password = config.password.get_secret_value()
        self._use_tls = config.use_tls
        self._timeout = config.timeout_secs

    def _deliver(self, msg: EmailMessage, addresses: list[str]) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
            if self._use_tls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password)
            smtp.send_message(msg, from_addr=self._from_email, to_addrs=addresses)


class SendmailTransport(MailTransport):
    """Pipes the message to a local sendmail-compatible binary."""

    def __init__(
        self,
        config: MailConfig,
        from_email: str,
        from_name: str = "",
        failure_marker: str = "",
    ) -> None:
        super().__init__(from_email, from_name, failure_marker)
        self._sendmail_path = config.sendmail_path
        self._timeout = config.timeout_secs

    def _deliver(self, msg: EmailMessage, addresses: list[str]) -> None:
        result = subprocess.run(
            [self._sendmail_path, "-t", "-i", "-f", self._from_email],
            input=msg.as_bytes(),
            capture_output=True,
            timeout=self._timeout,
            check=False,
        )
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise TransportError(f"sendmail exited with {result.returncode}: {stderr[:200]}")


def build_transport(config: AlertConfig) -> MailTransport | None:
    """Transport for the alert config, or None when alerting is disabled.

    Alerts are sent from, and to, the configured recipient address.
    """
    if not config.enabled or not config.recipient:
        return None
    if config.mail.protocol == "sendmail":
        return SendmailTransport(
            config.mail,
            from_email=config.recipient,
            from_name=config.from_name,
            failure_marker=config.failure_marker,
        )
    return SmtpTransport(
        config.mail,
        from_email=config.recipient,
        from_name=config.from_name,
        failure_marker=config.failure_marker,
    )
