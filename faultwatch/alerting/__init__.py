"""Email alerting under a rolling-hour budget."""

from faultwatch.alerting.rate_limiter import AlertRateLimiter
from faultwatch.alerting.transport import (
    MailTransport,
    SendmailTransport,
    SmtpTransport,
    build_transport,
)

__all__ = [
    "AlertRateLimiter",
    "MailTransport",
    "SendmailTransport",
    "SmtpTransport",
    "build_transport",
]
