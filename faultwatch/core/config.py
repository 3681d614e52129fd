"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr, field_validator, model_validator

from faultwatch.core.exceptions import ConfigError
from faultwatch.core.types import ALL_KINDS

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

MAX_ERROR_LOG_CHARS_DEFAULT = 7900
MIN_ERROR_LOG_CHARS = 200

FATAL_HTML_DEFAULT = (
    "<br>Our apologies, an error has occurred. We will fix the problem asap.<br>"
)

ALERT_FAILURE_MARKER_DEFAULT = "Email Send Failure"


class ErrorLogConfig(BaseModel):
    """Durable fault log file."""

    path: Path
    max_chars: int = MAX_ERROR_LOG_CHARS_DEFAULT

    @field_validator("max_chars")
    @classmethod
    def _check_floor(cls, v: int) -> int:
        if v < MIN_ERROR_LOG_CHARS:
            raise ValueError(
                f"max_chars must be at least {MIN_ERROR_LOG_CHARS}, got {v}"
            )
        return v


class MailConfig(BaseModel):
    """Outbound mail transport configuration."""

    protocol: Literal["smtp", "sendmail"] = "smtp"
    host: str = ""
    port: int | None = None
    username: str = ""
    password: SecretStr = SecretStr("")
    use_tls: bool = True
    timeout_secs: float = 10.0
    sendmail_path: str = "/usr/sbin/sendmail"


class AlertConfig(BaseModel):
    """Email alerting with a rolling-hour budget."""

    enabled: bool = False
    recipient: str = ""
    window_store_path: Path | None = None
    failure_marker: str = ALERT_FAILURE_MARKER_DEFAULT
    max_per_hour: int = 10
    from_name: str = "website"
    mail: MailConfig = MailConfig()

    @model_validator(mode="after")
    def _check_required_when_enabled(self) -> AlertConfig:
        if not self.enabled:
            return self
        missing = []
        if not self.recipient:
            missing.append("recipient")
        if self.window_store_path is None:
            missing.append("window_store_path")
        if self.mail.protocol == "smtp":
            if not self.mail.host:
                missing.append("mail.host")
            if self.mail.port is None:
                missing.append("mail.port")
            if not self.mail.username:
                missing.append("mail.username")
            if not self.mail.password.get_secret_value():
                missing.append("mail.password")
        if missing:
            raise ValueError(
                "alerts enabled but missing: " + ", ".join(missing)
            )
        return self


class LoggingConfig(BaseModel):
    """Operational logging of faultwatch itself."""

    level: str = "INFO"
    format: Literal["json", "console"] = "json"


class Settings(BaseModel):
    """Root settings container."""

    is_live: bool = False
    echo_errors_dev: bool = True
    error_page: str | None = None
    fatal_html: str = FATAL_HTML_DEFAULT
    report_mask: int = ALL_KINDS
    hide_third_party_frames: bool = False
    error_log: ErrorLogConfig
    alerts: AlertConfig = AlertConfig()
    logging: LoggingConfig = LoggingConfig()


class Policy(BaseModel):
    """Immutable runtime policy derived once from Settings.

    Passed explicitly to every pipeline component; nothing reads
    configuration from module state.
    """

    model_config = ConfigDict(frozen=True)

    log_path: Path
    max_log_chars: int = MAX_ERROR_LOG_CHARS_DEFAULT
    echo_in_output: bool = False
    fatal_redirect: str | None = None
    fatal_html: str = FATAL_HTML_DEFAULT
    report_mask: int = ALL_KINDS
    hide_third_party_frames: bool = False
    alerts_enabled: bool = False
    recipient: str | None = None
    window_store_path: Path | None = None
    alert_failure_marker: str = ALERT_FAILURE_MARKER_DEFAULT
    max_alerts_per_hour: int = 10


def build_policy(settings: Settings) -> Policy:
    """Resolve the runtime policy from loaded settings.

    Output echo is only ever enabled off-live; the fatal redirect only
    applies on live servers.
    """
    alerts = settings.alerts
    return Policy(
        log_path=settings.error_log.path,
        max_log_chars=settings.error_log.max_chars,
        echo_in_output=not settings.is_live and settings.echo_errors_dev,
        fatal_redirect=settings.error_page if settings.is_live else None,
        fatal_html=settings.fatal_html,
        report_mask=settings.report_mask,
        hide_third_party_frames=settings.hide_third_party_frames,
        alerts_enabled=alerts.enabled,
        recipient=alerts.recipient or None,
        window_store_path=alerts.window_store_path,
        alert_failure_marker=alerts.failure_marker,
        max_alerts_per_hour=alerts.max_per_hour,
    )


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance. A fresh instance on every call.

    Raises:
        ConfigError: if the file is not valid YAML or not a mapping.
        pydantic.ValidationError: if required values are missing or invalid.
    """
    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if isinstance(raw, dict):
            data = raw
        elif raw is not None:
            raise ConfigError(f"{config_path} must contain a mapping, got {type(raw).__name__}")

    return Settings(**data)
