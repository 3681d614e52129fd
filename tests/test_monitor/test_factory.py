"""Tests for create_fault_monitor wiring."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from faultwatch.alerting.transport import MailTransport
from faultwatch.core.config import Settings
from faultwatch.core.host import HostEnvironment
from faultwatch.core.types import Disposition
from faultwatch.monitor.factory import create_fault_monitor
from faultwatch.monitor.monitor import FATAL_EXIT_CODE, FaultMonitor

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    data: dict[str, object] = {"error_log": {"path": str(tmp_path / "faults.log")}}
    data.update(overrides)
    return Settings(**data)  # type: ignore[arg-type]


def _alerts(tmp_path: Path) -> dict[str, object]:
    return {
        "enabled": True,
        "recipient": "ops@example.com",
        "window_store_path": str(tmp_path / "window.txt"),
        "mail": {"protocol": "sendmail"},
    }


def _batch() -> HostEnvironment:
    return HostEnvironment(interactive=False, hostname="web1", program="job.py", clock=lambda: NOW)


class TestCreateFaultMonitor:
    def test_returns_monitor(self, tmp_path: Path) -> None:
        monitor = create_fault_monitor(_settings(tmp_path), host=_batch(), output=io.StringIO())
        assert isinstance(monitor, FaultMonitor)
        assert monitor.dispatcher.host.program == "job.py"

    def test_default_host_is_batch(self, tmp_path: Path) -> None:
        monitor = create_fault_monitor(_settings(tmp_path))
        assert monitor.dispatcher.host.interactive is False

    def test_log_path_and_budget(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, error_log={"path": str(tmp_path / "f.log"), "max_chars": 250})
        monitor = create_fault_monitor(settings, host=_batch(), output=io.StringIO())
        assert monitor.dispatcher.sink.path == tmp_path / "f.log"
        assert monitor.dispatcher.sink.max_chars == 250

    def test_report_mask_applied(self, tmp_path: Path) -> None:
        monitor = create_fault_monitor(
            _settings(tmp_path, report_mask=1), host=_batch(), output=io.StringIO()
        )
        assert monitor.report("ignored") is None

    def test_exit_fn_passed_through(self, tmp_path: Path) -> None:
        exit_fn = MagicMock()
        monitor = create_fault_monitor(
            _settings(tmp_path), host=_batch(), output=io.StringIO(), exit_fn=exit_fn
        )
        monitor.on_exception(RuntimeError("fatal"))
        exit_fn.assert_called_once_with(FATAL_EXIT_CODE)

    def test_injected_transport_used(self, tmp_path: Path) -> None:
        transport = MagicMock(spec=MailTransport)
        transport.send.return_value = True
        transport.error_info = None
        monitor = create_fault_monitor(
            _settings(tmp_path, alerts=_alerts(tmp_path)),
            host=_batch(),
            transport=transport,
            output=io.StringIO(),
        )
        outcome = monitor.report("disk almost full")
        assert outcome is not None
        assert outcome.alert_sent is True
        transport.send.assert_called_once()

    def test_configured_transport_built(self, tmp_path: Path) -> None:
        with patch("faultwatch.monitor.factory.build_transport") as mock_build:
            mock_build.return_value = None
            create_fault_monitor(_settings(tmp_path, alerts=_alerts(tmp_path)), host=_batch())
        mock_build.assert_called_once()

    def test_interactive_live_redirect(self, tmp_path: Path) -> None:
        host = HostEnvironment.for_request("shop.example.com", "GET", "/cart", clock=lambda: NOW)
        monitor = create_fault_monitor(
            _settings(tmp_path, is_live=True, error_page="/error.html"), host=host
        )
        outcome = monitor.on_exception(RuntimeError("fatal"))
        assert outcome is not None
        assert outcome.disposition == Disposition.REDIRECT
        assert outcome.location == "/error.html"
