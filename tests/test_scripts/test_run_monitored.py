"""Tests for scripts/run_monitored.py."""

from __future__ import annotations

import argparse
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from unittest.mock import patch

import yaml

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "run_monitored.py"


def _load() -> ModuleType:
    spec = importlib.util.spec_from_file_location("run_monitored", SCRIPT)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _args(config: Path, script: Path, *script_args: str) -> argparse.Namespace:
    return argparse.Namespace(
        config=str(config),
        log_level="WARNING",
        script=str(script),
        script_args=list(script_args),
    )


class TestRunMonitored:
    def test_invalid_config(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text("- not\n- a mapping\n")
        module = _load()
        assert module.run(_args(config, tmp_path / "job.py")) == 2

    def test_runs_script_with_hooks(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text(yaml.dump({"error_log": {"path": str(tmp_path / "faults.log")}}))
        job = tmp_path / "job.py"
        marker = tmp_path / "ran.txt"
        job.write_text(
            "import sys\n"
            f"with open({str(marker)!r}, 'w') as f:\n"
            "    f.write(' '.join(sys.argv[1:]))\n"
        )
        module = _load()
        saved_argv = sys.argv
        try:
            with patch.object(module, "install_hooks") as mock_install:
                code = module.run(_args(config, job, "--day", "mon"))
        finally:
            sys.argv = saved_argv
        assert code == 0
        assert marker.read_text() == "--day mon"
        mock_install.assert_called_once()
