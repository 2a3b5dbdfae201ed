"""
Command-line entry points under scripts/.
"""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest

from borrowdesk.core import dao
from borrowdesk.core.clock import FixedClock

from conftest import NOW

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


def load_script(name):
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunApi:

    @pytest.fixture
    def run_api(self):
        return load_script("run_api")

    def test_reload_off_by_default(self, run_api, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        with patch("sys.argv", ["run_api.py"]), patch.object(run_api.uvicorn, "run") as serve:
            run_api.main()

        serve.assert_called_once_with("borrowdesk.api.main:app", host="127.0.0.1", port=8000, reload=False)

    def test_reload_flag(self, run_api):
        with patch("sys.argv", ["run_api.py", "--reload", "--port", "9000"]), \
             patch.object(run_api.uvicorn, "run") as serve:
            run_api.main()

        assert serve.call_args.kwargs["reload"] is True
        assert serve.call_args.kwargs["port"] == 9000


class TestNotifyBorrowers:

    def test_run_in_progress_exits_nonzero(self, capsys):
        notify = load_script("notify_borrowers")
        dao.acquire_job_lock("borrower_notifications", "heartbeat", NOW, 1800)

        with patch("sys.argv", ["notify_borrowers.py"]), \
             patch("borrowdesk.core.notifications.SystemClock", return_value=FixedClock(NOW)):
            assert notify.main() == 1

        assert "already running" in capsys.readouterr().err

    def test_dry_run_report(self, capsys):
        notify = load_script("notify_borrowers")

        with patch("sys.argv", ["notify_borrowers.py", "--dry-run"]), \
             patch("borrowdesk.core.notifications.SystemClock", return_value=FixedClock(NOW)):
            assert notify.main() == 0

        out = capsys.readouterr().out
        assert "Found 0 overdue item(s)" in out
        assert "[DRY RUN]" in out
