import asyncio
import logging

import pytest

from tutor_diagnostics import cli, logging_config
from tutor_diagnostics.backend_supervisor_helpers import LoggingDialogPresenter
from tutor_diagnostics.context import DiagnosticsContext
from tutor_diagnostics.lock_preflight import run_preflight
from tutor_diagnostics.service_runner import serve_diagnostics
from tests.helpers.fake_http import FakeSession, session_factory_for
from tests.helpers.preference_fakes import MemoryPreferenceStore


async def _port_free(_host, _port):
    return False


class TestCommandLine:
    """Tests for the argparse front end."""

    def test_run_requires_backend_entry(self):
        parser = cli.build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["run"])

        args = parser.parse_args(["run", "--backend-entry", "backend/main.py"])
        assert args.command == "run"
        assert str(args.backend_entry) == "backend/main.py"

    def test_preflight_prints_summary(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setenv("LLM_TUTOR_DATA_DIR", str(tmp_path))
        monkeypatch.setattr(cli, "setup_logging", lambda **_kwargs: None)

        async def _preflight(settings):
            return await run_preflight(settings, port_probe=_port_free)

        monkeypatch.setattr(cli, "run_preflight", _preflight)

        assert cli.main(["preflight"]) == 0
        assert "Backend lock is clear." in capsys.readouterr().out

    def test_invalid_configuration_exits_nonzero(self, monkeypatch, capsys):
        monkeypatch.setenv("LLM_TUTOR_MODE", "staging")

        assert cli.main(["preflight"]) == 1
        assert "LLM_TUTOR_MODE" in capsys.readouterr().err

    def test_run_hands_entry_to_service(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LLM_TUTOR_DATA_DIR", str(tmp_path))
        calls = []
        monkeypatch.setattr(
            cli,
            "run_diagnostics_service",
            lambda settings, *, resolve_backend_entry: calls.append((settings, resolve_backend_entry())),
        )

        assert cli.main(["run", "--backend-entry", str(tmp_path / "main.py")]) == 0
        assert calls[0][1] == tmp_path / "main.py"
        assert calls[0][0].data_directory == tmp_path


class TestDiagnosticsContext:
    """Tests for wiring and serving the subsystem."""

    @pytest.mark.asyncio
    async def test_context_wires_components_and_serves_until_stopped(self, diagnostics_settings):
        session = FakeSession()
        context = DiagnosticsContext.create(
            diagnostics_settings,
            resolve_backend_entry=lambda: None,
            dialogs=LoggingDialogPresenter(),
            store=MemoryPreferenceStore(),
            session_factory=session_factory_for(session),
            port_probe=_port_free,
        )
        stop_event = asyncio.Event()

        serving = asyncio.create_task(serve_diagnostics(context, stop_event))
        await asyncio.sleep(0.05)
        assert context.vault.is_bootstrapped is True
        assert context.manager.get_preferences_record() is not None
        stop_event.set()
        await asyncio.wait_for(serving, timeout=5)

        assert context.supervisor.lock_path == diagnostics_settings.lock_path
        assert context.safe_storage.is_outage_active() is False
        assert session.closed is True


def test_setup_logging_writes_service_log(tmp_path, monkeypatch):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    root.handlers = []
    monkeypatch.delenv("LOG_APPEND", raising=False)
    try:
        logging_config.setup_logging("tutor_test", log_directory=tmp_path)
        logging.getLogger("tutor_diagnostics.test").info("hello log")
        for handler in root.handlers:
            handler.flush()

        assert "hello log" in (tmp_path / "tutor_test.log").read_text()
        assert logging.getLogger("aiohttp").level == logging.WARNING
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved_handlers
        root.setLevel(saved_level)
