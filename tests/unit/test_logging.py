"""Unit tests for ragcore.utils.logging."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest
import structlog

from ragcore.utils.logging import bind_request_context, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("openai", "httpx", "httpcore", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.NOTSET)


class TestConfigureLogging:
    def test_sdk_loggers_quieted_at_info(self) -> None:
        configure_logging("INFO")

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("openai").level == logging.WARNING

    def test_sdk_loggers_follow_debug(self) -> None:
        configure_logging("debug")
        assert logging.getLogger("aiosqlite").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO


class TestBindRequestContext:
    def test_binds_and_unbinds(self) -> None:
        with bind_request_context(user_id="u1", command="query"):
            assert structlog.contextvars.get_contextvars() == {
                "user_id": "u1",
                "command": "query",
            }
        assert "user_id" not in structlog.contextvars.get_contextvars()

    def test_none_values_dropped(self) -> None:
        with bind_request_context(user_id=None, command="stats"):
            assert structlog.contextvars.get_contextvars() == {"command": "stats"}


class TestImportSideEffects:
    def test_importing_library_keeps_host_logging(self, project_root: Path) -> None:
        # Fresh interpreter: the handler must be installed before ragcore loads.
        script = textwrap.dedent(
            """
            import logging
            import sys

            handler = logging.StreamHandler(sys.stderr)
            logging.getLogger().addHandler(handler)

            import structlog
            import ragcore.main
            import ragcore.cli.ingest

            assert handler in logging.getLogger().handlers, "root handlers replaced"
            assert not structlog.is_configured(), "structlog configured on import"
            """
        )
        env = {**os.environ, "PYTHONPATH": str(project_root)}

        result = subprocess.run(
            [sys.executable, "-c", script],
            capture_output=True,
            text=True,
            env=env,
            cwd=project_root,
            timeout=60,
        )

        assert result.returncode == 0, result.stderr
