"""
Tests for the command line entry point.

uvicorn.run is replaced so no server is started.
"""

import pytest
import uvicorn

from gpu_worker.cli import main, serve
from gpu_worker.config import ServiceConfig


@pytest.fixture
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    return calls


class TestServe:
    """Test how the service is handed to uvicorn."""

    def test_config_forwarded(self, uvicorn_calls):
        serve(ServiceConfig(host="127.0.0.1", port=9000, workers=3, log_level="debug"))

        app, kwargs = uvicorn_calls[0]
        assert app == "gpu_worker.service:create_app"
        assert kwargs["factory"] is True
        assert kwargs["workers"] == 3
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9000
        assert kwargs["log_level"] == "debug"

    def test_workers_from_environment(self, monkeypatch, uvicorn_calls):
        monkeypatch.setenv("WORKERS", "4")

        assert main(["serve"]) == 0

        _, kwargs = uvicorn_calls[0]
        assert kwargs["workers"] == 4

    def test_command_line_overrides(self, monkeypatch, uvicorn_calls):
        monkeypatch.setenv("WORKERS", "4")
        monkeypatch.setenv("PORT", "9000")

        assert main(["serve", "--port", "9100", "--workers", "2"]) == 0

        _, kwargs = uvicorn_calls[0]
        assert (kwargs["port"], kwargs["workers"]) == (9100, 2)


def test_invalid_environment(monkeypatch, uvicorn_calls):
    monkeypatch.setenv("WORKERS", "0")

    assert main(["serve"]) == 2
    assert uvicorn_calls == []
