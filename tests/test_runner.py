"""Tests for the uvicorn runner."""

import pytest

from wellspace import __main__ as runner
from wellspace.config.settings import Settings


@pytest.fixture
def served(monkeypatch):
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.setattr(runner.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    return calls


def test_uses_api_settings(monkeypatch, served) -> None:
    settings = Settings(
        environment="production", api_host="127.0.0.1", api_port=9001, api_workers=4
    )
    monkeypatch.setattr(runner, "get_settings", lambda: settings)

    runner.run()

    args, kwargs = served[0]
    assert args == ("wellspace.main:app",)
    assert kwargs["host"] == "127.0.0.1"
    assert kwargs["port"] == 9001
    assert kwargs["workers"] == 4
    assert kwargs["reload"] is False


def test_reload_in_development_uses_one_worker(monkeypatch, served) -> None:
    settings = Settings(environment="development", api_reload=True, api_workers=4)
    monkeypatch.setattr(runner, "get_settings", lambda: settings)

    runner.run()

    _, kwargs = served[0]
    assert kwargs["reload"] is True
    assert kwargs["workers"] == 1
