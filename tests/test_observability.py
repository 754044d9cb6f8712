"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib

import pytest

from studyplanner.observability import client as client_module


@pytest.fixture()
def fresh_client_state():
    client_module.reset_opik_client()
    yield
    client_module.reset_opik_client()


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import studyplanner.core.config as core_config
    import studyplanner.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_trace_is_noop_without_client(monkeypatch) -> None:
    from studyplanner.observability.tracing import trace

    monkeypatch.setattr(client_module, "get_opik_client", lambda: None)

    with trace("demo", metadata={"a": 1}) as span:
        assert span is None


def test_enabled_without_api_key_stays_disabled(monkeypatch, fresh_client_state) -> None:
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)

    assert client_module.get_opik_client() is None


def test_client_is_created_once_until_reset(monkeypatch, fresh_client_state) -> None:
    created = []

    class _FakeOpik:
        def __init__(self, project_name: str, api_key: str):
            created.append((project_name, api_key))

    monkeypatch.setattr(client_module, "Opik", _FakeOpik)
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", "test-key")

    first = client_module.get_opik_client()
    assert isinstance(first, _FakeOpik)
    assert client_module.get_opik_client() is first

    client_module.reset_opik_client()
    second = client_module.get_opik_client()

    assert second is not first
    assert len(created) == 2
    assert created[0] == (client_module.settings.opik_project, "test-key")
