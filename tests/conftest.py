import pytest

from lensocr.providers.lens import client as client_module


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("LENS_ENDPOINT", "LENS_USER_AGENT", "LENS_TIMEOUT_SEC", "LENS_MAX_ATTEMPTS", "LENS_LANGUAGE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []
    monkeypatch.setattr(client_module.time, "sleep", lambda s: recorded.append(s))
    return recorded
