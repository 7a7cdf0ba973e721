from __future__ import annotations

import pytest

from scripts.healthcheck import healthcheck_url, is_healthy


def test_healthcheck_url_uses_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.delenv("HEALTHCHECK_PATH", raising=False)
    assert healthcheck_url() == "http://127.0.0.1:9000/health"


@pytest.mark.parametrize(
    ("status_code", "body", "expected"),
    [
        (200, b'{"status": "ok", "store": "InMemoryDashboardStore"}', True),
        (200, b'{"status": "degraded"}', False),
        (200, b"not json", False),
        (200, b"[]", False),
        (503, b'{"status": "ok"}', False),
    ],
)
def test_is_healthy(status_code: int, body: bytes, expected: bool) -> None:
    assert is_healthy(status_code, body) is expected
