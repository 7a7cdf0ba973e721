"""
Container health check for the dashboard API.

Exits 0 when GET /health answers 2xx with ``{"status": "ok"}``.
"""

from __future__ import annotations

import json
import os
from urllib.error import URLError
from urllib.request import urlopen


def healthcheck_url() -> str:
    port = os.getenv("PORT", "8000")
    path = os.getenv("HEALTHCHECK_PATH", "/health")
    return f"http://127.0.0.1:{port}{path}"


def is_healthy(status_code: int, body: bytes) -> bool:
    if not 200 <= status_code < 300:
        return False
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return False
    return isinstance(payload, dict) and payload.get("status") == "ok"


def main() -> int:
    try:
        with urlopen(healthcheck_url(), timeout=2) as response:
            return 0 if is_healthy(response.status, response.read()) else 1
    except (URLError, TimeoutError, ValueError):
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
