"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

ALLOWED_STORE_BACKENDS = {"memory", "database"}
ALLOWED_LLM_ADAPTERS = {"openai", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class CSVIngestionSettings:
    """
    Runtime settings for CSV ingestion.
    """

    log_skipped_rows: bool = True
    max_skipped_rows: int = 500


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class FirestoreSettings:
    """
    Firestore REST connector settings.
    """

    base_url: str = "https://firestore.googleapis.com/v1"
    api_key: str | None = None
    page_size: int = 300
    max_documents: int = 10_000


@dataclass(frozen=True)
class LLMSettings:
    """
    Insight generator model settings.
    """

    adapter: str = "openai"
    model: str = "gpt-4o"
    max_tokens: int = 1000
    max_retries: int = 2
    api_key: str | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class StoreSettings:
    """
    Dashboard persistence backend selection.
    """

    backend: str = "memory"


@dataclass(frozen=True)
class PresentationSettings:
    """
    Table paging and export limits.
    """

    table_page_size: int = 10
    pdf_max_rows: int = 50


@lru_cache(maxsize=1)
def get_csv_ingestion_settings() -> CSVIngestionSettings:
    """
    Return cached CSV ingestion settings from environment variables.
    """

    return CSVIngestionSettings(
        log_skipped_rows=_get_bool_env("CSV_LOG_SKIPPED_ROWS", True),
        max_skipped_rows=max(1, _get_int_env("CSV_MAX_SKIPPED_ROWS", 500)),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_firestore_settings() -> FirestoreSettings:
    """
    Return Firestore connector settings from environment variables.
    """

    return FirestoreSettings(
        base_url=_get_str_env("FIRESTORE_BASE_URL", "https://firestore.googleapis.com/v1"),
        api_key=_get_optional_str_env("FIRESTORE_API_KEY"),
        page_size=max(1, _get_int_env("FIRESTORE_PAGE_SIZE", 300)),
        max_documents=max(1, _get_int_env("FIRESTORE_MAX_DOCUMENTS", 10_000)),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    """
    Return insight generator settings from environment variables.

    LLM_API_KEY wins over OPENAI_API_KEY when both are set.
    """

    return LLMSettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        model=_get_str_env("LLM_MODEL", "gpt-4o"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 1000)),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 2)),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
    )


@lru_cache(maxsize=1)
def get_store_settings() -> StoreSettings:
    """
    Return dashboard store settings from environment variables.
    """

    return StoreSettings(backend=_get_str_env("DASHBOARD_STORE", "memory").lower())


@lru_cache(maxsize=1)
def get_presentation_settings() -> PresentationSettings:
    """
    Return table and export settings from environment variables.
    """

    return PresentationSettings(
        table_page_size=max(1, _get_int_env("TABLE_PAGE_SIZE", 10)),
        pdf_max_rows=max(1, _get_int_env("EXPORT_PDF_MAX_ROWS", 50)),
    )
