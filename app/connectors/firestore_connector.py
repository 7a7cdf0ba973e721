"""
app/connectors/firestore_connector.py

Firestore collection connector over the public REST API.

Every document in the collection becomes one tabular record. The document id
is stored under ``id`` before the document's own fields, so a field literally
named ``id`` wins. Typed Firestore values map onto the tagged scalars;
timestamps, references, geo points, maps and arrays are kept as text.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import requests

from app.config import (
    ExternalHTTPSettings,
    FirestoreSettings,
    get_external_http_settings,
    get_firestore_settings,
)
from app.connectors.base import BaseConnector, ConnectorFetchResult, DataSourceConnectionError
from app.domain.tabular import TabularRecord

logger = logging.getLogger(__name__)

_PROJECT_ID_RE = re.compile(r"[a-z0-9][a-z0-9\-]{0,61}[a-z0-9]")
_COLLECTION_SEGMENT_RE = re.compile(r"[^/\s]+")


def decode_firestore_value(value: Any) -> Any:
    """
    Convert one Firestore REST ``Value`` object into a plain Python value.
    """
    if not isinstance(value, dict):
        return value
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "nullValue" in value:
        return None
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "bytesValue" in value:
        return value["bytesValue"]
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "mapValue" in value:
        fields = value["mapValue"].get("fields") or {}
        return {key: decode_firestore_value(child) for key, child in fields.items()}
    if "arrayValue" in value:
        items = value["arrayValue"].get("values") or []
        return [decode_firestore_value(child) for child in items]
    return None


def document_to_row(document: dict[str, Any]) -> dict[str, Any]:
    """Flatten one REST document into ``{"id": <doc id>, **fields}``."""
    name = document.get("name") or ""
    row: dict[str, Any] = {"id": name.rsplit("/", 1)[-1]}
    for key, value in (document.get("fields") or {}).items():
        row[key] = decode_firestore_value(value)
    return row


class FirestoreConnector(BaseConnector):
    """
    Connector that reads every document of one Firestore collection.
    """

    def __init__(
        self,
        *,
        project_id: str,
        collection_name: str,
        settings: FirestoreSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="firestore", http_settings=http_settings, session=session)
        self._project_id = self._validate_project_id(project_id)
        self._collection_name = self._validate_collection(collection_name)
        self._settings = settings

    @property
    def collection_url(self) -> str:
        return (
            f"{self._settings.base_url.rstrip('/')}/projects/{self._project_id}"
            f"/databases/(default)/documents/{self._collection_name}"
        )

    def fetch_records(self) -> ConnectorFetchResult:
        """
        Page through the collection and return one record per document.

        Raises
        ------
        DataSourceConnectionError
            When the source is unreachable or the collection is empty.
        """
        records: list[TabularRecord] = []
        failed_records = 0
        page_token: str | None = None

        while len(records) < self._settings.max_documents:
            params: dict[str, Any] = {"pageSize": self._settings.page_size}
            if page_token:
                params["pageToken"] = page_token
            if self._settings.api_key:
                params["key"] = self._settings.api_key

            payload = self.get_json(self.collection_url, params=params)
            if not isinstance(payload, dict):
                raise DataSourceConnectionError(f"{self.source}: unexpected response shape.")

            for document in payload.get("documents") or []:
                try:
                    records.append(TabularRecord.from_plain(document_to_row(document)))
                except (AttributeError, TypeError, ValueError) as exc:
                    failed_records += 1
                    logger.warning(
                        "Failed to decode Firestore document name=%s error=%s",
                        document.get("name") if isinstance(document, dict) else None,
                        exc,
                    )

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        if not records:
            raise DataSourceConnectionError("No data found in the specified collection")

        logger.info(
            "Firestore fetch project=%s collection=%s records=%d failed=%d requests=%d",
            self._project_id,
            self._collection_name,
            len(records),
            failed_records,
            self.requests_sent,
        )
        return ConnectorFetchResult(
            source=self.source,
            records=records[: self._settings.max_documents],
            failed_records=failed_records,
            requests_sent=self.requests_sent,
        )

    @staticmethod
    def _validate_project_id(project_id: str) -> str:
        candidate = (project_id or "").strip()
        if not _PROJECT_ID_RE.fullmatch(candidate):
            raise ValueError(f"Invalid Firestore project id {project_id!r}.")
        return candidate

    @staticmethod
    def _validate_collection(collection_name: str) -> str:
        candidate = (collection_name or "").strip().strip("/")
        segments = candidate.split("/")
        if not candidate or any(
            segment in {".", ".."} or not _COLLECTION_SEGMENT_RE.fullmatch(segment)
            for segment in segments
        ):
            raise ValueError(f"Invalid collection name {collection_name!r}.")
        if len(segments) % 2 == 0:
            raise ValueError(f"{collection_name!r} names a document, not a collection.")
        return candidate


def build_firestore_connector(*, project_id: str, collection_name: str) -> FirestoreConnector:
    """
    Build a connector for one collection with env-driven settings.
    """
    return FirestoreConnector(
        project_id=project_id,
        collection_name=collection_name,
        settings=get_firestore_settings(),
        http_settings=get_external_http_settings(),
    )
