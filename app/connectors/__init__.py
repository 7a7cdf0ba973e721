"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorFetchResult, DataSourceConnectionError
from app.connectors.firestore_connector import FirestoreConnector, build_firestore_connector

__all__ = [
    "BaseConnector",
    "ConnectorFetchResult",
    "DataSourceConnectionError",
    "FirestoreConnector",
    "build_firestore_connector",
]
