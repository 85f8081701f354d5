"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError, UpstreamResponse
from app.connectors.sample_data_connector import SampleDataConnector, build_payload

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "SampleDataConnector",
    "UpstreamResponse",
    "build_payload",
]
