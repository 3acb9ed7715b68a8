"""
dhtgate - HTTP/REST gateway for a DHT node

Exposes a DHT node's value storage and a username directory over a small
JSON API, so services that do not speak the DHT protocol can still use it.

Quick Start:
    >>> from dhtgate.api_server import create_app
    >>> from dhtgate.p2p.local_node import LocalDHTNode
    >>>
    >>> app = create_app(LocalDHTNode())
    >>> # uvicorn.run(app, host="127.0.0.1", port=8091)
"""

from dhtgate.core.codec import UsernameRecord, ValueCodec
from dhtgate.core.errors import (
    GatewayError,
    InvalidBody,
    InvalidIdentifier,
    MalformedValue,
    MissingField,
    NotFound,
    StoreFailure,
)
from dhtgate.core.identifiers import IdentifierDeriver, StoreIdentifier

__version__ = "1.0.0"

__all__ = [
    "UsernameRecord",
    "ValueCodec",
    "GatewayError",
    "InvalidBody",
    "InvalidIdentifier",
    "MalformedValue",
    "MissingField",
    "NotFound",
    "StoreFailure",
    "IdentifierDeriver",
    "StoreIdentifier",
]
