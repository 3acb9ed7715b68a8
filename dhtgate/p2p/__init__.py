"""
DHT node interface.

- facade: the operations the gateway consumes from a DHT node
- local_node: in-process single-node implementation
"""

from .facade import DHTClient, Receipt, Value, await_store
from .local_node import LocalDHTNode

__all__ = [
    "DHTClient",
    "Receipt",
    "Value",
    "await_store",
    "LocalDHTNode",
]
