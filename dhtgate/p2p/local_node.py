"""
Local DHT node.

Single-process implementation of the DHT client facade. Values live in an
in-memory table keyed by identifier, and a later store under the same
identifier overwrites the earlier one. Used to run the gateway standalone
and in tests; a networked node plugs in through the same interface.
"""

import asyncio
import hashlib
import secrets
from typing import Dict, Optional

from loguru import logger

from dhtgate.core.identifiers import StoreIdentifier
from dhtgate.p2p.facade import Receipt, Value


DEFAULT_DHT_PORT = 39001


class LocalDHTNode:
    """
    In-memory DHT node.

    Identity is the SHA-256 of a seed (random unless given), the same way
    peer IDs are hashes of key material.
    """

    def __init__(
        self,
        address4: Optional[str] = "127.0.0.1",
        port: int = DEFAULT_DHT_PORT,
        seed: Optional[bytes] = None,
    ):
        """
        Initialize local node.

        Args:
            address4: IPv4 address the node reports (None if not bound)
            port: DHT port the node reports
            seed: Identity seed; random if omitted
        """
        self.address4 = address4
        self.port = port
        self.node_id = StoreIdentifier(
            hashlib.sha256(seed if seed is not None else secrets.token_bytes(32)).digest()
        )

        # Local storage (id -> value)
        self.storage: Dict[StoreIdentifier, Value] = {}

        logger.info("Initialized local DHT node: {}...", self.node_id.hex[:16])

    def get_id(self) -> StoreIdentifier:
        return self.node_id

    def get_address4(self) -> Optional[str]:
        return self.address4

    def get_port(self) -> int:
        return self.port

    async def find_value(self, id: StoreIdentifier) -> Optional[Value]:
        """
        FIND_VALUE: look up a value by identifier.

        Returns:
            Value if stored, None otherwise
        """
        await asyncio.sleep(0)
        return self.storage.get(id)

    async def store_value(self, value: Value) -> Receipt:
        """
        STORE: store (or overwrite) a value under its identifier.

        Returns:
            Receipt carrying the identifier used
        """
        await asyncio.sleep(0)
        self.storage[value.id] = value
        logger.debug("Stored {}... ({} bytes)", value.id.hex[:16], len(value.data))
        return Receipt(id=value.id)
