"""
Store identifiers.

Every value in the store is addressed by a fixed-length binary identifier.
Identifiers are derived with SHA-256, either from a value's own content or
from a namespaced key such as ``"pc2:username:alice"``.
"""

import hashlib
from dataclasses import dataclass
import logging

from dhtgate.core.errors import InvalidIdentifier

logger = logging.getLogger(__name__)


ID_BYTES = 32  # SHA-256 digest size
ID_HEX_CHARS = ID_BYTES * 2


@dataclass(frozen=True)
class StoreIdentifier:
    """Identifier of a value in the store (32 raw bytes)."""
    value: bytes

    def __post_init__(self):
        if len(self.value) != ID_BYTES:
            raise InvalidIdentifier(
                f"expected {ID_BYTES} bytes, got {len(self.value)}"
            )

    @property
    def hex(self) -> str:
        """Get hex representation (the text form used on the wire)."""
        return self.value.hex()

    def __str__(self) -> str:
        return self.hex

    def __repr__(self) -> str:
        return f"StoreIdentifier({self.hex[:16]}...)"


class IdentifierDeriver:
    """
    Maps keys and content to StoreIdentifiers.

    Derivation is a pure function of the input bytes: the same namespace and
    key always produce the same identifier. It is case-sensitive, so callers
    normalize case before deriving.
    """

    def _digest(self, data: bytes) -> StoreIdentifier:
        return StoreIdentifier(hashlib.sha256(data).digest())

    def derive(self, namespace: str, local_key: str) -> StoreIdentifier:
        """
        Derive the identifier for a namespaced key.

        Args:
            namespace: Namespace prefix (e.g. "pc2:username:")
            local_key: Caller-supplied key within the namespace

        Returns:
            Identifier of ``namespace + local_key``

        Raises:
            InvalidIdentifier: non-string or non-encodable input
        """
        if not isinstance(namespace, str) or not isinstance(local_key, str):
            raise InvalidIdentifier("namespace and key must be strings")

        try:
            raw = (namespace + local_key).encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidIdentifier("key is not encodable as UTF-8")

        identifier = self._digest(raw)
        logger.debug(f"Derived {identifier!r} for {namespace}{local_key}")
        return identifier

    def of_content(self, data: bytes) -> StoreIdentifier:
        """Content identifier of raw bytes."""
        return self._digest(data)

    def parse(self, text: str) -> StoreIdentifier:
        """
        Parse the textual (hex) form of an identifier.

        Raises:
            InvalidIdentifier: wrong length or not hex
        """
        if not isinstance(text, str):
            raise InvalidIdentifier("identifier must be a string")

        cleaned = text.strip()
        if cleaned[:2].lower() == "0x":
            cleaned = cleaned[2:]

        if len(cleaned) != ID_HEX_CHARS:
            raise InvalidIdentifier(
                f"expected {ID_HEX_CHARS} hex characters, got {len(cleaned)}"
            )

        try:
            raw = bytes.fromhex(cleaned)
        except ValueError:
            raise InvalidIdentifier("not a hex string")

        return StoreIdentifier(raw)
