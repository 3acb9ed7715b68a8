"""
DHT client facade.

The gateway reaches the DHT node through this interface only. Lookup,
replication and routing all happen behind it; the gateway just awaits the
two async operations and interprets the outcome.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Optional, Protocol, TypeVar, runtime_checkable

from loguru import logger

from dhtgate.core.errors import StoreFailure
from dhtgate.core.identifiers import IdentifierDeriver, StoreIdentifier

T = TypeVar("T")

_content_ids = IdentifierDeriver()


@dataclass(frozen=True)
class Value:
    """A value as handed to / returned by the store."""

    id: StoreIdentifier
    data: bytes

    @classmethod
    def of(cls, data: bytes) -> "Value":
        """Immutable value addressed by its own content."""
        return cls(id=_content_ids.of_content(data), data=data)

    @classmethod
    def keyed(cls, id: StoreIdentifier, data: bytes) -> "Value":
        """Value stored under an explicit (e.g. namespaced) identifier."""
        return cls(id=id, data=data)


@dataclass(frozen=True)
class Receipt:
    """Result of a store operation."""

    id: StoreIdentifier


@runtime_checkable
class DHTClient(Protocol):
    """Operations the gateway consumes from a DHT node."""

    def get_id(self) -> StoreIdentifier: ...

    def get_address4(self) -> Optional[str]: ...

    def get_port(self) -> int: ...

    async def find_value(self, id: StoreIdentifier) -> Optional[Value]:
        """Resolve to the value, or None when nothing is stored. Raises on failure."""
        ...

    async def store_value(self, value: Value) -> Receipt:
        """Store the value and report the identifier used. Raises on failure."""
        ...


def _retrieve_outcome(task: asyncio.Future) -> None:
    """Read a finished store call's exception so it is never left unretrieved."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Store operation failed: {}", exc)


async def await_store(operation: Awaitable[T]) -> T:
    """
    Await a single store operation.

    The operation is shielded: if the awaiting request is cancelled (client
    went away), the store call still runs to completion. Any exception it
    raises becomes a StoreFailure carrying the store's message.
    """
    task = asyncio.ensure_future(operation)
    task.add_done_callback(_retrieve_outcome)
    try:
        return await asyncio.shield(task)
    except Exception as e:
        raise StoreFailure.from_exception(e) from e
