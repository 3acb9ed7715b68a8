"""
Username directory.

Not a storage subsystem of its own: a username is resolved by deriving the
identifier of ``namespace + lowercase(username)`` and storing a JSON record
under it. Registration overwrites without checking ownership.
"""

from loguru import logger

from dhtgate.core.codec import UsernameRecord, ValueCodec
from dhtgate.core.errors import MissingField, NotFound, StoreFailure
from dhtgate.core.identifiers import IdentifierDeriver, StoreIdentifier
from dhtgate.p2p.facade import DHTClient, Value, await_store


DEFAULT_NAMESPACE = "pc2:username:"


def normalize_username(username: str) -> str:
    return username.lower()


class UsernameDirectory:
    """Username lookup/registration on top of a DHT node."""

    def __init__(
        self,
        node: DHTClient,
        deriver: IdentifierDeriver,
        codec: ValueCodec,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.node = node
        self.deriver = deriver
        self.codec = codec
        self.namespace = namespace

    def key_for(self, username: str) -> StoreIdentifier:
        """Store identifier of a username (case-insensitive)."""
        return self.deriver.derive(self.namespace, normalize_username(username))

    async def lookup(self, username: str) -> UsernameRecord:
        """
        Resolve a username to its record.

        Raises:
            NotFound: nothing registered under the username
            MalformedValue: stored payload is not a record
            StoreFailure: the lookup itself failed
        """
        username = normalize_username(username)
        key = self.key_for(username)

        try:
            value = await await_store(self.node.find_value(key))
        except StoreFailure as e:
            logger.error("Error finding username {}: {}", username, e.message)
            raise

        if value is None:
            raise NotFound("Username not found", {"username": username})

        return self.codec.decode_record(value.data, username=username)

    async def register(self, username: str, node_id: str, endpoint: str) -> str:
        """
        Register (or overwrite) a username.

        Returns:
            The normalized username the record was stored under
        """
        if not username or not node_id or not endpoint:
            raise MissingField("Missing required fields: username, nodeId, endpoint")

        username = normalize_username(username)
        record = UsernameRecord(node_id=node_id, endpoint=endpoint)
        value = Value.keyed(self.key_for(username), self.codec.encode_record(record))

        try:
            await await_store(self.node.store_value(value))
        except StoreFailure as e:
            logger.error("Error storing username {}: {}", username, e.message)
            raise

        logger.info("Username registered: {} -> {}", username, endpoint)
        return username
