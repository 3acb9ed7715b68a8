"""
Value codec.

Username records are stored as canonical JSON objects with exactly three
keys (``nodeId``, ``endpoint``, ``registered``). Raw payloads from the
generic store endpoint are plain UTF-8 text.
"""

import json
import time
from typing import Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dhtgate.core.errors import InvalidBody, MalformedValue

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


class UsernameRecord(BaseModel):
    """Username -> node endpoint registration."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    node_id: str = Field(..., alias="nodeId", min_length=1)
    endpoint: str = Field(..., min_length=1)
    registered_at_millis: int = Field(
        default_factory=now_millis,
        alias="registered",
        description="Registration time (ms since epoch), stamped at encode time",
    )

    # Display only; reconstructed from the lookup key, never stored.
    username: Optional[str] = None

    def to_response(self) -> dict:
        """Wire shape returned by the lookup endpoint."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ValueCodec:
    """Converts records and raw text to and from store value bytes."""

    RECORD_FIELDS = ("nodeId", "endpoint", "registered")

    def encode_record(self, record: UsernameRecord) -> bytes:
        """
        Encode a record for storage.

        The registration timestamp is re-stamped with the current time; the
        username is not part of the payload.
        """
        payload = {
            "nodeId": record.node_id,
            "endpoint": record.endpoint,
            "registered": now_millis(),
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

    def decode_record(self, data: bytes, username: Optional[str] = None) -> UsernameRecord:
        """
        Decode stored bytes into a UsernameRecord.

        Args:
            data: Stored payload
            username: Display username to merge into the result

        Raises:
            MalformedValue: not JSON, not an object, or missing/mistyped fields
        """
        try:
            obj = json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedValue(f"payload is not JSON: {e}")

        if not isinstance(obj, dict):
            raise MalformedValue("payload is not a JSON object")

        missing = [name for name in self.RECORD_FIELDS if name not in obj]
        if missing:
            raise MalformedValue(f"missing fields: {', '.join(missing)}")

        obj.pop("username", None)
        try:
            record = UsernameRecord.model_validate(obj, strict=True)
        except ValidationError as e:
            raise MalformedValue(str(e))

        if username is not None:
            record = record.model_copy(update={"username": username})
        return record

    def encode_raw(self, text: str) -> bytes:
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidBody("Data is not encodable as UTF-8")

    def decode_raw(self, data: bytes) -> str:
        return data.decode("utf-8", errors="replace")
