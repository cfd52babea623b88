"""
Composite GUID codec.

A generic-model GUID is either the catalog's native id, or a generated-type
prefix and the native id joined by ``!``. The prefix marks one of several
generic instances synthesized from a single catalog object, so the mapping
can be reversed from the GUID alone.

Usage:
    from catalog_bridge.core.guid import CompositeGuid

    guid = CompositeGuid("8d3c", "RTT")
    str(guid)                            # "RTT!8d3c"
    CompositeGuid.decode("RTT!8d3c")     # CompositeGuid("8d3c", "RTT")
    CompositeGuid.decode("8d3c").is_generated   # False
"""

from dataclasses import dataclass
from typing import Optional

GENERATED_TYPE_SEPARATOR = "!"


@dataclass(frozen=True)
class CompositeGuid:
    """Native catalog id plus an optional generated-type prefix."""
    native_id: str
    generated_prefix: Optional[str] = None

    @property
    def is_generated(self) -> bool:
        """True when this GUID identifies a synthesized instance."""
        return self.generated_prefix is not None

    def encode(self) -> str:
        if self.generated_prefix is not None:
            return f"{self.generated_prefix}{GENERATED_TYPE_SEPARATOR}{self.native_id}"
        return self.native_id

    def __str__(self) -> str:
        return self.encode()

    @classmethod
    def decode(cls, guid: Optional[str]) -> Optional["CompositeGuid"]:
        """
        Parse a GUID string.

        Splits on the first separator only. A separator in leading position
        has no prefix before it and is kept as part of the native id.

        Returns:
            CompositeGuid, or None when guid is None
        """
        if guid is None:
            return None
        index = guid.find(GENERATED_TYPE_SEPARATOR)
        if index > 0:
            return cls(guid[index + 1:], guid[:index])
        return cls(guid, None)


def encode_guid(native_id: str, prefix: Optional[str] = None) -> str:
    """Encode a native id and optional prefix into a GUID string."""
    return CompositeGuid(native_id, prefix).encode()


def decode_guid(guid: Optional[str]) -> Optional[CompositeGuid]:
    """Decode a GUID string; None passes through."""
    return CompositeGuid.decode(guid)
