"""
Pydantic field types for values decoded from chain logs or relayed as JSON.

Numbers arrive as ints, decimal or 0x-hex strings, or ethers BigNumber
objects; byte strings arrive as ``bytes`` or 0x-hex. Both normalize to ints
and lower-case hex.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator

from ..compact.models import to_int


def _uint(value: Any) -> int:
    if isinstance(value, dict):
        value = value.get("hex", value.get("_hex"))
    if value is None:
        raise ValueError("Missing numeric value")
    return to_int(value)


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError("Must be a 0x-prefixed hex string")
    return value.lower()


def _bytes32(value: Any) -> str:
    value = _hex(value)
    if len(value) != 66:
        raise ValueError("Must be a 32-byte hex string")
    return value


Uint = Annotated[int, BeforeValidator(_uint)]
HexData = Annotated[str, BeforeValidator(_hex)]
Bytes32 = Annotated[str, BeforeValidator(_bytes32)]


__all__ = ["Uint", "HexData", "Bytes32"]
