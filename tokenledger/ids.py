"""32-byte identifiers and their checksummed base58 text form."""

from __future__ import annotations

import hashlib

ID_LEN = 32
EMPTY_ID = bytes(ID_LEN)

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {ch: i for i, ch in enumerate(_ALPHABET)}
_CHECKSUM_LEN = 4


def _b58encode(data: bytes) -> str:
    zeros = len(data) - len(data.lstrip(b"\0"))
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_ALPHABET[rem])
    return "1" * zeros + "".join(reversed(digits))


def _b58decode(text: str) -> bytes:
    number = 0
    for ch in text:
        try:
            number = number * 58 + _INDEX[ch]
        except KeyError:
            raise ValueError(f"invalid base58 character {ch!r}") from None
    zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\0" * zeros + body


def _checksum(payload: bytes) -> bytes:
    return hashlib.sha256(payload).digest()[-_CHECKSUM_LEN:]


def id_to_string(raw: bytes) -> str:
    """Render a 32-byte identifier as checksummed base58 text."""
    raw = bytes(raw)
    if len(raw) != ID_LEN:
        raise ValueError(f"identifier must be {ID_LEN} bytes, got {len(raw)}")
    return _b58encode(raw + _checksum(raw))


def id_from_string(text: str) -> bytes:
    """Parse checksummed base58 text back into a 32-byte identifier."""
    decoded = _b58decode(text)
    if len(decoded) < _CHECKSUM_LEN:
        raise ValueError("identifier text is too short")
    payload, checksum = decoded[:-_CHECKSUM_LEN], decoded[-_CHECKSUM_LEN:]
    if _checksum(payload) != checksum:
        raise ValueError("identifier checksum mismatch")
    if len(payload) != ID_LEN:
        raise ValueError(f"identifier must be {ID_LEN} bytes, got {len(payload)}")
    return payload