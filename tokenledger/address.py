"""Bech32 addresses for 32-byte public keys."""

from __future__ import annotations

PUBLIC_KEY_LEN = 32

_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_INDEX = {ch: i for i, ch in enumerate(_CHARSET)}
_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_MAX_LENGTH = 90


def _polymod(values) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i, gen in enumerate(_GENERATOR):
            if (top >> i) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: list[int]) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def _convert_bits(data, from_bits: int, to_bits: int, pad: bool) -> list[int]:
    acc = 0
    bits = 0
    out = []
    maxv = (1 << to_bits) - 1
    for value in data:
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & maxv)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or (acc << (to_bits - bits)) & maxv:
        raise ValueError("invalid padding in address data")
    return out


def address(public_key: bytes, hrp: str) -> str:
    """Encode a public key as a bech32 address with the given prefix."""
    key = bytes(public_key)
    if len(key) != PUBLIC_KEY_LEN:
        raise ValueError(f"public key must be {PUBLIC_KEY_LEN} bytes, got {len(key)}")
    data = _convert_bits(key, 8, 5, True)
    combined = data + _create_checksum(hrp, data)
    return hrp + "1" + "".join(_CHARSET[d] for d in combined)


def parse_address(text: str, hrp: str) -> bytes:
    """Decode a bech32 address, checking its prefix, into a public key."""
    if text.lower() != text and text.upper() != text:
        raise ValueError("address uses mixed case")
    if len(text) > _MAX_LENGTH:
        raise ValueError("address is too long")
    text = text.lower()
    sep = text.rfind("1")
    if sep < 1 or sep + 7 > len(text):
        raise ValueError("address has no valid separator")
    found_hrp, rest = text[:sep], text[sep + 1 :]
    if found_hrp != hrp:
        raise ValueError(f"expected address prefix {hrp!r}, got {found_hrp!r}")
    try:
        data = [_CHARSET_INDEX[ch] for ch in rest]
    except KeyError as exc:
        raise ValueError(f"invalid address character {exc.args[0]!r}") from None
    if _polymod(_hrp_expand(found_hrp) + data) != 1:
        raise ValueError("address checksum mismatch")
    key = bytes(_convert_bits(data[:-6], 5, 8, False))
    if len(key) != PUBLIC_KEY_LEN:
        raise ValueError(f"public key must be {PUBLIC_KEY_LEN} bytes, got {len(key)}")
    return key