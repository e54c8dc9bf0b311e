"""
Canister reference helpers.

Canister references are Internet Computer principals in their textual form:
the CRC-32 of the principal bytes (4 bytes, big endian) followed by the bytes
themselves, base32-encoded (RFC 4648, lowercase, no padding) and split into
dash-separated groups of five characters.
"""
from __future__ import annotations

import base64
import binascii
import random
import string
import time
import zlib

from agency_builder.exceptions import InvalidPrincipalError

MAX_PRINCIPAL_BYTES = 29
CHECKSUM_BYTES = 4
GROUP_SIZE = 5

_ID_ALPHABET = string.digits + string.ascii_lowercase


def parse_principal(text: str) -> bytes:
    """Decode a principal text into its raw bytes, raising on any malformation."""
    if not isinstance(text, str) or not text:
        raise InvalidPrincipalError(f"invalid principal {text!r}: empty value")

    compact = text.replace("-", "")
    padded = compact.upper() + "=" * (-len(compact) % 8)
    try:
        decoded = base64.b32decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPrincipalError(f"invalid principal {text!r}: not base32") from exc

    if len(decoded) < CHECKSUM_BYTES:
        raise InvalidPrincipalError(f"invalid principal {text!r}: too short")

    checksum, body = decoded[:CHECKSUM_BYTES], decoded[CHECKSUM_BYTES:]
    if len(body) > MAX_PRINCIPAL_BYTES:
        raise InvalidPrincipalError(f"invalid principal {text!r}: too long")
    if zlib.crc32(body).to_bytes(CHECKSUM_BYTES, "big") != checksum:
        raise InvalidPrincipalError(f"invalid principal {text!r}: checksum mismatch")
    if format_principal(body) != text:
        raise InvalidPrincipalError(f"invalid principal {text!r}: not in canonical form")
    return body


def format_principal(body: bytes) -> str:
    """Encode raw principal bytes into the canonical dash-grouped text."""
    checksum = zlib.crc32(body).to_bytes(CHECKSUM_BYTES, "big")
    encoded = base64.b32encode(checksum + body).decode("ascii").lower().rstrip("=")
    groups = [encoded[i:i + GROUP_SIZE] for i in range(0, len(encoded), GROUP_SIZE)]
    return "-".join(groups)


def is_valid_principal(text: str) -> bool:
    try:
        parse_principal(text)
    except InvalidPrincipalError:
        return False
    return True


def generate_id(prefix: str = "item") -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"
