"""Webhook signature verification.

TimeMoto has shipped several header formats over time, so both the header
parsing and the digest computation are expressed as ordered lists of
strategies. Header parsers stop at the first match; every digest candidate is
compared in constant time.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from typing import Callable, List, Optional, Sequence

_TOKEN = r"([A-Za-z0-9+/=._-]+)"
_HEX_DIGEST = re.compile(r"^[0-9a-fA-F]{64}$")

HeaderParser = Callable[[str], Optional[str]]


def _prefixed(prefix: str) -> HeaderParser:
    pattern = re.compile(rf"{prefix}={_TOKEN}", re.IGNORECASE)

    def parse(value: str) -> Optional[str]:
        match = pattern.search(value)
        return match.group(1) if match else None

    return parse


def _from_comma_list(value: str) -> Optional[str]:
    if "," not in value:
        return None
    pattern = re.compile(rf"(?:sha256|v1|sig|signature)={_TOKEN}", re.IGNORECASE)
    for part in reversed([p.strip() for p in value.split(",")]):
        match = pattern.search(part)
        if match:
            return match.group(1)
    return None


def _bare_token(value: str) -> Optional[str]:
    return value if len(value) > 10 else None


HEADER_PARSERS: Sequence[HeaderParser] = (
    _prefixed("sha256"),
    _prefixed("v1"),
    _prefixed("signature"),
    _from_comma_list,
    _bare_token,
)


def extract_signature_token(header_value: Optional[str]) -> Optional[str]:
    if not header_value:
        return None
    value = header_value.strip()
    for parser in HEADER_PARSERS:
        token = parser(value)
        if token:
            return token
    return None


def _decode_hex(secret: str) -> Optional[bytes]:
    value = secret.strip()
    if not value or len(value) % 2 or not re.fullmatch(r"[0-9a-fA-F]+", value):
        return None
    return bytes.fromhex(value)


def _decode_base64(secret: str) -> Optional[bytes]:
    value = secret.strip()
    if not value or not re.fullmatch(r"[A-Za-z0-9+/=_-]+", value):
        return None
    std = value.replace("-", "+").replace("_", "/")
    std += "=" * (-len(std) % 4)
    try:
        decoded = base64.b64decode(std)
    except (binascii.Error, ValueError):
        return None
    return decoded or None


def _key_variants(secret: str) -> List[bytes]:
    keys = [secret.encode("utf-8")]
    for decoder in (_decode_base64, _decode_hex):
        key = decoder(secret)
        if key and key not in keys:
            keys.append(key)
    return keys


def digest_candidates(raw_body: bytes, secret: str) -> List[str]:
    candidates: List[str] = []
    for key in _key_variants(secret):
        digest = hmac.new(key, raw_body, hashlib.sha256).digest()
        b64 = base64.b64encode(digest).decode("ascii")
        for candidate in (digest.hex(), b64, b64.replace("+", "-").replace("/", "_").rstrip("=")):
            if candidate not in candidates:
                candidates.append(candidate)
    return candidates


def _normalize(signature: str) -> str:
    value = signature.strip()
    if _HEX_DIGEST.match(value):
        return value.lower()
    return value.replace("-", "+").replace("_", "/").rstrip("=")


def verify_signature(raw_body: bytes, header_value: Optional[str], secret: str) -> bool:
    if not secret:
        return False
    provided = extract_signature_token(header_value)
    if not provided:
        return False
    provided_norm = _normalize(provided).encode("utf-8")
    return any(
        hmac.compare_digest(provided_norm, _normalize(candidate).encode("utf-8"))
        for candidate in digest_candidates(raw_body, secret)
    )
