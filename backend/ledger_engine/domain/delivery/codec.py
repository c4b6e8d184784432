"""Delivery code codec.

A delivery code is the scannable string printed in the QR image:

    PREFIX|tokenId|productId|creationTimestampTicks

Ticks are 100-nanosecond intervals since 0001-01-01T00:00:00 UTC, which keeps
codes printed by the mobile clients decodable. Decoding never raises; it
returns either a DecodedToken or a MalformedToken describing the failure.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

DEFAULT_PREFIX = "KAMPAY"
DELIMITER = "|"

_EPOCH = datetime(1, 1, 1)
_TICKS_PER_MICROSECOND = 10
_MAX_TICKS = (datetime.max - _EPOCH) // timedelta(microseconds=1) * _TICKS_PER_MICROSECOND


@dataclass(frozen=True)
class DecodedToken:
    token_id: str
    product_id: str
    created_at: datetime


@dataclass(frozen=True)
class MalformedToken:
    reason: str


DecodeResult = Union[DecodedToken, MalformedToken]


def to_ticks(moment: datetime) -> int:
    """Naive UTC datetime -> ticks."""
    return (moment - _EPOCH) // timedelta(microseconds=1) * _TICKS_PER_MICROSECOND


def from_ticks(ticks: int) -> datetime:
    """Ticks -> naive UTC datetime (sub-microsecond precision is dropped)."""
    return _EPOCH + timedelta(microseconds=ticks // _TICKS_PER_MICROSECOND)


def encode_token(token_id: str, product_id: str, created_at: datetime, prefix: str = DEFAULT_PREFIX) -> str:
    """Build the delivery code for a token."""
    return DELIMITER.join((prefix, token_id, product_id, str(to_ticks(created_at))))


def decode_token(raw: object, prefix: str = DEFAULT_PREFIX) -> DecodeResult:
    """Parse a scanned delivery code."""
    if not isinstance(raw, str) or not raw:
        return MalformedToken("empty code")
    if not raw.startswith(prefix + DELIMITER):
        return MalformedToken("unknown prefix")

    fields = raw.split(DELIMITER)[1:]
    if len(fields) < 3:
        return MalformedToken(f"expected 3 fields after prefix, got {len(fields)}")

    token_id, product_id, ticks_text = fields[0].strip(), fields[1].strip(), fields[2].strip()
    if not token_id:
        return MalformedToken("missing token id")
    if not product_id:
        return MalformedToken("missing product id")
    if not (ticks_text.isascii() and ticks_text.isdigit()):
        return MalformedToken("timestamp is not a tick count")
    ticks = int(ticks_text)
    if ticks > _MAX_TICKS:
        return MalformedToken("timestamp out of range")

    return DecodedToken(token_id=token_id, product_id=product_id, created_at=from_ticks(ticks))
