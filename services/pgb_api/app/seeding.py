"""Deterministic seed derivation.

(user id, 30-minute time bucket, query text) is hashed with SHA-256, the
digest is XOR-folded into one 64-bit seed, and that seed drives a
request-scoped draw stream. Identical inputs inside the same bucket always
yield identical draws, across processes and platforms.
"""

from __future__ import annotations

import hashlib
import logging
import math
import random
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union


logger = logging.getLogger("pgb.seeding")

BUCKET_SECONDS = 30 * 60
DIGEST_SIZE = 32
U64_MASK = 0xFFFFFFFFFFFFFFFF

Instant = Union[datetime, int, float]


@dataclass(frozen=True)
class RequestKey:
    user_id: int
    time_bucket: int
    query_text: bytes


class DrawStream:
    """Sequential source of unsigned 64-bit draws for a single request.

    Not thread-safe. Every draw advances the state, so the number and order of
    draws made by earlier generators changes what later generators see.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed) & U64_MASK
        self._rng = random.Random(self.seed)
        self.draws = 0

    def next_u64(self) -> int:
        self.draws += 1
        return self._rng.getrandbits(64)

    def __repr__(self) -> str:
        return f"DrawStream(seed={self.seed:#018x}, draws={self.draws})"


def _epoch_seconds(now: Instant) -> int:
    if isinstance(now, datetime):
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return math.floor(now.timestamp())
    return math.floor(now)


def time_bucket(now: Instant) -> int:
    return _epoch_seconds(now) // BUCKET_SECONDS * BUCKET_SECONDS


def _query_bytes(query_text: str | bytes | None) -> bytes:
    if query_text is None:
        return b""
    if isinstance(query_text, (bytes, bytearray)):
        return bytes(query_text)
    # JSON can carry lone surrogates; keep them as their raw code units.
    return str(query_text).encode("utf-8", errors="surrogatepass")


def request_key(user_id: int | None, query_text: str | bytes | None, now: Instant) -> RequestKey:
    return RequestKey(
        user_id=0 if user_id is None else int(user_id),
        time_bucket=time_bucket(now),
        query_text=_query_bytes(query_text),
    )


def seed_material(key: RequestKey) -> bytes:
    """SHA-256 over user id (u64 LE), time bucket (i64 LE) and raw query bytes.

    The fields are concatenated without delimiters. A field that cannot be
    packed is logged and left out; the digest is still produced.
    """
    h = hashlib.sha256()
    fields = (
        ("user_id", "<Q", key.user_id),
        ("time_bucket", "<q", key.time_bucket),
    )
    for name, fmt, value in fields:
        try:
            h.update(struct.pack(fmt, value))
        except struct.error as e:
            logger.warning("seed_field_pack_failed field=%s value=%r: %s", name, value, e)
    h.update(key.query_text)
    return h.digest()


def fold_seed(material: bytes) -> int:
    if len(material) != DIGEST_SIZE:
        logger.warning("seed_material_size_mismatch size=%d expected=%d", len(material), DIGEST_SIZE)
        material = material[:DIGEST_SIZE].ljust(DIGEST_SIZE, b"\x00")

    s = 0
    for v in struct.unpack(">4Q", material):
        s ^= v
    return s


def derive_seed(user_id: int | None, query_text: str | bytes | None, now: Instant) -> int:
    return fold_seed(seed_material(request_key(user_id, query_text, now)))


def new_stream(seed: int) -> DrawStream:
    return DrawStream(seed)
