from __future__ import annotations

import hashlib
import logging
import struct
from datetime import datetime, timedelta, timezone

from services.pgb_api.app.seeding import (
    BUCKET_SECONDS,
    DrawStream,
    RequestKey,
    derive_seed,
    fold_seed,
    new_stream,
    request_key,
    seed_material,
    time_bucket,
)


NOW = datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc)


def _xor_fold(digest: bytes) -> int:
    out = 0
    for i in range(0, 32, 8):
        out ^= int.from_bytes(digest[i : i + 8], "big", signed=False)
    return out


def test_time_bucket_truncates_to_half_hour() -> None:
    start = int(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc).timestamp())
    assert time_bucket(NOW) == start
    assert time_bucket(NOW + timedelta(minutes=29, seconds=54)) == start
    assert time_bucket(NOW + timedelta(minutes=29, seconds=55)) == start + BUCKET_SECONDS
    assert time_bucket(start + 0.999) == start
    assert time_bucket(start) % BUCKET_SECONDS == 0


def test_time_bucket_treats_naive_datetime_as_utc() -> None:
    naive = datetime(2024, 5, 1, 12, 17, 0)
    aware = naive.replace(tzinfo=timezone.utc)
    assert time_bucket(naive) == time_bucket(aware)


def test_time_bucket_floors_before_epoch() -> None:
    assert time_bucket(-1) == -BUCKET_SECONDS
    assert time_bucket(-BUCKET_SECONDS) == -BUCKET_SECONDS


def test_request_key_defaults() -> None:
    key = request_key(None, "问题", NOW)
    assert key == RequestKey(user_id=0, time_bucket=time_bucket(NOW), query_text="问题".encode("utf-8"))
    assert request_key(7, b"\xff\x00", NOW).query_text == b"\xff\x00"
    assert request_key(7, None, NOW).query_text == b""


def test_seed_material_layout_is_le_user_le_time_then_raw_query() -> None:
    key = request_key(42, "问题", NOW)
    expected = hashlib.sha256(
        struct.pack("<Q", 42) + struct.pack("<q", key.time_bucket) + "问题".encode("utf-8")
    ).digest()
    assert seed_material(key) == expected
    assert len(expected) == 32


def test_fold_seed_xors_four_big_endian_words() -> None:
    material = bytes(range(32))
    assert fold_seed(material) == _xor_fold(material)
    assert fold_seed(b"\x00" * 32) == 0
    assert fold_seed(b"\xab" * 8 + b"\x00" * 24) == 0xABABABABABABABAB


def test_fold_seed_pads_short_material(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="pgb.seeding"):
        assert fold_seed(b"\x01") == 0x0100000000000000
    assert "seed_material_size_mismatch" in caplog.text


def test_derive_seed_matches_manual_digest() -> None:
    bucket = time_bucket(NOW)
    digest = hashlib.sha256(struct.pack("<Q", 42) + struct.pack("<q", bucket) + "问题".encode("utf-8")).digest()
    assert derive_seed(42, "问题", NOW) == _xor_fold(digest)


def test_derive_seed_is_stable_within_bucket() -> None:
    a = derive_seed(42, "问题", NOW)
    b = derive_seed(42, "问题", NOW + timedelta(minutes=20))
    assert a == b
    assert derive_seed(42, "问题", NOW) == a


def test_derive_seed_varies_with_each_field() -> None:
    base = derive_seed(42, "问题", NOW)
    assert derive_seed(43, "问题", NOW) != base
    assert derive_seed(42, "问题?", NOW) != base
    assert derive_seed(42, "问题", NOW + timedelta(minutes=30)) != base


def test_unpackable_user_id_is_logged_and_skipped(caplog) -> None:
    key = RequestKey(user_id=2**64, time_bucket=time_bucket(NOW), query_text=b"q")
    with caplog.at_level(logging.WARNING, logger="pgb.seeding"):
        material = seed_material(key)
    assert material == hashlib.sha256(struct.pack("<q", key.time_bucket) + b"q").digest()
    assert "seed_field_pack_failed" in caplog.text


def test_draw_stream_is_reproducible_and_counts_draws() -> None:
    s1 = new_stream(12345)
    s2 = DrawStream(12345)
    seq1 = [s1.next_u64() for _ in range(5)]
    seq2 = [s2.next_u64() for _ in range(5)]
    assert seq1 == seq2
    assert s1.draws == 5
    assert all(0 <= v < 2**64 for v in seq1)
    assert [DrawStream(12346).next_u64() for _ in range(5)] != seq1


def test_lone_surrogate_query_is_hashed() -> None:
    key = request_key(42, "\ud800", NOW)
    assert key.query_text == b"\xed\xa0\x80"
    assert derive_seed(42, "\ud800", NOW) == derive_seed(42, b"\xed\xa0\x80", NOW)
    assert derive_seed(42, "\ud800", NOW) != derive_seed(42, "\udc00", NOW)
