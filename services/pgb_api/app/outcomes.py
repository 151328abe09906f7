from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Protocol, Sequence


class OutcomeTableError(RuntimeError):
    pass


class Stream(Protocol):
    def next_u64(self) -> int: ...


@dataclass(frozen=True)
class Bucket:
    lo: int
    hi: int
    label: str


@dataclass(frozen=True)
class OutcomeTable:
    """Ordered buckets partitioning [0, modulus); checked on construction."""

    name: str
    modulus: int
    buckets: tuple[Bucket, ...]
    _bounds: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.modulus <= 0 or not self.buckets:
            raise OutcomeTableError(f"{self.name}: empty table")
        cursor = 0
        for b in self.buckets:
            if b.lo != cursor or b.hi <= b.lo:
                raise OutcomeTableError(f"{self.name}: bucket [{b.lo}, {b.hi}) does not start at {cursor}")
            cursor = b.hi
        if cursor != self.modulus:
            raise OutcomeTableError(f"{self.name}: buckets end at {cursor}, expected {self.modulus}")
        object.__setattr__(self, "_bounds", tuple(b.hi for b in self.buckets))

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(b.label for b in self.buckets)

    def bucket(self, value: int) -> Bucket:
        r = value % self.modulus
        i = bisect.bisect_right(self._bounds, r)
        if i >= len(self.buckets) or not (self.buckets[i].lo <= r < self.buckets[i].hi):
            raise OutcomeTableError(f"{self.name}: no bucket for {r}")
        return self.buckets[i]

    def lookup(self, value: int) -> str:
        return self.bucket(value).label


def _table(name: str, modulus: int, uppers: Sequence[int], labels: Sequence[str]) -> OutcomeTable:
    los = [0, *uppers]
    his = [*uppers, modulus]
    return OutcomeTable(
        name=name,
        modulus=modulus,
        buckets=tuple(Bucket(lo, hi, label) for lo, hi, label in zip(los, his, labels)),
    )


OMEN_BAD = "凶"
OMEN_NEUTRAL = ""
OMEN_GOOD = "吉"
NEUTRAL_SIGN = "尚可"

OMEN_TABLE = _table("omen", 16, (7, 9), (OMEN_BAD, OMEN_NEUTRAL, OMEN_GOOD))

INTENSITY_TABLE = _table(
    "intensity",
    1024,
    (1, 11, 56, 176, 386, 638, 848, 968, 1013, 1023),
    ("极小", "超小", "特小", "甚小", "小", "", "大", "甚大", "特大", "超大", "极大"),
)

DOG_PREFIX = "Pia!▼(ｏ ‵-′)ノ★"
CAT_PREFIX = "Pia!<(=ｏ ‵-′)ノ☆"

SLAP_TABLE = _table("slap", 8, (1,), (DOG_PREFIX, CAT_PREFIX))

DIVINATION_QUERY_PREFIX = "所求事项: "
DIVINATION_RESULT_PREFIX = "\n结果: "


def write_strings(buf: list[str], *parts: str) -> None:
    buf.extend(parts)


def omen(o: int) -> str:
    return OMEN_TABLE.lookup(o)


def intensity(m: int) -> str:
    return INTENSITY_TABLE.lookup(m)


def slap_actor(v: int) -> str:
    return SLAP_TABLE.lookup(v)


def generate_slap(stream: Stream, query_text: str) -> str:
    buf: list[str] = []
    write_strings(buf, slap_actor(stream.next_u64()), " ", query_text)
    return "".join(buf)


def generate_divination(stream: Stream, query_text: str) -> str:
    """Render a divination; neutral omens consume one draw, others two."""
    buf: list[str] = []
    write_strings(buf, DIVINATION_QUERY_PREFIX, query_text, DIVINATION_RESULT_PREFIX)

    sign = omen(stream.next_u64())
    if sign == OMEN_NEUTRAL:
        write_strings(buf, NEUTRAL_SIGN)
    else:
        write_strings(buf, intensity(stream.next_u64()), sign)

    return "".join(buf)
