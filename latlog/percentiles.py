from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


class LatencyOverflowError(OverflowError):
    pass


@dataclass(slots=True)
class SampleCollector:
    capacity: int
    _samples: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ValueError("capacity must be >= 0")

    @property
    def full(self) -> bool:
        return len(self._samples) >= self.capacity

    def add(self, latency_us: int) -> bool:
        if self.full:
            return False
        if not INT32_MIN <= latency_us <= INT32_MAX:
            raise LatencyOverflowError(f"Latency value exceeds INT32: {latency_us}")
        self._samples.append(int(latency_us))
        return True

    def __len__(self) -> int:
        return len(self._samples)

    def samples(self) -> list[int]:
        return list(self._samples)


@dataclass(slots=True)
class PercentileReport:
    count: int
    min_us: int
    max_us: int
    median_us: int
    p99_us: int
    p99_9_us: int
    p99_99_us: int
    p99_999_us: int

    def to_dict(self) -> dict[str, int]:
        return {
            "count": int(self.count),
            "min_us": int(self.min_us),
            "max_us": int(self.max_us),
            "median_us": int(self.median_us),
            "p99_us": int(self.p99_us),
            "p99_9_us": int(self.p99_9_us),
            "p99_99_us": int(self.p99_99_us),
            "p99_999_us": int(self.p99_999_us),
        }

    def lines(self) -> list[str]:
        return [
            f"MIN: {self.min_us}",
            f"MAX: {self.max_us}",
            f"MEDIAN: {self.median_us}",
            f"99.000%: {self.p99_us}",
            f"99.900%: {self.p99_9_us}",
            f"99.990%: {self.p99_99_us}",
            f"99.999%: {self.p99_999_us}",
        ]


def rank_index(count: int, numerator: int, denominator: int) -> int:
    # Integer truncation only; never rounds or interpolates.
    return (numerator * count) // denominator


def compute_percentiles(samples: Iterable[int]) -> PercentileReport | None:
    ordered = sorted(samples)
    count = len(ordered)
    if count == 0:
        return None
    return PercentileReport(
        count=count,
        min_us=ordered[0],
        max_us=ordered[count - 1],
        median_us=ordered[count // 2],
        p99_us=ordered[rank_index(count, 99, 100)],
        p99_9_us=ordered[rank_index(count, 999, 1_000)],
        p99_99_us=ordered[rank_index(count, 9_999, 10_000)],
        p99_999_us=ordered[rank_index(count, 99_999, 100_000)],
    )
