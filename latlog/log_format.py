from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

MAX_CORRELATION_ID_LENGTH = 255

RECORD_TAIL_STRUCT = struct.Struct(">Qq")
RECORD_TAIL_LEN = RECORD_TAIL_STRUCT.size

UINT64_MAX = (1 << 64) - 1
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def to_int64(value: int) -> int:
    return ((int(value) - INT64_MIN) % (1 << 64)) + INT64_MIN


class PreconditionViolation(AssertionError):
    """Caller broke the recorder contract (e.g. correlation id too long)."""


class TruncatedRecordError(ValueError):
    def __init__(self, ordinal: int, offset: int, expected: int, available: int) -> None:
        super().__init__(
            f"truncated record #{ordinal} at offset {offset}: "
            f"expected {expected} bytes, got {available}"
        )
        self.ordinal = ordinal
        self.offset = offset
        self.expected = expected
        self.available = available


@dataclass(frozen=True)
class LatencyRecord:
    correlation_id: bytes
    capture_timestamp_ms: int
    latency_us: int

    @property
    def encoded_len(self) -> int:
        return 1 + len(self.correlation_id) + RECORD_TAIL_LEN


def check_correlation_id(
    correlation_id: bytes,
    max_length: int = MAX_CORRELATION_ID_LENGTH,
) -> bytes:
    if not isinstance(correlation_id, (bytes, bytearray, memoryview)):
        raise TypeError("correlation_id must be bytes-like")
    data = bytes(correlation_id)
    limit = min(max_length, MAX_CORRELATION_ID_LENGTH)
    if len(data) > limit:
        raise PreconditionViolation(f"correlation id length {len(data)} exceeds {limit}")
    return data


def encode_record(
    correlation_id: bytes,
    capture_timestamp_ms: int,
    latency_us: int,
) -> bytes:
    data = check_correlation_id(correlation_id)
    if not 0 <= capture_timestamp_ms <= UINT64_MAX:
        raise ValueError(f"capture timestamp out of range: {capture_timestamp_ms}")
    if not INT64_MIN <= latency_us <= INT64_MAX:
        raise ValueError(f"latency out of int64 range: {latency_us}")
    return (
        bytes((len(data),))
        + data
        + RECORD_TAIL_STRUCT.pack(capture_timestamp_ms, latency_us)
    )


def decode_record(frame: bytes) -> LatencyRecord:
    if not frame:
        raise ValueError("empty frame")
    length = frame[0]
    expected = 1 + length + RECORD_TAIL_LEN
    if len(frame) != expected:
        raise ValueError(f"frame length {len(frame)} does not match declared {expected}")
    capture_timestamp_ms, latency_us = RECORD_TAIL_STRUCT.unpack_from(frame, 1 + length)
    return LatencyRecord(
        correlation_id=bytes(frame[1 : 1 + length]),
        capture_timestamp_ms=capture_timestamp_ms,
        latency_us=latency_us,
    )


def iter_records(
    handle: BinaryIO,
    *,
    on_truncated: Callable[[TruncatedRecordError], None] | None = None,
) -> Iterator[LatencyRecord]:
    """Decode records from ``handle`` in write order.

    A short read after a length byte raises :class:`TruncatedRecordError`
    unless ``on_truncated`` is given, in which case the callback receives
    the error and the stream ends without emitting the partial record.
    """
    offset = 0
    ordinal = 0
    while True:
        head = handle.read(1)
        if not head:
            return
        ordinal += 1
        length = head[0]
        body_len = length + RECORD_TAIL_LEN
        body = handle.read(body_len)
        if len(body) != body_len:
            error = TruncatedRecordError(ordinal, offset, body_len, len(body))
            if on_truncated is None:
                raise error
            on_truncated(error)
            return
        capture_timestamp_ms, latency_us = RECORD_TAIL_STRUCT.unpack_from(body, length)
        yield LatencyRecord(
            correlation_id=body[:length],
            capture_timestamp_ms=capture_timestamp_ms,
            latency_us=latency_us,
        )
        offset += 1 + body_len


def read_records(
    log_path: Path,
    *,
    on_truncated: Callable[[TruncatedRecordError], None] | None = None,
) -> Iterator[LatencyRecord]:
    with Path(log_path).open("rb") as handle:
        yield from iter_records(handle, on_truncated=on_truncated)


def correlation_id_text(record: LatencyRecord) -> str:
    return record.correlation_id.decode("utf-8", errors="replace")


def format_line(record: LatencyRecord, formatter: Callable[[int], str]) -> str:
    return (
        f"{formatter(record.capture_timestamp_ms)},"
        f"{correlation_id_text(record)},"
        f"{record.latency_us}\n"
    )


def verify_log(log_path: Path) -> dict:
    log_path = Path(log_path)
    size = log_path.stat().st_size
    records = 0
    offset = 0
    last_good_offset: int | None = None
    first_bad_offset: int | None = None
    latency_min: int | None = None
    latency_max: int | None = None
    truncated = False

    def _mark_truncated(error: TruncatedRecordError) -> None:
        nonlocal truncated, first_bad_offset
        truncated = True
        first_bad_offset = error.offset

    for record in read_records(log_path, on_truncated=_mark_truncated):
        records += 1
        last_good_offset = offset
        offset += record.encoded_len
        if latency_min is None or record.latency_us < latency_min:
            latency_min = record.latency_us
        if latency_max is None or record.latency_us > latency_max:
            latency_max = record.latency_us

    return {
        "ok": not truncated,
        "records": records,
        "truncated": truncated,
        "first_bad_offset": first_bad_offset,
        "last_good_offset": last_good_offset,
        "log_bytes": size,
        "latency_min_us": latency_min,
        "latency_max_us": latency_max,
    }
