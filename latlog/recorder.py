from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, BinaryIO, Callable

from .log_format import (
    MAX_CORRELATION_ID_LENGTH,
    check_correlation_id,
    encode_record,
    to_int64,
)
from .time_format import wall_clock_ms

DEFAULT_BUFFER_BYTES = 8192


class RecorderWriteError(RuntimeError):
    pass


class LatencyRecorder:
    """Appends latency records to a sink it owns.

    Every append (clock read plus the full frame write) runs under one lock,
    so concurrent callers never interleave bytes on the sink.
    """

    def __init__(
        self,
        sink: BinaryIO,
        *,
        max_correlation_id_length: int = MAX_CORRELATION_ID_LENGTH,
        clock_ms: Callable[[], int] = wall_clock_ms,
    ) -> None:
        if not 0 <= max_correlation_id_length <= MAX_CORRELATION_ID_LENGTH:
            raise ValueError(
                f"max_correlation_id_length must be within 0..{MAX_CORRELATION_ID_LENGTH}"
            )
        self._sink = sink
        self._lock = threading.Lock()
        self._max_correlation_id_length = max_correlation_id_length
        self._clock_ms = clock_ms
        self._records = 0
        self._closed = False

    @classmethod
    def open(
        cls,
        path: Path,
        *,
        buffer_size: int = DEFAULT_BUFFER_BYTES,
        **kwargs: Any,
    ) -> "LatencyRecorder":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        sink = path.open("ab", buffering=buffer_size)
        return cls(sink, **kwargs)

    @property
    def records(self) -> int:
        return self._records

    def record_latency(
        self,
        correlation_id: bytes,
        inbound_timestamp: int,
        outbound_timestamp: int,
    ) -> None:
        data = check_correlation_id(correlation_id, self._max_correlation_id_length)
        # Two's-complement wraparound, like a 64-bit subtraction.
        latency_us = to_int64(int(outbound_timestamp) - int(inbound_timestamp))
        with self._lock:
            if self._closed:
                raise RecorderWriteError("recorder is closed")
            frame = encode_record(data, self._clock_ms(), latency_us)
            try:
                self._sink.write(frame)
            except OSError as exc:
                raise RecorderWriteError("error writing latency record") from exc
            self._records += 1

    def flush(self) -> None:
        with self._lock:
            if self._closed:
                return
            try:
                self._sink.flush()
            except OSError as exc:
                raise RecorderWriteError("error flushing latency log") from exc

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._sink.close()
            except OSError as exc:
                raise RecorderWriteError("error closing latency log") from exc

    def __enter__(self) -> "LatencyRecorder":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()
