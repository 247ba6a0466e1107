from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import orjson

_ORJSON_NDJSON_OPTIONS = orjson.OPT_APPEND_NEWLINE
if hasattr(orjson, "OPT_ESCAPE_NON_ASCII"):
    _ORJSON_NDJSON_OPTIONS |= orjson.OPT_ESCAPE_NON_ASCII


def _normalize(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {str(key): _normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    return str(value)


class RunLog:
    """Append-only NDJSON event log. A ``None`` path disables it."""

    def __init__(self, path: Path | str | None) -> None:
        self._path = Path(path) if path is not None else None
        self._handle = None

    @property
    def enabled(self) -> bool:
        return self._path is not None

    @property
    def path(self) -> Path | None:
        return self._path

    def write(self, record_type: str, **fields: Any) -> None:
        if self._path is None:
            return
        if self._handle is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self._path.open("ab")
        record = {"record_type": record_type, "ts_wall_ns_utc": time.time_ns()}
        record.update(_normalize(fields))
        self._handle.write(orjson.dumps(record, option=_ORJSON_NDJSON_OPTIONS))
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RunLog":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()


def read_runlog(path: Path) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    if not path.exists():
        return records
    for line in path.read_bytes().splitlines():
        line = line.strip()
        if not line:
            continue
        records.append(orjson.loads(line))
    return records
