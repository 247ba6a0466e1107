from __future__ import annotations

import time

FORMAT_LENGTH = 12  # HH:MM:SS.mmm

_MS_PER_DAY = 86_400_000


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def _utc_offset_ms(epoch_ms: int) -> int:
    local = time.localtime(epoch_ms // 1_000)
    return int(local.tm_gmtoff) * 1_000


def format_time_of_day(epoch_ms: int, *, utc: bool = True) -> str:
    """Render the time-of-day part of ``epoch_ms`` as ``HH:MM:SS.mmm``."""
    value = int(epoch_ms)
    if not utc:
        value += _utc_offset_ms(value)
    ms_of_day = value % _MS_PER_DAY
    hours, rem = divmod(ms_of_day, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1_000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"
