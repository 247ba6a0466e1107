"""Binary latency capture log and offline percentile reporting."""

__all__ = [
    "cli",
    "config",
    "convert",
    "log_format",
    "percentiles",
    "recorder",
    "runlog",
    "time_format",
]
