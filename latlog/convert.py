from __future__ import annotations

import sys
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, TextIO

import orjson

from .log_format import TruncatedRecordError, format_line, iter_records
from .percentiles import PercentileReport, SampleCollector, compute_percentiles
from .runlog import RunLog
from .time_format import format_time_of_day


@dataclass(frozen=True)
class ConvertResult:
    input_path: Path
    output_path: Path
    records: int
    samples: int
    truncated: bool
    report: PercentileReport | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_path": str(self.input_path),
            "output_path": str(self.output_path),
            "records": int(self.records),
            "samples": int(self.samples),
            "truncated": bool(self.truncated),
            "percentiles": self.report.to_dict() if self.report is not None else None,
        }


def write_report_json(path: Path, result: ConvertResult) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(result.to_dict()) + b"\n")


def print_report(report: PercentileReport, out: TextIO) -> None:
    print(f"Sorting {report.count} results", file=out)
    for line in report.lines():
        print(line, file=out)


def convert_log(
    input_path: Path,
    output_path: Path,
    *,
    sample_count: int = 0,
    truncated_policy: str = "strict",
    utc: bool = True,
    output_buffer_bytes: int = 8192,
    runlog: RunLog | None = None,
    report_json_path: Path | None = None,
    out: TextIO | None = None,
) -> ConvertResult:
    """Convert a binary latency log into CSV lines and an optional report.

    Percentiles are only computed once both files are closed; an overflow
    while collecting samples aborts the run and leaves the CSV lines already
    written in place.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    if out is None:
        out = sys.stdout
    if runlog is None:
        runlog = RunLog(None)
    if truncated_policy not in ("strict", "warn"):
        raise ValueError(f"unknown truncated policy: {truncated_policy}")

    collector = SampleCollector(sample_count) if sample_count > 0 else None
    formatter = partial(format_time_of_day, utc=utc)
    truncations: list[TruncatedRecordError] = []

    def _on_truncated(error: TruncatedRecordError) -> None:
        truncations.append(error)
        print(f"Unexpected EOF while reading record #{error.ordinal}", file=out)
        runlog.write(
            "truncated_record",
            ordinal=error.ordinal,
            offset=error.offset,
            expected_bytes=error.expected,
            available_bytes=error.available,
        )

    runlog.write(
        "convert_start",
        input_path=input_path,
        output_path=output_path,
        sample_count=sample_count,
        truncated_policy=truncated_policy,
    )

    records = 0
    on_truncated = _on_truncated if truncated_policy == "warn" else None
    with input_path.open("rb") as in_fh, output_path.open(
        "w", encoding="utf-8", newline="", buffering=output_buffer_bytes
    ) as out_fh:
        for record in iter_records(in_fh, on_truncated=on_truncated):
            out_fh.write(format_line(record, formatter))
            if collector is not None:
                collector.add(record.latency_us)
            records += 1

    report = None
    if collector is not None:
        report = compute_percentiles(collector.samples())
    if report is not None:
        print_report(report, out)

    result = ConvertResult(
        input_path=input_path,
        output_path=output_path,
        records=records,
        samples=len(collector) if collector is not None else 0,
        truncated=bool(truncations),
        report=report,
    )
    if report_json_path is not None:
        write_report_json(Path(report_json_path), result)
    runlog.write(
        "convert_stop",
        records=result.records,
        samples=result.samples,
        truncated=result.truncated,
    )
    return result
