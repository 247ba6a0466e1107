from __future__ import annotations

import argparse
import os
import sys
from dataclasses import fields
from pathlib import Path
from typing import Any

import orjson

from .config import TRUNCATED_POLICIES, Config, _is_field_type, _parse_bool
from .convert import convert_log
from .log_format import verify_log
from .runlog import RunLog

_POSITIONAL_FIELDS = {"sample_count"}


def _str2bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    try:
        return _parse_bool(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    for field in fields(Config):
        if field.name in _POSITIONAL_FIELDS:
            continue
        name = field.name.replace("_", "-")
        if _is_field_type(field.type, "bool"):
            group = parser.add_mutually_exclusive_group()
            group.add_argument(f"--{name}", dest=field.name, action="store_true")
            group.add_argument(f"--no-{name}", dest=field.name, action="store_false")
            parser.set_defaults(**{field.name: None})
        elif field.name == "truncated_policy":
            parser.add_argument(
                f"--{name}", dest=field.name, choices=TRUNCATED_POLICIES, default=None
            )
        else:
            parser.add_argument(f"--{name}", dest=field.name, default=None)


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field in fields(Config):
        value = getattr(ns, field.name, None)
        if value is None:
            continue
        if _is_field_type(field.type, "bool"):
            overrides[field.name] = _str2bool(value)
        elif _is_field_type(field.type, "int"):
            overrides[field.name] = int(value)
        else:
            overrides[field.name] = value
    return overrides


def _run_convert(args: argparse.Namespace, config: Config) -> int:
    runlog = RunLog(config.runlog_path)
    try:
        convert_log(
            Path(args.input),
            Path(args.output),
            sample_count=config.sample_count,
            truncated_policy=config.truncated_policy,
            utc=config.time_of_day_utc,
            output_buffer_bytes=config.output_buffer_bytes,
            runlog=runlog,
            report_json_path=(
                Path(config.report_json_path) if config.report_json_path else None
            ),
        )
    except (OSError, ValueError, OverflowError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        runlog.write(
            "convert_error",
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return 2
    finally:
        runlog.close()
    return 0


def _run_verify(args: argparse.Namespace) -> int:
    try:
        summary = verify_log(Path(args.input))
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(orjson.dumps(summary).decode("utf-8"))
    return 0 if summary["ok"] else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="latlog")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    _add_config_args(common)

    convert = subparsers.add_parser("convert", parents=[common])
    convert.add_argument("input")
    convert.add_argument("output")
    convert.add_argument(
        "sample_count",
        nargs="?",
        type=int,
        default=None,
        help="percentile sample capacity; takes precedence over LATLOG_SAMPLE_COUNT",
    )

    verify = subparsers.add_parser("verify")
    verify.add_argument("input")

    args = parser.parse_args(argv)

    if args.command == "verify":
        return _run_verify(args)

    try:
        overrides = _cli_overrides(args)
        config = Config.from_env_and_cli(overrides, os.environ)
        # An explicit positional argument wins over the environment.
        config.apply_overrides(
            {name: overrides[name] for name in _POSITIONAL_FIELDS if name in overrides}
        ).validate()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.command == "convert":
        return _run_convert(args, config)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
