from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

ENV_PREFIX = "LATLOG_"

TRUNCATED_POLICIES = ("strict", "warn")


def _parse_bool(value: str) -> bool:
    val = str(value).strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"invalid bool: {value}")


def _unwrap_optional(field_type: str) -> tuple[str, bool]:
    # Postponed annotations arrive as text, e.g. "str | None".
    text = field_type.replace(" ", "")
    if text.endswith("|None"):
        return text[: -len("|None")], True
    return text, False


def _is_field_type(field_type: str, expected_name: str) -> bool:
    base_type, _is_optional = _unwrap_optional(field_type)
    return base_type == expected_name


def _parse_optional_str(raw: str) -> str | None:
    text = str(raw).strip()
    if text == "" or text.lower() in {"none", "null"}:
        return None
    return text


@dataclass
class Config:
    sample_count: int = 0
    truncated_policy: str = "strict"
    time_of_day_utc: bool = True
    runlog_path: str | None = None
    report_json_path: str | None = None
    output_buffer_bytes: int = 8192

    def validate(self) -> "Config":
        if self.truncated_policy not in TRUNCATED_POLICIES:
            raise ValueError(
                f"truncated_policy must be one of {', '.join(TRUNCATED_POLICIES)}: "
                f"{self.truncated_policy}"
            )
        if self.output_buffer_bytes <= 0:
            raise ValueError("output_buffer_bytes must be > 0")
        return self

    def apply_overrides(self, overrides: dict[str, Any]) -> "Config":
        for field in fields(self):
            name = field.name
            if name in overrides:
                value = overrides[name]
                if value is None:
                    _base_type, is_optional = _unwrap_optional(field.type)
                    if is_optional:
                        setattr(self, name, None)
                    continue
                setattr(self, name, value)
        return self

    @classmethod
    def from_env_and_cli(cls, cli_overrides: dict[str, Any], env: dict[str, str]) -> "Config":
        cfg = cls().apply_overrides(cli_overrides)
        for field in fields(cfg):
            env_key = ENV_PREFIX + field.name.upper()
            if env_key not in env:
                continue
            raw = env[env_key]
            _base_type, is_optional = _unwrap_optional(field.type)
            if is_optional:
                value = _parse_optional_str(raw)
            elif _is_field_type(field.type, "bool"):
                value = _parse_bool(raw)
            elif _is_field_type(field.type, "int"):
                value = int(raw)
            else:
                value = raw
            setattr(cfg, field.name, value)
        return cfg
