import pytest

from latlog.config import (
    Config,
    _is_field_type,
    _parse_bool,
    _parse_optional_str,
    _unwrap_optional,
)


def test_defaults() -> None:
    cfg = Config()
    assert cfg.sample_count == 0
    assert cfg.truncated_policy == "strict"
    assert cfg.runlog_path is None


def test_env_overrides_cli() -> None:
    cfg = Config.from_env_and_cli(
        {"sample_count": 10, "truncated_policy": "warn"},
        {"LATLOG_SAMPLE_COUNT": "250"},
    )
    assert cfg.sample_count == 250
    assert cfg.truncated_policy == "warn"


def test_env_optional_str_parses() -> None:
    cfg = Config.from_env_and_cli({}, {"LATLOG_RUNLOG_PATH": "/tmp/run.ndjson"})
    assert cfg.runlog_path == "/tmp/run.ndjson"
    cfg = Config.from_env_and_cli({"runlog_path": "x"}, {"LATLOG_RUNLOG_PATH": "none"})
    assert cfg.runlog_path is None


def test_env_bool_parses() -> None:
    cfg = Config.from_env_and_cli({}, {"LATLOG_TIME_OF_DAY_UTC": "off"})
    assert cfg.time_of_day_utc is False
    with pytest.raises(ValueError):
        Config.from_env_and_cli({}, {"LATLOG_TIME_OF_DAY_UTC": "maybe"})


def test_validate() -> None:
    Config().validate()
    with pytest.raises(ValueError):
        Config(truncated_policy="skip").validate()
    with pytest.raises(ValueError):
        Config(output_buffer_bytes=0).validate()


def test_unwrap_optional_string_annotations() -> None:
    assert _unwrap_optional("str | None") == ("str", True)
    assert _unwrap_optional("str|None") == ("str", True)
    assert _unwrap_optional("int") == ("int", False)


def test_is_field_type() -> None:
    assert _is_field_type("bool", "bool")
    assert _is_field_type("str | None", "str")
    assert not _is_field_type("int", "bool")
    assert not _is_field_type("str | None", "int")


def test_parse_optional_str() -> None:
    assert _parse_optional_str("") is None
    assert _parse_optional_str("  ") is None
    assert _parse_optional_str("NULL") is None
    assert _parse_optional_str("None") is None
    assert _parse_optional_str(" report.json ") == "report.json"


def test_parse_bool() -> None:
    for raw in ("1", "true", "YES", "y", "on"):
        assert _parse_bool(raw) is True
    for raw in ("0", "False", "no", "n", "off"):
        assert _parse_bool(raw) is False
    with pytest.raises(ValueError):
        _parse_bool("2")


def test_env_int_parses() -> None:
    cfg = Config.from_env_and_cli({}, {"LATLOG_OUTPUT_BUFFER_BYTES": "65536"})
    assert cfg.output_buffer_bytes == 65536
    with pytest.raises(ValueError):
        Config.from_env_and_cli({}, {"LATLOG_OUTPUT_BUFFER_BYTES": "64k"})


def test_env_plain_str_kept_verbatim() -> None:
    cfg = Config.from_env_and_cli({}, {"LATLOG_TRUNCATED_POLICY": "warn"})
    assert cfg.truncated_policy == "warn"
    cfg = Config.from_env_and_cli({}, {"LATLOG_TRUNCATED_POLICY": "none"})
    assert cfg.truncated_policy == "none"
    with pytest.raises(ValueError):
        cfg.validate()


def test_apply_overrides_none_only_clears_optional_fields() -> None:
    cfg = Config(runlog_path="run.ndjson", sample_count=7)
    cfg.apply_overrides({"runlog_path": None, "sample_count": None, "unknown": 1})
    assert cfg.runlog_path is None
    assert cfg.sample_count == 7
    assert not hasattr(cfg, "unknown")


def test_env_ignores_unrelated_variables() -> None:
    cfg = Config.from_env_and_cli({"sample_count": 3}, {"SAMPLE_COUNT": "9"})
    assert cfg.sample_count == 3
