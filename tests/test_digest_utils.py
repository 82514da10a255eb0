import logging

import pytest

import digest_utils
from digest_utils import (
    CONTENT_BINARY,
    CONTENT_SHELL,
    CONTENT_TEXT,
    DEFAULT_CONFIG,
    ConfigNotFoundError,
    InvalidConfigError,
    classify_content,
    decode_best_effort,
    has_shell_shebang,
    load_and_validate_config,
    load_yaml_config,
    looks_binary,
    mb_to_bytes,
    read_sample,
    validate_config,
    validate_glob_pattern,
)


def test_looks_binary_false_on_empty_sample():
    assert looks_binary(b"") is False


def test_looks_binary_true_on_null_byte():
    """A single null byte is enough."""
    assert looks_binary(b"text\x00more") is True


def test_looks_binary_true_on_high_control_chars():
    # 4 of 10 bytes are 0x01: 40% > 30%
    assert looks_binary(b"\x01\x01\x01\x01abcdef") is True


def test_looks_binary_false_on_text():
    assert looks_binary(b"Hello world\nThis is text.") is False


def test_looks_binary_respects_allowed_control_chars():
    """Tabs, newlines and ANSI escapes do not count as binary control characters."""
    assert looks_binary(b"\t\t\n\nabcdef") is False
    assert looks_binary(b"\x1b[31mred\x1b[0m") is False


def test_classify_content():
    assert classify_content(b"\x00\x01") == CONTENT_BINARY
    assert classify_content(b"#!/bin/bash\necho\n") == CONTENT_SHELL
    assert classify_content(b"#!/usr/bin/env python3\n") == CONTENT_TEXT
    assert classify_content(b"") == CONTENT_TEXT


@pytest.mark.parametrize(
    "content, expected",
    [
        (b"#!/bin/sh\n", True),
        (b"#!/bin/bash", True),
        (b"#!/usr/bin/env bash\n", True),
        (b"#!/usr/bin/env -S bash -e\n", True),
        (b"#!/usr/local/bin/zsh\n", True),
        (b"#!/usr/bin/python\n", False),
        (b"#!/usr/bin/env node\n", False),
        (b"echo hi\n#!/bin/sh\n", False),
        ("#!/bin/sh\n", True),
    ],
)
def test_has_shell_shebang(content, expected):
    assert has_shell_shebang(content) is expected


def test_read_sample_limits_size(tmp_path):
    target = tmp_path / "big.txt"
    target.write_bytes(b"a" * 100)

    assert read_sample(target, size=10) == b"a" * 10
    assert read_sample(target) == b"a" * 100


def test_decode_best_effort_strips_bom():
    assert decode_best_effort("\ufeffhello".encode("utf-8")) == "hello"


def test_decode_best_effort_handles_legacy_encodings():
    text = decode_best_effort("naïve café\n".encode("latin-1"), source="legacy.txt")
    assert text.startswith("na")
    assert "caf" in text


def test_validate_glob_pattern_normalizes_backslashes(caplog):
    with caplog.at_level(logging.WARNING):
        assert validate_glob_pattern("build\\\\out") == "build/out"
    assert "backslashes" in caplog.text


def test_validate_glob_pattern_warns_on_mismatched_brackets(caplog):
    with caplog.at_level(logging.WARNING):
        assert validate_glob_pattern("file[0-9.txt") == "file[0-9.txt"
    assert "mismatched brackets" in caplog.text


@pytest.mark.parametrize("pattern", ["", "   ", None, 5])
def test_validate_glob_pattern_rejects_bad_values(pattern):
    with pytest.raises(InvalidConfigError):
        validate_glob_pattern(pattern, context="test")


def test_load_yaml_config_missing_file(tmp_path):
    with pytest.raises(ConfigNotFoundError):
        load_yaml_config(tmp_path / "missing.yml")


def test_load_yaml_config_empty_file(tmp_path):
    config_file = tmp_path / "empty.yml"
    config_file.write_text("", encoding="utf-8")

    with pytest.raises(InvalidConfigError, match="empty"):
        load_yaml_config(config_file)


def test_load_yaml_config_rejects_non_mapping(tmp_path):
    config_file = tmp_path / "list.yml"
    config_file.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(InvalidConfigError, match="mapping"):
        load_yaml_config(config_file)


def test_load_yaml_config_reports_location(tmp_path):
    config_file = tmp_path / "broken.yml"
    config_file.write_text("filters:\n  ignore_patterns: [unclosed\n", encoding="utf-8")

    with pytest.raises(InvalidConfigError) as excinfo:
        load_yaml_config(config_file)
    assert "Error parsing YAML file at line" in str(excinfo.value)


def test_load_and_validate_config_applies_defaults(tmp_path):
    config_file = tmp_path / "aidigest.yml"
    config_file.write_text("filters:\n  ignore_patterns: ['dist']\n", encoding="utf-8")

    config = load_and_validate_config(config_file)

    assert config['filters']['ignore_patterns'] == ['dist']
    assert config['filters']['use_default_ignores'] is True
    assert config['limits']['max_size_mb'] == digest_utils.DEFAULT_MAX_SIZE_MB
    assert config['output']['tree'] is True


def test_validate_config_does_not_share_defaults():
    config = validate_config({}, defaults=DEFAULT_CONFIG)
    config['filters']['ignore_patterns'].append('mutated')

    assert DEFAULT_CONFIG['filters']['ignore_patterns'] == []
    assert validate_config({}, defaults=DEFAULT_CONFIG)['filters']['ignore_patterns'] == []


def test_validate_config_fills_empty_sections():
    config = validate_config({'filters': None}, defaults=DEFAULT_CONFIG)
    assert config['filters']['use_gitignore'] is False


@pytest.mark.parametrize(
    "config, message",
    [
        ({'filters': {'use_gitignore': 'yes'}}, "filters.use_gitignore"),
        ({'filters': {'ignore_patterns': 'dist'}}, "ignore_patterns"),
        ({'filters': {'ignore_patterns': ['']}}, "must not be empty"),
        ({'limits': {'max_size_mb': -1}}, "max_size_mb"),
        ({'limits': {'max_size_mb': True}}, "max_size_mb"),
        ({'limits': {'max_size_mb': '10'}}, "max_size_mb"),
        ({'output': {'tree': 'no'}}, "output.tree"),
        ({'output': {'file': 3}}, "output.file"),
        ({'logging': {'level': 'LOUD'}}, "logging.level"),
        ({'limits': []}, "'limits' section"),
    ],
)
def test_validate_config_rejects_invalid_values(config, message):
    with pytest.raises(InvalidConfigError, match=message):
        validate_config(config, defaults=DEFAULT_CONFIG)


def test_validate_config_accepts_fractional_sizes():
    config = validate_config({'limits': {'max_size_mb': 0.5}}, defaults=DEFAULT_CONFIG)
    assert mb_to_bytes(config['limits']['max_size_mb']) == 512 * 1024


def test_validate_config_names_the_source():
    with pytest.raises(InvalidConfigError, match="from 'custom.yml'"):
        validate_config({'limits': {'max_size_mb': -5}}, defaults=DEFAULT_CONFIG, source="custom.yml")


def test_mb_to_bytes():
    assert mb_to_bytes(0) == 0
    assert mb_to_bytes(1) == 1024 * 1024
    assert mb_to_bytes(2.5) == int(2.5 * 1024 * 1024)
