import math
import os
import sys
import tempfile
import time
from datetime import datetime
from pathlib import Path

import pytest

from promptkit.common import (
    Color,
    color_text,
    convert_option_string,
    dimmed_text,
    error_text,
    estimate_token_length,
    extract_block,
    fuzzy_filter,
    get_env_name,
    indent_text,
    is_url,
    light_theme_from_colorfgbg,
    multiline_text,
    normalize_env_name,
    now,
    now_timestamp,
    parse_bool,
    pretty_error,
    temp_file,
    warning_text,
)


class _FakeTTY:
    def isatty(self):
        return True

    def write(self, data):
        return len(data)

    def flush(self):
        pass


def test_now_is_rfc3339_with_offset():
    parsed = datetime.fromisoformat(now())
    assert parsed.tzinfo is not None
    assert parsed.microsecond == 0


def test_now_timestamp_matches_clock():
    assert abs(now_timestamp() - time.time()) < 5


def test_get_env_name_uppercases_and_prefixes():
    name = get_env_name("shell")
    assert name == name.upper()
    assert name.endswith("_SHELL")


def test_normalize_env_name_invariants():
    result = normalize_env_name("my-key-name")
    assert "-" not in result
    assert result == result.upper()
    assert result.lower().replace("_", "-") == "my-key-name"


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("true", True), ("0", False), ("false", False), ("yes", None), ("", None)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_estimate_token_length_ascii():
    assert estimate_token_length("hello world") == 3


def test_estimate_token_length_single_char_word():
    assert estimate_token_length("你") == 1


def test_estimate_token_length_empty_and_monotonic():
    assert estimate_token_length("") == 0
    short = estimate_token_length("one two")
    longer = estimate_token_length("one two three four")
    assert longer >= short


@pytest.mark.parametrize("value", ["15;0", "0;15", "0;default;15", "15;default;0"])
def test_light_theme_is_bool_for_valid(value):
    result = light_theme_from_colorfgbg(value)
    assert result in (True, False)


def test_light_theme_black_and_white_backgrounds():
    assert light_theme_from_colorfgbg("15;0") is False
    assert light_theme_from_colorfgbg("0;15") is True
    assert light_theme_from_colorfgbg("0;default;15") is True


@pytest.mark.parametrize("value", ["", "15", "0;abc", "0;256", "1;2;3;4"])
def test_light_theme_invalid(value):
    assert light_theme_from_colorfgbg(value) is None


def test_extract_block_returns_code():
    text = "Here:\n```rust\nfn main() {}\n```\nbye"
    assert extract_block(text) == "fn main() {}"


def test_extract_block_without_fence_trims():
    assert extract_block("  just text \n") == "just text"


def test_convert_option_string():
    assert convert_option_string("") is None
    assert convert_option_string("value") == "value"


def test_fuzzy_filter_orders_and_filters():
    values = ["banana", "grape", "apple"]
    result = fuzzy_filter(values, lambda v: v, "ap")
    assert result == ["apple", "grape"]


def test_fuzzy_filter_uses_key_function():
    items = [{"name": "alpha"}, {"name": "beta"}]
    result = fuzzy_filter(items, lambda v: v["name"], "bt")
    assert result == [{"name": "beta"}]


def test_fuzzy_filter_empty_pattern_keeps_all():
    values = ["a", "b", "c"]
    assert sorted(fuzzy_filter(values, lambda v: v, "")) == values


def test_pretty_error_without_cause():
    assert pretty_error(ValueError("boom")) == "Error: boom"


def test_pretty_error_single_cause():
    try:
        try:
            raise OSError("inner")
        except OSError as exc:
            raise RuntimeError("outer") from exc
    except RuntimeError as err:
        text = pretty_error(err)
    lines = text.split("\n")
    assert lines[0] == "Error: outer"
    assert "Caused by:" in text
    assert lines[-1] == "    inner"


def test_pretty_error_multiple_causes_are_numbered():
    try:
        try:
            try:
                raise OSError("root")
            except OSError as exc:
                raise KeyError("mid") from exc
        except KeyError as exc:
            raise RuntimeError("top") from exc
    except RuntimeError as err:
        text = pretty_error(err)
    lines = text.split("\n")
    assert lines[-2].lstrip().startswith("0:")
    assert lines[-1].lstrip().startswith("1:")
    assert lines[-1].endswith("root")


def test_indent_text_invariant():
    original = "a\nbb\n"
    result = indent_text(original, 3)
    lines = result.split("\n")
    assert all(line.startswith("   ") for line in lines)
    assert "\n".join(line[3:] for line in lines) == original


def test_multiline_text_invariant():
    lines = multiline_text("first\nsecond\nthird").split("\n")
    assert lines[0] == "first"
    assert [line[3:] for line in lines[1:]] == ["second", "third"]
    assert all(line.startswith(".. ") for line in lines[1:])


def test_colors_disabled_without_terminal(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    assert error_text("boom") == "boom"
    assert warning_text("careful") == "careful"
    assert dimmed_text("dim") == "dim"


def test_colors_enabled_on_terminal(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setattr(sys, "stdout", _FakeTTY())
    red = error_text("boom")
    yellow = color_text("boom", Color.YELLOW)
    assert red.startswith("\x1b[") and red.endswith("\x1b[0m")
    assert "boom" in red
    assert red != yellow
    assert dimmed_text("dim").endswith("dim\x1b[0m")


def test_temp_file_location_and_uniqueness():
    first = temp_file("-output-", ".txt")
    second = temp_file("-output-", ".txt")
    assert first.parent == Path(tempfile.gettempdir())
    assert first.name.endswith(".txt")
    assert f"-{os.getpid()}-output-" in first.name
    assert first != second


@pytest.mark.parametrize(
    "path, expected",
    [("http://", True), ("https://", True), ("ftp://x", False), ("file.txt", False)],
)
def test_is_url(path, expected):
    assert is_url(path) is expected


def test_estimate_is_ceiling_of_positive():
    value = estimate_token_length("a b c d e f g h i j")
    assert value >= math.floor(10 * 1.3)