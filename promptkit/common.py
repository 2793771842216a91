"""General helpers: time, environment names, text formatting, fuzzy matching."""

from __future__ import annotations

import math
import os
import re
import struct
import sys
import tempfile
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, TypeVar

import regex

T = TypeVar("T")

_CRATE_NAME = "promptkit"

CODE_BLOCK_RE = re.compile(r"```\w*(.*)```", re.MULTILINE | re.DOTALL)
IS_STDOUT_TERMINAL = sys.stdout.isatty()

_NOT_WORD = r"\W\p{Ideographic}\p{Hiragana}"
_WORD_RE = regex.compile(
    rf"[\p{{Ideographic}}\p{{Hiragana}}]|[^{_NOT_WORD}]+(?:[.:'’][^{_NOT_WORD}]+)*"
)
_U8_RE = re.compile(r"\+?[0-9]+")


class Color(Enum):
    """ANSI foreground colours."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    PURPLE = 35
    CYAN = 36
    WHITE = 37


def now() -> str:
    """Current local time as RFC 3339 with second precision."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def now_timestamp() -> int:
    """Current Unix timestamp in seconds."""
    return int(datetime.now().timestamp())


def get_env_name(key: str) -> str:
    """Name of the application's environment variable for ``key``."""
    return f"{_CRATE_NAME}_{key}".upper()


def normalize_env_name(value: str) -> str:
    return value.replace("-", "_").upper()


def parse_bool(value: str) -> bool | None:
    """Parse '1'/'true' and '0'/'false'; anything else gives None."""
    if value in ("1", "true"):
        return True
    if value in ("0", "false"):
        return False
    return None


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def estimate_token_length(text: str) -> int:
    """Rough token count: ASCII words weigh 1.3, other words by character count."""
    total = 0.0
    for word in _WORD_RE.findall(text):
        if word.isascii():
            weight = 1.3
        else:
            count = len(word)
            weight = 1.0 if count == 1 else count * 0.5
        total = _f32(total + _f32(weight))
    return math.ceil(total)


def _ansi256_rgb(index: int) -> tuple[int, int, int]:
    system = [
        (0, 0, 0), (205, 0, 0), (0, 205, 0), (205, 205, 0),
        (0, 0, 238), (205, 0, 205), (0, 205, 205), (229, 229, 229),
        (127, 127, 127), (255, 0, 0), (0, 255, 0), (255, 255, 0),
        (92, 92, 255), (255, 0, 255), (0, 255, 255), (255, 255, 255),
    ]
    if index < 16:
        return system[index]
    if index < 232:
        levels = (0, 95, 135, 175, 215, 255)
        n = index - 16
        return levels[n // 36], levels[(n // 6) % 6], levels[n % 6]
    grey = 8 + 10 * (index - 232)
    return grey, grey, grey


def light_theme_from_colorfgbg(colorfgbg: str) -> bool | None:
    """Guess from a COLORFGBG value whether the terminal background is light."""
    parts = colorfgbg.split(";")
    if len(parts) == 2:
        bg = parts[1]
    elif len(parts) == 3:
        bg = parts[2]
    else:
        return None
    if not _U8_RE.fullmatch(bg):
        return None
    index = int(bg)
    if index > 255:
        return None
    r, g, b = _ansi256_rgb(index)
    luminance = 0.2126 * r + 0.7152 * g + 0.0722 * b
    return luminance > 128.0


def extract_block(text: str) -> str:
    """Return the contents of fenced code blocks, or the trimmed input if none."""
    output = "".join(m.group(1) for m in CODE_BLOCK_RE.finditer(text))
    return output.strip() if output else text.strip()


def convert_option_string(value: str) -> str | None:
    return value or None


def _char_class(ch: str) -> str:
    if ch.islower():
        return "lower"
    if ch.isupper():
        return "upper"
    if ch.isdigit():
        return "number"
    if ch.isalpha():
        return "letter"
    return "nonword"


_SCORE_MATCH = 16
_GAP_START = -3
_GAP_EXTENSION = -1
_BONUS_BOUNDARY = _SCORE_MATCH // 2
_BONUS_CAMEL = _BONUS_BOUNDARY + _GAP_EXTENSION
_BONUS_CONSECUTIVE = -(_GAP_START + _GAP_EXTENSION)
_FIRST_CHAR_MULTIPLIER = 2


def _bonus(prev: str, cur: str) -> int:
    if prev == "nonword" and cur != "nonword":
        return _BONUS_BOUNDARY
    if (prev == "lower" and cur == "upper") or (prev != "number" and cur == "number"):
        return _BONUS_CAMEL
    if cur == "nonword":
        return _BONUS_BOUNDARY
    return 0


def _fuzzy_score(choice: str, pattern: str) -> int | None:
    if not pattern:
        return 0
    if not any(c.isupper() for c in pattern):
        text, pat = choice.lower(), pattern.lower()
    else:
        text, pat = choice, pattern

    pidx, end = 0, -1
    for idx, ch in enumerate(text):
        if ch == pat[pidx]:
            pidx += 1
            if pidx == len(pat):
                end = idx + 1
                break
    if end < 0:
        return None

    pidx, start = len(pat) - 1, 0
    for idx in range(end - 1, -1, -1):
        if text[idx] == pat[pidx]:
            pidx -= 1
            if pidx < 0:
                start = idx
                break

    score, consecutive, first_bonus, in_gap, pidx = 0, 0, 0, False, 0
    prev_class = _char_class(choice[start - 1]) if start > 0 else "nonword"
    for idx in range(start, end):
        cls = _char_class(choice[idx])
        if pidx < len(pat) and text[idx] == pat[pidx]:
            score += _SCORE_MATCH
            bonus = _bonus(prev_class, cls)
            if consecutive == 0:
                first_bonus = bonus
            else:
                if bonus == _BONUS_BOUNDARY:
                    first_bonus = bonus
                bonus = max(bonus, first_bonus, _BONUS_CONSECUTIVE)
            score += bonus * _FIRST_CHAR_MULTIPLIER if pidx == 0 else bonus
            in_gap = False
            consecutive += 1
            pidx += 1
        else:
            score += _GAP_EXTENSION if in_gap else _GAP_START
            in_gap = True
            consecutive = 0
            first_bonus = 0
        prev_class = cls
    return score


def fuzzy_filter(values: Iterable[T], get: Callable[[T], str], pattern: str) -> list[T]:
    """Keep values whose key fuzzily matches ``pattern``, best matches first."""
    scored = []
    for value in values:
        score = _fuzzy_score(get(value), pattern)
        if score is not None:
            scored.append((value, score))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [value for value, _ in scored]


def _causes(err: BaseException) -> list[BaseException]:
    causes: list[BaseException] = []
    seen = {id(err)}
    current: BaseException | None = err
    while current is not None:
        nxt = current.__cause__
        if nxt is None and not current.__suppress_context__:
            nxt = current.__context__
        if nxt is None or id(nxt) in seen:
            break
        seen.add(id(nxt))
        causes.append(nxt)
        current = nxt
    return causes


def pretty_error(err: BaseException) -> str:
    """Format an exception and its chain of causes."""
    output = [f"Error: {err}"]
    causes = _causes(err)
    if causes:
        output.append("\nCaused by:")
        if len(causes) == 1:
            output.append(f"    {indent_text(causes[0], 4).strip()}")
        else:
            for i, cause in enumerate(causes):
                output.append(f"{i:5}: {indent_text(cause, 7).strip()}")
    return "\n".join(output)


def indent_text(s: object, size: int) -> str:
    indent = " " * size
    return "\n".join(indent + line for line in str(s).split("\n"))


def _no_color() -> bool:
    return bool(parse_bool(os.environ.get("NO_COLOR", ""))) or not sys.stdout.isatty()


def error_text(text: str) -> str:
    return color_text(text, Color.RED)


def warning_text(text: str) -> str:
    return color_text(text, Color.YELLOW)


def color_text(text: str, color: Color) -> str:
    if _no_color():
        return text
    return f"\x1b[{color.value}m{text}\x1b[0m"


def dimmed_text(text: str) -> str:
    if _no_color():
        return text
    return f"\x1b[2m{text}\x1b[0m"


def multiline_text(text: str) -> str:
    """Prefix every line after the first with '.. '."""
    first, *rest = text.split("\n")
    return "\n".join([first, *(f".. {line}" for line in rest)])


def temp_file(prefix: str, suffix: str) -> Path:
    """A unique path in the temp directory (the file is not created)."""
    name = f"{_CRATE_NAME.lower()}-{os.getpid()}{prefix}{uuid.uuid4()}{suffix}"
    return Path(tempfile.gettempdir()) / name


def is_url(path: str) -> bool:
    return path.startswith(("http://", "https://"))