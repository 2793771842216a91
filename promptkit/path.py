"""Path helpers: safe joining, glob expansion and file listing."""

from __future__ import annotations

import os
from pathlib import Path


def safe_join_path(base_path: str | os.PathLike, sub_path: str | os.PathLike) -> Path | None:
    """Join ``sub_path`` onto ``base_path`` unless it would escape the base."""
    base = Path(base_path)
    sub = Path(sub_path)
    if sub.is_absolute():
        return None
    joined = base
    for part in sub.parts:
        if part == "..":
            return None
        joined = joined / part
    try:
        joined.relative_to(base)
    except ValueError:
        return None
    return joined


def _extension(path: str | os.PathLike) -> str | None:
    name = os.path.basename(os.fspath(path))
    if name in ("", "..") or name == ".":
        return None
    dot = name.rfind(".")
    if dot <= 0:
        return None
    return name[dot + 1:]


def parse_glob(path_str: str) -> tuple[str, list[str]]:
    """Split a glob such as ``dir/**/*.{md,txt}`` into a base path and extensions."""
    start = path_str.find("/**/*.")
    if start < 0:
        start = path_str.find("\\**\\*.")
    if start >= 0:
        base_path = path_str[:start]
        brace = path_str.find("}", start)
        if brace >= 0:
            extensions_str = path_str[start + 6:brace + 1]
            if extensions_str.startswith("{") and extensions_str.endswith("}"):
                return base_path, extensions_str[1:-1].split(",")
            raise ValueError(f"Invalid path '{path_str}'")
        return base_path, [path_str[start + 6:]]
    if path_str.endswith(("/**", "\\**")):
        return path_str[:-3], []
    return path_str, []


def _is_valid_extension(suffixes: list[str], path: str) -> bool:
    if not suffixes:
        return True
    extension = _extension(path)
    return extension is not None and extension in suffixes


def _list_files(files: dict[str, None], entry_path: str, suffixes: list[str], bail_non_exist: bool) -> None:
    if not os.path.exists(entry_path):
        if bail_non_exist:
            raise FileNotFoundError(f"Not found '{entry_path}'")
        return
    if os.path.isdir(entry_path):
        with os.scandir(entry_path) as entries:
            for entry in entries:
                if os.path.isdir(entry.path):
                    _list_files(files, entry.path, suffixes, bail_non_exist)
                elif _is_valid_extension(suffixes, entry.path):
                    files.setdefault(entry.path, None)
    elif _is_valid_extension(suffixes, entry_path):
        files.setdefault(entry_path, None)


def expand_glob_paths(paths: list[str], bail_non_exist: bool) -> list[str]:
    """Expand paths and globs into a de-duplicated list of files, in discovery order."""
    files: dict[str, None] = {}
    for path in paths:
        base, suffixes = parse_glob(path)
        _list_files(files, base, suffixes, bail_non_exist)
    return list(files)


def list_file_names(directory: str | os.PathLike, ext: str) -> list[str]:
    """Sorted names of entries in ``directory`` ending with ``ext``, with it removed."""
    try:
        names = os.listdir(directory)
    except OSError:
        return []
    stem_len = len(ext)
    return sorted(
        name[: len(name) - stem_len] if stem_len else name
        for name in names
        if name.endswith(ext)
    )


def get_patch_extension(path: str) -> str | None:
    """Lower-cased file extension of ``path``, or None."""
    extension = _extension(path)
    return extension.lower() if extension is not None else None