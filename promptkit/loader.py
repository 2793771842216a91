"""Loading documents from files and URLs, optionally through loader commands."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .command import run_loader_command
from .path import get_patch_extension
from .request import (
    DEFAULT_EXTENSION,
    RECURSIVE_URL_LOADER,
    CrawlOptions,
    Page,
    crawl_website,
    fetch_with_loaders,
)

EXTENSION_METADATA = "__extension__"

_INVALID_CRAWLER_RESPONSE = (
    'The crawler response is invalid. It should follow the JSON format: '
    '`[{"path":"...", "text":"..."}]`.'
)


@dataclass
class LoadedDocument:
    """A loaded document with its source path, text and metadata."""

    path: str
    contents: str
    metadata: dict[str, str] = field(default_factory=dict)


def _parse_pages(contents: str) -> list[Page]:
    try:
        data = json.loads(contents)
    except ValueError as err:
        raise ValueError(_INVALID_CRAWLER_RESPONSE) from err
    if not isinstance(data, list):
        raise ValueError(_INVALID_CRAWLER_RESPONSE)
    pages = []
    for item in data:
        if not isinstance(item, dict):
            raise ValueError(_INVALID_CRAWLER_RESPONSE)
        path, text = item.get("path"), item.get("text")
        if not isinstance(path, str) or not isinstance(text, str):
            raise ValueError(_INVALID_CRAWLER_RESPONSE)
        pages.append(Page(path=path, text=text))
    return pages


async def load_recursive_url(loaders: Mapping[str, str], path: str) -> list[LoadedDocument]:
    """Crawl ``path`` (or run the recursive URL loader) and return one document per page."""
    loader_command = loaders.get(RECURSIVE_URL_LOADER)
    if loader_command is not None:
        contents = run_loader_command(path, RECURSIVE_URL_LOADER, loader_command)
        pages = _parse_pages(contents)
    else:
        pages = await crawl_website(path, CrawlOptions.preset(path))
    return [
        LoadedDocument(page.path, page.text, {EXTENSION_METADATA: "md"}) for page in pages
    ]


async def load_file(loaders: Mapping[str, str], path: str) -> LoadedDocument:
    """Load a local file, through the loader registered for its extension if any."""
    extension = get_patch_extension(path) or DEFAULT_EXTENSION
    loader_command = loaders.get(extension)
    if loader_command is not None:
        return _load_with_command(path, extension, loader_command)
    return await _load_plain(path, extension)


async def load_url(loaders: Mapping[str, str], path: str) -> LoadedDocument:
    """Fetch a URL and return it as a document."""
    contents, extension = await fetch_with_loaders(loaders, path, False)
    return LoadedDocument(path, contents, {EXTENSION_METADATA: extension})


async def _load_plain(path: str, extension: str) -> LoadedDocument:
    contents = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
    return LoadedDocument(path, contents, {EXTENSION_METADATA: extension})


def _load_with_command(path: str, extension: str, loader_command: str) -> LoadedDocument:
    contents = run_loader_command(path, extension, loader_command)
    return LoadedDocument(path, contents, {EXTENSION_METADATA: DEFAULT_EXTENSION})