"""Fetching URLs through document loaders and crawling websites."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field, replace
from typing import Any, Mapping
from urllib.parse import urljoin, urlsplit, urlunsplit

import httpx
from bs4 import BeautifulSoup

from .command import run_loader_command
from .common import error_text, pretty_error, temp_file, warning_text
from .crypto import base64_encode
from .html_to_md import html_to_md
from .path import get_patch_extension

URL_LOADER = "url"
RECURSIVE_URL_LOADER = "recursive_url"

MEDIA_URL_EXTENSION = "media_url"
DEFAULT_EXTENSION = "txt"

MAX_CRAWLS = 5
BREAK_ON_ERROR = False
USER_AGENT = "curl/8.6.0"

_TIMEOUT = 30.0
_GITHUB_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

EXTENSION_RE = re.compile(r"\.[^.]+$")
GITHUB_REPO_RE = re.compile(r"^https://github\.com/([^/]+)/([^/]+)/tree/([^/]+)")

_CONTENT_TYPE_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "application/vnd.oasis.opendocument.text": "odt",
    "application/vnd.oasis.opendocument.spreadsheet": "ods",
    "application/vnd.oasis.opendocument.presentation": "odp",
    "application/rtf": "rtf",
    "text/javascript": "js",
    "text/html": "html",
}
_MEDIA_TYPES = ("image", "video", "audio")


@dataclass
class CrawlOptions:
    """What to extract from crawled pages and which links to skip."""

    extract: str | None = None
    exclude: list[str] = field(default_factory=list)
    no_log: bool = False

    @classmethod
    def preset(cls, start_url: str) -> "CrawlOptions":
        """Options suited to ``start_url``, or the defaults."""
        for pattern, options in _PRESET:
            if pattern.search(start_url):
                return replace(options, exclude=list(options.exclude))
        return cls()


_PRESET: list[tuple[re.Pattern[str], CrawlOptions]] = [
    (
        re.compile(r"github.com/([^/]+)/([^/]+)/tree/([^/]+)"),
        CrawlOptions(exclude=["changelog", "changes", "license"]),
    ),
    (
        re.compile(r"github.com/([^/]+)/([^/]+)/wiki"),
        CrawlOptions(exclude=["_history"], extract="#wiki-body"),
    ),
]


@dataclass
class Page:
    """A crawled page: its URL and its text as Markdown."""

    path: str
    text: str


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=_TIMEOUT, follow_redirects=True)


def _normalize_url(url: str) -> str:
    parts = urlsplit(url)
    if parts.netloc and not parts.path:
        parts = parts._replace(path="/")
    return urlunsplit(parts)


def _parse_absolute_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Invalid URL '{url}'")
    return _normalize_url(url)


def _join_url(base: str, path: str) -> str:
    return _normalize_url(urljoin(base, path))


async def fetch(url: str) -> str:
    """GET ``url`` and return the response body as text."""
    async with _client() as client:
        res = await client.get(url)
        return res.text


def _content_type(res: httpx.Response, path: str) -> str:
    value = res.headers.get("content-type")
    if value is None:
        return f"_/{get_patch_extension(path) or DEFAULT_EXTENSION}"
    mime, sep, _ = value.partition(";")
    return mime.strip() if sep else value


def _extension_for(content_type: str) -> tuple[str, bool]:
    """Map a content type to (extension, is_media)."""
    known = _CONTENT_TYPE_EXTENSIONS.get(content_type)
    if known is not None:
        return known, False
    first, sep, last = content_type.rpartition("/")
    if not sep:
        return DEFAULT_EXTENSION, False
    if first in _MEDIA_TYPES:
        return MEDIA_URL_EXTENSION, True
    return last.lower(), False


async def fetch_with_loaders(
    loaders: Mapping[str, str], path: str, allow_media: bool
) -> tuple[str, str]:
    """Fetch ``path`` and return (contents, extension), converting it where a loader applies."""
    loader_command = loaders.get(URL_LOADER)
    if loader_command is not None:
        return run_loader_command(path, URL_LOADER, loader_command), DEFAULT_EXTENSION

    async with _client() as client, client.stream("GET", path) as res:
        if not res.is_success:
            raise RuntimeError(f"Invalid status: {res.status_code} {res.reason_phrase}")
        content_type = _content_type(res, path)
        extension, is_media = _extension_for(content_type)

        if is_media:
            if not allow_media:
                raise ValueError("Unexpected media type")
            data = await res.aread()
            return f"data:{content_type};base64,{base64_encode(data)}", extension

        loader_command = loaders.get(extension)
        if loader_command is not None:
            save_path = str(temp_file("-download-", f".{extension}"))
            size = 0
            with open(save_path, "wb") as save_file:
                async for chunk in res.aiter_bytes():
                    size += len(chunk)
                    save_file.write(chunk)
            if size == 0:
                print(warning_text(f"No content at '{path}'"))
                return "", DEFAULT_EXTENSION
            return run_loader_command(save_path, extension, loader_command), DEFAULT_EXTENSION

        await res.aread()
        contents = res.text
    if extension == "html":
        return html_to_md(contents), "md"
    return contents, extension


def _lookup(value: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


async def _crawl_gh_tree(client: httpx.AsyncClient, start_url: str, exclude: list[str]) -> list[str]:
    segments = urlsplit(start_url).path.split("/")
    if len(segments) < 5:
        raise ValueError(f"Invalid gh tree {start_url}")
    owner, repo, branch = segments[1], segments[2], segments[4]
    root_path = "/".join(segments[5:])

    ref_url = f"https://api.github.com/repos/{owner}/{repo}/git/ref/heads/{branch}"
    res = await client.get(ref_url, headers=_GITHUB_HEADERS)
    sha = _lookup(res.json(), "object", "sha")
    if not isinstance(sha, str):
        raise ValueError("Not found branch or tag")

    tree_url = f"https://api.github.com/repos/{owner}/{repo}/git/trees/{sha}?recursive=true"
    res = await client.get(tree_url, headers=_GITHUB_HEADERS)
    tree = _lookup(res.json(), "tree")
    if not isinstance(tree, list):
        raise ValueError("Invalid github repo tree")

    paths = []
    for entry in tree:
        typ = _lookup(entry, "type")
        file_path = _lookup(entry, "path")
        if not isinstance(typ, str) or not isinstance(file_path, str):
            continue
        if (
            typ == "blob"
            and file_path.endswith((".md", ".MD"))
            and file_path.startswith(root_path)
            and not should_exclude_link(file_path, exclude)
        ):
            paths.append(f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{file_path}")
    return paths


async def _crawl_page(
    client: httpx.AsyncClient, start_url: str, path: str, options: CrawlOptions
) -> tuple[str, str, list[str]]:
    location = _join_url(start_url, path)
    response = await client.get(location, headers={"User-Agent": USER_AGENT})
    body = response.text

    if GITHUB_REPO_RE.search(start_url):
        return path, body, []

    document = BeautifulSoup(body, "html.parser")
    links: dict[str, None] = {}
    for anchor in document.find_all("a", href=True):
        try:
            href = _join_url(location, anchor["href"])
        except ValueError:
            continue
        href_path = urlsplit(href).path
        if href.startswith(location) and not should_exclude_link(href_path, options.exclude):
            links.setdefault(href_path, None)

    if options.extract:
        try:
            elements = document.select(options.extract)
        except Exception as err:
            raise ValueError(f"Invalid extract selector, {err}") from err
        text = "\n\n".join(html_to_md(str(element)) for element in elements)
    else:
        text = html_to_md(body)
    return path, text, list(links)


async def _crawl_one(
    client: httpx.AsyncClient, start_url: str, path: str, options: CrawlOptions
) -> tuple[str, str, list[str]]:
    try:
        url = _join_url(start_url, path)
    except ValueError as err:
        raise ValueError(f"Invalid crawl page at {path}") from err
    try:
        _, text, links = await _crawl_page(client, start_url, path, options)
    except (httpx.HTTPError, ValueError) as err:
        raise RuntimeError(f"Failed to crawl {url}") from err
    return url, text, links


async def crawl_website(start_url: str, options: CrawlOptions) -> list[Page]:
    """Crawl pages below ``start_url`` and return those with text."""
    start = _parse_absolute_url(start_url)
    paths = [urlsplit(start).path]
    normalized = normalize_start_url(start)
    if not options.no_log:
        print(
            f"Start crawling url={start} exclude={','.join(options.exclude)} "
            f"extract={options.extract or ''}"
        )

    pages: list[Page] = []
    async with _client() as client:
        if GITHUB_REPO_RE.search(start):
            try:
                paths = await _crawl_gh_tree(client, start, options.exclude)
            except (httpx.HTTPError, ValueError) as err:
                raise RuntimeError("Failed to craw github repo") from err

        index = 0
        while index < len(paths):
            batch = paths[index:index + MAX_CRAWLS]
            results = await asyncio.gather(
                *(_crawl_one(client, normalized, path, options) for path in batch),
                return_exceptions=True,
            )
            new_paths: list[str] = []
            for result in results:
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception) or BREAK_ON_ERROR:
                        raise result
                    if not options.no_log:
                        print(error_text(pretty_error(result)))
                    continue
                url, text, links = result
                if not options.no_log:
                    print(f"Crawled {url}")
                if text:
                    pages.append(Page(path=url, text=text))
                new_paths.extend(
                    link for link in links if not any(match_link(p, link) for p in paths)
                )
            paths.extend(new_paths)
            index += len(batch)
    return pages


def should_exclude_link(link: str, exclude: list[str]) -> bool:
    """Whether ``link`` has a fragment or its last segment is named in ``exclude``."""
    if "#" in link:
        return True
    name = link.rstrip("/").split("/")[-1].lower()
    for exclude_name in exclude:
        if EXTENSION_RE.search(exclude_name):
            matched = exclude_name.lower() == name
        else:
            matched = exclude_name.lower() == EXTENSION_RE.sub("", name, count=1).lower()
        if matched:
            return True
    return False


def normalize_start_url(start_url: str) -> str:
    """Drop query and fragment, and cut the path after its last slash."""
    parts = urlsplit(_normalize_url(start_url))
    slash = parts.path.rfind("/")
    path = parts.path[: slash + 1] if slash >= 0 else parts.path
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def _trim_suffix_all(value: str, suffix: str) -> str:
    while value.endswith(suffix):
        value = value[: -len(suffix)]
    return value


def match_link(path: str, link: str) -> bool:
    """Whether ``link`` points at ``path``, allowing for a trailing index page."""
    trimmed = _trim_suffix_all(_trim_suffix_all(link, "/index.html"), "/index.htm")
    return path == link or path == trimmed