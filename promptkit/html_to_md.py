"""Convert HTML documents to Markdown text."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import CData, PreformattedString

_CHROME = {
    "head", "script", "style", "noscript", "nav", "footer", "header", "aside",
    "iframe", "template", "svg", "button", "form",
}
_BLOCKS = {
    "p", "div", "section", "article", "main", "body", "html", "blockquote",
    "address", "figure", "figcaption", "dl", "dt", "dd", "hr",
}
_HEADINGS = {f"h{n}": n for n in range(1, 7)}
_STYLES = {
    "strong": "**", "b": "**",
    "em": "*", "i": "*",
    "del": "~~", "s": "~~", "strike": "~~",
}
_WHITESPACE = re.compile(r"\s+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def html_to_md(html: str) -> str:
    """Convert ``html`` to Markdown; on failure, return the input unchanged."""
    try:
        soup = BeautifulSoup(html, "html.parser")
        return _finish(_render_children(soup))
    except (RecursionError, ValueError, AssertionError):
        return html


def _render_children(node: Tag) -> str:
    out = ""
    for child in node.children:
        piece = _render(child)
        if not piece:
            continue
        if not out or out.endswith("\n"):
            piece = piece.lstrip(" ")
        elif out.endswith(" ") and piece.startswith(" "):
            piece = piece[1:]
        out += piece
    return out


def _render(node) -> str:
    if isinstance(node, NavigableString):
        if isinstance(node, PreformattedString) and not isinstance(node, CData):
            return ""
        return _WHITESPACE.sub(" ", str(node))
    if not isinstance(node, Tag):
        return ""

    name = node.name.lower()
    if name in _CHROME:
        return ""
    if name in _HEADINGS:
        text = _render_children(node).strip().replace("\n", " ")
        return f"\n\n{'#' * _HEADINGS[name]} {text}\n\n" if text else ""
    if name in _BLOCKS:
        return f"\n\n{_render_children(node)}\n\n"
    if name == "br":
        return "\n"
    if name in _STYLES:
        return _wrap(_render_children(node), _STYLES[name])
    if name == "code":
        text = node.get_text()
        return f"`{text}`" if text else ""
    if name == "pre":
        return _render_pre(node)
    if name in ("ul", "ol"):
        return _render_list(node, ordered=name == "ol")
    if name == "li":
        return f"\n- {_finish(_render_children(node))}\n"
    if name == "table":
        return _render_table(node)
    return _render_children(node)


def _wrap(inner: str, mark: str) -> str:
    stripped = inner.strip()
    if not stripped:
        return inner
    lead = " " if inner[:1].isspace() else ""
    trail = " " if inner[-1:].isspace() else ""
    return f"{lead}{mark}{stripped}{mark}{trail}"


def _render_pre(node: Tag) -> str:
    language = ""
    code = node.find("code")
    for cls in (code.get("class", []) if isinstance(code, Tag) else []):
        for prefix in ("language-", "lang-"):
            if cls.startswith(prefix):
                language = cls[len(prefix):]
    content = node.get_text().strip("\n")
    return f"\n\n```{language}\n{content}\n```\n\n"


def _list_start(node: Tag) -> int:
    try:
        return int(node.get("start", 1))
    except (TypeError, ValueError):
        return 1


def _render_list(node: Tag, ordered: bool) -> str:
    items = []
    number = _list_start(node)
    for item in node.find_all("li", recursive=False):
        marker = f"{number}. " if ordered else "- "
        body = _EXCESS_NEWLINES.sub("\n", _finish(_render_children(item)))
        body = re.sub(r"\n{2,}", "\n", body)
        first, *rest = body.split("\n")
        pad = " " * len(marker)
        items.append(marker + first + "".join(f"\n{pad}{line}" if line else "\n" for line in rest))
        number += 1
    return "\n\n" + "\n".join(items) + "\n\n" if items else ""


def _render_cell(cell: Tag) -> str:
    text = _finish(_render_children(cell))
    return _WHITESPACE.sub(" ", text).replace("|", "\\|").strip()


def _render_table(node: Tag) -> str:
    rows = []
    for row in node.find_all("tr"):
        if row.find_parent("table") is not node:
            continue
        cells = [_render_cell(c) for c in row.find_all(["th", "td"], recursive=False)]
        if cells:
            rows.append(cells)
    if not rows:
        return ""
    width = max(len(r) for r in rows)
    rows = [r + [""] * (width - len(r)) for r in rows]
    lines = ["| " + " | ".join(rows[0]) + " |", "|" + "|".join([" --- "] * width) + "|"]
    lines.extend("| " + " | ".join(r) + " |" for r in rows[1:])
    return "\n\n" + "\n".join(lines) + "\n\n"


def _finish(text: str) -> str:
    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            lines.append(line.rstrip())
        elif in_fence:
            lines.append(line)
        else:
            lines.append(line.rstrip())
    return _EXCESS_NEWLINES.sub("\n\n", "\n".join(lines)).strip()