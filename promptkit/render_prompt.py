"""Render the REPL prompt template.

The template holds plain text and ``{...}`` expressions:

- ``{var}`` is replaced with the value of ``var``.
- ``{?var <template>}`` renders ``template`` when ``var`` is true.
- ``{!var <template>}`` renders ``template`` when ``var`` is false.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union


@dataclass(frozen=True)
class _Text:
    value: str


@dataclass(frozen=True)
class _Variable:
    name: str


@dataclass(frozen=True)
class _Block:
    when_true: bool
    name: str
    exprs: tuple["_Expr", ...]


_Expr = Union[_Text, _Variable, _Block]


def render_prompt(template: str, variables: Mapping[str, str]) -> str:
    """Render ``template`` using ``variables``."""
    return _eval(_parse_template(template), variables)


def _parse_template(template: str) -> tuple[_Expr, ...]:
    exprs: list[_Expr] = []
    current: list[str] = []
    depth = 0

    def flush_text() -> None:
        if current:
            exprs.append(_Text("".join(current)))
            current.clear()

    for ch in template:
        if depth:
            if ch == "}":
                depth -= 1
                if depth == 0:
                    if current:
                        exprs.append(_parse_block("".join(current)))
                        current.clear()
                else:
                    current.append(ch)
            else:
                if ch == "{":
                    depth += 1
                current.append(ch)
        elif ch == "{":
            depth = 1
            flush_text()
        else:
            current.append(ch)
    flush_text()
    return tuple(exprs)


def _parse_block(value: str) -> _Expr:
    name, sep, tail = value.partition(" ")
    if not sep:
        return _Variable(value)
    if name.startswith("?"):
        return _Block(True, name[1:], _parse_template(tail))
    if name.startswith("!"):
        return _Block(False, name[1:], _parse_template(tail))
    return _Text("{" + value + "}")


def _truthy(value: str) -> bool:
    return value not in ("", "0", "false")


def _eval(exprs: tuple[_Expr, ...], variables: Mapping[str, str]) -> str:
    parts: list[str] = []
    for expr in exprs:
        if isinstance(expr, _Text):
            parts.append(expr.value)
        elif isinstance(expr, _Variable):
            parts.append(variables.get(expr.name, ""))
        elif _truthy(variables.get(expr.name, "")) == expr.when_true:
            parts.append(_eval(expr.exprs, variables))
    return "".join(parts)