"""Substitution of built-in ``{{__name__}}`` variables in text."""

from __future__ import annotations

import locale
import os
import platform
import re
import sys

from .command import get_shell
from .common import now

RE_VARIABLE = re.compile(r"\{\{(\w+)\}\}")

_ARCHES = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "armv7l": "arm",
}


def _os_name() -> str:
    plat = sys.platform
    if plat.startswith("linux"):
        return "linux"
    if plat == "darwin":
        return "macos"
    if plat in ("win32", "cygwin"):
        return "windows"
    for prefix in ("freebsd", "openbsd", "netbsd", "dragonfly"):
        if plat.startswith(prefix):
            return prefix
    return plat


def _os_family() -> str:
    return "windows" if os.name == "nt" else "unix"


def _arch() -> str:
    machine = platform.machine()
    return _ARCHES.get(machine.lower(), machine)


def _os_distro() -> str:
    name = _os_name()
    if name == "linux":
        try:
            info = platform.freedesktop_os_release()
            description = info.get("PRETTY_NAME") or info.get("NAME") or "Linux"
        except OSError:
            description = "Linux"
        return f"{description} (linux)"
    if name == "macos":
        return f"Mac OS {platform.mac_ver()[0]}".strip()
    return f"{platform.system()} {platform.release()}".strip()


def _locale() -> str:
    for var in ("LC_ALL", "LC_MESSAGES", "LANG"):
        value = os.environ.get(var)
        if value:
            return value.split(".", 1)[0].split("@", 1)[0].replace("_", "-")
    code = locale.getlocale()[0]
    return code.replace("_", "-") if code else ""


def _cwd() -> str:
    try:
        return os.getcwd()
    except OSError:
        return ""


_RESOLVERS = {
    "__os__": _os_name,
    "__os_distro__": _os_distro,
    "__os_family__": _os_family,
    "__arch__": _arch,
    "__shell__": lambda: get_shell().name,
    "__locale__": _locale,
    "__now__": now,
    "__cwd__": _cwd,
}


def interpolate_variables(text: str) -> str:
    """Replace known ``{{__name__}}`` placeholders; leave unknown ones as they are."""

    def replace(match: re.Match[str]) -> str:
        resolver = _RESOLVERS.get(match.group(1))
        return resolver() if resolver else match.group(0)

    return RE_VARIABLE.sub(replace, text)