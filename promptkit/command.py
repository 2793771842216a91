"""Shell detection, running external commands and shell-history bookkeeping."""

from __future__ import annotations

import functools
import logging
import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .common import get_env_name, now_timestamp, temp_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shell:
    """A shell: its short name, the executable and the argument that runs a command."""

    name: str
    cmd: str
    arg: str


def _windows_default_shell() -> str | None:
    module_path = os.environ.get("PSModulePath")
    if module_path is None:
        return None
    module_path = module_path.lower()
    if not module_path.startswith("c:\\users"):
        return None
    if "\\powershell\\7\\" in module_path:
        return "pwsh.exe"
    return "powershell.exe"


def detect_shell() -> Shell:
    """Work out the user's shell from the environment."""
    cmd = os.environ.get(get_env_name("shell"))
    if cmd is None:
        cmd = _windows_default_shell() if os.name == "nt" else os.environ.get("SHELL")

    name: str | None = None
    if cmd:
        stem = Path(cmd).stem
        if stem:
            name = "nushell" if stem == "nu" else stem.lower()

    if cmd is None or name is None:
        cmd, name = ("cmd.exe", "cmd") if os.name == "nt" else ("/bin/sh", "sh")

    arg = {"powershel": "-Command", "cmd": "/C"}.get(name, "-c")
    return Shell(name=name, cmd=cmd, arg=arg)


@functools.lru_cache(maxsize=None)
def get_shell() -> Shell:
    """The detected shell, computed once."""
    return detect_shell()


def _merged_env(envs: Mapping[str, str] | None) -> dict[str, str] | None:
    if not envs:
        return None
    return {**os.environ, **envs}


def run_command(cmd: str, args: Sequence[str | os.PathLike], envs: Mapping[str, str] | None = None) -> int:
    """Run a command attached to the terminal and return its exit code."""
    completed = subprocess.run(
        [cmd, *map(os.fspath, args)], env=_merged_env(envs), check=False
    )
    # A process killed by a signal has no exit code; report it as 0.
    return max(completed.returncode, 0)


def run_command_with_output(
    cmd: str, args: Sequence[str | os.PathLike], envs: Mapping[str, str] | None = None
) -> tuple[bool, str, str]:
    """Run a command and return (success, stdout, stderr)."""
    completed = subprocess.run(
        [cmd, *map(os.fspath, args)],
        env=_merged_env(envs),
        capture_output=True,
        check=False,
    )
    try:
        stdout = completed.stdout.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ValueError("Invalid UTF-8 in stdout") from err
    try:
        stderr = completed.stderr.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ValueError("Invalid UTF-8 in stderr") from err
    return completed.returncode == 0, stdout, stderr


def run_loader_command(path: str, extension: str, loader_command: str) -> str:
    """Run a document loader command and return the text it produced.

    ``$1`` in the command is replaced with the input path. If ``$2`` appears,
    it is replaced with a temporary output path whose contents are returned;
    otherwise the command's stdout is returned.
    """
    invalid = f"Invalid rag document loader '{extension}': `{loader_command}`"
    try:
        raw_args = shlex.split(loader_command)
    except ValueError as err:
        raise ValueError(invalid) from err
    if not raw_args:
        raise ValueError(invalid)

    outpath = str(temp_file("-output-", ""))
    use_stdout = True
    cmd_args: list[str] = []
    for arg in raw_args:
        arg = arg.replace("$1", path)
        if "$2" in arg:
            use_stdout = False
            arg = arg.replace("$2", outpath)
        cmd_args.append(arg)

    cmd_eval = shlex.join(cmd_args)
    logger.debug("run `%s`", cmd_eval)
    cmd, args = cmd_args[0], cmd_args[1:]
    unable = f"Unable to run `{cmd_eval}`, Perhaps '{cmd}' is not installed?"
    non_zero = f"The command `{cmd_eval}` exited with non-zero."

    if use_stdout:
        try:
            success, stdout, stderr = run_command_with_output(cmd, args)
        except (OSError, ValueError) as err:
            raise RuntimeError(unable) from err
        if not success:
            raise RuntimeError(stderr or non_zero)
        return stdout

    try:
        status = run_command(cmd, args)
    except OSError as err:
        raise RuntimeError(unable) from err
    if status != 0:
        raise RuntimeError(non_zero)
    try:
        return Path(outpath).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise RuntimeError("Failed to read file generated by the loader") from err


def edit_file(editor: str, path: str | os.PathLike) -> None:
    """Open ``path`` in ``editor`` and wait for it to exit."""
    with subprocess.Popen([editor, os.fspath(path)]) as child:
        child.wait()


def append_to_shell_history(shell: str, command: str, exit_code: int) -> None:
    """Append ``command`` to the history file of ``shell``, in that shell's format."""
    history_file = get_history_file(shell)
    if history_file is None:
        return
    command = command.replace("\n", " ")
    now = now_timestamp()
    if shell == "fish":
        entry = f"- cmd: {command}\n  when: {now}"
    elif shell == "zsh":
        entry = f": {now}:{exit_code};{command}"
    else:
        entry = command
    with open(history_file, "a", encoding="utf-8") as file:
        file.write(entry + "\n")


def _home_dir() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None


def _config_dir() -> Path | None:
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else None
    home = _home_dir()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" if home else None
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    return home / ".config" if home else None


def get_history_file(shell: str) -> Path | None:
    """Location of the history file for ``shell``, or None if unknown."""
    if shell == "nushell":
        config = _config_dir()
        return config / "nushell" / "history.txt" if config else None

    if shell in ("powershell", "pwsh") and os.name == "nt":
        data = _config_dir()
        if data is None:
            return None
        return (
            data / "Microsoft" / "Windows" / "PowerShell" / "PSReadLine" / "ConsoleHost_history.txt"
        )

    relative = {
        "bash": (".bash_history",),
        "sh": (".bash_history",),
        "zsh": (".zsh_history",),
        "fish": (".local", "share", "fish", "fish_history"),
        "powershell": (".local", "share", "powershell", "PSReadLine", "ConsoleHost_history.txt"),
        "pwsh": (".local", "share", "powershell", "PSReadLine", "ConsoleHost_history.txt"),
        "ksh": (".ksh_history",),
        "tcsh": (".history",),
    }.get(shell)
    if relative is None:
        return None
    home = _home_dir()
    return home.joinpath(*relative) if home else None