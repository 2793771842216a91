# promptkit

A library of building blocks for command-line assistants. It covers prompt templating, shell integration, document loading, web crawling, HTML-to-Markdown conversion and terminal feedback.

## Installation

```
pip install promptkit
```

To install the test dependencies as well:

```
pip install "promptkit[test]"
```

## Modules

- `promptkit.render_prompt` has `render_prompt(template, variables)`, which renders a REPL prompt template. A template is plain text plus these forms:
  - `{var}` is replaced by the variable's value, or by nothing if it is unset.
  - `{?var ...}` renders its inner template when `var` is truthy.
  - `{!var ...}` renders its inner template when `var` is falsy.

  A value counts as falsy when it is empty, `"0"` or `"false"`.
- `promptkit.variables` has `interpolate_variables(text)`. It returns the text with these placeholders filled in: `{{__os__}}`, `{{__os_distro__}}`, `{{__os_family__}}`, `{{__arch__}}`, `{{__shell__}}`, `{{__locale__}}`, `{{__now__}}` and `{{__cwd__}}`. Unknown placeholders are left as they are.
- `promptkit.command` works with the shell:
  - `Shell` holds a shell's name, its executable and the argument that runs a command.
  - `detect_shell()` finds the shell from the environment. `get_shell()` does the same but caches the result.
  - `run_command` runs a program and returns its exit code.
  - `run_command_with_output` returns `(success, stdout, stderr)`.
  - `run_loader_command(path, extension, loader_command)` runs an external document loader. `$1` in the command stands for the input path. If the command contains `$2`, that is replaced by a temporary output file, and the file's contents are returned. Otherwise the loader's stdout is returned.
  - `edit_file` opens a file in an editor and waits for it to close.
  - `append_to_shell_history` and `get_history_file` write to the history file of bash, sh, zsh, fish, nushell, PowerShell, ksh or tcsh.
- `promptkit.path` works with paths:
  - `safe_join_path` joins two paths but returns `None` if the result would escape the base directory.
  - `parse_glob` splits `dir/**/*.{md,txt}`-style patterns into a base path and a list of extensions.
  - `expand_glob_paths` expands such patterns into a de-duplicated list of files.
  - `list_file_names` lists the entries of a directory with a given ending.
  - `get_patch_extension` returns a path's extension in lower case.
- `promptkit.loader` loads documents as `LoadedDocument` objects. It has three coroutines:
  - `load_file` loads a local file.
  - `load_url` loads a single URL.
  - `load_recursive_url` loads a whole site crawled recursively.

  Each takes a mapping from extension to loader command, and uses a loader command whenever one is registered for the extension.
- `promptkit.request` covers HTTP. It has:
  - `fetch` and `fetch_with_loaders`, which fetch URLs.
  - `crawl_website`, which crawls a site and returns `Page` objects. It runs up to five requests at once. `CrawlOptions` controls which links it excludes and which CSS selector it extracts. `CrawlOptions.preset` supplies settings for GitHub trees and wikis.
  - `should_exclude_link`, `normalize_start_url` and `match_link`, which are helpers.
- `promptkit.html_to_md` has `html_to_md`, which converts HTML to Markdown. It handles headings, paragraphs, lists, tables, emphasis and code. It drops page chrome such as navigation, scripts and footers.
- `promptkit.spinner` provides the terminal spinner:
  - `spawn_spinner` starts a spinner in a background thread and returns a `Spinner` handle with `set_message` and `stop`.
  - `abortable_run_with_spinner` awaits a task while a spinner is shown. It raises `RuntimeError` if the user presses Ctrl-C or Ctrl-D, or if the abort signal is set. Without a terminal it simply awaits the task.
- `promptkit.abort_signal` has `AbortSignal`, `create_abort_signal`, `wait_abort_signal` and `poll_abort_signal`. They track Ctrl-C and Ctrl-D requests.
- `promptkit.crypto` has `sha256`, `hmac_sha256`, `hex_encode`, `encode_uri`, `base64_encode` and `base64_decode`.
- `promptkit.common` holds general helpers:
  - time stamps
  - environment variable names
  - `estimate_token_length`
  - `fuzzy_filter`
  - `extract_block`, which returns the contents of fenced code blocks
  - coloured and dimmed text
  - `pretty_error`, which formats an exception together with its chain of causes
  - `temp_file`
  - `is_url`

## Examples

```python
from promptkit.render_prompt import render_prompt

template = "{?session {session}{?role /}}{role}{?session )}{!session >}"
render_prompt(template, {"session": "temp", "role": "coder"})  # "temp/coder)"
render_prompt(template, {})                                    # ">"
```

```python
from promptkit.path import expand_glob_paths

files = expand_glob_paths(["docs/**/*.{md,txt}"], True)
```

```python
import asyncio
from promptkit.loader import load_file

doc = asyncio.run(load_file({}, "notes.md"))
print(doc.metadata["__extension__"], len(doc.contents))
```

## What it does not do

promptkit is a library only. It does not include any of the following:

- a command-line program
- an interactive REPL
- a chat client
- clipboard support

It also ships no loader commands for PDF or office documents. Files of those kinds are converted only when you register an external command for their extension.

## Running the tests

```
pytest
```