"""Shared utility functions for libscaffold.

Provides async command execution, JSON I/O, file-system helpers, Rich-based
console output and logging setup.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.rule import Rule
from rich.table import Table

console = Console()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Route ``libscaffold`` log records through a Rich handler.

    Warnings about skipped sources and failed installs share the console
    with the stage output. ``verbose`` lowers the threshold from WARNING to
    DEBUG and adds source locations.
    """
    package_logger = logging.getLogger("libscaffold")
    package_logger.handlers.clear()
    handler = RichHandler(console=console, show_time=False, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* without a shell and collect its output.

    Used for ``git config`` lookups and package-manager installs. *env* is
    layered over the current environment rather than replacing it.

    Returns:
        ``(returncode, stdout, stderr)`` with both streams decoded and
        stripped. An executable that cannot be found yields ``127`` and a
        process still running after *timeout* seconds is killed and yields
        ``-1``; neither case raises.
    """
    logger.debug("$ %s (cwd=%s)", " ".join(cmd), cwd or ".")
    child_env = {**os.environ, **env} if env else None

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=child_env,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    return (process.returncode or 0, _decode(out), _decode(err))


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Read a JSON document; a non-object top level is wrapped as ``{"_root": ...}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def save_json(data: dict[str, Any], path: str | Path, indent: int = 2) -> None:
    """Write *data* as indented JSON with a trailing newline."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    file_path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """``mkdir -p`` *path* and return it resolved."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STAGE_NAMES: dict[int, str] = {
    1: "RESOLVE",
    2: "PROMPT",
    3: "PROVISION",
    4: "MATERIALIZE",
    5: "INSTALL",
}

STAGE_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_green",
    3: "bright_yellow",
    4: "bright_magenta",
    5: "bright_blue",
}


def print_stage_header(stage: int, name: str) -> None:
    """Print a full-width rule naming the stage, coloured per stage."""
    color = STAGE_COLORS.get(stage, "white")
    console.print()
    console.print(
        Rule(
            f"[bold {color}] Stage {stage}: {name.upper()} [/bold {color}]",
            style=color,
        )
    )
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print the end-of-run key/value table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
