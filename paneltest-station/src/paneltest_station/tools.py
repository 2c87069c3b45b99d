"""Running the external command line tools (esptool, PlatformIO)."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from paneltest_core.errors import ProcessExecutionError

logger = logging.getLogger(__name__)

# Exit status reported when the tool cannot be started at all
NOT_STARTED = 127


def run_tool(
    args: Sequence[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> str:
    """Run a tool to completion and return its output.

    Standard error is merged into standard output, so the returned text (and
    the output carried by a failure) reads like the terminal would.

    Args:
        args: Command line, program first.
        cwd: Working directory for the tool.
        timeout: Seconds before the tool is killed. None waits forever.

    Returns:
        The tool's combined output.

    Raises:
        ProcessExecutionError: If the tool is missing, times out or exits non-zero.
    """
    command = [str(a) for a in args]
    logger.debug("Running %s", " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ProcessExecutionError(command, NOT_STARTED, str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        output = exc.output if isinstance(exc.output, str) else ""
        raise ProcessExecutionError(command, -1, f"{output}timed out after {timeout}s") from exc

    output = result.stdout or ""
    for line in output.splitlines():
        logger.debug("%s> %s", command[0], line)

    if result.returncode != 0:
        raise ProcessExecutionError(command, result.returncode, output)
    return output
