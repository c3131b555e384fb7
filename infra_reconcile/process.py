"""Async subprocess execution for gcloud and terraform commands."""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Sequence, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def error_text(self) -> str:
        """Best available description of why the command failed."""
        if self.timed_out:
            return self.stderr or "Command timed out"
        return self.stderr.strip() or f"Command failed with code {self.returncode}"


# (args, timeout, cwd) -> CommandResult
CommandRunner = Callable[
    [Sequence[str], float, Optional[Union[str, Path]]], Awaitable[CommandResult]
]


async def run_command(
    args: Sequence[str],
    timeout: float,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
) -> CommandResult:
    """Run a command, killing it if it exceeds ``timeout`` seconds.

    Never raises: a missing binary or a timeout is reported through the
    returned CommandResult.
    """
    cmd = list(args)
    logger.debug(f"Running command: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            env=env if env is not None else os.environ.copy(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return CommandResult(returncode=127, stderr=f"{cmd[0]}: command not found")
    except OSError as e:
        return CommandResult(returncode=1, stderr=f"Failed to start {cmd[0]}: {e}")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(
            returncode=1,
            stderr=f"Command timed out after {timeout}s: {' '.join(cmd)}",
            timed_out=True,
        )

    return CommandResult(
        returncode=process.returncode or 0,
        stdout=stdout.decode("utf-8", errors="replace") if stdout else "",
        stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
    )
