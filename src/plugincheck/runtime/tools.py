# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Time-bounded execution of external tools for checks.

Checks that shell out to scanners apply their own timeout. :func:`run_tool`
never hangs a run: the child process is killed when the timeout expires or
when the run's cancellation token fires.
"""

from __future__ import annotations

import os
import subprocess  # nosec B404 - checks invoke third-party scanners
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import ExternalToolError, ToolNotFoundError, ToolTimeoutError
from .cancellation import CancellationToken, CancelledError
from .logging import StructuredLogger, get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger: StructuredLogger = get_logger(__name__, context={"component": "tools"})

TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127
_POLL_INTERVAL_SECONDS = 0.1


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one external tool invocation.

    Attributes:
        command: The command and arguments that were run.
        returncode: Process exit code; 124 on timeout, 127 when not found.
        stdout: Captured standard output.
        stderr: Captured standard error, or the reason the tool did not run.
        duration_ms: Wall time spent waiting for the tool.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == TIMEOUT_RETURNCODE

    @property
    def not_found(self) -> bool:
        return self.returncode == NOT_FOUND_RETURNCODE

    def require_success(self) -> ToolResult:
        """Return ``self`` or raise the matching :class:`ExternalToolError`."""
        if self.success:
            return self
        if self.timed_out:
            raise ToolTimeoutError(
                self.stderr, command=self.command, returncode=self.returncode
            )
        if self.not_found:
            raise ToolNotFoundError(
                self.stderr, command=self.command, returncode=None
            )
        raise ExternalToolError(
            f"{self.command[0]} exited with {self.returncode}: {self.stderr.strip()}",
            command=self.command,
            returncode=self.returncode,
        )


def run_tool(
    cmd: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout_seconds: float = 120.0,
    token: CancellationToken | None = None,
) -> ToolResult:
    """Run an external tool, bounded by ``timeout_seconds`` and ``token``.

    Timeouts and missing executables are reported through the result's
    return code rather than raised, so a check can choose between failing
    (``result.require_success()``) and treating the tool as unavailable.

    Raises:
        CancelledError: The token fired while the tool was running. The
            process is killed before raising.
    """
    command = tuple(cmd)
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    start = time.monotonic()
    try:
        process = subprocess.Popen(  # nosec B603 - commands come from check code
            command,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError as e:
        logger.warning(
            "External tool not found",
            event="tool.not_found",
            context={"command": command[0]},
        )
        return ToolResult(
            command=command,
            returncode=NOT_FOUND_RETURNCODE,
            stdout="",
            stderr=f"Command not found: {e.filename or command[0]}",
            duration_ms=_elapsed_ms(start),
        )

    deadline = start + timeout_seconds
    while True:
        remaining = deadline - time.monotonic()
        if token is not None and token.is_cancelled():
            _kill(process)
            raise CancelledError(f"Cancelled while running {command[0]}")
        if remaining <= 0:
            _kill(process)
            logger.warning(
                "External tool timed out",
                event="tool.timeout",
                context={"command": command[0], "timeout_seconds": timeout_seconds},
            )
            return ToolResult(
                command=command,
                returncode=TIMEOUT_RETURNCODE,
                stdout="",
                stderr=f"Command timed out after {timeout_seconds}s: {' '.join(command)}",
                duration_ms=_elapsed_ms(start),
            )
        try:
            stdout, stderr = process.communicate(
                timeout=min(remaining, _POLL_INTERVAL_SECONDS)
            )
        except subprocess.TimeoutExpired:
            continue
        return ToolResult(
            command=command,
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=_elapsed_ms(start),
        )


def _kill(process: subprocess.Popen[str]) -> None:
    process.kill()
    _ = process.communicate()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


__all__ = [
    "NOT_FOUND_RETURNCODE",
    "TIMEOUT_RETURNCODE",
    "ToolResult",
    "run_tool",
]
