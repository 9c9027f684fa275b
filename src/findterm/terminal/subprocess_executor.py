"""Subprocess executor for one-shot helper commands.

Used for the flight-check script and for listing ripgrep's file types. The
interactive search itself runs in the terminal session, never here.
"""

from __future__ import annotations

import asyncio
import os
import time

from findterm.logging import get_logger
from findterm.terminal.result import ShellResult

log = get_logger("terminal")


class SubprocessTerminalExecutor:
    """Execute a command with asyncio subprocess and capture its output."""

    def __init__(self, default_cwd: str = ".") -> None:
        self._default_cwd = default_cwd

    async def execute(
        self,
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: float | None = 30.0,
        output_limit: int = 50000,
    ) -> ShellResult:
        """Execute a command.

        Args:
            command: The executable to run.
            args: Optional list of arguments.
            cwd: Working directory. Uses default_cwd if None.
            env: Additional environment variables.
            timeout: Timeout in seconds. None for no timeout.
            output_limit: Maximum characters of output to capture.

        Returns:
            ShellResult with execution details.
        """
        start_time = time.perf_counter()

        cmd_list = [command]
        if args:
            cmd_list.extend(args)
        full_command = " ".join(cmd_list)

        process_env = os.environ.copy()
        if env:
            process_env.update(env)

        def elapsed() -> float:
            return (time.perf_counter() - start_time) * 1000

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd_list,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd or self._default_cwd,
                env=process_env,
            )
        except FileNotFoundError:
            return ShellResult(
                command=full_command,
                exit_code=127,  # Standard "command not found" exit code
                output=f"Command not found: {command}",
                truncated=False,
                status="error",
                duration_ms=elapsed(),
            )
        except PermissionError:
            return ShellResult(
                command=full_command,
                exit_code=126,  # Standard "permission denied" exit code
                output=f"Permission denied: {command}",
                truncated=False,
                status="error",
                duration_ms=elapsed(),
            )
        except OSError as e:
            return ShellResult(
                command=full_command,
                exit_code=1,
                output=f"OS error: {e}",
                truncated=False,
                status="error",
                duration_ms=elapsed(),
            )

        try:
            stdout_data, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
                await process.wait()
            except ProcessLookupError:
                pass  # Process already gone
            log.warning("Command timed out after %ss: %s", timeout, full_command)
            return ShellResult(
                command=full_command,
                exit_code=None,
                output=f"Command timed out after {timeout}s",
                truncated=False,
                status="timeout",
                duration_ms=elapsed(),
            )

        output = stdout_data.decode("utf-8", errors="replace")
        truncated = len(output) > output_limit
        if truncated:
            output = output[:output_limit] + "\n... (output truncated)"

        exit_code = process.returncode
        return ShellResult(
            command=full_command,
            exit_code=exit_code,
            output=output,
            truncated=truncated,
            status="ok" if exit_code == 0 else "error",
            duration_ms=elapsed(),
        )
