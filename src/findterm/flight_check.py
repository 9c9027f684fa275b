"""Pre-flight check that the external tools are installed.

The diagnostic script prints `tool: status` lines; a tool whose status is
"not installed", or which is missing from the output, is a missing
dependency.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from findterm.logging import get_logger
from findterm.terminal.subprocess_executor import SubprocessTerminalExecutor

log = get_logger("flight_check")

NOT_INSTALLED = "not installed"


def required_tools(is_windows: bool | None = None) -> tuple[str, ...]:
    if is_windows is None:
        is_windows = sys.platform == "win32"
    if is_windows:
        return ("bat", "fzf", "rg")
    return ("bat", "fzf", "rg", "sed")


def parse_key_values(output: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition(": ")
        if sep:
            values[key.strip()] = value.strip()
    return values


@dataclass
class FlightCheckReport:
    """Outcome of a flight check."""

    values: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)
    error: str | None = None  # The script itself could not run

    @property
    def passed(self) -> bool:
        return self.error is None and not self.missing

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"Failed to run checks before starting. Maybe this is helpful: {self.error}"
        if self.missing:
            details = " ".join(f"{tool} not found on your PATH." for tool in self.missing)
            return (
                "Failed to activate! Make sure you have the required command line "
                f"tools installed as outlined in the README. {details}"
            )
        return "All required tools are installed."


def evaluate(output: str, tools: Sequence[str]) -> FlightCheckReport:
    values = parse_key_values(output)
    missing = [tool for tool in tools if values.get(tool, NOT_INSTALLED) == NOT_INSTALLED]
    return FlightCheckReport(values=values, missing=missing)


async def run_flight_check(
    script: Path,
    executor: SubprocessTerminalExecutor | None = None,
    is_windows: bool | None = None,
    timeout: float = 30.0,
) -> FlightCheckReport:
    """Run the diagnostic script and evaluate its output."""
    if is_windows is None:
        is_windows = sys.platform == "win32"
    executor = executor or SubprocessTerminalExecutor()

    if is_windows:
        result = await executor.execute(
            "powershell.exe",
            ["-ExecutionPolicy", "Bypass", "-File", str(script)],
            timeout=timeout,
        )
    else:
        result = await executor.execute(str(script), timeout=timeout)

    if result.status == "timeout" or result.exit_code in (126, 127):
        report = FlightCheckReport(error=result.output)
    else:
        report = evaluate(result.output, required_tools(is_windows))

    if report.passed:
        log.info("Flight check passed: %s", report.values)
    else:
        log.error(report.message)
    return report
