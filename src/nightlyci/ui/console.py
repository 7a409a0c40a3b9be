"""Console output formatting utilities for nightlyci."""

from __future__ import annotations

import sys
from typing import Optional, Sequence


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_generated(self, output: str, job_names: Sequence[str], target_count: int) -> None:
        """Print a summary of a written workflow."""
        print("\nWORKFLOW GENERATED")
        print(f"Output: {output}")
        print(f"Targets: {target_count}")
        print(f"Jobs: {', '.join(job_names)}")

    def print_stage(self, index: int, jobs: Sequence[str]) -> None:
        """Print one dependency stage of the plan."""
        print(f"=== Stage {index}: {list(jobs)} ===")

    def print_plan_job(self, name: str, targets: Sequence[str], needs: Sequence[str]) -> None:
        """Print a job of the plan with its matrix."""
        after = f" (after {', '.join(needs)})" if needs else ""
        print(f"  {name}{after}")
        for target in targets:
            print(f"    - {target}")

    def print_target(self, name: str, slug: str, generic: bool) -> None:
        """Print one configured target."""
        flag = " [generic]" if generic else ""
        print(f"  {name} -> {slug}{flag}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
