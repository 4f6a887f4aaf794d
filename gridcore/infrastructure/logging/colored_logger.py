"""Colored query trace logger: ANSI-colored console lines per query stage.

Makes it easy to see in the terminal which statements a page request
issued and how long each took.

Color scheme:
    Blue    : row query
    Cyan    : count query
    Yellow  : distinct values
    Magenta : eager (batched) relation loads
    Red     : errors
    Gray    : details / timing
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


class QueryStage:
    """Predefined query stages as (label, color)."""

    ROWS = ("ROWS", _Colors.BLUE)
    COUNT = ("COUNT", _Colors.CYAN)
    DISTINCT = ("DISTINCT", _Colors.YELLOW)
    EAGER = ("EAGER", _Colors.MAGENTA)
    ERROR = ("ERROR", _Colors.RED)


def _format_details(kwargs: dict[str, Any]) -> str:
    if not kwargs:
        return ""
    details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
    return f" {_Colors.GRAY}({details}){_Colors.RESET}"


class QueryTraceLogger:
    """Stage-tagged trace logger for the SQL executor.

    Usage:
        trace = QueryTraceLogger()
        with trace.timed_step(QueryStage.ROWS, "users page 1", eager=["department"]):
            result = await session.execute(stmt)
    """

    def __init__(self, component_name: str = "QueryTrace"):
        self._logger = logging.getLogger(component_name)

    def step(self, stage: tuple[str, str], message: str, **kwargs: Any) -> None:
        label, color = stage
        self._logger.debug(
            f"{color}{_Colors.BOLD}[{label}]{_Colors.RESET} {color}{message}{_Colors.RESET}"
            + _format_details(kwargs)
        )

    def step_complete(self, stage: tuple[str, str], message: str, **kwargs: Any) -> None:
        label, color = stage
        self._logger.debug(
            f"{color}[{label}]{_Colors.RESET} {_Colors.GREEN}done {message}{_Colors.RESET}"
            + _format_details(kwargs)
        )

    def step_error(self, stage: tuple[str, str], message: str, error: Exception | None = None) -> None:
        label, _ = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}[{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}-> {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(f"   {_Colors.GRAY}|- {message}{_Colors.RESET}" + _format_details(kwargs))

    @contextmanager
    def timed_step(self, stage: tuple[str, str], message: str, **kwargs: Any):
        """Log start and end of a statement with the elapsed time."""
        self.step(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(
                QueryStage.ERROR,
                f"{stage[0]} {message} failed after {elapsed * 1000:.1f}ms",
                error=e,
            )
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} in {elapsed * 1000:.1f}ms")
