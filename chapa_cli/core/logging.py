"""Structured logging setup using structlog, plus the operator-facing console."""

import logging
import sys
import time
from contextvars import ContextVar
from typing import TextIO

import structlog
from structlog.types import EventDict, WrappedLogger

# Operation ID for tracing one login/merge invocation
operation_id_var: ContextVar[str] = ContextVar("operation_id", default="")


def add_operation_id(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add operation ID to log event if set."""
    operation_id = operation_id_var.get()
    if operation_id:
        event_dict["operation_id"] = operation_id
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structured logging for the CLI.

    Diagnostics always go to stderr so stdout stays reserved for
    command output (including --json documents).

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render events as JSON lines instead of console text
    """
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        stream=sys.stderr,
    )

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_operation_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def set_operation_id(operation_id: str) -> None:
    """Set operation ID for current async context.

    Args:
        operation_id: Unique ID for the running CLI operation
    """
    operation_id_var.set(operation_id)


def get_operation_id() -> str:
    """Get operation ID from current async context.

    Returns:
        Current operation ID or empty string if not set
    """
    return operation_id_var.get()


class Console:
    """Human-readable output for the person running the CLI.

    info goes to stdout and is silenced in JSON mode so scripted output stays
    parseable; notice always reaches stdout for output the operator must see,
    such as the login URL. debug is shown on stderr only in verbose mode. warn
    and error always reach stderr.
    """

    def __init__(
        self,
        verbose: bool = False,
        json_output: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """Initialize console output.

        Args:
            verbose: Show debug lines and timings
            json_output: Suppress informational output on stdout
            stdout: Stream for informational output (default: sys.stdout)
            stderr: Stream for diagnostics (default: sys.stderr)
        """
        self.verbose = verbose
        self.json_output = json_output
        self._stdout = stdout
        self._stderr = stderr

    @property
    def out(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._stderr or sys.stderr

    def info(self, msg: str) -> None:
        if self.json_output:
            return
        self.out.write(msg + "\n")

    def notice(self, msg: str) -> None:
        """Write to stdout even in JSON mode (interactive prompts and outcomes)."""
        self.out.write(msg + "\n")

    def debug(self, msg: str) -> None:
        if not self.verbose or self.json_output:
            return
        self.err.write(msg + "\n")

    def warn(self, msg: str) -> None:
        self.err.write(msg + "\n")

    def error(self, msg: str) -> None:
        self.err.write(msg + "\n")

    def progress(self, marker: str = ".") -> None:
        """Write an inline progress marker without a newline."""
        if self.json_output:
            return
        self.out.write(marker)
        self.out.flush()


class Timings:
    """Named wall-clock timers reported in milliseconds."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize timers.

        Args:
            console: When given and verbose, completed timers are echoed to stderr
        """
        self.console = console
        self._running: dict[str, float] = {}
        self._completed: dict[str, float] = {}

    def start(self, label: str) -> None:
        self._running[label] = time.perf_counter()

    def stop(self, label: str) -> float:
        """Stop a timer and return the elapsed milliseconds (0 for unknown labels)."""
        started = self._running.pop(label, None)
        if started is None:
            return 0.0

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._completed[label] = elapsed_ms

        if self.console is not None:
            self.console.debug(f"{label}: {elapsed_ms:.1f}ms")

        return elapsed_ms

    def as_dict(self) -> dict[str, float]:
        """Completed timings only; timers still running are not reported."""
        return dict(self._completed)
