"""Process-wide fault capture.

A `FaultCaptureRegistry` installs three hooks through a runtime object:
uncaught exceptions, warnings (recoverable errors), and interpreter exit.
Whatever triggers first renders the diagnostic page and terminates the
process; every later trigger is ignored.

Usage:
    import faultpage
    faultpage.register()
"""

from __future__ import annotations

import atexit
import enum
import inspect
import os
import platform
import sys
import threading
import warnings
from typing import Any, Callable, TextIO

from .codes import resolve_codes
from .fault import Fault, RawError, Severity, severity_for_warning
from .frames import ParameterNameResolver, SignatureResolver
from .html import html_page
from .logging import logger
from .normalize import Promoted, from_exception, from_last_error, promote_error

__all__ = [
    "State",
    "PythonRuntime",
    "FaultCaptureRegistry",
    "register",
    "unregister",
]

REPORTING_ENV = "FAULTPAGE_REPORTING"

# Guards hook installation, at most one registry is active per process
_lock = threading.Lock()
_active: FaultCaptureRegistry | None = None


class State(enum.Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    RENDERING = "rendering"
    TERMINATED = "terminated"


def _severity_for_exception(exc: BaseException) -> Severity:
    if isinstance(exc, SyntaxError):
        return Severity.PARSE
    if isinstance(exc, ImportError):
        return Severity.COMPILE_ERROR
    if isinstance(exc, (SystemError, MemoryError)):
        return Severity.CORE_ERROR
    return Severity.ERROR


# Python 3.14 moved the pure-Python implementation into _py_warnings
_WARNING_MODULES = frozenset({"warnings", "_py_warnings"})


def _warning_site() -> Any:
    """Innermost frame that is neither the warnings machinery nor ours."""
    frame = inspect.currentframe()
    while frame:
        module = frame.f_globals.get("__name__", "")
        if module not in _WARNING_MODULES and module.split(".")[0] != "faultpage":
            return frame
        frame = frame.f_back
    return None


class PythonRuntime:
    """Hook installation and process control on the running interpreter."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream
        self._original_excepthook = None
        self._original_threading_excepthook = None
        self._original_showwarning = None
        self._exit_hook = None

    def install(
        self,
        on_exception: Callable[[BaseException], Any],
        on_error: Callable[..., Any],
        on_exit: Callable[[], Any],
        *,
        capture_threads: bool = True,
    ) -> None:
        original_excepthook = self._original_excepthook = sys.excepthook
        original_showwarning = self._original_showwarning = warnings.showwarning

        def _faultpage_excepthook(exc_type, exc_value, exc_tb):
            if not isinstance(exc_value, Exception):
                # KeyboardInterrupt and friends are not faults
                return original_excepthook(exc_type, exc_value, exc_tb)
            try:
                on_exception(exc_value)
            except Exception:
                logger.exception("Fault page failed, using the previous excepthook")
                original_excepthook(exc_type, exc_value, exc_tb)

        def _faultpage_showwarning(message, category, filename, lineno, file=None, line=None):
            try:
                on_error(
                    severity_for_warning(category),
                    str(message),
                    filename,
                    lineno,
                    type_name=category.__name__,
                    stack=_warning_site(),
                )
            except Exception:
                logger.exception("Fault page failed, showing the warning instead")
                original_showwarning(message, category, filename, lineno, file, line)

        sys.excepthook = _faultpage_excepthook
        warnings.showwarning = _faultpage_showwarning

        if capture_threads:
            original_threading = self._original_threading_excepthook = threading.excepthook

            def _faultpage_threading_excepthook(args):
                if not isinstance(args.exc_value, Exception):
                    return original_threading(args)
                try:
                    on_exception(args.exc_value)
                except Exception:
                    logger.exception("Fault page failed, using the previous excepthook")
                    original_threading(args)

            threading.excepthook = _faultpage_threading_excepthook

        self._exit_hook = on_exit
        atexit.register(on_exit)

    def restore(self) -> None:
        if self._original_excepthook is not None:
            sys.excepthook = self._original_excepthook
            self._original_excepthook = None
        if self._original_threading_excepthook is not None:
            threading.excepthook = self._original_threading_excepthook
            self._original_threading_excepthook = None
        if self._original_showwarning is not None:
            warnings.showwarning = self._original_showwarning
            self._original_showwarning = None
        if self._exit_hook is not None:
            atexit.unregister(self._exit_hook)
            self._exit_hook = None

    def last_error(self) -> RawError | None:
        """The last uncaught error the interpreter recorded, if any."""
        exc = getattr(sys, "last_exc", None) or getattr(sys, "last_value", None)
        if not isinstance(exc, Exception):
            return None
        file = line = None
        tb = exc.__traceback__
        while tb:
            file, line = tb.tb_frame.f_code.co_filename, tb.tb_lineno
            tb = tb.tb_next
        message = str(exc)
        if isinstance(exc, SyntaxError):
            file, line, message = exc.filename or file, exc.lineno or line, exc.msg
        return RawError(
            _severity_for_exception(exc), message, file, line, type(exc).__name__
        )

    def write(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text)
        stream.flush()

    def terminate(self, code: int) -> None:
        sys.stderr.flush()
        os._exit(code)

    def version(self) -> str:
        return platform.python_version()


def _reporting_from_env() -> int:
    value = os.environ.get(REPORTING_ENV, "").strip()
    if not value:
        return Severity.ALL
    try:
        return int(value, 0)
    except ValueError:
        logger.warning(f"Ignoring invalid {REPORTING_ENV}={value!r}, reporting all")
        return Severity.ALL


class FaultCaptureRegistry:
    """Owns the process-wide hooks and drives render-then-terminate."""

    def __init__(
        self,
        *,
        runtime: Any = None,
        resolver: ParameterNameResolver | None = None,
        reporting: int | None = None,
        window: int = 15,
        capture_threads: bool = True,
    ) -> None:
        self.runtime = runtime if runtime is not None else PythonRuntime()
        self.resolver = resolver if resolver is not None else SignatureResolver()
        self.reporting = reporting if reporting is not None else _reporting_from_env()
        self.window = window
        self.capture_threads = capture_threads
        self.state = State.UNREGISTERED
        self._render_lock = threading.Lock()

    def register(self) -> bool:
        """Install the hooks. Returns False if they were already in place."""
        global _active
        with _lock:
            if _active is self:
                logger.debug("Fault capture already registered")
                return False
            if _active is not None:
                logger.warning("Another fault capture registry is already active")
                return False
            self.runtime.install(
                self.handle_exception,
                self.handle_error,
                self.handle_shutdown,
                capture_threads=self.capture_threads,
            )
            _active = self
            self.state = State.REGISTERED
        logger.info("Fault capture hooks installed")
        return True

    def unregister(self) -> None:
        """Restore the hooks that were in place before register()."""
        global _active
        with _lock:
            if _active is not self:
                return
            self.runtime.restore()
            _active = None
            if self.state is State.REGISTERED:
                self.state = State.UNREGISTERED
        logger.info("Fault capture hooks removed")

    def handle_exception(self, exc: BaseException) -> None:
        self.handle_fault(from_exception(exc))

    def handle_error(
        self,
        severity: int,
        message: str,
        file: str | None = None,
        line: int | None = None,
        *,
        type_name: str = "RuntimeFault",
        stack: Any = None,
    ):
        outcome = promote_error(
            severity,
            message,
            file,
            line,
            reporting=self.reporting,
            type_name=type_name,
            stack=stack,
        )
        if isinstance(outcome, Promoted):
            self.handle_fault(outcome.fault)
        else:
            logger.debug(f"Suppressed severity {int(severity)} at {file}:{line}")
        return outcome

    def handle_shutdown(self) -> None:
        fault = from_last_error(self.runtime.last_error())
        if fault is not None:
            self.handle_fault(fault)

    def handle_fault(self, fault: Fault) -> None:
        """Render the page for `fault`, write it out and terminate."""
        with self._render_lock:
            if self.state in (State.RENDERING, State.TERMINATED):
                logger.debug(f"Already reporting a fault, ignoring {fault.type_name}")
                return
            self.state = State.RENDERING
        try:
            page = html_page(
                fault,
                resolver=self.resolver,
                window=self.window,
                version=self.runtime.version(),
            )
            _, exit_code = resolve_codes(fault.raw_code)
            self.runtime.write(page)
        except BaseException:
            # Nothing was written, later faults are still reported
            self.state = State.REGISTERED
            raise
        self.state = State.TERMINATED
        self.runtime.terminate(exit_code)


def register(**kwargs: Any) -> FaultCaptureRegistry:
    """Install fault capture for this process, or return the active registry."""
    if _active is not None:
        return _active
    registry = FaultCaptureRegistry(**kwargs)
    registry.register()
    return registry


def unregister() -> None:
    if _active is not None:
        _active.unregister()
