from .codes import resolve_codes
from .fault import CallType, Fault, RawError, Severity, StackFrame
from .frames import ParameterNameResolver, SignatureResolver
from .html import html_page
from .normalize import Promoted, Suppressed, from_exception, promote_error
from .registry import FaultCaptureRegistry, PythonRuntime, register, unregister
from .source import highlight_file

__all__ = [
    "register",
    "unregister",
    "FaultCaptureRegistry",
    "PythonRuntime",
    "Fault",
    "StackFrame",
    "RawError",
    "Severity",
    "CallType",
    "ParameterNameResolver",
    "SignatureResolver",
    "Suppressed",
    "Promoted",
    "from_exception",
    "promote_error",
    "resolve_codes",
    "highlight_file",
    "html_page",
]
