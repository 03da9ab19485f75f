"""Status and exit code policy for captured faults."""

from __future__ import annotations

EXIT_SUCCESS = 0  # no errors (never produced here)
EXIT_ERROR = 1  # generic error
EXIT_AUTO_MIN = 9  # lowest automatically-assigned error code
EXIT_AUTO_MAX = 125  # highest automatically-assigned error code


def resolve_codes(raw_code: int) -> tuple[int, int]:
    """Derive the HTTP status code and the process exit code for a fault.

    Codes in the HTTP range are used as the status as-is and exit with the
    generic error code. Anything else is served as 500 and gets an exit code
    from the automatic band, collapsing to the generic error code when the
    band would overflow.
    """
    status = abs(raw_code)
    if status < 100 or status > 599:
        exit_code = status + EXIT_AUTO_MIN
        if exit_code > EXIT_AUTO_MAX:
            exit_code = EXIT_ERROR
        return 500, exit_code
    return status, EXIT_ERROR
