"""
Helpers for logging failures without letting the logging itself fail.
"""

import logging


def _safe_str(obj) -> str:
    """Convert an object to string, falling back to repr and then to its type name."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> list:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception: Exception) -> str:
    """
    Format an exception message, including sub-exceptions of exception groups.

    Args:
        exception: The exception to format

    Returns:
        A one-line description of the exception
    """
    if exception is None:
        return "None"
    main_str = _safe_str(exception)
    subs = _sub_exceptions(exception)
    if not subs:
        return main_str
    joined = "; ".join(f"{type(sub).__name__}: {_safe_str(sub)}" for sub in subs)
    return f"{main_str} (Sub-exceptions: {joined})"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its traceback, and each member of an exception group.
    Never raises.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Route]", "[GraphQL]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        subs = _sub_exceptions(exception)
        if subs:
            logger.log(
                level,
                f"{prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
            )
            for i, sub in enumerate(subs):
                logger.log(
                    level,
                    f"{prefix} Sub-exception {i+1}: {type(sub).__name__}: {_safe_str(sub)}",
                    exc_info=sub,
                )
        else:
            logger.log(
                level,
                f"{prefix} Exception: {_safe_str(exception)}",
                exc_info=exception if exception is not None else False,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception (logging failed)")
        except Exception:
            # Logging is broken; nothing left to report to
            pass
