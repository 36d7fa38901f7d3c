"""Safe error message formatting utilities.

Ensures exceptions always have useful display messages, even when their
str() representation is empty (e.g., a bare OSError raised by an injector
or a script), and that dynamic text is safe to print through Rich markup.
"""

from __future__ import annotations

from rich.markup import escape as _escape_markup

from ..errors import LoaderError

# Friendly messages for exception types known to have empty str()
FRIENDLY_MESSAGES: dict[type, str] = {
    FileNotFoundError: "Module file was not found.",
    PermissionError: "Module file could not be read (permission denied).",
    TimeoutError: "Module delivery timed out.",
    RecursionError: "Module script recursed too deeply.",
    KeyboardInterrupt: "Operation interrupted by user.",
}


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """Format an exception into a useful display message.

    Loader errors already name the offending namespace or module path, so
    their message is used as-is without the type prefix.

    Args:
        e: The exception to format
        include_type: Whether to include the exception type name

    Returns:
        A non-empty, user-friendly error message

    Examples:
        >>> format_error_message(FileNotFoundError())
        'FileNotFoundError: Module file was not found.'

        >>> format_error_message(ValueError("invalid input"))
        'ValueError: invalid input'

        >>> format_error_message(ValueError("invalid input"), include_type=False)
        'invalid input'
    """
    error_str = str(e)
    error_type = type(e).__name__

    if isinstance(e, LoaderError) and error_str:
        return error_str

    if error_str:
        if include_type and error_type not in error_str:
            return f"{error_type}: {error_str}"
        return error_str

    for exc_type, friendly_msg in FRIENDLY_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{error_type}: {friendly_msg}" if include_type else friendly_msg

    return f"{error_type}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings.

    Namespace paths never contain brackets, but module paths and exception
    messages may.
    """
    return _escape_markup(str(value))
