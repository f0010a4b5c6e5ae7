"""
Exit codes for CLI commands.

Commands never catch errors themselves; they run through run_and_exit, which
prints the error and turns it into the exit code a calling script can act on.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

import typer

T = TypeVar('T')

logger = logging.getLogger(__name__)

# Exit codes by exception class name; the class hierarchy is walked, most specific first
EXIT_CODES = {
    "MetaNotFoundError": 1,
    "ObjectNotFoundError": 1,
    "BlockValidationError": 2,
    "MetaDecodeError": 2,
    "ValueError": 2,
    "BlockUploadError": 3,
    "BlockDownloadError": 3,
    "BucketError": 3,
    "PartialBlockError": 4,
}

FALLBACK_EXIT_CODE = 3


def exit_code_for(exc: BaseException) -> int:
    """
    Exit code for an exception raised by a command.

    - 1: block or metadata not found
    - 2: bad input (block dir, ID, labels, configuration) or corrupt metadata
    - 3: transfer failure, or anything unrecognized
    - 4: upload failed and a partial block may remain in the bucket
    """
    for cls in type(exc).__mro__:
        code = EXIT_CODES.get(cls.__name__)
        if code is not None:
            return code
    return FALLBACK_EXIT_CODE


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Run a command body, mapping any exception to typer.Exit.

    Returns:
        Whatever func returns

    Raises:
        typer.Exit: Carrying exit_code_for() of the failure
    """
    try:
        return func()
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        from .printers import print_error
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
