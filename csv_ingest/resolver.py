"""
Argument resolution: turn the invocation arguments into an `InputSpec`.
"""

from __future__ import annotations

from typing import Sequence

from csv_ingest.domain.models import InputSpec
from csv_ingest.errors import UsageError
from csv_ingest.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_PROGRAM = "csv-ingest"


def usage(program: str = DEFAULT_PROGRAM) -> str:
    """Return the one-line usage message."""
    return f"usage: {program} <csv-file-path>"


def resolve_input(argv: Sequence[str]) -> InputSpec:
    """
    Resolve the input file path from the full argument vector.

    Parameters
    ----------
    argv : Sequence[str]
        Invocation arguments; argv[0] is the program identifier.

    Returns
    -------
    InputSpec
        The first user-supplied argument as the input path. The path is not
        checked for existence here.

    Raises
    ------
    UsageError
        If no path argument was supplied, or it is blank.
    """
    program = argv[0] if argv else DEFAULT_PROGRAM
    if len(argv) < 2:
        raise UsageError(f"missing input file path\n{usage(program)}")

    path = argv[1]
    if not path.strip():
        raise UsageError(f"input file path must not be empty\n{usage(program)}")

    if len(argv) > 2:
        log.warning(
            "Ignoring extra arguments",
            extra={"ignored": list(argv[2:])},
        )
    return InputSpec(path=path, program=program)


__all__ = ["resolve_input", "usage"]
