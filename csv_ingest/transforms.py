"""
Column transforms applied to records before they are written.

A transform table maps a column name to a function taking the raw string
value and returning the value to bind. Columns without an entry pass through
unchanged. Tables are built from code (`TransformTable`) or from a spec
string such as ``"is_alive=yes_no,age=int"`` so a new dataset only needs new
configuration.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from csv_ingest.domain.models import Record
from csv_ingest.errors import UsageError

Transform = Callable[[str], Any]
TransformTable = Mapping[str, Transform]

_YES = frozenset({"yes", "y"})
_NO = frozenset({"no", "n"})
_TRUE = _YES | {"true", "t", "1"}


def yes_no_flag(value: str, default: int = 0) -> int:
    """Map "yes" to 1 and "no" to 0; anything else yields `default`."""
    normalized = value.strip().lower()
    if normalized in _YES:
        return 1
    if normalized in _NO:
        return 0
    return default


def to_bool(value: str) -> bool:
    """Truthy spellings (yes/y/true/t/1) map to True; anything else is False."""
    return value.strip().lower() in _TRUE


def to_int(value: str) -> Optional[int]:
    """Parse an integer; an empty field becomes NULL."""
    stripped = value.strip()
    return int(stripped) if stripped else None


def to_float(value: str) -> Optional[float]:
    stripped = value.strip()
    return float(stripped) if stripped else None


def null_if_empty(value: str) -> Optional[str]:
    return value if value.strip() else None


def identity(value: str) -> str:
    return value


TRANSFORMS: Dict[str, Transform] = {
    "yes_no": yes_no_flag,
    "bool": to_bool,
    "int": to_int,
    "float": to_float,
    "strip": str.strip,
    "null_if_empty": null_if_empty,
    "str": identity,
}

DEFAULT_TRANSFORMS: Dict[str, Transform] = {"is_alive": yes_no_flag}


def available_transforms() -> list[str]:
    """List registered transform names."""
    return sorted(TRANSFORMS)


def parse_transform_spec(spec: str) -> Dict[str, Transform]:
    """
    Build a transform table from ``"column=name,column=name"``.

    An empty spec yields an empty table (every column passes through).

    Raises
    ------
    UsageError
        For a pair without ``=``, an empty column, or an unknown transform name.
    """
    table: Dict[str, Transform] = {}
    for pair in spec.split(","):
        pair = pair.strip()
        if not pair:
            continue
        column, sep, name = pair.partition("=")
        column, name = column.strip(), name.strip()
        if not sep or not column or not name:
            raise UsageError(f"invalid transform {pair!r}: expected COLUMN=NAME")
        if name not in TRANSFORMS:
            raise UsageError(
                f"unknown transform {name!r} for column {column!r}; "
                f"available: {', '.join(available_transforms())}"
            )
        table[column] = TRANSFORMS[name]
    return table


def apply_transforms(
    record: Record,
    transforms: TransformTable,
    columns: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Return the converted values of `record` keyed by column.

    Only `columns` are converted and returned when given (in that order);
    otherwise every column of the record, in record order.
    """
    selected = record.keys() if columns is None else columns
    return {
        column: transforms[column](record[column]) if column in transforms else record[column]
        for column in selected
    }


__all__ = [
    "DEFAULT_TRANSFORMS",
    "TRANSFORMS",
    "Transform",
    "TransformTable",
    "apply_transforms",
    "available_transforms",
    "parse_transform_spec",
    "to_bool",
    "to_float",
    "to_int",
    "yes_no_flag",
]
