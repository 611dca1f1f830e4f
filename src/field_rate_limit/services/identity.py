from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

FIELD_IDENTITY_DELIMITER = ":"

_MISSING = object()


@dataclass(frozen=True)
class Identity:
    context_identity: str
    field_identity: str


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """
    Dot-separated lookup into nested mappings, sequences and objects.

    get_path({"item": {"ids": [7, 9]}}, "item.ids.1") -> 9
    Missing segments resolve to `default`, never raise.
    """
    current = obj
    for part in path.split("."):
        if current is None:
            return default

        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                current = _MISSING
        else:
            current = getattr(current, part, _MISSING)

        if current is _MISSING:
            return default

    return current


def _project(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_project(item) for item in value)
    return str(value)


def get_field_identity(field_name: str, identity_args: Iterable[str], args: Any) -> str:
    """
    Key for a field call: the field name plus the values of the selected args.

    ("books", ["id", "title"], {"id": 1, "title": "Foo", "sub": "Bar"}) -> "books:1:Foo"

    Values are joined by their text form, so None and a missing arg both give an
    empty segment, and 2 and "2" land on the same key.
    """
    values = [_project(get_path(args, arg)) for arg in identity_args]
    return FIELD_IDENTITY_DELIMITER.join([field_name, *values])
