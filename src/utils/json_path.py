"""
Optional-field access over loosely shaped JSON payloads
"""

from typing import Any, Sequence, Union


class _Missing:
    """Marker for a path that does not resolve to a value"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def split_path(path: Union[str, Sequence[str]]) -> Sequence[str]:
    if isinstance(path, str):
        return [segment for segment in path.split(".") if segment]
    return path


def get_path(tree: Any, path: Union[str, Sequence[str]]) -> Any:
    """
    Resolve a dotted path against a JSON tree

    Returns MISSING when any segment is absent, when an intermediate value is
    not an object, or when the final value is JSON null. False, 0 and empty
    strings are returned as-is: presence is definedness, not truthiness.
    """
    current = tree
    for segment in split_path(path):
        if not isinstance(current, dict) or segment not in current:
            return MISSING
        current = current[segment]
        if current is None:
            return MISSING
    if current is None:
        return MISSING
    return current
