"""Ordered lookups over nested Stripe objects: the first extractor yielding a value wins."""

from collections.abc import Mapping
from typing import Any, Callable, Sequence

Extractor = Callable[[Any], Any]


def first_available(obj: Any, extractors: Sequence[Extractor]) -> Any:
    """Return the first non-empty value produced by ``extractors``, else None."""
    for extractor in extractors:
        value = extractor(obj)
        if value is not None and value != "":
            return value
    return None


def field(*path: Any) -> Extractor:
    """Extractor following a key/index path through nested Stripe objects."""

    def extract(obj: Any) -> Any:
        current = obj
        for key in path:
            if isinstance(key, int):
                if not isinstance(current, (list, tuple)) or len(current) <= key:
                    return None
                current = current[key]
            elif isinstance(current, Mapping):
                current = current.get(key)
            else:
                return None
        return current

    return extract


def mapping_at(*path: Any) -> Extractor:
    """Like ``field`` but only accepts expanded objects, not bare ids."""
    extract_value = field(*path)

    def extract(obj: Any) -> Any:
        value = extract_value(obj)
        return value if isinstance(value, Mapping) else None

    return extract


def via(locate: Extractor, *path: Any) -> Extractor:
    """Extractor applied to the object found by ``locate``."""
    extract_value = field(*path)

    def extract(obj: Any) -> Any:
        target = locate(obj)
        return extract_value(target) if target is not None else None

    return extract
