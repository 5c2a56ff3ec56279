from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Self, TypeVar, overload

from pyagency.types import HeadersType

_T = TypeVar("_T")
_MISSING: Any = object()


class HeaderMap(MutableMapping[str, str]):
    """Case-insensitive multi-value header mapping.

    Names are stored lower-cased. Mapping access (`headers["x"]`) reads the first value of a name and
    assignment replaces all values of a name. Use `getall`, `append` and `items_multi` for names that
    may occur several times, such as `Set-Cookie`.
    """

    def __init__(self, other: HeadersType | None = None) -> None:
        self._items: dict[str, list[str]] = {}
        if other is not None:
            self.extend(other)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __getitem__(self, key: str, /) -> str:
        return self._items[key.lower()][0]

    def __setitem__(self, key: str, value: str, /) -> None:
        self._items[key.lower()] = [value]

    def __delitem__(self, key: str, /) -> None:
        del self._items[key.lower()]

    def __contains__(self, key: object, /) -> bool:
        return isinstance(key, str) and key.lower() in self._items

    def len(self) -> int:
        """Total number of values, counting every value of repeated names."""
        return sum(len(values) for values in self._items.values())

    def getall(self, key: str) -> list[str]:
        """All values of a name in insertion order (empty list when missing)."""
        return [*self._items.get(key.lower(), [])]

    def insert(self, key: str, value: str) -> list[str]:
        """Replace all values of a name, returning the previous values."""
        previous = self._items.get(key.lower(), [])
        self._items[key.lower()] = [value]
        return previous

    def append(self, key: str, value: str) -> bool:
        """Add a value keeping existing ones. Returns True if the name was already present."""
        values = self._items.setdefault(key.lower(), [])
        values.append(value)
        return len(values) > 1

    def extend(self, other: HeadersType) -> None:
        if isinstance(other, HeaderMap):
            pairs = other.items_multi()
        elif isinstance(other, Mapping):
            pairs = list(other.items())
        else:
            pairs = list(other)
        for key, value in pairs:
            self.append(key, value)

    @overload
    def popall(self, key: str) -> list[str]: ...
    @overload
    def popall(self, key: str, /, default: _T) -> list[str] | _T: ...
    def popall(self, key: str, /, default: Any = _MISSING) -> Any:
        if default is _MISSING:
            return self._items.pop(key.lower())
        return self._items.pop(key.lower(), default)

    def items_multi(self) -> list[tuple[str, str]]:
        """All (name, value) pairs, repeated names included."""
        return [(key, value) for key, values in self._items.items() for value in values]

    def dict_multi_value(self) -> dict[str, str | list[str]]:
        return {key: values[0] if len(values) == 1 else [*values] for key, values in self._items.items()}

    def copy(self) -> Self:
        new = type(self)()
        new._items = {key: [*values] for key, values in self._items.items()}
        return new

    def __copy__(self) -> Self:
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self == HeaderMap(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderMap({self.items_multi()!r})"
