from __future__ import annotations

import typing as t

T_co = t.TypeVar("T_co", covariant=True)
Supplier = t.Callable[[], T_co]


class Once(t.Generic[T_co]):
    """Calls the *supplier* on first access and caches its return value."""

    def __init__(self, supplier: Supplier[T_co]) -> None:
        self._supplier = supplier
        self._cached: bool = False
        self._value: T_co | None = None

    def __repr__(self) -> str:
        return f"Once({self._supplier!r})"

    def __bool__(self) -> bool:
        return self._cached

    def __call__(self) -> T_co:
        if not self._cached:
            self._value = self._supplier()
            self._cached = True
        return t.cast(T_co, self._value)
