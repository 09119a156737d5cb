from __future__ import annotations

import importlib
from collections.abc import MutableMapping
from typing import Generic, TypeVar

T = TypeVar("T")


class NamedRegistry(Generic[T]):
    """Name -> implementation table for one collaborator family.

    Implementations live in `<package>.<name>` modules and register themselves
    on import, so `resolve()` imports the module lazily the first time a name
    is requested. This keeps optional device libraries (picamera2, tesseract)
    out of the import graph unless the config selects them.
    """

    def __init__(self, package: str, label: str):
        self.package = package
        self.label = label
        self._entries: MutableMapping[str, T] = {}

    def register(self, name: str):
        def decorator(obj: T) -> T:
            self._entries[name] = obj
            return obj

        return decorator

    def resolve(self, name: str) -> T:
        key = str(name or "").strip()
        import_err: Exception | None = None
        if key and key not in self._entries:
            try:
                importlib.import_module(f"{self.package}.{key}")
            except ImportError as e:
                import_err = e
        if key not in self._entries:
            hint = f" (import failed: {import_err})" if import_err else ""
            raise ValueError(
                f"Unknown {self.label} '{key}'. "
                f"Available: {', '.join(self.names()) or 'none'}{hint}"
            )
        return self._entries[key]

    def names(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries


__all__ = ["NamedRegistry"]
