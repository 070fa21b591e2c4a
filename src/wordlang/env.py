"""WordLang environments: a chain of frames with write-local binding."""

from __future__ import annotations

from .values import Value


class Environment:
    """One frame of bindings plus an immutable link to the enclosing frame."""

    def __init__(self, outer: Environment | None = None) -> None:
        self._store: dict[str, Value] = {}
        self._outer = outer

    @property
    def outer(self) -> Environment | None:
        return self._outer

    def get(self, name: str) -> Value | None:
        """Look name up in this frame, then outward. None if unbound anywhere."""
        env: Environment | None = self
        while env is not None:
            if name in env._store:
                return env._store[name]
            env = env.outer
        return None

    def is_defined(self, name: str) -> bool:
        return self.get(name) is not None

    def set(self, name: str, value: Value) -> Value:
        """Bind in this frame only, shadowing any outer binding."""
        self._store[name] = value
        return value

    def child(self) -> Environment:
        return Environment(self)

    def names(self) -> list[str]:
        return sorted(self._store)
