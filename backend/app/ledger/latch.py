from dataclasses import dataclass


@dataclass
class Latch:
    """A boolean that can go from False to True exactly once."""

    _value: bool = False

    def __bool__(self) -> bool:
        return self._value

    @property
    def is_set(self) -> bool:
        return self._value

    def set_once(self) -> bool:
        """Set the latch. Returns True only for the call that flipped it."""
        if self._value:
            return False
        self._value = True
        return True


class LatchSet:
    """One latch per id, e.g. the burned-position bitmap."""

    def __init__(self):
        self._ids: set[int] = set()

    def __contains__(self, key: int) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def set_once(self, key: int) -> bool:
        if key in self._ids:
            return False
        self._ids.add(key)
        return True

    def snapshot(self) -> frozenset[int]:
        return frozenset(self._ids)

    def restore(self, state: frozenset[int]) -> None:
        self._ids = set(state)
