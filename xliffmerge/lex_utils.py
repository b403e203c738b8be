"""
Lexicographic distance between identifiers.

Used to find the place where a brand-new unit id fits best in an existing,
not necessarily sorted, sequence of ids: the closest id wins, and the sign of
the distance tells whether the new id goes before or after it.
"""
from typing import Callable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

# Largest integer that is exactly representable as a double
_MAX_DISTANCE = 2 ** 53 - 1


class LexDist:
    """
    Per position signed character differences of two strings ("b - a").

    Once the first non-zero entry fixes the sign of a distance, all further
    entries are weighed in that direction, so a longer shared prefix and a
    later difference both make the distance smaller.
    """

    def __init__(self, dist: List[int]):
        self.dist = list(dist)

    def __eq__(self, other):
        if not isinstance(other, LexDist):
            return NotImplemented
        return self.dist == other.dist

    def __repr__(self):
        return f"LexDist({self.dist!r})"

    def is_negative(self) -> bool:
        return next((d for d in self.dist if d != 0), 0) < 0

    def smaller_than(self, other: "LexDist") -> bool:
        first_sign_this = 0
        first_sign_other = 0
        for i in range(max(len(self.dist), len(other.dist))):
            this_i = self.dist[i] if i < len(self.dist) else 0
            other_i = other.dist[i] if i < len(other.dist) else 0
            if first_sign_this == 0:
                first_sign_this = _sign(this_i)
            if first_sign_other == 0:
                first_sign_other = _sign(other_i)
            if first_sign_this:
                this_i *= first_sign_this
            if first_sign_other:
                other_i *= first_sign_other
            if this_i < other_i:
                return True
            if this_i > other_i:
                return False
        return False

    def normalize(self) -> "LexDist":
        """Drops trailing zeros, so equal strings of any length compare equal."""
        dist = list(self.dist)
        while dist and dist[-1] == 0:
            dist.pop()
        return LexDist(dist)

    @staticmethod
    def from_difference(a: str, b: str) -> "LexDist":
        """Distance "b - a": positive if b sorts after a."""
        dist = []
        for i in range(max(len(a), len(b))):
            code_a = ord(a[i]) if i < len(a) else 0
            code_b = ord(b[i]) if i < len(b) else 0
            dist.append(code_b - code_a)
        return LexDist(dist)


DIST_MAX = LexDist([_MAX_DISTANCE])


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def find_lex_closest_index(unit_id: str, items: Sequence[T], key: Callable[[T], str]) -> Tuple[int, bool]:
    """
    Finds the item whose key is lexicographically closest to `unit_id`
    (case insensitive, first occurrence wins ties).

    Returns (index, before): `before` is True if `unit_id` belongs in front
    of the found item, False if it belongs right after it. An empty sequence
    yields (0, True).
    """
    index = 0
    min_distance = DIST_MAX
    id_normalized = unit_id.lower()
    for i, item in enumerate(items):
        distance = LexDist.from_difference(id_normalized, key(item).lower())
        if distance.smaller_than(min_distance):
            min_distance = distance
            index = i
    return index, not min_distance.is_negative()
