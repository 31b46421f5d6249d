"""
Alea pseudo-random generator as an explicit state value.

Based on Johannes Baagøe's Alea algorithm. The generator state is an
immutable ``AleaState`` that is threaded through callers; ``alea_next``
returns the next value together with the successor state. ``AleaPRNG``
is a small convenience holder around one state for code that consumes
many numbers in sequence. Nothing in this package keeps a global PRNG.
"""

from typing import Any, List, MutableSequence, NamedTuple, Sequence, Tuple, TypeVar

T = TypeVar("T")

_TWO_POW_32 = 0x100000000
_TWO_POW_NEG_32 = 2.3283064365386963e-10


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class AleaState(NamedTuple):
    """Complete generator state. Immutable; copy freely."""

    s0: float
    s1: float
    s2: float
    c: int


def _mash_values(values: Sequence[Any]) -> List[float]:
    """Run Baagøe's Mash hash over a space and then each value in turn."""
    mash_n = 0xEFC8249D
    results = []
    for data in values:
        for char in str(data):
            mash_n = mash_n + ord(char)
            h = 0.02519603282416938 * mash_n
            mash_n = _uint32(h)
            h -= mash_n
            h *= mash_n
            mash_n = _uint32(h)
            h -= mash_n
            mash_n += h * _TWO_POW_32
        results.append(_uint32(mash_n) * _TWO_POW_NEG_32)
    return results


def alea_seed(seed: Any) -> AleaState:
    """
    Build the initial state for a seed.

    Args:
        seed: Integer, string, or an iterable of either

    Returns:
        Initial AleaState
    """
    if hasattr(seed, "__iter__") and not isinstance(seed, str):
        args = list(seed)
    else:
        args = [seed]

    # Mash keeps its accumulator across calls, so every draw is hashed in order
    sequence: List[Any] = [" ", " ", " "]
    for arg in args:
        sequence.extend([arg, arg, arg])
    mashed = _mash_values(sequence)

    s0, s1, s2 = mashed[0], mashed[1], mashed[2]
    for i in range(len(args)):
        m0, m1, m2 = mashed[3 + i * 3: 6 + i * 3]
        s0 -= m0
        if s0 < 0:
            s0 += 1
        s1 -= m1
        if s1 < 0:
            s1 += 1
        s2 -= m2
        if s2 < 0:
            s2 += 1

    return AleaState(s0, s1, s2, 1)


def alea_next(state: AleaState) -> Tuple[float, AleaState]:
    """Return the next number in [0, 1) and the successor state."""
    t = 2091639 * state.s0 + state.c * _TWO_POW_NEG_32
    c = int(t)
    s2 = t - c
    return s2, AleaState(state.s1, state.s2, s2, c)


class AleaPRNG:
    """
    Sequential view over an AleaState.

    Callers pass instances explicitly into every generation step; two
    instances built from the same seed produce identical streams.
    """

    def __init__(self, seed: Any = None, state: AleaState = None):
        """Initialize from a seed, or resume from an existing state."""
        self.call_count = 0
        if state is not None:
            self.state = state
        else:
            self.state = alea_seed("default" if seed is None else seed)

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        value, self.state = alea_next(self.state)
        return value

    def uniform(self, low: float, high: float) -> float:
        """Random float in [low, high)."""
        return low + self.random() * (high - low)

    def randint(self, low: int, high: int) -> int:
        """Random integer in [low, high], both ends inclusive."""
        return low + int(self.random() * (high - low + 1))

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def shuffle(self, items: MutableSequence[T]) -> None:
        """Fisher-Yates shuffle in place, walking from the end."""
        for i in range(len(items) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            items[i], items[j] = items[j], items[i]

    def fork(self) -> "AleaPRNG":
        """Independent copy continuing from the current state."""
        return AleaPRNG(state=self.state)
