"""
Alea pseudo-random generator used for cell-local random streams.

Based on Johannes Baagøe's Alea algorithm. The generator is seeded from any
sequence of values, so a stream can be keyed by (world seed, cell id, purpose)
and replayed identically no matter when or where a cell is first visited.
"""


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class AleaPRNG:
    """
    Small deterministic generator with a 96-bit state.

    Each instance is independent; nothing here touches module-level state.
    """

    def __init__(self, seed):
        """Initialize with a seed value or a sequence of seed values."""
        self.call_count = 0

        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            parts = list(seed)
        else:
            parts = [seed]

        mash_n = 0xEFC8249D

        def mash(data):
            nonlocal mash_n
            for char in str(data):
                mash_n = mash_n + ord(char)
                h = 0.02519603282416938 * mash_n
                mash_n = _uint32(h)
                h -= mash_n
                h *= mash_n
                mash_n = _uint32(h)
                h -= mash_n
                mash_n += h * 0x100000000  # 2^32
            return _uint32(mash_n) * 2.3283064365386963e-10  # 2^-32

        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for part in parts:
            self.s0 -= mash(part)
            if self.s0 < 0:
                self.s0 += 1
            self.s1 -= mash(part)
            if self.s1 < 0:
                self.s1 += 1
            self.s2 -= mash(part)
            if self.s2 < 0:
                self.s2 += 1

    def random(self) -> float:
        """Next value in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * 2.3283064365386963e-10  # 2^-32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high)."""
        if high <= low:
            raise ValueError(f"Empty range [{low}, {high})")
        return low + int(self.random() * (high - low))

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return self.random() < probability

    def choice(self, seq):
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]


_INT32_RANGE = 1 << 32
_INT32_MIN = -(1 << 31)


def derive_seed(seed: int, offset: int) -> int:
    """
    Offset a world seed for one noise channel, wrapped into signed 32-bit range.

    Args:
        seed: World seed
        offset: Fixed per-purpose delta

    Returns:
        Channel seed accepted by the noise backend
    """
    return (int(seed) + int(offset) - _INT32_MIN) % _INT32_RANGE + _INT32_MIN


def cell_stream(seed: int, cell_id: int, purpose: str) -> AleaPRNG:
    """
    Get the random stream owned by one cell.

    The stream depends only on (seed, cell_id, purpose), so the same cell
    replays the same draws whenever it is resolved.

    Args:
        seed: Seed of the channel that owns the stream
        cell_id: Cell identifier
        purpose: Label separating independent streams of the same cell

    Returns:
        Fresh AleaPRNG instance
    """
    return AleaPRNG([seed, cell_id, purpose])
