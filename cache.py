# cache.py
import enum

# Width of the set-count word; 2**s must fit in it.
SET_COUNT_BITS = 64
ADDRESS_MASK = (1 << 64) - 1


class ConfigError(Exception):
    pass


class CacheConfigError(ConfigError):
    pass


def validate_geometry(s, E, b):
    """Reject geometry a Cache cannot be built from. Raises ConfigError."""
    for name, value in (("s", s), ("E", E), ("b", b)):
        if value is None:
            raise ConfigError(f"missing geometry value: {name}")
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"geometry value {name} must be an integer, got {value!r}")
    if s < 0 or E <= 0 or b < 0:
        raise ConfigError(f"invalid geometry: s={s} E={E} b={b}")


class Outcome(enum.Enum):
    HIT = "hit"
    MISS = "miss"
    MISS_EVICTION = "miss eviction"

    def __str__(self):
        return self.value


class SimulationContext:
    """
    Counters and access clock for one simulation run.
    The clock only ever moves forward; every access gets a unique stamp.
    """

    def __init__(self):
        self.hit_count = 0
        self.miss_count = 0
        self.eviction_count = 0
        self.skipped_count = 0
        self.clock = 0

    def tick(self):
        self.clock += 1
        return self.clock

    def summary(self):
        total = self.hit_count + self.miss_count
        return {
            "hits": self.hit_count,
            "misses": self.miss_count,
            "evictions": self.eviction_count,
            "skipped_lines": self.skipped_count,
            "hit_rate": (self.hit_count / total) if total else 0,
        }


class CacheLine:
    __slots__ = ("valid", "tag", "last_used")

    def __init__(self):
        self.valid = False
        self.tag = 0
        self.last_used = 0

    def fill(self, tag, stamp):
        self.valid = True
        self.tag = tag
        self.last_used = stamp


class Cache:
    """
    Set-associative LRU cache model.
    Tracks only which blocks are resident, never their data.
    Address layout is [tag | s set-index bits | b offset bits].
    """

    def __init__(self, s, E):
        if s >= SET_COUNT_BITS:
            raise CacheConfigError(f"s is too large: {s}")
        self.s = s
        self.E = E
        self.num_sets = 1 << s
        self.set_mask = self.num_sets - 1
        self.sets = [[CacheLine() for _ in range(E)] for _ in range(self.num_sets)]

    def decompose(self, addr, b):
        """Split `addr` into (tag, set_index, offset) for block offset width `b`."""
        addr &= ADDRESS_MASK
        offset = addr & ((1 << b) - 1)
        set_index = (addr >> b) & self.set_mask
        tag = addr >> (b + self.s)
        return tag, set_index, offset

    def access(self, addr, b, ctx):
        """
        Access `addr` and update LRU state and the counters in `ctx`.
        Returns the Outcome of the access.
        """
        stamp = ctx.tick()
        tag, set_index, _ = self.decompose(addr, b)
        lines = self.sets[set_index]

        for line in lines:
            if line.valid and line.tag == tag:
                ctx.hit_count += 1
                line.last_used = stamp
                return Outcome.HIT

        ctx.miss_count += 1
        for line in lines:
            if not line.valid:
                line.fill(tag, stamp)
                return Outcome.MISS

        # set is full: replace the line with the oldest stamp, lowest index first
        ctx.eviction_count += 1
        victim = lines[0]
        for line in lines[1:]:
            if line.last_used < victim.last_used:
                victim = line
        victim.fill(tag, stamp)
        return Outcome.MISS_EVICTION

    def resident_tags(self, set_index):
        return [line.tag for line in self.sets[set_index] if line.valid]

    def free(self):
        # safe to call more than once
        self.sets = None

    def stats(self):
        used_lines = sum(len(self.resident_tags(i)) for i in range(len(self.sets or [])))
        return {
            "set_bits": self.s,
            "num_sets": self.num_sets,
            "associativity": self.E,
            "used_lines": used_lines,
        }
