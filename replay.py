# replay.py
import enum
import re
import sys

# " L 7ff000,8" -> op, hex address, decimal size; trailing text is ignored
LINE_RE = re.compile(r"\s*([A-Za-z])\s+(?:0[xX])?([0-9a-fA-F]+),\s*([+-]?\d+)")


class TraceError(Exception):
    pass


class Op(enum.Enum):
    LOAD = "L"
    STORE = "S"
    MODIFY = "M"
    INSTRUCTION = "I"


class TraceRecord:
    def __init__(self, op, address, size):
        self.op = op
        self.address = address
        self.size = size

    def to_line(self):
        return f"{self.op.value} {self.address:x},{self.size}"

    def __eq__(self, other):
        if not isinstance(other, TraceRecord):
            return NotImplemented
        return (self.op, self.address, self.size) == (other.op, other.address, other.size)

    def __repr__(self):
        return f"TraceRecord({self.op.value}, {self.address:#x}, {self.size})"


def parse_line(line):
    """Parse one trace line. Returns None if the line is not a recognized record."""
    m = LINE_RE.match(line)
    if not m:
        return None
    try:
        op = Op(m.group(1))
    except ValueError:
        return None
    return TraceRecord(op, int(m.group(2), 16), int(m.group(3)))


def read_trace(path):
    try:
        f = open(path, "r")
    except OSError as e:
        raise TraceError(f"cannot open trace file {path}: {e.strerror}") from e
    with f:
        yield from f


def write_trace(records, path):
    with open(path, "w") as f:
        for rec in records:
            f.write(" " + rec.to_line() + "\n")
    return path


class TraceReplayer:
    """
    Drives a Cache with trace records.

    Loads and stores make one access, modifies make two accesses to the same
    address in sequence. Instruction fetches and unparseable lines are
    skipped. In verbose mode every replayed record is echoed to `out`
    followed by one outcome token per access.
    """

    def __init__(self, cache, ctx, block_bits, verbose=False, out=None):
        self.cache = cache
        self.ctx = ctx
        self.block_bits = block_bits
        self.verbose = verbose
        self.out = out if out is not None else sys.stdout

    def _access(self, address):
        return self.cache.access(address, self.block_bits, self.ctx)

    def replay_record(self, rec):
        if rec.op is Op.INSTRUCTION:
            return []
        outcomes = [self._access(rec.address)]
        if rec.op is Op.MODIFY:
            outcomes.append(self._access(rec.address))
        if self.verbose:
            tokens = " ".join(str(o) for o in outcomes)
            print(f"{rec.to_line()} {tokens}", file=self.out)
        return outcomes

    def replay(self, lines):
        for line in lines:
            rec = parse_line(line)
            if rec is None:
                if line.strip():
                    self.ctx.skipped_count += 1
                continue
            self.replay_record(rec)
        return self.ctx

    def replay_file(self, path):
        return self.replay(read_trace(path))
