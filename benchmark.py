# benchmark.py
import os
import json
import time
import numpy as np

from cache import Cache, ConfigError, SimulationContext, validate_geometry
from replay import Op, TraceRecord, TraceReplayer, read_trace, write_trace

DEFAULT_GEOMETRIES = [
    {"s": 1, "E": 1, "b": 1},
    {"s": 4, "E": 1, "b": 4},
    {"s": 2, "E": 4, "b": 4},
    {"s": 5, "E": 1, "b": 5},
]


class WorkloadGenerator:
    """
    Synthetic load/store/modify trace over a working set of blocks.
    Patterns: "sequential", "random", or "mixed" (mostly sequential with
    some random jumps).
    """

    def __init__(self, rng, num_blocks, block_bytes=64, access_pattern="mixed",
                 read_ratio=0.8, modify_ratio=0.1):
        self.rng = rng
        self.num_blocks = max(1, num_blocks)
        self.block_bytes = block_bytes
        self.access_pattern = access_pattern
        self.read_ratio = read_ratio
        self.modify_ratio = modify_ratio
        self._seq_ptr = 0

    def _next_sequential(self):
        addr = self._seq_ptr
        self._seq_ptr = (addr + 1) % self.num_blocks
        return addr

    def _generate_block(self):
        if self.access_pattern == "sequential":
            return self._next_sequential()
        elif self.access_pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed
            if self.rng.random() < 0.8:
                return self._next_sequential()
            return int(self.rng.integers(0, self.num_blocks))

    def _generate_op(self):
        r = self.rng.random()
        if r < self.modify_ratio:
            return Op.MODIFY
        if r < self.modify_ratio + (1.0 - self.modify_ratio) * self.read_ratio:
            return Op.LOAD
        return Op.STORE

    def generate(self, num_requests):
        records = []
        for _ in range(num_requests):
            block = self._generate_block()
            offset = int(self.rng.integers(0, self.block_bytes))
            size = int(self.rng.choice([1, 2, 4, 8]))
            records.append(TraceRecord(self._generate_op(), block * self.block_bytes + offset, size))
        return records


def save_results(summary, out_cfg, filename):
    results_dir = out_cfg.get("results_dir", "results")
    os.makedirs(results_dir, exist_ok=True)
    path = os.path.join(results_dir, filename)
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path


def geometry_label(geom):
    return f"s={geom['s']} E={geom['E']} b={geom['b']}"


def check_geometry(geom):
    if not isinstance(geom, dict):
        raise ConfigError(f"geometry must be an object with s, E and b: {geom!r}")
    validate_geometry(geom.get("s"), geom.get("E"), geom.get("b"))


class BenchmarkRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        bench_cfg = cfg.get("benchmark", {})
        self.rng = np.random.default_rng(bench_cfg.get("random_seed", None))
        self.geometries = bench_cfg.get("geometries", DEFAULT_GEOMETRIES)
        for geom in self.geometries:
            check_geometry(geom)
        self.trace_path = cfg.get("trace")
        self.generated_trace_path = bench_cfg.get("generated_trace", None)
        self.working_set_kb = bench_cfg.get("working_set_kb", 64)
        self.block_bytes = bench_cfg.get("block_bytes", 64)
        self.num_blocks = max(1, (self.working_set_kb * 1024) // self.block_bytes)
        self.num_requests = bench_cfg.get("num_requests", 10000)
        self.read_ratio = bench_cfg.get("read_ratio", 0.8)
        self.modify_ratio = bench_cfg.get("modify_ratio", 0.1)
        self.access_pattern = bench_cfg.get("access_pattern", "mixed")

    def _trace_lines(self):
        # replay from a trace file when one is configured, otherwise synthesize
        if self.trace_path:
            return list(read_trace(self.trace_path))
        gen = WorkloadGenerator(
            self.rng, self.num_blocks,
            block_bytes=self.block_bytes,
            access_pattern=self.access_pattern,
            read_ratio=self.read_ratio,
            modify_ratio=self.modify_ratio,
        )
        records = gen.generate(self.num_requests)
        if self.generated_trace_path:
            write_trace(records, self.generated_trace_path)
        return [rec.to_line() for rec in records]

    def run_geometry(self, geom, lines):
        ctx = SimulationContext()
        cache = Cache(geom["s"], geom["E"])
        TraceReplayer(cache, ctx, geom["b"]).replay(lines)
        stats = cache.stats()
        cache.free()
        result = ctx.summary()
        result.update(geometry=geometry_label(geom), used_lines=stats["used_lines"],
                      cache_bytes=(1 << geom["s"]) * geom["E"] * (1 << geom["b"]))
        return result

    def run(self):
        lines = self._trace_lines()
        start = time.time()
        runs = [self.run_geometry(geom, lines) for geom in self.geometries]
        end = time.time()

        hits = np.array([r["hits"] for r in runs], dtype=np.int64)
        misses = np.array([r["misses"] for r in runs], dtype=np.int64)
        totals = hits + misses
        hit_rates = np.divide(hits, totals, out=np.zeros(len(runs)), where=totals > 0)

        summary = {
            "trace": self.trace_path or "generated",
            "num_records": len(lines),
            "runs": runs,
            "best_geometry": runs[int(np.argmax(hit_rates))]["geometry"] if runs else None,
            "duration_s": end - start,
        }
        return summary, hit_rates

    def save_results(self, summary, out_cfg):
        return save_results(summary, out_cfg, out_cfg.get("sweep_file", "sweep.json"))
