# main.py
import argparse
import json
import sys

from benchmark import BenchmarkRunner, save_results
from cache import Cache, ConfigError, SimulationContext, validate_geometry
from replay import TraceError, TraceReplayer
from visualize import plot_hit_miss_rate, plot_sweep

USAGE = "%(prog)s -s <s> -E <E> -b <b> -t <tracefile> [-v]"


def load_config(path="config.json"):
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot load config {path}: {e}") from e


def validate(s, E, b, tracefile):
    if s is None or E is None or b is None or not tracefile:
        raise ConfigError("Missing required args")
    validate_geometry(s, E, b)


def print_summary(hits, misses, evictions):
    print(f"hits:{hits} misses:{misses} evictions:{evictions}")


def simulate(s, E, b, tracefile, verbose=False, reporter=print_summary, out=None):
    """
    Replay `tracefile` through a fresh s/E/b cache.
    `reporter` is called once with the final (hits, misses, evictions).
    """
    ctx = SimulationContext()
    cache = Cache(s, E)
    try:
        TraceReplayer(cache, ctx, b, verbose=verbose, out=out).replay_file(tracefile)
    finally:
        cache.free()
    reporter(ctx.hit_count, ctx.miss_count, ctx.eviction_count)
    return ctx


def build_parser():
    parser = argparse.ArgumentParser(usage=USAGE, description="Set-associative LRU cache simulator")
    parser.add_argument("-s", type=int, help="number of set index bits")
    parser.add_argument("-E", type=int, help="associativity (lines per set)")
    parser.add_argument("-b", type=int, help="number of block offset bits")
    parser.add_argument("-t", dest="tracefile", help="trace file to replay")
    parser.add_argument("-v", dest="verbose", action="store_true", default=None, help="print the outcome of every record")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--sweep", action="store_true", help="run the geometry sweep from the config")
    parser.add_argument("--plot", action="store_true", help="save plots of the results")
    return parser


def resolve_args(args):
    """Merge command-line flags over the config file; flags win."""
    cfg = load_config(args.config) if args.config else {}
    cache_cfg = cfg.get("cache", {})

    def pick(flag, key):
        return flag if flag is not None else cache_cfg.get(key)

    s = pick(args.s, "set_bits")
    E = pick(args.E, "associativity")
    b = pick(args.b, "block_bits")
    tracefile = args.tracefile or cfg.get("trace")
    verbose = args.verbose if args.verbose is not None else cfg.get("verbose", False)
    return cfg, s, E, b, tracefile, verbose


def run_sweep(cfg, plot):
    runner = BenchmarkRunner(cfg)
    print("Starting sweep with config:", cfg.get("benchmark", {}))
    summary, hit_rates = runner.run()
    results_path = runner.save_results(summary, cfg.get("output", {}))
    print("Results saved to:", results_path)
    if plot:
        out_cfg = cfg.get("output", {})
        labels = [r["geometry"] for r in summary["runs"]]
        plot_sweep(labels, hit_rates, out_cfg.get("sweep_plot", "results/sweep_hit_rate.png"))
        print("Plots saved in results/")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        cfg, s, E, b, tracefile, verbose = resolve_args(args)
        if args.sweep:
            run_sweep(dict(cfg, trace=tracefile), args.plot)
            return 0
        validate(s, E, b, tracefile)
        ctx = simulate(s, E, b, tracefile, verbose=verbose)
    except (ConfigError, TraceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    out_cfg = cfg.get("output", {})
    if out_cfg:
        summary = dict(ctx.summary(), set_bits=s, associativity=E, block_bits=b, trace=tracefile)
        path = save_results(summary, out_cfg, out_cfg.get("results_file", "results.json"))
        print("Results saved to:", path)
    if args.plot:
        plot_hit_miss_rate(ctx.hit_count, ctx.miss_count, ctx.eviction_count,
                           out_cfg.get("hitmiss_plot", "results/hit_miss_rate.png"))
        print("Plots saved in results/")
    return 0


if __name__ == "__main__":
    sys.exit(main())
