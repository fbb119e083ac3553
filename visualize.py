# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    dirname = os.path.dirname(outpath)
    if dirname:
        os.makedirs(dirname, exist_ok=True)


def plot_hit_miss_rate(hits, misses, evictions, outpath):
    _ensure_dir(outpath)
    # evictions are a subset of misses
    sizes = [hits, misses - evictions, evictions]
    labels = ['Hit', 'Miss', 'Miss + Eviction']
    plt.figure(figsize=(4,4))
    if sum(sizes) > 0:
        plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Breakdown")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_sweep(labels, hit_rates, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(8,4))
    plt.bar(range(len(labels)), list(hit_rates))
    plt.xticks(range(len(labels)), labels, rotation=30, ha='right')
    plt.ylim(0, 1)
    plt.title("Hit Rate by Cache Geometry")
    plt.ylabel("Hit rate")
    plt.grid(True, axis='y')
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
