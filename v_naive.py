import argparse
import dataclasses
import numpy as np
import pathlib
import time
import matplotlib.pyplot as plt

from tqdm import tqdm

import segtree.segment_tree as st


def reduce_naive(op, values):
    if op == "sum":
        return np.sum(values)
    if op == "min":
        return np.min(values)
    if op == "max":
        return np.max(values)
    if op == "xor":
        return np.bitwise_xor.reduce(values)
    return np.gcd.reduce(np.abs(values))


@dataclasses.dataclass
class TreeComparison:

    num_ops: int
    sizes: list
    seed: int
    output_dir: pathlib.Path
    ops: tuple = ("sum", "min", "max", "xor", "gcd")

    def run(self, f):
        fr = getattr(self, f)
        return fr()

    def random_ops(self, n):
        # yields (index, value, lo_q, hi_q) for one update followed by one query
        rng = np.random.default_rng(self.seed)
        for _ in range(self.num_ops):
            a, b = np.sort(rng.choice(n + 1, size=2, replace=False))
            yield rng.integers(n), rng.integers(-1000, 1000), a, b

    def consistency(self):
        mismatches = 0
        n = max(self.sizes)
        for op in self.ops:
            tree = st.SegmentTree(0, n, op=op)
            values = tree.values()
            for i, v, a, b in tqdm(self.random_ops(n), total=self.num_ops, desc=op):
                tree.update(i, v)
                values[i] = v
                if tree.query(a, b) != reduce_naive(op, values[a:b]):
                    mismatches += 1
            if not tree.check_invariant():
                print(f"{op}: internal node invariant violated")
                mismatches += 1
        print(f"consistency: {mismatches} mismatches in {len(self.ops)} operators")
        return mismatches

    def query_timing(self):
        models = ["segment tree", "numpy"]
        results = np.zeros((len(models), len(self.sizes)), dtype=np.float64)
        for j, n in enumerate(tqdm(self.sizes)):
            rng = np.random.default_rng(self.seed)
            values = rng.integers(-1000, 1000, size=n)
            tree = st.SegmentTree.from_values(values)
            # first call compiles the kernel
            tree.query(0, 1)
            ranges = [r[2:] for r in self.random_ops(n)]

            start = time.perf_counter()
            for a, b in ranges:
                tree.query(a, b)
            results[0, j] = (time.perf_counter() - start) / self.num_ops

            start = time.perf_counter()
            for a, b in ranges:
                np.sum(values[a:b])
            results[1, j] = (time.perf_counter() - start) / self.num_ops

        results.dump(self.output_dir / f"query_timing_seed_{self.seed}.npy")
        filename = self.output_dir / "query_timing.png"
        plot_timing(results, self.sizes, filename, models)
        return results


def plot_timing(result, sizes, filename, labels):
    fig, ax = plt.subplots(figsize=(10, 10))
    for i in range(result.shape[0]):
        ax.plot(sizes, result[i] * 1e6, marker="o", label=labels[i])
    ax.set_xscale("log")
    ax.set_xlabel("number of indices")
    ax.set_ylabel("time per query (us)")
    ax.set_title("range query")
    plt.legend(loc="upper left")

    fig.savefig(filename, dpi=70)


def set_output_dir(output_dir, info_str):
    output_dir = pathlib.Path(output_dir + "/" + info_str)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def run_all(fs, output_dir, seed):
    # parameters
    num_ops = 2_000
    sizes = [2**k for k in range(4, 21, 2)]

    info_str = f"ops_{num_ops}"
    output_dir = set_output_dir(output_dir, info_str)
    tracker = TreeComparison(num_ops, sizes, seed, output_dir)
    for f in fs:
        tracker.run(f)


def main():
    parser = argparse.ArgumentParser()
    choices = [
        "consistency",
        "query_timing",
    ]

    parser.add_argument(
        "--functions",
        "-f",
        nargs="*",
        default=choices,
        choices=choices,
        help="Run all the specified functions.",
    )

    parser.add_argument(
        "--output-dir",
        "-d",
        type=str,
        default="_output/v_naive",
        help="specify the base output directory",
    )

    parser.add_argument(
        "--seed",
        "-s",
        type=int,
        default=42,
        help="specify used seed",
    )

    args = parser.parse_args()

    run_all(args.functions, args.output_dir, args.seed)


if __name__ == "__main__":
    main()
