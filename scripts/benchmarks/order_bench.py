#!/usr/bin/env python3
"""
Order-analysis benchmark: wall time across (|S|, T).

Outputs results/order_bench.csv with one row per configuration.
"""

from __future__ import annotations

import argparse
import csv
import os
import time
from typing import List

import numpy as np

from stochan.errors import ResourceExceeded
from stochan.markov import random_markov_biased, sample_ensemble
from stochan.order import analyze_self_dependence, estimate_sequence_count


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def run_once(traces, states, max_sequences: int) -> float:
    t0 = time.time()
    analyze_self_dependence(traces, states, max_sequences=max_sequences)
    return time.time() - t0


def main():
    ap = argparse.ArgumentParser(description="Order analysis benchmark across state-space size and trace length")
    ap.add_argument("--seed", type=int, default=7)
    ap.add_argument("--traces", type=int, default=500)
    ap.add_argument("--k_list", default="2,3,4,5")
    ap.add_argument("--T_list", default="3,4,5,6,7")
    ap.add_argument("--max_sequences", type=int, default=2_000_000)
    ap.add_argument("--out", default="results/order_bench.csv")
    args = ap.parse_args()

    ensure_dir(os.path.dirname(args.out) or ".")
    rng = np.random.default_rng(args.seed)
    Ks = [int(x) for x in args.k_list.split(",") if x]
    Ts = [int(x) for x in args.T_list.split(",") if x]
    rows: List[List[object]] = []
    for k in Ks:
        T = random_markov_biased(k=k, delta=0.6, rng=rng)
        states = [str(i + 1) for i in range(k)]
        for n_steps in Ts:
            traces = sample_ensemble(T, states, n_traces=args.traces, n_steps=n_steps, rng=rng)
            n_seq = estimate_sequence_count(k, n_steps)
            try:
                dt = run_once(traces, states, args.max_sequences)
            except ResourceExceeded:
                dt = float("nan")
            rows.append([k, n_steps, args.traces, n_seq, dt])
            print(f"|S|={k} T={n_steps} → sequences={n_seq} seconds={dt:.3f}")

    with open(args.out, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(["k", "T", "traces", "sequences", "seconds"])
        w.writerows(rows)
    print(f"Saved benchmark to {args.out}")


if __name__ == "__main__":
    main()
