#!/usr/bin/env python3
"""
Figures from stochan-analyze --out-json results and the order benchmark CSV.
"""

import argparse
import json
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from stochan.report import from_json_number

plt.style.use('seaborn-v0_8-whitegrid')
plt.rcParams.update({
    'font.size': 11,
    'axes.titlesize': 12,
    'axes.labelsize': 11,
    'xtick.labelsize': 10,
    'ytick.labelsize': 10,
    'legend.fontsize': 10,
})


def _save(fig, out_dir: Path, stem: str) -> None:
    fig.tight_layout()
    fig.savefig(out_dir / f'{stem}.pdf', dpi=300, bbox_inches='tight')
    fig.savefig(out_dir / f'{stem}.png', dpi=300, bbox_inches='tight')
    print(f"Saved: {out_dir / stem}.pdf")
    plt.close(fig)


def plot_order_distances(result: dict, out_dir: Path, threshold: float = 0.5):
    """Hellinger and Jensen-Shannon distance of each order to the full past."""
    sd = result.get('self_dependence')
    if not sd or not sd['orders']:
        print("Warning: no order results in the JSON, skipping distance plot")
        return
    df = pd.DataFrame(sd['orders'])
    fig, ax = plt.subplots(figsize=(7, 4.5))
    ax.plot(df['order'], df['hellinger_distance'], 'o-', label='Hellinger')
    ax.plot(df['order'], df['jensen_shannon_distance'], 's-', label='Jensen-Shannon')
    ax.axhline(threshold, color='r', linestyle='--', alpha=0.7, label=f'threshold {threshold:g}')
    ax.set_xlabel('Order $k$')
    ax.set_ylabel('Distance to full-past reconstruction')
    ax.set_xticks(df['order'])
    ax.set_ylim(0, 1)
    ax.set_title('Memory-order analysis')
    ax.legend()
    _save(fig, out_dir, 'order_distances')


def plot_transition_matrix(result: dict, out_dir: Path):
    """Heatmap of the pooled ensemble transition matrix."""
    T = result.get('ensemble_transition_matrix')
    if T is None:
        return
    states = result['ensemble_states']
    T = np.array([[from_json_number(p) for p in row] for row in T], dtype=float)
    fig, ax = plt.subplots(figsize=(5, 4.5))
    im = ax.imshow(T, cmap='Blues', vmin=0, vmax=1)
    ax.set_xticks(range(len(states)))
    ax.set_xticklabels(states)
    ax.set_yticks(range(len(states)))
    ax.set_yticklabels(states)
    ax.set_xlabel('To state')
    ax.set_ylabel('From state')
    for i in range(len(states)):
        for j in range(len(states)):
            ax.text(j, i, f'{T[i, j]:.2f}', ha='center', va='center', fontsize=9)
    fig.colorbar(im, ax=ax)
    ax.set_title('Ensemble transition matrix')
    _save(fig, out_dir, 'transition_matrix')


def plot_benchmark(csv_path: str, out_dir: Path):
    """Seconds per run against trace length, one line per state-space size."""
    try:
        df = pd.read_csv(csv_path)
    except FileNotFoundError:
        print(f"Warning: {csv_path} not found, skipping benchmark plot")
        return
    fig, ax = plt.subplots(figsize=(7, 4.5))
    for k in sorted(df['k'].unique()):
        subset = df[df['k'] == k].dropna(subset=['seconds'])
        ax.plot(subset['T'], subset['seconds'], 'o-', label=f'|S|={k}')
    ax.set_xlabel('Time points $T$')
    ax.set_ylabel('Seconds')
    ax.set_yscale('log')
    ax.set_title('Order analysis cost')
    ax.legend()
    _save(fig, out_dir, 'order_bench')


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Plot order-analysis results")
    ap.add_argument("--json", help="Result written by stochan-analyze --out-json")
    ap.add_argument("--bench", default="results/order_bench.csv")
    ap.add_argument("--threshold", type=float, default=0.5)
    ap.add_argument("--out_dir", default="figures")
    args = ap.parse_args()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(exist_ok=True)
    print("Generating figures...")
    if args.json:
        with open(args.json) as f:
            result = json.load(f)
        plot_order_distances(result, out_dir, args.threshold)
        plot_transition_matrix(result, out_dir)
    plot_benchmark(args.bench, out_dir)
    print("Figure generation complete.")
