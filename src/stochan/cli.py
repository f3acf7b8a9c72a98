"""
Command-line interfaces:

- stochan-analyze: analyze a CSV dataset (cross-sectional, time-series or
  ensemble), compare it with model files and optionally run the memory-order
  analysis. Prints a short summary followed by the full result as JSON.

- stochan-order-demo: samples an ensemble from a random first-order chain
  and runs the memory-order analysis on it; the 1st-order reconstruction
  should sit close to the full past.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Dict, Tuple

import numpy as np

from .analysis import AnalysisOptions, analyze_stochastic_process
from .constants import DEFAULT_MAX_SEQUENCES, MARKOV_DISTANCE_THRESHOLD
from .datatypes import AnalysisMode
from .errors import InvalidInputError, StochanError
from .markov import random_markov_biased, sample_ensemble
from .models import model_from_dict, transition_model_from_dict
from .order import analyze_self_dependence
from .report import format_metric, to_jsonable
from .tabular import classify_variables, is_ensemble_table, load_table, parse_type_overrides

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_json_list(path: str) -> list:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


def _build_models(paths, build) -> Tuple[list, Dict[str, str]]:
    """Build every model in the JSON files; a malformed model is rejected, not fatal."""
    built, rejected = [], {}
    for path in paths:
        for i, d in enumerate(_load_json_list(path)):
            try:
                built.append(build(d))
            except InvalidInputError as e:
                name = str(d["name"]) if isinstance(d, dict) and "name" in d else f"{path}[{i}]"
                logger.warning("Model '%s' rejected: %s", name, e)
                rejected[name] = str(e)
    return built, rejected


def _print_summary(result) -> None:
    if result.comparison is not None:
        for name, err in result.comparison.excluded.items():
            print(f"[Model] {name} excluded: {err}")
        for r in result.comparison.results:
            metrics = "  ".join(f"{k}={format_metric(m.value)}{'*' if m.is_winner else ''}"
                                for k, m in r.metrics.items())
            print(f"[Model] {r.name}  {metrics}  KL={format_metric(r.kl_divergence)}  wins={r.wins}")
        if result.comparison.best_model_name is not None:
            print(f"Best model: {result.comparison.best_model_name}")
    for name, mk in result.markov.items():
        pi = "  ".join(f"{s}={p:.4f}" for s, p in mk.stationary_distribution.items())
        print(f"[Markov] {name} stationary: {pi}")
    if result.dependence is not None:
        for pair in result.dependence.pairs:
            print(
                f"[Dependence] {pair.first}~{pair.second}  MI={format_metric(pair.mutual_information)}  "
                f"r={format_metric(pair.pearson_correlation)}  dCor={format_metric(pair.distance_correlation)}"
            )
    for r in result.transition_model_results:
        print(f"[Transition model] {r.name}  avg Hellinger={format_metric(r.avg_hellinger_distance)}"
              f"{'*' if r.is_winner else ''}")
    if result.self_dependence is not None:
        for o in result.self_dependence.orders:
            print(f"[Order {o.order}] Hellinger={o.hellinger_distance:.4f}  "
                  f"Jensen-Shannon={o.jensen_shannon_distance:.4f}")
        print(result.self_dependence.conclusion)


def run_analyze(argv: list[str] | None = None) -> None:
    """Analyze a CSV file and print summary lines plus a JSON document."""
    p = argparse.ArgumentParser(prog="stochan-analyze", description="Stochastic process analyzer")
    p.add_argument("--csv", type=str, required=True)
    p.add_argument("--mode", type=str, default="auto",
                   choices=["auto"] + [m.value for m in AnalysisMode])
    p.add_argument("--type", dest="types", action="append", default=[],
                   help="Measurement type override NAME=numerical|ordinal|nominal, optionally "
                        "with a state order as NAME=ordinal:low,mid,high (repeatable)")
    p.add_argument("--model", dest="models", action="append", default=[],
                   help="JSON file with one model or a list of models (repeatable)")
    p.add_argument("--transition-model", dest="transition_models", action="append", default=[],
                   help="JSON file with one transition-matrix model or a list (repeatable)")
    p.add_argument("--order-test", action="store_true", help="Run the memory-order analysis on ensembles")
    p.add_argument("--max-sequences", type=int, default=DEFAULT_MAX_SEQUENCES)
    p.add_argument("--threshold", type=float, default=MARKOV_DISTANCE_THRESHOLD)
    p.add_argument("--out-json", type=str, help="Also write the JSON result to this file")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args(argv)
    setup_logging(args.verbose)

    try:
        headers, rows = load_table(args.csv)
        if args.mode == "auto":
            mode = AnalysisMode.ENSEMBLE if is_ensemble_table(headers) else AnalysisMode.CROSS_SECTIONAL
        else:
            mode = AnalysisMode(args.mode)
        variables = None
        models, rejected = [], {}
        if mode != AnalysisMode.ENSEMBLE:
            variables = classify_variables(headers, rows, parse_type_overrides(args.types))
            models, rejected = _build_models(args.models, lambda d: model_from_dict(d, variables))
        transition_models, rejected_tm = _build_models(args.transition_models, transition_model_from_dict)
        options = AnalysisOptions(
            run_order_test=args.order_test,
            max_sequences=args.max_sequences,
            markov_threshold=args.threshold,
        )
        result = analyze_stochastic_process(headers, rows, variables, mode, models, transition_models, options)
        if result.comparison is not None:
            result.comparison.excluded.update(rejected)
    except (StochanError, OSError, json.JSONDecodeError) as e:
        p.exit(1, f"Error: {e}\n")

    print(f"\n=== Stochastic analysis ({result.mode.value}): {args.csv} ===")
    for name, err in rejected_tm.items():
        print(f"[Transition model] {name} excluded: {err}")
    _print_summary(result)
    doc = to_jsonable(result)
    print(json.dumps(doc))
    if args.out_json:
        with open(args.out_json, "w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2)


def run_order_demo(argv: list[str] | None = None) -> None:
    """Memory-order analysis on an ensemble sampled from a first-order chain."""
    p = argparse.ArgumentParser(prog="stochan-order-demo", description="Memory-order analysis demo")
    p.add_argument("--seed", type=int, default=12345)
    p.add_argument("--k", type=int, default=3, help="Number of states")
    p.add_argument("--steps", type=int, default=4, help="Time points per trace")
    p.add_argument("--traces", type=int, default=500)
    p.add_argument("--delta", type=float, default=0.6)
    p.add_argument("--max-sequences", type=int, default=DEFAULT_MAX_SEQUENCES)
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args(argv)
    setup_logging(args.verbose)

    print("\n=== Order analysis demo: starting ===")
    rng = np.random.default_rng(args.seed)
    T = random_markov_biased(k=args.k, delta=args.delta, rng=rng)
    states = [str(i + 1) for i in range(args.k)]
    traces = sample_ensemble(T, states, n_traces=args.traces, n_steps=args.steps, rng=rng)
    try:
        res = analyze_self_dependence(traces, states, max_sequences=args.max_sequences)
    except StochanError as e:
        p.exit(1, f"Error: {e}\n")
    for o in res.orders:
        print(f"[Order {o.order}] Hellinger={o.hellinger_distance:.4f}  "
              f"Jensen-Shannon={o.jensen_shannon_distance:.4f}")
    print(res.conclusion)
    print("=== Order analysis demo: done ===")


if __name__ == "__main__":
    run_analyze(sys.argv[1:])
