import math

import numpy as np
import pytest
from stochan.distributions import (
    as_state,
    counts,
    distance_correlation,
    entropy,
    hellinger_distance,
    is_missing,
    is_normalized,
    jensen_shannon_distance,
    jensen_shannon_divergence,
    kl_divergence,
    make_key,
    marginalize,
    mean_squared_error,
    mutual_information,
    normalize,
    parse_number,
    pearson_correlation,
    split_key,
)


def test_state_helpers():
    assert as_state(3.0) == "3"
    assert as_state(2.5) == "2.5"
    assert as_state(np.int64(7)) == "7"
    assert as_state("a") == "a"
    assert is_missing(None) and is_missing("  ") and is_missing(float("nan"))
    assert not is_missing("0") and not is_missing(0)
    assert parse_number("1.5") == 1.5
    assert parse_number("abc") is None
    assert parse_number("inf") is None
    assert make_key(("A", 1)) == "A|1"
    assert split_key("A|1") == ["A", "1"]


def test_counts_and_normalize():
    c = counts([("A", "1"), ("A", "1"), ("B", "2")])
    assert c == {"A|1": 2.0, "B|2": 1.0}
    p = normalize(c)
    assert p["A|1"] == pytest.approx(2 / 3)
    assert is_normalized(p)
    assert normalize({}) == {}
    assert normalize({"a": 0.0}) == {}


def test_marginalize():
    joint = {"A|1": 0.25, "A|2": 0.25, "B|1": 0.5}
    assert marginalize(joint, 0) == pytest.approx({"A": 0.5, "B": 0.5})
    assert marginalize(joint, 1) == pytest.approx({"1": 0.75, "2": 0.25})
    assert marginalize(joint, (1, 0)) == pytest.approx({"1|A": 0.25, "2|A": 0.25, "1|B": 0.5})


def test_entropy_bits():
    assert entropy({"a": 0.5, "b": 0.5}) == pytest.approx(1.0)
    assert entropy({"a": 1.0}) == 0.0
    assert entropy({"a": 1.0, "b": 0.0}) == 0.0


def test_kl_divergence():
    p = {"a": 0.5, "b": 0.5}
    assert kl_divergence(p, p) == pytest.approx(0.0)
    q = {"a": 0.25, "b": 0.75}
    expected = 0.5 * math.log2(0.5 / 0.25) + 0.5 * math.log2(0.5 / 0.75)
    assert kl_divergence(p, q) == pytest.approx(expected)
    # Q misses part of P's support
    assert kl_divergence(p, {"a": 1.0}) == math.inf
    # zero-probability P entries are ignored
    assert kl_divergence({"a": 1.0, "b": 0.0}, {"a": 1.0}) == pytest.approx(0.0)


def test_jensen_shannon_properties():
    p = {"a": 0.7, "b": 0.3}
    q = {"b": 0.4, "c": 0.6}
    assert jensen_shannon_divergence(p, q) == pytest.approx(jensen_shannon_divergence(q, p))
    assert 0.0 <= jensen_shannon_divergence(p, q) <= 1.0
    # disjoint supports: 1 bit
    assert jensen_shannon_divergence({"a": 1.0}, {"b": 1.0}) == pytest.approx(1.0)
    assert jensen_shannon_distance({"a": 1.0}, {"b": 1.0}) == pytest.approx(1.0)
    assert jensen_shannon_distance(p, p) == pytest.approx(0.0, abs=1e-12)


def test_hellinger_properties():
    p = {"a": 0.7, "b": 0.3}
    q = {"b": 0.4, "c": 0.6}
    assert hellinger_distance(p, q) == pytest.approx(hellinger_distance(q, p))
    assert 0.0 <= hellinger_distance(p, q) <= 1.0
    assert hellinger_distance(p, p) == pytest.approx(0.0)
    assert hellinger_distance({"a": 1.0}, {"b": 1.0}) == pytest.approx(1.0)
    assert hellinger_distance({}, {}) == 0.0


def test_mean_squared_error():
    assert mean_squared_error({"a": 1.0}, {"b": 1.0}) == pytest.approx(1.0)
    assert mean_squared_error({"a": 0.5, "b": 0.5}, {"a": 0.5, "b": 0.5}) == 0.0
    assert mean_squared_error({}, {}) is None


def test_mutual_information():
    independent = {"a|x": 0.25, "a|y": 0.25, "b|x": 0.25, "b|y": 0.25}
    assert mutual_information(independent) == pytest.approx(0.0, abs=1e-12)
    copy = {"a|a": 0.5, "b|b": 0.5}
    assert mutual_information(copy) == pytest.approx(1.0)
    assert mutual_information({}) is None
    # single-variable joint
    assert mutual_information({"a": 1.0}) is None


def test_pearson_correlation():
    assert pearson_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert pearson_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
    assert pearson_correlation([1, 1, 1], [1, 2, 3]) is None
    assert pearson_correlation([1], [1]) is None
    assert pearson_correlation([1, 2], [1, 2, 3]) is None


def test_distance_correlation():
    rng = np.random.default_rng(0)
    x = rng.normal(size=200)
    assert distance_correlation(x, 2 * x + 1) == pytest.approx(1.0)
    # nonlinear dependence with zero Pearson r still shows up
    xs = np.linspace(-1, 1, 101)
    ys = xs ** 2
    assert abs(pearson_correlation(xs, ys)) < 1e-9
    assert distance_correlation(xs, ys) > 0.3
    assert distance_correlation([1, 1, 1], [1, 2, 3]) is None
    assert 0.0 <= distance_correlation(x, rng.normal(size=200)) <= 1.0
