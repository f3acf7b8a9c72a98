import numpy as np
import pytest
from stochan.markov import (
    _row_stochastic,
    analyze_markov,
    ensemble_transition_matrix,
    observed_states,
    random_markov_biased,
    sample_ensemble,
    sample_markov,
    stationary_distribution,
    transition_matrix,
)


def test_row_stochastic():
    # Test that rows sum to 1
    T = np.array([[0.7, 0.3], [0.4, 0.6]])
    T_stoch = _row_stochastic(T)
    np.testing.assert_allclose(T_stoch.sum(axis=1), 1.0)
    np.testing.assert_allclose(T_stoch, T)

    # Zero rows stay zero
    T_zero = np.array([[2.0, 2.0], [0.0, 0.0]])
    np.testing.assert_allclose(_row_stochastic(T_zero), [[0.5, 0.5], [0.0, 0.0]])


def test_stationary_distribution():
    T = np.array([[0.7, 0.3], [0.4, 0.6]])
    pi = stationary_distribution(T)
    np.testing.assert_allclose(pi @ T, pi, atol=1e-10)
    np.testing.assert_allclose(pi.sum(), 1.0)

    T_uniform = np.ones((3, 3)) / 3
    np.testing.assert_allclose(stationary_distribution(T_uniform), [1/3, 1/3, 1/3], atol=1e-10)


def test_stationary_distribution_periodic_chain():
    # plain power iteration would oscillate here
    T = np.array([[0.0, 1.0], [1.0, 0.0]])
    np.testing.assert_allclose(stationary_distribution(T), [0.5, 0.5], atol=1e-9)


def test_stationary_distribution_absorbs_dead_rows():
    T = np.array([[0.0, 1.0], [0.0, 0.0]])
    np.testing.assert_allclose(stationary_distribution(T), [0.0, 1.0], atol=1e-9)


def test_transition_matrix_from_trace():
    states, T = transition_matrix(["a", "b", "a", "b", "b", "c"])
    assert states == ["a", "b", "c"]
    np.testing.assert_allclose(T[0], [0.0, 1.0, 0.0])
    np.testing.assert_allclose(T[1], [1/3, 1/3, 1/3])
    # c is never left
    np.testing.assert_allclose(T[2], [0.0, 0.0, 0.0])


def test_transition_matrix_skips_missing():
    states, T = transition_matrix(["1", None, "2", "1", ""])
    assert states == ["1", "2"]
    np.testing.assert_allclose(T, [[0.0, 0.0], [1.0, 0.0]])


def test_ensemble_transition_matrix_pools_traces():
    traces = [["1", "2"], ["1", "1"], ["2", "2"]]
    states, T = ensemble_transition_matrix(traces)
    assert states == ["1", "2"]
    np.testing.assert_allclose(T, [[0.5, 0.5], [0.0, 1.0]])
    assert observed_states([[2, 10], [1, None]]) == ["1", "2", "10"]


def test_analyze_markov():
    res = analyze_markov([0, 1, 0, 1, 1, 0])
    assert res.states == ["0", "1"]
    assert sum(res.stationary_distribution.values()) == pytest.approx(1.0)
    T = res.transition_matrix
    pi = np.array([res.stationary_distribution[s] for s in res.states])
    np.testing.assert_allclose(pi @ T, pi, atol=1e-9)


def test_sample_markov():
    rng = np.random.default_rng(42)
    T = np.array([[0.8, 0.2], [0.3, 0.7]])

    seq = sample_markov(T, n=1000, rng=rng)
    assert len(seq) == 1000
    assert all(s in [0, 1] for s in seq)

    init_dist = np.array([0.0, 1.0])  # start from state 1
    seq_init = sample_markov(T, n=100, init=init_dist, rng=rng)
    assert seq_init[0] == 1

    rng1 = np.random.default_rng(123)
    rng2 = np.random.default_rng(123)
    np.testing.assert_array_equal(sample_markov(T, n=50, rng=rng1), sample_markov(T, n=50, rng=rng2))
    assert len(sample_markov(T, n=0, rng=rng)) == 0


def test_sample_ensemble_labels():
    rng = np.random.default_rng(7)
    T = np.array([[0.5, 0.5], [0.5, 0.5]])
    traces = sample_ensemble(T, ["x", "y"], n_traces=4, n_steps=6, rng=rng)
    assert len(traces) == 4
    assert all(len(tr) == 6 for tr in traces)
    assert {s for tr in traces for s in tr} <= {"x", "y"}


def test_sampled_ensemble_recovers_matrix():
    rng = np.random.default_rng(3)
    T = np.array([[0.9, 0.1], [0.3, 0.7]])
    traces = sample_ensemble(T, ["1", "2"], n_traces=400, n_steps=50, rng=rng)
    _, T_hat = ensemble_transition_matrix(traces, ["1", "2"])
    np.testing.assert_allclose(T_hat, T, atol=0.03)


def test_random_markov_biased():
    rng = np.random.default_rng(42)
    T = random_markov_biased(k=3, delta=0.5, rng=rng)
    assert T.shape == (3, 3)
    np.testing.assert_allclose(T.sum(axis=1), 1.0)
    assert np.all(T >= 0)

    T_uniform = random_markov_biased(k=2, delta=0.0, rng=rng)
    np.testing.assert_allclose(T_uniform.sum(axis=1), [1.0, 1.0])
    assert np.all(T_uniform > 0)
