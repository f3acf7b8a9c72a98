import json
from unittest.mock import patch

import numpy as np
import pytest
from stochan.cli import run_analyze, run_order_demo

CROSS_CSV = "VarX,VarY\nA,1\nB,2\nA,1\nA,2\nB,1\nC,2\nA,1\nB,2\nC,1\n"
ENSEMBLE_CSV = (
    "time,instance1,instance2,instance3,instance4,instance5\n"
    "t0,1,1,2,3,1\n"
    "t1,2,2,3,3,1\n"
    "t2,3,3,1,2,2\n"
    "t3,1,2,1,1,3\n"
)


def _json_line(out: str) -> dict:
    return json.loads(out.strip().splitlines()[-1])


class TestRunAnalyze:
    def test_cross_sectional(self, tmp_path, capsys):
        data = tmp_path / "data.csv"
        data.write_text(CROSS_CSV)
        model = tmp_path / "model.json"
        model.write_text(json.dumps([
            {"name": "uniform", "entries": [
                {"states": {"VarX": x, "VarY": y}, "probability": 1 / 6}
                for x in "ABC" for y in ("1", "2")
            ]},
            {"name": "short", "entries": [{"states": {"VarX": "A", "VarY": "1"}, "probability": 0.97}]},
        ]))
        out_json = tmp_path / "out.json"

        run_analyze(["--csv", str(data), "--model", str(model), "--out-json", str(out_json)])

        captured = capsys.readouterr()
        assert "Stochastic analysis (cross-sectional)" in captured.out
        assert "Best model: uniform" in captured.out
        assert "[Model] short excluded" in captured.out
        doc = _json_line(captured.out)
        assert doc["mode"] == "cross-sectional"
        assert doc["empirical"]["joint"]["A|1"] == pytest.approx(3 / 9)
        assert doc["comparison"]["best_model_name"] == "uniform"
        assert json.loads(out_json.read_text()) == doc

    def test_bad_models_are_excluded_without_aborting(self, tmp_path, capsys):
        data = tmp_path / "data.csv"
        data.write_text(CROSS_CSV)
        model = tmp_path / "model.json"
        model.write_text(json.dumps([
            {"name": "exact", "entries": [
                {"states": {"VarX": x, "VarY": y}, "probability": p}
                for (x, y), p in {("A", "1"): 3 / 9, ("B", "2"): 2 / 9, ("A", "2"): 1 / 9,
                                  ("B", "1"): 1 / 9, ("C", "2"): 1 / 9, ("C", "1"): 1 / 9}.items()
            ]},
            {"name": "wide", "entries": [
                {"states": {"VarX": x, "VarY": y}, "probability": 1 / 12}
                for x in "ABCD" for y in ("1", "2", "3")
            ]},
            {"name": "broken", "entries": "A|1"},
            42,
        ]))

        run_analyze(["--csv", str(data), "--model", str(model)])

        captured = capsys.readouterr()
        assert "Best model: exact" in captured.out
        assert "[Model] broken excluded" in captured.out
        doc = _json_line(captured.out)
        assert sorted(r["name"] for r in doc["comparison"]["results"]) == ["exact", "wide"]
        assert sorted(doc["comparison"]["excluded"]) == ["broken", f"{model}[3]"]

    def test_malformed_transition_model_is_excluded(self, tmp_path, capsys):
        data = tmp_path / "ensemble.csv"
        data.write_text(ENSEMBLE_CSV)
        tm = tmp_path / "tm.json"
        tm.write_text(json.dumps([
            {"name": "garbled", "states": ["1", "2", "3"], "matrix": [["x", 0.5, 0.5], [1, 0, 0], [1, 0, 0]]},
            {"name": "uniform", "states": ["1", "2", "3"], "matrix": [[1 / 3] * 3] * 3},
        ]))

        run_analyze(["--csv", str(data), "--transition-model", str(tm)])

        captured = capsys.readouterr()
        assert "[Transition model] garbled excluded" in captured.out
        assert _json_line(captured.out)["best_transition_model_name"] == "uniform"

    def test_type_override(self, tmp_path, capsys):
        data = tmp_path / "data.csv"
        data.write_text(CROSS_CSV)
        run_analyze(["--csv", str(data), "--type", "VarY=ordinal"])
        doc = _json_line(capsys.readouterr().out)
        var_y = doc["empirical"]["variables"][1]
        assert var_y["measurement_type"] == "ordinal"
        assert doc["empirical"]["moments"]["VarY"]["mean"] is None

    def test_ordinal_state_order_from_command_line(self, tmp_path, capsys):
        data = tmp_path / "levels.csv"
        data.write_text("Level\nlow\nmid\nmid\nhigh\nhigh\n")
        run_analyze(["--csv", str(data), "--type", "Level=ordinal:low,mid,high"])
        doc = _json_line(capsys.readouterr().out)
        assert doc["empirical"]["variables"][0]["state_space"] == ["low", "mid", "high"]
        # alphabetical order would give "low"
        assert doc["empirical"]["moments"]["Level"]["median"] == "mid"

    def test_ensemble_auto_detected_with_order_test(self, tmp_path, capsys):
        data = tmp_path / "ensemble.csv"
        data.write_text(ENSEMBLE_CSV)
        tm = tmp_path / "tm.json"
        tm.write_text(json.dumps({"name": "sticky", "states": ["1", "2", "3"],
                                  "matrix": [[0.8, 0.1, 0.1], [0.1, 0.8, 0.1], [0.1, 0.1, 0.8]]}))

        run_analyze(["--csv", str(data), "--order-test", "--transition-model", str(tm)])

        captured = capsys.readouterr()
        assert "[Order 1]" in captured.out
        assert "[Transition model] sticky" in captured.out
        doc = _json_line(captured.out)
        assert doc["mode"] == "ensemble"
        assert doc["ensemble_states"] == ["1", "2", "3"]
        assert [o["order"] for o in doc["self_dependence"]["orders"]] == [1, 2]
        assert doc["best_transition_model_name"] == "sticky"

    def test_resource_limit_exits_with_error(self, tmp_path, capsys):
        data = tmp_path / "ensemble.csv"
        data.write_text(ENSEMBLE_CSV)
        with pytest.raises(SystemExit) as exc:
            run_analyze(["--csv", str(data), "--order-test", "--max-sequences", "10"])
        assert exc.value.code == 1
        assert "limit" in capsys.readouterr().err

    def test_missing_file_exits_with_error(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            run_analyze(["--csv", str(tmp_path / "nope.csv")])
        assert exc.value.code == 1
        assert "Error" in capsys.readouterr().err


class TestRunOrderDemo:
    def test_order_demo_basic(self, capsys):
        run_order_demo(["--seed", "1", "--k", "2", "--steps", "3", "--traces", "300"])
        captured = capsys.readouterr()
        assert "Order analysis demo: starting" in captured.out
        assert "Order analysis demo: done" in captured.out
        assert "[Order 1]" in captured.out

    def test_order_demo_parameters_are_forwarded(self, capsys):
        with patch("stochan.cli.random_markov_biased") as mock_markov, \
             patch("stochan.cli.sample_ensemble") as mock_sample:
            mock_markov.return_value = np.array([[0.5, 0.5], [0.5, 0.5]])
            mock_sample.return_value = [["1", "2", "1"], ["2", "2", "1"]]

            run_order_demo(["--k", "2", "--steps", "3", "--traces", "2", "--delta", "0.3"])

            args, kwargs = mock_markov.call_args
            assert kwargs["k"] == 2
            assert kwargs["delta"] == 0.3
            args, kwargs = mock_sample.call_args
            assert kwargs["n_traces"] == 2
            assert kwargs["n_steps"] == 3
        assert "Order analysis demo: done" in capsys.readouterr().out
