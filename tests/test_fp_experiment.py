"""Tests for the false-positive experiment harness."""
from __future__ import annotations

import math
import random

import pytest
import structlog

from bf_poly.bloom_filter import BloomFilter
from bf_poly.hash_family import DoubleHashFamily
from harness import fp_experiment
from harness.fp_experiment import (
    ALPHABET,
    NUM_TRIALS,
    STRING_LENGTH,
    ExperimentResult,
    benchmark,
    compare_families,
    experiment,
    generate_string,
    optimal_num_hashes,
    print_benchmark,
    print_result,
    print_sweep,
    run_trial,
    sweep,
    theoretical_fp_rate,
)


class TestHelpers:
    def test_generate_string_shape(self):
        rng = random.Random(0)
        text = generate_string(rng)
        assert len(text) == STRING_LENGTH
        assert set(text) <= set(ALPHABET)

    def test_generate_string_reproducible(self):
        assert generate_string(random.Random(5)) == generate_string(random.Random(5))

    def test_optimal_num_hashes(self):
        assert optimal_num_hashes(0.05) == 14
        assert optimal_num_hashes(0.5) == 2
        assert optimal_num_hashes(1.0) == 1

    def test_optimal_num_hashes_clamped(self):
        assert optimal_num_hashes(0.0001) == 255

    def test_optimal_num_hashes_rejects_bad_load(self):
        with pytest.raises(ValueError):
            optimal_num_hashes(0)
        with pytest.raises(ValueError):
            optimal_num_hashes(1.5)

    def test_theoretical_fp_rate(self):
        assert theoretical_fp_rate(3, 65536, 0) == 0.0
        assert theoretical_fp_rate(3, 65536, 3276) == pytest.approx((1 - math.exp(-3 * 3276 / 65536)) ** 3)
        assert theoretical_fp_rate(3, 65536, 3276) < theoretical_fp_rate(3, 65536, 32768)


class TestExperimentResult:
    def test_aggregates(self):
        result = ExperimentResult(
            load_factor=0.1, num_hashes=3, size=1000, items=100, probes=100,
            hash_family="polynomial", trial_rates=[0.1, 0.3],
        )
        assert result.trials == 2
        assert result.mean_fp_rate == pytest.approx(0.2)
        assert result.stdev_fp_rate == pytest.approx(math.sqrt(0.02))
        assert result.theoretical_fp_rate == pytest.approx(theoretical_fp_rate(3, 1000, 100))

    def test_empty(self):
        result = ExperimentResult(0.1, 3, 1000, 100, 100, "polynomial")
        assert result.mean_fp_rate == 0.0
        assert result.stdev_fp_rate == 0.0


class TestTrials:
    def test_run_trial_clears_and_fills(self):
        bloom = BloomFilter(3, size=1024)
        bloom.add("stale")
        rate = run_trial(bloom, items=50, probes=200, rng=random.Random(1))
        assert 0.0 <= rate <= 1.0
        assert not bloom.is_empty
        assert bloom.fill_ratio <= 150 / 1024

    def test_saturated_filter_reports_everything(self):
        bloom = BloomFilter(1, size=1)
        rate = run_trial(bloom, items=1, probes=20, rng=random.Random(2))
        assert rate == 1.0

    def test_experiment_parameters(self):
        result = experiment(0.1, 2, size=1024, seed=0)
        assert result.items == 102
        assert result.probes == 102
        assert result.num_hashes == optimal_num_hashes(0.1)
        assert result.trials == 2
        assert result.hash_family == "polynomial"

    def test_experiment_reproducible_with_seed(self):
        first = experiment(0.2, 3, num_hashes=3, size=2048, seed=9)
        second = experiment(0.2, 3, num_hashes=3, size=2048, seed=9)
        assert first.trial_rates == second.trial_rates

    def test_experiment_with_double_family(self):
        result = experiment(0.1, 2, num_hashes=3, size=4096, hash_family=DoubleHashFamily(), seed=3)
        assert result.hash_family == "double"

    def test_experiment_validation(self):
        with pytest.raises(ValueError):
            experiment(0.0, 1)
        with pytest.raises(ValueError):
            experiment(0.1, 0)

    def test_sweep(self):
        results = sweep((0.05, 0.1), 1, num_hashes=2, size=1024, seed=4)
        assert [r.load_factor for r in results] == [0.05, 0.1]
        assert all(r.num_hashes == 2 for r in results)


class TestFalsePositiveRate:
    """Empirical false-positive rate at low and high load (k=3, m=65536)."""

    def test_rate_grows_with_load(self):
        low = experiment(0.05, 3, num_hashes=3, probes=3000, seed=1)
        high = experiment(0.5, 3, num_hashes=3, probes=3000, seed=2)
        assert low.items == 3276
        assert high.items == 32768
        assert low.mean_fp_rate < 0.05
        assert low.mean_fp_rate < high.mean_fp_rate
        assert all(lo < hi for lo, hi in zip(low.trial_rates, high.trial_rates))

    @pytest.mark.slow
    def test_rate_grows_with_load_full_trials(self):
        low = experiment(0.05, NUM_TRIALS, num_hashes=3, seed=1)
        high = experiment(0.5, NUM_TRIALS, num_hashes=3, seed=2)
        assert low.trials == high.trials == 100
        assert low.mean_fp_rate < 0.05
        assert high.mean_fp_rate > 0.3
        assert low.mean_fp_rate < high.mean_fp_rate


class TestReporting:
    def test_benchmark(self):
        rng = random.Random(8)
        items = [generate_string(rng) for _ in range(100)]
        probes = [generate_string(rng) for _ in range(150)]
        bloom = BloomFilter(3)
        metrics = benchmark(bloom, items, probes)
        assert metrics["insert_count"] == 100
        assert metrics["query_count"] == 150
        assert metrics["insert_ops_per_sec"] > 0
        assert all(item in bloom for item in items)

    def test_print_result(self, capsys):
        result = ExperimentResult(0.05, 3, 65536, 3276, 3276, "polynomial", [0.002])
        print_result(result)
        out = capsys.readouterr().out
        assert "alpha=0.05" in out
        assert "k=3" in out

    def test_compare_families(self, capsys):
        poly = [ExperimentResult(0.05, 3, 65536, 3276, 3276, "polynomial", [0.004])]
        dbl = [ExperimentResult(0.05, 3, 65536, 3276, 3276, "double", [0.003])]
        compare_families(poly, dbl)
        out = capsys.readouterr().out
        assert "0.004000" in out
        assert "0.003000" in out

    def test_print_sweep(self, capsys):
        results = [
            ExperimentResult(0.05, 3, 65536, 3276, 3276, "polynomial", [0.002]),
            ExperimentResult(0.5, 3, 65536, 32768, 32768, "polynomial", [0.45]),
        ]
        print_sweep("Polynomial hash family, k=3", results)
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "Polynomial hash family, k=3"
        assert "alpha=0.05" in lines[1]
        assert "alpha=0.50" in lines[2]

    def test_print_benchmark(self, capsys):
        metrics = {
            "insert_count": 10,
            "insert_time": 0.5,
            "insert_ops_per_sec": 20.0,
            "query_count": 30,
            "query_time": 1.5,
            "query_ops_per_sec": 20.0,
        }
        print_benchmark("polynomial", metrics)
        out = capsys.readouterr().out
        assert "Inserted 10 items in 0.5000 sec" in out
        assert "Performed 30 queries in 1.5000 sec" in out


class TestRunAll:
    @pytest.fixture
    def small_sweep(self, monkeypatch):
        monkeypatch.setattr(fp_experiment, "LOAD_FACTORS", (0.05, 0.5))
        monkeypatch.setattr(fp_experiment, "NUM_TRIALS", 4)
        monkeypatch.setattr(fp_experiment, "FILTER_SIZE", 2048)
        monkeypatch.setattr(fp_experiment, "BENCHMARK_ITEMS", 50)
        yield
        structlog.reset_defaults()

    def test_report_sections(self, small_sweep, capsys):
        fp_experiment.run_all()
        out = capsys.readouterr().out
        assert "m=2048 bits, 4 trials" in out
        assert "Polynomial hash family, k=3" in out
        assert "Double hash family, k=3" in out
        assert "COMPARISON: hash family accuracy" in out
        assert "Performance Benchmarking" in out
        assert "Sweep completed successfully!" in out

    def test_trial_events_kept_out_of_report(self, small_sweep, capsys):
        fp_experiment.run_all()
        out = capsys.readouterr().out
        assert out.count("trial_complete") == 0
        assert out.count("over 4 trials") == 6
