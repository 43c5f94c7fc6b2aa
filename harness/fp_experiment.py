"""False-positive rate experiments for the polynomial-hash Bloom filter.

For each load factor ``alpha`` the harness inserts ``n = alpha * size`` random
50-character strings into a filter, tracks the true members in an exact set,
then probes the filter with fresh random strings and counts how many
non-members it reports as present. The rate is averaged over repeated trials
and compared against the textbook estimate ``(1 - e^(-k n / m))^k``.

Run the fixed parameter sweep with:

    python -m harness.fp_experiment
"""
from __future__ import annotations

import logging
import math
import random
import statistics
import string
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import structlog

from bf_poly.bloom_filter import FILTER_SIZE, MAX_NUM_HASHES, BloomFilter, HashFamily
from bf_poly.hash_family import DoubleHashFamily, PolynomialHashFamily

logger = structlog.get_logger(__name__)

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
STRING_LENGTH = 50
NUM_TRIALS = 100
NUM_HASHES = 3
LOAD_FACTORS = (0.05, 0.10, 0.15, 0.20, 0.25, 0.30, 0.35, 0.40, 0.45, 0.50)
BENCHMARK_ITEMS = 10_000


@dataclass
class ExperimentResult:
    """Aggregated outcome of repeated trials at one load factor."""

    load_factor: float
    num_hashes: int
    size: int
    items: int
    probes: int
    hash_family: str
    trial_rates: list[float] = field(default_factory=list)

    @property
    def trials(self) -> int:
        return len(self.trial_rates)

    @property
    def mean_fp_rate(self) -> float:
        return statistics.fmean(self.trial_rates) if self.trial_rates else 0.0

    @property
    def stdev_fp_rate(self) -> float:
        return statistics.stdev(self.trial_rates) if len(self.trial_rates) > 1 else 0.0

    @property
    def theoretical_fp_rate(self) -> float:
        return theoretical_fp_rate(self.num_hashes, self.size, self.items)


def generate_string(rng: random.Random, length: int = STRING_LENGTH) -> str:
    """Return a random alphanumeric string of ``length`` characters."""
    return "".join(rng.choices(ALPHABET, k=length))


def optimal_num_hashes(load_factor: float) -> int:
    """Number of hash functions minimizing false positives at ``load_factor``.

    Uses ``ceil(ln 2 / alpha)``, clamped to the filter's accepted range.
    """
    if not 0 < load_factor <= 1:
        raise ValueError("load_factor must be in (0, 1]")
    k = math.ceil(math.log(2) / load_factor)
    return max(1, min(MAX_NUM_HASHES, k))


def theoretical_fp_rate(num_hashes: int, size: int, items: int) -> float:
    """Expected false-positive rate for ideal independent hashes."""
    return (1.0 - math.exp(-num_hashes * items / size)) ** num_hashes


def run_trial(bloom: BloomFilter, items: int, probes: int, rng: random.Random) -> float:
    """Run one trial on ``bloom`` and return its false-positive rate.

    The filter is cleared first. ``items`` random strings are inserted, then
    ``probes`` fresh strings are queried. Probes that happen to be members are
    excluded from the denominator.
    """
    bloom.clear()

    members: set[str] = set()
    for _ in range(items):
        message = generate_string(rng)
        bloom.add(message)
        members.add(message)

    checked = 0
    false_positives = 0
    for _ in range(probes):
        message = generate_string(rng)
        if message in members:
            continue
        checked += 1
        if message in bloom:
            false_positives += 1

    return false_positives / checked if checked else 0.0


def experiment(
    load_factor: float,
    num_trials: int = NUM_TRIALS,
    *,
    num_hashes: Optional[int] = None,
    size: int = FILTER_SIZE,
    probes: Optional[int] = None,
    hash_family: Optional[HashFamily] = None,
    seed: Optional[int] = None,
) -> ExperimentResult:
    """Measure the mean false-positive rate at ``load_factor``.

    Args:
        load_factor: Ratio of inserted items to filter bits, in ``(0, 1]``.
        num_trials: Number of independent trials to average.
        num_hashes: Hash functions per item. Defaults to
            ``optimal_num_hashes(load_factor)``.
        size: Filter size in bits.
        probes: Random non-member queries per trial. Defaults to the number
            of inserted items.
        hash_family: Hash family for the filter. Defaults to polynomial.
        seed: Seed for the string generator, for reproducible runs.

    Returns:
        The per-trial rates and their aggregates.
    """
    if not 0 < load_factor <= 1:
        raise ValueError("load_factor must be in (0, 1]")
    if num_trials < 1:
        raise ValueError("num_trials must be positive")

    if num_hashes is None:
        num_hashes = optimal_num_hashes(load_factor)
    items = int(load_factor * size)
    if probes is None:
        probes = items

    rng = random.Random(seed)
    bloom = BloomFilter(num_hashes, size, hash_family=hash_family)
    result = ExperimentResult(
        load_factor=load_factor,
        num_hashes=num_hashes,
        size=size,
        items=items,
        probes=probes,
        hash_family=bloom.hash_family.name,
    )

    for trial in range(num_trials):
        rate = run_trial(bloom, items, probes, rng)
        result.trial_rates.append(rate)
        logger.debug("trial_complete", trial=trial, load_factor=load_factor, fp_rate=rate)

    logger.info(
        "experiment_complete",
        load_factor=load_factor,
        num_hashes=num_hashes,
        hash_family=result.hash_family,
        trials=num_trials,
        mean_fp_rate=result.mean_fp_rate,
    )
    return result


def sweep(load_factors: Iterable[float] = LOAD_FACTORS, num_trials: int = NUM_TRIALS, **kwargs: Any) -> list[ExperimentResult]:
    """Run ``experiment`` for each load factor with shared settings."""
    return [experiment(alpha, num_trials, **kwargs) for alpha in load_factors]


def benchmark(bloom: BloomFilter, items: list[str], probes: list[str]) -> dict:
    """Measure insertion and query throughput (ops/sec) on a cleared ``bloom``."""
    bloom.clear()

    start_time = time.perf_counter()
    bloom.update(items)
    insert_time = time.perf_counter() - start_time

    start_time = time.perf_counter()
    for probe in probes:
        _ = probe in bloom
    query_time = time.perf_counter() - start_time

    return {
        "insert_count": len(items),
        "insert_time": insert_time,
        "insert_ops_per_sec": len(items) / insert_time if insert_time > 0 else float("inf"),
        "query_count": len(probes),
        "query_time": query_time,
        "query_ops_per_sec": len(probes) / query_time if query_time > 0 else float("inf"),
    }


def print_result(result: ExperimentResult) -> None:
    """Print a one-line summary of ``result``."""
    print(
        f"  alpha={result.load_factor:<5.2f} k={result.num_hashes:<3} "
        f"n={result.items:<6} mean FPR={result.mean_fp_rate:.6f} "
        f"(stdev {result.stdev_fp_rate:.6f}, theory {result.theoretical_fp_rate:.6f}) "
        f"over {result.trials} trials"
    )


def print_sweep(title: str, results: list[ExperimentResult]) -> None:
    print(title)
    for result in results:
        print_result(result)
    print()


def compare_families(polynomial: list[ExperimentResult], double: list[ExperimentResult]) -> None:
    """Print polynomial vs double-hash false-positive rates side by side."""
    print(f"{'alpha':<8}{'k':>4}{'Polynomial':>14}{'Double hash':>14}{'Theory':>12}")
    print("-" * 52)
    for poly, dbl in zip(polynomial, double):
        print(
            f"{poly.load_factor:<8.2f}{poly.num_hashes:>4}"
            f"{poly.mean_fp_rate:>14.6f}{dbl.mean_fp_rate:>14.6f}{poly.theoretical_fp_rate:>12.6f}"
        )
    print()


def print_benchmark(name: str, metrics: dict) -> None:
    print(f"  {name}")
    print(f"    - Inserted {metrics['insert_count']} items in {metrics['insert_time']:.4f} sec")
    print(f"    - Insertion Throughput: {metrics['insert_ops_per_sec']:,.0f} ops/sec")
    print(f"    - Performed {metrics['query_count']} queries in {metrics['query_time']:.4f} sec")
    print(f"    - Query Throughput: {metrics['query_ops_per_sec']:,.0f} ops/sec")


def run_all() -> None:
    """Run the fixed parameter sweep and print the reports."""
    # Per-trial debug events would interleave with the printed tables
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))

    print("=" * 60)
    print(f"Bloom filter false-positive sweep (m={FILTER_SIZE} bits, {NUM_TRIALS} trials)")
    print("=" * 60)
    print()

    fixed_k = sweep(LOAD_FACTORS, NUM_TRIALS, num_hashes=NUM_HASHES, size=FILTER_SIZE)
    print_sweep(f"Polynomial hash family, k={NUM_HASHES}", fixed_k)

    optimal_k = sweep(LOAD_FACTORS, NUM_TRIALS, size=FILTER_SIZE)
    print_sweep("Polynomial hash family, k=ceil(ln 2 / alpha)", optimal_k)

    double_k = sweep(
        LOAD_FACTORS, NUM_TRIALS, num_hashes=NUM_HASHES, size=FILTER_SIZE, hash_family=DoubleHashFamily()
    )
    print_sweep(f"Double hash family, k={NUM_HASHES}", double_k)

    print("COMPARISON: hash family accuracy")
    compare_families(fixed_k, double_k)

    print("Performance Benchmarking")
    rng = random.Random(0)
    items = [generate_string(rng) for _ in range(BENCHMARK_ITEMS)]
    probes = [generate_string(rng) for _ in range(BENCHMARK_ITEMS)]
    for family in (PolynomialHashFamily(), DoubleHashFamily()):
        bloom = BloomFilter(NUM_HASHES, FILTER_SIZE, hash_family=family)
        print_benchmark(family.name, benchmark(bloom, items, probes))
    print()

    print("=" * 60)
    print("Sweep completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    run_all()
