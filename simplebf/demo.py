"""
False Positive Demonstration
============================

Fills a string Bloom filter with random entries and measures how often it
answers correctly:

1. Build a filter of 2**log2_num_bits bits (a size error is fatal)
2. Generate num_entries distinct random strings and insert them
3. Set the optimal hash count for num_entries (a shortfall only warns)
4. True positive rate: fraction of inserted entries found (always 1.0)
5. False positive rate: fraction of num_challenges fresh strings, disjoint
   from the inserted ones, that the filter claims to contain
6. Compare with the estimate (1 - (1 - 1/m)^(kn))^k

Usage:
    simplebf [log2_num_bits] [num_entries] [num_challenges] [seed]
    python -m simplebf 15 4096 1000000 1234
"""

import argparse
import logging
import random
import sys
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional

from .bloom_filter import BloomFilter, ParameterError
from .config import (
    DEFAULT_DEMO_LOG2_NUM_BITS,
    DEFAULT_NUM_CHALLENGES,
    DEFAULT_NUM_ENTRIES,
    DemoConfig,
    configure_logging,
)

logger = logging.getLogger(__name__)


class DemoError(RuntimeError):
    """The demonstration cannot run with the requested configuration."""


@dataclass
class DemoResult:
    """Measured and estimated rates of one demonstration run"""
    num_entries: int
    total_size: int
    num_bits: int
    num_hashes: int
    true_positive_rate: float
    false_positive_rate: float
    estimated_false_positive_rate: float
    estimated_true_positive_rate: float = 1.0


def generate_test_set(size: int, rng: random.Random,
                      exclude: AbstractSet[str] = frozenset()) -> set:
    """
    Generate distinct random strings.

    Each entry is the decimal text of a random 64-bit integer.

    Args:
        size: Number of entries
        rng: Random number generator
        exclude: Strings the result must not contain

    Returns:
        set: `size` distinct strings, disjoint from `exclude`
    """
    entries = set()
    while len(entries) < size:
        entry = str(rng.getrandbits(64))
        if entry not in exclude:
            entries.add(entry)
    return entries


def total_size(entries: Iterable[str]) -> int:
    """Total data size in bits, counting a terminating null byte per string."""
    return sum((len(entry) + 1) * 8 for entry in entries)


def run_demo(config: DemoConfig) -> DemoResult:
    """
    Run one demonstration.

    Raises:
        DemoError: If the filter cannot be allocated at the requested size
    """
    seed = config.seed
    if seed is None:
        seed = random.SystemRandom().getrandbits(32)
    logger.debug("Using random seed %d", seed)
    rng = random.Random(seed)

    bf = BloomFilter(config.log2_num_bits)
    if bf.parameter_error_flags & ParameterError.LOG2_NUM_BITS:
        raise DemoError("Failed to set the size of filter list.")

    test_set = generate_test_set(config.num_entries, rng)

    if not bf.set_optimal_num_hashes(config.num_entries):
        logger.warning("Failed to set optimal number of hash functions")

    for entry in test_set:
        bf.insert(entry)

    found = sum(1 for entry in test_set if bf.contains(entry))
    true_positive_rate = found / config.num_entries

    challenge_set = generate_test_set(config.num_challenges, rng, exclude=test_set)
    false_positives = sum(1 for entry in challenge_set if bf.contains(entry))
    false_positive_rate = false_positives / config.num_challenges

    return DemoResult(
        num_entries=config.num_entries,
        total_size=total_size(test_set),
        num_bits=bf.num_bits,
        num_hashes=bf.num_hashes,
        true_positive_rate=true_positive_rate,
        false_positive_rate=false_positive_rate,
        estimated_false_positive_rate=bf.estimate_false_positive_rate(config.num_entries),
    )


def format_report(result: DemoResult) -> str:
    lines = [
        "[Test setting]",
        f"The number of entries         : {result.num_entries}",
        f"The total data size           : {result.total_size} [bits]",
        "",
        "[Bloom filter setting]",
        f"The filter size               : {result.num_bits} [bits]",
        f"The number of hash functions  : {result.num_hashes}",
        "",
        "[Bloom filter test]",
        f"True Positive Rate            : {result.true_positive_rate:g}",
        f"Estimated True Positive Rate  : {result.estimated_true_positive_rate:g}",
        f"False Positive Rate           : {result.false_positive_rate:g}",
        f"Estimated False Positive Rate : {result.estimated_false_positive_rate:g}",
    ]
    return "\n".join(lines)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="simplebf",
        description="Measure the false positive rate of a Bloom filter on random strings",
    )
    parser.add_argument("log2_num_bits", type=int, nargs="?", default=DEFAULT_DEMO_LOG2_NUM_BITS,
                        help="Base-2 logarithm of the filter size in bits (default: %(default)s)")
    parser.add_argument("num_entries", type=int, nargs="?", default=DEFAULT_NUM_ENTRIES,
                        help="Number of entries to insert (default: %(default)s)")
    parser.add_argument("num_challenges", type=int, nargs="?", default=DEFAULT_NUM_CHALLENGES,
                        help="Number of entries used to probe for false positives "
                             "(default: %(default)s)")
    parser.add_argument("seed", type=int, nargs="?", default=None,
                        help="Random seed (default: chosen at random)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: %(default)s)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    config = DemoConfig(
        log2_num_bits=args.log2_num_bits,
        num_entries=args.num_entries,
        num_challenges=args.num_challenges,
        seed=args.seed,
        log_level=args.log_level,
    )
    configure_logging(config.log_level)

    try:
        result = run_demo(config)
    except DemoError as e:
        logger.error("%s", e)
        return 1

    print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
