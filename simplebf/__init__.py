"""
Bloom filter over a power-of-two bit array with enhanced double hashing
"""

from .bloom_filter import (
    BloomFilter,
    ParameterError,
    bits_per_element,
    calculate_optimal_log2_num_bits,
    estimated_false_positive_rate,
    optimal_num_hashes,
)
from .hashing import EntryKind, djb2

__all__ = [
    'BloomFilter',
    'ParameterError',
    'EntryKind',
    'djb2',
    'bits_per_element',
    'calculate_optimal_log2_num_bits',
    'estimated_false_positive_rate',
    'optimal_num_hashes',
]
