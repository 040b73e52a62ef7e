"""
Bloom Filter Implementation
===========================

A Bloom filter is a space-efficient probabilistic data structure used to test
whether an element is a member of a set. It can have false positives but never
false negatives - if it says an element is NOT in the set, it definitely isn't.

Algorithm Overview:
------------------
1. Initialize a bit array of size 'm' (a power of two) with all bits set to 0
2. Derive 'k' probe positions per element from two base hashes
3. To INSERT an element:
   - Compute the k probe positions
   - Set the bits at those positions to 1
4. To CHECK if an element exists:
   - Compute the same k probe positions
   - If ALL bits are 1, return "possibly in set"
   - If ANY bit is 0, return "definitely not in set"

Enhanced Double Hashing:
-----------------------
With two base hashes h1 and h2, the i-th probe position is

  h_i(x) = h1(x) + i * h2(x) + (i^3 - i) / 6   (mod m)

The filter computes this incrementally:

  a = h1(x), b = h2(x)
  probe[0] = a
  for i in 1 .. k-1:
      a = (a + b) mod m
      b = (b + i) mod m
      probe[i] = a

h2 is forced odd, so it is coprime with the power-of-two m and the sequence
does not cycle early. Because m is a power of two, "mod m" is a bitmask.
(Dillinger and Manolios, 2004:
https://www.khoury.northeastern.edu/~pete/pub/bloom-filters-verification.pdf)

False Positive Mathematics:
--------------------------
After inserting n elements with k hash functions into a bit array of size m:

- Probability a specific bit is still 0: (1 - 1/m)^(kn) ≈ e^(-kn/m)
- Probability of false positive: P ≈ (1 - (1 - 1/m)^(kn))^k

Optimal number of hash functions for at most n entries:
  k = floor((m/n) * ln(2))

Parameter Errors:
----------------
Configuration never raises. An invalid request is clamped to a usable value,
the setter returns False, and a sticky ParameterError flag records it until
clear_parameter_error() is called. The filter keeps working meanwhile; only
its false positive rate is affected.

Usage Examples:
--------------
    bf = BloomFilter(log2_num_bits=15)
    bf.set_optimal_num_hashes(1024)

    bf.insert("hello")
    bf.contains("hello")  # True
    "foo" in bf           # False (or True on a false positive)

    # Integer entries of a fixed width
    ids = BloomFilter(log2_num_bits=20, num_hashes=7, kind=EntryKind.UINT32)
    ids.insert(4000000000)
"""

import logging
import math
from enum import IntFlag
from typing import Any, Iterator, Optional, Union

from bitarray import bitarray
from bitarray.util import zeros

from .hashing import EntryKind, djb2, generic_hash, to_string

logger = logging.getLogger(__name__)

DEFAULT_LOG2_NUM_BITS = 8
DEFAULT_NUM_HASHES = 5

# 2^33 bits = 1 GiB
MAX_LOG2_NUM_BITS = 33
MIN_LOG2_NUM_BITS = 1


class ParameterError(IntFlag):
    """Sticky flags recording rejected configuration requests."""
    NONE = 0
    LOG2_NUM_BITS = 0x1
    NUM_HASHES = 0x2
    ALL = LOG2_NUM_BITS | NUM_HASHES


class BloomFilter:
    """
    A probabilistic data structure for set membership testing.

    Guarantees:
    - No false negatives: if contains() returns False, element is definitely not in set
    - Possible false positives: if contains() returns True, element MIGHT be in set

    The filter holds entries of one EntryKind. Entries of any other type are
    rejected with TypeError.

    Attributes:
        num_bits (int): Size of the bit array (m), always a power of two
        num_hashes (int): Number of probe positions per entry (k), at least 1
        size (int): Number of insert() calls
        parameter_error_flags (ParameterError): Rejected configuration requests
        kind (EntryKind): The kind of entries accepted
    """

    def __init__(self, log2_num_bits: int = DEFAULT_LOG2_NUM_BITS,
                 num_hashes: int = DEFAULT_NUM_HASHES,
                 kind: Union[EntryKind, type] = EntryKind.STRING):
        """
        Initialize a Bloom filter with 2**log2_num_bits bits.

        Invalid sizes or hash counts do not raise: they are clamped and
        reported through has_parameter_error().

        Args:
            log2_num_bits: Base-2 logarithm of the bit array size (1 to 33)
            num_hashes: Number of hash functions (k), at least 1
            kind: EntryKind, or one of str / int / float

        Raises:
            TypeError: If kind is not a supported entry kind.
        """
        self._kind = EntryKind.of(kind)
        self._bits = bitarray()
        self._num_hashes = DEFAULT_NUM_HASHES
        self._size = 0
        self._parameter_error_flags = ParameterError.NONE

        self.set_log2_num_bits(log2_num_bits)
        self.set_num_hashes(num_hashes)

    @classmethod
    def create_optimal(cls, expected_elements: int, fp_rate: float,
                       kind: Union[EntryKind, type] = EntryKind.STRING) -> 'BloomFilter':
        """
        Create a Bloom filter sized for the given load and false positive rate.

        The bit array is the smallest power of two reaching the classic
        optimal size, then the hash count is set for expected_elements.

        Args:
            expected_elements: Expected number of elements to be added (n)
            fp_rate: Desired false positive probability (0 < p < 1)
            kind: EntryKind, or one of str / int / float

        Returns:
            BloomFilter: Optimally configured Bloom filter

        Raises:
            ValueError: If parameters are invalid
        """
        log2_num_bits = calculate_optimal_log2_num_bits(expected_elements, fp_rate)
        bf = cls(log2_num_bits, kind=kind)
        bf.set_optimal_num_hashes(expected_elements)
        return bf

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_log2_num_bits(self, log2_num_bits: int) -> bool:
        """
        Resize the bit array to 2**log2_num_bits bits.

        Exponents above 33 allocate 2**33 bits (1 GiB); exponents below 1
        allocate 2 bits. Both set ParameterError.LOG2_NUM_BITS and return False.
        Bits below the new size are kept; new bits start cleared.

        Args:
            log2_num_bits: Base-2 logarithm of the requested size

        Returns:
            bool: True if the requested size was applied
        """
        if log2_num_bits > MAX_LOG2_NUM_BITS:
            logger.warning("log2_num_bits=%d exceeds %d, clamping filter to 2^%d bits",
                           log2_num_bits, MAX_LOG2_NUM_BITS, MAX_LOG2_NUM_BITS)
            self._resize(1 << MAX_LOG2_NUM_BITS)
            self._parameter_error_flags |= ParameterError.LOG2_NUM_BITS
            return False

        if log2_num_bits < MIN_LOG2_NUM_BITS:
            logger.warning("log2_num_bits=%d is below %d, clamping filter to 2^%d bits",
                           log2_num_bits, MIN_LOG2_NUM_BITS, MIN_LOG2_NUM_BITS)
            self._resize(1 << MIN_LOG2_NUM_BITS)
            self._parameter_error_flags |= ParameterError.LOG2_NUM_BITS
            return False

        self._resize(1 << log2_num_bits)
        self.clear_parameter_error(ParameterError.LOG2_NUM_BITS)
        return True

    def set_num_hashes(self, num_hashes: int) -> bool:
        """
        Set the number of hash functions.

        Values below 1 set 1 instead, flag ParameterError.NUM_HASHES and
        return False.

        Args:
            num_hashes: Number of probe positions per entry

        Returns:
            bool: True if the requested count was applied
        """
        if num_hashes < 1:
            logger.warning("num_hashes=%d is below 1, using 1 hash function", num_hashes)
            self._num_hashes = 1
            self._parameter_error_flags |= ParameterError.NUM_HASHES
            return False

        self._num_hashes = num_hashes
        self.clear_parameter_error(ParameterError.NUM_HASHES)
        return True

    def set_optimal_num_hashes(self, max_num_entries: int) -> bool:
        """
        Set the hash count minimizing the false positive rate for a load.

        k = floor(ln(2) * num_bits / max_num_entries), which assumes the bits
        are set independently and so is only approximate.

        If k comes out below 1 the filter uses 1 and this returns False, but
        no ParameterError flag is left behind: the filter is still correct,
        just less accurate than asked.

        Args:
            max_num_entries: Largest number of entries expected

        Returns:
            bool: True if the optimal count was at least 1

        Raises:
            ValueError: If max_num_entries is not positive
        """
        successful = self.set_num_hashes(optimal_num_hashes(self.num_bits, max_num_entries))

        self.clear_parameter_error(ParameterError.NUM_HASHES)
        return successful

    def clear_parameter_error(self, flag: ParameterError = ParameterError.ALL) -> None:
        """Clear the given parameter error flag(s); all of them by default."""
        self._parameter_error_flags = ParameterError(self._parameter_error_flags & ~int(flag))

    def has_parameter_error(self) -> bool:
        return self._parameter_error_flags != ParameterError.NONE

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @property
    def num_bits(self) -> int:
        return len(self._bits)

    @property
    def num_hashes(self) -> int:
        return self._num_hashes

    @property
    def size(self) -> int:
        """Number of insertions, duplicates included."""
        return self._size

    @property
    def parameter_error_flags(self) -> ParameterError:
        return self._parameter_error_flags

    @property
    def kind(self) -> EntryKind:
        return self._kind

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    def first_hash(self, entry: Any) -> int:
        """
        First base hash: MurmurHash3 of the entry's native bytes, mod num_bits.

        Returns:
            int: Value in [0, num_bits)
        """
        return self._first_hash(self._kind.validate(entry))

    def second_hash(self, entry: Any) -> int:
        """
        Second base hash: djb2 of the entry's canonical text, made odd, mod num_bits.

        Doubling and adding one makes the value odd, hence coprime with the
        power-of-two num_bits. String entries are hashed as they are.

        Returns:
            int: Odd value in [1, num_bits)
        """
        return self._second_hash(self._kind.validate(entry))

    def hash_values(self, entry: Any) -> list:
        """
        Return the num_hashes probe positions of an entry.

        Args:
            entry: The entry to hash

        Returns:
            List of num_hashes positions, each in range [0, num_bits - 1]

        Raises:
            TypeError: If the entry is not of the filter's kind
            ValueError: If the entry does not fit the filter's kind
        """
        return list(self._probe_positions(entry))

    def _first_hash(self, entry: Any) -> int:
        return generic_hash(entry, self._kind) & self._mask

    def _second_hash(self, entry: Any) -> int:
        return ((djb2(to_string(entry, self._kind)) << 1) | 1) & self._mask

    def _probe_positions(self, entry: Any) -> Iterator[int]:
        entry = self._kind.validate(entry)
        mask = self._mask
        a = self._first_hash(entry)
        b = self._second_hash(entry)
        yield a
        for i in range(1, self._num_hashes):
            a = (a + b) & mask
            b = (b + i) & mask
            yield a

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def insert(self, entry: Any) -> None:
        """
        Add an entry to the Bloom filter.

        Sets the num_hashes probe bits of the entry and counts the insertion.

        Time Complexity: O(k) where k is the number of hash functions

        Args:
            entry: The entry to add, of the filter's kind

        Example:
            bf = BloomFilter()
            bf.insert("hello")
            len(bf)  # 1
        """
        for position in self._probe_positions(entry):
            self._bits[position] = 1
        self._size += 1

    def contains(self, entry: Any) -> bool:
        """
        Check if an entry might be in the set.

        Returns:
        - False: Entry is DEFINITELY NOT in the set (no false negatives)
        - True: Entry is PROBABLY in the set (may be a false positive)

        Stops at the first probe bit that is 0.

        Time Complexity: O(k) where k is the number of hash functions

        Args:
            entry: The entry to check, of the filter's kind

        Returns:
            bool: False if definitely not in set, True if possibly in set
        """
        for position in self._probe_positions(entry):
            if not self._bits[position]:
                return False  # Definitely not in set
        return True

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def estimate_false_positive_rate(self, num_entries: Optional[int] = None) -> float:
        """
        Estimate the false positive probability at the current configuration.

        Formula: P(FP) ≈ (1 - (1 - 1/m)^(kn))^k

        Args:
            num_entries: Number of entries (n); defaults to size

        Returns:
            float: Estimated false positive probability (0 to 1)
        """
        if num_entries is None:
            num_entries = self._size
        return estimated_false_positive_rate(self.num_bits, self._num_hashes, num_entries)

    def get_fill_ratio(self) -> float:
        """
        Get the ratio of bits that are set to 1.

        With the optimal hash count the ratio approaches 50% at full load.

        Returns:
            float: Ratio of set bits (0 to 1)
        """
        return self._bits.count(1) / self.num_bits

    @property
    def _mask(self) -> int:
        return len(self._bits) - 1

    def _resize(self, num_bits: int) -> None:
        if num_bits == len(self._bits):
            return
        bits = zeros(num_bits)
        keep = min(num_bits, len(self._bits))
        if keep:
            bits[:keep] = self._bits[:keep]
            if self._size:
                logger.warning("Resizing a filter holding %d entries; earlier entries may "
                               "no longer be found", self._size)
        self._bits = bits
        logger.debug("Allocated Bloom filter array of %d bits", num_bits)

    def __len__(self) -> int:
        """Return the number of entries that have been inserted."""
        return self._size

    def __contains__(self, entry: Any) -> bool:
        """Support 'in' operator: entry in bloom_filter"""
        return self.contains(entry)

    def __repr__(self) -> str:
        return (f"BloomFilter(num_bits={self.num_bits}, num_hashes={self._num_hashes}, "
                f"size={self._size}, kind={self._kind.name}, "
                f"errors={int(self._parameter_error_flags):#x})")


# Parameter helpers

def optimal_num_hashes(num_bits: int, max_num_entries: int) -> int:
    """
    Calculate the optimal number of hash functions.

    Formula: k = floor((m/n) * ln(2)), truncated toward zero, so the result
    may be 0 for an overloaded filter.

    Args:
        num_bits: Bit array size (m)
        max_num_entries: Number of entries to store (n)

    Returns:
        int: Optimal number of hash functions

    Raises:
        ValueError: If max_num_entries is not positive
    """
    if max_num_entries <= 0:
        raise ValueError("Maximum number of entries must be positive")
    return int(math.log(2) * num_bits / max_num_entries)


def estimated_false_positive_rate(num_bits: int, num_hashes: int, num_entries: int) -> float:
    """
    Estimate the false positive probability of a filter.

    Formula: P(FP) ≈ (1 - (1 - 1/m)^(kn))^k

    Args:
        num_bits: Bit array size (m)
        num_hashes: Number of hash functions (k)
        num_entries: Number of entries inserted (n)

    Returns:
        float: Estimated false positive probability (0 to 1)
    """
    if num_entries <= 0:
        return 0.0
    # (1 - 1/m)^(kn) is the chance a given bit is still 0
    bit_is_one = -math.expm1(num_hashes * num_entries * math.log1p(-1.0 / num_bits))
    return bit_is_one ** num_hashes


def calculate_optimal_log2_num_bits(expected_elements: int, fp_rate: float) -> int:
    """
    Smallest power-of-two exponent reaching the optimal bit array size.

    Formula: m = -(n * ln(p)) / (ln(2)^2), rounded up to 2^x and capped at 2^33.

    Args:
        expected_elements: Number of elements to store
        fp_rate: Desired false positive rate

    Returns:
        int: Base-2 logarithm of the bit array size

    Raises:
        ValueError: If parameters are invalid
    """
    if expected_elements <= 0:
        raise ValueError("Expected elements must be positive")
    if not (0 < fp_rate < 1):
        raise ValueError("False positive rate must be between 0 and 1")

    size = -expected_elements * math.log(fp_rate) / (math.log(2) ** 2)
    log2_num_bits = max(MIN_LOG2_NUM_BITS, math.ceil(math.log2(size)))
    return min(MAX_LOG2_NUM_BITS, log2_num_bits)


def bits_per_element(fp_rate: float) -> float:
    """
    Calculate the number of bits needed per element for a given FP rate.

    Formula: bits_per_element = -ln(p) / (ln(2)^2) ≈ -1.44 * log2(p)

    Examples:
    - 1% FP rate: ~9.6 bits per element
    - 0.1% FP rate: ~14.4 bits per element

    Args:
        fp_rate: Desired false positive rate

    Returns:
        float: Bits needed per element
    """
    return -math.log(fp_rate) / (math.log(2) ** 2)
