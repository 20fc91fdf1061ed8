"""Rank/unrank arithmetic on pool indices

Every selection is a tuple of indices into a pool of ``stop`` items. Ranks are
plain Python ints, so counts of any size are exact.
"""
import functools
from math import comb, factorial, perm
from typing import Callable, Dict, Iterator, Literal, Sequence, Tuple

from sortedcontainers import SortedList

from .errors import RankOutOfRange


Kind = Literal['repeated', 'distinct', 'permutation']
N_POSSIBILITIES_CACHE = 1024  # entries kept by n_possibilities


@functools.lru_cache(maxsize=N_POSSIBILITIES_CACHE)
def n_possibilities(start: int, stop: int, n_sample: int) -> int:
    "Number of increasing ``n_sample``-tuples drawn from ``range(start, stop)``"
    if n_sample < 0:
        raise ValueError(f"{n_sample=} (<0)")
    return comb(max(stop - start, 0), n_sample)


def _check_rank(index: int, count: int):
    if not 0 <= index < count:
        raise RankOutOfRange(index, count)


def _check_indices(indices: Sequence[int], stop: int):
    for i in indices:
        if not 0 <= i < stop:
            raise ValueError(f"{indices=}: index {i} not in range({stop})")


# Distinct, unordered (combinadic)
# ################################

def combination(stop: int, n_sample: int, index: int) -> Tuple[int, ...]:
    "The ``index``-th increasing ``n_sample``-tuple of ``range(stop)``"
    _check_rank(index, n_possibilities(0, stop, n_sample))
    values = []
    i = index
    start = 0
    n_on_right = n_sample
    for _ in range(n_sample):
        n_on_right -= 1
        if n_on_right == 0:
            values.append(start + i)
            break
        for v in range(start, stop - n_on_right):
            n = n_possibilities(v + 1, stop, n_on_right)
            if i < n:
                values.append(v)
                start = v + 1
                break
            i -= n
        else:
            raise RankOutOfRange(index, n_possibilities(0, stop, n_sample))
    return tuple(values)


def rank_combination(indices: Sequence[int], stop: int) -> int:
    _check_indices(indices, stop)
    k = len(indices)
    rank = 0
    prev = -1
    for i, current in enumerate(indices):
        if current <= prev:
            raise ValueError(f"{indices=} is not strictly increasing")
        # tuples whose i-th value lies strictly between prev and current
        n_right = k - i - 1
        rank += comb(stop - prev - 1, n_right + 1) - comb(stop - current, n_right + 1)
        prev = current
    return rank


# Repetition allowed, ordered (base-n numeral)
# ############################################

def repeated(stop: int, n_sample: int, index: int) -> Tuple[int, ...]:
    _check_rank(index, stop ** n_sample)
    digits = [0] * n_sample
    for position in range(n_sample - 1, -1, -1):
        index, digits[position] = divmod(index, stop)
    return tuple(digits)


def rank_repeated(indices: Sequence[int], stop: int) -> int:
    _check_indices(indices, stop)
    rank = 0
    for digit in indices:
        rank = rank * stop + digit
    return rank


# Distinct, ordered (Lehmer code over the remaining pool)
# #######################################################

def permutation(stop: int, n_sample: int, index: int) -> Tuple[int, ...]:
    _check_rank(index, perm(stop, n_sample))
    remaining = SortedList(range(stop))
    values = []
    for i in range(n_sample):
        place_value = perm(stop - 1 - i, n_sample - 1 - i)
        position, index = divmod(index, place_value)
        values.append(remaining.pop(position))
    return tuple(values)


def rank_permutation(indices: Sequence[int], stop: int) -> int:
    _check_indices(indices, stop)
    if len(set(indices)) != len(indices):
        raise ValueError(f"{indices=} contains repeated values")
    n_sample = len(indices)
    remaining = SortedList(range(stop))
    rank = 0
    for i, value in enumerate(indices):
        position = remaining.index(value)
        remaining.remove(value)
        rank += position * perm(stop - 1 - i, n_sample - 1 - i)
    return rank


# Multiset permutations
# #####################

def n_arrangements(counts: Sequence[int]) -> int:
    "Number of distinct orderings of a multiset with item multiplicities ``counts``"
    out = factorial(sum(counts))
    for c in counts:
        out //= factorial(c)
    return out


def arrangement(counts: Sequence[int], index: int) -> Tuple[int, ...]:
    total = n_arrangements(counts)
    _check_rank(index, total)
    counts = list(counts)
    length = sum(counts)
    values = []
    while length:
        for item, c in enumerate(counts):
            if not c:
                continue
            # arrangements of the rest that start with item
            n = total * c // length
            if index < n:
                values.append(item)
                counts[item] -= 1
                length -= 1
                total = n
                break
            index -= n
    return tuple(values)


def rank_arrangement(indices: Sequence[int], counts: Sequence[int]) -> int:
    _check_indices(indices, len(counts))
    counts = list(counts)
    if [indices.count(item) for item in range(len(counts))] != counts:
        raise ValueError(f"{indices=} does not use each item exactly {counts=} times")
    total = n_arrangements(counts)
    length = len(indices)
    rank = 0
    for value in indices:
        for item in range(value):
            rank += total * counts[item] // length
        total = total * counts[value] // length
        counts[value] -= 1
        length -= 1
    return rank


# Dispatch by kind and size bands
# ###############################

COUNT: Dict[str, Callable[[int, int], int]] = {
    'repeated': lambda stop, n_sample: stop ** n_sample,
    'distinct': lambda stop, n_sample: n_possibilities(0, stop, n_sample),
    'permutation': perm,
}
UNRANK: Dict[str, Callable[[int, int, int], Tuple[int, ...]]] = {
    'repeated': repeated,
    'distinct': combination,
    'permutation': permutation,
}
RANK: Dict[str, Callable[[Sequence[int], int], int]] = {
    'repeated': rank_repeated,
    'distinct': rank_combination,
    'permutation': rank_permutation,
}


def band_counts(
        kind: Kind,
        stop: int,
        min_size: int,
        max_size: int,
) -> Iterator[Tuple[int, int]]:
    "``(size, count)`` for each size band, in increasing size"
    for size in range(min_size, max_size + 1):
        yield size, COUNT[kind](stop, size)


def locate_band(
        kind: Kind,
        stop: int,
        min_size: int,
        max_size: int,
        index: int,
) -> Tuple[int, int]:
    "Split a ranged rank into ``(size, rank within that size)``"
    if index >= 0:
        residual = index
        for size, n in band_counts(kind, stop, min_size, max_size):
            if residual < n:
                return size, residual
            residual -= n
    raise RankOutOfRange(index, sum(n for _, n in band_counts(kind, stop, min_size, max_size)))


def band_offset(
        kind: Kind,
        stop: int,
        min_size: int,
        size: int,
) -> int:
    "Number of elements in all bands smaller than ``size``"
    return sum(n for _, n in band_counts(kind, stop, min_size, size - 1))
