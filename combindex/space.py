"""Composite selection spaces

A :class:`Space` is the Cartesian product of its selections. The first
selection varies slowest, the last one fastest, so ranks follow the
lexicographic order of the concatenated parts::

    >>> space = Space().fixed_distinct(2, 'ABC').permutation(2, 'xyz')
    >>> space.count
    18
    >>> space.unrank(7)
    ('A', 'C', 'x', 'z')

Constraints
-----------
A constraint is an arbitrary pure function of the flat element. Since it has
no algebraic structure, finding the *n*-th valid element requires scanning
forward from a start rank and testing every candidate. There is no upper bound
on the number of candidates examined other than the size of the space; pass
``scan_limit`` to bound the work per valid element. Leaving ``scan_limit`` at
``None`` makes an unbounded scan, which may take very long for rare
constraints but does not hang.
"""
from __future__ import annotations

import dataclasses
from functools import cached_property
import logging
from math import prod
from random import Random
import sys
import threading
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy

from .errors import InvalidSpec, RankOutOfRange, ScanCancelled, ScanLimitExceeded, SpaceExhausted
from .selection import Arrangement, FixedDistinct, FixedRepeated, Item, Permutation, PoolLike, Ranged, Selection
from .combinatorics import Kind


logger = logging.getLogger(__name__)

Element = Tuple[Item, ...]
Predicate = Callable[[Element], bool]


def check_traversal(start: int, step: int):
    if start < 0:
        raise ValueError(f"{start=} (<0)")
    if step < 1:
        raise ValueError(f"{step=} (<1)")


def check_scan_limit(scan_limit: Optional[int]):
    if scan_limit is not None and scan_limit < 0:
        raise ValueError(f"{scan_limit=} (<0)")


@dataclasses.dataclass(frozen=True)
class Space:
    selections: Tuple[Selection, ...] = ()
    names: Tuple[Optional[str], ...] = ()  # one per selection
    constraints: Tuple[Predicate, ...] = ()

    def __post_init__(self):
        if len(self.names) != len(self.selections):
            raise InvalidSpec(f"{self.names=}: need one name for each of {len(self.selections)} selections")

    # Builder
    # #######

    def add(
            self,
            selection: Selection,
            name: str = None,
    ) -> Space:
        "Append a dimension; it varies faster than all existing dimensions"
        if not isinstance(selection, Selection):
            raise InvalidSpec(f"{selection=}: not a Selection")
        return dataclasses.replace(self, selections=(*self.selections, selection), names=(*self.names, name))

    def fixed_repeated(self, count: int, pool: PoolLike, name: str = None) -> Space:
        return self.add(FixedRepeated(count, pool), name)

    def fixed_distinct(self, count: int, pool: PoolLike, name: str = None) -> Space:
        return self.add(FixedDistinct(count, pool), name)

    def ranged(
            self,
            min_count: int,
            max_count: int,
            pool: PoolLike,
            kind: Kind = 'distinct',
            name: str = None,
    ) -> Space:
        return self.add(Ranged(min_count, max_count, pool, kind), name)

    def permutation(self, count: int, pool: PoolLike, name: str = None) -> Space:
        return self.add(Permutation(count, pool), name)

    def arrangement(self, counts: Sequence[int], pool: PoolLike, name: str = None) -> Space:
        return self.add(Arrangement(counts, pool), name)

    def with_constraint(self, predicate: Predicate) -> Space:
        "Keep only elements for which ``predicate(element)`` is true (combined with existing constraints)"
        if not callable(predicate):
            raise InvalidSpec(f"{predicate=}: not callable")
        return dataclasses.replace(self, constraints=(*self.constraints, predicate))

    # Counting and ranking
    # ####################

    @cached_property
    def count(self) -> int:
        "Number of elements, ignoring constraints"
        return prod(selection.count for selection in self.selections)

    @property
    def is_constrained(self) -> bool:
        return bool(self.constraints)

    def _local_ranks(self, rank: int) -> List[int]:
        if not 0 <= rank < self.count:
            raise RankOutOfRange(rank, self.count)
        local_ranks = []
        for selection in reversed(self.selections):
            rank, local_rank = divmod(rank, selection.count)
            local_ranks.append(local_rank)
        local_ranks.reverse()
        return local_ranks

    def unrank_parts(self, rank: int) -> Tuple[Element, ...]:
        "The element at ``rank``, as one part per selection"
        return tuple(selection.unrank(r) for selection, r in zip(self.selections, self._local_ranks(rank)))

    def unrank(self, rank: int) -> Element:
        return tuple(item for part in self.unrank_parts(rank) for item in part)

    def rank_parts(self, parts: Sequence[Sequence[Item]]) -> int:
        if len(parts) != len(self.selections):
            raise ValueError(f"{parts=}: expected {len(self.selections)} parts")
        rank = 0
        for selection, part in zip(self.selections, parts):
            rank = rank * selection.count + selection.rank(part)
        return rank

    def rank(self, element: Sequence[Item]) -> int:
        return self.rank_parts(self.split(element))

    def split(self, element: Sequence[Item]) -> Tuple[Element, ...]:
        "Split a flat element into one part per selection"
        element = tuple(element)
        variable = [i for i, selection in enumerate(self.selections) if len(selection.sizes) > 1]
        if len(variable) > 1:
            raise ValueError(f"Splitting is ambiguous with {len(variable)} ranged selections, use .rank_parts()")
        lengths = [selection.sizes[0] for selection in self.selections]
        if variable:
            lengths[variable[0]] = len(element) - (sum(lengths) - lengths[variable[0]])
        if sum(lengths) != len(element) or min(lengths, default=0) < 0:
            raise ValueError(f"{element=}: wrong number of items")
        parts = []
        start = 0
        for length in lengths:
            parts.append(element[start: start + length])
            start += length
        return tuple(parts)

    def accepts(self, element: Element) -> bool:
        return all(predicate(element) for predicate in self.constraints)

    def __contains__(self, element: Sequence[Item]) -> bool:
        try:
            self.rank(element)
        except ValueError:
            return False
        return self.accepts(tuple(element))

    # Constraint filter
    # #################

    def next_valid(
            self,
            rank: int,
            stop: int = None,  # exclusive bound on ranks to examine
            scan_limit: int = None,  # max. number of rejected candidates
            cancel: threading.Event = None,
    ) -> Tuple[int, Element]:
        "First ``(rank, element)`` at or after ``rank`` that satisfies all constraints"
        check_scan_limit(scan_limit)
        stop = self.count if stop is None else min(stop, self.count)
        n_rejected = 0
        for candidate in range(rank, stop):
            if cancel is not None and cancel.is_set():
                logger.warning("Scan cancelled at rank %s", candidate)
                raise ScanCancelled(f"Cancelled at rank {candidate}", candidate)
            element = self.unrank(candidate)
            if self.accepts(element):
                if n_rejected:
                    logger.debug("Skipped %s invalid elements before rank %s", n_rejected, candidate)
                return candidate, element
            n_rejected += 1
            if scan_limit is not None and n_rejected > scan_limit:
                logger.warning("Scan limit of %s exceeded at rank %s", scan_limit, candidate)
                raise ScanLimitExceeded(f"No valid element in {scan_limit} candidates from {rank=}", candidate + 1)
        raise SpaceExhausted(f"No valid element in ranks [{rank}, {stop})")

    def nth_valid(
            self,
            start: int = 0,
            n: int = 0,
            step: int = 1,
            scan_limit: int = None,
            cancel: threading.Event = None,
    ) -> Element:
        """The ``n``-th element of the sampled traversal ``lex_order_nth(start, step)``

        Without constraints this is ``unrank(start + n * step)``. With
        constraints, valid elements are counted from ``start`` on and every
        ``step``-th valid element is sampled, which requires a forward scan
        over all candidates in between.
        """
        check_traversal(start, step)
        if n < 0:
            raise ValueError(f"{n=} (<0)")
        if not self.constraints:
            rank = start + n * step
            if rank >= self.count:
                raise SpaceExhausted(f"Sample {n} with {start=}, {step=} is at {rank=} beyond {self.count} elements")
            return self.unrank(rank)
        n_valid_to_skip = n * step
        rank = start
        while True:
            rank, element = self.next_valid(rank, scan_limit=scan_limit, cancel=cancel)
            if not n_valid_to_skip:
                return element
            n_valid_to_skip -= 1
            rank += 1

    # Traversal
    # #########

    def lex_order(self) -> 'SamplingSequence':
        "All (valid) elements in lexicographic order"
        return self.lex_order_nth()

    def lex_order_nth(
            self,
            start: int = 0,
            step: int = 1,
            stop: int = None,
            scan_limit: int = None,
            cancel: threading.Event = None,
    ) -> 'SamplingSequence':
        "Every ``step``-th (valid) element, starting at rank ``start``"
        from .sampling import SamplingSequence

        return SamplingSequence(self, start, step, stop, scan_limit, cancel)

    def partition(self, n_parts: int) -> List[range]:
        "Split all ranks into ``n_parts`` contiguous ranges of (almost) equal size"
        if n_parts < 1:
            raise ValueError(f"{n_parts=} (<1)")
        size, n_larger = divmod(self.count, n_parts)
        out = []
        start = 0
        for i in range(n_parts):
            stop = start + size + (i < n_larger)
            out.append(range(start, stop))
            start = stop
        return out

    def random_ranks(
            self,
            n: int,
            seed: int = None,
            scan_limit: int = None,  # max. number of rejected draws
    ) -> List[int]:
        "``n`` distinct ranks drawn uniformly from the (valid) elements"
        check_scan_limit(scan_limit)
        if n < 0:
            raise ValueError(f"{n=} (<0)")
        rng = Random(seed)
        if not self.constraints:
            if n > self.count:
                raise SpaceExhausted(f"Can't draw {n=} distinct ranks from {self.count} elements")
            if self.count <= sys.maxsize:
                return rng.sample(range(self.count), n)
        drawn = set()
        out = []
        n_rejected = 0
        while len(out) < n:
            if len(drawn) == self.count:
                raise SpaceExhausted(f"Only {len(out)} of {n=} valid elements exist")
            rank = rng.randrange(self.count)
            if rank in drawn:
                continue
            drawn.add(rank)
            if self.accepts(self.unrank(rank)):
                out.append(rank)
                continue
            n_rejected += 1
            if scan_limit is not None and n_rejected > scan_limit:
                raise ScanLimitExceeded(f"Rejected {n_rejected} random draws, found {len(out)} of {n=} valid elements")
        return out

    def random_sample(self, n: int, seed: int = None, scan_limit: int = None) -> List[Element]:
        return [self.unrank(rank) for rank in self.random_ranks(n, seed, scan_limit)]

    # Numerical representation
    # ########################

    def count_matrix(self, ranks: Iterable[int]) -> numpy.ndarray:
        """How often each pool item is chosen, one row per rank

        Columns are the pool items of the first selection, followed by the
        pool items of the second selection etc.
        """
        ranks = list(ranks)
        offsets = numpy.cumsum([0] + [selection.n_items for selection in self.selections])
        out = numpy.zeros((len(ranks), offsets[-1]), int)
        for row, rank in zip(out, ranks):
            for selection, offset, local_rank in zip(self.selections, offsets, self._local_ranks(rank)):
                indices = numpy.array(selection.unrank_indices(local_rank), int)
                numpy.add.at(row, offset + indices, 1)
        return out

    def describe(self) -> str:
        lines = [f"Space with {self.count} elements"]
        for i, (selection, name) in enumerate(zip(self.selections, self.names)):
            lines.append(f"  {name or i}: {selection.describe()}")
        if self.constraints:
            lines.append(f"  {len(self.constraints)} constraint(s); valid count unknown")
        return '\n'.join(lines)
