"""Lazy traversal of a space

A :class:`SamplingSequence` is fully determined by its parameters. Iterating
it twice, or in two independent workers, produces the same elements, and only
the current element is held in memory.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional, Tuple

from .errors import ScanCancelled, SpaceExhausted
from .space import Element, Space, check_scan_limit, check_traversal


logger = logging.getLogger(__name__)


class SamplingSequence:

    def __init__(
            self,
            space: Space,
            start: int = 0,  # first rank
            step: int = 1,  # sample every step-th (valid) element
            stop: int = None,  # exclusive bound on the ranks visited
            scan_limit: int = None,  # max. rejected candidates per valid element
            cancel: threading.Event = None,
    ):
        check_traversal(start, step)
        check_scan_limit(scan_limit)
        if stop is not None and stop < 0:
            raise ValueError(f"{stop=} (<0)")
        self.space = space
        self.start = start
        self.step = step
        self.stop = space.count if stop is None else min(stop, space.count)
        self.scan_limit = scan_limit
        self.cancel = cancel

    def __repr__(self):
        return f"<SamplingSequence {self.start}:{self.stop}:{self.step} of {self.space.count}>"

    def __iter__(self) -> Iterator[Element]:
        for _, element in self.ranks():
            yield element

    def ranks(self) -> Iterator[Tuple[int, Element]]:
        "Iterate over ``(rank, element)`` pairs"
        if self.space.is_constrained:
            return self._iter_constrained()
        return self._iter_unconstrained()

    def _iter_unconstrained(self) -> Iterator[Tuple[int, Element]]:
        for rank in range(self.start, self.stop, self.step):
            self._check_cancel(rank)
            yield rank, self.space.unrank(rank)

    def _iter_constrained(self) -> Iterator[Tuple[int, Element]]:
        rank = self.start
        n_skip = 0  # valid elements to pass over before the next sample
        while rank < self.stop:
            try:
                rank, element = self.space.next_valid(rank, self.stop, self.scan_limit, self.cancel)
            except SpaceExhausted:
                return
            if n_skip:
                n_skip -= 1
            else:
                yield rank, element
                n_skip = self.step - 1
            rank += 1

    def _check_cancel(self, rank: int):
        if self.cancel is not None and self.cancel.is_set():
            logger.warning("Traversal cancelled at rank %s", rank)
            raise ScanCancelled(f"Cancelled at rank {rank}", rank)

    def first(self) -> Element:
        for element in self:
            return element
        raise SpaceExhausted(f"{self!r} is empty")

    def expected_length(self) -> Optional[int]:
        "Number of elements produced, if it is known without scanning"
        if self.space.is_constrained:
            return None
        if self.start >= self.stop:
            return 0
        return (self.stop - self.start - 1) // self.step + 1
