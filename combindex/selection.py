"""One dimension of a composite space

Each selection chooses items from its own ordered pool. The pool order defines
the item order used for lexicographic ranking.
"""
import dataclasses
from functools import cached_property
from typing import Dict, Hashable, Sequence, Tuple, Union

from . import combinatorics
from .combinatorics import Kind
from .errors import InvalidSpec


Item = Hashable
PoolLike = Union[str, Sequence[Item]]


def as_pool(pool: PoolLike) -> Tuple[Item, ...]:
    "Normalize a pool; a str is split into its characters"
    items = tuple(pool)
    if not items:
        raise InvalidSpec(f"{pool=}: pool is empty")
    try:
        n_unique = len(set(items))
    except TypeError:
        raise InvalidSpec(f"{pool=}: items must be hashable") from None
    if n_unique != len(items):
        raise InvalidSpec(f"{pool=}: items must be distinct")
    return items


def _check_size(name: str, value: int):
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidSpec(f"{name}={value!r}: needs to be int")
    if value < 0:
        raise InvalidSpec(f"{name}={value} (<0)")


class Selection:
    """Shared behavior of all selection kinds

    Subclasses are frozen dataclasses with a ``pool`` field and implement
    :meth:`unrank_indices`, :meth:`rank_indices` and :attr:`count`.
    """
    pool: Tuple[Item, ...]

    @cached_property
    def index(self) -> Dict[Item, int]:
        return {item: index for index, item in enumerate(self.pool)}

    @property
    def n_items(self) -> int:
        return len(self.pool)

    @cached_property
    def count(self) -> int:
        raise NotImplementedError

    @property
    def sizes(self) -> range:
        "Possible lengths of a chosen part"
        raise NotImplementedError

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        raise NotImplementedError

    def rank_indices(self, indices: Sequence[int]) -> int:
        raise NotImplementedError

    def unrank(self, rank: int) -> Tuple[Item, ...]:
        return tuple(self.pool[i] for i in self.unrank_indices(rank))

    def rank(self, items: Sequence[Item]) -> int:
        return self.rank_indices(self.to_indices(items))

    def to_indices(self, items: Sequence[Item]) -> Tuple[int, ...]:
        try:
            return tuple(self.index[item] for item in items)
        except KeyError as error:
            raise ValueError(f"{error.args[0]!r} is not in {self.pool=}") from None
        except TypeError:
            raise ValueError(f"{items=}: items must be hashable") from None

    def contains(self, items: Sequence[Item]) -> bool:
        try:
            self.rank(items)
        except ValueError:
            return False
        return True

    def describe(self) -> str:
        return f"{self.__class__.__name__}({self.count} elements)"


@dataclasses.dataclass(frozen=True)
class FixedRepeated(Selection):
    "``size`` items, repetition allowed, order matters"
    size: int
    pool: Tuple[Item, ...]

    def __post_init__(self):
        _check_size('size', self.size)
        object.__setattr__(self, 'pool', as_pool(self.pool))

    @cached_property
    def count(self) -> int:
        return self.n_items ** self.size

    @property
    def sizes(self) -> range:
        return range(self.size, self.size + 1)

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        return combinatorics.repeated(self.n_items, self.size, rank)

    def rank_indices(self, indices: Sequence[int]) -> int:
        if len(indices) != self.size:
            raise ValueError(f"{indices=}: expected {self.size} items")
        return combinatorics.rank_repeated(indices, self.n_items)


@dataclasses.dataclass(frozen=True)
class FixedDistinct(Selection):
    "``size`` distinct items; the chosen part is listed in pool order"
    size: int
    pool: Tuple[Item, ...]

    def __post_init__(self):
        _check_size('size', self.size)
        object.__setattr__(self, 'pool', as_pool(self.pool))
        if self.size > self.n_items:
            raise InvalidSpec(f"size={self.size} > {self.n_items} items in pool")

    @cached_property
    def count(self) -> int:
        return combinatorics.n_possibilities(0, self.n_items, self.size)

    @property
    def sizes(self) -> range:
        return range(self.size, self.size + 1)

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        return combinatorics.combination(self.n_items, self.size, rank)

    def rank_indices(self, indices: Sequence[int]) -> int:
        if len(indices) != self.size:
            raise ValueError(f"{indices=}: expected {self.size} items")
        # unordered: accept the items in any order
        return combinatorics.rank_combination(sorted(indices), self.n_items)


@dataclasses.dataclass(frozen=True)
class Permutation(Selection):
    "``size`` distinct items in the order they were chosen"
    size: int
    pool: Tuple[Item, ...]

    def __post_init__(self):
        _check_size('size', self.size)
        object.__setattr__(self, 'pool', as_pool(self.pool))
        if self.size > self.n_items:
            raise InvalidSpec(f"size={self.size} > {self.n_items} items in pool")

    @cached_property
    def count(self) -> int:
        return combinatorics.COUNT['permutation'](self.n_items, self.size)

    @property
    def sizes(self) -> range:
        return range(self.size, self.size + 1)

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        return combinatorics.permutation(self.n_items, self.size, rank)

    def rank_indices(self, indices: Sequence[int]) -> int:
        if len(indices) != self.size:
            raise ValueError(f"{indices=}: expected {self.size} items")
        return combinatorics.rank_permutation(indices, self.n_items)


@dataclasses.dataclass(frozen=True)
class Ranged(Selection):
    """Union of fixed-size selections for every size in ``[min_size, max_size]``

    Elements are ordered by increasing size first, then lexicographically
    within each size.
    """
    min_size: int
    max_size: int
    pool: Tuple[Item, ...]
    kind: Kind = 'distinct'

    def __post_init__(self):
        _check_size('min_size', self.min_size)
        _check_size('max_size', self.max_size)
        if self.kind not in combinatorics.COUNT:
            raise InvalidSpec(f"kind={self.kind!r}")
        object.__setattr__(self, 'pool', as_pool(self.pool))
        if self.min_size > self.max_size:
            raise InvalidSpec(f"min_size={self.min_size} > max_size={self.max_size}")
        if self.kind != 'repeated' and self.max_size > self.n_items:
            raise InvalidSpec(f"max_size={self.max_size} > {self.n_items} items in pool")

    @cached_property
    def count(self) -> int:
        return sum(n for _, n in combinatorics.band_counts(self.kind, self.n_items, self.min_size, self.max_size))

    @property
    def sizes(self) -> range:
        return range(self.min_size, self.max_size + 1)

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        size, residual = combinatorics.locate_band(self.kind, self.n_items, self.min_size, self.max_size, rank)
        return combinatorics.UNRANK[self.kind](self.n_items, size, residual)

    def rank_indices(self, indices: Sequence[int]) -> int:
        size = len(indices)
        if size not in self.sizes:
            raise ValueError(f"{indices=}: expected between {self.min_size} and {self.max_size} items")
        if self.kind == 'distinct':
            indices = sorted(indices)
        offset = combinatorics.band_offset(self.kind, self.n_items, self.min_size, size)
        return offset + combinatorics.RANK[self.kind](indices, self.n_items)


@dataclasses.dataclass(frozen=True)
class Arrangement(Selection):
    "Every ordering of a multiset that uses ``pool[i]`` exactly ``counts[i]`` times"
    counts: Tuple[int, ...]
    pool: Tuple[Item, ...]

    def __post_init__(self):
        object.__setattr__(self, 'pool', as_pool(self.pool))
        counts = tuple(self.counts)
        for c in counts:
            _check_size('counts', c)
        if len(counts) != self.n_items:
            raise InvalidSpec(f"{counts=}: need one count for each of {self.n_items} pool items")
        object.__setattr__(self, 'counts', counts)

    @cached_property
    def count(self) -> int:
        return combinatorics.n_arrangements(self.counts)

    @property
    def sizes(self) -> range:
        length = sum(self.counts)
        return range(length, length + 1)

    def unrank_indices(self, rank: int) -> Tuple[int, ...]:
        return combinatorics.arrangement(self.counts, rank)

    def rank_indices(self, indices: Sequence[int]) -> int:
        return combinatorics.rank_arrangement(tuple(indices), self.counts)
