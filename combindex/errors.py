"""Exceptions raised by combindex

All errors are deterministic: repeating a call with the same arguments raises
the same error, so callers only retry after changing parameters.
"""
from typing import Optional


class CombindexError(Exception):
    "Base class for all combindex errors"


class InvalidSpec(CombindexError, ValueError):
    "Selection or space parameters that do not describe a valid space"


class RankOutOfRange(CombindexError, IndexError):

    def __init__(self, rank: int, count: int):
        self.rank = rank
        self.count = count
        CombindexError.__init__(self, f"{rank=} out of range for space with {count=}")


class SpaceExhausted(CombindexError, LookupError):
    "A traversal asked for an element past the last valid position"


class ScanLimitExceeded(CombindexError, RuntimeError):

    def __init__(
            self,
            message: str,
            next_rank: Optional[int] = None,  # first rank not yet examined
    ):
        self.next_rank = next_rank
        CombindexError.__init__(self, message)


class ScanCancelled(ScanLimitExceeded):
    "The cancel event was set while scanning for a valid element"
