from itertools import islice
import threading

import pytest

from combindex.errors import ScanCancelled, ScanLimitExceeded, SpaceExhausted
from combindex.sampling import SamplingSequence
from combindex.space import Space


def has_no_run(element):
    return all(a != b for a, b in zip(element, element[1:]))


@pytest.fixture
def space():
    return Space().ranged(1, 2, 'ABCD').fixed_repeated(2, 'xy')


def test_lex_order(space):
    elements = list(space.lex_order())
    assert len(elements) == space.count
    assert elements == [space.unrank(rank) for rank in range(space.count)]


@pytest.mark.parametrize("start, step", [(0, 1), (0, 3), (0, 7), (4, 5), (39, 2), (40, 1), (0, 1000)])
def test_sampling_equivalence(space, start, step):
    full = list(space.lex_order())
    sequence = space.lex_order_nth(start, step)
    assert list(sequence) == full[start::step]
    assert sequence.expected_length() == len(full[start::step])


@pytest.mark.parametrize("start, step", [(0, 1), (0, 2), (3, 4), (10, 3)])
def test_constrained_sampling(space, start, step):
    constrained = space.with_constraint(has_no_run)
    valid = [e for rank, e in enumerate(space.lex_order()) if rank >= start and has_no_run(e)]
    sequence = constrained.lex_order_nth(start, step)
    assert list(sequence) == valid[::step]
    assert sequence.expected_length() is None
    for n, element in enumerate(valid[::step]):
        assert constrained.nth_valid(start, n, step) == element


def test_ranks(space):
    constrained = space.with_constraint(has_no_run)
    pairs = list(constrained.lex_order_nth(0, 3).ranks())
    for rank, element in pairs:
        assert constrained.unrank(rank) == element
        assert has_no_run(element)


def test_restartable(space):
    sequence = space.with_constraint(has_no_run).lex_order_nth(2, 3)
    assert list(sequence) == list(sequence)
    iterator = iter(sequence)
    first = next(iterator)
    assert next(iter(sequence)) == first


def test_stop(space):
    workers = [space.lex_order_nth(part.start, 1, part.stop) for part in space.partition(3)]
    assert [e for worker in workers for e in worker] == list(space.lex_order())
    assert list(space.lex_order_nth(0, 1, 10 ** 9)) == list(space.lex_order())


def test_first_and_exhausted():
    space = Space().arrangement((4, 4), '10')
    sequence = space.lex_order_nth(0, 1000)
    assert list(sequence) == [tuple('11110000')]
    assert sequence.first() == tuple('11110000')
    with pytest.raises(SpaceExhausted):
        space.lex_order_nth(70).first()
    with pytest.raises(SpaceExhausted):
        space.with_constraint(lambda element: False).lex_order().first()


def test_lazy_on_huge_space():
    space = Space().fixed_repeated(64, 'ABCDEFGH').permutation(20, 'abcdefghijklmnopqrstuvwxyz')
    step = space.count // 5
    elements = list(islice(space.lex_order_nth(17, step), 10))
    assert len(elements) == 5
    assert elements[0] == space.unrank(17)
    assert space.rank(elements[-1]) == 17 + 4 * step


def test_invalid_parameters(space):
    with pytest.raises(ValueError):
        SamplingSequence(space, step=0)
    with pytest.raises(ValueError):
        SamplingSequence(space, start=-1)
    with pytest.raises(ValueError):
        SamplingSequence(space, stop=-1)
    with pytest.raises(ValueError):
        SamplingSequence(space, scan_limit=-1)


def test_scan_limit_in_stream():
    space = Space().fixed_repeated(4, 'AB').with_constraint(lambda element: element.count('B') == 4 or element[0] == 'A' and element.count('B') == 0)
    sequence = space.lex_order_nth(scan_limit=5)
    iterator = iter(sequence)
    assert next(iterator) == tuple('AAAA')
    with pytest.raises(ScanLimitExceeded):
        next(iterator)
    assert list(space.lex_order()) == [tuple('AAAA'), tuple('BBBB')]


def test_cancel(space):
    cancel = threading.Event()
    for constrained in (space, space.with_constraint(has_no_run)):
        iterator = iter(constrained.lex_order_nth(cancel=cancel))
        next(iterator)
        cancel.set()
        with pytest.raises(ScanCancelled):
            next(iterator)
        cancel.clear()
