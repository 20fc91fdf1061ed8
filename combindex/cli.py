"""Command line access to selection spaces

Dimensions are added in the order they are given, e.g.::

    combindex sample --distinct 2:ABC --permutation 2:x,y,z --step 5
    combindex unrank --arrangement 4,4:10 0
"""
import argparse
import dataclasses
import importlib
from itertools import islice
import logging
import sys
from typing import List, Optional

from tqdm import tqdm

from .errors import CombindexError, InvalidSpec
from .log import configure_logging
from .selection import Arrangement, FixedDistinct, FixedRepeated, Permutation, Ranged, Selection
from .space import Space


logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ' '


def parse_pool(text: str) -> List[str]:
    "``a,b,c`` or a run of single characters ``abc``"
    if ',' in text:
        return text.split(',')
    return list(text)


def parse_dimension(option: str, value: str) -> Selection:
    size, sep, pool = value.partition(':')
    if not sep:
        raise InvalidSpec(f"{option} {value!r}: expected SIZE:POOL")
    if option == '--ranged':
        pool, _, kind = pool.partition(':')
        min_size, sep, max_size = size.partition('-')
        if not sep:
            raise InvalidSpec(f"{option} {value!r}: expected MIN-MAX:POOL[:KIND]")
        return Ranged(int(min_size), int(max_size), parse_pool(pool), kind or 'distinct')
    elif option == '--arrangement':
        return Arrangement([int(c) for c in size.split(',')], parse_pool(pool))
    cls = {'--repeated': FixedRepeated, '--distinct': FixedDistinct, '--permutation': Permutation}[option]
    return cls(int(size), parse_pool(pool))


class DimensionAction(argparse.Action):

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            selection = parse_dimension(option_string, values)
        except ValueError as error:  # includes InvalidSpec
            raise argparse.ArgumentError(self, str(error))
        dimensions = getattr(namespace, self.dest, None) or []
        setattr(namespace, self.dest, [*dimensions, selection])


def load_constraint(path: str):
    "Import a predicate given as ``module:function``"
    module_name, sep, attribute = path.partition(':')
    if not sep:
        raise InvalidSpec(f"constraint={path!r}: expected module:function")
    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        raise InvalidSpec(f"constraint={path!r}: {error}") from None
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise InvalidSpec(f"constraint={path!r}: module {module_name!r} has no {attribute!r}") from None


@dataclasses.dataclass
class SamplingParameters:
    start: int = 0
    step: int = 1
    stop: Optional[int] = None
    limit: Optional[int] = None  # max. number of elements to output
    scan_limit: Optional[int] = None

    @classmethod
    def from_args(cls, args: argparse.Namespace):
        return cls(args.start, args.step, args.stop, args.limit, args.scan_limit)


def space_from_args(args: argparse.Namespace) -> Space:
    space = Space()
    for selection in args.dimensions or ():
        space = space.add(selection)
    for path in args.constraint or ():
        space = space.with_constraint(load_constraint(path))
    return space


def add_space_args(parser: argparse.ArgumentParser):
    group = parser.add_argument_group('dimensions', "Repeatable; earlier dimensions vary slowest")
    group.add_argument('--repeated', dest='dimensions', metavar='K:POOL', action=DimensionAction, help="K items, repetition allowed")
    group.add_argument('--distinct', dest='dimensions', metavar='K:POOL', action=DimensionAction, help="K distinct items, unordered")
    group.add_argument('--ranged', dest='dimensions', metavar='MIN-MAX:POOL', action=DimensionAction, help="MIN to MAX items; append :KIND with KIND distinct (default), repeated or permutation")
    group.add_argument('--permutation', dest='dimensions', metavar='K:POOL', action=DimensionAction, help="K distinct items, ordered")
    group.add_argument('--arrangement', dest='dimensions', metavar='C1,C2,...:POOL', action=DimensionAction, help="All orderings using POOL[i] exactly Ci times")
    parser.add_argument('--constraint', action='append', metavar='MODULE:FUNCTION', help="Only keep elements for which FUNCTION(element) is true")
    parser.add_argument('--sep', default=DEFAULT_SEPARATOR, help="Separator between items in the output")


def add_sampling_args(parser: argparse.ArgumentParser):
    parser.add_argument('--start', type=int, default=0, help="First rank")
    parser.add_argument('--step', type=int, default=1, help="Output every STEP-th (valid) element")
    parser.add_argument('--stop', type=int, default=None, help="Do not visit ranks at or beyond STOP")
    parser.add_argument('--limit', type=int, default=None, help="Output at most LIMIT elements")
    parser.add_argument('--scan-limit', type=int, default=None, help="Give up after this many consecutive elements rejected by a constraint (default: scan without bound)")
    parser.add_argument('--progress', action='store_true', default=False, help="Show a progress bar on stderr")


def format_element(element, sep: str) -> str:
    return sep.join(map(str, element))


def run(args: argparse.Namespace) -> int:
    space = space_from_args(args)
    logger.debug("Space with %s elements and %s constraint(s)", space.count, len(space.constraints))
    if args.command == 'count':
        print(space.describe() if args.describe else space.count)
    elif args.command == 'unrank':
        for rank in args.ranks:
            print(format_element(space.unrank(rank), args.sep))
    elif args.command == 'rank':
        print(space.rank(args.items))
    elif args.command == 'partition':
        for ranks in space.partition(args.n_parts):
            print(ranks.start, ranks.stop)
    elif args.command == 'random':
        for element in space.random_sample(args.n, args.seed, args.scan_limit):
            print(format_element(element, args.sep))
    elif args.command == 'sample':
        parameters = SamplingParameters.from_args(args)
        sequence = space.lex_order_nth(parameters.start, parameters.step, parameters.stop, parameters.scan_limit)
        elements = islice(sequence, parameters.limit)
        if args.progress:
            total = sequence.expected_length()
            if parameters.limit is not None:
                total = parameters.limit if total is None else min(total, parameters.limit)
            elements = tqdm(elements, total=total, file=sys.stderr, unit='element')
        n = 0
        for element in elements:
            print(format_element(element, args.sep))
            n += 1
        logger.debug("Wrote %s elements", n)
    else:
        raise RuntimeError(f"{args.command=}")
    return 0


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='combindex', description="Rank, unrank and sample combinatorial selection spaces")
    parser.add_argument('--verbose', '-v', action='store_true', default=False)
    parser.add_argument('--log-json', action='store_true', default=False)
    subparsers = parser.add_subparsers(dest='command', required=True)

    count = subparsers.add_parser('count', help="Number of elements (ignoring constraints)")
    add_space_args(count)
    count.add_argument('--describe', action='store_true', default=False, help="Also show each dimension")

    unrank = subparsers.add_parser('unrank', help="Elements at given ranks")
    add_space_args(unrank)
    unrank.add_argument('ranks', type=int, nargs='+')

    rank = subparsers.add_parser('rank', help="Rank of an element")
    add_space_args(rank)
    rank.add_argument('items', nargs='*', help="Items of the element, in dimension order")

    sample = subparsers.add_parser('sample', help="Elements in lexicographic order")
    add_space_args(sample)
    add_sampling_args(sample)

    partition = subparsers.add_parser('partition', help="Split ranks into contiguous ranges for independent workers")
    add_space_args(partition)
    partition.add_argument('n_parts', type=int)

    random = subparsers.add_parser('random', help="Uniformly drawn distinct elements")
    add_space_args(random)
    random.add_argument('n', type=int)
    random.add_argument('--seed', type=int, default=None)
    random.add_argument('--scan-limit', type=int, default=None)
    return parser


def main(argv: List[str] = None):
    parser = make_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.log_json)
    try:
        return run(args)
    except (CombindexError, ValueError) as error:
        sys.exit(f"{error.__class__.__name__}: {error}")
