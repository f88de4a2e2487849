'''Converters from ballots to voting power per choice.

These objects allocate the voting power of a single ballot among the choices
of a proposal (:meth:`allocate`), derive the displayed contribution from that
allocation (:meth:`score`) and sum the contributions of many ballots
(:meth:`convert`). All choice keys are 0-based indices.

Arithmetic is exact where the voting power and weights are integers or
fractions, so per-choice sums add up to the total voting power without
rounding drift.
'''

import collections
from typing import Dict, Iterable, Tuple, Any
from numbers import Number

import govtally.util
from govtally.vote import \
    SingleBallotType, ApprovalBallotType, RankedBallotType, WeightedBallotType
from govtally.persist import simple_serialization


class Converter:
    '''Allocate ballot voting power to choices.

    Base class; subclasses implement :meth:`allocate`.
    '''
    def allocate(self, ballot: Any, power: Number) -> Dict[int, Number]:
        raise NotImplementedError

    def score(self, allocation: Dict[int, Number]) -> Dict[int, Number]:
        '''Convert an allocation of power to displayed per-choice values.'''
        return allocation

    def threshold(self, power_threshold: Number) -> Number:
        '''Translate a voting power threshold to displayed units.'''
        return power_threshold

    def contribution(self, ballot: Any, power: Number) -> Dict[int, Number]:
        '''Return the displayed per-choice contribution of one ballot.'''
        return self.score(self.allocate(ballot, power))

    def convert(self,
                ballots: Iterable[Tuple[Any, Number]],
                ) -> Dict[int, Number]:
        '''Sum the displayed contributions of (ballot, power) pairs.'''
        agg_power = collections.defaultdict(int)
        for ballot, power in ballots:
            govtally.util.add_dict_to_dict(
                agg_power, self.contribution(ballot, power)
            )
        return dict(agg_power)


@simple_serialization
class SingleToPower(Converter):
    '''Give the full voting power to the single selected choice.'''
    def allocate(self,
                 ballot: SingleBallotType,
                 power: Number,
                 ) -> Dict[int, Number]:
        return {ballot: power}


@simple_serialization
class ApprovalToPower(Converter):
    '''Aggregate approval ballots to power per choice.

    :param split: Whether to split the voting power among all the approved
        choices (as in satisfaction approval voting) or give the full power to
        each of them (as in ordinary approval voting, the default).
    '''
    def __init__(self, split: bool = False):
        self.split = split

    def allocate(self,
                 ballot: ApprovalBallotType,
                 power: Number,
                 ) -> Dict[int, Number]:
        if self.split:
            return {
                index: govtally.util.exact_share(power, 1, len(ballot))
                for index in ballot
            }
        else:
            return {index: power for index in ballot}


@simple_serialization
class WeightedToPower(Converter):
    '''Split the voting power proportionally to the ballot's weights.'''
    def allocate(self,
                 ballot: WeightedBallotType,
                 power: Number,
                 ) -> Dict[int, Number]:
        weight_total = sum(ballot.values())
        return {
            index: govtally.util.exact_share(power, weight, weight_total)
            for index, weight in ballot.items()
        }


@simple_serialization
class QuadraticToPower(WeightedToPower):
    '''Weighted allocation displayed as square roots.

    The power a voter allocates to a choice counts as its square root, so
    large holders gain less than linearly. The square root is taken per
    ballot and choice before summing.
    '''
    def score(self, allocation: Dict[int, Number]) -> Dict[int, Number]:
        return {
            index: govtally.util.square_root(power)
            for index, power in allocation.items()
        }

    def threshold(self, power_threshold: Number) -> Number:
        return govtally.util.square_root(power_threshold)


@simple_serialization
class RankedToFirstPreference(Converter):
    '''Give the full voting power to the most preferred choice.

    Lower preferences are ignored; use :mod:`govtally.runoff` for a full
    ranked tabulation.
    '''
    def allocate(self,
                 ballot: RankedBallotType,
                 power: Number,
                 ) -> Dict[int, Number]:
        return {ballot[0]: power}
