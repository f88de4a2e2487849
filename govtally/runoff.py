'''Instant-runoff tabulation of ranked-choice ballots.

The aggregator in :mod:`govtally.results` credits ranked ballots to their
first preference only. This module performs the full instant-runoff count:
in every round, each ballot counts for its most preferred choice that is
still in the race; a choice with more than half of the round's voting power
wins; otherwise all choices with the fewest votes are eliminated and their
ballots pass to the next preferences. Ballots with no remaining preference
are exhausted and drop out of the later rounds.
'''

import dataclasses
import logging
from numbers import Number
from typing import Any, Dict, Iterable, List, Tuple, Union

import govtally.util
from govtally.util import Tie
from govtally.vote import RankedBallotType
from govtally.persist import simple_serialization


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RunoffRound:
    '''Vote totals of the active choices in one round of counting.

    :param counts: Voting power per active 0-based choice index.
    :param eliminated: Choices eliminated at the end of the round.
    '''
    counts: Dict[int, Number]
    eliminated: List[int] = dataclasses.field(default_factory=list)

    @property
    def total(self) -> Number:
        return sum(self.counts.values())


@dataclasses.dataclass
class RunoffResult:
    '''Outcome of an instant-runoff count.

    :param winner: Index of the winning choice, a :class:`Tie` of indices if
        the count ended in a tie among all remaining choices, or None if no
        ballot was counted.
    :param final_counts: Vote totals of the last round counted.
    :param eliminated: Eliminated choices in the order of their elimination.
    :param rounds: All rounds of counting.
    '''
    winner: Union[int, Tie, None]
    final_counts: Dict[int, Number]
    eliminated: List[int]
    rounds: List[RunoffRound]

    @property
    def majority_threshold(self) -> Number:
        '''Half of the voting power counted in the final round.'''
        if not self.rounds:
            return 0
        return govtally.util.exact_share(self.rounds[-1].total, 1, 2)


@simple_serialization
class InstantRunoff:
    '''Select a single winner by instant-runoff voting (IRV).

    All the choices tied for the lowest total are eliminated together. If all
    the active choices are tied, no elimination is possible and the count
    stops; the result then reports a tie of the round's leaders.
    '''
    def evaluate(self,
                 ballots: Iterable[Tuple[RankedBallotType, Number]],
                 n_choices: int,
                 ) -> RunoffResult:
        '''Count the ranked ballots.

        :param ballots: Pairs of ranked ballots (0-based indices, most
            preferred first) and their voting power.
        :param n_choices: Number of choices of the proposal. Indices outside
            the range are skipped as if they were not ranked.
        '''
        ballots = list(ballots)
        eliminated = []
        rounds = []
        winner = None
        while True:
            active = [i for i in range(n_choices) if i not in eliminated]
            if not active:
                break
            current = RunoffRound(self._tally(ballots, active))
            rounds.append(current)
            total = current.total
            if not total:
                logger.info('no active ballots left, stopping count')
                break
            logger.info('round %d vote totals: %s', len(rounds), current.counts)
            majority = [
                index for index, n_votes in current.counts.items()
                if n_votes * 2 > total
            ]
            if majority:
                winner = majority[0]
                logger.info('choice %d elected by majority', winner)
                break
            if len(active) == 1:
                winner = active[0]
                break
            min_votes = min(current.counts.values())
            losers = [
                index for index, n_votes in current.counts.items()
                if n_votes == min_votes
            ]
            if len(losers) == len(active):
                logger.info('all remaining choices tied at %s', min_votes)
                break
            logger.info('eliminating %s', losers)
            current.eliminated = losers
            eliminated.extend(losers)
            if len(active) - len(losers) == 1:
                winner = next(i for i in active if i not in losers)
                break
        if winner is None and rounds and rounds[-1].total:
            winner = govtally.util.get_best(rounds[-1].counts)
        return RunoffResult(
            winner=winner,
            final_counts=rounds[-1].counts if rounds else {},
            eliminated=eliminated,
            rounds=rounds,
        )

    @staticmethod
    def _tally(ballots: List[Tuple[RankedBallotType, Number]],
               active: List[int],
               ) -> Dict[int, Any]:
        counts = {index: 0 for index in active}
        for ranking, power in ballots:
            for index in ranking:
                if index in counts:
                    counts[index] += power
                    break
        return counts
