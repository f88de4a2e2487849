import copy
import logging
from typing import Any, Dict

import govtally.convert
import govtally.vote
from govtally.proposal import VoteType, UnknownVoteTypeError
from govtally.persist import simple_serialization


logger = logging.getLogger(__name__)


@simple_serialization
class ResultSystem:
    """A named way of counting one vote type.

    Wraps the parser that normalizes raw choices and the converter that turns
    the resulting ballots into voting power per choice.

    :param name: Human-readable name of the vote type.
    :param parser: Ballot parser for raw choices.
    :param converter: Converter from ballots to per-choice power.
    :param share_of_total_power: Whether percentages are computed against
        the total voting power of counted votes rather than the sum of
        per-choice power. True for approval voting, where each ballot counts
        fully for several choices.
    """
    def __init__(self,
                 name: str,
                 parser: govtally.vote.BallotParser,
                 converter: govtally.convert.Converter,
                 share_of_total_power: bool = False,
                 ):
        self.name = name
        self.parser = parser
        self.converter = converter
        self.share_of_total_power = share_of_total_power

    def parse(self, raw: Any, n_choices: int) -> Any:
        """Normalize a raw choice into a ballot."""
        return self.parser.parse(raw, n_choices)

    def with_index_base(self, index_base: int) -> 'ResultSystem':
        """Return a copy of the system reading raw choices from index_base."""
        if index_base == self.parser.index_base:
            return self
        parser = copy.copy(self.parser)
        parser.index_base = index_base
        return ResultSystem(
            self.name,
            parser,
            self.converter,
            self.share_of_total_power,
        )


SYSTEMS: Dict[VoteType, ResultSystem] = {
    VoteType.SINGLE_CHOICE: ResultSystem(
        'Single choice',
        govtally.vote.SingleBallotParser(),
        govtally.convert.SingleToPower(),
    ),
    VoteType.BASIC: ResultSystem(
        'Basic',
        govtally.vote.SingleBallotParser(),
        govtally.convert.SingleToPower(),
    ),
    VoteType.APPROVAL: ResultSystem(
        'Approval',
        govtally.vote.ApprovalBallotParser(),
        govtally.convert.ApprovalToPower(),
        share_of_total_power=True,
    ),
    VoteType.WEIGHTED: ResultSystem(
        'Weighted',
        govtally.vote.WeightedBallotParser(),
        govtally.convert.WeightedToPower(),
    ),
    VoteType.QUADRATIC: ResultSystem(
        'Quadratic',
        govtally.vote.WeightedBallotParser(),
        govtally.convert.QuadraticToPower(),
    ),
    VoteType.RANKED_CHOICE: ResultSystem(
        'Ranked choice (first preferences)',
        govtally.vote.RankedBallotParser(),
        govtally.convert.RankedToFirstPreference(),
    ),
}


def get_system(vote_type: Any) -> ResultSystem:
    """Return the result system for a vote type.

    Unknown vote types are counted as basic votes.
    """
    try:
        return SYSTEMS[VoteType.parse(vote_type)]
    except UnknownVoteTypeError:
        logger.warning('unknown vote type %r, counting as basic', vote_type)
        return SYSTEMS[VoteType.BASIC]
