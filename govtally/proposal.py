'''Proposal and vote records as delivered by the data-access layer.

A :class:`Proposal` holds the ordered choice labels and the settings that
drive result processing (vote type, quorum, hidden-vote flag, scores
finality). A :class:`Vote` holds one voter's ballot in the raw form stored by
the indexer - the choice has not been validated or normalized yet; that is
the task of the :mod:`govtally.vote` module.
'''

from __future__ import annotations

import enum
import dataclasses
from datetime import datetime
from numbers import Number
from typing import Any, List, Optional


SCORES_FINAL = 'final'
SCORES_UNKNOWN = 'unknown'


class UnknownVoteTypeError(ValueError):
    '''A vote type name that is not among the supported ballot types.'''
    def __init__(self, name: Any):
        self.name = name
        super().__init__(f'unknown vote type: {name!r}')


class VoteType(str, enum.Enum):
    '''Ballot types as named by the governance indexers.'''

    SINGLE_CHOICE = 'single-choice'
    BASIC = 'basic'
    APPROVAL = 'approval'
    WEIGHTED = 'weighted'
    QUADRATIC = 'quadratic'
    RANKED_CHOICE = 'ranked-choice'

    @classmethod
    def parse(cls, value: Any) -> VoteType:
        '''Return the vote type for an indexer name (or a VoteType).

        :raises UnknownVoteTypeError: If the name is not recognized.
        '''
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownVoteTypeError(value) from e


@dataclasses.dataclass
class Proposal:
    '''A governance proposal whose votes are to be tallied.

    :param id: Identifier of the proposal.
    :param dao_id: Identifier of the DAO (or its governor) the proposal
        belongs to.
    :param choices: Ordered choice labels. Ballots refer to these by index.
    :param vote_type: Ballot type; a :class:`VoteType` or its indexer name.
        Names of unknown types are kept as given and processed as basic votes.
    :param quorum: Voting power the quorum choices must exceed for the
        proposal to be valid; None if the proposal has no quorum.
    :param quorum_choices: 0-based indices of choices counting toward quorum.
    :param hidden_vote: Whether results are concealed until the scores are
        final (shielded voting).
    :param scores_state: Finality flag of the tallied scores as reported by
        the indexer; ``'final'`` means the results may be shown.
    '''
    id: Any
    choices: List[str]
    vote_type: Any = VoteType.BASIC
    dao_id: Any = None
    title: Optional[str] = None
    quorum: Optional[Number] = None
    quorum_choices: List[int] = dataclasses.field(default_factory=list)
    hidden_vote: bool = False
    scores_state: str = SCORES_UNKNOWN
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None

    def __post_init__(self):
        self.choices = [str(choice) for choice in self.choices]
        try:
            self.vote_type = VoteType.parse(self.vote_type)
        except UnknownVoteTypeError:
            pass

    @property
    def n_choices(self) -> int:
        return len(self.choices)

    @property
    def scores_final(self) -> bool:
        return self.scores_state == SCORES_FINAL

    @property
    def results_hidden(self) -> bool:
        '''True if the tallied results must not be shown yet.'''
        return self.hidden_vote and not self.scores_final

    def is_active(self, at: datetime) -> bool:
        '''Return True if voting is open at the given moment.'''
        if self.start_at is not None and at < self.start_at:
            return False
        return self.end_at is None or at < self.end_at


@dataclasses.dataclass
class Vote:
    '''A single voter's ballot for a proposal, as stored by the indexer.

    :param choice: Raw choice - an index, a list of indices or a mapping of
        indices to weights, depending on the vote type. Indices follow the
        indexer's (usually 1-based) numbering.
    :param voting_power: Weight the ballot carries.
    '''
    voter_address: str
    choice: Any
    voting_power: Number
    created_at: Optional[datetime] = None
    id: Any = None
    proposal_id: Any = None
    reason: Optional[str] = None
