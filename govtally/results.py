'''Vote result aggregation.

The :func:`process_results` function turns a proposal and its raw votes into
a :class:`ProcessedResults` structure that holds everything needed to render
the proposal's results: aggregated voting power per choice, the winner and
its percentage, quorum and majority status, the individual votes with their
decoded choices and the time series for trend charts.

Proposals with hidden voting are not tallied at all until their scores are
final; :func:`process_results` then returns a :class:`HiddenResults`
placeholder that carries no numbers.

Malformed votes (unparseable choices, choices outside the proposal, no
voting power) are left out of the count and never cause an error.
'''

import dataclasses
import logging
from datetime import datetime
from numbers import Number
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import govtally.util
import govtally.system
import govtally.display
import govtally.runoff
import govtally.timeseries
from govtally.util import Tie
from govtally.vote import VoteError, AnyBallotType
from govtally.proposal import Proposal, Vote, VoteType
from govtally.persist import simple_serialization, plain_value
from govtally.timeseries import TimeSeriesPoint


logger = logging.getLogger(__name__)

AGGREGATED_VOTER = 'aggregated'
UNKNOWN_CHOICE = 'Unknown Choice'
MAJORITY_CHOICE = 'For'


@simple_serialization
class ProcessingConfig:
    '''Options of result processing.

    :param with_votes: Whether to include the individual processed votes.
    :param with_timeseries: Whether to compute the time series for charts.
    :param aggregated_votes: Whether to merge votes with power below the
        accumulation threshold into aggregate entries between the larger
        votes. Only applies when votes are included.
    :param accumulate_threshold: Voting power from which a vote is shown on
        its own, both in the vote list and the time series.
    :param index_base: Number of the first choice in raw vote choices.
    :param total_delegated_vp: Total voting power delegated in the DAO when
        the proposal started, passed through to the results for display.
    '''
    def __init__(self,
                 with_votes: bool = True,
                 with_timeseries: bool = True,
                 aggregated_votes: bool = False,
                 accumulate_threshold: Number = (
                     govtally.timeseries.ACCUMULATE_VOTING_POWER_THRESHOLD
                 ),
                 index_base: int = 1,
                 total_delegated_vp: Optional[Number] = None,
                 ):
        if accumulate_threshold <= 0:
            raise ValueError(
                f'accumulation threshold must be positive,'
                f' got {accumulate_threshold}'
            )
        if isinstance(index_base, bool) or not isinstance(index_base, int):
            raise ValueError(f'index base must be an integer: {index_base!r}')
        if total_delegated_vp is not None and total_delegated_vp < 0:
            raise ValueError(
                f'delegated voting power cannot be negative:'
                f' {total_delegated_vp}'
            )
        self.with_votes = with_votes
        self.with_timeseries = with_timeseries
        self.aggregated_votes = aggregated_votes
        self.accumulate_threshold = accumulate_threshold
        self.index_base = index_base
        self.total_delegated_vp = total_delegated_vp


@dataclasses.dataclass
class ChoiceShare:
    '''A choice named by a vote.

    :param index: 0-based choice index.
    :param weight: Percentage of the vote's voting power the choice receives.
    :param text: Choice label.
    :param color: Choice colour.
    '''
    index: int
    weight: Number
    text: str
    color: str


@dataclasses.dataclass
class ProcessedVote:
    '''A counted vote with its choice decoded, ready for display.

    Aggregate entries standing for several small votes have the voter
    address ``'aggregated'`` and ``aggregate`` set.
    '''
    voter_address: str
    voting_power: Number
    choice: List[ChoiceShare]
    created_at: Optional[datetime] = None
    id: Any = None
    proposal_id: Any = None
    reason: Optional[str] = None
    aggregate: bool = False
    relative_voting_power: Optional[Number] = None


@dataclasses.dataclass
class ProcessedResults:
    '''Tallied results of a proposal.

    :param final_results: Displayed voting power per 0-based choice index;
        every choice is present. For quadratic proposals, these are sums of
        square roots of the allocated power.
    :param allocated_power: Voting power allocated to each choice before any
        quadratic scaling.
    :param total_voting_power: Sum of voting power of the counted votes.
    :param winner: Label of the winning choice, a :class:`Tie` of labels,
        or None if no power was cast.
    :param winning_percentage: Winner's share of the percentage base (total
        voting power for approval voting, the sum of final results otherwise).
    :param quorum_reached: None if the proposal has no quorum.
    :param majority_support: Whether the ``For`` choice leads with more than
        half of the voting power; None for proposals without a ``For`` choice.
    :param votes: Processed votes, if requested.
    :param time_series: Time series points, if requested.
    '''
    proposal: Proposal
    choices: List[str]
    choice_colors: List[str]
    vote_type: VoteType
    total_voting_power: Number
    final_results: Dict[int, Number]
    allocated_power: Dict[int, Number]
    winner: Union[str, Tie, None]
    winner_index: Union[int, Tie, None]
    winning_percentage: Number
    quorum: Optional[Number]
    quorum_choices: List[int]
    quorum_power: Number
    quorum_reached: Optional[bool]
    majority_support: Optional[bool]
    votes: Optional[List[ProcessedVote]] = None
    time_series: Optional[List[TimeSeriesPoint]] = None
    total_delegated_vp: Optional[Number] = None
    hidden_vote: bool = False
    scores_state: str = 'unknown'

    hidden = False

    def display_segments(self) -> List[govtally.display.DisplaySegment]:
        return govtally.display.display_segments(self)

    def vote_segments(self, **kwargs) -> Dict[int, List[Any]]:
        return govtally.display.vote_segments(self, **kwargs)

    def cumulative_series(self) -> Dict[int, List[Tuple[datetime, Number]]]:
        '''Running totals per choice for line charts.'''
        return govtally.timeseries.cumulative(
            self.time_series or [], len(self.choices)
        )

    def to_dict(self) -> Dict[str, Any]:
        '''Return the results as plain JSON-ready data.'''
        return plain_value(dataclasses.asdict(self))


@dataclasses.dataclass
class HiddenResults:
    '''Stand-in for results of a hidden vote that is not final yet.

    Carries what is needed to draw the proposal but no tallied numbers.
    '''
    proposal: Proposal
    choices: List[str]
    choice_colors: List[str]
    vote_type: Any
    scores_state: str
    label: str
    hidden_vote: bool = True

    hidden = True

    def to_dict(self) -> Dict[str, Any]:
        return plain_value(dataclasses.asdict(self))


def choice_shares(ballot: AnyBallotType,
                  choices: List[str],
                  colors: List[str],
                  ) -> List[ChoiceShare]:
    '''Describe a parsed ballot as a list of choice shares.

    Ranked ballots list all ranked choices in order of preference, but only
    the first one carries weight.
    '''
    if isinstance(ballot, int):
        weights = [(ballot, 100)]
    elif isinstance(ballot, frozenset):
        weights = [(index, 100) for index in sorted(ballot)]
    elif isinstance(ballot, tuple):
        weights = [
            (index, 100 if rank == 0 else 0)
            for rank, index in enumerate(ballot)
        ]
    else:
        total = sum(ballot.values())
        weights = [
            (index, govtally.util.exact_share(100, weight, total))
            for index, weight in ballot.items()
        ]
    return [
        ChoiceShare(
            index=index,
            weight=weight,
            text=choices[index] if index < len(choices) else UNKNOWN_CHOICE,
            color=(
                colors[index] if index < len(colors)
                else govtally.display.DEFAULT_CHOICE_COLOR
            ),
        )
        for index, weight in weights
    ]


def parse_votes(proposal: Proposal,
                votes: Iterable[Vote],
                system: Optional[govtally.system.ResultSystem] = None,
                ) -> List[Tuple[Vote, AnyBallotType]]:
    '''Parse the votes that can be counted for the proposal.

    Votes without positive voting power and votes whose choice the result
    system rejects are skipped.

    :param system: Result system to parse with; by default the one for the
        proposal's vote type.
    :returns: Pairs of the counted votes and their ballots.
    '''
    if system is None:
        system = govtally.system.get_system(proposal.vote_type)
    counted = []
    n_skipped = 0
    for vote in votes:
        if not vote.voting_power > 0:
            logger.debug('skipping vote of %s without voting power',
                         vote.voter_address)
            n_skipped += 1
            continue
        try:
            ballot = system.parse(vote.choice, proposal.n_choices)
        except VoteError as err:
            logger.debug('skipping vote of %s: %s', vote.voter_address, err)
            n_skipped += 1
            continue
        counted.append((vote, ballot))
    if n_skipped:
        logger.info('skipped %d votes for proposal %s',
                    n_skipped, proposal.id)
    return counted


def process_results(proposal: Proposal,
                    votes: Iterable[Vote],
                    config: Optional[ProcessingConfig] = None,
                    ) -> Union[ProcessedResults, HiddenResults]:
    '''Tally the votes of a proposal.

    :param proposal: The proposal whose votes are tallied.
    :param votes: Raw votes for the proposal.
    :param config: Processing options; defaults are used if not given.
    :returns: Hidden results placeholder if the proposal's results are
        hidden, tallied results otherwise.
    '''
    if config is None:
        config = ProcessingConfig()
    colors = [govtally.display.color_for_choice(c) for c in proposal.choices]
    if proposal.results_hidden:
        logger.info('results of proposal %s hidden until final', proposal.id)
        return HiddenResults(
            proposal=proposal,
            choices=list(proposal.choices),
            choice_colors=colors,
            vote_type=proposal.vote_type,
            scores_state=proposal.scores_state,
            label=govtally.display.visibility_label(proposal),
        )
    if not proposal.choices:
        logger.warning('proposal %s has no choices defined', proposal.id)
        return _empty_results(proposal, config)
    system = govtally.system.get_system(
        proposal.vote_type
    ).with_index_base(config.index_base)
    if isinstance(proposal.vote_type, VoteType):
        vote_type = proposal.vote_type
    else:
        vote_type = VoteType.BASIC
    counted = parse_votes(proposal, votes, system)
    converter = system.converter
    n_choices = proposal.n_choices
    final_results = {index: 0 for index in range(n_choices)}
    allocated_power = {index: 0 for index in range(n_choices)}
    total_voting_power = 0
    for vote, ballot in counted:
        allocation = converter.allocate(ballot, vote.voting_power)
        govtally.util.add_dict_to_dict(allocated_power, allocation)
        govtally.util.add_dict_to_dict(
            final_results, converter.score(allocation)
        )
        total_voting_power += vote.voting_power
    logger.info('counted %d votes with total power %s for proposal %s',
                len(counted), total_voting_power, proposal.id)

    winner_index = None
    if any(final_results.values()):
        winner_index = govtally.util.get_best(final_results)
    if system.share_of_total_power:
        percentage_base = total_voting_power
    else:
        percentage_base = sum(final_results.values())
    if winner_index is None:
        winning_percentage = 0
    else:
        winning_percentage = govtally.util.percentage(
            max(final_results.values()), percentage_base
        )
    quorum_power = sum(
        final_results.get(index, 0) for index in proposal.quorum_choices
    )
    processed_votes = None
    if config.with_votes:
        processed_votes = [
            ProcessedVote(
                voter_address=vote.voter_address,
                voting_power=vote.voting_power,
                choice=choice_shares(ballot, proposal.choices, colors),
                created_at=vote.created_at,
                id=vote.id,
                proposal_id=vote.proposal_id,
                reason=vote.reason,
            )
            for vote, ballot in counted
        ]
        if config.aggregated_votes:
            processed_votes = aggregate_small_votes(
                processed_votes, proposal, config.accumulate_threshold
            )
        _set_relative_power(processed_votes)
    time_series = None
    if config.with_timeseries:
        time_series = govtally.timeseries.bucket_by_power(
            [
                (vote.created_at,
                 converter.contribution(ballot, vote.voting_power))
                for vote, ballot in counted
                if vote.created_at is not None
            ],
            n_choices,
            converter.threshold(config.accumulate_threshold),
        )
    return ProcessedResults(
        proposal=proposal,
        choices=list(proposal.choices),
        choice_colors=colors,
        vote_type=vote_type,
        total_voting_power=total_voting_power,
        final_results=final_results,
        allocated_power=allocated_power,
        winner=_label_winner(winner_index, proposal.choices),
        winner_index=winner_index,
        winning_percentage=winning_percentage,
        quorum=proposal.quorum,
        quorum_choices=list(proposal.quorum_choices),
        quorum_power=quorum_power,
        quorum_reached=_quorum_reached(quorum_power, proposal.quorum),
        majority_support=_majority_support(
            proposal.choices, final_results, winner_index, total_voting_power
        ),
        votes=processed_votes,
        time_series=time_series,
        total_delegated_vp=config.total_delegated_vp,
        hidden_vote=proposal.hidden_vote,
        scores_state=proposal.scores_state,
    )


def aggregate_small_votes(votes: List[ProcessedVote],
                          proposal: Proposal,
                          threshold: Number,
                          ) -> List[ProcessedVote]:
    '''Merge runs of small votes into aggregate entries.

    Votes are taken in chronological order. Votes with power at least the
    threshold are kept as they are; the small votes between two such votes
    are summed per choice into one aggregate entry for each choice, placed
    just before the next large vote (or at the end).
    '''
    undated = [vote for vote in votes if vote.created_at is None]
    dated = sorted(
        (vote for vote in votes if vote.created_at is not None),
        key=lambda vote: vote.created_at,
    )
    ordered = undated + dated
    merged = []
    window = {}
    n_windows = 0
    for vote in ordered:
        if vote.voting_power >= threshold:
            if window:
                merged.extend(_aggregate_entries(
                    window, proposal, vote.created_at, n_windows
                ))
                window = {}
                n_windows += 1
            merged.append(vote)
        else:
            for share in vote.choice:
                if not 0 <= share.index < proposal.n_choices:
                    continue
                # lower preferences of ranked ballots carry no power
                if share.weight == 0:
                    continue
                power, count = window.get(share.index, (0, 0))
                window[share.index] = (
                    power + govtally.util.exact_share(
                        vote.voting_power, share.weight, 100
                    ),
                    count + 1,
                )
    if window:
        merged.extend(_aggregate_entries(
            window, proposal, ordered[-1].created_at, n_windows, final=True
        ))
    logger.debug('aggregated %d votes into %d entries',
                 len(votes), len(merged))
    return merged


def _aggregate_entries(window: Dict[int, Tuple[Number, int]],
                       proposal: Proposal,
                       timestamp: Optional[datetime],
                       n_window: int,
                       final: bool = False,
                       ) -> List[ProcessedVote]:
    entries = []
    for index, (power, count) in sorted(window.items()):
        if power <= 0:
            continue
        label = proposal.choices[index]
        suffix = ' (final)' if final else ''
        entries.append(ProcessedVote(
            voter_address=AGGREGATED_VOTER,
            voting_power=power,
            choice=[ChoiceShare(
                index, 100, label, govtally.display.color_for_choice(label)
            )],
            created_at=timestamp,
            id=f'aggregated-{n_window}-{index}',
            proposal_id=proposal.id,
            reason=f'Aggregated {count} votes{suffix}',
            aggregate=True,
        ))
    return entries


def _set_relative_power(votes: List[ProcessedVote]) -> None:
    max_power = max(
        (vote.voting_power for vote in votes if not vote.aggregate),
        default=0,
    )
    for vote in votes:
        if max_power > 0:
            relative = govtally.util.exact_share(vote.voting_power, 1,
                                                 max_power)
            vote.relative_voting_power = min(relative, 1)
        else:
            vote.relative_voting_power = 0


def _label_winner(winner_index: Union[int, Tie, None],
                  choices: List[str],
                  ) -> Union[str, Tie, None]:
    if winner_index is None:
        return None
    elif isinstance(winner_index, Tie):
        return Tie(choices[index] for index in winner_index)
    else:
        return choices[winner_index]


def _quorum_reached(quorum_power: Number,
                    quorum: Optional[Number],
                    ) -> Optional[bool]:
    if quorum is None:
        return None
    return quorum_power > quorum


def _majority_support(choices: List[str],
                      final_results: Dict[int, Number],
                      winner_index: Union[int, Tie, None],
                      total_voting_power: Number,
                      ) -> Optional[bool]:
    if MAJORITY_CHOICE not in choices:
        return None
    for_index = choices.index(MAJORITY_CHOICE)
    return (
        winner_index == for_index
        and final_results[for_index] * 2 > total_voting_power
    )


def _empty_results(proposal: Proposal,
                   config: ProcessingConfig,
                   ) -> ProcessedResults:
    return ProcessedResults(
        proposal=proposal,
        choices=[],
        choice_colors=[],
        vote_type=VoteType.BASIC,
        total_voting_power=0,
        final_results={},
        allocated_power={},
        winner=None,
        winner_index=None,
        winning_percentage=0,
        quorum=proposal.quorum,
        quorum_choices=list(proposal.quorum_choices),
        quorum_power=0,
        quorum_reached=_quorum_reached(0, proposal.quorum),
        majority_support=None,
        votes=[] if config.with_votes else None,
        time_series=[] if config.with_timeseries else None,
        total_delegated_vp=config.total_delegated_vp,
        hidden_vote=proposal.hidden_vote,
        scores_state=proposal.scores_state,
    )


def instant_runoff(proposal: Proposal,
                   votes: Iterable[Vote],
                   index_base: int = 1,
                   ) -> govtally.runoff.RunoffResult:
    '''Run a full instant-runoff count of the proposal's votes.

    Raw choices are read as rankings whatever the proposal's vote type; a
    single choice counts as a ranking of one.
    '''
    system = govtally.system.SYSTEMS[VoteType.RANKED_CHOICE]
    counted = parse_votes(proposal, votes, system.with_index_base(index_base))
    return govtally.runoff.InstantRunoff().evaluate(
        [(ballot, vote.voting_power) for vote, ballot in counted],
        proposal.n_choices,
    )
