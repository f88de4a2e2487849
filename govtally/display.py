'''Display helpers turning processed results into renderable pieces.

Everything here works on already aggregated numbers; the functions taking
results accept the :class:`govtally.results.ProcessedResults` objects.
Hidden results (:class:`govtally.results.HiddenResults`) produce no segments.
'''

import re
import dataclasses
import logging
from numbers import Number
from typing import Any, Dict, List, Optional, Sequence

import govtally.util
from govtally.proposal import VoteType, UnknownVoteTypeError


logger = logging.getLogger(__name__)

DEFAULT_CHOICE_COLOR = '#CBD5E1'
FOR_COLOR = '#69E000'
AGAINST_COLOR = '#FF4C42'
ABSTAIN_COLOR = '#FFCC33'

CHOICE_PALETTE = [
    '#3B82F6',
    '#8B5CF6',
    '#EC4899',
    '#F97316',
    '#6EE7B7',
    '#A855F7',
    '#F43F5E',
    '#14B8A6',
    '#FBBF24',
    '#6366F1',
    '#22C55E',
    '#0EA5E9',
    '#D946EF',
    '#84CC16',
    '#2563EB',
    '#7C3AED',
    '#DB2777',
    '#EA580C',
    '#059669',
    '#4F46E5',
]

MIN_VISIBLE_WIDTH_PERCENT = 1

# ballots that split the voting power among choices
WEIGHT_DISTRIBUTIONS = frozenset([VoteType.WEIGHTED, VoteType.QUADRATIC])

HIDDEN_LABEL = 'Hidden'
RESULTS_AVAILABLE_NOTE = '(Results available)'

_FOR_PATTERN = re.compile(r'^(for|yes|yae)')
_AGAINST_PATTERN = re.compile(r'^(against|no|nay)')
_ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')


def _string_hash(text: str) -> int:
    # 32-bit signed multiply-by-31 hash over UTF-16 leading code units
    acc = 0
    for char in text:
        code = ord(char)
        if code > 0xFFFF:
            code = 0xD800 + ((code - 0x10000) >> 10)
        acc = ((acc << 5) - acc + code) & 0xFFFFFFFF
    return acc - 0x100000000 if acc & 0x80000000 else acc


def color_for_choice(label: Optional[str]) -> str:
    '''Return the colour used to draw a choice.

    Conventional governance choices get conventional colours (green for
    for/yes, red for against/no, yellow for abstain); other labels get a
    stable palette colour derived from the label text.
    '''
    if not label:
        return DEFAULT_CHOICE_COLOR
    lowered = label.lower()
    if _FOR_PATTERN.match(lowered):
        return FOR_COLOR
    if _AGAINST_PATTERN.match(lowered):
        return AGAINST_COLOR
    if lowered == 'abstain':
        return ABSTAIN_COLOR
    return CHOICE_PALETTE[abs(_string_hash(lowered)) % len(CHOICE_PALETTE)]


@dataclasses.dataclass(frozen=True)
class DisplaySegment:
    '''A part of a result bar.

    :param index: 0-based choice index.
    :param label: Choice label.
    :param color: Colour of the choice.
    :param width: Width of the segment in percent of the whole bar.
    :param voting_power: Aggregated power behind the segment.
    '''
    index: int
    label: str
    color: str
    width: float
    voting_power: Number


@dataclasses.dataclass(frozen=True)
class VoteSegment:
    '''Voting power of one vote (or a group of small votes) in a choice bar.'''
    voting_power: Number
    is_aggregated: bool = False


def display_segments(results: Any) -> List[DisplaySegment]:
    '''Split a result bar into per-choice segments.

    Widths are relative to the sum of aggregated power across choices, so
    they sum to 100 (up to floating point error), or the list is empty if no
    power was aggregated. Choices keep their proposal order; choices without
    power get no segment.
    '''
    if getattr(results, 'hidden', False):
        return []
    bar_total = sum(results.final_results.values())
    if not bar_total:
        return []
    return [
        DisplaySegment(
            index=index,
            label=results.choices[index],
            color=results.choice_colors[index],
            width=float(govtally.util.percentage(power, bar_total)),
            voting_power=power,
        )
        for index, power in sorted(results.final_results.items())
        if power > 0
    ]


def vote_segments(results: Any,
                  min_visible_width: Number = MIN_VISIBLE_WIDTH_PERCENT,
                  ) -> Dict[int, List[VoteSegment]]:
    '''Split every choice bar into per-vote segments.

    Needs results processed with the individual votes. Votes are taken in
    decreasing order of power; each vote's share of a choice becomes its own
    segment if it is at least ``min_visible_width`` percent of the total
    voting power. Smaller shares are merged into a single aggregated segment
    at the end of each choice's list.

    :returns: Lists of segments keyed by every 0-based choice index.
    '''
    segments = {index: [] for index in range(len(results.choices))}
    if getattr(results, 'hidden', False) or not results.total_voting_power:
        return segments
    aggregated = {index: 0 for index in segments}
    votes = sorted(
        results.votes or [], key=lambda v: v.voting_power, reverse=True
    )
    for vote in votes:
        for share in vote.choice:
            if share.index not in segments:
                logger.debug('skipping share for unknown choice %d',
                             share.index)
                continue
            power = govtally.util.exact_share(vote.voting_power,
                                              share.weight, 100)
            if power <= 0:
                continue
            width = govtally.util.percentage(power, results.total_voting_power)
            if width >= min_visible_width:
                segments[share.index].append(VoteSegment(power))
            else:
                aggregated[share.index] += power
    for index, power in aggregated.items():
        if power > 0:
            segments[index].append(VoteSegment(power, is_aggregated=True))
    return segments


def visibility_label(proposal: Any) -> Optional[str]:
    '''Return the placeholder text for a hidden-vote proposal.

    None for proposals without hidden voting, ``'Hidden'`` while the scores
    are not final, and a note that results are available once they are.
    '''
    if not proposal.hidden_vote:
        return None
    elif proposal.results_hidden:
        return HIDDEN_LABEL
    else:
        return f'{HIDDEN_LABEL} {RESULTS_AVAILABLE_NOTE}'


def format_choice_text(shares: Sequence[Any], vote_type: Any) -> str:
    '''Describe a vote's choice shares in a single line.

    Weighted and quadratic votes include the percentage given to each
    choice.
    '''
    if not shares:
        return 'Unknown Choice'
    if _splits_power(vote_type):
        return ', '.join(
            f'{round(share.weight)}% for {share.text}' for share in shares
        )
    return ', '.join(share.text for share in shares)


def format_number_with_suffix(value: Number) -> str:
    '''Format voting power compactly, e.g. ``1.5m`` or ``12.3k``.'''
    value = float(value)
    if value >= 1_000_000:
        return f'{value / 1_000_000:.1f}m'
    elif value >= 1_000:
        return f'{value / 1_000:.1f}k'
    else:
        return f'{value:.2f}'


def format_voter(address: str) -> str:
    '''Shorten an Ethereum address to ``0x1234...abcd``; keep other names.'''
    if _ADDRESS_PATTERN.match(address):
        return f'{address[:6]}...{address[-4:]}'
    return address


def _splits_power(vote_type: Any) -> bool:
    try:
        return VoteType.parse(vote_type) in WEIGHT_DISTRIBUTIONS
    except UnknownVoteTypeError:
        return False
