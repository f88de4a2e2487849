"""Read and write JSON proposal exports.

The export is a JSON object with the proposal record under ``proposal`` and
its votes under ``votes``, using the field names of the governance indexers::

    {
        "proposal": {
            "id": "0xabc...",
            "daoId": "arbitrum",
            "title": "Fund the thing",
            "choices": ["For", "Against", "Abstain"],
            "quorum": 100000,
            "startAt": "2024-05-01T12:00:00Z",
            "endAt": "2024-05-08T12:00:00Z",
            "metadata": {
                "voteType": "basic",
                "quorumChoices": [0, 2],
                "hiddenVote": false,
                "scoresState": "final"
            }
        },
        "votes": [
            {
                "voterAddress": "0x123...",
                "choice": 1,
                "votingPower": 1500.5,
                "createdAt": "2024-05-02T08:30:00Z",
                "reason": "LGTM"
            }
        ],
        "totalDelegatedVp": 5000000
    }

Voting power may also be given as a decimal string, as database exports of
numeric columns often do. Timestamps are ISO 8601 strings or Unix epoch
seconds.
"""

import json
import warnings
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from numbers import Number
from typing import Any, Dict, Iterable, List, Optional

import govtally.io.core
import govtally.system
from govtally.proposal import Proposal, Vote, SCORES_UNKNOWN
from govtally.persist import plain_value
from govtally.vote import VoteError, encode_choice


class SnapshotParseError(govtally.io.core.ParseError):
    pass


def load_lines(lines: Iterable[str],
               exact: bool = False,
               ) -> govtally.io.core.ProposalData:
    """Load a proposal export.

    :param lines: Lines of the JSON document.
    :param exact: If True, non-integral numbers are read as fractions to
        keep the arithmetic exact; otherwise, they are floats.
    :raises SnapshotParseError: If the document is not valid JSON or misses
        required fields.
    """
    try:
        data = json.loads(
            '\n'.join(line.rstrip('\n') for line in lines),
            parse_float=(Fraction if exact else float),
        )
    except json.JSONDecodeError as err:
        raise SnapshotParseError(f'invalid JSON: {err}') from err
    if not isinstance(data, dict) or 'proposal' not in data:
        raise SnapshotParseError('export must be an object with a proposal')
    proposal = parse_proposal(data['proposal'])
    votes = [
        parse_vote(record, exact=exact, default_proposal_id=proposal.id)
        for record in data.get('votes') or []
    ]
    total_delegated_vp = data.get('totalDelegatedVp')
    if total_delegated_vp is not None:
        total_delegated_vp = _parse_number(
            total_delegated_vp, 'totalDelegatedVp', exact
        )
    return govtally.io.core.ProposalData(
        proposal=proposal,
        votes=votes,
        total_delegated_vp=total_delegated_vp,
    )


def parse_proposal(record: Dict[str, Any]) -> Proposal:
    """Create a proposal from its export record."""
    if not isinstance(record, dict):
        raise SnapshotParseError(f'invalid proposal record: {record!r}')
    if 'id' not in record:
        raise SnapshotParseError('proposal record must have an id')
    choices = record.get('choices') or []
    if not isinstance(choices, list):
        raise SnapshotParseError(f'invalid proposal choices: {choices!r}')
    metadata = record.get('metadata') or {}
    quorum = record.get('quorum')
    if quorum is not None:
        quorum = _parse_number(quorum, 'quorum', exact=False)
    quorum_choices = metadata.get('quorumChoices') or []
    if not all(_is_index(index) for index in quorum_choices):
        raise SnapshotParseError(f'invalid quorum choices: {quorum_choices!r}')
    return Proposal(
        id=record['id'],
        dao_id=record.get('daoId'),
        title=record.get('title'),
        choices=choices,
        vote_type=metadata.get('voteType') or 'basic',
        quorum=quorum,
        quorum_choices=list(quorum_choices),
        hidden_vote=bool(metadata.get('hiddenVote', False)),
        scores_state=metadata.get('scoresState') or SCORES_UNKNOWN,
        start_at=_parse_timestamp(record.get('startAt'), 'startAt'),
        end_at=_parse_timestamp(record.get('endAt'), 'endAt'),
    )


def parse_vote(record: Dict[str, Any],
               exact: bool = False,
               default_proposal_id: Any = None,
               ) -> Vote:
    """Create a vote from its export record.

    The choice is kept raw; it is validated during result processing.
    """
    if not isinstance(record, dict):
        raise SnapshotParseError(f'invalid vote record: {record!r}')
    for field in ('voterAddress', 'choice', 'votingPower'):
        if field not in record:
            raise SnapshotParseError(f'vote record must have {field}')
    return Vote(
        voter_address=str(record['voterAddress']),
        choice=record['choice'],
        voting_power=_parse_number(record['votingPower'], 'votingPower', exact),
        created_at=_parse_timestamp(record.get('createdAt'), 'createdAt'),
        id=record.get('id'),
        proposal_id=record.get('proposalId', default_proposal_id),
        reason=record.get('reason'),
    )


def dump_lines(proposal: Proposal,
               votes: List[Vote],
               total_delegated_vp: Optional[Number] = None,
               normalize_choices: bool = False,
               index_base: int = 1,
               ) -> Iterable[str]:
    """Dump the proposal and its votes into a JSON export.

    :param normalize_choices: If True, vote choices are validated and
        written in their canonical form (e.g. a weighted choice as a mapping
        of choice number strings). Choices that cannot be parsed are written
        as they are, with a warning.
    :param index_base: Number of the first choice in raw choices.
    """
    data = {'proposal': _dump_proposal(proposal)}
    if normalize_choices:
        system = govtally.system.get_system(
            proposal.vote_type
        ).with_index_base(index_base)
    data['votes'] = []
    for vote in votes:
        choice = vote.choice
        if normalize_choices:
            try:
                ballot = system.parse(choice, proposal.n_choices)
            except VoteError as err:
                warnings.warn(f'vote of {vote.voter_address} kept raw: {err}')
            else:
                choice = encode_choice(ballot, index_base)
        data['votes'].append(_drop_none({
            'id': vote.id,
            'proposalId': vote.proposal_id,
            'voterAddress': vote.voter_address,
            'choice': choice,
            'votingPower': _dump_number(vote.voting_power),
            'createdAt': vote.created_at,
            'reason': vote.reason,
        }))
    if total_delegated_vp is not None:
        data['totalDelegatedVp'] = _dump_number(total_delegated_vp)
    yield from json.dumps(plain_value(data), indent=2).split('\n')


def _dump_proposal(proposal: Proposal) -> Dict[str, Any]:
    return _drop_none({
        'id': proposal.id,
        'daoId': proposal.dao_id,
        'title': proposal.title,
        'choices': list(proposal.choices),
        'quorum': proposal.quorum,
        'startAt': proposal.start_at,
        'endAt': proposal.end_at,
        'metadata': {
            'voteType': proposal.vote_type,
            'quorumChoices': list(proposal.quorum_choices),
            'hiddenVote': proposal.hidden_vote,
            'scoresState': proposal.scores_state,
        },
    })


def _drop_none(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: val for key, val in record.items() if val is not None}


def _dump_number(value: Number) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    return value


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _parse_number(value: Any, field: str, exact: bool) -> Number:
    if isinstance(value, bool):
        raise SnapshotParseError(f'invalid {field}: {value!r}')
    elif isinstance(value, (int, float, Fraction)):
        return value
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation as err:
            raise SnapshotParseError(f'invalid {field}: {value!r}') from err
        if not number.is_finite():
            raise SnapshotParseError(f'invalid {field}: {value!r}')
        if number == number.to_integral_value():
            return int(number)
        return Fraction(number) if exact else float(number)
    else:
        raise SnapshotParseError(f'invalid {field}: {value!r}')


def _parse_timestamp(value: Any, field: str) -> Optional[datetime]:
    if value is None:
        return None
    elif isinstance(value, bool):
        raise SnapshotParseError(f'invalid {field}: {value!r}')
    elif isinstance(value, (int, float, Fraction)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text)
        except ValueError as err:
            raise SnapshotParseError(f'invalid {field}: {value!r}') from err
    else:
        raise SnapshotParseError(f'invalid {field}: {value!r}')


dump, dumps = govtally.io.core.dumpers(dump_lines)
load, loads = govtally.io.core.loaders(load_lines)
