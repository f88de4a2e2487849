import sys
import os
import io
from datetime import datetime, timezone
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import govtally.io.core
import govtally.io.snapshot
import govtally.results
import govtally.util
from govtally.proposal import Proposal, Vote, VoteType

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')


def load_example(**kwargs):
    path = os.path.join(DATA_DIR, 'weighted_proposal.json')
    with open(path, encoding='utf8') as infile:
        return govtally.io.snapshot.load(infile, **kwargs)


def test_load_proposal():
    proposal = load_example().proposal
    assert proposal.id == '0x6f1e3a'
    assert proposal.dao_id == 'example-dao'
    assert proposal.vote_type is VoteType.WEIGHTED
    assert proposal.choices[1] == 'Education'
    assert proposal.quorum == 1000
    assert proposal.quorum_choices == [0, 1, 2, 3]
    assert proposal.scores_final
    assert proposal.start_at == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


def test_load_votes():
    data = load_example()
    assert [vote.voting_power for vote in data.votes] == [800, 400, 100.5, 5000]
    assert data.votes[0].choice == {'1': 3, '2': 1}
    assert data.votes[0].reason == 'tooling first'
    assert data.votes[0].proposal_id == '0x6f1e3a'
    assert data.votes[2].created_at == datetime(
        2024, 5, 3, 15, tzinfo=timezone.utc
    )
    assert data.total_delegated_vp == 250000


def test_load_exact():
    data = load_example(exact=True)
    assert data.votes[2].voting_power == Fraction(201, 2)


def test_loaded_results():
    data = load_example(exact=True)
    results = govtally.results.process_results(data.proposal, data.votes)
    assert results.final_results == {
        0: 600, 1: 600, 2: Fraction(201, 4), 3: Fraction(201, 4),
    }
    assert results.total_voting_power == Fraction(2601, 2)
    assert results.winner == govtally.util.Tie(['Developer tooling', 'Education'])
    assert results.quorum_reached


def test_minimal_export():
    data = govtally.io.snapshot.loads(
        '{"proposal": {"id": 5, "choices": ["Yes", "No"]}}'
    )
    assert data.proposal.vote_type is VoteType.BASIC
    assert data.proposal.scores_state == 'unknown'
    assert data.votes == []
    assert data.total_delegated_vp is None


@pytest.mark.parametrize('text', [
    'not json',
    '[]',
    '{"votes": []}',
    '{"proposal": {"choices": ["A"]}}',
    '{"proposal": {"id": 1, "choices": "A"}}',
    '{"proposal": {"id": 1, "startAt": "yesterday"}}',
    '{"proposal": {"id": 1, "metadata": {"quorumChoices": [-1]}}}',
    '{"proposal": {"id": 1}, "votes": [{"voterAddress": "x", "choice": 1}]}',
    '{"proposal": {"id": 1}, "votes": [{"voterAddress": "x", "choice": 1,'
    ' "votingPower": "lots"}]}',
    '{"proposal": {"id": 1}, "votes": [{"voterAddress": "x", "choice": 1,'
    ' "votingPower": true}]}',
])
def test_invalid(text):
    with pytest.raises(govtally.io.core.ParseError):
        govtally.io.snapshot.loads(text)


def test_dump_load():
    proposal = Proposal(
        id='p1',
        choices=['For', 'Against'],
        vote_type='single-choice',
        quorum=10,
        quorum_choices=[0],
        start_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    votes = [
        Vote('0xa', 1, 5, created_at=datetime(2024, 5, 2, tzinfo=timezone.utc)),
        Vote('0xb', '2', 7, reason='no'),
    ]
    text = govtally.io.snapshot.dumps(proposal, votes, total_delegated_vp=99)
    data = govtally.io.snapshot.loads(text)
    assert data.proposal == proposal
    assert [(v.voter_address, v.choice, v.voting_power) for v in data.votes] \
        == [('0xa', 1, 5), ('0xb', '2', 7)]
    assert data.votes[0].created_at == votes[0].created_at
    assert data.votes[1].reason == 'no'
    assert data.total_delegated_vp == 99


def test_dump_normalized_choices():
    proposal = Proposal(id='p', choices=['A', 'B'], vote_type='weighted')
    votes = [Vote('0xa', {1: 1, '2': 3}, 4), Vote('0xb', [1], 1)]
    out = io.StringIO()
    with pytest.warns(UserWarning):
        govtally.io.snapshot.dump(out, proposal, votes, normalize_choices=True)
    data = govtally.io.snapshot.loads(out.getvalue())
    assert data.votes[0].choice == {'1': 1, '2': 3}
    assert data.votes[1].choice == [1]
