import sys
import os
from datetime import datetime, timezone

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import govtally.proposal
from govtally.proposal import Proposal, VoteType, UnknownVoteTypeError


def test_vote_type_parse():
    assert VoteType.parse('ranked-choice') is VoteType.RANKED_CHOICE
    assert VoteType.parse(VoteType.BASIC) is VoteType.BASIC
    with pytest.raises(UnknownVoteTypeError):
        VoteType.parse('borda')


def test_proposal_normalizes_fields():
    proposal = Proposal(id=1, choices=['Yes', 2], vote_type='approval')
    assert proposal.choices == ['Yes', '2']
    assert proposal.vote_type is VoteType.APPROVAL
    assert proposal.n_choices == 2


def test_proposal_keeps_unknown_vote_type():
    proposal = Proposal(id=1, choices=['A'], vote_type='borda')
    assert proposal.vote_type == 'borda'


@pytest.mark.parametrize('hidden_vote, scores_state, hidden', [
    (False, 'pending', False),
    (False, 'final', False),
    (True, 'pending', True),
    (True, 'unknown', True),
    (True, 'final', False),
])
def test_results_hidden(hidden_vote, scores_state, hidden):
    proposal = Proposal(
        id=1, choices=['A', 'B'],
        hidden_vote=hidden_vote, scores_state=scores_state,
    )
    assert proposal.results_hidden == hidden


def test_is_active():
    proposal = Proposal(
        id=1, choices=['A'],
        start_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        end_at=datetime(2024, 5, 8, tzinfo=timezone.utc),
    )
    assert not proposal.is_active(datetime(2024, 4, 30, tzinfo=timezone.utc))
    assert proposal.is_active(datetime(2024, 5, 3, tzinfo=timezone.utc))
    assert not proposal.is_active(datetime(2024, 5, 8, tzinfo=timezone.utc))
