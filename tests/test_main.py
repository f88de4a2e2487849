import sys
import os
import io
import json

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import govtally.__main__

DATA_PATH = os.path.join(
    os.path.dirname(__file__), 'io', 'data', 'weighted_proposal.json'
)

RANKED_EXPORT = json.dumps({
    'proposal': {
        'id': 'r1',
        'title': 'Pick a logo',
        'choices': ['Circle', 'Square', 'Triangle'],
        'metadata': {'voteType': 'ranked-choice'},
    },
    'votes': [
        {'voterAddress': '0xa', 'choice': [1, 2], 'votingPower': 4},
        {'voterAddress': '0xb', 'choice': [2], 'votingPower': 3},
        {'voterAddress': '0xc', 'choice': [3, 2], 'votingPower': 2},
    ],
})


def test_table(capsys):
    with open(DATA_PATH, encoding='utf8') as infile:
        govtally.__main__.main(infile, quiet=True)
    out = capsys.readouterr().out
    assert 'Allocate the community grants budget' in out
    assert 'Weighted' in out
    assert 'Developer tooling' in out
    assert 'tie between Developer tooling, Education' in out
    assert 'Quorum reached' in out


def test_json_output(capsys):
    with open(DATA_PATH, encoding='utf8') as infile:
        govtally.__main__.main(infile, json_output=True, quiet=True)
    data = json.loads(capsys.readouterr().out)
    assert data['total_voting_power'] == pytest.approx(1300.5)
    assert len(data['votes']) == 3
    assert data['total_delegated_vp'] == 250000


def test_runoff(capsys):
    govtally.__main__.main(io.StringIO(RANKED_EXPORT), runoff=True, quiet=True)
    out = capsys.readouterr().out
    assert 'Winner: Circle' in out
    assert 'eliminated: Triangle' in out
    assert 'Runoff winner: Square' in out


def test_hidden(capsys):
    export = json.loads(RANKED_EXPORT)
    export['proposal']['metadata']['hiddenVote'] = True
    govtally.__main__.main(io.StringIO(json.dumps(export)), quiet=True)
    out = capsys.readouterr().out
    assert 'Hidden' in out
    assert 'Winner' not in out


def test_no_votes_warns(capsys):
    export = '{"proposal": {"id": 1, "choices": ["A", "B"]}}'
    with pytest.warns(UserWarning):
        govtally.__main__.main(io.StringIO(export), quiet=True)
    assert 'Winner: none' in capsys.readouterr().out
