import sys
import os
import logging

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import govtally.system
import govtally.convert
import govtally.persist
from govtally.proposal import VoteType


def test_every_vote_type_has_system():
    assert set(govtally.system.SYSTEMS) == set(VoteType)


@pytest.mark.parametrize('vote_type, converter_class', [
    ('single-choice', govtally.convert.SingleToPower),
    ('basic', govtally.convert.SingleToPower),
    ('approval', govtally.convert.ApprovalToPower),
    ('weighted', govtally.convert.WeightedToPower),
    ('quadratic', govtally.convert.QuadraticToPower),
    ('ranked-choice', govtally.convert.RankedToFirstPreference),
])
def test_get_system(vote_type, converter_class):
    system = govtally.system.get_system(vote_type)
    assert type(system.converter) is converter_class


def test_unknown_falls_back_to_basic(caplog):
    with caplog.at_level(logging.WARNING, logger='govtally.system'):
        system = govtally.system.get_system('copeland')
    assert system is govtally.system.SYSTEMS[VoteType.BASIC]
    assert 'copeland' in caplog.text


def test_approval_shares_total_power():
    assert govtally.system.get_system('approval').share_of_total_power
    assert not govtally.system.get_system('weighted').share_of_total_power


def test_with_index_base():
    system = govtally.system.get_system('basic')
    zero_based = system.with_index_base(0)
    assert zero_based.parse(0, 2) == 0
    assert system.parse(1, 2) == 0
    assert system.parser.index_base == 1
    assert system.with_index_base(1) is system


def test_system_serialization():
    system = govtally.system.get_system('approval')
    restored = govtally.persist.from_dict(govtally.persist.to_dict(system))
    assert restored.name == system.name
    assert restored.share_of_total_power
    assert isinstance(restored.converter, govtally.convert.ApprovalToPower)
    assert restored.parse([1, 2], 2) == frozenset([0, 1])
