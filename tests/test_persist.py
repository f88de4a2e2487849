import sys
import os
import json
from datetime import datetime, timezone
from decimal import Decimal
from fractions import Fraction

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import govtally.persist
import govtally.system
import govtally.vote
from govtally.proposal import VoteType
from govtally.results import ProcessingConfig


@pytest.mark.parametrize('system', list(govtally.system.SYSTEMS.values()))
def test_system_roundtrip(system):
    serialized = govtally.persist.to_dict(system)
    restored = govtally.persist.from_dict(json.loads(json.dumps(serialized)))
    assert restored.to_dict() == serialized


def test_config_roundtrip_exact_types():
    config = ProcessingConfig(
        accumulate_threshold=Decimal('1000.5'),
        total_delegated_vp=Fraction(7, 3),
    )
    restored = govtally.persist.from_dict(
        json.loads(json.dumps(config.to_dict()))
    )
    assert restored.accumulate_threshold == Decimal('1000.5')
    assert isinstance(restored.accumulate_threshold, Decimal)
    assert restored.total_delegated_vp == Fraction(7, 3)


def test_checker_bounds_serialized():
    parser = govtally.vote.ApprovalBallotParser(vote_count_bounds=(1, 3))
    restored = govtally.persist.from_dict(parser.to_dict())
    assert restored.vote_count_bounds == (1, 3)


@pytest.mark.parametrize('value', [
    VoteType.QUADRATIC,
    datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    (1, 2),
    frozenset([3]),
    {1: 'a', 2: 'b'},
])
def test_value_roundtrip(value):
    serialized = govtally.persist.serialize_value(value)
    restored = govtally.persist.deserialize_value(
        json.loads(json.dumps(serialized))
    )
    assert restored == value
    assert type(restored) is type(value)


@pytest.mark.parametrize('value', [
    {'no_class': 1},
    {'class': '.bad'},
    {'class': 'os.system'},
    {'class': 'govtally.vote.NoSuchParser'},
    {'class': 'govtally.nosuchmodule.Parser'},
    'text',
])
def test_from_dict_invalid(value):
    with pytest.raises(ValueError):
        govtally.persist.from_dict(value)


@pytest.mark.parametrize('value, plain', [
    (Fraction(1, 4), 0.25),
    (Decimal('2.5'), 2.5),
    (VoteType.BASIC, 'basic'),
    (datetime(2024, 1, 2, 3, 4, 5), '2024-01-02T03:04:05'),
    ({1: Fraction(1, 2)}, {'1': 0.5}),
    (frozenset([3, 1]), [1, 3]),
    ((1, None), [1, None]),
    (7, 7),
])
def test_plain_value(value, plain):
    assert govtally.persist.plain_value(value) == plain


def test_plain_value_unknown():
    with pytest.raises(ValueError):
        govtally.persist.plain_value(object())


def test_plain_dict_with_type_key_kept():
    value = {'type': 'for', 'weight': 2}
    assert govtally.persist.deserialize_value(value) == value


def test_weighted_ballot_roundtrip():
    ballot = {0: Fraction(1, 3), 2: Decimal('0.5')}
    serialized = json.loads(json.dumps(govtally.persist.serialize_value(ballot)))
    assert govtally.persist.deserialize_value(serialized) == ballot


def test_callable_not_serialized():
    with pytest.raises(ValueError):
        govtally.persist.serialize_value(len)
