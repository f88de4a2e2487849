'''Ballot types, raw choice parsers and vote validation errors.

The indexers store a vote's choice in a shape that depends on the vote type.
The parsers in this module normalize it into a ballot that refers to the
proposal's choices by 0-based index:

-   **Single** ballots (``single-choice`` and ``basic`` vote types) - the
    voter selects one choice. Represented by the index itself.
-   **Approval** ballots - the voter selects a number of choices and supports
    them equally. Represented by a frozen set of indices.
-   **Ranked** ballots - the voter orders a number of choices by preference.
    Represented by a tuple of indices, most preferred first.
-   **Weighted** ballots (``weighted`` and ``quadratic`` vote types) - the
    voter distributes their voting power among choices. Represented by a dict
    mapping indices to positive weights.

If a raw choice cannot be normalized, the parsers raise a subclass of
:class:`VoteError`. Result processing catches these errors and leaves the
offending vote out of the count, so that a single malformed record never
prevents the results from being computed. A vote referring to an index
outside the proposal's choices is rejected as a whole.
'''

import abc
from typing import Any, Tuple, FrozenSet, Dict, Optional, Union
from numbers import Number

from govtally.persist import simple_serialization


class VoteError(Exception, metaclass=abc.ABCMeta):
    '''A vote cannot be counted for the proposal.'''
    pass


class VoteTypeError(VoteError):
    '''A raw choice has a shape unusable for the vote type.

    E.g. a list of indices for a single-choice proposal.

    :param value: Raw choice detected as invalid.
    :param expected: Description of the shape that was expected.
    '''
    def __init__(self, value: Any, expected: Optional[str] = None):
        self.value = value
        self.expected = expected
        message = f'invalid vote choice: {value!r}'
        if expected:
            message += f', must be {expected}'
        super().__init__(message)


class ChoiceIndexError(VoteError):
    '''A vote refers to a choice the proposal does not have.

    :param index: The offending 0-based index.
    :param n_choices: Number of choices of the proposal.
    '''
    def __init__(self, index: int, n_choices: int):
        self.index = index
        self.n_choices = n_choices
        super().__init__(
            f'choice index {index} out of range for {n_choices} choices'
        )


class VoteMagnitudeError(VoteError):
    '''A ballot is empty, too large or carries no weight.

    :param value: Size of the ballot that was found to be invalid.
    :param min_value: Minimum value permissible in the context.
    :param max_value: Maximum value permissible in the context.
    :param value_name: Role of the ballot size (e.g. number of approved
        choices, total weight...)
    '''
    def __init__(self,
                 value: Number,
                 min_value: Optional[Number] = None,
                 max_value: Optional[Number] = None,
                 value_name: str = 'count',
                 ):
        self.value = value
        self.min_value = min_value
        self.max_value = max_value
        message = f'invalid vote {value_name}: {value}'
        bounds = []
        if min_value is not None:
            bounds.append(f'>={min_value}')
        if max_value is not None:
            bounds.append(f'<={max_value}')
        if bounds:
            message += ', must be ' + ', '.join(bounds)
        super().__init__(message)


SingleBallotType = int
ApprovalBallotType = FrozenSet[int]
RankedBallotType = Tuple[int, ...]
WeightedBallotType = Dict[int, Number]
AnyBallotType = Union[
    SingleBallotType, ApprovalBallotType, RankedBallotType, WeightedBallotType
]

IntBoundsTupleType = Tuple[Optional[int], Optional[int]]


class VoteMagnitudeChecker:
    '''A helper class to check if a value is in a specified range.

    :param bounds: A tuple with lower and upper bounds (inclusive) for the
        value to be checked. None means the respective bound is not checked.
    :param value_name: Name of the value to be checked (included in the error
        message).
    '''
    def __init__(self,
                 bounds: IntBoundsTupleType = (None, None),
                 value_name: str = 'count',
                 ):
        self.min_value, self.max_value = bounds
        self.value_name = value_name

    def is_valid(self, value: Number) -> bool:
        '''Return True if the value is within the given range.'''
        return (
            (self.min_value is None or value >= self.min_value)
            and (self.max_value is None or value <= self.max_value)
        )

    def check(self, value: Number) -> None:
        '''Check if the value is within the given range.

        :raises VoteMagnitudeError: If the value is outside the given
            range.
        '''
        if not self.is_valid(value):
            raise VoteMagnitudeError(
                value, self.min_value, self.max_value, self.value_name
            )


def parse_index(raw: Any, n_choices: int, index_base: int = 1) -> int:
    '''Convert a raw choice number to a 0-based index within the proposal.

    Accepts integers and strings holding integers (as found in JSON object
    keys). Booleans and fractional numbers are not indices.

    :raises VoteTypeError: If the value is not an integer.
    :raises ChoiceIndexError: If the index is outside the proposal's choices.
    '''
    if isinstance(raw, bool):
        raise VoteTypeError(raw, 'an integer choice number')
    if isinstance(raw, str):
        try:
            raw = int(raw.strip())
        except ValueError as e:
            raise VoteTypeError(raw, 'an integer choice number') from e
    elif isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    if not isinstance(raw, int):
        raise VoteTypeError(raw, 'an integer choice number')
    index = raw - index_base
    if not 0 <= index < n_choices:
        raise ChoiceIndexError(index, n_choices)
    return index


class BallotParser(metaclass=abc.ABCMeta):
    '''Normalize a raw choice into a ballot of 0-based choice indices.

    Base class, not intended for direct use.

    :param index_base: Number of the first choice in raw choices; 1 for the
        Snapshot and governor conventions.
    '''
    def __init__(self, index_base: int = 1):
        self.index_base = index_base

    @abc.abstractmethod
    def parse(self, raw: Any, n_choices: int) -> AnyBallotType:
        '''Normalize the raw choice.

        :raises VoteError: If the raw choice cannot be counted.
        '''
        raise NotImplementedError

    def _index(self, raw: Any, n_choices: int) -> int:
        return parse_index(raw, n_choices, self.index_base)


def _as_sequence(raw: Any) -> list:
    if raw is None:
        return []
    elif isinstance(raw, (list, tuple)):
        return list(raw)
    elif isinstance(raw, (set, frozenset)):
        return sorted(raw)
    else:
        return [raw]


@simple_serialization
class SingleBallotParser(BallotParser):
    '''Parse a single choice.

    A one-element list is accepted as well since some indexers wrap the
    choice that way.
    '''
    def parse(self, raw: Any, n_choices: int) -> SingleBallotType:
        if isinstance(raw, (list, tuple)):
            if len(raw) != 1:
                raise VoteTypeError(raw, 'a single choice')
            raw = raw[0]
        elif hasattr(raw, 'items'):
            raise VoteTypeError(raw, 'a single choice')
        return self._index(raw, n_choices)


@simple_serialization
class ApprovalBallotParser(BallotParser):
    '''Parse a set of approved choices.

    Repeated indices collapse into one approval.

    :param vote_count_bounds: A tuple with lower and upper bounds
        (inclusive) for the number of choices any ballot can approve.
        The lower bound defaults to one; an empty approval is not a vote.
    '''
    def __init__(self,
                 index_base: int = 1,
                 vote_count_bounds: IntBoundsTupleType = (1, None),
                 ):
        super().__init__(index_base)
        self.vote_count_bounds = vote_count_bounds
        self._count_checker = VoteMagnitudeChecker(vote_count_bounds)

    def parse(self, raw: Any, n_choices: int) -> ApprovalBallotType:
        if hasattr(raw, 'items'):
            raise VoteTypeError(raw, 'a list of choices')
        ballot = frozenset(
            self._index(item, n_choices) for item in _as_sequence(raw)
        )
        self._count_checker.check(len(ballot))
        return ballot


@simple_serialization
class RankedBallotParser(BallotParser):
    '''Parse an ordering of choices, most preferred first.

    When a choice is ranked more than once, its best rank is kept.
    '''
    def parse(self, raw: Any, n_choices: int) -> RankedBallotType:
        if hasattr(raw, 'items'):
            raise VoteTypeError(raw, 'a list of choices')
        ranking = []
        for item in _as_sequence(raw):
            index = self._index(item, n_choices)
            if index not in ranking:
                ranking.append(index)
        if not ranking:
            raise VoteMagnitudeError(0, 1, None, 'ranking length')
        return tuple(ranking)


@simple_serialization
class WeightedBallotParser(BallotParser):
    '''Parse a distribution of weights among choices.

    The raw choice is a mapping of choice numbers to weights. A plain choice
    number is accepted and means the whole weight goes to that choice.
    Zero weights are dropped; negative weights invalidate the ballot.
    '''
    def parse(self, raw: Any, n_choices: int) -> WeightedBallotType:
        if not hasattr(raw, 'items'):
            if isinstance(raw, (list, tuple, set, frozenset)) or raw is None:
                raise VoteTypeError(raw, 'a mapping of choices to weights')
            return {self._index(raw, n_choices): 1}
        weights = {}
        for key, weight in raw.items():
            index = self._index(key, n_choices)
            if isinstance(weight, bool) or not isinstance(weight, Number):
                raise VoteTypeError(weight, 'a numeric weight')
            if weight < 0:
                raise VoteMagnitudeError(weight, 0, None, 'weight')
            if weight > 0:
                weights[index] = weights.get(index, 0) + weight
        if not weights:
            raise VoteMagnitudeError(0, None, None, 'total weight')
        return weights


def encode_choice(ballot: AnyBallotType, index_base: int = 1) -> Any:
    '''Convert a ballot back into the raw choice form stored by indexers.

    The inverse of parsing: single ballots become a choice number, approval
    and ranked ballots a list of choice numbers and weighted ballots
    a mapping of choice number strings to weights.
    '''
    if isinstance(ballot, int):
        return ballot + index_base
    elif isinstance(ballot, frozenset):
        return [index + index_base for index in sorted(ballot)]
    elif isinstance(ballot, tuple):
        return [index + index_base for index in ballot]
    elif hasattr(ballot, 'items'):
        return {
            str(index + index_base): weight
            for index, weight in sorted(ballot.items())
        }
    else:
        raise VoteTypeError(ballot, 'a parsed ballot')
