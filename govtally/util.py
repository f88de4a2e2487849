'''Various utility functions for other modules of govtally.

There should normally be no need to use these functions directly.
'''

import math
import operator
from fractions import Fraction
from decimal import Decimal
from typing import Any, List, Tuple, Dict
from numbers import Number


EXACT_TYPES = (int, Fraction)


def add_dict_to_dict(dict1: Dict[Any, Number],
                     dict2: Dict[Any, Number],
                     ) -> None:
    for key, addition in dict2.items():
        dict1[key] = dict1.get(key, 0) + addition


def sorted_votes(votes: Dict[Any, Number],
                 descending: bool = True,
                 ) -> List[Tuple[Any, Number]]:
    '''Return votes items sorted by value.'''
    return list(sorted(
        votes.items(),
        key=operator.itemgetter(1),
        reverse=descending
    ))


def exact_share(power: Number, part: Number, whole: Number) -> Number:
    '''Return ``power * part / whole``, exactly if the inputs allow it.

    Integer and fractional inputs produce a Fraction (reduced to an int when
    whole). If any input is a Decimal, the share is computed
    the same way and rounded to a Decimal once; other numeric types use their
    own division.
    '''
    if all(isinstance(x, EXACT_TYPES) for x in (power, part, whole)):
        share = Fraction(power) * Fraction(part) / Fraction(whole)
        return share.numerator if share.denominator == 1 else share
    elif any(isinstance(x, Decimal) for x in (power, part, whole)):
        share = Fraction(power) * Fraction(part) / Fraction(whole)
        return Decimal(share.numerator) / Decimal(share.denominator)
    else:
        return power * part / whole


def percentage(part: Number, whole: Number) -> Number:
    '''Return part as a percentage of whole; zero if whole is zero.'''
    if not whole:
        return 0
    return exact_share(part, 100, whole)


def square_root(value: Number) -> Number:
    '''Square root that keeps Decimals decimal and integer squares integral.'''
    if isinstance(value, Decimal):
        return value.sqrt()
    elif isinstance(value, int):
        root = math.isqrt(value)
        if root * root == value:
            return root
    elif isinstance(value, Fraction):
        num_root = math.isqrt(value.numerator)
        den_root = math.isqrt(value.denominator)
        if (num_root * num_root == value.numerator
                and den_root * den_root == value.denominator):
            return Fraction(num_root, den_root)
    return math.sqrt(value)


class Tie(frozenset):
    '''Choices tied for the lead.

    This object, a subclass of ``frozenset``, is produced where several
    choices share the largest amount of voting power and no tiebreaking rule
    applies. It is presented in the result in place of a single winner.
    '''
    @staticmethod
    def any(result: List[Any]) -> bool:
        '''Return True if there is any tie in the list, False otherwise.'''
        return any(isinstance(item, Tie) for item in result)


def get_best(votes: Dict[Any, Number]) -> Any:
    '''Return the key with the highest amount of votes.

    :returns: The leading key, a :class:`Tie` of keys if several share the
        maximum, or None if there are no votes at all.
    '''
    if not votes:
        return None
    sorted_items = sorted_votes(votes)
    top = sorted_items[0][1]
    leaders = [key for key, n_votes in sorted_items if n_votes == top]
    if len(leaders) > 1:
        return Tie(leaders)
    return leaders[0]
