'''Time-bucketed voting power for trend charts.

Votes are bucketed by power rather than by wall-clock interval: a large vote
gets a point of its own, while small votes for the same choice accumulate
until together they are worth a point. This keeps the number of points low
for proposals with many small voters without hiding the whales.
'''

import dataclasses
import logging
from datetime import datetime
from numbers import Number
from typing import Dict, Iterable, List, Optional, Tuple


logger = logging.getLogger(__name__)

ACCUMULATE_VOTING_POWER_THRESHOLD = 50000

Contribution = Tuple[datetime, Dict[int, Number]]


@dataclasses.dataclass
class TimeSeriesPoint:
    '''Voting power added for some choices at a moment.

    :param timestamp: Time of the (last) vote contained in the point.
    :param values: Power added per 0-based choice index.
    '''
    timestamp: datetime
    values: Dict[int, Number]


def bucket_by_power(contributions: Iterable[Contribution],
                    n_choices: int,
                    threshold: Number = ACCUMULATE_VOTING_POWER_THRESHOLD,
                    ) -> List[TimeSeriesPoint]:
    '''Bucket per-vote contributions into chart points.

    :param contributions: Pairs of vote timestamps and the vote's power per
        choice. They need not be sorted.
    :param n_choices: Number of choices of the proposal. Contributions to
        indices outside the range are ignored.
    :param threshold: Power at which a contribution (or an accumulation of
        smaller ones) becomes a point.
    :returns: Points in chronological order of their creation. Remaining
        accumulated power is flushed into a final point stamped with the last
        accumulated vote's time.
    '''
    points = []
    accumulated = {index: 0 for index in range(n_choices)}
    last_accumulated: Optional[datetime] = None
    for timestamp, values in sorted(contributions, key=lambda c: c[0]):
        for index, power in values.items():
            if not 0 <= index < n_choices:
                continue
            if power >= threshold:
                points.append(TimeSeriesPoint(timestamp, {index: power}))
            else:
                accumulated[index] += power
                last_accumulated = timestamp
                if accumulated[index] >= threshold:
                    points.append(
                        TimeSeriesPoint(timestamp, {index: accumulated[index]})
                    )
                    accumulated[index] = 0
    if last_accumulated is not None:
        remaining = {
            index: power for index, power in accumulated.items() if power > 0
        }
        if remaining:
            points.append(TimeSeriesPoint(last_accumulated, remaining))
    logger.debug('bucketed votes into %d time series points', len(points))
    return points


def cumulative(points: Iterable[TimeSeriesPoint],
               n_choices: int,
               ) -> Dict[int, List[Tuple[datetime, Number]]]:
    '''Turn bucketed points into running totals per choice.

    :returns: For every choice index, a chronological list of
        (timestamp, total power so far) pairs, one per point.
    '''
    series = {index: [] for index in range(n_choices)}
    running = {index: 0 for index in range(n_choices)}
    for point in sorted(points, key=lambda p: p.timestamp):
        for index in range(n_choices):
            running[index] += point.values.get(index, 0)
            series[index].append((point.timestamp, running[index]))
    return series
