"""A commandline tool for quick tallying of proposal votes.

Reads a JSON export of a proposal with its votes and prints the aggregated
voting power per choice, the winner and the quorum status.
"""

import argparse
import io
import json
import logging
import sys
import warnings
from typing import Any

import govtally.display
import govtally.io.snapshot
import govtally.results
import govtally.system
import govtally.util
from govtally.io.core import ProposalData
from govtally.results import ProcessedResults, ProcessingConfig

argparser = argparse.ArgumentParser(
    description=__doc__,
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
argparser.add_argument(
    '-i', '--input-file',
    type=argparse.FileType('r', encoding='utf8'),
    help='file to load the proposal export from',
)
argparser.add_argument(
    '-I', '--use-stdin',
    action='store_true',
    help='load the proposal export from standard input',
)
argparser.add_argument(
    '-b', '--index-base',
    type=int,
    default=1,
    help='number of the first choice in vote choices',
)
argparser.add_argument(
    '-r', '--runoff',
    action='store_true',
    help='also count the votes by instant runoff (for ranked-choice votes)',
)
argparser.add_argument(
    '-e', '--exact',
    action='store_true',
    help='read fractional voting power exactly, as rational numbers',
)
argparser.add_argument(
    '-j', '--json-output',
    action='store_true',
    help='print the full processed results as JSON instead of a table',
)
argparser.add_argument(
    '-v', '--verbose',
    action='store_true',
    help='show all processing log messages and other info',
)
argparser.add_argument(
    '-q', '--quiet',
    action='store_true',
    help='do not show any processing log messages or other info',
)


def main(input_file: io.TextIOBase,
         use_stdin: bool = False,
         index_base: int = 1,
         runoff: bool = False,
         exact: bool = False,
         json_output: bool = False,
         verbose: bool = False,
         quiet: bool = False,
         ) -> None:
    logging.basicConfig(
        level=(
            logging.DEBUG if verbose
            else (logging.WARNING if quiet else logging.INFO)
        ),
        format='%(levelname)-10s %(message)s'
    )
    if use_stdin:
        input_file = sys.stdin
    data = govtally.io.snapshot.load(input_file, exact=exact)
    if not data.votes:
        warnings.warn('no votes in the export, results will be empty')
    config = ProcessingConfig(
        with_votes=json_output,
        with_timeseries=json_output,
        index_base=index_base,
        total_delegated_vp=data.total_delegated_vp,
    )
    results = govtally.results.process_results(
        data.proposal, data.votes, config
    )
    if json_output:
        print(json.dumps(results.to_dict(), indent=2))
        return
    show_header(data)
    if results.hidden:
        print(results.label)
        return
    show_results(results)
    if runoff:
        show_runoff(data, index_base)


def show_header(data: ProposalData) -> None:
    proposal = data.proposal
    system = govtally.system.get_system(proposal.vote_type)
    print()
    print(f'Proposal {proposal.title or proposal.id}')
    print(f'Counting {len(data.votes)} votes as {system.name}')
    print()


def show_results(results: ProcessedResults) -> None:
    """Show the per-choice table, winner, quorum and majority status."""
    if not results.choices:
        print('No choices to vote for')
        return
    n_just_chars = len(max(results.choices, key=len))
    shares = {
        segment.index: segment.width
        for segment in results.display_segments()
    }
    for index, label in enumerate(results.choices):
        power = results.final_results.get(index, 0)
        print(
            label.ljust(n_just_chars),
            ' ',
            govtally.display.format_number_with_suffix(power).rjust(10),
            f'{shares.get(index, 0):6.2f} %',
        )
    print()
    total = govtally.display.format_number_with_suffix(
        results.total_voting_power
    )
    print(f'Total voting power: {total}')
    print(f'Winner: {_format_winner(results.winner)}'
          f' ({float(results.winning_percentage):.2f} %)')
    if results.quorum is not None:
        status = 'reached' if results.quorum_reached else 'not reached'
        quorum_power = govtally.display.format_number_with_suffix(
            results.quorum_power
        )
        quorum = govtally.display.format_number_with_suffix(results.quorum)
        print(f'Quorum {status}: {quorum_power} of {quorum}')
    if results.majority_support is not None:
        print('Majority support:',
              'yes' if results.majority_support else 'no')


def show_runoff(data: ProposalData, index_base: int) -> None:
    result = govtally.results.instant_runoff(
        data.proposal, data.votes, index_base=index_base
    )
    choices = data.proposal.choices
    print()
    print(f'Instant runoff over {len(result.rounds)} rounds')
    for i, runoff_round in enumerate(result.rounds, start=1):
        totals = ', '.join(
            f'{choices[index]}:'
            f' {govtally.display.format_number_with_suffix(n_votes)}'
            for index, n_votes in runoff_round.counts.items()
        )
        print(f'{i:>3}  {totals}')
        if runoff_round.eliminated:
            eliminated = ', '.join(
                choices[index] for index in runoff_round.eliminated
            )
            print(f'     eliminated: {eliminated}')
    if result.winner is None:
        winner = None
    elif isinstance(result.winner, govtally.util.Tie):
        winner = govtally.util.Tie(choices[i] for i in result.winner)
    else:
        winner = choices[result.winner]
    print(f'Runoff winner: {_format_winner(winner)}')


def _format_winner(winner: Any) -> str:
    if winner is None:
        return 'none'
    elif isinstance(winner, govtally.util.Tie):
        return 'tie between ' + ', '.join(sorted(winner))
    else:
        return str(winner)


if __name__ == '__main__':
    args = argparser.parse_args()
    if not args.input_file and not args.use_stdin:
        argparser.print_usage()
    else:
        main(**vars(args))
