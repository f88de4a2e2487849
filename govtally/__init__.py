"""Govtally - a library for tallying DAO governance proposal votes.

Govtally turns a proposal record and its raw votes, as exported by
governance indexers, into results ready to be displayed.

Tallying a proposal involves the following steps:

-   Normalizing the raw vote choices into ballots. The ``vote`` module
    contains the parsers for the different ballot types (single choice,
    approval, ranked choice, weighted and quadratic) and rejects malformed
    votes.
-   Allocating the voting power of the ballots to the proposal's choices.
    This is the task of the converters in the ``convert`` module; the
    ``system`` module pairs them with the parsers for each vote type.
-   Aggregating the results, determining the winner, quorum and majority
    status. The :func:`process_results` function of the ``results`` module
    does all of this, also producing the time series from the ``timeseries``
    module for trend charts.

The ``display`` module turns the processed results into chart segments,
colours and labels; the ``runoff`` module performs a full instant-runoff
count of ranked-choice votes.
"""
