"""Shared functionality for proposal export I/O. Internal."""

from __future__ import annotations

import dataclasses
import typing
from numbers import Number
from typing import Any, List, Tuple, Callable, Iterable, TextIO, Optional

from govtally.proposal import Proposal, Vote


class ParseError(Exception):
    """An input that is invalid according to the given format was detected."""
    pass


@dataclasses.dataclass
class ProposalData:
    """A container for data returnable from an export file."""
    proposal: Proposal
    votes: List[Vote] = dataclasses.field(default_factory=list)
    total_delegated_vp: Optional[Number] = None


def loaders(line_loader: Callable[..., ProposalData]
            ) -> Tuple[Callable[..., ProposalData], Callable[..., ProposalData]]:
    """Create load() and loads() functions from an iterating function."""
    return_annot = typing.get_type_hints(line_loader).get('return')
    if return_annot is None:
        return_annot = Any

    def load(file: TextIO, **kwargs) -> return_annot:
        return line_loader(file, **kwargs)

    def loads(text: str, **kwargs) -> return_annot:
        return line_loader(iter(text.split('\n')), **kwargs)

    return load, loads


def dumpers(line_dumper: Callable[..., Iterable[str]]
            ) -> Tuple[Callable[..., None], Callable[..., str]]:
    """Create dump() and dumps() functions from a line generator function."""

    def dump(file: TextIO, *args, **kwargs) -> None:
        for line in line_dumper(*args, **kwargs):
            if not line.endswith('\n'):
                line += '\n'
            file.write(line)

    def dumps(*args, **kwargs) -> str:
        return ''.join(
            line + ('' if line.endswith('\n') else '\n')
            for line in line_dumper(*args, **kwargs)
        )

    return dump, dumps
