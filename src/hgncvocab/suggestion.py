"""
Scored phenotype suggestions.

Equality and ordering are separate:

- ``suggestions_equal`` looks only at the identifier (both must be present),
- ``compare_by_score`` looks only at the score (ascending), and treats a
  missing right-hand side as equal.

The two do not agree with each other: suggestions with different ids and the
same score compare as 0 yet are not equal, and the same id with different
scores is equal yet compares as -1/1. Sort with ``score_key``.
"""

from __future__ import annotations

import functools
import typing
from dataclasses import dataclass

import hpotk


@dataclass(frozen=True, eq=False)
class SuggestedPhenotype:
    """
    One candidate produced by a ranking step.

    Attributes:
        id: Term identifier (e.g. "HP:0001250"); may be None.
        name: Display name; may be None.
        score: Ranking score.
    """

    id: typing.Optional[str]
    name: typing.Optional[str]
    score: float

    @classmethod
    def from_term(cls, term: hpotk.model.Identified, score: float) -> SuggestedPhenotype:
        """Build a suggestion from an hpotk term (anything with `identifier` and `name`)."""
        return cls(id=term.identifier.value, name=getattr(term, "name", None), score=float(score))

    @property
    def term_id(self) -> typing.Optional[hpotk.TermId]:
        """The id as an hpotk TermId, or None when it is absent or not a CURIE."""
        if self.id is None:
            return None
        try:
            return hpotk.TermId.from_curie(self.id)
        except ValueError:
            return None

    def compare_to(self, other: typing.Optional[SuggestedPhenotype]) -> int:
        return compare_by_score(self, other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuggestedPhenotype):
            return NotImplemented
        return suggestions_equal(self, other)

    def __hash__(self) -> int:
        # null-id suggestions only ever equal themselves
        return hash(self.id) if self.id is not None else object.__hash__(self)


def suggestions_equal(a: typing.Optional[SuggestedPhenotype], b: object) -> bool:
    """
    True if ``a`` and ``b`` are the same object, or both are suggestions with
    present and equal ids. Names and scores are ignored.
    """
    if a is b:
        return a is not None
    if not isinstance(a, SuggestedPhenotype) or not isinstance(b, SuggestedPhenotype):
        return False
    if a.id is None or b.id is None:
        return False
    return str(a.id) == str(b.id)


def compare_by_score(a: SuggestedPhenotype, b: typing.Optional[SuggestedPhenotype]) -> int:
    """
    -1 if ``a`` scores lower than ``b``, 1 if higher, 0 on equal scores.
    A missing ``b`` compares as 0.
    """
    if b is None:
        return 0
    if a.score < b.score:
        return -1
    if a.score > b.score:
        return 1
    return 0


score_key = functools.cmp_to_key(compare_by_score)
