"""
Term similarity.

``SimilarityStrategy`` is the seam a real metric plugs into. The only
implementation today is ``PlaceholderDistance``, which answers
``SENTINEL_DISTANCE`` for every pair.
"""

import abc
import typing

from .term import TermRecord

SENTINEL_DISTANCE = -1

Comparable = typing.Union[str, TermRecord, None]


class SimilarityStrategy(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def distance(self, a: Comparable, b: Comparable) -> float:
        """Distance between two symbols/ids or two terms; either may be None."""
        raise NotImplementedError


class PlaceholderDistance(SimilarityStrategy):
    """No metric yet: every pair, including (None, None) and (x, x), gets the sentinel."""

    def distance(self, a: Comparable, b: Comparable) -> int:
        return SENTINEL_DISTANCE
