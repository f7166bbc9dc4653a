"""
Ranking of candidate songs.
"""

import logging
from typing import List, Mapping, Optional

from songprint.core.models import MatchScore, RankedMatch
from songprint.core.protocols import SongMetadata
from songprint.utils.errors import NotFoundError


class RankingEngine:
    """
    Orders match scores and resolves song names.

    Ties on score are broken by ascending song id so the ranking never
    depends on dictionary order.
    """

    def __init__(self, metadata: SongMetadata, top_n: Optional[int] = None):
        """
        Args:
            metadata: Song id -> name resolver
            top_n: Optional cap on the number of ranked songs returned
        """
        self.metadata = metadata
        self.top_n = top_n
        self.logger = logging.getLogger("ranking")

    def rank(self, scores: Mapping[int, MatchScore]) -> List[RankedMatch]:
        """
        Sort candidates by score descending and attach display names.

        Raises:
            NotFoundError: If a scored song has no metadata
        """
        ordered = sorted(scores.values(), key=lambda s: (-s.score, s.song_id))
        if self.top_n is not None:
            ordered = ordered[:self.top_n]

        ranked = []
        for match in ordered:
            try:
                name = self.metadata.song_name(match.song_id)
            except NotFoundError:
                self.logger.error(
                    f"Song {match.song_id} is in the index but has no metadata"
                )
                raise
            ranked.append(RankedMatch(name=name, score=match.score, song_id=match.song_id))

        return ranked
