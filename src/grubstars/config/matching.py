"""Tuning values for the restaurant matcher."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class MatchWeights:
    name: int = 35
    address: int = 20
    gps: int = 25
    phone: int = 20

    @property
    def total(self) -> int:
        return self.name + self.address + self.gps + self.phone


@dataclass(frozen=True, slots=True)
class MatchPolicy:
    """Weights and acceptance rules for one calling context.

    A candidate is accepted when its total score is strictly above ``threshold``
    and, if set, its name similarity is at least ``min_name_similarity``.
    """

    weights: MatchWeights = MatchWeights()
    threshold: int = 50
    min_name_similarity: float | None = None
    max_gps_distance_m: float = 200.0
    phone_country_code: str = "1"

    def with_threshold(self, threshold: int) -> MatchPolicy:
        return replace(self, threshold=threshold)


FORWARD_INDEX_POLICY = MatchPolicy()
REVERSE_LOOKUP_POLICY = MatchPolicy(threshold=80, min_name_similarity=0.9)
