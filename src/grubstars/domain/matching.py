"""Confidence scoring between an incoming provider record and stored restaurants.

The score is a weighted sum of four independent signals:
- name: longest-common-subsequence ratio of the normalized names
- address: equality of the normalized addresses
- gps: linear falloff with great-circle distance
- phone: equality of the digit-only numbers

Every function here is pure; nothing is mutated and no I/O happens.
"""

from __future__ import annotations

import logging
import math
import re
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from grubstars.config.matching import FORWARD_INDEX_POLICY, MatchPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from grubstars.domain.model import Candidate

log = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6_371_000.0

_PUNCTUATION = re.compile(f"[{re.escape(string.punctuation)}]")
_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"\D")
_STREET_TYPES = {
    "street": "st",
    "avenue": "ave",
    "road": "rd",
    "drive": "dr",
    "boulevard": "blvd",
    "lane": "ln",
}
_STREET_TYPE_PATTERN = re.compile(r"\b(" + "|".join(_STREET_TYPES) + r")\b")


class Matchable(Protocol):
    """Attributes the matcher reads from either side of a comparison."""

    @property
    def name(self) -> str: ...

    @property
    def address(self) -> str | None: ...

    @property
    def latitude(self) -> float | None: ...

    @property
    def longitude(self) -> float | None: ...

    @property
    def phone(self) -> str | None: ...


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def normalize_name(name: str | None) -> str:
    if not name:
        return ""
    stripped = _PUNCTUATION.sub("", name.lower())
    return _WHITESPACE.sub(" ", stripped).strip()


def normalize_address(address: str | None) -> str:
    if not address:
        return ""
    stripped = _PUNCTUATION.sub("", address.casefold())
    unified = _STREET_TYPE_PATTERN.sub(lambda m: _STREET_TYPES[m.group(1)], stripped)
    return _WHITESPACE.sub(" ", unified).strip()


def normalize_phone(phone: str | None, *, country_code: str = "1") -> str:
    if not phone:
        return ""
    digits = _NON_DIGITS.sub("", phone)
    if country_code and len(digits) > 10 and digits.startswith(country_code):
        digits = digits[len(country_code) :]
    return digits


def longest_common_subsequence(left: str, right: str) -> int:
    if len(right) > len(left):
        left, right = right, left
    previous = [0] * (len(right) + 1)
    for char in left:
        current = [0]
        for index, other in enumerate(right, start=1):
            if char == other:
                current.append(previous[index - 1] + 1)
            else:
                current.append(max(previous[index], current[index - 1]))
        previous = current
    return previous[-1]


def string_similarity(left: str, right: str) -> float:
    """Return the LCS ratio of two strings in ``[0.0, 1.0]``."""

    if left == right:
        return 1.0
    if not left or not right:
        return 0.0
    return longest_common_subsequence(left, right) / max(len(left), len(right))


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(frozen=True, slots=True)
class ComponentScores:
    name: int
    address: int
    gps: int
    phone: int
    name_similarity: float

    @property
    def total(self) -> int:
        return self.name + self.address + self.gps + self.phone


@dataclass(frozen=True, slots=True)
class MatchResult:
    candidate: Candidate
    score: int
    name_similarity: float


@dataclass(frozen=True, slots=True)
class Matcher:
    """Scores records against candidates under one ``MatchPolicy``."""

    policy: MatchPolicy = FORWARD_INDEX_POLICY

    def component_scores(self, left: Matchable, right: Matchable) -> ComponentScores:
        weights = self.policy.weights

        left_name = normalize_name(left.name)
        right_name = normalize_name(right.name)
        similarity = string_similarity(left_name, right_name) if left_name and right_name else 0.0

        address = 0
        left_address = normalize_address(left.address)
        if left_address and left_address == normalize_address(right.address):
            address = weights.address

        gps = 0
        if (
            left.latitude is not None
            and left.longitude is not None
            and right.latitude is not None
            and right.longitude is not None
        ):
            distance = haversine_meters(
                left.latitude, left.longitude, right.latitude, right.longitude
            )
            if distance < self.policy.max_gps_distance_m:
                gps = round_half_up(weights.gps * (1 - distance / self.policy.max_gps_distance_m))

        country = self.policy.phone_country_code
        phone = 0
        left_phone = normalize_phone(left.phone, country_code=country)
        if left_phone and left_phone == normalize_phone(right.phone, country_code=country):
            phone = weights.phone

        return ComponentScores(
            name=round_half_up(similarity * weights.name),
            address=address,
            gps=gps,
            phone=phone,
            name_similarity=similarity,
        )

    def score(self, left: Matchable, right: Matchable) -> int:
        return self.component_scores(left, right).total

    def best_match(
        self,
        record: Matchable,
        candidates: Iterable[Candidate],
        policy: MatchPolicy | None = None,
    ) -> MatchResult | None:
        """Return the highest scoring acceptable candidate; the earliest wins ties."""

        active = policy or self.policy
        matcher = self if active is self.policy else Matcher(active)
        best: MatchResult | None = None
        for candidate in candidates:
            components = matcher.component_scores(record, candidate)
            total = components.total
            log.debug(
                "Scored %r against %r: %s (name=%s address=%s gps=%s phone=%s)",
                record.name,
                candidate.name,
                total,
                components.name,
                components.address,
                components.gps,
                components.phone,
            )
            if total <= active.threshold:
                continue
            if (
                active.min_name_similarity is not None
                and components.name_similarity < active.min_name_similarity
            ):
                continue
            if best is None or total > best.score:
                best = MatchResult(
                    candidate=candidate,
                    score=total,
                    name_similarity=components.name_similarity,
                )
        return best
