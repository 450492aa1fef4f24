"""In-memory provider adapters and record builders for indexing tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from grubstars.domain.errors import ProviderUnavailableError
from grubstars.domain.model import ProviderRecord
from grubstars.domain.ports import SearchPage

if TYPE_CHECKING:
    from grubstars.domain.ports import ProviderAdapter

AUSTIN = (30.2672, -97.7431)


def make_record(
    name: str,
    external_id: str,
    *,
    latitude: float | None = AUSTIN[0],
    longitude: float | None = AUSTIN[1],
    address: str | None = None,
    phone: str | None = None,
    rating: float | None = 4.5,
    review_count: int | None = 10,
    categories: tuple[str, ...] = (),
) -> ProviderRecord:
    return ProviderRecord(
        external_id=external_id,
        name=name,
        address=address,
        latitude=latitude,
        longitude=longitude,
        phone=phone,
        rating=rating,
        review_count=review_count,
        categories=categories,
    )


PLACES: tuple[tuple[str, str, str], ...] = (
    ("Franklin Barbecue", "900 E 11th St, Austin, TX 78702", "(512) 653-1187"),
    ("Uchi", "801 S Lamar Blvd, Austin, TX 78704", "(512) 916-4808"),
    ("Veracruz All Natural", "1704 E Cesar Chavez St, Austin, TX 78702", "(512) 981-1760"),
    ("Home Slice Pizza", "1415 S Congress Ave, Austin, TX 78704", "(512) 444-7437"),
)


def place_records(
    prefix: str,
    *,
    rating: float = 4.5,
    with_coordinates: bool = True,
    count: int = len(PLACES),
) -> list[ProviderRecord]:
    """The same real-world places as one provider would report them.

    Places sit roughly 330 m apart so their coordinates never score on their own.
    """

    records: list[ProviderRecord] = []
    for index, (name, address, phone) in enumerate(PLACES[:count]):
        latitude = AUSTIN[0] + index * 0.003
        records.append(
            make_record(
                name,
                f"{prefix}-{index}",
                latitude=latitude if with_coordinates else None,
                longitude=AUSTIN[1] if with_coordinates else None,
                address=address,
                phone=phone,
                rating=rating,
            )
        )
    return records


@dataclass
class FakeProviderAdapter:
    """Serves fixed records page by page and records every call it receives."""

    source_name: str
    records: list[ProviderRecord] = field(default_factory=list[ProviderRecord])
    details: dict[str, ProviderRecord] = field(default_factory=dict[str, ProviderRecord])
    request_limit: int | None = None
    page_size: int = 50
    configured: bool = True
    failures: int = 0
    calls: list[str] = field(default_factory=list[str])

    def is_configured(self) -> bool:
        return self.configured

    def search_by_area(
        self,
        location: str,
        category: str | None = None,
        page_token: str | None = None,
    ) -> SearchPage:
        self.calls.append(f"search_by_area:{page_token}")
        self._maybe_fail()
        offset = int(page_token) if page_token else 0
        page = self.records[offset : offset + self.page_size]
        next_offset = offset + len(page)
        token = str(next_offset) if next_offset < len(self.records) else None
        return SearchPage(
            records=list(page), next_page_token=token, estimated_total=len(self.records)
        )

    def search_by_name(self, name: str, location: str | None = None) -> list[ProviderRecord]:
        self.calls.append(f"search_by_name:{name}")
        self._maybe_fail()
        return [record for record in self.records if record.name.casefold() == name.casefold()]

    def get_details(self, external_id: str) -> ProviderRecord:
        self.calls.append(f"get_details:{external_id}")
        self._maybe_fail()
        return self.details[external_id]

    def _maybe_fail(self) -> None:
        if self.failures:
            self.failures -= 1
            raise ProviderUnavailableError(self.source_name, "service unavailable")


if TYPE_CHECKING:
    _adapter_check: ProviderAdapter = FakeProviderAdapter("check")
