from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping

from deal_reconcile.errors import GroupAssemblyError


class TimeField(StrEnum):
    CREATED = "created"
    MODIFIED = "modified"


class MatchMethod(StrEnum):
    PHONE = "phone"
    SECONDARY_ID = "secondary_id"
    BOTH = "both"
    NONE = "none"


class Recommendation(StrEnum):
    AUTO_MATCH = "auto_match"
    REVIEW = "review"
    TRULY_UNMATCHED = "truly_unmatched"


class GroupComposition(StrEnum):
    FULL = "sales+logistics+shipping"
    SALES_LOGISTICS = "sales+logistics"
    SALES_ONLY = "sales"
    LOGISTICS_SHIPPING = "logistics+shipping"
    LOGISTICS_ONLY = "logistics"
    SHIPPING_ONLY = "shipping"


@dataclass(frozen=True, slots=True)
class Deal:
    """One source record from any of the three pipelines.

    Immutable once ingested. ``attributes`` keeps the raw record for callers
    that need columns the engine does not interpret.
    """

    deal_id: str
    name: str
    created_time: datetime
    modified_time: datetime
    stage: str = ""
    phone: str | None = None
    email: str | None = None
    chat_link: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    amount: float | None = None
    pipeline: str | None = None
    sub_pipeline: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), compare=False)

    def time_of(self, time_field: TimeField) -> datetime:
        if time_field == TimeField.MODIFIED:
            return self.modified_time
        return self.created_time


@dataclass(frozen=True, slots=True)
class IndexedRecord:
    """A deal plus the identifiers derived from it, scoped to a single pass."""

    deal: Deal
    phone: str | None
    secondary_id: str | None
    normalized_name: str
    phone_tail: str | None = None

    @property
    def deal_id(self) -> str:
        return self.deal.deal_id


@dataclass(slots=True)
class MatchCandidate:
    """Scored comparison between a source and a target record."""

    source: IndexedRecord
    target: IndexedRecord
    score: int
    details: list[str] = field(default_factory=list)
    time_delta_seconds: float = 0.0

    @property
    def source_id(self) -> str:
        return self.source.deal_id

    @property
    def target_id(self) -> str:
        return self.target.deal_id


@dataclass(slots=True)
class LinkResult:
    matched: list[MatchCandidate]
    unmatched_source: list[IndexedRecord]
    unmatched_target: list[IndexedRecord]

    def claimed_target_ids(self) -> set[str]:
        return {candidate.target_id for candidate in self.matched}

    def by_target_id(self) -> dict[str, MatchCandidate]:
        return {candidate.target_id: candidate for candidate in self.matched}


@dataclass(frozen=True, slots=True)
class RejectedRecord:
    """A raw record that could not become a Deal."""

    record_id: str | None
    pipeline: str | None
    reason: str


@dataclass(slots=True)
class CleanedDeals:
    deals: list[Deal] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)


@dataclass(slots=True)
class PartitionedDeals:
    sales: list[Deal] = field(default_factory=list)
    logistics: list[Deal] = field(default_factory=list)
    shipping: list[Deal] = field(default_factory=list)
    skipped: int = 0
    unclassified: int = 0
    invalid: int = 0

    @property
    def record_count(self) -> int:
        return len(self.sales) + len(self.logistics) + len(self.shipping)


@dataclass(slots=True)
class OrderGroup:
    """One logical customer transaction assembled from up to three records."""

    group_id: str
    sales: Deal | None = None
    logistics: Deal | None = None
    shipping: Deal | None = None
    match_confidence: float = 0.0
    match_details: str = ""
    contact_id: str | None = None

    def __post_init__(self) -> None:
        if self.sales is None and self.logistics is None and self.shipping is None:
            raise GroupAssemblyError(f"order group {self.group_id} has no deals")

    def representative_deal(self) -> Deal:
        """Sales first, then logistics, then shipping."""
        deal = self.sales or self.logistics or self.shipping
        if deal is None:
            raise GroupAssemblyError(f"order group {self.group_id} has no deals")
        return deal

    def deals(self) -> list[Deal]:
        return [deal for deal in (self.sales, self.logistics, self.shipping) if deal is not None]

    @property
    def composition(self) -> GroupComposition:
        has_sales = self.sales is not None
        has_logistics = self.logistics is not None
        has_shipping = self.shipping is not None
        if has_sales and has_logistics and has_shipping:
            return GroupComposition.FULL
        if has_sales and has_logistics:
            return GroupComposition.SALES_LOGISTICS
        if has_sales and not has_shipping:
            return GroupComposition.SALES_ONLY
        if has_logistics and has_shipping:
            return GroupComposition.LOGISTICS_SHIPPING
        if has_logistics:
            return GroupComposition.LOGISTICS_ONLY
        if has_shipping and not has_sales:
            return GroupComposition.SHIPPING_ONLY
        raise GroupAssemblyError(f"order group {self.group_id} pairs sales and shipping without logistics")


@dataclass(frozen=True, slots=True)
class AddressEntry:
    address: str | None
    city: str | None
    region: str | None


@dataclass(slots=True)
class NormalizedContact:
    """Canonical customer record built from one cluster of order groups."""

    contact_id: str
    name: str
    phone: str | None = None
    email: str | None = None
    secondary_id: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    all_addresses: list[AddressEntry] = field(default_factory=list)
    order_count: int = 0
    first_order_date: datetime | None = None
    last_order_date: datetime | None = None
    match_method: MatchMethod = MatchMethod.NONE


@dataclass(frozen=True, slots=True)
class UnmatchedRef:
    deal_id: str
    name: str
    phone: str | None
    stage: str
    created: datetime


@dataclass(frozen=True, slots=True)
class NoIdentifierRef:
    deal_id: str
    name: str
    stage: str


@dataclass(slots=True)
class UnmatchedReport:
    sales_without_logistics: list[UnmatchedRef] = field(default_factory=list)
    logistics_without_sales: list[UnmatchedRef] = field(default_factory=list)
    shipping_without_logistics: list[UnmatchedRef] = field(default_factory=list)
    no_identifier: list[NoIdentifierRef] = field(default_factory=list)


@dataclass(slots=True)
class RematchCandidate:
    target_id: str
    name: str
    phone: str | None
    score: int
    match_details: str
    time_delta_seconds: float
    already_matched: bool


@dataclass(slots=True)
class RematchEntry:
    """Second-pass suggestions for one record the first pass left unmatched."""

    deal_id: str
    name: str
    phone: str | None
    stage: str
    created: datetime
    candidates: list[RematchCandidate] = field(default_factory=list)
    best_match: RematchCandidate | None = None
    recommendation: Recommendation = Recommendation.TRULY_UNMATCHED


@dataclass(slots=True)
class RematchReport:
    logistics_without_sales: list[RematchEntry] = field(default_factory=list)
    shipping_without_logistics: list[RematchEntry] = field(default_factory=list)


@dataclass(slots=True)
class ReconcileResult:
    """Everything the primary pass produces, plus what the rematch pass needs."""

    partition: PartitionedDeals
    sales_logistics: LinkResult
    logistics_shipping: LinkResult
    groups: list[OrderGroup]
    contacts: list[NormalizedContact]
    unmatched: UnmatchedReport
