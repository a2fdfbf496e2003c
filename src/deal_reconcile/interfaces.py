from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from deal_reconcile.models import (
    CleanedDeals,
    IndexedRecord,
    LinkResult,
    MatchCandidate,
    NormalizedContact,
    OrderGroup,
    ReconcileResult,
    RematchReport,
    TimeField,
)


class Cleaner(Protocol):
    """Step 1: turn raw records into immutable deals, setting aside unparseable ones."""

    def clean(self, records: Sequence[Mapping[str, Any]]) -> CleanedDeals:
        ...


class RecordScorer(Protocol):
    """Step 2: score one source record against one target record."""

    def score(
        self,
        source: IndexedRecord,
        target: IndexedRecord,
        source_time: TimeField,
        target_time: TimeField,
    ) -> MatchCandidate:
        ...


class PipelineLinker(Protocol):
    """Step 3: link records of one pipeline stage to the previous stage."""

    def link(
        self,
        sources: Sequence[IndexedRecord],
        targets: Sequence[IndexedRecord],
        label: str,
    ) -> LinkResult:
        ...


class GroupBuilder(Protocol):
    """Step 4: assemble linked and unlinked records into order groups."""

    def build(self, sales_logistics: LinkResult, logistics_shipping: LinkResult) -> list[OrderGroup]:
        ...


class Clusterer(Protocol):
    """Step 5: cluster order groups into canonical contacts."""

    def cluster(self, groups: Sequence[OrderGroup]) -> list[NormalizedContact]:
        ...


class ReconcilePipeline(Protocol):
    """End-to-end interface: primary pass, then suggestions for the leftovers."""

    def run(self, records: Sequence[Mapping[str, Any]]) -> ReconcileResult:
        ...

    def rematch(self, result: ReconcileResult) -> RematchReport:
        ...
