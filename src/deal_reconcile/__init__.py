"""Reconcile sales, logistics and shipping deals into order groups and contacts."""

from deal_reconcile.errors import DealParseError, GroupAssemblyError, ReconcileError
from deal_reconcile.models import (
    Deal,
    IndexedRecord,
    MatchCandidate,
    MatchMethod,
    NormalizedContact,
    OrderGroup,
    Recommendation,
    ReconcileResult,
    RematchReport,
    TimeField,
)
from deal_reconcile.schema import DealSchema, FieldTag, PipelineLayout

__all__ = [
    "DealParseError",
    "GroupAssemblyError",
    "ReconcileError",
    "Deal",
    "IndexedRecord",
    "MatchCandidate",
    "MatchMethod",
    "NormalizedContact",
    "OrderGroup",
    "Recommendation",
    "ReconcileResult",
    "RematchReport",
    "TimeField",
    "DealSchema",
    "FieldTag",
    "PipelineLayout",
]
