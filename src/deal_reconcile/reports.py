from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from deal_reconcile.models import (
    GroupComposition,
    IndexedRecord,
    LinkResult,
    MatchMethod,
    NoIdentifierRef,
    NormalizedContact,
    OrderGroup,
    PartitionedDeals,
    RematchEntry,
    Recommendation,
    UnmatchedRef,
    UnmatchedReport,
)
from deal_reconcile.steps.normalize import COLOMBIA, PhoneRules, extract_secondary_id, normalize_phone

_SCORE_BUCKETS = (
    ("0", 0, 0),
    ("1-34", 1, 34),
    ("35-55", 35, 55),
    ("56-70", 56, 70),
    ("71-90", 71, 90),
)


def build_unmatched_report(
    sales_logistics: LinkResult,
    logistics_shipping: LinkResult,
    groups: Sequence[OrderGroup],
    rules: PhoneRules = COLOMBIA,
) -> UnmatchedReport:
    """Records each link left unmatched, plus groups nobody can be contacted on."""
    no_identifier: list[NoIdentifierRef] = []
    for group in groups:
        deal = group.representative_deal()
        if normalize_phone(deal.phone, rules) or extract_secondary_id(deal.chat_link):
            continue
        no_identifier.append(NoIdentifierRef(deal_id=deal.deal_id, name=deal.name, stage=deal.stage))

    return UnmatchedReport(
        sales_without_logistics=[_ref(record) for record in sales_logistics.unmatched_target],
        logistics_without_sales=[_ref(record) for record in sales_logistics.unmatched_source],
        shipping_without_logistics=[_ref(record) for record in logistics_shipping.unmatched_source],
        no_identifier=no_identifier,
    )


def build_summary(
    contacts: Sequence[NormalizedContact],
    groups: Sequence[OrderGroup],
    partition: PartitionedDeals,
    top_n: int = 10,
) -> dict[str, object]:
    orders_per_contact = {"1": 0, "2-3": 0, "4+": 0}
    for contact in contacts:
        if contact.order_count <= 1:
            orders_per_contact["1"] += 1
        elif contact.order_count <= 3:
            orders_per_contact["2-3"] += 1
        else:
            orders_per_contact["4+"] += 1

    compositions = Counter(group.composition for group in groups)

    confidence = {">=0.9": 0, "0.8-0.89": 0, "0.6-0.79": 0, "<0.6": 0}
    for group in groups:
        if group.match_confidence >= 0.9:
            confidence[">=0.9"] += 1
        elif group.match_confidence >= 0.8:
            confidence["0.8-0.89"] += 1
        elif group.match_confidence >= 0.6:
            confidence["0.6-0.79"] += 1
        else:
            confidence["<0.6"] += 1

    methods = Counter(contact.match_method for contact in contacts)
    repeat = sorted(contacts, key=lambda contact: -contact.order_count)[:top_n]

    return {
        "record_count": partition.record_count,
        "skipped_count": partition.skipped,
        "unclassified_count": partition.unclassified,
        "invalid_count": partition.invalid,
        "contact_count": len(contacts),
        "group_count": len(groups),
        "orders_per_contact": orders_per_contact,
        "group_composition": {composition.value: compositions.get(composition, 0) for composition in GroupComposition},
        "confidence_distribution": confidence,
        "match_method_distribution": {method.value: count for method, count in methods.most_common()},
        "contacts_without_identifier": methods.get(MatchMethod.NONE, 0),
        "top_repeat_contacts": [
            {
                "contact_id": contact.contact_id,
                "name": contact.name,
                "phone": contact.phone,
                "order_count": contact.order_count,
            }
            for contact in repeat
        ],
    }


def summarize_rematch(entries: Sequence[RematchEntry]) -> dict[str, object]:
    recommendations = Counter(entry.recommendation for entry in entries)
    conflicts = sum(
        1
        for entry in entries
        if entry.recommendation == Recommendation.AUTO_MATCH
        and entry.best_match is not None
        and entry.best_match.already_matched
    )

    histogram = {label: 0 for label, _, _ in _SCORE_BUCKETS}
    histogram["91+"] = 0
    for entry in entries:
        histogram[_bucket(entry.best_match.score if entry.best_match else 0)] += 1

    return {
        "total": len(entries),
        "recommendations": {item.value: recommendations.get(item, 0) for item in Recommendation},
        "auto_match_conflicts": conflicts,
        "best_score_histogram": histogram,
    }


def _bucket(score: int) -> str:
    for label, low, high in _SCORE_BUCKETS:
        if low <= score <= high:
            return label
    return "91+" if score > 90 else "0"


def _ref(record: IndexedRecord) -> UnmatchedRef:
    return UnmatchedRef(
        deal_id=record.deal_id,
        name=record.deal.name,
        phone=record.phone,
        stage=record.deal.stage,
        created=record.deal.created_time,
    )
