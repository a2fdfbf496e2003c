from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence

from deal_reconcile.models import Deal, IndexedRecord
from deal_reconcile.steps.normalize import (
    COLOMBIA,
    PhoneRules,
    extract_secondary_id,
    normalize_name,
    normalize_phone,
    phone_tail,
)


def index_deal(deal: Deal, rules: PhoneRules = COLOMBIA, tail_length: int = 8) -> IndexedRecord:
    phone = normalize_phone(deal.phone, rules)
    return IndexedRecord(
        deal=deal,
        phone=phone,
        secondary_id=extract_secondary_id(deal.chat_link),
        normalized_name=normalize_name(deal.name),
        phone_tail=phone_tail(phone, tail_length),
    )


def index_deals(
    deals: Sequence[Deal],
    rules: PhoneRules = COLOMBIA,
    tail_length: int = 8,
) -> list[IndexedRecord]:
    return [index_deal(deal, rules, tail_length) for deal in deals]


def build_index(
    records: Sequence[IndexedRecord],
    key: Callable[[IndexedRecord], str | None],
) -> dict[str, list[IndexedRecord]]:
    """Hash index from a derived key to every record carrying it, in input order."""
    index: dict[str, list[IndexedRecord]] = defaultdict(list)
    for record in records:
        value = key(record)
        if value:
            index[value].append(record)
    return dict(index)


def by_phone(record: IndexedRecord) -> str | None:
    return record.phone


def by_secondary_id(record: IndexedRecord) -> str | None:
    return record.secondary_id


def by_phone_tail(record: IndexedRecord) -> str | None:
    return record.phone_tail
