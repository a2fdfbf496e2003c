"""Phone-quality audit for normalized contacts.

The lossy fallback in ``normalize_phone`` can yield numbers that look valid
but are not; this audit surfaces contacts whose phone does not fit the
domestic mobile shape, with the raw strings it was derived from.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from deal_reconcile.models import NormalizedContact, OrderGroup
from deal_reconcile.steps.normalize import COLOMBIA, PhoneRules


class PhoneIssue(StrEnum):
    NULL_PHONE = "null_phone"
    NOT_DOMESTIC = "not_domestic"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    INVALID_PREFIX = "invalid_prefix"


@dataclass(slots=True)
class PhoneIssueRecord:
    contact_id: str
    name: str
    phone: str | None
    issue: PhoneIssue
    original_phones: list[str] = field(default_factory=list)


def classify_phone(phone: str | None, rules: PhoneRules = COLOMBIA) -> PhoneIssue | None:
    if not phone:
        return PhoneIssue.NULL_PHONE
    prefix = f"+{rules.country_code}"
    if not phone.startswith(prefix):
        return PhoneIssue.NOT_DOMESTIC
    if len(phone) < rules.international_length:
        return PhoneIssue.TOO_SHORT
    if len(phone) > rules.international_length:
        return PhoneIssue.TOO_LONG
    if not phone[len(prefix) :].startswith(rules.mobile_prefixes):
        return PhoneIssue.INVALID_PREFIX
    return None


def audit_contact_phones(
    contacts: Sequence[NormalizedContact],
    groups: Sequence[OrderGroup],
    rules: PhoneRules = COLOMBIA,
) -> list[PhoneIssueRecord]:
    raw_phones: dict[str, dict[str, None]] = defaultdict(dict)
    for group in groups:
        if not group.contact_id:
            continue
        for deal in group.deals():
            if deal.phone:
                raw_phones[group.contact_id].setdefault(deal.phone, None)

    issues: list[PhoneIssueRecord] = []
    for contact in contacts:
        issue = classify_phone(contact.phone, rules)
        if issue is None:
            continue
        issues.append(
            PhoneIssueRecord(
                contact_id=contact.contact_id,
                name=contact.name,
                phone=contact.phone,
                issue=issue,
                original_phones=list(raw_phones.get(contact.contact_id, {})),
            )
        )
    return issues
