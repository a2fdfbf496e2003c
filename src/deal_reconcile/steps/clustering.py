from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Sequence

from deal_reconcile.models import AddressEntry, Deal, MatchMethod, NormalizedContact, OrderGroup
from deal_reconcile.steps.normalize import COLOMBIA, PhoneRules, extract_secondary_id, normalize_phone

log = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


def _new_id() -> str:
    return str(uuid.uuid4())


class ContactClusterer:
    """Groups order groups that share a phone or a chat id into one contact.

    Identifiers are read from each group's representative deal. Sharing is
    transitive: two groups end up together if a chain of groups links them
    through either identifier. Groups with neither identifier become a
    contact of their own.
    """

    def __init__(self, rules: PhoneRules = COLOMBIA, id_factory: Callable[[], str] = _new_id) -> None:
        self._rules = rules
        self._id_factory = id_factory

    def cluster(self, groups: Sequence[OrderGroup]) -> list[NormalizedContact]:
        uf = _UnionFind()
        keyed: list[tuple[OrderGroup, int]] = []
        no_identifier: list[OrderGroup] = []

        for group in groups:
            deal = group.representative_deal()
            phone = normalize_phone(deal.phone, self._rules)
            secondary_id = extract_secondary_id(deal.chat_link)

            keys = []
            if phone:
                keys.append(uf.add(f"phone:{phone}"))
            if secondary_id:
                keys.append(uf.add(f"secondaryId:{secondary_id}"))
            if not keys:
                no_identifier.append(group)
                continue
            for other in keys[1:]:
                uf.union(keys[0], other)
            keyed.append((group, keys[0]))

        clusters: dict[int, list[OrderGroup]] = {}
        for group, key in keyed:
            clusters.setdefault(uf.find(key), []).append(group)

        contacts: list[NormalizedContact] = []
        for members in clusters.values():
            contacts.append(self._materialize(members))
        for group in no_identifier:
            contacts.append(self._materialize_unidentified(group))

        log.info(
            "Clustered %d order groups into %d contacts (%d without phone or chat id)",
            len(groups),
            len(contacts),
            len(no_identifier),
        )
        return contacts

    def _materialize(self, groups: list[OrderGroup]) -> NormalizedContact:
        contact_id = self._id_factory()
        deals: list[Deal] = []
        for group in groups:
            group.contact_id = contact_id
            deals.extend(group.deals())

        # Newest first; stable, so equal timestamps keep group order.
        deals.sort(key=lambda deal: deal.created_time, reverse=True)

        phones = _unique(normalize_phone(deal.phone, self._rules) for deal in deals)
        secondary_ids = _unique(extract_secondary_id(deal.chat_link) for deal in deals)
        names = [deal.name for deal in deals if deal.name]
        most_recent = deals[0]
        order_dates = [group.representative_deal().created_time for group in groups]

        return NormalizedContact(
            contact_id=contact_id,
            name=max(names, key=len) if names else UNKNOWN_NAME,
            phone=phones[0] if phones else None,
            email=next((deal.email for deal in deals if deal.email), None),
            secondary_id=secondary_ids[0] if secondary_ids else None,
            address=most_recent.address,
            city=most_recent.city,
            region=most_recent.region,
            all_addresses=_address_history(deals),
            order_count=len(groups),
            first_order_date=min(order_dates),
            last_order_date=max(order_dates),
            match_method=_match_method(bool(phones), bool(secondary_ids)),
        )

    def _materialize_unidentified(self, group: OrderGroup) -> NormalizedContact:
        contact_id = self._id_factory()
        group.contact_id = contact_id
        deal = group.representative_deal()
        return NormalizedContact(
            contact_id=contact_id,
            name=deal.name or UNKNOWN_NAME,
            email=deal.email,
            address=deal.address,
            city=deal.city,
            region=deal.region,
            all_addresses=_address_history([deal]),
            order_count=1,
            first_order_date=deal.created_time,
            last_order_date=deal.created_time,
            match_method=MatchMethod.NONE,
        )


class _UnionFind:
    """Disjoint sets over dense integer slots; string keys map to slots."""

    def __init__(self) -> None:
        self._slots: dict[str, int] = {}
        self._parent: list[int] = []

    def add(self, key: str) -> int:
        slot = self._slots.get(key)
        if slot is None:
            slot = len(self._parent)
            self._slots[key] = slot
            self._parent.append(slot)
        return slot

    def find(self, slot: int) -> int:
        root = slot
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[slot] != root:
            next_slot = self._parent[slot]
            self._parent[slot] = root
            slot = next_slot
        return root

    def union(self, left: int, right: int) -> None:
        root_left = self.find(left)
        root_right = self.find(right)
        if root_left != root_right:
            self._parent[root_right] = root_left


def _unique(values: Iterable[str | None]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _address_history(deals: Sequence[Deal]) -> list[AddressEntry]:
    seen: set[tuple[str, str, str]] = set()
    history: list[AddressEntry] = []
    for deal in deals:
        if not (deal.address or deal.city):
            continue
        key = (deal.address or "", deal.city or "", deal.region or "")
        if key in seen:
            continue
        seen.add(key)
        history.append(AddressEntry(address=deal.address, city=deal.city, region=deal.region))
    return history


def _match_method(has_phone: bool, has_secondary_id: bool) -> MatchMethod:
    if has_phone and has_secondary_id:
        return MatchMethod.BOTH
    if has_phone:
        return MatchMethod.PHONE
    if has_secondary_id:
        return MatchMethod.SECONDARY_ID
    return MatchMethod.NONE
