from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from deal_reconcile.models import LinkResult, MatchCandidate, OrderGroup

log = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class OrderGroupBuilder:
    """Assembles order groups from the two link passes.

    ``sales_logistics`` links logistics (source) to sales (target);
    ``logistics_shipping`` links shipping (source) to logistics (target).
    Every input record lands in exactly one group.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_id) -> None:
        self._id_factory = id_factory

    def build(self, sales_logistics: LinkResult, logistics_shipping: LinkResult) -> list[OrderGroup]:
        shipping_by_logistics_id = logistics_shipping.by_target_id()
        groups: list[OrderGroup] = []

        for match in sales_logistics.matched:
            shipping_match = shipping_by_logistics_id.get(match.source_id)
            groups.append(
                OrderGroup(
                    group_id=self._id_factory(),
                    sales=match.target.deal,
                    logistics=match.source.deal,
                    shipping=shipping_match.source.deal if shipping_match else None,
                    match_confidence=round(min(match.score / 100, 1.0), 2),
                    match_details=f"sales-logistics: {', '.join(match.details)}"
                    + _shipping_suffix(shipping_match),
                )
            )

        for record in sales_logistics.unmatched_target:
            groups.append(
                OrderGroup(
                    group_id=self._id_factory(),
                    sales=record.deal,
                    match_details="sales only (no logistics match)",
                )
            )

        for record in sales_logistics.unmatched_source:
            shipping_match = shipping_by_logistics_id.get(record.deal_id)
            groups.append(
                OrderGroup(
                    group_id=self._id_factory(),
                    logistics=record.deal,
                    shipping=shipping_match.source.deal if shipping_match else None,
                    match_details="logistics only (no sales match)" + _shipping_suffix(shipping_match),
                )
            )

        folded_shipping_ids = {match.source_id for match in logistics_shipping.matched}
        for record in logistics_shipping.unmatched_source:
            if record.deal_id in folded_shipping_ids:
                continue
            groups.append(
                OrderGroup(
                    group_id=self._id_factory(),
                    shipping=record.deal,
                    match_details="shipping only (no logistics match)",
                )
            )

        log.info("Built %d order groups", len(groups))
        return groups


def _shipping_suffix(match: MatchCandidate | None) -> str:
    if match is None:
        return ""
    return f" + shipping({', '.join(match.details)})"
