from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from deal_reconcile.datasets.profiles import BIGIN_LAYOUT, BIGIN_SCHEMA
from deal_reconcile.interfaces import Cleaner, Clusterer, GroupBuilder, PipelineLinker
from deal_reconcile.models import ReconcileResult, RematchReport
from deal_reconcile.reports import build_unmatched_report
from deal_reconcile.schema import PipelineLayout
from deal_reconcile.steps.cleanup import DealCleaner, partition_deals
from deal_reconcile.steps.clustering import ContactClusterer
from deal_reconcile.steps.grouping import OrderGroupBuilder
from deal_reconcile.steps.indexing import index_deals
from deal_reconcile.steps.linking import GreedyPipelineLinker
from deal_reconcile.steps.normalize import COLOMBIA, PhoneRules
from deal_reconcile.steps.rematch import RematchEngine
from deal_reconcile.steps.scoring import STRICT_RULES, DealScorer

log = logging.getLogger(__name__)


class LocalReconcilePipeline:
    """In-memory runner for one batch snapshot of deals.

    ``run`` is the primary pass: clean, partition, link logistics to sales and
    shipping to logistics, assemble order groups, cluster contacts. ``rematch``
    is the optional second pass over what ``run`` left unmatched. Runs share no
    state, so the same input always gives the same links.
    """

    def __init__(
        self,
        cleaner: Cleaner | None = None,
        linker: PipelineLinker | None = None,
        group_builder: GroupBuilder | None = None,
        clusterer: Clusterer | None = None,
        rematch_engine: RematchEngine | None = None,
        layout: PipelineLayout = BIGIN_LAYOUT,
        phone_rules: PhoneRules = COLOMBIA,
    ) -> None:
        self._cleaner = cleaner or DealCleaner(schema=BIGIN_SCHEMA)
        self._linker = linker or GreedyPipelineLinker(scorer=DealScorer(STRICT_RULES))
        self._group_builder = group_builder or OrderGroupBuilder()
        self._clusterer = clusterer or ContactClusterer(rules=phone_rules)
        self._rematch_engine = rematch_engine or RematchEngine()
        self._layout = layout
        self._phone_rules = phone_rules

    def run(self, records: Sequence[Mapping[str, Any]]) -> ReconcileResult:
        cleaned = self._cleaner.clean(records)
        partition = partition_deals(cleaned.deals, self._layout, cleaned.rejected)

        sales = index_deals(partition.sales, self._phone_rules)
        logistics = index_deals(partition.logistics, self._phone_rules)
        shipping = index_deals(partition.shipping, self._phone_rules)

        sales_logistics = self._linker.link(logistics, sales, "logistics->sales")
        logistics_shipping = self._linker.link(shipping, logistics, "shipping->logistics")

        groups = self._group_builder.build(sales_logistics, logistics_shipping)
        contacts = self._clusterer.cluster(groups)
        unmatched = build_unmatched_report(sales_logistics, logistics_shipping, groups, self._phone_rules)

        return ReconcileResult(
            partition=partition,
            sales_logistics=sales_logistics,
            logistics_shipping=logistics_shipping,
            groups=groups,
            contacts=contacts,
            unmatched=unmatched,
        )

    def rematch(self, result: ReconcileResult) -> RematchReport:
        """Suggest links for leftovers; never changes ``result``."""
        all_sales = index_deals(result.partition.sales, self._phone_rules)
        all_logistics = index_deals(result.partition.logistics, self._phone_rules)

        report = RematchReport(
            logistics_without_sales=self._rematch_engine.rematch(
                result.sales_logistics.unmatched_source,
                all_sales,
                result.sales_logistics.claimed_target_ids(),
                "logistics->sales rematch",
            ),
            shipping_without_logistics=self._rematch_engine.rematch(
                result.logistics_shipping.unmatched_source,
                all_logistics,
                result.logistics_shipping.claimed_target_ids(),
                "shipping->logistics rematch",
            ),
        )
        log.info(
            "Rematch suggestions: logistics=%d shipping=%d",
            len(report.logistics_without_sales),
            len(report.shipping_without_logistics),
        )
        return report
