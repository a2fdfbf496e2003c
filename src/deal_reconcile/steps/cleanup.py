from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from deal_reconcile.errors import DealParseError
from deal_reconcile.models import CleanedDeals, Deal, PartitionedDeals, RejectedRecord
from deal_reconcile.schema import DealSchema, FieldTag, PipelineLayout
from deal_reconcile.steps.normalize import STAGE_ALIASES, normalize_stage

log = logging.getLogger(__name__)


class DealCleaner:
    """Turns raw records into Deals, applying per-tag transforms and stage aliases.

    Records that cannot be parsed (no id, no valid creation time) do not stop
    the batch. They are returned as ``rejected`` with their pipeline tag, so
    partitioning can count them.
    """

    def __init__(
        self,
        schema: DealSchema,
        tag_transforms: dict[FieldTag, Callable[[str], str]] | None = None,
        stage_aliases: Mapping[str, str] = STAGE_ALIASES,
    ) -> None:
        self._schema = schema
        self._tag_transforms = tag_transforms or {}
        self._stage_aliases = stage_aliases

    def clean(self, records: Sequence[Mapping[str, Any]]) -> CleanedDeals:
        cleaned = CleanedDeals()
        for record in records:
            attrs = dict(record)

            for tag, transform in self._tag_transforms.items():
                column = self._schema.column_for(tag)
                if column is None:
                    continue
                value = attrs.get(column)
                if value is None or isinstance(value, Mapping):
                    continue
                attrs[column] = transform(str(value))

            try:
                deal = self._schema.parse(attrs)
            except DealParseError as exc:
                cleaned.rejected.append(
                    RejectedRecord(
                        record_id=exc.record_id,
                        pipeline=self._schema.text_for(attrs, FieldTag.PIPELINE),
                        reason=str(exc),
                    )
                )
                continue

            stage = normalize_stage(deal.stage, self._stage_aliases)
            if stage != deal.stage:
                deal = dataclasses.replace(deal, stage=stage)
            cleaned.deals.append(deal)

        if cleaned.rejected:
            log.warning("Rejected %d records without an id or a valid creation time", len(cleaned.rejected))
        return cleaned


def partition_deals(
    deals: Sequence[Deal],
    layout: PipelineLayout,
    rejected: Sequence[RejectedRecord] = (),
) -> PartitionedDeals:
    """Split deals into the sales, logistics and shipping stages.

    Deals from another top-level pipeline are counted as ``skipped``; deals of
    the right pipeline with an unknown sub-pipeline are counted as
    ``unclassified``. Rejected records count as ``skipped`` when they belong to
    another pipeline and as ``invalid`` otherwise.
    """
    partition = PartitionedDeals()
    buckets = {
        layout.sales: partition.sales,
        layout.logistics: partition.logistics,
        layout.shipping: partition.shipping,
    }

    for deal in deals:
        if layout.pipeline is not None and deal.pipeline != layout.pipeline:
            partition.skipped += 1
            continue
        bucket = buckets.get(deal.sub_pipeline or "")
        if bucket is None:
            partition.unclassified += 1
            continue
        bucket.append(deal)

    for record in rejected:
        if layout.pipeline is not None and record.pipeline != layout.pipeline:
            partition.skipped += 1
        else:
            partition.invalid += 1

    log.info(
        "Partitioned deals: sales=%d logistics=%d shipping=%d skipped=%d unclassified=%d invalid=%d",
        len(partition.sales),
        len(partition.logistics),
        len(partition.shipping),
        partition.skipped,
        partition.unclassified,
        partition.invalid,
    )
    return partition
