from __future__ import annotations

import logging
from collections.abc import Sequence

from deal_reconcile.interfaces import RecordScorer
from deal_reconcile.models import IndexedRecord, LinkResult, MatchCandidate, TimeField
from deal_reconcile.steps.indexing import build_index, by_phone, by_secondary_id

log = logging.getLogger(__name__)


class GreedyPipelineLinker:
    """Links each source record to its best-scoring target, first come first served.

    Sources are processed by ascending creation time and every decision is
    final: a target claimed by an earlier source is never offered to a later
    one, even if the later source would score higher. Candidates come only
    from the phone and chat-id indexes, never from a full cross product.
    """

    def __init__(
        self,
        scorer: RecordScorer,
        threshold: int = 60,
        source_time: TimeField = TimeField.CREATED,
        target_time: TimeField = TimeField.MODIFIED,
    ) -> None:
        self._scorer = scorer
        self._threshold = threshold
        self._source_time = source_time
        self._target_time = target_time

    def link(
        self,
        sources: Sequence[IndexedRecord],
        targets: Sequence[IndexedRecord],
        label: str = "link",
    ) -> LinkResult:
        targets_by_phone = build_index(targets, by_phone)
        targets_by_secondary_id = build_index(targets, by_secondary_id)

        matched: list[MatchCandidate] = []
        matched_source_ids: set[str] = set()
        claimed_target_ids: set[str] = set()

        for source in sorted(sources, key=lambda record: record.deal.created_time):
            best = self._best_candidate(
                source,
                self._gather(source, targets_by_phone, targets_by_secondary_id),
                claimed_target_ids,
            )
            if best is None:
                continue
            matched.append(best)
            matched_source_ids.add(source.deal_id)
            claimed_target_ids.add(best.target_id)
            log.debug("%s: %s -> %s score=%d", label, best.source_id, best.target_id, best.score)

        result = LinkResult(
            matched=matched,
            unmatched_source=[record for record in sources if record.deal_id not in matched_source_ids],
            unmatched_target=[record for record in targets if record.deal_id not in claimed_target_ids],
        )
        log.info(
            "%s: matched=%d unmatched_source=%d unmatched_target=%d",
            label,
            len(result.matched),
            len(result.unmatched_source),
            len(result.unmatched_target),
        )
        return result

    def _gather(
        self,
        source: IndexedRecord,
        targets_by_phone: dict[str, list[IndexedRecord]],
        targets_by_secondary_id: dict[str, list[IndexedRecord]],
    ) -> list[IndexedRecord]:
        found: dict[str, IndexedRecord] = {}
        if source.phone:
            for target in targets_by_phone.get(source.phone, ()):
                found.setdefault(target.deal_id, target)
        if source.secondary_id:
            for target in targets_by_secondary_id.get(source.secondary_id, ()):
                found.setdefault(target.deal_id, target)
        return list(found.values())

    def _best_candidate(
        self,
        source: IndexedRecord,
        targets: Sequence[IndexedRecord],
        claimed_target_ids: set[str],
    ) -> MatchCandidate | None:
        valid: list[MatchCandidate] = []
        for target in targets:
            if target.deal_id in claimed_target_ids:
                continue
            candidate = self._scorer.score(source, target, self._source_time, self._target_time)
            if candidate.score >= self._threshold:
                valid.append(candidate)
        if not valid:
            return None
        # min() keeps the first of equal keys, so remaining ties follow discovery order.
        return min(valid, key=lambda c: (-c.score, c.time_delta_seconds))
