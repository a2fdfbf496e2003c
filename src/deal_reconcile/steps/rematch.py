from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Collection, Sequence

from deal_reconcile.interfaces import RecordScorer
from deal_reconcile.models import (
    IndexedRecord,
    RematchCandidate,
    RematchEntry,
    Recommendation,
    TimeField,
)
from deal_reconcile.steps.indexing import build_index, by_phone, by_phone_tail, by_secondary_id
from deal_reconcile.steps.scoring import RELAXED_RULES, DealScorer

log = logging.getLogger(__name__)


class RematchEngine:
    """Second pass over records the first pass left unmatched.

    Each leftover is rescored against the whole opposing dataset, not only the
    first pass's leftovers, with relaxed rules. The result is a ranked list of
    suggestions. A candidate the first pass already assigned is flagged
    ``already_matched`` and left for a human to adjudicate.
    """

    def __init__(
        self,
        scorer: RecordScorer | None = None,
        top_n: int = 3,
        min_candidate_score: int = 20,
        auto_match_above: int = 55,
        review_at_least: int = 35,
        source_time: TimeField = TimeField.CREATED,
        target_time: TimeField = TimeField.MODIFIED,
    ) -> None:
        self._scorer = scorer or DealScorer(RELAXED_RULES)
        self._top_n = top_n
        self._min_candidate_score = min_candidate_score
        self._auto_match_above = auto_match_above
        self._review_at_least = review_at_least
        self._source_time = source_time
        self._target_time = target_time

    def rematch(
        self,
        unmatched: Sequence[IndexedRecord],
        targets: Sequence[IndexedRecord],
        claimed_ids: Collection[str],
        label: str = "rematch",
    ) -> list[RematchEntry]:
        indexes = (
            (by_phone, build_index(targets, by_phone)),
            (by_phone_tail, build_index(targets, by_phone_tail)),
            (by_secondary_id, build_index(targets, by_secondary_id)),
        )

        entries: list[RematchEntry] = []
        for source in unmatched:
            found: dict[str, IndexedRecord] = {}
            for key, index in indexes:
                value = key(source)
                if not value:
                    continue
                for target in index.get(value, ()):
                    found.setdefault(target.deal_id, target)
            entries.append(self._entry(source, list(found.values()), claimed_ids))

        counts = Counter(entry.recommendation for entry in entries)
        log.info(
            "%s: %d records, auto_match=%d review=%d truly_unmatched=%d",
            label,
            len(entries),
            counts[Recommendation.AUTO_MATCH],
            counts[Recommendation.REVIEW],
            counts[Recommendation.TRULY_UNMATCHED],
        )
        return entries

    def recommend(self, best: RematchCandidate | None) -> Recommendation:
        if best is not None and best.score > self._auto_match_above:
            return Recommendation.AUTO_MATCH
        if best is not None and best.score >= self._review_at_least:
            return Recommendation.REVIEW
        return Recommendation.TRULY_UNMATCHED

    def _entry(
        self,
        source: IndexedRecord,
        targets: Sequence[IndexedRecord],
        claimed_ids: Collection[str],
    ) -> RematchEntry:
        scored: list[RematchCandidate] = []
        for target in targets:
            candidate = self._scorer.score(source, target, self._source_time, self._target_time)
            if candidate.score < self._min_candidate_score:
                continue
            scored.append(
                RematchCandidate(
                    target_id=target.deal_id,
                    name=target.deal.name,
                    phone=target.phone,
                    score=candidate.score,
                    match_details=", ".join(candidate.details),
                    time_delta_seconds=candidate.time_delta_seconds,
                    already_matched=target.deal_id in claimed_ids,
                )
            )

        scored.sort(key=lambda c: (-c.score, c.time_delta_seconds))
        top = scored[: self._top_n]
        best = top[0] if top else None
        return RematchEntry(
            deal_id=source.deal_id,
            name=source.deal.name,
            phone=source.phone,
            stage=source.deal.stage,
            created=source.deal.created_time,
            candidates=top,
            best_match=best,
            recommendation=self.recommend(best),
        )
