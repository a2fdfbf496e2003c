from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from deal_reconcile.models import IndexedRecord, MatchCandidate, TimeField
from deal_reconcile.steps.normalize import normalize_name

_UNIT_SECONDS = {"s": 1.0, "h": 3600.0, "d": 86400.0}
_DAY = 86400.0


class OverrideMode(StrEnum):
    MAX = "max"
    REPLACE = "replace"


@dataclass(frozen=True)
class TemporalTier:
    """Points for a time delta strictly below ``limit_seconds``."""

    limit_seconds: float
    points: int
    label: str
    unit: str | None = None

    def describe(self, delta_seconds: float) -> str:
        if self.unit is None:
            return f"temporal({self.label})"
        value = round(delta_seconds / _UNIT_SECONDS[self.unit])
        return f"temporal({self.label}, {value}{self.unit})"


@dataclass(frozen=True)
class ScoringRules:
    """Point values and thresholds for the additive match score."""

    phone_exact: int = 40
    phone_partial: int = 0
    name_exact: int = 20
    name_fuzzy: int = 10
    name_fuzzy_min: float = 0.8
    secondary_id_exact: int = 25
    address: int = 10
    address_min: float = 0.7
    same_city: int = 0
    amount_exact: int = 5
    temporal_tiers: tuple[TemporalTier, ...] = (
        TemporalTier(3600, 15, "<1h", "s"),
        TemporalTier(_DAY, 10, "<24h", "h"),
        TemporalTier(2 * _DAY, 5, "<48h"),
    )
    override_floor: int | None = None
    override_mode: OverrideMode = OverrideMode.MAX


STRICT_RULES = ScoringRules()

RELAXED_RULES = replace(
    STRICT_RULES,
    phone_partial=30,
    same_city=5,
    temporal_tiers=STRICT_RULES.temporal_tiers + (TemporalTier(30 * _DAY, 2, "<30d", "d"),),
    override_floor=70,
)


def string_similarity(left: str | None, right: str | None) -> float:
    """Dice coefficient over character bigrams, case and whitespace folded."""
    if not left or not right:
        return 0.0
    left = " ".join(left.lower().split())
    right = " ".join(right.lower().split())
    if left == right:
        return 1.0

    left_bigrams = _bigrams(left)
    right_bigrams = _bigrams(right)
    total = len(left_bigrams) + len(right_bigrams)
    if total == 0:
        return 0.0
    return 2 * len(left_bigrams & right_bigrams) / total


def _bigrams(text: str) -> set[str]:
    return {text[i : i + 2] for i in range(len(text) - 1)}


class DealScorer:
    """Additive point score between two indexed records.

    Phone identity dominates; name, chat id, address, timing and amount
    corroborate. With ``override_floor`` set, records sharing both the
    normalized name and the phone are never scored below the floor.
    """

    def __init__(self, rules: ScoringRules = STRICT_RULES) -> None:
        self._rules = rules

    @property
    def rules(self) -> ScoringRules:
        return self._rules

    def score(
        self,
        source: IndexedRecord,
        target: IndexedRecord,
        source_time: TimeField = TimeField.CREATED,
        target_time: TimeField = TimeField.MODIFIED,
    ) -> MatchCandidate:
        rules = self._rules
        details: list[str] = []
        score = 0

        same_phone = bool(source.phone and source.phone == target.phone)
        if same_phone:
            score += rules.phone_exact
            details.append("phone exact")
        elif rules.phone_partial and source.phone_tail and source.phone_tail == target.phone_tail:
            score += rules.phone_partial
            details.append(f"phone last{len(source.phone_tail)}")

        same_name = bool(source.normalized_name and source.normalized_name == target.normalized_name)
        if same_name:
            score += rules.name_exact
            details.append("name exact")
        elif source.normalized_name and target.normalized_name:
            name_sim = string_similarity(source.normalized_name, target.normalized_name)
            if name_sim > rules.name_fuzzy_min:
                score += rules.name_fuzzy
                details.append(f"name fuzzy({name_sim * 100:.0f}%)")

        if source.secondary_id and source.secondary_id == target.secondary_id:
            score += rules.secondary_id_exact
            details.append("chat id exact")

        source_deal = source.deal
        target_deal = target.deal
        if rules.address and source_deal.address and target_deal.address:
            address_sim = string_similarity(source_deal.address, target_deal.address)
            if address_sim > rules.address_min:
                score += rules.address
                details.append(f"address({address_sim * 100:.0f}%)")

        if rules.same_city and source_deal.city and target_deal.city:
            source_city = normalize_name(source_deal.city)
            if source_city and source_city == normalize_name(target_deal.city):
                score += rules.same_city
                details.append("same city")

        delta = abs((source_deal.time_of(source_time) - target_deal.time_of(target_time)).total_seconds())
        points, description = self._temporal(delta)
        score += points
        details.append(description)

        if source_deal.amount and target_deal.amount and source_deal.amount == target_deal.amount:
            score += rules.amount_exact
            details.append("amount exact")

        if rules.override_floor is not None and same_name and same_phone:
            floor = rules.override_floor
            if rules.override_mode == OverrideMode.REPLACE or score < floor:
                score = floor
                details = [f"name+phone override({floor})"]

        return MatchCandidate(
            source=source,
            target=target,
            score=score,
            details=details,
            time_delta_seconds=delta,
        )

    def _temporal(self, delta: float) -> tuple[int, str]:
        tiers = self._rules.temporal_tiers
        for tier in tiers:
            if delta < tier.limit_seconds:
                return tier.points, tier.describe(delta)
        widest = tiers[-1].label.lstrip("<") if tiers else "0s"
        return 0, f"temporal(>{widest}, {round(delta / _DAY)}d)"
