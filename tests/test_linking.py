from dataclasses import replace
from datetime import datetime, timedelta, timezone

from deal_reconcile.models import IndexedRecord, MatchCandidate, TimeField
from deal_reconcile.steps.indexing import index_deals
from deal_reconcile.steps.linking import GreedyPipelineLinker
from deal_reconcile.steps.scoring import STRICT_RULES, DealScorer

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
PHONE = "3001234567"


class CountingScorer:
    def __init__(self) -> None:
        self.inner = DealScorer(STRICT_RULES)
        self.calls: list[tuple[str, str]] = []

    def score(
        self,
        source: IndexedRecord,
        target: IndexedRecord,
        source_time: TimeField,
        target_time: TimeField,
    ) -> MatchCandidate:
        self.calls.append((source.deal_id, target.deal_id))
        return self.inner.score(source, target, source_time, target_time)


def _pairs(result) -> list[tuple[str, str, int]]:
    return [(m.source_id, m.target_id, m.score) for m in result.matched]


def test_links_logistics_to_closest_sales(make_deal) -> None:
    sales = index_deals(
        [
            make_deal("s-old", phone=PHONE, modified=BASE_TIME - timedelta(days=3)),
            make_deal("s-new", phone=PHONE, modified=BASE_TIME - timedelta(minutes=10)),
        ]
    )
    logistics = index_deals([make_deal("l1", phone=PHONE)])

    result = GreedyPipelineLinker(DealScorer()).link(logistics, sales, "logistics->sales")

    assert _pairs(result) == [("l1", "s-new", 75)]
    assert result.unmatched_source == []
    assert [record.deal_id for record in result.unmatched_target] == ["s-old"]


def test_threshold_is_inclusive(make_deal) -> None:
    # phone 40 + name 20 + no temporal points = 60
    sales = index_deals([make_deal("s1", phone=PHONE, modified=BASE_TIME - timedelta(days=3))])
    logistics = index_deals([make_deal("l1", phone=PHONE)])

    at_threshold = GreedyPipelineLinker(DealScorer(STRICT_RULES), threshold=60).link(logistics, sales)
    below = GreedyPipelineLinker(DealScorer(replace(STRICT_RULES, name_exact=19)), threshold=60).link(
        logistics, sales
    )

    assert _pairs(at_threshold) == [("l1", "s1", 60)]
    assert below.matched == []
    assert [record.deal_id for record in below.unmatched_source] == ["l1"]
    assert [record.deal_id for record in below.unmatched_target] == ["s1"]


def test_earlier_source_keeps_target_a_later_source_scores_higher(make_deal) -> None:
    sales = index_deals([make_deal("s1", phone=PHONE, modified=BASE_TIME + timedelta(hours=31, minutes=5))])
    logistics = index_deals(
        [
            # 55 minutes from s1: scores 75.
            make_deal("l-late", phone=PHONE, created=BASE_TIME + timedelta(hours=30, minutes=10)),
            # 65 minutes from s1: scores 70, but is processed first.
            make_deal("l-early", phone=PHONE, created=BASE_TIME + timedelta(hours=30)),
        ]
    )
    scorer = CountingScorer()

    result = GreedyPipelineLinker(scorer).link(logistics, sales)

    assert _pairs(result) == [("l-early", "s1", 70)]
    assert [record.deal_id for record in result.unmatched_source] == ["l-late"]
    assert result.unmatched_target == []
    # Claimed targets are skipped without scoring.
    assert scorer.calls == [("l-early", "s1")]


def test_ties_prefer_smallest_time_delta(make_deal) -> None:
    sales = index_deals(
        [
            make_deal("s-far", phone=PHONE, modified=BASE_TIME - timedelta(minutes=40)),
            make_deal("s-near", phone=PHONE, modified=BASE_TIME - timedelta(minutes=10)),
        ]
    )
    logistics = index_deals([make_deal("l1", phone=PHONE)])

    result = GreedyPipelineLinker(DealScorer()).link(logistics, sales)

    assert _pairs(result) == [("l1", "s-near", 75)]
    assert [record.deal_id for record in result.unmatched_target] == ["s-far"]


def test_candidate_found_through_both_indexes_is_scored_once(make_deal) -> None:
    chat = "https://dash.callbell.eu/chat/42"
    sales = index_deals([make_deal("s1", phone=PHONE, chat_link=chat)])
    logistics = index_deals([make_deal("l1", phone=PHONE, chat_link=chat, created=BASE_TIME + timedelta(minutes=5))])
    scorer = CountingScorer()

    result = GreedyPipelineLinker(scorer).link(logistics, sales)

    assert scorer.calls == [("l1", "s1")]
    assert _pairs(result) == [("l1", "s1", 100)]


def test_chat_id_alone_can_link(make_deal) -> None:
    chat = "https://dash.callbell.eu/chat/42"
    sales = index_deals([make_deal("s1", chat_link=chat)])
    logistics = index_deals([make_deal("l1", chat_link=chat, created=BASE_TIME + timedelta(minutes=5))])

    result = GreedyPipelineLinker(DealScorer()).link(logistics, sales)

    assert _pairs(result) == [("l1", "s1", 60)]


def test_records_without_shared_identifier_are_never_compared(make_deal) -> None:
    sales = index_deals([make_deal("s1", phone="3009999999")])
    logistics = index_deals([make_deal("l1"), make_deal("l2", phone=PHONE)])
    scorer = CountingScorer()

    result = GreedyPipelineLinker(scorer).link(logistics, sales)

    assert scorer.calls == []
    assert result.matched == []
    assert [record.deal_id for record in result.unmatched_source] == ["l1", "l2"]


def test_linking_is_deterministic_regardless_of_input_order(make_deal) -> None:
    sales = index_deals(
        [make_deal(f"s{i}", phone=f"300000000{i % 3}", modified=BASE_TIME + timedelta(hours=i)) for i in range(6)]
    )
    logistics = index_deals(
        [
            make_deal(f"l{i}", phone=f"300000000{i % 3}", created=BASE_TIME + timedelta(hours=i, minutes=15))
            for i in range(6)
        ]
    )
    linker = GreedyPipelineLinker(DealScorer())

    forward = linker.link(logistics, sales)
    again = linker.link(logistics, sales)
    reversed_sources = linker.link(list(reversed(logistics)), sales)

    assert _pairs(forward) == _pairs(again) == _pairs(reversed_sources)
    assert _pairs(forward) == [(f"l{i}", f"s{i}", 75) for i in range(6)]
