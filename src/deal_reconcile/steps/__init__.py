from deal_reconcile.steps.cleanup import DealCleaner, partition_deals
from deal_reconcile.steps.clustering import ContactClusterer
from deal_reconcile.steps.grouping import OrderGroupBuilder
from deal_reconcile.steps.indexing import build_index, index_deal, index_deals
from deal_reconcile.steps.linking import GreedyPipelineLinker
from deal_reconcile.steps.normalize import (
    COLOMBIA,
    PhoneRules,
    extract_secondary_id,
    normalize_name,
    normalize_phone,
    normalize_stage,
)
from deal_reconcile.steps.rematch import RematchEngine
from deal_reconcile.steps.scoring import (
    RELAXED_RULES,
    STRICT_RULES,
    DealScorer,
    OverrideMode,
    ScoringRules,
    TemporalTier,
    string_similarity,
)

__all__ = [
    "DealCleaner",
    "partition_deals",
    "ContactClusterer",
    "OrderGroupBuilder",
    "build_index",
    "index_deal",
    "index_deals",
    "GreedyPipelineLinker",
    "COLOMBIA",
    "PhoneRules",
    "extract_secondary_id",
    "normalize_name",
    "normalize_phone",
    "normalize_stage",
    "RematchEngine",
    "RELAXED_RULES",
    "STRICT_RULES",
    "DealScorer",
    "OverrideMode",
    "ScoringRules",
    "TemporalTier",
    "string_similarity",
]
