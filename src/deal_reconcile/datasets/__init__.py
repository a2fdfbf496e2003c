from deal_reconcile.datasets.profiles import BIGIN_COLUMNS, BIGIN_LAYOUT, BIGIN_SCHEMA
from deal_reconcile.datasets.reference import ReferenceDealGenerator

__all__ = ["BIGIN_COLUMNS", "BIGIN_LAYOUT", "BIGIN_SCHEMA", "ReferenceDealGenerator"]
