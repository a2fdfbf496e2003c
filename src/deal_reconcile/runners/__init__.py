from deal_reconcile.runners.local import LocalReconcilePipeline

__all__ = ["LocalReconcilePipeline"]
