from __future__ import annotations


class ReconcileError(Exception):
    """Base class for errors raised by the reconciliation engine."""


class DealParseError(ReconcileError, ValueError):
    """A raw record cannot be turned into a Deal (no id or no creation time)."""

    def __init__(self, message: str, record_id: str | None = None) -> None:
        super().__init__(message)
        self.record_id = record_id


class GroupAssemblyError(ReconcileError):
    """An order group broke a structural invariant, e.g. all three slots empty.

    Always a bug in group assembly, never a data problem.
    """


__all__ = ["ReconcileError", "DealParseError", "GroupAssemblyError"]
