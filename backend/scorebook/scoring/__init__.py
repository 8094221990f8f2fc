"""Pure folds over a set's ledger: score/sequence/rally and rotation state."""

from . import ledger, rotation

__all__ = ["ledger", "rotation"]
