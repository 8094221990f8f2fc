"""Helpers for working with database/SQLAlchemy errors."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

_UNIQUE_VIOLATION_SQLSTATES = {"23505"}


def is_unique_violation(exc: SQLAlchemyError, constraint: str | None = None) -> bool:
    """Return ``True`` if ``exc`` was raised by a unique constraint.

    Parameters
    ----------
    exc:
        The SQLAlchemy exception to inspect.
    constraint:
        Optional substring (a constraint/index name such as
        ``"uq_match_action_set_id_sequence"`` or a column list such as
        ``"match_action.sequence"``) that must appear in the database error
        message. SQLite reports columns rather than constraint names, so
        callers may pass either.
    """

    if not isinstance(exc, IntegrityError):
        return False

    orig = getattr(exc, "orig", None)
    if orig is None:
        return False

    message = str(orig).lower()
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _UNIQUE_VIOLATION_SQLSTATES:
        return True if constraint is None else constraint.lower() in message

    if "unique" not in message and "duplicate" not in message:
        return False

    return True if constraint is None else constraint.lower() in message
