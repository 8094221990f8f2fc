from typing import Any, Iterable, List, Optional, Sequence

from ..action_types import ActionType, parse_action_type
from ..scoring.rotation import ROTATION_SLOTS


class ValidationError(Exception):
    """Raised when a lineup or ledger entry is invalid."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def validate_lineup(positions: Sequence[Any], libero_id: Any) -> List[str]:
    """Validate a starting lineup and return the seven player ids.

    Rules:
    - Exactly six position slots, position 1 being the server
    - Every slot and the libero is a non-empty string
    - All seven ids are pairwise distinct
    - The libero is not the server
    """

    if isinstance(positions, (str, bytes)) or len(positions) != ROTATION_SLOTS:
        raise ValidationError(
            f"Starting rotation requires exactly {ROTATION_SLOTS} positions."
        )

    ids = list(positions) + [libero_id]
    for index, value in enumerate(ids, start=1):
        if not isinstance(value, str) or not value.strip():
            label = "Libero" if index > ROTATION_SLOTS else f"Position {index}"
            raise ValidationError(f"{label} must reference a player.")

    if len(set(ids)) != len(ids):
        raise ValidationError("Positions and libero must be distinct players.")

    if positions[0] == libero_id:
        raise ValidationError("Libero cannot be the server (position 1).")

    return ids


def validate_point_delta(value: Any) -> int:
    # bool is a subclass of int; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError("pointDelta must be an integer (not a boolean).")
    try:
        delta = int(value)
    except (TypeError, ValueError):
        raise ValidationError("pointDelta must be an integer.")
    if delta not in (-1, 0, 1):
        raise ValidationError("pointDelta must be -1, 0 or 1.")
    return delta


def validate_action_type(value: Any) -> ActionType:
    if isinstance(value, ActionType):
        return value
    if not isinstance(value, str):
        raise ValidationError("actionType must be a string.")
    try:
        return parse_action_type(value)
    except ValueError as exc:
        raise ValidationError(str(exc))


def validate_outcome(value: Any, *, max_length: int = 40) -> str:
    if not isinstance(value, str):
        raise ValidationError("outcome must be a string.")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError("outcome must not be empty.")
    if len(trimmed) > max_length:
        raise ValidationError(f"outcome must be at most {max_length} characters.")
    return trimmed


def missing_players(requested: Iterable[str], found: Iterable[str]) -> Optional[List[str]]:
    absent = sorted(set(requested) - set(found))
    return absent or None
