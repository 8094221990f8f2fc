from .validation import ValidationError, validate_lineup
from .actions import record_action, delete_action, list_actions
from .rotations import (
    set_starting_rotation,
    delete_starting_rotation,
    get_starting_rotation,
    set_initial_server,
    get_rotation_state,
)
from .stats import (
    get_player_stats,
    get_match_stats,
    get_set_stats,
    get_match_totals_by_player,
)

__all__ = [
    "ValidationError",
    "validate_lineup",
    "record_action",
    "delete_action",
    "list_actions",
    "set_starting_rotation",
    "delete_starting_rotation",
    "get_starting_rotation",
    "set_initial_server",
    "get_rotation_state",
    "get_player_stats",
    "get_match_stats",
    "get_set_stats",
    "get_match_totals_by_player",
]
