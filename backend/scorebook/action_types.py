"""The closed vocabulary of ledger action types.

The string values are the wire format and are stored verbatim; they must never
be renamed.
"""

from __future__ import annotations

import re
from enum import Enum


class ActionType(str, Enum):
    # inRally
    IN_RALLY_OVER_PASS_IN_PLAY = "inRally.overPassInPlay"
    IN_RALLY_ONE_SERVE = "inRally.oneServe"
    IN_RALLY_TWO_SERVE = "inRally.twoServe"
    IN_RALLY_THREE_SERVE = "inRally.threeServe"
    IN_RALLY_DIG = "inRally.dig"
    IN_RALLY_HIT_STILL_IN_PLAY = "inRally.hitStillInPlay"
    IN_RALLY_BLOCK_STILL_IN_PLAY = "inRally.blockStillInPlay"

    # receive
    RECEIVE_ONE = "receive.one"
    RECEIVE_TWO = "receive.two"
    RECEIVE_THREE = "receive.three"
    RECEIVE_OVERPASS = "receive.overpass"

    # earned
    EARNED_ACE = "earned.ace"
    EARNED_SPIKE = "earned.spike"
    EARNED_TIP = "earned.tip"
    EARNED_DUMP = "earned.dump"
    EARNED_DOWN_BALL_HIT = "earned.downBallHit"
    EARNED_BLOCK = "earned.block"
    EARNED_ASSIST = "earned.assist"

    # error
    ERROR_SERVE = "error.serve"
    ERROR_SPIKE = "error.spike"
    ERROR_TIP = "error.tip"
    ERROR_DUMP = "error.dump"
    ERROR_DOWN_BALL_HIT = "error.downBallHit"
    ERROR_BLOCK = "error.block"
    ERROR_WHOSE_BALL = "error.whoseBall"
    ERROR_RECEIVE = "error.receive"
    ERROR_DIG = "error.dig"
    ERROR_SET = "error.set"
    ERROR_FREE_BALL_RECEIVE = "error.freeBallReceive"
    ERROR_SECOND_BALL_RETURN = "error.secondBallReturn"
    ERROR_THIRD_BALL_RETURN = "error.thirdBallReturn"

    # fault
    FAULT_NET = "fault.net"
    FAULT_BALL_HANDLING = "fault.ballHandling"
    FAULT_UNDER = "fault.under"
    FAULT_OVER_THE_NET = "fault.overTheNet"
    FAULT_FOOT_FAULT = "fault.footFault"
    FAULT_OUT_OF_ROTATION = "fault.outOfRotation"
    FAULT_BACK_ROW_ATTACK = "fault.backRowAttack"


ACTION_TYPE_VALUES = frozenset(t.value for t in ActionType)

ATTACK_TYPES = frozenset(
    {
        ActionType.EARNED_SPIKE,
        ActionType.EARNED_TIP,
        ActionType.EARNED_DUMP,
        ActionType.EARNED_DOWN_BALL_HIT,
        ActionType.ERROR_SPIKE,
        ActionType.ERROR_TIP,
        ActionType.ERROR_DUMP,
        ActionType.ERROR_DOWN_BALL_HIT,
        ActionType.IN_RALLY_HIT_STILL_IN_PLAY,
    }
)
SERVE_TYPES = frozenset(
    {
        ActionType.EARNED_ACE,
        ActionType.ERROR_SERVE,
        ActionType.IN_RALLY_ONE_SERVE,
        ActionType.IN_RALLY_TWO_SERVE,
        ActionType.IN_RALLY_THREE_SERVE,
    }
)
BLOCK_TYPES = frozenset(
    {
        ActionType.EARNED_BLOCK,
        ActionType.ERROR_BLOCK,
        ActionType.IN_RALLY_BLOCK_STILL_IN_PLAY,
    }
)
RECEPTION_TYPES = frozenset(
    {
        ActionType.RECEIVE_ONE,
        ActionType.RECEIVE_TWO,
        ActionType.RECEIVE_THREE,
        ActionType.RECEIVE_OVERPASS,
        ActionType.ERROR_RECEIVE,
        ActionType.ERROR_DIG,
        ActionType.ERROR_FREE_BALL_RECEIVE,
        ActionType.ERROR_WHOSE_BALL,
    }
)

CATEGORY_MEMBERSHIP: dict[str, frozenset[ActionType]] = {
    "attack": ATTACK_TYPES,
    "serve": SERVE_TYPES,
    "block": BLOCK_TYPES,
    "reception": RECEPTION_TYPES,
}

# Keyed by wire value so stored rows can be looked up directly.
RECEPTION_RATINGS: dict[str, str] = {
    ActionType.RECEIVE_ONE.value: "one",
    ActionType.RECEIVE_TWO.value: "two",
    ActionType.RECEIVE_THREE.value: "three",
    ActionType.RECEIVE_OVERPASS.value: "overpass",
}


def parse_action_type(value: str) -> ActionType:
    """Return the :class:`ActionType` for ``value`` or raise ``ValueError``."""

    try:
        return ActionType(value)
    except ValueError:
        raise ValueError(f"unknown action type '{value}'") from None


def categories_for(action_type: str) -> list[str]:
    try:
        member = ActionType(action_type)
    except ValueError:
        return []
    return [name for name, members in CATEGORY_MEMBERSHIP.items() if member in members]


def format_action_label(value: str) -> str:
    """Human label for an action type, e.g. ``earned.downBallHit`` -> ``Down Ball Hit``."""

    core = value.split(".", 1)[1] if "." in value else value
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", core).replace(".", " ")
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())
