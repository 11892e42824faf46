"""
Transition tables for entities with a closed status enumeration.
"""
from typing import Dict, FrozenSet
import enum

from triptracker.core.errors import InvalidTransitionError

TransitionTable = Dict[enum.Enum, FrozenSet[enum.Enum]]


def check_transition(table: TransitionTable, entity: str, current: enum.Enum, target: enum.Enum) -> None:
    """Raise InvalidTransitionError unless current -> target is listed in table."""
    allowed = table.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransitionError(
            f"{entity} cannot move from {current.value} to {target.value}",
            details={"from": current.value, "to": target.value},
        )
