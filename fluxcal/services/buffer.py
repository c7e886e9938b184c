"""Next-day calorie buffer (single-use, non-stacking).

Run once per finished day.  Under-eating relative to both the goal and
TDEE earns the difference as extra allowance for the following day
only.  Otherwise no buffer is granted and any buffer dated on or before
that following day is revoked.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

REASON_EXCEEDED_TDEE = "exceeded_tdee"
REASON_MET_OR_EXCEEDED_GOAL = "met_or_exceeded_goal"


@dataclass(frozen=True, slots=True)
class BufferDecision:
    """Outcome of a day-end buffer calculation.

    Attributes:
        set: ``True`` when a new buffer was granted.
        amount: Granted kcal (``None`` when not set).
        for_date: Day the granted buffer applies to.
        reason: Why no buffer was granted (``None`` when set).
        cleared: ``True`` when an existing buffer must be removed.
    """

    set: bool
    amount: int | None = None
    for_date: date | None = None
    reason: str | None = None
    cleared: bool = False


def compute_buffer(
    consumed_yesterday: float,
    goal_or_tdee: float,
    tdee: float,
    tomorrow: date,
    current_for_date: date | None = None,
) -> BufferDecision:
    """Decide the buffer for *tomorrow* from a finished day's intake.

    Args:
        consumed_yesterday: kcal eaten on the finished day.
        goal_or_tdee: Daily goal, or TDEE when no goal is set.
        tdee: Total daily energy expenditure.
        tomorrow: The day a granted buffer would apply to.
        current_for_date: ``for_date`` of the buffer already stored, if any.
    """
    if consumed_yesterday < goal_or_tdee and consumed_yesterday < tdee:
        return BufferDecision(
            set=True,
            amount=math.floor(goal_or_tdee - consumed_yesterday + 0.5),
            for_date=tomorrow,
        )

    reason = REASON_EXCEEDED_TDEE if consumed_yesterday >= tdee else REASON_MET_OR_EXCEEDED_GOAL
    cleared = current_for_date is not None and current_for_date <= tomorrow
    return BufferDecision(set=False, reason=reason, cleared=cleared)


def active_buffer(amount: int | None, for_date: date | None, today: date) -> int:
    """Buffer usable today: the stored amount only when it is dated today."""
    if amount is None or for_date != today:
        return 0
    return amount


def effective_allowance(goal_or_tdee: float, buffer_amount: int) -> float:
    """Today's intake allowance including a valid buffer."""
    return goal_or_tdee + buffer_amount
