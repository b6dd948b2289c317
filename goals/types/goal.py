"""Goal entity models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from goals.dates import utc_now

MIN_RATING_VALUE = 1
MAX_RATING_VALUE = 5

Rating = Annotated[int, Field(ge=MIN_RATING_VALUE, le=MAX_RATING_VALUE)]


def new_id() -> str:
    return uuid.uuid4().hex


class GoalStatus(str, Enum):
    """Closed set of goal states."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"
    COMPLETED = "completed"
    NOT_COMPLETED = "notCompleted"

    @property
    def is_terminal(self) -> bool:
        return self in (GoalStatus.COMPLETED, GoalStatus.NOT_COMPLETED)


class RecurPeriodUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class PauseUntilDate(BaseModel):
    """Withhold the goal until a calendar day is reached."""

    kind: Literal["date"] = "date"
    until: date


class PauseUntilGoal(BaseModel):
    """Withhold the goal until another goal is deleted or reaches a terminal state."""

    kind: Literal["goal"] = "goal"
    goal_id: str


PauseCondition = Annotated[PauseUntilDate | PauseUntilGoal, Field(discriminator="kind")]


class GoalStep(BaseModel):
    """Checklist item attached to a goal."""

    id: str = Field(default_factory=new_id)
    text: str = ""
    completed: bool = False
    order: int = 0


class GoalResource(BaseModel):
    """Reference material attached to a goal."""

    id: str = Field(default_factory=new_id)
    text: str = ""
    type: str = "general"


class Goal(BaseModel):
    """Tracked goal with ratings, scheduling, pause, recurrence and review state."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, frozen=True)
    title: str = ""
    motivation: Rating
    urgency: Rating
    deadline: date | None = None
    status: GoalStatus = GoalStatus.INACTIVE
    created_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now)

    pause: PauseCondition | None = None
    # Set when a human activated the goal outside of priority selection.
    force_activated: bool = False

    is_recurring: bool = False
    recur_period: int = Field(default=7, gt=0)
    recur_period_unit: RecurPeriodUnit = RecurPeriodUnit.DAYS
    recur_count: int = Field(default=0, ge=0)
    completion_count: int = Field(default=0, ge=0)
    not_completed_count: int = Field(default=0, ge=0)

    review_interval_index: int = Field(default=0, ge=0)
    review_dates: list[datetime] = Field(default_factory=list)
    last_review_at: datetime | None = None

    steps: list[GoalStep] = Field(default_factory=list)
    resources: list[GoalResource] = Field(default_factory=list)

    @property
    def pause_until(self) -> date | None:
        if isinstance(self.pause, PauseUntilDate):
            return self.pause.until
        return None

    @property
    def pause_until_goal_id(self) -> str | None:
        if isinstance(self.pause, PauseUntilGoal):
            return self.pause.goal_id
        return None


class GoalDraft(BaseModel):
    """Validated creation request."""

    model_config = ConfigDict(extra="forbid")

    title: str = ""
    motivation: Rating
    urgency: Rating
    deadline: date | None = None
    is_recurring: bool = False
    recur_period: int = Field(default=7, gt=0)
    recur_period_unit: RecurPeriodUnit = RecurPeriodUnit.DAYS
    steps: list[GoalStep] = Field(default_factory=list)
    resources: list[GoalResource] = Field(default_factory=list)


class GoalPatch(BaseModel):
    """Partial update; only fields explicitly provided are applied."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    motivation: Rating | None = None
    urgency: Rating | None = None
    deadline: date | None = None
    is_recurring: bool | None = None
    recur_period: int | None = Field(default=None, gt=0)
    recur_period_unit: RecurPeriodUnit | None = None
    steps: list[GoalStep] | None = None
    resources: list[GoalResource] | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)
