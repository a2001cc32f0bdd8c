"""Session models: closed intervals and the synthetic running interval."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, computed_field, model_validator


class Session(BaseModel):
    """A closed time interval recorded for one person.

    Timestamps are epoch milliseconds. ``duration`` is always derived from the
    interval, so a stored duration can never drift from its start and end.
    """

    id: int
    start_time: int = Field(
        validation_alias=AliasChoices("start_time", "startTime", "start"),
        serialization_alias="startTime",
    )
    end_time: int = Field(
        validation_alias=AliasChoices("end_time", "endTime", "end"),
        serialization_alias="endTime",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def _check_interval(self) -> "Session":
        if self.end_time < self.start_time:
            raise ValueError("Session end time precedes its start time")
        return self

    @computed_field
    @property
    def duration(self) -> int:
        """Whole seconds in the interval (floored)."""
        return (self.end_time - self.start_time) // 1000

    @property
    def is_valid(self) -> bool:
        """Whether the session may be committed to a person's history."""
        return self.end_time > self.start_time and self.duration > 0


class CurrentSession(BaseModel):
    """The open interval of a running timer, closed at ``now`` for display.

    Never stored in ``Person.sessions``; stopping the timer is the only way to
    turn it into a ``Session``.
    """

    person_id: int
    start_time: int
    end_time: int
    is_current: Literal[True] = True

    model_config = {"frozen": True}

    @property
    def duration(self) -> int:
        return max(0, (self.end_time - self.start_time) // 1000)
