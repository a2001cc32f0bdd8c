"""Person model and its timer state."""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_AVATAR = "👤"
DEFAULT_COLOR = "#9CA3AF"


class Stopped(BaseModel):
    """No session is open."""

    state: Literal["stopped"] = "stopped"

    model_config = {"frozen": True}


class Running(BaseModel):
    """A session is open since ``started_at`` (epoch milliseconds)."""

    state: Literal["running"] = "running"
    started_at: int

    model_config = {"frozen": True}


TimerState = Annotated[Union[Stopped, Running], Field(discriminator="state")]


class Person(BaseModel):
    """A tracked individual with a session history and a timer."""

    id: int
    name: str
    avatar: str = DEFAULT_AVATAR
    avatar_type: Literal["emoji", "photo"] = Field(
        default="emoji",
        validation_alias=AliasChoices("avatar_type", "avatarType"),
        serialization_alias="avatarType",
    )
    color: str = Field(
        default=DEFAULT_COLOR,
        validation_alias=AliasChoices("color", "avatarColor"),
    )
    sessions: List[Session] = []
    timer: TimerState = Stopped()

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Person name must not be empty")
        return value

    @model_validator(mode="before")
    @classmethod
    def _from_record(cls, data: Any) -> Any:
        """Accept the stored JSON shape (``isRunning`` / ``currentSessionStart``)."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        is_running = data.pop("isRunning", None)
        started_at = data.pop("currentSessionStart", None)
        if "timer" not in data and (is_running is not None or started_at is not None):
            if is_running and started_at is not None:
                data["timer"] = {"state": "running", "started_at": started_at}
            else:
                if is_running or started_at is not None:
                    logger.warning(
                        "Person %s has inconsistent timer state "
                        "(isRunning=%r, currentSessionStart=%r); treating as stopped",
                        data.get("id"),
                        is_running,
                        started_at,
                    )
                data["timer"] = {"state": "stopped"}

        raw_sessions = data.get("sessions")
        if isinstance(raw_sessions, list):
            kept = []
            for raw in raw_sessions:
                if isinstance(raw, Session):
                    kept.append(raw)
                    continue
                try:
                    kept.append(Session.model_validate(raw))
                except ValidationError as e:
                    logger.warning(
                        "Discarding invalid session %r for person %s: %s",
                        raw,
                        data.get("id"),
                        e.errors()[0]["msg"] if e.errors() else e,
                    )
            data["sessions"] = kept
        return data

    @property
    def is_running(self) -> bool:
        return isinstance(self.timer, Running)

    @property
    def current_session_start(self) -> Optional[int]:
        return self.timer.started_at if isinstance(self.timer, Running) else None

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the stored JSON shape."""
        record = self.model_dump(by_alias=True, exclude={"timer"})
        record["isRunning"] = self.is_running
        record["currentSessionStart"] = self.current_session_start
        return record
