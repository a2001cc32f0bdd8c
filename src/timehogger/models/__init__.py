"""Data models for TimeHogger."""

from .person import Person, Running, Stopped, TimerState
from .session import CurrentSession, Session

__all__ = ["Person", "TimerState", "Running", "Stopped", "Session", "CurrentSession"]
