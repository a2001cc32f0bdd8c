"""Session arithmetic: totals and timer state transitions.

Every function here is pure. Wall-clock time is passed in as ``now`` (epoch
milliseconds) so that results are reproducible and safe to recompute as
often as a display needs.
"""

from typing import Iterable, Optional

from timehogger.core.clock import elapsed_seconds
from timehogger.models.person import Person, Running, Stopped
from timehogger.models.session import CurrentSession, Session


def current_session_elapsed(person: Person, now: int) -> int:
    """Seconds elapsed in the open session, 0 when the timer is stopped."""
    if not isinstance(person.timer, Running):
        return 0
    return elapsed_seconds(person.timer.started_at, now)


def total_time(person: Person, now: int) -> int:
    """Recorded seconds plus the live elapsed time of a running timer."""
    recorded = sum(session.duration for session in person.sessions)
    return recorded + current_session_elapsed(person, now)


def current_session(person: Person, now: int) -> Optional[CurrentSession]:
    """The synthetic open interval of a running timer, closed at ``now``."""
    if not isinstance(person.timer, Running):
        return None
    started_at = person.timer.started_at
    return CurrentSession(
        person_id=person.id,
        start_time=started_at,
        end_time=max(now, started_at),
    )


def new_session_id(sessions: Iterable[Session], now: int) -> int:
    """Creation-time id, bumped until it is unique among ``sessions``."""
    taken = {session.id for session in sessions}
    candidate = now
    while candidate in taken:
        candidate += 1
    return candidate


def start_timer(person: Person, now: int) -> Person:
    """Open a session at ``now``; a running timer is returned unchanged."""
    if person.is_running:
        return person
    return person.model_copy(update={"timer": Running(started_at=now)})


def stop_timer(person: Person, now: int) -> Person:
    """Close the open session into a new ``Session``; no-op when stopped.

    The duration is floored to whole seconds. A ``now`` earlier than the
    session start (clock adjustment) closes the session at its start.
    """
    if not isinstance(person.timer, Running):
        return person
    started_at = person.timer.started_at
    session = Session(
        id=new_session_id(person.sessions, now),
        start_time=started_at,
        end_time=max(now, started_at),
    )
    return person.model_copy(
        update={"timer": Stopped(), "sessions": [*person.sessions, session]}
    )


def reset_sessions(person: Person) -> Person:
    """Drop every session and any open interval. Cannot be undone."""
    return person.model_copy(update={"timer": Stopped(), "sessions": []})
