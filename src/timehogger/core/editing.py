"""Editing a person's session history as a batch.

A ``SessionEditor`` works on a copy of the history. Individual edits are
allowed to pass through invalid intermediate states (start and end are
usually entered one at a time), and the whole batch is validated once by
``commit``.
"""

import logging
from typing import FrozenSet, List, Optional, Union

from pydantic import BaseModel

from timehogger.core.clock import parse_timestamp
from timehogger.core.errors import InvalidRange, NotFound, ReadOnlySession
from timehogger.core.timer import current_session, new_session_id
from timehogger.models.person import Person
from timehogger.models.session import CurrentSession, Session

logger = logging.getLogger(__name__)

TimestampInput = Union[int, str]


def _to_timestamp(value: TimestampInput) -> int:
    if isinstance(value, str):
        return parse_timestamp(value)
    return int(value)


class SessionDraft(BaseModel):
    """Editable copy of a session; may be temporarily invalid."""

    id: int
    start_time: int
    end_time: int

    @property
    def duration(self) -> int:
        if self.end_time <= self.start_time:
            return 0
        return (self.end_time - self.start_time) // 1000

    @property
    def is_valid(self) -> bool:
        return self.end_time > self.start_time and self.duration > 0

    def to_session(self) -> Session:
        return Session(id=self.id, start_time=self.start_time, end_time=self.end_time)


class CommitResult(BaseModel):
    """Outcome of ``SessionEditor.commit``."""

    person: Person
    kept: List[Session]
    dropped: List[SessionDraft]

    @property
    def had_invalid(self) -> bool:
        """True when the validation pass removed at least one entry."""
        return bool(self.dropped)


class SessionEditor:
    """Working copy of one person's sessions."""

    def __init__(self, person: Person, now: int):
        self.person = person
        self.now = now
        self.drafts: List[SessionDraft] = [
            SessionDraft(id=s.id, start_time=s.start_time, end_time=s.end_time)
            for s in person.sessions
        ]
        self.current: Optional[CurrentSession] = current_session(person, now)
        self.original_ids: FrozenSet[int] = frozenset(s.id for s in person.sessions)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def entries(self) -> List[Union[SessionDraft, CurrentSession]]:
        """Drafts followed by the read-only current session, if any."""
        entries: List[Union[SessionDraft, CurrentSession]] = list(self.drafts)
        if self.current is not None:
            entries.append(self.current)
        return entries

    def total_time(self) -> int:
        return sum(entry.duration for entry in self.entries)

    def _find(self, session_id: Union[int, str]) -> SessionDraft:
        if self.current is not None and session_id == "current":
            raise ReadOnlySession("The running session can only be changed by stopping or resetting the timer")
        for draft in self.drafts:
            if draft.id == session_id:
                return draft
        raise NotFound(f"Session {session_id} not found for {self.person.name}")

    def add(self, start: TimestampInput, end: TimestampInput) -> SessionDraft:
        """Insert a session, keeping drafts ordered by start time.

        Raises ``InvalidRange`` (and leaves the drafts untouched) when the end
        is not after the start.
        """
        start_time = _to_timestamp(start)
        end_time = _to_timestamp(end)
        if end_time <= start_time:
            raise InvalidRange("End time must be after start time")

        draft = SessionDraft(
            id=new_session_id(self.drafts, self.now),
            start_time=start_time,
            end_time=end_time,
        )
        self.drafts.append(draft)
        self.drafts.sort(key=lambda d: d.start_time)
        return draft

    def edit(
        self,
        session_id: Union[int, str],
        start: Optional[TimestampInput] = None,
        end: Optional[TimestampInput] = None,
    ) -> SessionDraft:
        """Change the start and/or end of a draft.

        An unparseable value raises ``InvalidRange`` without touching the
        draft. A pair that ends up with ``end <= start`` is accepted here and
        dropped by ``commit``.
        """
        draft = self._find(session_id)
        start_time = _to_timestamp(start) if start is not None else draft.start_time
        end_time = _to_timestamp(end) if end is not None else draft.end_time
        draft.start_time = start_time
        draft.end_time = end_time
        return draft

    def delete(self, session_id: Union[int, str]) -> SessionDraft:
        draft = self._find(session_id)
        self.drafts.remove(draft)
        return draft

    def commit(self) -> CommitResult:
        """Validate the batch and build the cleaned person.

        Drafts failing ``end > start and duration > 0`` are dropped silently;
        the result lists them so the caller can tell the user.
        """
        kept: List[Session] = []
        dropped: List[SessionDraft] = []
        for draft in sorted(self.drafts, key=lambda d: d.start_time):
            if draft.is_valid:
                kept.append(draft.to_session())
            else:
                dropped.append(draft)

        if dropped:
            logger.info(
                "Dropped %d invalid session(s) for %s: %s",
                len(dropped),
                self.person.name,
                [d.id for d in dropped],
            )
        person = self.person.model_copy(update={"sessions": kept})
        return CommitResult(person=person, kept=kept, dropped=dropped)
