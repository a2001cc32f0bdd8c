"""Person directory and timer actions with persistence after each change."""

import logging
from collections import deque
from pathlib import Path
from typing import Callable, Deque, List, Literal, Optional, Union

from pydantic import BaseModel

from timehogger.core.clock import now_ms
from timehogger.core.editing import CommitResult, SessionDraft, SessionEditor, TimestampInput
from timehogger.core.errors import InvalidPerson, InvalidRange, NotFound
from timehogger.core.repository import PersonRepository
from timehogger.core.timer import reset_sessions, start_timer, stop_timer
from timehogger.models.person import DEFAULT_AVATAR, DEFAULT_COLOR, Person

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "info", "warning", "error"]

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notification(BaseModel):
    """Human-readable description of something that just happened."""

    message: str
    level: NotificationLevel = "info"
    timestamp: int


class TimeTracker:
    """Owns the person list and applies user actions to it.

    Every mutation replaces the affected ``Person`` with the result of a core
    function, records a notification, then hands the full list to the
    repository. A failed save is logged and reported, never raised.
    """

    def __init__(
        self,
        repository: PersonRepository,
        clock: Callable[[], int] = now_ms,
        notification_limit: int = 50,
    ):
        self.repository = repository
        self.clock = clock
        self.notifications: Deque[Notification] = deque(maxlen=notification_limit)
        self.persons: List[Person] = repository.load()

    # --- Notifications and persistence ---

    def notify(self, message: str, level: NotificationLevel = "info") -> Notification:
        notification = Notification(message=message, level=level, timestamp=self.clock())
        self.notifications.append(notification)
        logger.log(_LOG_LEVELS[level], message)
        return notification

    def persist(self) -> bool:
        saved = self.repository.save(self.persons)
        if not saved:
            self.notify("Failed to save data", "error")
        return saved

    def backup(self) -> Path:
        path = self.repository.create_backup()
        self.notify(f"Backup created: {path.name}", "success")
        return path

    # --- Directory ---

    def get(self, person_id: int) -> Person:
        for person in self.persons:
            if person.id == person_id:
                return person
        raise NotFound(f"Person {person_id} not found")

    def _replace(self, person: Person) -> Person:
        self.persons = [person if p.id == person.id else p for p in self.persons]
        return person

    def _new_person_id(self) -> int:
        taken = {p.id for p in self.persons}
        candidate = self.clock()
        while candidate in taken:
            candidate += 1
        return candidate

    def search(self, term: str) -> List[Person]:
        """Persons whose name contains ``term`` (case-insensitive)."""
        needle = term.strip().lower()
        return [p for p in self.persons if needle in p.name.lower()]

    def running_count(self) -> int:
        return sum(1 for p in self.persons if p.is_running)

    def add_person(
        self,
        name: str,
        avatar: str = DEFAULT_AVATAR,
        avatar_type: str = "emoji",
        color: str = DEFAULT_COLOR,
    ) -> Person:
        if not name or not name.strip():
            raise InvalidPerson("Name is required")
        try:
            person = Person(
                id=self._new_person_id(),
                name=name,
                avatar=avatar,
                avatar_type=avatar_type,
                color=color,
            )
        except ValueError as e:
            raise InvalidPerson(str(e)) from e
        self.persons.append(person)
        self.notify(f"{person.name} added to directory", "success")
        self.persist()
        return person

    def update_person(self, person_id: int, **profile) -> Person:
        """Change cosmetic fields (``name``, ``avatar``, ``avatar_type``, ``color``)."""
        allowed = {"name", "avatar", "avatar_type", "color"}
        unknown = set(profile) - allowed
        if unknown:
            raise InvalidPerson(f"Unknown profile field(s): {', '.join(sorted(unknown))}")
        person = self.get(person_id)
        data = person.model_dump()
        data.update({k: v for k, v in profile.items() if v is not None})
        try:
            updated = Person.model_validate(data)
        except ValueError as e:
            raise InvalidPerson(str(e)) from e
        self._replace(updated)
        self.notify(f"{updated.name} updated successfully", "success")
        self.persist()
        return updated

    def delete_person(self, person_id: int) -> Person:
        person = self.get(person_id)
        self.persons = [p for p in self.persons if p.id != person_id]
        self.notify(f"{person.name} deleted", "info")
        self.persist()
        return person

    # --- Timers ---

    def start(self, person_id: int) -> Person:
        person = self.get(person_id)
        if person.is_running:
            return person
        updated = self._replace(start_timer(person, self.clock()))
        self.notify(f"Timer started for {person.name}", "success")
        self.persist()
        return updated

    def stop(self, person_id: int) -> Person:
        person = self.get(person_id)
        if not person.is_running:
            return person
        updated = self._replace(stop_timer(person, self.clock()))
        self.notify(f"Timer stopped for {person.name}", "warning")
        self.persist()
        return updated

    def toggle(self, person_id: int) -> Person:
        if self.get(person_id).is_running:
            return self.stop(person_id)
        return self.start(person_id)

    def stop_all(self) -> int:
        """Stop every running timer; returns how many were stopped."""
        running = self.running_count()
        if running == 0:
            return 0
        now = self.clock()
        self.persons = [stop_timer(p, now) for p in self.persons]
        self.notify(f"{running} timer{'s' if running > 1 else ''} stopped", "info")
        self.persist()
        return running

    def reset(self, person_id: int) -> Person:
        person = self.get(person_id)
        updated = self._replace(reset_sessions(person))
        self.notify(f"Timer reset for {person.name}", "warning")
        self.persist()
        return updated

    def reset_all(self) -> None:
        self.persons = [reset_sessions(p) for p in self.persons]
        self.notify("All timers have been reset", "success")
        self.persist()

    # --- Sessions ---

    def edit_sessions(self, person_id: int) -> SessionEditor:
        return SessionEditor(self.get(person_id), self.clock())

    def save_sessions(self, editor: SessionEditor) -> CommitResult:
        """Commit an editor onto the current state of its person.

        The timer state is taken from the live person, and sessions recorded
        after the editor was opened are kept.
        """
        result = editor.commit()
        current = self.get(editor.person.id)
        recorded_since = [s for s in current.sessions if s.id not in editor.original_ids]
        sessions = sorted([*result.kept, *recorded_since], key=lambda s: s.start_time)
        person = self._replace(current.model_copy(update={"sessions": sessions}))
        if result.had_invalid:
            self.notify(
                f"{len(result.dropped)} session(s) for {person.name} had invalid data and were removed",
                "warning",
            )
        self.notify(f"Sessions for {person.name} updated", "success")
        self.persist()
        return result.model_copy(update={"person": person})

    def add_session(self, person_id: int, start: TimestampInput, end: TimestampInput) -> SessionDraft:
        """Record one session; a range too short to keep raises ``InvalidRange``."""
        editor = self.edit_sessions(person_id)
        draft = editor.add(start, end)
        if not draft.is_valid:
            raise InvalidRange("Session must last at least one second")
        self.save_sessions(editor)
        return draft

    def edit_session(
        self,
        person_id: int,
        session_id: Union[int, str],
        start: Optional[TimestampInput] = None,
        end: Optional[TimestampInput] = None,
    ) -> CommitResult:
        """Change one session in a single step.

        Unlike the batch editor, an edit leaving the session invalid is
        rejected with ``InvalidRange`` and nothing is saved.
        """
        editor = self.edit_sessions(person_id)
        draft = editor.edit(session_id, start=start, end=end)
        if not draft.is_valid:
            raise InvalidRange("End time must be at least one second after start time")
        return self.save_sessions(editor)

    def delete_session(self, person_id: int, session_id: Union[int, str]) -> CommitResult:
        editor = self.edit_sessions(person_id)
        editor.delete(session_id)
        return self.save_sessions(editor)
