"""JSON file storage for the person list."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from timehogger.core.errors import NotFound, RepositoryError
from timehogger.models.person import Person

logger = logging.getLogger(__name__)


class PersonRepository:
    """Stores every person in a single JSON document.

    The document is ``{"persons": [...], "lastUpdated": "<iso>"}``. Writes
    replace the whole list; the core never blocks on them.
    """

    def __init__(self, data_file: Path):
        self.data_file = Path(data_file)
        self.data_dir = self.data_file.parent

    def exists(self) -> bool:
        """Check if the data file exists."""
        return self.data_file.exists()

    def init(self) -> None:
        """Create the data directory and an empty document if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.data_file.exists():
            self._write_document({"persons": []})
            logger.info("Initialized data file: %s", self.data_file)

    def load(self) -> List[Person]:
        """Load all persons; a missing or unreadable file yields an empty list."""
        document = self._read_document()
        persons = []
        for record in document.get("persons", []):
            try:
                persons.append(Person.model_validate(record))
            except ValueError as e:
                logger.warning("Skipping unreadable person record %r: %s", record, e)
        return persons

    def save(self, persons: List[Person]) -> bool:
        """Replace the stored list. Returns False (and logs) on failure."""
        try:
            self._write_document({"persons": [p.to_record() for p in persons]})
        except OSError as e:
            logger.error("Error writing data to %s: %s", self.data_file, e)
            return False
        logger.debug("Saved %d persons to %s", len(persons), self.data_file)
        return True

    def get(self, person_id: int) -> Person:
        """Get a stored person by ID."""
        person = next((p for p in self.load() if p.id == person_id), None)
        if person is None:
            raise NotFound(f"Person {person_id} not found")
        return person

    def update(self, person: Person) -> Person:
        """Replace the stored record with the same id."""
        persons = self.load()
        for index, existing in enumerate(persons):
            if existing.id == person.id:
                persons[index] = person
                break
        else:
            raise NotFound(f"Person {person.id} not found")
        if not self.save(persons):
            raise RepositoryError(f"Failed to update person {person.id}")
        return person

    def delete(self, person_id: int) -> None:
        """Remove a stored person."""
        persons = self.load()
        remaining = [p for p in persons if p.id != person_id]
        if len(remaining) == len(persons):
            raise NotFound(f"Person {person_id} not found")
        if not self.save(remaining):
            raise RepositoryError(f"Failed to delete person {person_id}")

    def create_backup(self) -> Path:
        """Write a point-in-time copy of the document next to the data file."""
        document = self._read_document()
        timestamp = datetime.now().isoformat().replace(":", "-").replace(".", "-")
        backup_file = self.data_dir / f"backup-{timestamp}.json"
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            backup_file.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise RepositoryError(f"Failed to create backup: {e}") from e
        logger.info("Backup created: %s", backup_file)
        return backup_file

    def health(self) -> Dict[str, Any]:
        return {
            "status": "ok" if self.exists() else "missing",
            "timestamp": datetime.now().isoformat(),
            "dataFile": str(self.data_file),
        }

    def _read_document(self) -> Dict[str, Any]:
        """Read the raw document, falling back to an empty one."""
        if not self.data_file.exists():
            return {"persons": []}

        try:
            document = json.loads(self.data_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error reading data from %s: %s", self.data_file, e)
            return {"persons": []}
        if not isinstance(document, dict) or not isinstance(document.get("persons"), list):
            logger.error("Unexpected data layout in %s; expected a persons array", self.data_file)
            return {"persons": []}
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        document = dict(document, lastUpdated=datetime.now().isoformat())
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.data_file.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
