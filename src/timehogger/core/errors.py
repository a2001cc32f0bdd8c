"""Error types raised by the TimeHogger core."""


class TimeHoggerError(Exception):
    """Base class for every recoverable TimeHogger error."""


class InvalidRange(TimeHoggerError, ValueError):
    """A session interval whose end is not after its start, or an unparseable timestamp."""


class NotFound(TimeHoggerError, LookupError):
    """A person or session id that does not exist."""


class ReadOnlySession(TimeHoggerError):
    """Attempt to edit or delete the synthetic current session of a running timer."""


class InvalidPerson(TimeHoggerError, ValueError):
    """A person profile that fails validation (e.g. an empty name)."""


class RepositoryError(TimeHoggerError):
    """The persistence layer could not complete an operation."""
