"""
Error taxonomy for the activity storage layer.

Not-found conditions are not errors by default: lookups return None and
update/delete of a missing id are no-ops. NotFoundError is only raised
when the strict policy is enabled.
"""


class TrainerError(Exception):
    """Base class for all application errors."""


class FormatError(TrainerError, ValueError):
    """A week key or storage key does not have the expected shape."""


class ImportFormatError(TrainerError):
    """An import document could not be parsed or validated.

    The underlying cause is chained as ``__cause__``.
    """


class StoreUnavailableError(TrainerError):
    """The key-value capability is not ready or cannot be reached."""


class NotFoundError(TrainerError, LookupError):
    """An activity with the requested id does not exist (strict policy only)."""

    def __init__(self, activity_id: int):
        super().__init__(f"Activity {activity_id} not found")
        self.activity_id = activity_id
