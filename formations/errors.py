"""Error taxonomy for user-correctable command failures.

These are raised inside the model's validation helpers and converted to
``Result`` objects at the command boundary (see ``models.Result.failure``),
so UI code never has to catch them.
"""


class FormationError(Exception):
    """Base class for conditions the user caused and can correct."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(FormationError):
    """Soldier count out of bounds, unknown unit type, overlapping placement."""


class NotFoundError(FormationError):
    """Unit id or character id missing from the expected scope."""


class LimitError(FormationError):
    """Army unit-count cap exceeded."""
