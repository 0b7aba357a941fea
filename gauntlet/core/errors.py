"""Exception hierarchy for the gauntlet engine.

Configuration errors are raised before any session state is touched, state
errors signal a programmer mistake in the calling code. Persistence failures
are deliberately absent here: the stats store recovers from those locally.
"""

from __future__ import annotations


class GauntletError(Exception):
    """Base exception for all gauntlet errors.

    Carries an optional machine-readable error code next to the
    human-readable message.
    """

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize gauntlet error.

        Args:
            message: Human-readable error message
            error_code: Optional machine-readable error code
        """
        super().__init__(message)
        self.error_code = error_code


class InvalidConfigError(GauntletError):
    """Raised when a session is configured with unusable parameters.

    Examples are zero or negative repetitions, an unknown difficulty or
    an empty item set.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        error_code: str = "INVALID_CONFIG",
    ) -> None:
        """Initialize configuration error.

        Args:
            message: Human-readable error message
            field: Optional name of the offending parameter
            error_code: Machine-readable error code
        """
        super().__init__(message, error_code)
        self.field = field


class EmptyQueueError(InvalidConfigError):
    """Raised when a session is started without any drill items."""

    def __init__(self, message: str = "Cannot start a gauntlet without items") -> None:
        super().__init__(message, field="items", error_code="EMPTY_QUEUE")


class InvalidStateError(GauntletError):
    """Raised when an operation is not allowed in the current session phase."""

    def __init__(self, message: str, phase: str | None = None) -> None:
        """Initialize state error.

        Args:
            message: Human-readable error message
            phase: Session phase the operation was attempted in
        """
        super().__init__(message, "INVALID_STATE")
        self.phase = phase


class EmptyInputError(GauntletError):
    """Raised when picking an element from an empty sequence."""

    def __init__(self, message: str = "Cannot pick from an empty sequence") -> None:
        super().__init__(message, "EMPTY_INPUT")
