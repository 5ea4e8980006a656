"""Errors raised by the ladder bot."""


class LadderBotError(RuntimeError):
    """Base class for every error raised by the bot."""


class ExchangeError(LadderBotError):
    """Raised when the exchange rejects a request or cannot be reached."""


class RetryExhausted(LadderBotError):
    """Raised when a remote operation did not succeed within its attempt budget."""

    def __init__(self, description: str, attempts: int) -> None:
        super().__init__(f"{description} (gave up after {attempts} attempts)")
        self.description = description
        self.attempts = attempts


class FatalError(LadderBotError):
    """The process has to stop; the operator must look at the account."""


class ConfigError(FatalError):
    pass


class StartupError(FatalError):
    pass


class InsufficientBalanceError(FatalError):
    pass


class OrderPlacementError(FatalError):
    pass


class RecoveryError(FatalError):
    pass


class UnrecoverableStateError(FatalError):
    pass


class InterferenceError(FatalError):
    """An order the bot tracks was canceled or filled by someone else."""
