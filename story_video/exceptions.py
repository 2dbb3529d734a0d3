"""Error taxonomy for the clip generation pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for every error raised by the generation pipeline."""

    fatal = True


class ProviderConfigurationError(PipelineError):
    """The selected video provider is missing credentials or is unknown."""


class ProviderRequestError(PipelineError):
    """The provider rejected a request for a single scene."""

    fatal = False

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        prefix = f"Provider error ({status_code})" if status_code is not None else "Provider error"
        super().__init__(f"{prefix}: {message}")


class ProviderAuthError(ProviderRequestError):
    """The provider rejected our credentials. Never retried, aborts the job."""

    fatal = True


class GenerationFailed(PipelineError):
    """The provider reported the generation as failed."""

    fatal = False


class PollingTimeout(PipelineError):
    """The poll budget ran out before the provider reached a terminal state."""

    fatal = False


class NoScenesSucceeded(PipelineError):
    """The loop finished without a single usable clip."""


class ContinuationNotWorking(PipelineError):
    """Every successful scene came back as the same clip."""


class BudgetExceeded(PipelineError):
    """The storyboard would cost more than the configured ceiling."""


class MergeFailure(PipelineError):
    """Concatenation failed. Callers degrade to the first clip."""

    fatal = False


class JobCancelled(PipelineError):
    """The job was cancelled while generation was in flight."""


class InvalidJobTransition(PipelineError):
    """A terminal job was asked to change state."""


__all__ = [
    "PipelineError",
    "ProviderConfigurationError",
    "ProviderRequestError",
    "ProviderAuthError",
    "GenerationFailed",
    "PollingTimeout",
    "NoScenesSucceeded",
    "ContinuationNotWorking",
    "BudgetExceeded",
    "MergeFailure",
    "JobCancelled",
    "InvalidJobTransition",
]
