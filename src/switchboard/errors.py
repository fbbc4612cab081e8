"""Exception hierarchy shared by every switchboard component.

Configuration and registration problems are never raised; they land in
``ConfigIssues`` or as inactive agent summaries. Everything below is fatal to
the request that triggered it.
"""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base class for all switchboard errors."""


# -- Resolution ---------------------------------------------------------------


class ResolutionError(SwitchboardError):
    """Raised when a named agent, provider or operator cannot be resolved."""


class NoAgentsConfigured(ResolutionError):
    """Raised when the agent registry is empty."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "No LLM agents are configured. Set a provider API key or declare a custom agent."
        )


class DefaultAgentNotConfigured(ResolutionError):
    """Raised when agents exist but no default agent can be resolved."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        target = f'"{name}"' if name else "the request"
        super().__init__(f"No agent matches {target} and no default agent is configured.")


class ProviderNotRegistered(ResolutionError):
    def __init__(self, provider_key: str) -> None:
        self.provider_key = provider_key
        super().__init__(f'No provider adapter registered for "{provider_key}".')


class ProviderAlreadyRegistered(ResolutionError):
    def __init__(self, provider_key: str) -> None:
        self.provider_key = provider_key
        super().__init__(f'Provider adapter "{provider_key}" is already registered.')


class OperatorError(ResolutionError):
    """Raised for operator catalog misuse."""


class InvalidOperatorName(OperatorError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Invalid operator name "{name}". Names must start with a lowercase letter '
            "and contain only letters, digits or hyphens."
        )


class DuplicateOperator(OperatorError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Operator "{name}" is already registered.')


class UnknownOperator(OperatorError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Operator "{name}" is not registered.')


# -- Dispatch -----------------------------------------------------------------


class DispatchError(SwitchboardError):
    """Raised when a single outbound provider call fails."""


class ProviderResponseError(DispatchError):
    """Raised when a provider answers with an error envelope or an unusable body."""

    def __init__(self, message: str, *, status: int | None = None, body: str | None = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message)


class ProviderConfigurationError(DispatchError):
    """Raised when a call lacks a model, base URL or other required option."""


class MissingCredentialsError(DispatchError):
    def __init__(self, env_name: str | None, agent: str) -> None:
        self.env_name = env_name
        self.agent = agent
        if env_name:
            message = f'Missing API key for agent "{agent}" (set {env_name}).'
        else:
            message = f'Agent "{agent}" has no API key environment variable configured.'
        super().__init__(message)


class RequestCancelledError(DispatchError):
    """Raised to every awaiter of a dispatch cancelled through its scope."""

    def __init__(self, message: str = "LLM request cancelled.") -> None:
        super().__init__(message)


# -- Task level ---------------------------------------------------------------


class TaskFailedError(SwitchboardError):
    """Raised when every attempt of a task failed."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = str(last_error) if last_error is not None else "unknown error"
        super().__init__(f"Task failed after {attempts} retries: {detail}")


class ReviewIterationsExceeded(SwitchboardError):
    def __init__(self, max_iterations: int, feedback: str = "") -> None:
        self.max_iterations = max_iterations
        self.feedback = feedback
        super().__init__(f"Review did not approve a result within {max_iterations} iterations.")


class TaskCancelledError(SwitchboardError):
    """Raised when the operator cancels a human-reviewed task."""

    def __init__(self, message: str = "Task cancelled by user.") -> None:
        super().__init__(message)


class InvalidModelResponse(SwitchboardError):
    """Raised when a structured reply cannot be recovered by any parse stage."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)
