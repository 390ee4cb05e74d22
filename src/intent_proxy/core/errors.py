"""Error taxonomy for the intent proxy.

Every failure the core can report carries an :class:`ErrorCode` so the
progress stream and the HTTP layer can expose a machine-parseable ``code``
next to the human readable message.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple


class ErrorSeverity(str, Enum):
    """Severity levels for errors."""

    CRITICAL = "critical"  # Whole request failed
    ERROR = "error"  # One call or task failed, request continues
    WARNING = "warning"  # Degraded output, nothing failed


class ErrorInfo(NamedTuple):
    """Structured information about an error code."""

    code: str
    severity: ErrorSeverity
    description: str
    recovery_hint: str


class ErrorCode(str, Enum):
    """Standardized error codes reported in ``error`` events."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    DOCUMENTATION_UNAVAILABLE = "DOCUMENTATION_UNAVAILABLE"
    TRANSLATION_FAILURE = "TRANSLATION_FAILURE"
    DISPATCH_FAILURE = "DISPATCH_FAILURE"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    NO_PLAN_FOUND = "NO_PLAN_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_METADATA: dict[ErrorCode, ErrorInfo] = {
    ErrorCode.VALIDATION_ERROR: ErrorInfo(
        code="VALIDATION_ERROR",
        severity=ErrorSeverity.CRITICAL,
        description="Required request fields are missing or blank",
        recovery_hint="Send every required field with a non-empty value",
    ),
    ErrorCode.DOCUMENTATION_UNAVAILABLE: ErrorInfo(
        code="DOCUMENTATION_UNAVAILABLE",
        severity=ErrorSeverity.ERROR,
        description="Neither the docs nor the capabilities path of the agent answered",
        recovery_hint="Check that the agent is running and exposes /docs or /capabilities",
    ),
    ErrorCode.TRANSLATION_FAILURE: ErrorInfo(
        code="TRANSLATION_FAILURE",
        severity=ErrorSeverity.ERROR,
        description="The language model returned unusable output or could not be reached",
        recovery_hint="Retry the request; if persistent, check the LiteLLM gateway and model",
    ),
    ErrorCode.DISPATCH_FAILURE: ErrorInfo(
        code="DISPATCH_FAILURE",
        severity=ErrorSeverity.ERROR,
        description="The call to the target agent failed or timed out",
        recovery_hint="Inspect the agent logs; rephrase the intent if the payload was rejected",
    ),
    ErrorCode.AGENT_NOT_FOUND: ErrorInfo(
        code="AGENT_NOT_FOUND",
        severity=ErrorSeverity.ERROR,
        description="A planned task names an agent that is not registered",
        recovery_hint="Register the agent via POST /registry/register",
    ),
    ErrorCode.NO_PLAN_FOUND: ErrorInfo(
        code="NO_PLAN_FOUND",
        severity=ErrorSeverity.CRITICAL,
        description="No registered agent matches the intent",
        recovery_hint="Register a suitable agent or pass an explicit targetUrl",
    ),
    ErrorCode.INTERNAL_ERROR: ErrorInfo(
        code="INTERNAL_ERROR",
        severity=ErrorSeverity.CRITICAL,
        description="Unexpected failure inside the proxy",
        recovery_hint="Check the service logs for the traceback",
    ),
}


def get_error_info(code: ErrorCode) -> ErrorInfo:
    """Return the metadata registered for ``code``."""

    return ERROR_METADATA[code]


class ProxyError(RuntimeError):
    """Base class for failures reported by the proxy core."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR


class DocumentationUnavailable(ProxyError):
    """Raised when both documentation paths of an agent failed."""

    code = ErrorCode.DOCUMENTATION_UNAVAILABLE


class TranslationFailure(ProxyError):
    """Raised when the translator could not produce usable output."""

    code = ErrorCode.TRANSLATION_FAILURE


class DispatchFailure(ProxyError):
    """Raised when the HTTP call to the target agent failed."""

    code = ErrorCode.DISPATCH_FAILURE

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AgentNotFound(ProxyError):
    """Raised when a planned task names an unregistered agent."""

    code = ErrorCode.AGENT_NOT_FOUND

    def __init__(self, agent_name: str) -> None:
        super().__init__(f"Agent {agent_name} not found in registry.")
        self.agent_name = agent_name


class NoPlanFound(ProxyError):
    """Raised when decomposition yields no tasks."""

    code = ErrorCode.NO_PLAN_FOUND

    def __init__(self, message: str = "No suitable agents found.") -> None:
        super().__init__(message)


__all__ = [
    "AgentNotFound",
    "DispatchFailure",
    "DocumentationUnavailable",
    "ERROR_METADATA",
    "ErrorCode",
    "ErrorInfo",
    "ErrorSeverity",
    "NoPlanFound",
    "ProxyError",
    "TranslationFailure",
    "get_error_info",
]
