"""
Custom Exception Hierarchy for Trainer Module

Exception Hierarchy:
    TrainerError (base)
    ├── GenerationError
    │   └── AgentError
    │       ├── AgentExecutionError
    │       ├── AgentTimeoutError
    │       └── AgentOutputError
    ├── RetrievalError
    ├── ContentValidationError
    ├── SessionError
    │   ├── SessionNotFoundError
    │   └── SessionExpiredError
    ├── StateError
    │   ├── StateTransitionError
    │   └── SessionPausedError
    ├── PromptError
    │   └── PromptTemplateError
    └── ConfigurationError

Generation, retrieval and content validation errors are recovered inside the
engine. Session and state errors reach the caller.
"""

from typing import Optional


class TrainerError(Exception):
    """Base exception for all trainer errors."""

    http_status = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Generation Errors

class GenerationError(TrainerError):
    """Raised when upstream text generation fails or times out."""
    http_status = 503


class AgentError(GenerationError):
    """Base exception for agent-related errors."""

    def __init__(self, agent_name: str, message: str, details: Optional[dict] = None):
        formatted_message = f"[{agent_name}] {message}"
        super().__init__(formatted_message, details)
        self.agent_name = agent_name


class AgentExecutionError(AgentError):
    """Raised when agent execution fails."""
    pass


class AgentTimeoutError(AgentError):
    """Raised when agent execution times out."""

    def __init__(self, agent_name: str, timeout_seconds: float):
        message = f"Execution timed out after {timeout_seconds}s"
        super().__init__(agent_name, message)
        self.timeout_seconds = timeout_seconds


class AgentOutputError(AgentError):
    """Raised when agent output is invalid or malformed."""

    def __init__(self, agent_name: str, expected_schema: Optional[str] = None):
        message = "Invalid or malformed output"
        if expected_schema:
            message += f" (expected schema: {expected_schema})"
        super().__init__(agent_name, message)
        self.expected_schema = expected_schema


# Retrieval Errors

class RetrievalError(TrainerError):
    """Raised when semantic retrieval fails."""

    def __init__(self, query: str, reason: str):
        message = f"Retrieval failed for '{query[:50]}': {reason}"
        super().__init__(message)
        self.query = query
        self.reason = reason


# Validation Errors

class ContentValidationError(TrainerError):
    """Raised when a produced scenario, persona or evidence object fails structural checks."""

    http_status = 422

    def __init__(self, kind: str, errors: list[str]):
        message = f"{kind} validation failed: {'; '.join(errors)}"
        super().__init__(message)
        self.kind = kind
        self.errors = errors


# Session Errors

class SessionError(TrainerError):
    """Base exception for session-related errors."""
    pass


class SessionNotFoundError(SessionError):
    """Raised when session is not found in the registry."""

    http_status = 404

    def __init__(self, session_id: str):
        message = f"Session not found: {session_id}"
        super().__init__(message)
        self.session_id = session_id


class SessionExpiredError(SessionError):
    """Raised when session has expired."""

    http_status = 410

    def __init__(self, session_id: str, expired_at: Optional[str] = None):
        message = f"Session expired: {session_id}"
        if expired_at:
            message += f" (expired at: {expired_at})"
        super().__init__(message)
        self.session_id = session_id
        self.expired_at = expired_at


# State Errors

class StateError(TrainerError):
    """Base exception for state machine violations."""
    http_status = 409


class StateTransitionError(StateError):
    """Raised when state transition is invalid."""

    def __init__(self, from_state: str, to_state: str, reason: str):
        message = f"Invalid state transition from '{from_state}' to '{to_state}': {reason}"
        super().__init__(message)
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason


class SessionPausedError(StateError):
    """Raised when a turn is submitted to a paused session."""

    def __init__(self, session_id: str):
        message = f"Session is paused: {session_id}"
        super().__init__(message)
        self.session_id = session_id


# Prompt Errors

class PromptError(TrainerError):
    """Base exception for prompt-related errors."""
    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: list[str]):
        message = f"Prompt template '{template_name}' missing variables: {', '.join(missing_vars)}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars


# Configuration Errors

class ConfigurationError(TrainerError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, reason: str):
        message = f"Configuration error for '{config_key}': {reason}"
        super().__init__(message)
        self.config_key = config_key
        self.reason = reason
