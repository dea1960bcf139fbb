"""
Error taxonomy for the authorization flows.

Every failure raised by an engine is an OAuthFlowError subclass carrying
the stage of the flow it happened in, so callers can decide whether to
restart the authorization from scratch.
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator


class FlowStage(str, Enum):
    """Stage of an authorization flow a failure is attributed to."""

    REQUEST_TOKEN = "request_token"
    CODE_EXCHANGE = "code_exchange"
    REFRESH = "refresh"
    PROFILE_FETCH = "profile_fetch"


class OAuthFlowError(Exception):
    """Base exception for all authorization flow failures."""

    def __init__(self, message: str, stage: FlowStage | None = None):
        super().__init__(message)
        self.stage = stage


class ProviderError(OAuthFlowError):
    """
    Raised when the provider reports an error in the callback.

    Typically the user denied consent (error=access_denied). No token
    request is issued once this is raised.
    """

    def __init__(
        self,
        error: str,
        description: str | None = None,
        uri: str | None = None,
        stage: FlowStage | None = None,
    ):
        message = f"Provider returned error '{error}'"
        if description:
            message = f"{message}: {description}"
        super().__init__(message, stage)
        self.error = error
        self.description = description
        self.uri = uri


class UnexpectedResponseError(OAuthFlowError):
    """Raised when a required field is absent from a provider response."""

    def __init__(self, field: str, stage: FlowStage | None = None):
        super().__init__(f"Required field '{field}' missing from response", stage)
        self.field = field


class TransportError(OAuthFlowError):
    """
    Raised for HTTP or network failures.

    status_code is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        content: str | None = None,
        stage: FlowStage | None = None,
    ):
        super().__init__(message, stage)
        self.status_code = status_code
        self.content = content


class ConfigurationError(OAuthFlowError):
    """Raised when no token is available and there is no way to get one."""

    pass


class NotSupportedError(OAuthFlowError):
    """Raised when a flow is asked for something it cannot provide."""

    pass


@contextmanager
def flow_stage(stage: FlowStage) -> Iterator[None]:
    """Attribute any OAuthFlowError raised inside the block to ``stage``."""
    try:
        yield
    except OAuthFlowError as e:
        if e.stage is None:
            e.stage = stage
        raise
