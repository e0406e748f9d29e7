"""Application-level exception types for wagate."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from wagate.session import SessionState


class GatewayError(Exception):
    """Base exception for wagate."""

    code: ClassVar[str] = "GatewayError"
    http_status: ClassVar[int] = 500


class ConfigurationError(GatewayError):
    """Raised when settings or the provider import path are unusable."""

    code = "ConfigurationError"


class InvalidAddressError(GatewayError):
    """Raised when a recipient token is neither a phone number nor a chat id."""

    code = "InvalidAddress"

    def __init__(self, raw: object, hint: str) -> None:
        super().__init__(hint)
        self.raw = raw
        self.hint = hint


class DispatchError(GatewayError):
    """Base exception for a failed outbound send."""

    code = "DispatchError"


class NotReadyError(DispatchError):
    """Raised when a send is attempted while the session is not ready."""

    code = "NotReady"

    def __init__(self, state: SessionState) -> None:
        super().__init__(f"session is not ready (state: {state.value})")
        self.state = state


class ProviderSendError(DispatchError):
    """Raised when the provider rejects or fails an outbound send."""

    code = "ProviderSendFailed"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause


class ProviderError(GatewayError):
    """Raised when a provider query other than a send fails."""

    code = "ProviderError"

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class GroupNotFoundError(GatewayError):
    """Raised when no group conversation matches the requested name."""

    code = "GroupNotFound"
    http_status = 404

    def __init__(self, name: str) -> None:
        super().__init__(f"group not found: {name}")
        self.name = name


class InvalidRequestError(GatewayError):
    """Raised when a control request is missing required fields."""

    code = "ValidationError"
    http_status = 400
