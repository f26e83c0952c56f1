"""Domain-specific errors for pductl."""


class PductlError(Exception):
    """Base error for pductl."""


class ConfigValidationError(PductlError):
    """Raised when a device profile file does not conform to schema or semantics."""


class ConfigLoadError(PductlError):
    """Raised when reading the device profile file fails."""


class DeviceSelectionError(PductlError):
    """Raised when a device profile cannot be resolved to a single target."""


class OutletResolutionError(PductlError):
    """Raised when an outlet slot cannot be found in the current snapshot."""


class InvalidControlError(PductlError):
    """Raised when a control request is malformed."""


class ProtocolError(PductlError):
    """Raised when a device response is malformed, short or unexpected."""


class SessionError(PductlError):
    """Raised when the TCP session cannot be (re)authenticated."""


class TransportError(PductlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on TCP connect failures."""


class TransportSendError(TransportError):
    """Raised when sending or receiving a frame fails."""


class TransportTimeoutError(TransportError):
    """Raised when the device connection times out."""


class CommandRejectedError(TransportError):
    """Raised when the device answers with one of its fixed error replies."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Device rejected the command: {reason}")
        self.reason = reason
