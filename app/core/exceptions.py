from typing import Optional, Any

class KamiBotError(Exception):
    """
    Base exception for the OTP bot.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(KamiBotError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(KamiBotError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class InvalidRequestError(KamiBotError):
    """
    Raised when a request is malformed (bad path, missing number).
    """
    def __init__(self, message: str = "Invalid request", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_REQUEST", status_code=400, details=details)

class ChannelAlreadyAddedError(KamiBotError):
    """
    Raised when a destination channel is already in a user's list.
    """
    def __init__(self, message: str = "Channel already added", details: Optional[Any] = None):
        super().__init__(message, code="CHANNEL_EXISTS", status_code=409, details=details)

class ChannelNotFoundError(KamiBotError):
    """
    Raised when removing a destination channel the user never added.
    """
    def __init__(self, message: str = "Channel not found", details: Optional[Any] = None):
        super().__init__(message, code="CHANNEL_NOT_FOUND", status_code=404, details=details)

class GatewayError(KamiBotError):
    """
    Raised when the WhatsApp gateway call fails.
    """
    def __init__(self, message: str = "WhatsApp gateway error", details: Optional[Any] = None):
        super().__init__(message, code="GATEWAY_ERROR", status_code=502, details=details)

class PairingError(KamiBotError):
    """
    Raised when a pairing code cannot be produced.
    """
    def __init__(self, message: str = "Pairing failed", details: Optional[Any] = None):
        super().__init__(message, code="PAIRING_FAILED", status_code=500, details=details)
