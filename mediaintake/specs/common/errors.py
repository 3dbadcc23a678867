"""
Exception classes for the upload-and-notify workflow
"""
from typing import Optional, Dict, Any

class MediaIntakeError(Exception):
    """Base exception class for media intake errors"""
    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to standard error format"""
        return {
            "code": self.code,
            "message": str(self),
            "details": self.details
        }

class ConfigurationError(MediaIntakeError):
    """Raised when there's an error in configuration or environment variables"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)

class TransportError(MediaIntakeError):
    """Raised when the intake request fails at the network or HTTP level"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="TRANSPORT_ERROR", details=details)

class MalformedResponse(MediaIntakeError):
    """Raised when the intake response shape cannot be parsed"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="MALFORMED_RESPONSE", details=details)

class NoArtifactsError(MediaIntakeError):
    """Raised when no platform resolved to an artifact"""
    def __init__(self, message: str = "Intake response contained no artifacts", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NO_ARTIFACTS", details=details)

class ChannelError(MediaIntakeError):
    """Raised when the notification channel fails before the artifact is ready"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CHANNEL_ERROR", details=details)

class FileReadError(MediaIntakeError):
    """Raised when the local source image cannot be read or decoded"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="FILE_READ_ERROR", details=details)

class InvalidTransitionError(MediaIntakeError):
    """Raised when an operation is not legal in the current state"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_TRANSITION", details=details)
