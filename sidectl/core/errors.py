"""Domain-specific errors for sidectl."""


class SidectlError(Exception):
    """Base error for sidectl."""


class SettingsValidationError(SidectlError):
    """Raised when settings or an action set do not conform to schema or semantics."""


class SettingsLoadError(SidectlError):
    """Raised when reading or writing the settings file fails."""


class ActionSetNotFoundError(SidectlError):
    """Raised when an action set name is not registered."""


class TransportError(SidectlError):
    """Base transport error."""


class RadioUnavailableError(TransportError):
    """Raised when no Bluetooth capability is present on this host."""


class DeviceRequestCancelledError(TransportError):
    """Raised when a pending device request is cancelled before a match."""


class ConnectionFailedError(TransportError):
    """Raised on GATT connect, discovery, or subscription failures."""
