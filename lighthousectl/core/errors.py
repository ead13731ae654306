"""Domain-specific errors for lighthousectl."""


class LighthouseError(Exception):
    """Base error for lighthousectl."""


class ConfigValidationError(LighthouseError):
    """Raised when a config file does not conform to schema or semantics."""


class ConfigLoadError(LighthouseError):
    """Raised when reading the config file fails."""


class DeviceSelectionError(LighthouseError):
    """Raised when a device name does not resolve to a registered lighthouse."""


class DeviceDisabledError(LighthouseError):
    """Raised for every operation on a lighthouse that cannot be reached.

    This is a permanent error: retrying will not help until the process restarts.
    """


class TransportError(LighthouseError):
    """Base transport error."""


class AdapterUnavailableError(TransportError):
    """Raised when no Bluetooth adapter is usable."""


class TransportConnectError(TransportError):
    """Raised on BLE connect failures."""


class AttributeResolutionError(TransportError):
    """Raised when the control service or a characteristic is missing."""


class TransportReadError(TransportError):
    """Raised when reading a characteristic fails."""


class TransportWriteError(TransportError):
    """Raised when writing a characteristic fails."""


class TransportTimeoutError(TransportError):
    """Raised when an operation does not settle before its deadline."""


class OperationAbandonedError(TransportError):
    """Raised inside a session whose caller has already given up on it."""
