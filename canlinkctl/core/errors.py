"""Domain-specific errors for canlinkctl."""


class CanLinkError(Exception):
    """Base error for canlinkctl."""


class InputValidationError(CanLinkError):
    """Raised when a mandatory argument is missing or malformed."""


class ConfigLoadError(CanLinkError):
    """Raised when reading a port table source fails."""


class ConfigValidationError(CanLinkError):
    """Raised when a port table does not conform to schema or semantics."""


class DeviceNotFoundError(CanLinkError):
    """Raised when no CAN interface can be resolved for the request."""


class WaitTimeoutError(DeviceNotFoundError):
    """Raised when a device does not appear before the wait deadline."""


class WaitCancelledError(CanLinkError):
    """Raised when a pending device wait is cancelled."""


class CountMismatchError(CanLinkError):
    """Raised when detected or configured interface counts differ from the expected count."""


class UnknownBusAddressError(CanLinkError):
    """Raised when a discovered interface's bus address has no port table entry."""


class DriverLoadError(CanLinkError):
    """Raised when the kernel driver module cannot be loaded."""


class LinkCommandError(CanLinkError):
    """Raised when an interface command fails or cannot be executed."""


class DelegationError(CanLinkError):
    """Raised when configuration fails after the device wait handed off."""
