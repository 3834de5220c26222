"""Error types raised by the space management engine."""


class FinSpaceError(Exception):
    """Base class for fin-space errors."""
    def __init__(self, message, code='InternalError'):
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigError(FinSpaceError):
    """Configuration file is missing, unreadable or invalid."""
    def __init__(self, message):
        super().__init__(message, "ConfigError")


class ProbeError(FinSpaceError):
    """Free space could not be determined for a device."""
    def __init__(self, device, reason):
        super().__init__(f"Error getting free space for {device}: {reason}", "ProbeError")
        self.device = device


class ScanError(FinSpaceError):
    """A section directory could not be listed."""
    def __init__(self, path, reason):
        super().__init__(f"Error reading section: {path}. Error: {reason}", "ScanError")
        self.path = path


class TransferError(FinSpaceError):
    """Copying a release between sections failed."""
    def __init__(self, release_name, reason):
        super().__init__(f"Transfer of {release_name} failed: {reason}", "TransferError")
        self.release_name = release_name


class TreeDepthError(FinSpaceError):
    """A directory tree is nested deeper than the configured limit."""
    def __init__(self, path, max_depth):
        super().__init__(
            f"Directory tree under {path} exceeds maximum depth of {max_depth}",
            "TreeDepthError"
        )
        self.path = path
        self.max_depth = max_depth
