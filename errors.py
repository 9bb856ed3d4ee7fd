class IntersectionError(Exception):
    """Base exception for the intersection controller."""
    pass

class ConfigurationError(IntersectionError):
    """Raised when timings or backend settings are invalid."""
    pass

class HardwareError(IntersectionError):
    """Raised when a GPIO backend cannot be opened or driven."""
    pass
