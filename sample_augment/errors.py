"""
Exception types raised by Sample-Augment.

Author: yuhezhang-ai
"""


class ConfigError(Exception):
    """Base class for configuration errors."""


class UnknownKeyError(ConfigError, KeyError):
    """Raised when a parameter name is not part of the configuration whitelist."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"Unknown augmentation parameter '{self.name}'"


class UnsupportedMediaError(ConfigError):
    """Raised when a pipeline is built for a media type it cannot process."""


class GeometryError(ValueError):
    """Base class for crop geometry errors."""


class DegenerateCropError(GeometryError):
    """
    Raised when a computed crop box is empty or leaves the source image.

    This usually means the configuration is inconsistent, e.g. minAspectRatio > 100
    or a fixedScale smaller than the output size.
    """


class InputError(ValueError):
    """Base class for invalid inputs."""


class InvalidImageError(InputError):
    """Raised when a source image is missing, empty, malformed or undecodable."""


__all__ = [
    'ConfigError',
    'UnknownKeyError',
    'UnsupportedMediaError',
    'GeometryError',
    'DegenerateCropError',
    'InputError',
    'InvalidImageError',
]
