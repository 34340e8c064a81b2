"""
Configuration for Sample-Augment.

Holds the global kernel flags and the whitelisted augmentation parameter store.

Author: yuhezhang-ai
"""

import os
import enum
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigError, UnknownKeyError


# Auto-tuning configuration
# Set to True to enable kernel auto-tuning (tests multiple configs for optimal performance)
# Set to False to use fixed, sensible defaults (faster compilation, good-enough performance)
ENABLE_AUTOTUNE = os.getenv('SAMPLE_AUGMENT_ENABLE_AUTOTUNE', '0') == '1'


def enable_autotune():
    """
    Enable kernel auto-tuning for the fused color kernel.

    Only affects images processed on CUDA devices.

    Example:
        ```python
        import sample_augment as sa
        sa.enable_autotune()
        ```
    """
    global ENABLE_AUTOTUNE
    ENABLE_AUTOTUNE = True
    print("[Sample-Augment] Auto-tuning enabled. Kernels will auto-tune on first use.")


def disable_autotune():
    """Disable kernel auto-tuning and use the fixed default launch configuration."""
    global ENABLE_AUTOTUNE
    ENABLE_AUTOTUNE = False
    print("[Sample-Augment] Auto-tuning disabled. Using fixed kernel configurations.")


def is_autotune_enabled() -> bool:
    """
    Check if auto-tuning is currently enabled.

    Returns:
        bool: True if auto-tuning is enabled, False otherwise
    """
    return ENABLE_AUTOTUNE


class MediaType(enum.IntEnum):
    """Kind of media an AugmentationConfig describes. Only IMAGE is processed."""
    IMAGE = 0
    VIDEO = 1
    AUDIO = 2
    TEXT = 3


# Whitelisted parameter names and their defaults.
# Ratios are stored multiplied by 100 so every value stays an integer.
DEFAULTS: Dict[str, int] = {
    'channelCount': 3,
    'height': 224,
    'width': 224,
    'cropRange': 0,
    'doFlip': 0,
    'minScale': 100,
    'minAspectRatio': 100,
    'contrastRange': 0,
    'brightnessRange': 0,
    'angleRange': 0,
    'fixedScale': 0,
    'matchAspectRatio': 0,
    'lightingRange': 0,
    'saturationRange': 0,
    'R_mean': 104,
    'G_mean': 119,
    'B_mean': 127,
}


class AugmentationConfig:
    """
    Named integer parameters for one augmentation policy.

    Only the names in ``DEFAULTS`` are accepted; reading or writing any other
    name raises ``UnknownKeyError``. Values ending in ``Range``, ``Scale`` or
    ``AspectRatio`` are ratios multiplied by 100 (``minScale=8`` means 0.08),
    except ``angleRange`` (degrees) and ``fixedScale`` (pixels).

    ``lightingRange`` and ``saturationRange`` extend the base key set of the
    legacy loader; they default to 0, which disables the corresponding effect.

    Cross-field consistency (e.g. ``minScale <= 100``) is not checked here.

    Args:
        values: Optional mapping of parameter overrides
        media_type: Media kind this config describes (default: IMAGE)
        **kwargs: Parameter overrides by name

    Example:
        ```python
        config = AugmentationConfig(minScale=8, minAspectRatio=75, doFlip=1)
        config.set('angleRange', 10)
        config.ratio('minScale')  # 0.08
        ```
    """

    def __init__(
        self,
        values: Optional[Mapping[str, int]] = None,
        media_type: MediaType = MediaType.IMAGE,
        **kwargs,
    ):
        self._values = dict(DEFAULTS)
        self._frozen = False
        self.media_type = MediaType(media_type)
        if values is not None:
            self.update(values)
        self.update(kwargs)

    def set(self, name: str, value: int) -> None:
        if name not in DEFAULTS:
            raise UnknownKeyError(name)
        if self._frozen:
            raise ConfigError(f"Cannot set '{name}': configuration is frozen")
        self._values[name] = int(value)

    def get(self, name: str) -> int:
        if name not in DEFAULTS:
            raise UnknownKeyError(name)
        return self._values[name]

    def ratio(self, name: str) -> float:
        """Return a x100 parameter as a float ratio."""
        return self.get(name) / 100.0

    def update(self, values: Mapping[str, int]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def freeze(self) -> 'AugmentationConfig':
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def copy(self) -> 'AugmentationConfig':
        """Return an unfrozen copy."""
        return AugmentationConfig(self._values, media_type=self.media_type)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._values)

    @property
    def output_size(self) -> Tuple[int, int]:
        """(height, width) of the output buffer."""
        return self._values['height'], self._values['width']

    @property
    def mean_bgr(self) -> Tuple[int, int, int]:
        """Per-channel means in the pipeline's blue, green, red channel order."""
        return self._values['B_mean'], self._values['G_mean'], self._values['R_mean']

    def __getitem__(self, name: str) -> int:
        return self.get(name)

    def __setitem__(self, name: str, value: int) -> None:
        self.set(name, value)

    def __contains__(self, name) -> bool:
        return name in DEFAULTS

    def __eq__(self, other):
        if not isinstance(other, AugmentationConfig):
            return NotImplemented
        return self.media_type == other.media_type and self._values == other._values

    def __repr__(self):
        changed = {k: v for k, v in self._values.items() if v != DEFAULTS[k]}
        params = ', '.join(f'{k}={v}' for k, v in changed.items())
        return f"{self.__class__.__name__}({params})"


__all__ = [
    'ENABLE_AUTOTUNE',
    'enable_autotune',
    'disable_autotune',
    'is_autotune_enabled',
    'MediaType',
    'DEFAULTS',
    'AugmentationConfig',
]
