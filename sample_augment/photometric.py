"""
Photometric perturbation: legacy linear adjust, PCA lighting noise and saturation blend.

Color matrices below are in blue, green, red channel order and operate on the
0-255 pixel scale. They are module constants shared read-only by every pipeline.

Author: yuhezhang-ai
"""

import torch
from typing import NamedTuple, Optional, Sequence, Tuple

from . import functional as F
from .config import AugmentationConfig
from .rng import RandomSource


# Principal components of natural-image pixel colors (columns are eigenvectors)
CPCA = torch.tensor([
    [0.39731118, 0.70119634, -0.59200296],
    [-0.81698062, -0.02354167, -0.5761844],
    [0.41795513, -0.71257945, -0.56351045],
], dtype=torch.float32)

# Standard deviation along each principal component
CSTD = torch.diag(torch.tensor([19.72083305, 37.09388853, 121.78006099], dtype=torch.float32))

# Grayscale projection: every output channel receives the luma of the pixel
GSCL = torch.tensor([[0.114, 0.587, 0.299]], dtype=torch.float32).repeat(3, 1)

# Brightness ranges are expressed as a fraction of this many pixel levels
BRIGHTNESS_SCALE = 127.0


class PhotometricParams(NamedTuple):
    """Realized photometric draws for one image."""
    contrast: float = 0.0
    brightness: float = 0.0
    lighting: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    saturation: float = 0.0

    @property
    def is_identity(self) -> bool:
        return (
            self.contrast == 0.0
            and self.brightness == 0.0
            and not any(self.lighting)
            and self.saturation == 0.0
        )


def lighting_offset(noise: Sequence[float]) -> torch.Tensor:
    """Project lighting noise through the PCA basis: ``(CPCA @ CSTD) @ noise``."""
    alphas = torch.tensor(list(noise), dtype=torch.float32)
    return (CPCA @ CSTD) @ alphas


def saturation_matrix(alpha: float) -> torch.Tensor:
    """
    Blend matrix between the full-color and grayscale forms.

    ``alpha`` is the deviation from the identity, so ``alpha=0`` leaves colors
    untouched, negative values desaturate and positive values saturate:
    ``M = s * I + (1 - s) * GSCL`` with ``s = 1 + alpha``.

    Note:
        This differs from the literal blend ``alpha * I + (1 - alpha) * GSCL``,
        where ``alpha = 0`` would be full grayscale. Here the blend weight is
        ``1 + alpha``, so a zero-centred alpha range is centred on the unchanged
        image.
    """
    s = 1.0 + alpha
    return s * torch.eye(3, dtype=torch.float32) + (1.0 - s) * GSCL


def color_matrix(
    contrast: float = 0.0,
    brightness: float = 0.0,
    lighting: Optional[Sequence[float]] = None,
    saturation: float = 0.0,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Fold all photometric stages into a single per-pixel affine map.

    Stages run in order: ``x * (1 + contrast) + brightness``, then the lighting
    offset is added, then the saturation blend is applied. The result is
    ``y = A @ x + t``.

    Returns:
        (A, t) with shapes (3, 3) and (3,)
    """
    offset = torch.full((3,), float(brightness), dtype=torch.float32)
    if lighting is not None:
        offset = offset + lighting_offset(lighting)
    blend = saturation_matrix(saturation)
    return (1.0 + contrast) * blend, blend @ offset


class PhotometricPerturber:
    """
    Draw and apply the photometric perturbation for one policy.

    Draw order is fixed: contrast, brightness, lighting (3 values), saturation.
    A zero range skips its draws entirely.

    Args:
        contrast_range: Half-range of the contrast gain deviation
        brightness_range: Half-range of the brightness offset in pixel levels
        lighting_range: Half-range of the PCA noise weights (0.5 gives [-0.5, 0.5])
        saturation_range: Half-range of the saturation deviation (0.2 gives [-0.2, 0.2])

    Example:
        ```python
        perturber = PhotometricPerturber(lighting_range=0.5, saturation_range=0.2)
        params = perturber.sample(RandomSource(seed=0))
        out = perturber(crop, params)
        ```
    """

    def __init__(
        self,
        contrast_range: float = 0.0,
        brightness_range: float = 0.0,
        lighting_range: float = 0.0,
        saturation_range: float = 0.0,
    ):
        for name, value in (
            ('contrast_range', contrast_range),
            ('brightness_range', brightness_range),
            ('lighting_range', lighting_range),
            ('saturation_range', saturation_range),
        ):
            if value < 0:
                raise ValueError(f"{name} ({value}) must be non-negative")
        self.contrast_range = float(contrast_range)
        self.brightness_range = float(brightness_range)
        self.lighting_range = float(lighting_range)
        self.saturation_range = float(saturation_range)

    @classmethod
    def from_config(cls, config: AugmentationConfig) -> 'PhotometricPerturber':
        return cls(
            contrast_range=config.ratio('contrastRange'),
            brightness_range=config.ratio('brightnessRange') * BRIGHTNESS_SCALE,
            lighting_range=config.ratio('lightingRange'),
            saturation_range=config.ratio('saturationRange'),
        )

    @property
    def enabled(self) -> bool:
        return any([
            self.contrast_range,
            self.brightness_range,
            self.lighting_range,
            self.saturation_range,
        ])

    def sample(self, rng: RandomSource) -> PhotometricParams:
        contrast = rng.uniform_zero_centered(self.contrast_range)
        brightness = rng.uniform_zero_centered(self.brightness_range)
        lighting = tuple(rng.uniform_zero_centered(self.lighting_range) for _ in range(3))
        saturation = rng.uniform_zero_centered(self.saturation_range)
        return PhotometricParams(contrast, brightness, lighting, saturation)

    def __call__(self, image: torch.Tensor, params: PhotometricParams) -> torch.Tensor:
        """
        Apply realized params to an (H, W, C) buffer.

        Lighting and saturation need three channels; other channel counts only get
        the linear contrast/brightness adjustment. Identity params return ``image``.
        """
        if params.is_identity:
            return image

        if image.shape[-1] == 3:
            matrix, bias = color_matrix(
                params.contrast, params.brightness, params.lighting, params.saturation
            )
            return F.color_transform(image, matrix, bias)

        work = image if image.is_floating_point() else image.to(torch.float32)
        return work * (1.0 + params.contrast) + params.brightness

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(contrast_range={self.contrast_range}, "
            f"brightness_range={self.brightness_range}, lighting_range={self.lighting_range}, "
            f"saturation_range={self.saturation_range})"
        )


__all__ = [
    'CPCA',
    'CSTD',
    'GSCL',
    'BRIGHTNESS_SCALE',
    'PhotometricParams',
    'lighting_offset',
    'saturation_matrix',
    'color_matrix',
    'PhotometricPerturber',
]
