"""
Crop box computation.

Given the source size, the policy ratios and a RandomSource, CropBoxSolver
derives a sub-rectangle of the source that honours the configured aspect
ratio and area limits. The solver is pure apart from its random draws.

Author: yuhezhang-ai
"""

import math
from typing import NamedTuple, Tuple

from .config import AugmentationConfig
from .errors import DegenerateCropError
from .rng import RandomSource


# Float round-off tolerated when checking a box against the source bounds (pixels)
BOUNDS_EPS = 1e-6


class CropBox(NamedTuple):
    """Axis-aligned rectangle in source image coordinates (floating point)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def within(self, source_width: float, source_height: float, eps: float = BOUNDS_EPS) -> bool:
        return (
            self.width > 0 and self.height > 0
            and self.x >= -eps and self.y >= -eps
            and self.x + self.width <= source_width + eps
            and self.y + self.height <= source_height + eps
        )

    def to_pixels(self, source_width: int, source_height: int) -> Tuple[int, int, int, int]:
        """
        Round to integer pixel bounds that stay inside the source.

        Returns:
            (top, left, height, width)
        """
        width = min(max(1, int(round(self.width))), source_width)
        height = min(max(1, int(round(self.height))), source_height)
        left = min(max(0, int(round(self.x))), source_width - width)
        top = min(max(0, int(round(self.y))), source_height - height)
        return top, left, height, width


def _snap_interval(offset: float, length: float, limit: float) -> Tuple[float, float]:
    """Clamp ``[offset, offset + length]`` into ``[0, limit]`` exactly."""
    length = min(length, float(limit))
    offset = min(max(offset, 0.0), limit - length)
    while offset + length > limit:
        length = math.nextafter(length, 0.0)
    return offset, length


class CropBoxSolver:
    """
    Compute random crop boxes for one augmentation policy.

    Algorithm:
        1. ``origAR = W / H``
        2. ``cropAR`` is ``origAR`` when matching the source, otherwise uniform in
           ``[min_aspect_ratio, 1 / min_aspect_ratio]``
        3. Base box: the largest box of aspect ``cropAR`` inside the source. Its
           limiting side is the height when ``cropAR <= origAR`` and the width
           otherwise.
        4. Scale: with ``fixed_scale`` set, ``min(out_w, out_h) / fixed_scale``.
           Otherwise the crop area fraction is drawn uniformly from
           ``[min(min_scale, maxArea), maxArea]`` where ``maxArea`` is the area
           fraction of the base box, and converted to a linear factor on the
           base box with a square root.
        5. Centre the box, then jitter each offset by up to ``crop_range`` times
           the centre offset.

    Args:
        min_scale: Minimum crop area as a fraction of the source area
        min_aspect_ratio: Smallest crop aspect ratio, expected in (0, 1]
        crop_range: Fraction of the centre offset used for positional jitter, in [0, 1]
        fixed_scale: Fixed scale divisor in pixels, 0 disables it
        match_aspect_ratio: Use the source aspect ratio instead of sampling one
        output_size: (height, width) of the final output, used by ``fixed_scale``

    Raises:
        DegenerateCropError: If min_aspect_ratio is outside (0, 1], or from ``solve``
                             if the box is empty or leaves the source

    Note:
        The ``fixed_scale`` scale does not depend on the source pixel size. It is an
        approximation of a fixed physical crop and can exceed 1 when ``fixed_scale``
        is smaller than the output size, which ``solve`` reports as a degenerate crop.
    """

    def __init__(
        self,
        min_scale: float = 1.0,
        min_aspect_ratio: float = 1.0,
        crop_range: float = 0.0,
        fixed_scale: int = 0,
        match_aspect_ratio: bool = False,
        output_size: Tuple[int, int] = (224, 224),
    ):
        if not 0.0 < min_aspect_ratio <= 1.0:
            raise DegenerateCropError(f"min_aspect_ratio ({min_aspect_ratio}) must be in (0, 1]")
        self.min_scale = float(min_scale)
        self.min_aspect_ratio = float(min_aspect_ratio)
        self.crop_range = float(crop_range)
        self.fixed_scale = int(fixed_scale)
        self.match_aspect_ratio = bool(match_aspect_ratio)
        self.output_size = tuple(output_size)

    @classmethod
    def from_config(cls, config: AugmentationConfig) -> 'CropBoxSolver':
        return cls(
            min_scale=config.ratio('minScale'),
            min_aspect_ratio=config.ratio('minAspectRatio'),
            crop_range=config.ratio('cropRange'),
            fixed_scale=config.get('fixedScale'),
            match_aspect_ratio=config.get('matchAspectRatio') != 0,
            output_size=config.output_size,
        )

    def sample_aspect_ratio(self, source_width: float, source_height: float, rng: RandomSource) -> float:
        orig_ar = source_width / source_height
        if self.match_aspect_ratio:
            return orig_ar
        return rng.uniform(self.min_aspect_ratio, 1.0 / self.min_aspect_ratio)

    def sample_scale(self, orig_ar: float, crop_ar: float, rng: RandomSource) -> float:
        """Linear scale applied to the base box."""
        if self.fixed_scale != 0:
            return min(self.output_size) / self.fixed_scale
        max_area = min(crop_ar / orig_ar, orig_ar / crop_ar)
        area = rng.uniform(min(self.min_scale, max_area), max_area)
        return math.sqrt(area / max_area)

    @staticmethod
    def base_size(source_width: float, source_height: float, crop_ar: float) -> Tuple[float, float]:
        """Largest (width, height) with aspect ``crop_ar`` that fits the source."""
        orig_ar = source_width / source_height
        if crop_ar == orig_ar:
            return float(source_width), float(source_height)
        if crop_ar <= orig_ar:
            return source_height * crop_ar, source_height
        return source_width, source_width / crop_ar

    def solve(self, source_width: int, source_height: int, rng: RandomSource) -> CropBox:
        if source_width <= 0 or source_height <= 0:
            raise DegenerateCropError(
                f"Source size must be positive, got width={source_width}, height={source_height}"
            )
        orig_ar = source_width / source_height
        crop_ar = self.sample_aspect_ratio(source_width, source_height, rng)
        if crop_ar <= 0:
            raise DegenerateCropError(f"Crop aspect ratio must be positive, got {crop_ar}")

        scale = self.sample_scale(orig_ar, crop_ar, rng)
        base_width, base_height = self.base_size(source_width, source_height, crop_ar)
        crop_width = base_width * scale
        crop_height = base_height * scale

        # Centre, then jitter by at most crop_range of the centre offset
        center_x = (source_width - crop_width) / 2.0
        center_y = (source_height - crop_height) / 2.0
        x = center_x + rng.uniform_zero_centered(center_x * self.crop_range)
        y = center_y + rng.uniform_zero_centered(center_y * self.crop_range)

        box = CropBox(x, y, crop_width, crop_height)
        if not box.within(source_width, source_height):
            raise DegenerateCropError(
                f"Crop box {tuple(box)} does not fit source size ({source_width}, {source_height}); "
                f"check minScale, minAspectRatio and fixedScale"
            )

        # Snap round-off so the emitted box is strictly inside the source
        x, crop_width = _snap_interval(x, crop_width, source_width)
        y, crop_height = _snap_interval(y, crop_height, source_height)
        return CropBox(x, y, crop_width, crop_height)

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(min_scale={self.min_scale}, "
            f"min_aspect_ratio={self.min_aspect_ratio}, crop_range={self.crop_range}, "
            f"fixed_scale={self.fixed_scale}, match_aspect_ratio={self.match_aspect_ratio})"
        )


__all__ = ['CropBox', 'CropBoxSolver', 'BOUNDS_EPS']
