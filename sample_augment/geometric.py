"""
Geometric stage of the augmentation pipeline.

Author: yuhezhang-ai
"""

import torch
from typing import Callable, Optional, Tuple

from . import functional as F
from .crop import CropBox


class GeometricTransformer:
    """
    Run rotate -> crop -> flip -> (color stage) -> resize on one image.

    The color stage is passed in as a callable so it runs on the cropped buffer,
    before resampling to the output size.

    Args:
        output_size: (height, width) of the result
        fill: Value for pixels uncovered by the rotation (default: 0.0)
    """

    def __init__(self, output_size: Tuple[int, int], fill: float = 0.0):
        self.output_size = tuple(output_size)
        self.fill = fill

    def __call__(
        self,
        image: torch.Tensor,
        angle: float,
        crop_box: CropBox,
        flip: bool,
        color_stage: Optional[Callable[[torch.Tensor], torch.Tensor]] = None,
    ) -> torch.Tensor:
        image = F.rotate(image, angle, fill=self.fill)
        image = F.crop_box(image, crop_box, copy=True)
        if flip:
            image = F.horizontal_flip(image)
        if color_stage is not None:
            image = color_stage(image)
        return F.resize(image, self.output_size)

    def __repr__(self):
        return f"{self.__class__.__name__}(output_size={self.output_size}, fill={self.fill})"


__all__ = ['GeometricTransformer']
