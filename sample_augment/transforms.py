"""
Augmentation pipeline.

AugmentationPipeline draws every random parameter for one image from its own
RandomSource, then runs rotate -> crop -> flip -> photometric -> resize and
emits a buffer of the configured fixed size.

Author: yuhezhang-ai
"""

import sys
import torch
import torch.nn as nn
from torch.utils.data import get_worker_info
from typing import NamedTuple, Optional, Tuple, Union

from . import functional as F
from .config import AugmentationConfig, MediaType
from .crop import CropBox, CropBoxSolver
from .errors import InvalidImageError, UnsupportedMediaError
from .geometric import GeometricTransformer
from .photometric import PhotometricParams, PhotometricPerturber
from .rng import RandomSource


# Probability of a horizontal flip when doFlip is set
FLIP_PROBABILITY = 0.5


class AugmentationSample(NamedTuple):
    """Realized random draws for one image. Never reused across images."""
    flip: bool
    angle: float
    crop_box: CropBox
    photometric: PhotometricParams

    @property
    def lighting(self) -> Tuple[float, float, float]:
        return self.photometric.lighting

    @property
    def saturation(self) -> float:
        return self.photometric.saturation


class AugmentationPipeline(nn.Module):
    """
    Per-sample randomized augmentation with a fixed output size.

    Each instance owns its RandomSource. Inside a ``DataLoader`` worker the source
    is re-derived per worker on the first draw, so workers never replay each
    other's samples. Do not share one pipeline across threads.

    Args:
        config: AugmentationConfig describing the policy. A frozen copy is kept,
                so later changes to ``config`` do not affect the pipeline.
        seed: Seed for the pipeline's RandomSource. If None, a non-deterministic
              seed is chosen once.
        verbose: Print each realized sample to stderr (default: False)

    Raises:
        UnsupportedMediaError: If ``config.media_type`` is not IMAGE
        DegenerateCropError: If ``minAspectRatio`` is outside (0, 100]

    Example:
        ```python
        config = AugmentationConfig(minScale=8, minAspectRatio=75, doFlip=1, angleRange=10)
        pipeline = AugmentationPipeline(config, seed=0)

        img = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)  # (H, W, C), BGR
        out = pipeline(img)  # (224, 224, 3) uint8

        planar = pipeline.decode(jpeg_bytes)  # (3, 224, 224), blue plane first
        ```

    Note:
        Input images are interleaved (H, W, C) tensors on the 0-255 scale in blue,
        green, red order. The output keeps the input dtype; integer outputs are
        rounded and saturated.
    """

    def __init__(
        self,
        config: Optional[AugmentationConfig] = None,
        seed: Optional[int] = None,
        verbose: bool = False,
    ):
        super().__init__()
        config = AugmentationConfig() if config is None else config.copy()
        if config.media_type != MediaType.IMAGE:
            raise UnsupportedMediaError(
                f"AugmentationPipeline only processes {MediaType.IMAGE.name} media, "
                f"got {config.media_type.name}"
            )
        self.config = config.freeze()

        self.rng = RandomSource(seed)
        self._seeded = seed is not None
        self._worker_id = None
        self.crop_solver = CropBoxSolver.from_config(config)
        self.photometric = PhotometricPerturber.from_config(config)
        self.geometric = GeometricTransformer(config.output_size)

        self.flip_p = FLIP_PROBABILITY if config.get('doFlip') != 0 else 0.0
        self.angle_range = float(config.get('angleRange'))
        self.channel_count = config.get('channelCount')
        self.verbose = verbose

    def reseed(self, seed: Optional[int] = None) -> None:
        self.rng.reseed(seed)
        self._seeded = seed is not None

    def _sync_worker(self) -> None:
        """
        Give each data-loader worker process its own random stream.

        On the first draw in a new worker the source is re-derived: from
        ``for_worker(seed, id)`` when the pipeline was seeded, otherwise from the
        seed torch assigns the worker.
        """
        info = get_worker_info()
        worker_id = None if info is None else info.id
        if worker_id == self._worker_id:
            return
        self._worker_id = worker_id
        if info is None:
            return
        if self._seeded:
            self.rng = RandomSource.for_worker(self.rng.seed, info.id)
        else:
            self.rng.reseed(info.seed)

    def sample(self, width: int, height: int) -> AugmentationSample:
        """
        Draw all random parameters for a source of the given size.

        Draw order is fixed: flip, angle, crop box (aspect ratio, scale, x jitter,
        y jitter), photometric. Disabled effects consume no draws.
        """
        self._sync_worker()
        flip = self.rng.bernoulli(self.flip_p)
        angle = self.rng.uniform_zero_centered(self.angle_range)
        crop_box = self.crop_solver.solve(width, height, self.rng)
        photometric = self.photometric.sample(self.rng)
        return AugmentationSample(flip, angle, crop_box, photometric)

    def _check_image(self, image) -> torch.Tensor:
        if image is None:
            raise InvalidImageError("Source image is missing")
        if not isinstance(image, torch.Tensor):
            raise TypeError(f"image must be a torch.Tensor, got {type(image)}")
        if image.ndim == 2:
            image = image.unsqueeze(-1)
        if image.ndim != 3:
            raise InvalidImageError(
                f"image must have shape (H, W, C) or (H, W), got {tuple(image.shape)}"
            )
        if image.numel() == 0:
            raise InvalidImageError(f"image is empty, got shape {tuple(image.shape)}")
        if image.shape[2] != self.channel_count:
            raise InvalidImageError(
                f"image has {image.shape[2]} channels, expected channelCount={self.channel_count}"
            )
        return image

    def apply_sample(
        self,
        image: torch.Tensor,
        sample: AugmentationSample,
        out: Optional[torch.Tensor] = None,
    ) -> torch.Tensor:
        """
        Apply an already realized sample. Deterministic; consumes no random draws.

        Args:
            image: Source tensor of shape (H, W, C) or (H, W)
            sample: Draws from ``sample()`` for this image's size
            out: Optional caller-owned buffer of shape (height, width, channelCount)

        Returns:
            ``out`` if given, otherwise a new (height, width, channelCount) tensor
        """
        image = self._check_image(image)
        dtype = image.dtype

        color_stage = None
        if not sample.photometric.is_identity:
            color_stage = lambda crop: self.photometric(crop, sample.photometric)

        result = self.geometric(image, sample.angle, sample.crop_box, sample.flip, color_stage)
        result = F.to_dtype(result, dtype)

        if out is None:
            return result
        if tuple(out.shape) != tuple(result.shape):
            raise ValueError(
                f"out must have shape {tuple(result.shape)}, got {tuple(out.shape)}"
            )
        out.copy_(result)
        return out

    def transform(self, image: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        """
        Augment one image.

        Args:
            image: Source tensor of shape (H, W, C) or (H, W)
            out: Optional caller-owned buffer of shape (height, width, channelCount)

        Returns:
            Tensor of shape (height, width, channelCount)

        Raises:
            InvalidImageError: If the image is missing, empty or has the wrong channel count
            DegenerateCropError: If the policy yields a crop box outside the image
        """
        image = self._check_image(image)
        height, width, _ = image.shape
        sample = self.sample(width, height)
        if self.verbose:
            print(f"[Sample-Augment] {sample}", file=sys.stderr)
        return self.apply_sample(image, sample, out=out)

    def forward(self, image: torch.Tensor) -> torch.Tensor:
        return self.transform(image)

    def decode(self, data: Union[bytes, bytearray, memoryview, torch.Tensor]) -> torch.Tensor:
        """
        Decode a compressed image, augment it, and split it into channel planes.

        Returns:
            uint8 tensor of shape (channelCount, height, width), blue plane first

        Raises:
            InvalidImageError: If the data cannot be decoded
        """
        image = F.decode_image(data, channels=self.channel_count)
        return F.split_planar(self.transform(image))

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(config={self.config!r}, seed={self.rng.seed}, "
            f"verbose={self.verbose})"
        )


__all__ = [
    'FLIP_PROBABILITY',
    'AugmentationSample',
    'AugmentationPipeline',
]
