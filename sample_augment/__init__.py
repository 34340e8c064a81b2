"""
Sample-Augment: Per-Sample Randomized Image Augmentation for Training Pipelines

Produces a reproducibly randomized, fixed-size output for every decoded source
image by composing rotation, aspect-ratio/scale-constrained cropping, horizontal
flip, PCA lighting noise and saturation jitter, and resize.

Key Features:
- Crop boxes that always stay inside the source image
- One owned, seedable random source per pipeline (one pipeline per loader worker)
- Fused per-pixel color transform (Triton kernel on CUDA, torch on CPU)
- Area resampling for reductions, bicubic for enlargements
- Whitelisted integer configuration

Example:
    ```python
    import torch
    import sample_augment as sa

    config = sa.AugmentationConfig(
        minScale=8,
        minAspectRatio=75,
        doFlip=1,
        angleRange=10,
        lightingRange=50,
        saturationRange=20,
    )
    pipeline = sa.AugmentationPipeline(config, seed=0)

    img = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)
    out = pipeline(img)  # (224, 224, 3)
    ```
"""

from . import functional
from . import transforms
from . import utils
from . import config

from .utils import warmup_cache
from .config import (
    enable_autotune,
    disable_autotune,
    is_autotune_enabled,
    AugmentationConfig,
    MediaType,
)
from .errors import (
    ConfigError,
    UnknownKeyError,
    UnsupportedMediaError,
    GeometryError,
    DegenerateCropError,
    InputError,
    InvalidImageError,
)
from .rng import RandomSource
from .crop import CropBox, CropBoxSolver
from .photometric import PhotometricParams, PhotometricPerturber
from .geometric import GeometricTransformer
from .transforms import AugmentationSample, AugmentationPipeline

from .functional import (
    rotate,
    crop,
    crop_box,
    horizontal_flip,
    resize,
    color_transform,
    split_planar,
    decode_image,
)

__version__ = "0.1.0"

__all__ = [
    # Submodules
    'functional',
    'transforms',
    'utils',
    'config',

    # Utilities
    'warmup_cache',
    'enable_autotune',
    'disable_autotune',
    'is_autotune_enabled',

    # Configuration
    'AugmentationConfig',
    'MediaType',

    # Errors
    'ConfigError',
    'UnknownKeyError',
    'UnsupportedMediaError',
    'GeometryError',
    'DegenerateCropError',
    'InputError',
    'InvalidImageError',

    # Pipeline components
    'RandomSource',
    'CropBox',
    'CropBoxSolver',
    'PhotometricParams',
    'PhotometricPerturber',
    'GeometricTransformer',
    'AugmentationSample',
    'AugmentationPipeline',

    # Functional API
    'rotate',
    'crop',
    'crop_box',
    'horizontal_flip',
    'resize',
    'color_transform',
    'split_planar',
    'decode_image',
]
