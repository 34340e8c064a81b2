"""
Functional raster operations used by the augmentation pipeline.

All operations take and return interleaved (H, W, C) tensors with pixel values on
the 0-255 scale. Resampling and affine warps are delegated to
torch.nn.functional; the per-pixel color transform runs as a Triton kernel for
CUDA tensors and as a torch matmul on CPU.

Author: yuhezhang-ai
"""

import math
import sys
from typing import Sequence, Tuple, Union

import torch
import torch.nn.functional as nnF
import triton
from torchvision.io import ImageReadMode, decode_image as _tv_decode_image

from .config import is_autotune_enabled
from .crop import CropBox
from .errors import InvalidImageError
from .kernels.color_kernel import color_transform_kernel
from .utils import should_show_autotune_message


class InterpolationMode:
    """Resampling modes used by ``resize``."""
    AREA = "area"
    BICUBIC = "bicubic"


def _validate_image_tensor(tensor: torch.Tensor, name: str = "image") -> None:
    """
    Validate that the input is a non-empty interleaved image tensor.

    Raises:
        TypeError: If tensor is not a torch.Tensor
        InvalidImageError: If tensor is not (H, W, C) or has a zero-sized dimension
    """
    if not isinstance(tensor, torch.Tensor):
        raise TypeError(f"{name} must be a torch.Tensor, got {type(tensor)}")

    if tensor.ndim != 3:
        raise InvalidImageError(
            f"{name} must be a 3D tensor with shape (H, W, C), got shape {tuple(tensor.shape)}"
        )

    if tensor.numel() == 0:
        raise InvalidImageError(f"{name} is empty, got shape {tuple(tensor.shape)}")


def _to_working_dtype(image: torch.Tensor) -> torch.Tensor:
    """Integer rasters are processed as float32; floating rasters keep their dtype."""
    if image.is_floating_point():
        return image
    return image.to(torch.float32)


def to_dtype(image: torch.Tensor, dtype: torch.dtype) -> torch.Tensor:
    """
    Convert a working buffer back to the caller's dtype.

    Integer outputs are rounded and saturated to the dtype's range, matching
    saturating casts of 8-bit rasters.
    """
    if image.dtype == dtype:
        return image
    if dtype.is_floating_point:
        return image.to(dtype)
    info = torch.iinfo(dtype)
    return image.round().clamp_(info.min, info.max).to(dtype)


# ============================================================================
# Geometric Transformations
# ============================================================================


def _rotation_theta(angle: float, height: int, width: int) -> torch.Tensor:
    """
    Build the normalized inverse matrix for ``affine_grid``.

    Rotation is counter-clockwise for positive angles (image y axis points down)
    and pivots on the image center. The off-diagonal terms are rescaled because
    normalized coordinates stretch differently along x and y.
    """
    rot = angle * (math.pi / 180.0)
    cos_a = math.cos(rot)
    sin_a = math.sin(rot)
    return torch.tensor(
        [[cos_a, -sin_a * height / width, 0.0],
         [sin_a * width / height, cos_a, 0.0]],
        dtype=torch.float32,
    )


def _warp_affine(image: torch.Tensor, theta: torch.Tensor, fill: float = 0.0) -> torch.Tensor:
    """Resample an (H, W, C) image through an inverse affine matrix (bilinear)."""
    work = _to_working_dtype(image)
    height, width, channels = work.shape
    batch = work.permute(2, 0, 1).unsqueeze(0)
    theta = theta.to(device=work.device, dtype=work.dtype).unsqueeze(0)
    grid = nnF.affine_grid(theta, [1, channels, height, width], align_corners=False)
    if fill != 0.0:
        # Warp a ones plane alongside so out-of-bounds pixels can be filled
        ones = torch.ones_like(batch[:, :1])
        warped = nnF.grid_sample(torch.cat([batch, ones], dim=1), grid,
                                 mode='bilinear', padding_mode='zeros', align_corners=False)
        coverage = warped[:, -1:]
        warped = warped[:, :-1] + (1.0 - coverage) * fill
    else:
        warped = nnF.grid_sample(batch, grid, mode='bilinear', padding_mode='zeros', align_corners=False)
    return warped[0].permute(1, 2, 0).contiguous()


def rotate(image: torch.Tensor, angle: float, fill: float = 0.0) -> torch.Tensor:
    """
    Rotate the image about its center, keeping its size.

    Args:
        image: Input tensor of shape (H, W, C)
        angle: Rotation angle in degrees, counter-clockwise
        fill: Value for pixels that fall outside the source

    Returns:
        Rotated tensor of shape (H, W, C). An angle of exactly 0 returns ``image``
        itself without resampling.

    Example:
        ```python
        img = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)
        rotated = rotate(img, 15.0)
        ```
    """
    _validate_image_tensor(image, "image")
    if angle == 0.0:
        return image
    height, width, _ = image.shape
    return _warp_affine(image, _rotation_theta(angle, height, width), fill=fill)


def crop(
    image: torch.Tensor,
    top: int,
    left: int,
    height: int,
    width: int,
    copy: bool = True,
) -> torch.Tensor:
    """
    Crop a rectangular region from the input image.

    Args:
        image: Input tensor of shape (H, W, C)
        top: Top pixel coordinate
        left: Left pixel coordinate
        height: Height of the cropped region
        width: Width of the cropped region
        copy: Return a contiguous copy instead of a view (default: True)

    Returns:
        Cropped tensor of shape (height, width, C)

    Raises:
        ValueError: If the region is empty or not inside the image
    """
    _validate_image_tensor(image, "image")

    img_height, img_width, _ = image.shape

    if height <= 0 or width <= 0:
        raise ValueError(f"Crop size must be positive, got height={height}, width={width}")

    if top < 0 or left < 0 or top + height > img_height or left + width > img_width:
        raise ValueError(
            f"Crop region (top={top}, left={left}, height={height}, width={width}) "
            f"is outside image size ({img_height}, {img_width})"
        )

    region = image[top:top + height, left:left + width]
    return region.clone(memory_format=torch.contiguous_format) if copy else region


def crop_box(image: torch.Tensor, box: CropBox, copy: bool = True) -> torch.Tensor:
    """Crop the pixel region covered by a floating point CropBox."""
    _validate_image_tensor(image, "image")
    img_height, img_width, _ = image.shape
    top, left, height, width = box.to_pixels(img_width, img_height)
    return crop(image, top, left, height, width, copy=copy)


def horizontal_flip(image: torch.Tensor) -> torch.Tensor:
    """Mirror the image left to right. Always returns a new tensor."""
    _validate_image_tensor(image, "image")
    return image.flip(1)


def select_interpolation(src_size: Tuple[int, int], dst_size: Tuple[int, int]) -> str:
    """
    Pick the resampling mode for a resize.

    Reductions (source area larger than target area) use area averaging to avoid
    aliasing; enlargements use bicubic to avoid blockiness.
    """
    src_area = src_size[0] * src_size[1]
    dst_area = dst_size[0] * dst_size[1]
    return InterpolationMode.AREA if src_area > dst_area else InterpolationMode.BICUBIC


def resize(image: torch.Tensor, size: Union[int, Sequence[int]]) -> torch.Tensor:
    """
    Resize the image to a fixed size.

    Args:
        image: Input tensor of shape (H, W, C)
        size: Target (height, width), or int for a square output

    Returns:
        Resized tensor of shape (height, width, C). Integer inputs come back as
        float32; use ``to_dtype`` to convert. Same-size inputs are returned as-is.
    """
    _validate_image_tensor(image, "image")

    if isinstance(size, int):
        out_height = out_width = size
    else:
        out_height, out_width = size

    if out_height <= 0 or out_width <= 0:
        raise ValueError(f"Output size must be positive, got ({out_height}, {out_width})")

    height, width, _ = image.shape
    if (height, width) == (out_height, out_width):
        return image

    mode = select_interpolation((height, width), (out_height, out_width))
    batch = _to_working_dtype(image).permute(2, 0, 1).unsqueeze(0)
    if mode == InterpolationMode.AREA:
        resized = nnF.interpolate(batch, size=(out_height, out_width), mode='area')
    else:
        resized = nnF.interpolate(batch, size=(out_height, out_width), mode='bicubic', align_corners=False)
    return resized[0].permute(1, 2, 0).contiguous()


# ============================================================================
# Color Transformations
# ============================================================================


def color_transform(
    image: torch.Tensor,
    matrix: torch.Tensor,
    bias: torch.Tensor,
) -> torch.Tensor:
    """
    Apply ``y = matrix @ x + bias`` to every pixel of a 3-channel image.

    CUDA tensors go through a single Triton kernel launch; CPU tensors use torch.

    Args:
        image: Input tensor of shape (H, W, 3)
        matrix: 3x3 color matrix
        bias: Per-channel offset of shape (3,)

    Returns:
        Transformed float tensor of shape (H, W, 3)
    """
    _validate_image_tensor(image, "image")

    if image.shape[2] != 3:
        raise InvalidImageError(f"Expected 3 channels, got {image.shape[2]}")

    if tuple(matrix.shape) != (3, 3) or tuple(bias.shape) != (3,):
        raise ValueError(
            f"matrix must be (3, 3) and bias (3,), got {tuple(matrix.shape)} and {tuple(bias.shape)}"
        )

    if not image.is_cuda:
        work = _to_working_dtype(image)
        matrix = matrix.to(dtype=work.dtype)
        bias = bias.to(dtype=work.dtype)
        return torch.matmul(work, matrix.t()) + bias

    work = image.to(torch.float32).contiguous()
    matrix_t = matrix.to(device=work.device, dtype=torch.float32).contiguous().view(-1)
    bias_t = bias.to(device=work.device, dtype=torch.float32).contiguous()
    output = torch.empty_like(work)

    n_pixels = work.shape[0] * work.shape[1]
    grid = lambda meta: (triton.cdiv(n_pixels, meta['BLOCK_SIZE']),)

    if is_autotune_enabled() and should_show_autotune_message('color_transform_kernel', (n_pixels,)):
        print(f"[Sample-Augment] Auto-tuning color_transform_kernel for size={work.shape[0]}×{work.shape[1]}...",
              file=sys.stderr, flush=True)

    color_transform_kernel[grid](
        work,
        output,
        matrix_t,
        bias_t,
        n_pixels,
    )

    return output


def split_planar(image: torch.Tensor) -> torch.Tensor:
    """
    De-interleave (H, W, C) into contiguous channel planes (C, H, W).

    Channel order is preserved, so a blue, green, red buffer yields the blue plane
    first.
    """
    _validate_image_tensor(image, "image")
    return image.permute(2, 0, 1).contiguous()


def decode_image(
    data: Union[bytes, bytearray, memoryview, torch.Tensor],
    channels: int = 3,
) -> torch.Tensor:
    """
    Decode a compressed image into an interleaved uint8 tensor.

    Args:
        data: Encoded bytes or a 1D uint8 tensor (JPEG, PNG, ...)
        channels: 3 for blue, green, red output or 1 for grayscale

    Returns:
        uint8 tensor of shape (H, W, channels)

    Raises:
        InvalidImageError: If the data is empty or cannot be decoded
    """
    if channels not in (1, 3):
        raise ValueError(f"channels must be 1 or 3, got {channels}")

    if isinstance(data, (bytes, bytearray, memoryview)):
        if len(data) == 0:
            raise InvalidImageError("Encoded image is empty")
        data = torch.frombuffer(bytearray(data), dtype=torch.uint8)
    elif isinstance(data, torch.Tensor):
        if data.dtype != torch.uint8 or data.ndim != 1:
            raise InvalidImageError(
                f"Encoded image tensor must be 1D uint8, got {data.dtype} with shape {tuple(data.shape)}"
            )
        if data.numel() == 0:
            raise InvalidImageError("Encoded image is empty")
    else:
        raise TypeError(f"data must be bytes or a torch.Tensor, got {type(data)}")

    mode = ImageReadMode.RGB if channels == 3 else ImageReadMode.GRAY
    try:
        decoded = _tv_decode_image(data.cpu(), mode=mode)
    except (RuntimeError, ValueError) as e:
        raise InvalidImageError(f"Could not decode image: {e}") from e

    image = decoded.permute(1, 2, 0)
    if channels == 3:
        image = image.flip(-1)  # RGB -> BGR
    return image.contiguous()


__all__ = [
    'InterpolationMode',
    'to_dtype',
    'rotate',
    'crop',
    'crop_box',
    'horizontal_flip',
    'select_interpolation',
    'resize',
    'color_transform',
    'split_planar',
    'decode_image',
]
