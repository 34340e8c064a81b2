"""
Triton kernel for the fused per-pixel color transform.

The legacy linear adjustment, PCA lighting and saturation blend all fold into one
affine map per pixel, ``y = A @ x + t``, so they run as a single pass over the
interleaved (H, W, 3) buffer.

Author: yuhezhang-ai
"""

import triton
import triton.language as tl
from ..config import ENABLE_AUTOTUNE


# Default configuration when auto-tuning is disabled
DEFAULT_CONFIG = triton.Config({'BLOCK_SIZE': 1024}, num_warps=4, num_stages=3)

# Configurations searched when auto-tuning is enabled
AUTOTUNE_CONFIGS = [
    triton.Config({'BLOCK_SIZE': 256}, num_warps=2, num_stages=2),
    triton.Config({'BLOCK_SIZE': 512}, num_warps=4, num_stages=2),
    triton.Config({'BLOCK_SIZE': 512}, num_warps=4, num_stages=3),
    triton.Config({'BLOCK_SIZE': 1024}, num_warps=4, num_stages=3),
    triton.Config({'BLOCK_SIZE': 1024}, num_warps=8, num_stages=3),
    triton.Config({'BLOCK_SIZE': 2048}, num_warps=8, num_stages=4),
]


def _get_autotune_configs():
    """Returns the appropriate list of configurations based on the global flag."""
    if ENABLE_AUTOTUNE:
        return AUTOTUNE_CONFIGS
    else:
        return [DEFAULT_CONFIG]


@triton.autotune(
    configs=_get_autotune_configs(),
    key=['n_pixels'],
)
@triton.jit
def color_transform_kernel(
    input_ptr,
    output_ptr,
    matrix_ptr,   # Row-major 3x3 color matrix [9] (float32)
    bias_ptr,     # Per-channel offset [3] (float32)
    n_pixels,     # H * W
    BLOCK_SIZE: tl.constexpr,
):
    """
    Apply ``y = A @ x + t`` to every pixel of an interleaved 3-channel image.

    Layout: (H, W, 3) contiguous -> offset = pixel * 3 + channel
    """
    pid = tl.program_id(axis=0)
    block_start = pid * BLOCK_SIZE
    pixel_offsets = block_start + tl.arange(0, BLOCK_SIZE)
    mask = pixel_offsets < n_pixels

    base = pixel_offsets * 3
    c0 = tl.load(input_ptr + base + 0, mask=mask, other=0.0)
    c1 = tl.load(input_ptr + base + 1, mask=mask, other=0.0)
    c2 = tl.load(input_ptr + base + 2, mask=mask, other=0.0)

    a00 = tl.load(matrix_ptr + 0)
    a01 = tl.load(matrix_ptr + 1)
    a02 = tl.load(matrix_ptr + 2)
    a10 = tl.load(matrix_ptr + 3)
    a11 = tl.load(matrix_ptr + 4)
    a12 = tl.load(matrix_ptr + 5)
    a20 = tl.load(matrix_ptr + 6)
    a21 = tl.load(matrix_ptr + 7)
    a22 = tl.load(matrix_ptr + 8)
    t0 = tl.load(bias_ptr + 0)
    t1 = tl.load(bias_ptr + 1)
    t2 = tl.load(bias_ptr + 2)

    out0 = a00 * c0 + a01 * c1 + a02 * c2 + t0
    out1 = a10 * c0 + a11 * c1 + a12 * c2 + t1
    out2 = a20 * c0 + a21 * c1 + a22 * c2 + t2

    tl.store(output_ptr + base + 0, out0, mask=mask)
    tl.store(output_ptr + base + 1, out1, mask=mask)
    tl.store(output_ptr + base + 2, out2, mask=mask)
