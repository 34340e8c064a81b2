"""
Triton kernel implementations for Sample-Augment.

Only the per-pixel color stage runs as a custom kernel; geometric stages use
torch resampling on both CPU and CUDA tensors.

Author: yuhezhang-ai
"""

from .color_kernel import (
    color_transform_kernel,
)

__all__ = [
    'color_transform_kernel',
]
