"""
Utility functions for Sample-Augment.

Author: yuhezhang-ai
"""

import torch
import sys
from pathlib import Path
from typing import Tuple


def get_triton_cache_dir() -> Path:
    """Get the Triton cache directory path."""
    # Triton uses ~/.triton/cache by default
    cache_dir = Path.home() / ".triton" / "cache"
    return cache_dir


# Kernel+config combos already checked, so training steps skip the file system
_checked_kernels = set()


def should_show_autotune_message(kernel_name: str, cache_key: tuple) -> bool:
    """
    Check if we should show an auto-tuning message for a kernel.

    Each kernel+config combination is reported at most once per process.

    Args:
        kernel_name: Name of the kernel (e.g., "color_transform_kernel")
        cache_key: Tuple of dimensions that identify this specific config

    Returns:
        True if the kernel will probably auto-tune, False otherwise
    """
    check_key = (kernel_name, cache_key)
    if check_key in _checked_kernels:
        return False
    _checked_kernels.add(check_key)

    cache_dir = get_triton_cache_dir()
    if not cache_dir.exists():
        return True

    # Triton cache files include the kernel name. Whether this exact size is
    # cached cannot be told without parsing Triton's cache format, so any hit
    # counts as cached.
    try:
        return len(list(cache_dir.rglob(f"*{kernel_name}*"))) == 0
    except OSError:
        return True


def warmup_cache(
    image_sizes: Tuple[int, ...] = (224, 256, 512),
    verbose: bool = True
):
    """
    Compile (and auto-tune, if enabled) the color kernel for common crop sizes.

    The first CUDA call of the photometric stage otherwise pays the Triton
    compilation cost inside the training loop.

    Args:
        image_sizes: Square image sizes to warm up (default: (224, 256, 512))
        verbose: Whether to print progress messages (default: True)

    Example:
        ```python
        import sample_augment as sa
        sa.warmup_cache(image_sizes=(224, 480))
        ```
    """
    if not torch.cuda.is_available():
        if verbose:
            print("[Sample-Augment] CUDA not available. Skipping warmup.", file=sys.stderr)
        return

    from . import functional as F
    from .photometric import color_matrix

    if verbose:
        gpu_name = torch.cuda.get_device_name(0)
        print(f"[Sample-Augment] Warming up cache for {gpu_name}...", file=sys.stderr)

    matrix, bias = color_matrix(lighting=(0.1, -0.1, 0.1), saturation=0.1)

    for i, img_size in enumerate(image_sizes, start=1):
        if verbose:
            print(f"  [{i}/{len(image_sizes)}] Size={img_size}×{img_size}...",
                  file=sys.stderr, end=" ", flush=True)

        img = torch.rand(img_size, img_size, 3, device='cuda') * 255.0
        _ = F.color_transform(img, matrix, bias)

        if verbose:
            print("✓", file=sys.stderr)

        del img
        torch.cuda.empty_cache()

    if verbose:
        print("[Sample-Augment] Cache warmup complete! Compiled kernels saved to:", file=sys.stderr)
        print(f"  {get_triton_cache_dir()}", file=sys.stderr)


__all__ = [
    'warmup_cache',
    'get_triton_cache_dir',
    'should_show_autotune_message',
]
