"""
Shared pytest configuration and fixtures for Sample-Augment tests.

Tests marked ``cuda`` exercise the Triton kernel path and are skipped when no
CUDA device is available; everything else runs on CPU.
"""

import pytest
import torch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import sample_augment as sa


def pytest_configure(config):
    config.addinivalue_line("markers", "cuda: test requires a CUDA device")


def pytest_collection_modifyitems(config, items):
    """Skip CUDA-marked tests if no CUDA device is present."""
    skip_cuda = pytest.mark.skip(reason="CUDA not available")

    for item in items:
        if "cuda" in item.keywords and not torch.cuda.is_available():
            item.add_marker(skip_cuda)


def make_gradient_image(height: int, width: int, dtype=torch.uint8) -> torch.Tensor:
    """(H, W, 3) image whose blue plane encodes x, green encodes y, red is constant."""
    xs = torch.linspace(0, 255, width).view(1, width).expand(height, width)
    ys = torch.linspace(0, 255, height).view(height, 1).expand(height, width)
    red = torch.full((height, width), 128.0)
    image = torch.stack([xs, ys, red], dim=-1)
    if dtype.is_floating_point:
        return image.to(dtype)
    return image.round().to(dtype)


@pytest.fixture
def gradient_image():
    """640x480 landscape uint8 gradient image in (H, W, C) layout."""
    return make_gradient_image(480, 640)


@pytest.fixture
def random_image():
    """Random 300x200 uint8 image in (H, W, C) layout."""
    generator = torch.Generator().manual_seed(1234)
    return torch.randint(0, 256, (300, 200, 3), dtype=torch.uint8, generator=generator)


@pytest.fixture
def full_policy():
    """Config with every random effect enabled."""
    return sa.AugmentationConfig(
        doFlip=1,
        angleRange=15,
        minScale=8,
        minAspectRatio=75,
        cropRange=50,
        contrastRange=20,
        brightnessRange=10,
        lightingRange=50,
        saturationRange=20,
    )
