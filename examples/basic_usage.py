"""
Basic usage examples for Sample-Augment.

Runs on CPU; CUDA tensors take the Triton color kernel path automatically.
"""

import torch
import sample_augment as sa
import sample_augment.functional as F


def example_1_default_policy():
    """Example 1: Center square crop resized to 224x224."""
    print("\n" + "="*60)
    print("Example 1: Default Policy")
    print("="*60)

    image = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)  # (H, W, C), BGR
    pipeline = sa.AugmentationPipeline(seed=0)

    out = pipeline(image)
    print(f"Input shape:  {tuple(image.shape)}")
    print(f"Output shape: {tuple(out.shape)}")
    print(f"Crop box:     {pipeline.sample(640, 480).crop_box}")


def example_2_full_policy():
    """Example 2: Every random effect enabled."""
    print("\n" + "="*60)
    print("Example 2: Full Policy")
    print("="*60)

    config = sa.AugmentationConfig(
        doFlip=1,
        angleRange=10,
        minScale=8,
        minAspectRatio=75,
        cropRange=50,
        lightingRange=50,
        saturationRange=20,
    )
    print(f"Config: {config}")

    pipeline = sa.AugmentationPipeline(config, seed=0, verbose=True)
    image = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)

    for i in range(3):
        out = pipeline(image)
        print(f"  Run {i+1}: mean={out.float().mean():.2f}")


def example_3_reproducibility():
    """Example 3: Same seed, same outputs; one seed per loader worker."""
    print("\n" + "="*60)
    print("Example 3: Reproducibility")
    print("="*60)

    config = sa.AugmentationConfig(doFlip=1, minScale=30, minAspectRatio=75)
    image = torch.randint(0, 256, (300, 400, 3), dtype=torch.uint8)

    a = sa.AugmentationPipeline(config, seed=123)
    b = sa.AugmentationPipeline(config, seed=123)
    print(f"Identical outputs: {torch.equal(a(image), b(image))}")

    for worker_id in range(3):
        rng = sa.RandomSource.for_worker(123, worker_id)
        print(f"  Worker {worker_id} seed: {rng.seed}")


def example_4_functional_api():
    """Example 4: Functional API."""
    print("\n" + "="*60)
    print("Example 4: Functional API")
    print("="*60)

    image = torch.randint(0, 256, (480, 640, 3), dtype=torch.uint8)
    rotated = F.rotate(image, 15.0)
    cropped = F.crop(rotated, 0, 80, 480, 480)
    flipped = F.horizontal_flip(cropped)
    resized = F.to_dtype(F.resize(flipped, (224, 224)), torch.uint8)
    planar = F.split_planar(resized)
    print(f"Planar output: {tuple(planar.shape)}, dtype={planar.dtype}")


def main():
    """Run all examples."""
    print("\n" + "="*60)
    print("Sample-Augment Usage Examples")
    print("="*60)
    print(f"Sample-Augment version: {sa.__version__}")
    print(f"CUDA available: {torch.cuda.is_available()}")

    example_1_default_policy()
    example_2_full_policy()
    example_3_reproducibility()
    example_4_functional_api()

    print("\n" + "="*60)
    print("All examples completed successfully!")
    print("="*60)


if __name__ == '__main__':
    main()
