"""
Tests for the photometric stage: constant matrices, folded color map, draw
policy, and the CPU/CUDA color transform.
"""

import pytest
import torch

import sample_augment.functional as F
from sample_augment import AugmentationConfig, PhotometricParams, PhotometricPerturber, RandomSource
from sample_augment.photometric import (
    CPCA,
    CSTD,
    GSCL,
    BRIGHTNESS_SCALE,
    color_matrix,
    lighting_offset,
    saturation_matrix,
)


def reference_perturb(image, contrast, brightness, lighting, saturation):
    """Stage-by-stage reference: linear adjust, lighting offset, saturation blend."""
    x = image.to(torch.float32) * (1.0 + contrast) + brightness
    offset = (CPCA @ CSTD) @ torch.tensor(lighting, dtype=torch.float32)
    x = x + offset
    s = 1.0 + saturation
    blend = s * torch.eye(3) + (1.0 - s) * GSCL
    return torch.einsum('ij,hwj->hwi', blend, x)


class TestConstants:

    def test_shapes(self):
        assert CPCA.shape == (3, 3)
        assert CSTD.shape == (3, 3)
        assert GSCL.shape == (3, 3)

    def test_pca_basis_is_orthonormal(self):
        torch.testing.assert_close(CPCA.t() @ CPCA, torch.eye(3), atol=1e-5, rtol=0)

    def test_std_is_diagonal(self):
        torch.testing.assert_close(CSTD, torch.diag(torch.diagonal(CSTD)))

    def test_grayscale_rows_are_bgr_luma(self):
        for row in GSCL:
            torch.testing.assert_close(row, torch.tensor([0.114, 0.587, 0.299]))
        assert GSCL.sum(dim=1).allclose(torch.ones(3))


class TestColorMatrix:

    def test_identity(self):
        matrix, bias = color_matrix()
        torch.testing.assert_close(matrix, torch.eye(3))
        torch.testing.assert_close(bias, torch.zeros(3))

    def test_lighting_offset_projection(self):
        noise = (0.5, -0.25, 0.1)
        expected = (CPCA @ CSTD) @ torch.tensor(noise)
        torch.testing.assert_close(lighting_offset(noise), expected)

    def test_saturation_zero_is_identity(self):
        torch.testing.assert_close(saturation_matrix(0.0), torch.eye(3))

    def test_saturation_minus_one_is_grayscale(self):
        torch.testing.assert_close(saturation_matrix(-1.0), GSCL)

    def test_saturation_weight_is_one_plus_alpha_not_alpha(self):
        alpha = 0.3
        expected = (1.0 + alpha) * torch.eye(3) - alpha * GSCL
        literal_blend = alpha * torch.eye(3) + (1.0 - alpha) * GSCL
        torch.testing.assert_close(saturation_matrix(alpha), expected)
        assert not torch.allclose(saturation_matrix(alpha), literal_blend)

    def test_saturation_keeps_gray_pixels(self):
        gray = torch.tensor([100.0, 100.0, 100.0])
        for alpha in (-0.2, 0.1, 0.2):
            torch.testing.assert_close(saturation_matrix(alpha) @ gray, gray)

    def test_folded_map_matches_stages(self):
        image = torch.rand(8, 9, 3) * 255
        params = dict(contrast=0.1, brightness=-12.0, lighting=(0.3, -0.2, 0.4), saturation=0.15)
        matrix, bias = color_matrix(**params)
        folded = torch.einsum('ij,hwj->hwi', matrix, image) + bias
        torch.testing.assert_close(folded, reference_perturb(image, **params), atol=1e-3, rtol=1e-5)


class TestPhotometricPerturber:

    def test_from_config_scales_ranges(self):
        config = AugmentationConfig(contrastRange=20, brightnessRange=10, lightingRange=50, saturationRange=20)
        perturber = PhotometricPerturber.from_config(config)
        assert perturber.contrast_range == pytest.approx(0.2)
        assert perturber.brightness_range == pytest.approx(0.1 * BRIGHTNESS_SCALE)
        assert perturber.lighting_range == pytest.approx(0.5)
        assert perturber.saturation_range == pytest.approx(0.2)
        assert perturber.enabled

    def test_negative_range_rejected(self):
        with pytest.raises(ValueError):
            PhotometricPerturber(lighting_range=-0.1)

    def test_disabled_consumes_no_draws(self):
        perturber = PhotometricPerturber()
        rng = RandomSource(seed=0)
        before = rng.get_state()
        params = perturber.sample(rng)
        assert not perturber.enabled
        assert params.is_identity
        assert torch.equal(before, rng.get_state())

    def test_draw_order_and_count(self):
        perturber = PhotometricPerturber(lighting_range=0.5, saturation_range=0.2)
        params = perturber.sample(RandomSource(seed=21))

        reference = RandomSource(seed=21)
        lighting = tuple(reference.uniform(-0.5, 0.5) for _ in range(3))
        saturation = reference.uniform(-0.2, 0.2)
        assert params == PhotometricParams(0.0, 0.0, lighting, saturation)

    def test_sampled_values_in_range(self):
        perturber = PhotometricPerturber(
            contrast_range=0.2, brightness_range=12.7, lighting_range=0.5, saturation_range=0.2
        )
        rng = RandomSource(seed=0)
        for _ in range(200):
            params = perturber.sample(rng)
            assert -0.2 <= params.contrast <= 0.2
            assert -12.7 <= params.brightness <= 12.7
            assert all(-0.5 <= v <= 0.5 for v in params.lighting)
            assert -0.2 <= params.saturation <= 0.2

    def test_identity_params_return_input(self):
        image = torch.randint(0, 256, (10, 10, 3), dtype=torch.uint8)
        assert PhotometricPerturber()(image, PhotometricParams()) is image

    def test_apply_matches_reference(self):
        image = torch.randint(0, 256, (16, 12, 3), dtype=torch.uint8)
        params = PhotometricParams(0.05, 3.0, (0.2, -0.4, 0.1), -0.1)
        result = PhotometricPerturber(0.1, 5.0, 0.5, 0.2)(image, params)
        expected = reference_perturb(image, params.contrast, params.brightness, params.lighting, params.saturation)
        assert result.dtype == torch.float32
        torch.testing.assert_close(result, expected, atol=1e-3, rtol=1e-5)

    def test_lighting_offset_is_uniform_over_pixels(self):
        image = torch.zeros(5, 7, 3)
        params = PhotometricParams(lighting=(0.5, 0.0, 0.0))
        result = PhotometricPerturber(lighting_range=0.5)(image, params)
        expected = lighting_offset((0.5, 0.0, 0.0))
        torch.testing.assert_close(result, expected.expand(5, 7, 3))

    def test_single_channel_gets_linear_adjust_only(self):
        image = torch.full((4, 4, 1), 100.0)
        params = PhotometricParams(contrast=0.1, brightness=5.0, lighting=(0.5, 0.5, 0.5), saturation=0.2)
        result = PhotometricPerturber(0.1, 5.0, 0.5, 0.2)(image, params)
        torch.testing.assert_close(result, torch.full((4, 4, 1), 115.0))


class TestColorTransform:

    def test_cpu_matches_einsum(self):
        image = torch.rand(6, 5, 3) * 255
        matrix = torch.randn(3, 3)
        bias = torch.randn(3)
        expected = torch.einsum('ij,hwj->hwi', matrix, image) + bias
        torch.testing.assert_close(F.color_transform(image, matrix, bias), expected, atol=1e-3, rtol=1e-5)

    def test_rejects_non_rgb(self):
        from sample_augment import InvalidImageError
        with pytest.raises(InvalidImageError):
            F.color_transform(torch.zeros(4, 4, 1), torch.eye(3), torch.zeros(3))

    def test_rejects_bad_matrix(self):
        with pytest.raises(ValueError):
            F.color_transform(torch.zeros(4, 4, 3), torch.eye(4), torch.zeros(3))

    @pytest.mark.cuda
    @pytest.mark.parametrize("shape", [(1, 1, 3), (37, 53, 3), (224, 224, 3)])
    def test_cuda_kernel_matches_cpu(self, shape):
        image = torch.rand(*shape) * 255
        matrix, bias = color_matrix(0.1, 4.0, (0.3, -0.2, 0.4), 0.15)
        expected = F.color_transform(image, matrix, bias)
        result = F.color_transform(image.cuda(), matrix, bias)
        assert result.is_cuda
        torch.testing.assert_close(result.cpu(), expected, atol=1e-3, rtol=1e-5)

    @pytest.mark.cuda
    def test_cuda_kernel_accepts_uint8_and_non_contiguous(self):
        image = torch.randint(0, 256, (40, 60, 3), dtype=torch.uint8)
        view = image.flip(1)
        matrix, bias = color_matrix(saturation=-0.2)
        expected = F.color_transform(view, matrix, bias)
        result = F.color_transform(view.cuda(), matrix, bias)
        torch.testing.assert_close(result.cpu(), expected, atol=1e-3, rtol=1e-5)
