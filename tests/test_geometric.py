"""
Tests for the geometric functional ops and GeometricTransformer.
"""

import pytest
import torch
import torch.nn.functional as nnF

import sample_augment.functional as F
from sample_augment import CropBox, GeometricTransformer, InvalidImageError

from conftest import make_gradient_image


def reference_resize(image: torch.Tensor, size, mode: str) -> torch.Tensor:
    batch = image.to(torch.float32).permute(2, 0, 1).unsqueeze(0)
    if mode == 'area':
        out = nnF.interpolate(batch, size=size, mode='area')
    else:
        out = nnF.interpolate(batch, size=size, mode='bicubic', align_corners=False)
    return out[0].permute(1, 2, 0)


class TestRotate:

    def test_zero_angle_is_identity_without_warp(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("warp must not run for a zero angle")

        monkeypatch.setattr(F, '_warp_affine', fail)
        image = make_gradient_image(48, 64)
        assert F.rotate(image, 0.0) is image
        assert F.rotate(image, -0.0) is image

    def test_nonzero_angle_keeps_size(self):
        image = make_gradient_image(48, 64)
        rotated = F.rotate(image, 12.5)
        assert rotated.shape == image.shape
        assert rotated.dtype == torch.float32

    def test_quarter_turn_matches_rot90(self):
        image = torch.rand(32, 32, 3) * 255
        rotated = F.rotate(image, 90.0)
        expected = torch.rot90(image, 1, dims=(0, 1))
        torch.testing.assert_close(rotated, expected, atol=1e-2, rtol=1e-4)

    def test_rotation_pivots_on_center(self):
        image = torch.zeros(31, 31, 3)
        image[15, 15] = 200.0
        rotated = F.rotate(image, 37.0)
        assert rotated[15, 15, 0].item() == pytest.approx(200.0, abs=1e-3)

    def test_fill_value(self):
        image = torch.full((20, 20, 3), 10.0)
        rotated = F.rotate(image, 45.0, fill=255.0)
        # Corners fall outside the rotated source
        assert rotated[0, 0, 0].item() == pytest.approx(255.0, abs=1e-3)
        assert rotated[10, 10, 0].item() == pytest.approx(10.0, abs=1e-3)


class TestCrop:

    def test_crop_region(self):
        image = make_gradient_image(48, 64)
        cropped = F.crop(image, 5, 7, 20, 30)
        torch.testing.assert_close(cropped, image[5:25, 7:37])

    def test_crop_copies_by_default(self):
        image = torch.zeros(10, 10, 3)
        cropped = F.crop(image, 0, 0, 5, 5)
        cropped += 1.0
        assert image.sum().item() == 0.0
        assert cropped.is_contiguous()

    def test_crop_view_when_requested(self):
        image = torch.zeros(10, 10, 3)
        view = F.crop(image, 0, 0, 5, 5, copy=False)
        view += 1.0
        assert image.sum().item() == 75.0

    @pytest.mark.parametrize("top,left,height,width", [
        (0, 0, 0, 5),
        (-1, 0, 5, 5),
        (6, 0, 5, 5),
        (0, 8, 5, 5),
    ])
    def test_crop_invalid_region(self, top, left, height, width):
        with pytest.raises(ValueError):
            F.crop(torch.zeros(10, 10, 3), top, left, height, width)

    def test_crop_box_rounds_to_pixels(self):
        image = make_gradient_image(48, 64)
        cropped = F.crop_box(image, CropBox(8.0, 0.0, 48.0, 48.0))
        torch.testing.assert_close(cropped, image[0:48, 8:56])


class TestFlip:

    def test_horizontal_flip(self):
        image = make_gradient_image(4, 6)
        flipped = F.horizontal_flip(image)
        torch.testing.assert_close(flipped[:, 0], image[:, -1])
        torch.testing.assert_close(F.horizontal_flip(flipped), image)


class TestResize:

    def test_interpolation_policy(self):
        assert F.select_interpolation((480, 480), (224, 224)) == F.InterpolationMode.AREA
        assert F.select_interpolation((100, 100), (224, 224)) == F.InterpolationMode.BICUBIC
        assert F.select_interpolation((224, 224), (224, 224)) == F.InterpolationMode.BICUBIC

    def test_downscale_uses_area(self):
        image = make_gradient_image(480, 480)
        resized = F.resize(image, (224, 224))
        torch.testing.assert_close(resized, reference_resize(image, (224, 224), 'area'))

    def test_upscale_uses_bicubic(self):
        image = make_gradient_image(50, 70)
        resized = F.resize(image, (224, 224))
        torch.testing.assert_close(resized, reference_resize(image, (224, 224), 'bicubic'))

    def test_same_size_is_passthrough(self):
        image = make_gradient_image(224, 224)
        assert F.resize(image, 224) is image

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            F.resize(make_gradient_image(10, 10), (0, 10))


class TestValidationAndLayout:

    def test_rejects_non_tensor(self):
        with pytest.raises(TypeError):
            F.horizontal_flip([[1, 2], [3, 4]])

    def test_rejects_wrong_rank(self):
        with pytest.raises(InvalidImageError):
            F.resize(torch.zeros(1, 3, 10, 10), 5)

    def test_rejects_empty(self):
        with pytest.raises(InvalidImageError):
            F.rotate(torch.zeros(0, 10, 3), 10.0)

    def test_split_planar_keeps_channel_order(self):
        image = make_gradient_image(8, 10)
        planar = F.split_planar(image)
        assert planar.shape == (3, 8, 10)
        assert planar.is_contiguous()
        torch.testing.assert_close(planar[0], image[..., 0])
        torch.testing.assert_close(planar[2], image[..., 2])

    def test_to_dtype_saturates(self):
        values = torch.tensor([[[-10.0, 127.6, 300.0]]])
        out = F.to_dtype(values, torch.uint8)
        assert out.tolist() == [[[0, 128, 255]]]


class TestGeometricTransformer:

    def test_output_size(self):
        transformer = GeometricTransformer((100, 120))
        image = make_gradient_image(300, 200)
        result = transformer(image, angle=10.0, crop_box=CropBox(20.0, 30.0, 150.0, 200.0), flip=True)
        assert result.shape == (100, 120, 3)

    def test_stage_order_crop_flip_color_resize(self):
        transformer = GeometricTransformer((16, 16))
        image = make_gradient_image(32, 48)
        seen = []

        def color_stage(buffer):
            seen.append(buffer.clone())
            return buffer

        box = CropBox(8.0, 0.0, 32.0, 32.0)
        transformer(image, angle=0.0, crop_box=box, flip=True, color_stage=color_stage)

        # Color stage sees the flipped crop, before resize
        assert len(seen) == 1
        torch.testing.assert_close(seen[0], image[0:32, 8:40].flip(1))

    def test_color_stage_skipped_when_none(self):
        transformer = GeometricTransformer((32, 32))
        image = make_gradient_image(32, 48)
        result = transformer(image, angle=0.0, crop_box=CropBox(8.0, 0.0, 32.0, 32.0), flip=False)
        torch.testing.assert_close(result, image[:, 8:40])
