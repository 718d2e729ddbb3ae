"""Tests for LUT strip decoding."""
import io

import numpy as np
import pytest
import tifffile
from PIL import Image

from photo_edit_core.errors import MalformedLUTError
from photo_edit_core.pipeline.lut_decoder import decode_lut, identity_lut_image, load_lut_image


# Levels of an 8-bit N=8 identity strip
LEVELS_8 = np.round(np.arange(8) * 255.0 / 7) / 255.0


class TestLayout:
    """Tests for the tile layout and sample ordering."""

    def test_standard_asset_size(self):
        """512x512, 8x8 tiles of 64x64 pixels, is a 64^3 cube."""
        strip = identity_lut_image(64)
        assert strip.shape == (512, 512, 4)
        cube = decode_lut(strip)
        assert cube.dimension == 64
        assert cube.sample_count == 64 ** 3

    def test_single_row_strip(self, identity_strip):
        """A 64x8 strip of eight 8x8 tiles holds 512 RGBA samples."""
        assert identity_strip.shape == (8, 64, 4)
        cube = decode_lut(identity_strip)
        assert cube.dimension == 8
        assert cube.data.size == 512 * 4

    def test_red_varies_fastest(self, identity_strip):
        data = decode_lut(identity_strip).data.reshape(-1, 4)
        np.testing.assert_allclose(data[0], [0.0, 0.0, 0.0, 1.0])
        np.testing.assert_allclose(data[1], [LEVELS_8[1], 0.0, 0.0, 1.0], rtol=1e-6)
        np.testing.assert_allclose(data[8], [0.0, LEVELS_8[1], 0.0, 1.0], rtol=1e-6)
        np.testing.assert_allclose(data[64], [0.0, 0.0, LEVELS_8[1], 1.0], rtol=1e-6)
        np.testing.assert_allclose(data[-1], [1.0, 1.0, 1.0, 1.0])

    def test_lattice_matches_levels(self, identity_strip):
        lattice = decode_lut(identity_strip).lattice()
        b, g, r = 5, 2, 7
        np.testing.assert_allclose(lattice[b, g, r], [LEVELS_8[r], LEVELS_8[g], LEVELS_8[b], 1.0], rtol=1e-6)

    def test_grid_shape_does_not_matter(self):
        """The same cube decodes identically from a row or a grid of tiles."""
        row = decode_lut(identity_lut_image(8))
        grid = decode_lut(identity_lut_image(8, columns=2))
        assert grid.dimension == 8
        assert row == grid

    def test_explicit_dimension(self, identity_strip):
        assert decode_lut(identity_strip, dimension=8).dimension == 8


class TestSources:
    """Tests for the accepted source types."""

    def test_png_path(self, tmp_path, identity_strip):
        path = tmp_path / "Identity.png"
        Image.fromarray(identity_strip).save(path)
        assert decode_lut(path) == decode_lut(identity_strip)
        assert decode_lut(str(path)) == decode_lut(identity_strip)

    def test_encoded_bytes(self, identity_strip):
        buf = io.BytesIO()
        Image.fromarray(identity_strip).save(buf, format="PNG")
        assert decode_lut(buf.getvalue()) == decode_lut(identity_strip)

    def test_pil_image_without_alpha(self, identity_strip):
        img = Image.fromarray(identity_strip).convert("RGB")
        cube = decode_lut(img)
        assert cube == decode_lut(identity_strip)

    def test_palette_image_converted(self, identity_strip):
        img = Image.fromarray(identity_strip[..., :3]).convert("P")
        assert load_lut_image(img).shape == (8, 64, 4)

    def test_uint16_pixels(self, identity_strip):
        wide = identity_strip.astype(np.uint16) * 257
        np.testing.assert_allclose(decode_lut(wide).data, decode_lut(identity_strip).data, atol=1e-6)

    def test_float_pixels_clipped(self, identity_strip):
        pixels = identity_strip.astype(np.float32) / 255.0
        pixels[0, 0, 0] = 2.0
        data = decode_lut(pixels).data
        assert data.max() == 1.0
        assert data.min() >= 0.0

    def test_grayscale(self):
        gray = np.full((8, 64), 128, dtype=np.uint8)
        data = decode_lut(gray).data.reshape(-1, 4)
        np.testing.assert_allclose(data[:, :3], 128 / 255.0, rtol=1e-6)
        assert np.all(data[:, 3] == 1.0)

    def test_tiff_path(self, tmp_path, identity_strip):
        path = tmp_path / "Identity16.tif"
        tifffile.imwrite(path, identity_strip.astype(np.uint16) * 257)
        cube = decode_lut(path)
        assert cube.dimension == 8
        np.testing.assert_allclose(cube.data, decode_lut(identity_strip).data, atol=1e-6)

    def test_decoded_data_read_only(self, identity_strip):
        cube = decode_lut(identity_strip)
        with pytest.raises(ValueError):
            cube.data[0] = 0.5


class TestMalformed:
    """Tests for rejected LUT images."""

    def test_height_not_multiple_of_tile(self):
        with pytest.raises(MalformedLUTError):
            decode_lut(np.zeros((9, 64, 4), dtype=np.uint8))

    def test_not_a_cube(self):
        with pytest.raises(MalformedLUTError):
            decode_lut(np.zeros((10, 10, 4), dtype=np.uint8))

    def test_cube_pixel_count_but_tiles_do_not_fit(self):
        """128x4 pixels is 8^3 samples, yet 8x8 tiles cannot be cut from it."""
        with pytest.raises(MalformedLUTError):
            decode_lut(np.zeros((4, 128, 4), dtype=np.uint8))

    def test_valid_strip_with_other_dimension(self):
        """An N=16 strip is rejected when N=8 is demanded."""
        with pytest.raises(MalformedLUTError):
            decode_lut(np.zeros((16, 256, 4), dtype=np.uint8), dimension=8)

    def test_wrong_explicit_dimension(self, identity_strip):
        with pytest.raises(MalformedLUTError):
            decode_lut(identity_strip, dimension=4)

    def test_unreadable_bytes(self):
        with pytest.raises(MalformedLUTError):
            decode_lut(b"definitely not an image")

    def test_missing_file(self, tmp_path):
        with pytest.raises(MalformedLUTError) as excinfo:
            decode_lut(tmp_path / "missing.png")
        assert excinfo.value.source == "missing.png"

    def test_unsupported_pixel_type(self):
        with pytest.raises(MalformedLUTError):
            decode_lut(np.zeros((8, 64, 4), dtype=np.int64))

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            decode_lut(np.zeros((3, 3), dtype=np.uint8))


class TestIdentityImage:
    """Tests for identity strip synthesis."""

    def test_square_grid_for_square_sizes(self):
        assert identity_lut_image(16).shape == (64, 64, 4)
        assert identity_lut_image(64).shape == (512, 512, 4)

    def test_row_for_other_sizes(self):
        assert identity_lut_image(8).shape == (8, 64, 4)

    def test_corners(self):
        strip = identity_lut_image(64)
        assert tuple(strip[0, 0]) == (0, 0, 0, 255)
        assert tuple(strip[-1, -1]) == (255, 255, 255, 255)

    def test_bad_columns(self):
        with pytest.raises(ValueError):
            identity_lut_image(8, columns=3)

    def test_too_small(self):
        with pytest.raises(ValueError):
            identity_lut_image(1)
