"""
Unit tests for the synthetic NDVI gradient.

Tests cover:
- Pixel alignment with the raster clipper mask
- Band color at the center
- Determinism
"""
import httpx
import numpy as np
import pytest
import respx

from fieldlens.domain.models import Boundary
from fieldlens.infrastructure.raster_provider_client import RasterProviderClient
from fieldlens.services.domain.gradient_generator import GradientGenerator
from fieldlens.services.domain.ndvi_color_scale import color_for
from fieldlens.services.domain.raster_clipper import RasterClipper
from fieldlens.utils.raster_helpers import decode_data_url, opaque_pixels, polygon_mask


@pytest.fixture
def generator() -> GradientGenerator:
    return GradientGenerator(edge_darkening=0.2, noise_intensity=0.1, default_size=64)


class TestMaskAlignment:
    """The gradient covers exactly the pixels the clipper keeps."""

    def test_opaque_pixels_equal_polygon_mask(self, generator, triangle_points, triangle_bbox):
        boundary = Boundary(points=tuple(triangle_points))

        result = generator.gradient_for(0.55, boundary, triangle_bbox, 64, 64)
        opaque = opaque_pixels(decode_data_url(result.data_url))

        assert result.source == "gradient"
        assert np.array_equal(opaque, polygon_mask(boundary, triangle_bbox, (64, 64)))

    @pytest.mark.asyncio
    @respx.mock
    async def test_matches_clipped_raster(self, generator, triangle_points, triangle_bbox, png_factory):
        boundary = Boundary(points=tuple(triangle_points))
        url = "https://raster.test/ndvi/1.png"
        respx.get(url).mock(return_value=httpx.Response(
            200, content=png_factory(64, 64), headers={"content-type": "image/png"}
        ))
        clipper = RasterClipper(
            RasterProviderClient(base_url="https://raster.test", api_key=""),
            upscale_factor=1,
            min_render_size=64,
            max_render_size=64,
        )

        real = await clipper.clip_to_polygon(url, boundary, triangle_bbox)
        synthetic = generator.gradient_for(0.55, boundary, triangle_bbox, real.width, real.height)

        assert np.array_equal(
            opaque_pixels(decode_data_url(real.data_url)),
            opaque_pixels(decode_data_url(synthetic.data_url)),
        )
        await clipper.client.close()

    def test_non_square_canvas(self, generator, square_points):
        boundary = Boundary(points=tuple(square_points))

        result = generator.gradient_for(0.3, boundary, width=80, height=40)
        image = decode_data_url(result.data_url)

        assert image.size == (80, 40)
        assert opaque_pixels(image).sum() > 0.9 * 80 * 40


class TestColor:
    """Tests for the painted color."""

    @pytest.mark.parametrize("ndvi", [0.1, 0.25, 0.4, 0.6, 0.85])
    def test_center_uses_band_color(self, generator, square_points, ndvi):
        """The center pixel is the band color up to the texture amplitude."""
        boundary = Boundary(points=tuple(square_points))

        result = generator.gradient_for(ndvi, boundary)
        pixels = np.asarray(decode_data_url(result.data_url).convert("RGBA")).astype(int)
        expected = np.array(color_for(ndvi).rgb)

        assert np.all(np.abs(pixels[32, 32, :3] - expected) <= 13)
        assert pixels[32, 32, 3] == 255

    def test_edges_darker_than_center(self, square_points):
        generator = GradientGenerator(edge_darkening=0.5, noise_intensity=0.0, default_size=64)
        boundary = Boundary(points=tuple(square_points))

        result = generator.gradient_for(0.8, boundary)
        pixels = np.asarray(decode_data_url(result.data_url).convert("RGBA")).astype(int)

        assert pixels[1, 1, :3].sum() < pixels[32, 32, :3].sum()


class TestDeterminism:

    def test_identical_inputs_identical_output(self, generator, square_points):
        boundary = Boundary(points=tuple(square_points))

        first = generator.gradient_for(0.65, boundary)
        second = generator.gradient_for(0.65, boundary)

        assert first.data_url == second.data_url

    def test_out_of_range_ndvi(self, generator, square_points):
        boundary = Boundary(points=tuple(square_points))

        result = generator.gradient_for(7.0, boundary)

        assert result.width == 64

    def test_missing_ndvi_uses_lowest_band(self, generator, square_points):
        boundary = Boundary(points=tuple(square_points))

        result = generator.gradient_for(None, boundary)
        pixels = np.asarray(decode_data_url(result.data_url).convert("RGBA")).astype(int)

        assert np.all(np.abs(pixels[32, 32, :3] - np.array(color_for(None).rgb)) <= 13)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
