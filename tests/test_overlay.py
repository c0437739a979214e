import PIL.Image
import pytest

import photo_grid_batcher.overlay


#============================================
def _base() -> PIL.Image.Image:
	"""
	Two-tone sheet used by the blend tests.
	"""
	surface = PIL.Image.new("RGB", (20, 10), (200, 100, 50))
	surface.paste((40, 80, 160), (10, 0, 20, 10))
	return surface


#============================================
def test_missing_overlay_is_noop() -> None:
	"""
	No overlay or zero opacity leaves the sheet untouched.
	"""
	surface = _base()
	before = surface.tobytes()
	photo_grid_batcher.overlay.apply_overlay(surface, None, "multiply", 1.0)
	overlay = PIL.Image.new("RGBA", (5, 5), (0, 0, 0, 255))
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, "source-over", 0.0)
	assert surface.tobytes() == before


#============================================
def test_source_over_full_opacity_replaces() -> None:
	"""
	An opaque overlay is stretched over the whole sheet.
	"""
	surface = _base()
	overlay = PIL.Image.new("RGB", (3, 7), (0, 255, 0))
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, "source-over", 1.0)
	assert surface.getextrema() == ((0, 0), (255, 255), (0, 0))


#============================================
def test_half_opacity_mixes() -> None:
	"""
	Opacity scales the overlay contribution.
	"""
	surface = PIL.Image.new("RGB", (10, 10), (255, 255, 255))
	overlay = PIL.Image.new("RGBA", (10, 10), (0, 0, 0, 255))
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, "normal", 0.5)
	red, green, blue = surface.getpixel((5, 5))
	assert 125 <= red <= 130
	assert red == green == blue


#============================================
def test_transparent_overlay_pixels_keep_sheet() -> None:
	"""
	Transparent overlay areas do not change the sheet.
	"""
	surface = _base()
	overlay = PIL.Image.new("RGBA", (20, 10), (0, 0, 0, 0))
	overlay.paste((0, 0, 0, 255), (0, 0, 10, 10))
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, "source-over", 1.0)
	assert surface.getpixel((2, 2)) == (0, 0, 0)
	assert surface.getpixel((15, 5)) == (40, 80, 160)


#============================================
@pytest.mark.parametrize(
	"mode, overlay_color, expected",
	[
		("multiply", (255, 255, 255), (200, 100, 50)),
		("multiply", (0, 0, 0), (0, 0, 0)),
		("screen", (0, 0, 0), (200, 100, 50)),
		("screen", (255, 255, 255), (255, 255, 255)),
		("difference", (200, 100, 50), (0, 0, 0)),
		("darken", (100, 100, 100), (100, 100, 50)),
		("lighten", (100, 100, 100), (200, 100, 100)),
	],
)
def test_blend_modes(mode: str, overlay_color: tuple, expected: tuple) -> None:
	"""
	Blend modes combine the overlay with the sheet per channel.
	"""
	surface = PIL.Image.new("RGB", (4, 4), (200, 100, 50))
	overlay = PIL.Image.new("RGB", (4, 4), overlay_color)
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, mode, 1.0)
	assert surface.getpixel((1, 1)) == expected


#============================================
def test_unknown_mode_is_source_over() -> None:
	"""
	Unknown blend names composite like source-over.
	"""
	surface = PIL.Image.new("RGB", (4, 4), (200, 100, 50))
	overlay = PIL.Image.new("RGB", (4, 4), (1, 2, 3))
	photo_grid_batcher.overlay.apply_overlay(surface, overlay, "hue-rotate", 1.0)
	assert surface.getpixel((0, 0)) == (1, 2, 3)


#============================================
def test_scale_alpha() -> None:
	"""
	Alpha channels scale linearly with opacity.
	"""
	alpha = PIL.Image.new("L", (2, 2), 200)
	assert photo_grid_batcher.overlay.scale_alpha(alpha, 0.5).getpixel((0, 0)) == 100
	assert photo_grid_batcher.overlay.scale_alpha(alpha, 1.0) is alpha
