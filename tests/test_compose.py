import PIL.Image
import pytest

import photo_grid_batcher.acquire
import photo_grid_batcher.compose


#============================================
def _decoded(size: tuple[int, int], color: str) -> photo_grid_batcher.acquire.DecodedImage:
	"""
	Wrap a flat-color image as an acquisition result.
	"""
	image = PIL.Image.new("RGB", size, color)
	return photo_grid_batcher.acquire.DecodedImage(ref="test", image=image)


#============================================
def _close(pixel: tuple, expected: tuple, tolerance: int = 2) -> bool:
	"""
	Compare RGB pixels with a small tolerance.
	"""
	return all(abs(a - b) <= tolerance for a, b in zip(pixel[:3], expected[:3]))


#============================================
@pytest.mark.parametrize(
	"image_size, rect",
	[
		((200, 100), (0, 0, 100, 100)),
		((100, 200), (0, 0, 100, 100)),
		((640, 480), (30, 40, 150, 200)),
		((37, 1013), (5, 5, 300, 90)),
		((150, 200), (0, 0, 150, 200)),
	],
)
def test_cover_box_covers_cell(image_size: tuple[int, int], rect: tuple[int, int, int, int]) -> None:
	"""
	The drawn box covers the cell, keeps the image ratio and is centered.
	"""
	x, y, width, height = rect
	box_x, box_y, box_width, box_height = photo_grid_batcher.compose.compute_cover_box(
		image_size[0], image_size[1], rect
	)
	assert box_x <= x + 1e-6
	assert box_y <= y + 1e-6
	assert box_x + box_width >= x + width - 1e-6
	assert box_y + box_height >= y + height - 1e-6
	assert box_width / box_height == pytest.approx(image_size[0] / image_size[1])
	assert (x - box_x) == pytest.approx(box_x + box_width - (x + width))
	assert (y - box_y) == pytest.approx(box_y + box_height - (y + height))


#============================================
def test_cover_box_examples() -> None:
	"""
	Wide images overflow sideways; tall images overflow vertically.
	"""
	wide = photo_grid_batcher.compose.compute_cover_box(200, 100, (0, 0, 100, 100))
	assert wide == pytest.approx((-50.0, 0.0, 200.0, 100.0))
	tall = photo_grid_batcher.compose.compute_cover_box(100, 200, (0, 0, 100, 100))
	assert tall == pytest.approx((0.0, -50.0, 100.0, 200.0))


#============================================
@pytest.mark.parametrize(
	"image_size, cell_size",
	[((200, 100), (100, 100)), ((333, 777), (1500, 2000)), ((1, 1), (40, 30))],
)
def test_source_window_inside_image(image_size: tuple[int, int], cell_size: tuple[int, int]) -> None:
	"""
	The visible source window never leaves the image.
	"""
	left, top, right, bottom = photo_grid_batcher.compose.compute_source_window(
		image_size[0], image_size[1], cell_size[0], cell_size[1]
	)
	assert 0.0 <= left < right <= image_size[0]
	assert 0.0 <= top < bottom <= image_size[1]
	ratio = (right - left) / (bottom - top)
	assert ratio == pytest.approx(cell_size[0] / cell_size[1], rel=1e-3)


#============================================
def test_draw_cell_fills_only_its_rect() -> None:
	"""
	Every pixel of the cell is painted and nothing outside it changes.
	"""
	surface = PIL.Image.new("RGB", (60, 50), "#FFFFFF")
	rect = (10, 10, 40, 30)
	with _decoded((300, 100), "#FF0000") as acquired:
		photo_grid_batcher.compose.draw_cell(surface, rect, acquired)
	for px in range(10, 50):
		for py in range(10, 40):
			assert _close(surface.getpixel((px, py)), (255, 0, 0))
	for point in [(9, 9), (9, 20), (50, 20), (30, 40), (30, 9), (59, 49)]:
		assert surface.getpixel(point) == (255, 255, 255)


#============================================
def test_draw_cell_handles_palette_and_alpha() -> None:
	"""
	Palette and alpha images are converted before drawing.
	"""
	surface = PIL.Image.new("RGB", (20, 20), "#FFFFFF")
	palette = PIL.Image.new("P", (10, 10), 0)
	palette.putpalette([0, 0, 255] * 256)
	acquired = photo_grid_batcher.acquire.DecodedImage(ref="p", image=palette)
	photo_grid_batcher.compose.draw_cell(surface, (0, 0, 10, 10), acquired)
	assert _close(surface.getpixel((5, 5)), (0, 0, 255))

	transparent = PIL.Image.new("RGBA", (10, 10), (0, 255, 0, 0))
	acquired = photo_grid_batcher.acquire.DecodedImage(ref="t", image=transparent)
	photo_grid_batcher.compose.draw_cell(surface, (10, 10, 10, 10), acquired)
	assert surface.getpixel((15, 15)) == (255, 255, 255)


#============================================
def test_broken_draws_placeholder() -> None:
	"""
	Broken acquisitions become a light gray placeholder tile.
	"""
	surface = PIL.Image.new("RGB", (100, 100), "#000000")
	broken = photo_grid_batcher.acquire.Broken(ref="x", reason="gone")
	photo_grid_batcher.compose.draw_cell(surface, (0, 0, 100, 100), broken)
	assert surface.getpixel((2, 2)) == (240, 240, 240)
	assert surface.getpixel((97, 97)) == (240, 240, 240)


#============================================
def test_released_image_draws_placeholder() -> None:
	"""
	A decoded image that was already released is not drawn.
	"""
	surface = PIL.Image.new("RGB", (50, 50), "#000000")
	acquired = _decoded((10, 10), "#FF0000")
	acquired.release()
	photo_grid_batcher.compose.draw_cell(surface, (0, 0, 50, 50), acquired)
	assert surface.getpixel((1, 1)) == (240, 240, 240)
