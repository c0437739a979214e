"""
Cell drawing: cover-fit scaling, clipped paste and placeholder tiles.
"""

# PIP3 modules
import PIL.Image
import PIL.ImageDraw

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.acquire
import photo_grid_batcher.config
import photo_grid_batcher.fonts


DecodedImage = pgb.acquire.DecodedImage
Broken = pgb.acquire.Broken

PLACEHOLDER_FILL = pgb.config.PLACEHOLDER_FILL
PLACEHOLDER_GLYPH = pgb.config.PLACEHOLDER_GLYPH
PLACEHOLDER_GLYPH_COLOR = pgb.config.PLACEHOLDER_GLYPH_COLOR
FAILED_CELL_FILL = pgb.config.FAILED_CELL_FILL

Rect = tuple[int, int, int, int]


#============================================
def compute_cover_box(
	image_width: float,
	image_height: float,
	rect: Rect,
) -> tuple[float, float, float, float]:
	"""
	Compute where a cover-fit image lands relative to its cell.

	The image keeps its aspect ratio and is scaled so the cell is fully
	covered; the overflow on one axis is split evenly on both sides.

	Args:
		image_width: Source width.
		image_height: Source height.
		rect: Cell rectangle (x, y, width, height).

	Returns:
		Destination box (x, y, width, height), possibly larger than the cell.
	"""
	x, y, width, height = rect
	image_ratio = image_width / image_height
	cell_ratio = width / height
	if image_ratio > cell_ratio:
		draw_width = height * image_ratio
		return (x - (draw_width - width) / 2.0, y, draw_width, float(height))
	draw_height = width / image_ratio
	return (x, y - (draw_height - height) / 2.0, float(width), draw_height)


#============================================
def compute_source_window(
	image_width: float,
	image_height: float,
	cell_width: float,
	cell_height: float,
) -> tuple[float, float, float, float]:
	"""
	Compute the source region that stays visible after cover-fit clipping.

	Args:
		image_width: Source width.
		image_height: Source height.
		cell_width: Cell width.
		cell_height: Cell height.

	Returns:
		Source box (left, top, right, bottom) in source pixels.
	"""
	box_x, box_y, box_width, box_height = compute_cover_box(
		image_width,
		image_height,
		(0, 0, cell_width, cell_height),
	)
	scale = box_width / image_width
	left = -box_x / scale
	top = -box_y / scale
	right = left + cell_width / scale
	bottom = top + cell_height / scale
	# float error must not push the window past the source edges
	return (
		max(0.0, left),
		max(0.0, top),
		min(float(image_width), right),
		min(float(image_height), bottom),
	)


#============================================
def render_cover_tile(image: PIL.Image.Image, width: int, height: int) -> PIL.Image.Image:
	"""
	Scale and crop an image so it exactly covers a width x height tile.

	Args:
		image: Source image.
		width: Tile width.
		height: Tile height.

	Returns:
		New RGB or RGBA image of the tile size.
	"""
	if image.mode not in ("RGB", "RGBA"):
		if "A" in image.getbands() or "transparency" in image.info:
			source = image.convert("RGBA")
		else:
			source = image.convert("RGB")
	else:
		source = image
	window = compute_source_window(source.width, source.height, width, height)
	tile = source.resize((width, height), PIL.Image.Resampling.LANCZOS, box=window)
	if source is not image:
		source.close()
	return tile


#============================================
def fill_rect(surface: PIL.Image.Image, rect: Rect, color: str) -> None:
	"""
	Fill a cell rectangle with a flat color.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
		color: Fill color.
	"""
	x, y, width, height = rect
	draw = PIL.ImageDraw.Draw(surface)
	draw.rectangle((x, y, x + width - 1, y + height - 1), fill=color)


#============================================
def draw_placeholder(surface: PIL.Image.Image, rect: Rect) -> None:
	"""
	Draw the tile used for an unreadable image.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
	"""
	x, y, width, height = rect
	fill_rect(surface, rect, PLACEHOLDER_FILL)
	font = pgb.fonts.load_font("sans-serif", True, max(1, width // 10))
	draw = PIL.ImageDraw.Draw(surface)
	draw.text(
		(x + width / 2.0, y + height / 2.0),
		PLACEHOLDER_GLYPH,
		fill=PLACEHOLDER_GLYPH_COLOR,
		font=font,
		anchor="ms",
	)


#============================================
def draw_cell(
	surface: PIL.Image.Image,
	rect: Rect,
	acquired: DecodedImage | Broken,
	verbose: bool = False,
) -> None:
	"""
	Draw one acquired image into its cell, or a placeholder.

	Only pixels inside the rectangle are written, so neighboring cells
	are never touched. Image problems never propagate.

	Args:
		surface: Sheet image.
		rect: Cell rectangle (x, y, width, height).
		acquired: Result of acquire_image().
		verbose: Print a line for every skipped image.
	"""
	if isinstance(acquired, Broken) or not pgb.acquire.is_valid_image(acquired.image):
		if verbose:
			reason = acquired.reason if isinstance(acquired, Broken) else "released"
			print(f"Placeholder for {acquired.ref}: {reason}")
		draw_placeholder(surface, rect)
		return

	x, y, width, height = rect
	try:
		tile = render_cover_tile(acquired.image, width, height)
	except (OSError, ValueError) as error:
		print(f"Skipped broken image {acquired.ref}: {error}")
		fill_rect(surface, rect, FAILED_CELL_FILL)
		return
	with tile:
		if tile.mode == "RGBA":
			surface.paste(tile, (x, y), tile)
		else:
			surface.paste(tile, (x, y))
