"""
Cell annotation: sequence numbers, redaction lines and stickers.
"""

# PIP3 modules
import PIL.Image
import PIL.ImageColor
import PIL.ImageDraw
import PIL.ImageFilter

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.config
import photo_grid_batcher.fonts


Settings = pgb.config.Settings
Rect = tuple[int, int, int, int]

TEXT_EDGE_INSET = pgb.config.TEXT_EDGE_INSET
MASK_REFERENCE_WIDTH = pgb.config.MASK_REFERENCE_WIDTH
MASK_WIDTH_FACTOR = pgb.config.MASK_WIDTH_FACTOR
MASK_LINE_START = pgb.config.MASK_LINE_START
MASK_LINE_END = pgb.config.MASK_LINE_END

# PIL text anchors: horizontal part + baseline
ALIGN_ANCHORS = {
	"left": "ls",
	"center": "ms",
	"right": "rs",
}


#============================================
def compute_number_position(
	rect: Rect,
	font_size: float,
	position: str,
) -> tuple[float, float, str]:
	"""
	Compute the baseline anchor point for a cell number.

	Args:
		rect: Cell rectangle (x, y, width, height).
		font_size: Font size in pixels.
		position: One of the named positions, e.g. "bottom-center".

	Returns:
		Tuple of (x, baseline_y, align) where align is left, center or right.
	"""
	x, y, width, height = rect
	position = (position or "bottom-center").strip().lower()
	text_x = x + width / 2.0
	text_y = y + height - font_size / 2.0
	if position == "center":
		text_y = y + height / 2.0 + font_size / 3.0
	elif position.startswith("top"):
		text_y = y + font_size + TEXT_EDGE_INSET

	align = "center"
	if position.endswith("left"):
		text_x = x + TEXT_EDGE_INSET
		align = "left"
	elif position.endswith("right"):
		text_x = x + width - TEXT_EDGE_INSET
		align = "right"
	return (text_x, text_y, align)


#============================================
def compute_stroke_width(font_size: float) -> int:
	"""
	Compute the outward stroke width for number text.

	A centered outline of width font_size / 12 extends half of that
	beyond the glyph edge, which is what PIL's stroke_width measures.

	Args:
		font_size: Font size in pixels.

	Returns:
		Stroke width in whole pixels, at least 1.
	"""
	line_width = font_size / 12.0
	return max(1, int(round(line_width / 2.0)))


#============================================
def draw_number(
	surface: PIL.Image.Image,
	rect: Rect,
	number: int,
	settings: Settings,
) -> None:
	"""
	Draw the sequence number of a cell.

	Passes run in a fixed order: stroke, then shadow, then fill. The
	shadow belongs to the fill pass only.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
		number: Global number to draw.
		settings: Render settings.
	"""
	font_size = settings.font_size
	bold = pgb.fonts.is_bold_weight(settings.font_weight)
	font = pgb.fonts.load_font(settings.font_family, bold, font_size)
	text_x, text_y, align = compute_number_position(rect, font_size, settings.font_position)
	anchor = ALIGN_ANCHORS[align]
	text = str(number)
	draw = PIL.ImageDraw.Draw(surface)

	if settings.enable_stroke:
		draw.text(
			(text_x, text_y),
			text,
			fill=settings.font_stroke_color,
			font=font,
			anchor=anchor,
			stroke_width=compute_stroke_width(font_size),
			stroke_fill=settings.font_stroke_color,
		)

	if settings.enable_shadow:
		draw_text_shadow(surface, (text_x, text_y), text, font, anchor, settings)

	draw.text((text_x, text_y), text, fill=settings.font_color, font=font, anchor=anchor)


#============================================
def draw_text_shadow(
	surface: PIL.Image.Image,
	origin: tuple[float, float],
	text: str,
	font,
	anchor: str,
	settings: Settings,
) -> None:
	"""
	Draw a blurred, zero-offset text shadow under the fill pass.

	Args:
		surface: Sheet image.
		origin: Text anchor point.
		text: Text to shadow.
		font: Loaded font.
		anchor: PIL text anchor.
		settings: Render settings.
	"""
	blur = settings.font_size / 10.0
	draw = PIL.ImageDraw.Draw(surface)
	left, top, right, bottom = draw.textbbox(origin, text, font=font, anchor=anchor)
	margin = int(blur * 3) + 2
	box = (
		max(0, int(left) - margin),
		max(0, int(top) - margin),
		min(surface.width, int(right) + margin),
		min(surface.height, int(bottom) + margin),
	)
	if box[2] <= box[0] or box[3] <= box[1]:
		return
	mask = PIL.Image.new("L", (box[2] - box[0], box[3] - box[1]), 0)
	mask_draw = PIL.ImageDraw.Draw(mask)
	mask_draw.text(
		(origin[0] - box[0], origin[1] - box[1]),
		text,
		fill=255,
		font=font,
		anchor=anchor,
	)
	# a blur radius is roughly twice the gaussian sigma
	mask = mask.filter(PIL.ImageFilter.GaussianBlur(blur / 2.0))
	shadow_color = PIL.ImageColor.getrgb(settings.font_shadow_color)
	shadow = PIL.Image.new("RGB", mask.size, shadow_color[:3])
	surface.paste(shadow, box[:2], mask)
	shadow.close()
	mask.close()


#============================================
def compute_mask_lines(
	rect: Rect,
	line_style: str,
) -> list[tuple[tuple[float, float], tuple[float, float]]]:
	"""
	Compute the redaction line segments for a cell.

	Args:
		rect: Cell rectangle.
		line_style: "cross" for an X, anything else for a single slash.

	Returns:
		List of ((x0, y0), (x1, y1)) segments inside the cell.
	"""
	x, y, width, height = rect
	low_x = x + width * MASK_LINE_START
	high_x = x + width * MASK_LINE_END
	low_y = y + height * MASK_LINE_START
	high_y = y + height * MASK_LINE_END
	if line_style == "cross":
		return [
			((low_x, low_y), (high_x, high_y)),
			((high_x, low_y), (low_x, high_y)),
		]
	return [((low_x, high_y), (high_x, low_y))]


#============================================
def compute_mask_line_width(cell_width: float, mask_width: float) -> float:
	"""
	Scale the configured mask width with the cell width.

	Args:
		cell_width: Cell width in pixels.
		mask_width: Configured mask width.

	Returns:
		Line width in pixels.
	"""
	return mask_width * (cell_width / MASK_REFERENCE_WIDTH) * MASK_WIDTH_FACTOR


#============================================
def draw_mask_lines(surface: PIL.Image.Image, rect: Rect, settings: Settings) -> None:
	"""
	Draw a cross or slash redaction mark with round caps.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
		settings: Render settings.
	"""
	line_width = compute_mask_line_width(rect[2], settings.mask_width)
	pixel_width = max(1, int(round(line_width)))
	radius = line_width / 2.0
	draw = PIL.ImageDraw.Draw(surface)
	for start, end in compute_mask_lines(rect, settings.line_style):
		draw.line((start, end), fill=settings.mask_color, width=pixel_width)
		for cap_x, cap_y in (start, end):
			draw.ellipse(
				(cap_x - radius, cap_y - radius, cap_x + radius, cap_y + radius),
				fill=settings.mask_color,
			)


#============================================
def compute_sticker_box(
	rect: Rect,
	sticker_size: tuple[int, int],
	settings: Settings,
) -> tuple[int, int, int, int]:
	"""
	Compute where a sticker is drawn inside a cell.

	Args:
		rect: Cell rectangle.
		sticker_size: Sticker (width, height).
		settings: Render settings with size and position percentages.

	Returns:
		Box (x, y, width, height) in sheet pixels.
	"""
	x, y, width, height = rect
	size_pct = settings.sticker_size / 100.0
	x_pct = settings.sticker_x / 100.0
	y_pct = settings.sticker_y / 100.0
	sticker_width = width * size_pct
	sticker_height = sticker_width * (sticker_size[1] / sticker_size[0])
	left = x + width * x_pct - sticker_width / 2.0
	top = y + height * y_pct - sticker_height / 2.0
	return (
		int(round(left)),
		int(round(top)),
		max(1, int(round(sticker_width))),
		max(1, int(round(sticker_height))),
	)


#============================================
def draw_sticker(
	surface: PIL.Image.Image,
	rect: Rect,
	sticker: PIL.Image.Image,
	settings: Settings,
) -> None:
	"""
	Draw a sticker image over a cell.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
		sticker: RGBA sticker image.
		settings: Render settings.
	"""
	left, top, width, height = compute_sticker_box(rect, sticker.size, settings)
	scaled = sticker.resize((width, height), PIL.Image.Resampling.LANCZOS)
	with scaled:
		if scaled.mode != "RGBA":
			surface.paste(scaled, (left, top))
		else:
			surface.paste(scaled, (left, top), scaled)


#============================================
def annotate_cell(
	surface: PIL.Image.Image,
	rect: Rect,
	number: int,
	targeted: bool,
	settings: Settings,
	sticker: PIL.Image.Image | None = None,
	hide_numbers: bool = False,
) -> None:
	"""
	Draw the number and, for targeted cells, the redaction mark.

	Args:
		surface: Sheet image.
		rect: Cell rectangle.
		number: Global number of the cell.
		targeted: True when the number is in the mask set and redaction is on.
		settings: Render settings.
		sticker: Loaded sticker, or None.
		hide_numbers: Suppress numbers regardless of settings.
	"""
	if settings.show_numbers and not hide_numbers:
		draw_number(surface, rect, number, settings)

	if not targeted:
		return
	if settings.mask_mode == "sticker" and sticker is not None:
		draw_sticker(surface, rect, sticker, settings)
	elif settings.mask_mode == "line" or not settings.sticker_image:
		draw_mask_lines(surface, rect, settings)
