"""
Lightweight preview renders for overlay and export quality.
"""

# Standard Library
import asyncio
import math

# PIP3 modules
import PIL.Image

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.acquire
import photo_grid_batcher.config
import photo_grid_batcher.encode
import photo_grid_batcher.errors
import photo_grid_batcher.render


Settings = pgb.config.Settings
Artifact = pgb.config.Artifact
PreconditionError = pgb.errors.PreconditionError

OVERLAY_PREVIEW_GRID = pgb.config.OVERLAY_PREVIEW_GRID
OVERLAY_PREVIEW_CELL_WIDTH = pgb.config.OVERLAY_PREVIEW_CELL_WIDTH
OVERLAY_PREVIEW_QUALITY = pgb.config.OVERLAY_PREVIEW_QUALITY
QUALITY_PREVIEW_MAX_WIDTH = pgb.config.QUALITY_PREVIEW_MAX_WIDTH


#============================================
async def render_overlay_preview(
	images: list,
	settings: Settings,
	loader=pgb.acquire.open_source,
) -> Artifact:
	"""
	Render a small 3x3 sheet to check the overlay look.

	The first nine images are used; short lists repeat the first image.
	Numbers and redaction are not drawn.

	Args:
		images: Ordered image locators.
		settings: Render settings.
		loader: Callable that opens and decodes one source.

	Returns:
		JPEG artifact of the preview sheet.
	"""
	if not images:
		raise PreconditionError("No images for the overlay preview")
	if not settings.overlay_image:
		raise PreconditionError("No overlay image configured")
	cell_count = OVERLAY_PREVIEW_GRID * OVERLAY_PREVIEW_GRID
	preview_images = list(images[:cell_count])
	while len(preview_images) < cell_count:
		preview_images.append(images[0])

	cell_width = OVERLAY_PREVIEW_CELL_WIDTH
	cell_height = math.floor(cell_width / pgb.config.resolve_ratio(settings))
	sheet = pgb.render.Sheet()
	try:
		await pgb.render.draw_sheet(
			sheet,
			preview_images,
			OVERLAY_PREVIEW_GRID,
			OVERLAY_PREVIEW_GRID,
			cell_width,
			cell_height,
			math.floor(settings.gap / 5),
			0,
			1,
			frozenset(),
			settings,
			False,
			hide_numbers=True,
			loader=loader,
		)
		return pgb.encode.encode_sheet(
			sheet.image,
			OVERLAY_PREVIEW_QUALITY,
			image_count=cell_count,
			first_number=1,
			last_number=cell_count,
		)
	finally:
		sheet.release()


#============================================
def scale_to_max_width(image: PIL.Image.Image, max_width: int) -> PIL.Image.Image:
	"""
	Downscale an image so it is at most max_width wide.

	Args:
		image: Source image.
		max_width: Width limit.

	Returns:
		Resized copy, or a plain copy when already narrow enough.
	"""
	scale = min(1.0, max_width / image.width)
	if scale >= 1.0:
		return image.copy()
	width = max(1, int(image.width * scale))
	height = max(1, int(image.height * scale))
	return image.resize((width, height), PIL.Image.Resampling.LANCZOS)


#============================================
async def render_quality_preview(
	image_ref,
	quality: int,
	loader=pgb.acquire.open_source,
) -> Artifact:
	"""
	Encode one image at the export quality to preview compression.

	Args:
		image_ref: Image locator, normally the first image of the list.
		quality: Export quality.
		loader: Callable that opens and decodes one source.

	Returns:
		Artifact with the encoded preview.
	"""
	acquired = await pgb.acquire.acquire_image(image_ref, retries=0, loader=loader)
	if isinstance(acquired, pgb.acquire.Broken):
		raise PreconditionError(f"Preview image could not be decoded: {acquired.reason}")
	with acquired:
		scaled = scale_to_max_width(acquired.image, QUALITY_PREVIEW_MAX_WIDTH)
	with scaled:
		return await asyncio.to_thread(
			pgb.encode.encode_sheet,
			scaled,
			quality,
			0,
			1,
			1,
			1,
		)
