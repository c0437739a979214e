"""
Sheet surface and the grid render entry point.
"""

# Standard Library
import asyncio

# PIP3 modules
import PIL.Image

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.acquire
import photo_grid_batcher.annotate
import photo_grid_batcher.compose
import photo_grid_batcher.config
import photo_grid_batcher.errors
import photo_grid_batcher.overlay


Settings = pgb.config.Settings
GridSpec = pgb.config.GridSpec
PreconditionError = pgb.errors.PreconditionError

BACKGROUND_COLOR = pgb.config.BACKGROUND_COLOR
YIELD_EVERY = pgb.config.YIELD_EVERY
ACQUIRE_RETRIES = pgb.config.ACQUIRE_RETRIES
ACQUIRE_RETRY_DELAY = pgb.config.ACQUIRE_RETRY_DELAY


class Sheet:
	"""
	Raster frame buffer reused across batches.

	Only one full-size image is held at a time; release() shrinks it to
	a single pixel between batches.
	"""

	def __init__(self) -> None:
		self.image = PIL.Image.new("RGB", (1, 1), BACKGROUND_COLOR)

	@property
	def size(self) -> tuple[int, int]:
		return self.image.size

	def allocate(self, width: int, height: int) -> PIL.Image.Image:
		"""
		Replace the backing image with a blank one of the given size.

		Args:
			width: Sheet width in pixels.
			height: Sheet height in pixels.

		Returns:
			The new backing image.
		"""
		if width < 1 or height < 1:
			raise PreconditionError(f"Sheet size must be positive, got {width}x{height}")
		self.image.close()
		self.image = PIL.Image.new("RGB", (width, height), BACKGROUND_COLOR)
		return self.image

	def release(self) -> None:
		"""
		Drop the backing memory down to a 1x1 image.
		"""
		if self.image.size == (1, 1):
			return
		self.image.close()
		self.image = PIL.Image.new("RGB", (1, 1), BACKGROUND_COLOR)


#============================================
def never_cancelled() -> bool:
	"""
	Cancellation predicate for runs that cannot be cancelled.
	"""
	return False


#============================================
async def draw_sheet(
	sheet: Sheet,
	images: list,
	rows: int,
	cols: int,
	cell_width: int,
	cell_height: int,
	gap: int,
	global_offset: int,
	start_number: int,
	mask_indices: frozenset[int],
	settings: Settings,
	apply_mask: bool,
	is_cancelled=never_cancelled,
	hide_numbers: bool = False,
	loader=pgb.acquire.open_source,
	retries: int = ACQUIRE_RETRIES,
	retry_delay: float = ACQUIRE_RETRY_DELAY,
	verbose: bool = False,
) -> bool:
	"""
	Render one group of images into the sheet in place.

	Cells are drawn in row-major order. Each cell acquires its image,
	draws it with cover-fit, releases the decoded image and then draws
	its annotations. The overlay is applied once after the last cell.
	Cancellation is polled before and after every acquisition; a
	cancelled call returns early and leaves the sheet partly drawn, so
	the caller must not encode it.

	Args:
		sheet: Sheet surface, resized by this call.
		images: Image locators for this group.
		rows: Grid rows.
		cols: Grid columns.
		cell_width: Cell width in pixels.
		cell_height: Cell height in pixels.
		gap: Gap between cells in pixels.
		global_offset: Position of the first image in the whole run.
		start_number: Number shown for the first image of the run.
		mask_indices: Global numbers to redact.
		settings: Render settings.
		apply_mask: Whether redaction is active for this call.
		is_cancelled: Cancellation predicate.
		hide_numbers: Suppress numbering, used by previews.
		loader: Callable that opens and decodes one source.
		retries: Acquisition retry budget.
		retry_delay: Seconds between acquisition retries.
		verbose: Print placeholder notices.

	Returns:
		True when every cell was drawn, False when cancelled.
	"""
	if sheet is None:
		raise PreconditionError("No sheet to draw on")
	if cols < 1 or rows < 1:
		raise PreconditionError(f"Grid must have at least one cell, got {rows}x{cols}")
	if is_cancelled():
		return False

	grid = GridSpec(
		rows=rows,
		cols=cols,
		cell_width=cell_width,
		cell_height=cell_height,
		gap=gap,
	)
	surface = sheet.allocate(grid.sheet_width, grid.sheet_height)

	sticker = None
	if apply_mask and settings.mask_mode == "sticker":
		sticker = await pgb.acquire.load_optional_image(settings.sticker_image, loader=loader)
	overlay = await pgb.acquire.load_optional_image(settings.overlay_image, loader=loader)

	try:
		for index, ref in enumerate(images):
			if is_cancelled():
				return False
			if index % YIELD_EVERY == 0:
				await asyncio.sleep(0)

			rect = grid.cell_rect(index)
			number = start_number + global_offset + index
			acquired = await pgb.acquire.acquire_image(
				ref,
				retries=retries,
				retry_delay=retry_delay,
				loader=loader,
			)
			with acquired:
				if is_cancelled():
					return False
				pgb.compose.draw_cell(surface, rect, acquired, verbose=verbose)

			targeted = apply_mask and number in mask_indices
			pgb.annotate.annotate_cell(
				surface,
				rect,
				number,
				targeted,
				settings,
				sticker=sticker,
				hide_numbers=hide_numbers,
			)

		pgb.overlay.apply_overlay(
			surface,
			overlay,
			settings.overlay_mode,
			settings.overlay_opacity,
		)
		return True
	finally:
		if sticker is not None:
			sticker.close()
		if overlay is not None:
			overlay.close()
