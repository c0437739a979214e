"""
Batch scheduling: chunk the image list into sheets, render and encode.
"""

# Standard Library
import asyncio
import dataclasses
import typing

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.acquire
import photo_grid_batcher.config
import photo_grid_batcher.encode
import photo_grid_batcher.errors
import photo_grid_batcher.masks
import photo_grid_batcher.render


Settings = pgb.config.Settings
Artifact = pgb.config.Artifact
Sheet = pgb.render.Sheet
EncodeError = pgb.errors.EncodeError
PreconditionError = pgb.errors.PreconditionError

RUN_MODES = pgb.config.RUN_MODES
BATCH_SETTLE_DELAY = pgb.config.BATCH_SETTLE_DELAY
ACQUIRE_RETRIES = pgb.config.ACQUIRE_RETRIES
ACQUIRE_RETRY_DELAY = pgb.config.ACQUIRE_RETRY_DELAY


@dataclasses.dataclass(frozen=True)
class BatchPlan:
	targets: list
	mask_indices: frozenset[int]
	apply_mask: bool
	batch_size: int
	total_batches: int


@dataclasses.dataclass
class BatchResult:
	artifacts: list[Artifact]
	cancelled: bool
	total_batches: int

	@property
	def total_bytes(self) -> int:
		return sum(artifact.size for artifact in self.artifacts)


#============================================
def select_targets(
	images: list,
	mask_indices: frozenset[int],
	start_number: int,
	mode: str,
) -> list:
	"""
	Apply the repack pre-pass.

	In repack mode every image whose number would be in the mask set is
	dropped; the survivors are renumbered from start_number by position.
	Other modes keep every image.

	Args:
		images: Ordered image locators.
		mask_indices: Numbers to remove.
		start_number: Number of the first image.
		mode: normal, apply or repack.

	Returns:
		Image locators to render.
	"""
	if mode != "repack":
		return list(images)
	return [
		ref for index, ref in enumerate(images)
		if start_number + index not in mask_indices
	]


#============================================
def resolve_apply_mask(mode: str, redact: bool) -> bool:
	"""
	Decide whether targeted cells are visibly redacted.

	Args:
		mode: normal, apply or repack.
		redact: Explicit redaction flag used by normal mode.

	Returns:
		True when redaction marks are drawn.
	"""
	if mode == "apply":
		return True
	if mode == "repack":
		return False
	return bool(redact)


#============================================
def plan_batches(
	images: list,
	settings: Settings,
	mode: str = "normal",
	redact: bool = False,
	mask_indices: frozenset[int] | None = None,
) -> BatchPlan:
	"""
	Validate inputs and work out the batches of a run.

	Args:
		images: Ordered image locators.
		settings: Render settings.
		mode: normal, apply or repack.
		redact: Redaction flag for normal mode.
		mask_indices: Mask set; parsed from settings when None.

	Returns:
		BatchPlan.
	"""
	if not images:
		raise PreconditionError("No images to render")
	if mode not in RUN_MODES:
		raise PreconditionError(f"Unknown run mode: {mode}")
	if settings.cols < 1 or settings.group_rows < 1:
		raise PreconditionError(
			f"Grid needs at least one column and row, got cols={settings.cols} rows={settings.group_rows}"
		)
	if mask_indices is None:
		mask_indices = pgb.masks.parse_mask_indices(settings.mask_indices)
	targets = select_targets(images, mask_indices, settings.start_number, mode)
	batch_size = settings.cols * settings.group_rows
	total_batches = pgb.config.compute_total_batches(
		len(targets),
		settings.cols,
		settings.group_rows,
	)
	return BatchPlan(
		targets=targets,
		mask_indices=frozenset(mask_indices),
		apply_mask=resolve_apply_mask(mode, redact),
		batch_size=batch_size,
		total_batches=total_batches,
	)


#============================================
def run_batch(
	images: list,
	settings: Settings,
	mode: str = "normal",
	is_cancelled=pgb.render.never_cancelled,
	redact: bool = False,
	mask_indices: frozenset[int] | None = None,
	loader=pgb.acquire.open_source,
	encoder=pgb.encode.encode_sheet,
	progress=None,
	settle_delay: float = BATCH_SETTLE_DELAY,
	retries: int = ACQUIRE_RETRIES,
	retry_delay: float = ACQUIRE_RETRY_DELAY,
	verbose: bool = False,
) -> typing.AsyncIterator[Artifact]:
	"""
	Start a run and return its artifacts as an async iterator.

	Inputs are checked before the iterator is returned, so precondition
	errors surface at the call. Each call starts a fresh run; the
	iterator cannot be restarted.

	Args:
		images: Ordered image locators.
		settings: Render settings, treated as a read-only snapshot.
		mode: normal, apply or repack.
		is_cancelled: Cancellation predicate polled at fixed points.
		redact: Redaction flag for normal mode.
		mask_indices: Mask set; parsed from settings when None.
		loader: Callable that opens and decodes one source.
		encoder: Callable that turns a finished sheet into an Artifact.
		progress: Optional callable(done, total) after each sheet.
		settle_delay: Pause in seconds before each sheet is allocated.
		retries: Acquisition retry budget.
		retry_delay: Seconds between acquisition retries.
		verbose: Print placeholder notices.

	Returns:
		Async iterator of Artifact, in batch order.
	"""
	plan = plan_batches(images, settings, mode, redact, mask_indices)
	return iterate_batches(
		plan,
		settings,
		is_cancelled,
		loader,
		encoder,
		progress,
		settle_delay,
		retries,
		retry_delay,
		verbose,
	)


#============================================
async def iterate_batches(
	plan: BatchPlan,
	settings: Settings,
	is_cancelled,
	loader,
	encoder,
	progress,
	settle_delay: float,
	retries: int,
	retry_delay: float,
	verbose: bool,
) -> typing.AsyncIterator[Artifact]:
	"""
	Render, encode and yield one sheet per batch of a plan.
	"""
	sheet = Sheet()
	completed = 0
	try:
		for batch_index in range(plan.total_batches):
			if is_cancelled():
				return
			# let released memory settle before the next allocation
			await asyncio.sleep(settle_delay)

			start = batch_index * plan.batch_size
			group = plan.targets[start:start + plan.batch_size]
			grid = pgb.config.build_grid_spec(settings, len(group))
			finished = await pgb.render.draw_sheet(
				sheet,
				group,
				grid.rows,
				grid.cols,
				grid.cell_width,
				grid.cell_height,
				grid.gap,
				start,
				settings.start_number,
				plan.mask_indices,
				settings,
				plan.apply_mask,
				is_cancelled,
				loader=loader,
				retries=retries,
				retry_delay=retry_delay,
				verbose=verbose,
			)
			# a sheet cut short by cancellation is never encoded
			if not finished or is_cancelled():
				return

			first_number = settings.start_number + start
			try:
				artifact = await asyncio.to_thread(
					encoder,
					sheet.image,
					settings.quality,
					batch_index,
					len(group),
					first_number,
					first_number + len(group) - 1,
				)
			except (OSError, ValueError) as error:
				raise EncodeError(batch_index, completed, str(error)) from error
			finally:
				sheet.release()

			completed += 1
			if progress is not None:
				progress(completed, plan.total_batches)
			yield artifact
	finally:
		sheet.release()


#============================================
async def collect_batches(
	images: list,
	settings: Settings,
	mode: str = "normal",
	is_cancelled=pgb.render.never_cancelled,
	redact: bool = False,
	mask_indices: frozenset[int] | None = None,
	loader=pgb.acquire.open_source,
	encoder=pgb.encode.encode_sheet,
	progress=None,
	settle_delay: float = BATCH_SETTLE_DELAY,
	retries: int = ACQUIRE_RETRIES,
	retry_delay: float = ACQUIRE_RETRY_DELAY,
	verbose: bool = False,
) -> BatchResult:
	"""
	Run a whole generation and gather its artifacts.

	Takes the same arguments as run_batch(). On an encoding failure the
	raised EncodeError carries the artifacts finished before it.

	Returns:
		BatchResult with the artifacts in batch order.
	"""
	plan = plan_batches(images, settings, mode, redact, mask_indices)
	artifacts: list[Artifact] = []
	batches = iterate_batches(
		plan,
		settings,
		is_cancelled,
		loader,
		encoder,
		progress,
		settle_delay,
		retries,
		retry_delay,
		verbose,
	)
	try:
		async for artifact in batches:
			artifacts.append(artifact)
	except EncodeError as error:
		error.artifacts = list(artifacts)
		raise
	return BatchResult(
		artifacts=artifacts,
		cancelled=len(artifacts) < plan.total_batches,
		total_batches=plan.total_batches,
	)
