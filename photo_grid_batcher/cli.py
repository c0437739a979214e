"""
CLI entry points for grid sheet generation.
"""

# Standard Library
import argparse
import asyncio
import dataclasses
import json
import pathlib
import re
import signal
import sys
import time

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.batch
import photo_grid_batcher.config
import photo_grid_batcher.errors
import photo_grid_batcher.masks
import photo_grid_batcher.preview
import photo_grid_batcher.store


Settings = pgb.config.Settings
Artifact = pgb.config.Artifact
GridSheetError = pgb.errors.GridSheetError
EncodeError = pgb.errors.EncodeError
StoredImage = pgb.store.StoredImage

PROGRESS_BAR_WIDTH = pgb.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = pgb.config.PROGRESS_UPDATE_EVERY
RUN_MODES = pgb.config.RUN_MODES
FONT_POSITIONS = pgb.config.FONT_POSITIONS
MASK_MODES = pgb.config.MASK_MODES
LINE_STYLES = pgb.config.LINE_STYLES

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tif", ".tiff"}
URL_PREFIXES = ("http://", "https://", "file://")

# argparse dest -> Settings field, for flags that override settings
SETTING_OVERRIDES = {
	"aspect_ratio": "aspect_ratio",
	"gap": "gap",
	"cols": "cols",
	"group_rows": "group_rows",
	"start_number": "start_number",
	"show_numbers": "show_numbers",
	"font_size": "font_size",
	"font_position": "font_position",
	"quality": "quality",
	"mask_indices": "mask_indices",
	"mask_mode": "mask_mode",
	"line_style": "line_style",
	"sticker_image": "sticker_image",
	"overlay_image": "overlay_image",
	"overlay_mode": "overlay_mode",
	"overlay_opacity": "overlay_opacity",
}


class CancelFlag:
	"""
	Cancellation predicate flipped by an interrupt signal.
	"""

	def __init__(self) -> None:
		self.cancelled = False

	def set(self) -> None:
		self.cancelled = True

	def __call__(self) -> bool:
		return self.cancelled


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


#============================================
def report_sheet_progress(done: int, total: int) -> None:
	if done % PROGRESS_UPDATE_EVERY == 0 or done == total:
		print_progress("Sheets", done, total)


#============================================
def natural_sort_key(path: pathlib.Path) -> list:
	"""
	Sort key that orders "img2" before "img10".

	Args:
		path: File path.

	Returns:
		Key list of strings and integers.
	"""
	parts = re.split(r"(\d+)", path.name.lower())
	return [int(part) if part.isdigit() else part for part in parts]


#============================================
def gather_image_paths(inputs: list[str]) -> list[str]:
	"""
	Gather image locators from input paths.

	Directories are searched recursively and sorted naturally; files and
	URLs keep their command line order.

	Args:
		inputs: Input paths or URLs.

	Returns:
		Ordered list of image locators.
	"""
	images: list[str] = []
	for entry in inputs:
		if entry.lower().startswith(URL_PREFIXES):
			images.append(entry)
			continue
		path = pathlib.Path(entry).expanduser().resolve()
		if path.is_dir():
			found = [
				candidate for candidate in path.rglob("*")
				if candidate.is_file() and candidate.suffix.lower() in IMAGE_SUFFIXES
			]
			images.extend(str(candidate) for candidate in sorted(found, key=natural_sort_key))
			continue
		if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES:
			images.append(str(path))
	return images


#============================================
def describe_image(ref) -> str:
	"""
	Short text for an image locator or stored record.
	"""
	if isinstance(ref, StoredImage):
		return ref.url or ref.name
	return str(ref)


#============================================
def image_identity(ref) -> tuple[str, int]:
	"""
	Key used to spot duplicate imports: file name plus byte size.

	Args:
		ref: Image locator or stored record.

	Returns:
		Tuple of (name, size); URLs use the whole URL and size -1.
	"""
	if isinstance(ref, StoredImage):
		return (ref.name, ref.size)
	text = str(ref)
	if text.lower().startswith(URL_PREFIXES):
		return (text, -1)
	path = pathlib.Path(text)
	return (path.name, path.stat().st_size)


#============================================
def remove_duplicate_images(images: list) -> tuple[list, list]:
	"""
	Keep the first image of every name and size pair.

	Args:
		images: Image locators or stored records.

	Returns:
		Tuple of (kept, removed) lists in input order.
	"""
	seen: set[tuple[str, int]] = set()
	kept: list = []
	removed: list = []
	for ref in images:
		key = image_identity(ref)
		if key in seen:
			removed.append(ref)
			continue
		seen.add(key)
		kept.append(ref)
	return (kept, removed)


#============================================
def build_stored_record(locator: str) -> StoredImage:
	"""
	Build a store record for one gathered input.

	Local files keep their bytes; URLs are stored by reference.

	Args:
		locator: Image path or URL.

	Returns:
		StoredImage keyed by the locator.
	"""
	if locator.lower().startswith(URL_PREFIXES):
		name = locator.rstrip("/").rsplit("/", 1)[-1]
		return StoredImage(id=locator, name=name, size=0, url=locator, data=b"")
	path = pathlib.Path(locator)
	data = path.read_bytes()
	return StoredImage(id=locator, name=path.name, size=len(data), url=path.as_uri(), data=data)


#============================================
async def sync_store(store_dir: pathlib.Path, images: list[str], dedupe: bool) -> list[StoredImage]:
	"""
	Add gathered inputs to the image store and read back the whole list.

	Args:
		store_dir: Store directory.
		images: Newly gathered image locators.
		dedupe: Delete stored duplicates as well.

	Returns:
		Stored records in insertion order.
	"""
	store = pgb.store.ImageStore(store_dir)
	if images:
		records = [build_stored_record(locator) for locator in images]
		await store.put_many(records)
	stored = await store.get_all()
	if not dedupe:
		return stored
	kept, removed = remove_duplicate_images(stored)
	for record in removed:
		await store.delete(record.id)
	return kept


#============================================
def build_settings(args: argparse.Namespace) -> Settings:
	"""
	Build render settings from a settings file and CLI overrides.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Settings.
	"""
	if args.settings_path:
		settings = pgb.config.load_settings(pathlib.Path(args.settings_path))
	else:
		settings = Settings()
	overrides = {}
	for dest, field_name in SETTING_OVERRIDES.items():
		value = getattr(args, dest, None)
		if value is not None:
			overrides[field_name] = value
	if overrides:
		settings = dataclasses.replace(settings, **overrides)
	pgb.config.validate_settings(settings)
	return settings


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Assemble images into numbered grid sheets.")
	parser.add_argument("inputs", nargs="*", help="Image files, directories or URLs.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_dir", required=True, help="Output directory.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")
	output_group.add_argument("-s", "--settings", dest="settings_path", default=None, help="Settings JSON file.")
	output_group.add_argument("--save-settings", dest="save_settings_path", default=None, help="Write the effective settings JSON.")
	output_group.add_argument("-q", "--quality", dest="quality", type=int, default=None, help="Export quality 1-100, 100 writes PNG.")

	layout_group = parser.add_argument_group("Layout")
	layout_group.add_argument("-c", "--cols", dest="cols", type=int, default=None, help="Columns per sheet.")
	layout_group.add_argument("-r", "--rows", dest="group_rows", type=int, default=None, help="Maximum rows per sheet.")
	layout_group.add_argument("-g", "--gap", dest="gap", type=int, default=None, help="Gap between cells in pixels.")
	layout_group.add_argument("-a", "--ratio", dest="aspect_ratio", default=None, help="Cell aspect ratio width/height, e.g. 0.75.")

	number_group = parser.add_argument_group("Numbering")
	number_group.add_argument("-n", "--numbers", dest="show_numbers", action="store_true", default=None, help="Draw cell numbers.")
	number_group.add_argument("-N", "--no-numbers", dest="show_numbers", action="store_false", help="Hide cell numbers.")
	number_group.add_argument("--start-number", dest="start_number", type=int, default=None, help="Number of the first image.")
	number_group.add_argument("--font-size", dest="font_size", type=int, default=None, help="Number font size in pixels.")
	number_group.add_argument("--font-position", dest="font_position", choices=FONT_POSITIONS, default=None, help="Number position in the cell.")

	mask_group = parser.add_argument_group("Redaction")
	mask_group.add_argument("--mode", dest="mode", choices=RUN_MODES, default="normal", help="Run mode.")
	mask_group.add_argument("--mask", dest="mask_indices", default=None, help="Numbers to redact, e.g. '1, 3-5'.")
	mask_group.add_argument("--redact", dest="redact", action="store_true", help="Draw redaction marks in normal mode.")
	mask_group.add_argument("--mask-mode", dest="mask_mode", choices=MASK_MODES, default=None, help="Redaction style.")
	mask_group.add_argument("--line-style", dest="line_style", choices=LINE_STYLES, default=None, help="Redaction line shape.")
	mask_group.add_argument("--sticker", dest="sticker_image", default=None, help="Sticker image for sticker mode.")

	overlay_group = parser.add_argument_group("Overlay")
	overlay_group.add_argument("--overlay", dest="overlay_image", default=None, help="Overlay image stretched over each sheet.")
	overlay_group.add_argument("--overlay-mode", dest="overlay_mode", default=None, help="Overlay blend mode.")
	overlay_group.add_argument("--overlay-opacity", dest="overlay_opacity", type=float, default=None, help="Overlay opacity 0-1.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("-p", "--preview", dest="preview", choices=("overlay", "quality"), default=None, help="Write a preview instead of sheets.")
	behavior_group.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Print placeholder notices.")
	behavior_group.add_argument("--max-images", dest="max_images", type=int, default=None, help="Limit number of images.")
	behavior_group.add_argument("--store", dest="store_dir", default=None, help="Image store directory; inputs are added and the whole store is rendered.")
	behavior_group.add_argument("--dedupe", dest="dedupe", action="store_true", help="Drop images with the same name and byte size.")

	parser.set_defaults(redact=False, verbose=False, dedupe=False)
	args = parser.parse_args(argv)
	return args


#============================================
def write_artifact(output_dir: pathlib.Path, artifact: Artifact) -> pathlib.Path:
	"""
	Write one artifact to the output directory.

	Args:
		output_dir: Output directory.
		artifact: Encoded sheet.

	Returns:
		Written path.
	"""
	path = output_dir / f"sheet_{artifact.batch_index + 1:03d}.{artifact.extension}"
	path.write_bytes(artifact.data)
	return path


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	images: list,
	settings: Settings,
	mode: str,
	sheets: list[dict],
	total_batches: int,
	cancelled: bool,
) -> None:
	"""
	Write a manifest JSON file.

	Args:
		manifest_path: Output path.
		images: Input image locators or stored records.
		settings: Effective settings.
		mode: Run mode.
		sheets: Per-sheet metadata.
		total_batches: Planned sheet count.
		cancelled: Whether the run was interrupted.
	"""
	data = {
		"inputs": [describe_image(ref) for ref in images],
		"mode": mode,
		"mask_indices": pgb.masks.format_mask_indices(
			pgb.masks.parse_mask_indices(settings.mask_indices)
		),
		"settings": dataclasses.asdict(settings),
		"sheets": sheets,
		"planned_sheets": total_batches,
		"written_sheets": len(sheets),
		"total_bytes": sum(sheet["size"] for sheet in sheets),
		"cancelled": cancelled,
	}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)


#============================================
async def generate_sheets(
	images: list,
	settings: Settings,
	args: argparse.Namespace,
	output_dir: pathlib.Path,
	is_cancelled: CancelFlag,
) -> tuple[list[dict], int]:
	"""
	Run the batch pipeline and write sheets as they finish.

	Args:
		images: Image locators.
		settings: Render settings.
		args: Parsed argparse namespace.
		output_dir: Output directory.
		is_cancelled: Cancellation flag.

	Returns:
		Tuple of (sheet metadata list, planned sheet count).
	"""
	loop = asyncio.get_running_loop()
	try:
		loop.add_signal_handler(signal.SIGINT, is_cancelled.set)
	except (NotImplementedError, RuntimeError):
		pass

	plan = pgb.batch.plan_batches(images, settings, args.mode, args.redact)
	print(f"Sheets planned: {plan.total_batches}")
	if args.mode == "repack":
		print(f"Images removed by repack: {len(images) - len(plan.targets)}")

	sheets: list[dict] = []
	print_progress("Sheets", 0, plan.total_batches)
	batches = pgb.batch.run_batch(
		images,
		settings,
		args.mode,
		is_cancelled,
		redact=args.redact,
		progress=report_sheet_progress,
		verbose=args.verbose,
	)
	async for artifact in batches:
		path = write_artifact(output_dir, artifact)
		sheets.append(
			{
				"path": str(path),
				"format": artifact.format,
				"size": artifact.size,
				"images": artifact.image_count,
				"first_number": artifact.first_number,
				"last_number": artifact.last_number,
			}
		)
	print()
	return (sheets, plan.total_batches)


#============================================
async def generate_preview(
	images: list,
	settings: Settings,
	args: argparse.Namespace,
	output_dir: pathlib.Path,
) -> pathlib.Path:
	"""
	Render the requested preview and write it.

	Args:
		images: Image locators.
		settings: Render settings.
		args: Parsed argparse namespace.
		output_dir: Output directory.

	Returns:
		Written preview path.
	"""
	if args.preview == "overlay":
		artifact = await pgb.preview.render_overlay_preview(images, settings)
	else:
		if not images:
			raise pgb.errors.PreconditionError("No images for the quality preview")
		artifact = await pgb.preview.render_quality_preview(images[0], settings.quality)
	path = output_dir / f"preview_{args.preview}.{artifact.extension}"
	path.write_bytes(artifact.data)
	return path


#============================================
def run_pipeline(args: argparse.Namespace) -> None:
	"""
	Run the full pipeline from image inputs to written sheets.

	Args:
		args: Parsed argparse namespace.
	"""
	print("Grid sheet pipeline")
	output_dir = pathlib.Path(args.output_dir)
	print(f"Output directory: {output_dir}")
	print(f"Mode: {args.mode}")

	settings = build_settings(args)
	print(f"Grid: {settings.cols} cols x {settings.group_rows} rows per sheet")
	print(f"Quality: {pgb.config.clamp_quality(settings.quality)}")
	if args.save_settings_path:
		pgb.config.save_settings(settings, pathlib.Path(args.save_settings_path))
		print(f"Settings written: {args.save_settings_path}")

	images = gather_image_paths(args.inputs)
	if args.store_dir:
		store_dir = pathlib.Path(args.store_dir)
		images = asyncio.run(sync_store(store_dir, images, args.dedupe))
		print(f"Image store: {store_dir} ({len(images)} images)")
	elif args.dedupe:
		images, removed = remove_duplicate_images(images)
		print(f"Duplicates removed: {len(removed)}")
	if args.max_images is not None:
		images = images[:args.max_images]
	print(f"Images found: {len(images)}")
	output_dir.mkdir(parents=True, exist_ok=True)

	start_time = time.perf_counter()
	if args.preview:
		path = asyncio.run(generate_preview(images, settings, args, output_dir))
		print(f"Preview written: {path}")
		return

	is_cancelled = CancelFlag()
	sheets, total_batches = asyncio.run(
		generate_sheets(images, settings, args, output_dir, is_cancelled)
	)
	render_end = time.perf_counter()
	print(f"Sheets written: {len(sheets)}")
	if is_cancelled():
		print(f"Cancelled after {len(sheets)} of {total_batches} sheets")

	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = str(output_dir / "manifest.json")
	write_manifest(
		pathlib.Path(manifest_path),
		images,
		settings,
		args.mode,
		sheets,
		total_batches,
		is_cancelled(),
	)
	total_bytes = sum(sheet["size"] for sheet in sheets)
	print(f"Total size: {total_bytes / 1024 / 1024:.2f} MB")
	print(
		"Timing: render={:.2f}s".format(
			render_end - start_time,
		)
	)
	print(f"Manifest written: {manifest_path}")


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	try:
		run_pipeline(args)
	except EncodeError as error:
		print()
		print(f"Generation stopped: {error}", file=sys.stderr)
		print(f"Sheets completed before the failure: {error.completed}", file=sys.stderr)
		raise SystemExit(1) from error
	except GridSheetError as error:
		print(f"Error: {error}", file=sys.stderr)
		raise SystemExit(2) from error
