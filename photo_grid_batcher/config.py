"""
Shared configuration, constants and value types.
"""

# Standard Library
import dataclasses
import json
import math
import pathlib

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.errors


SettingsError = pgb.errors.SettingsError

MAX_CANVAS_DIMENSION = 8192
BASE_CELL_WIDTH = 1500
DEFAULT_CUSTOM_WIDTH = 1000
DEFAULT_CUSTOM_HEIGHT = 1500

ACQUIRE_RETRIES = 2
ACQUIRE_RETRY_DELAY = 0.2
ACQUIRE_HTTP_TIMEOUT = 30.0
YIELD_EVERY = 10
BATCH_SETTLE_DELAY = 0.2

MIN_QUALITY = 10
MAX_QUALITY = 100
LOSSLESS_QUALITY = 100

BACKGROUND_COLOR = "#FFFFFF"
PLACEHOLDER_FILL = "#F0F0F0"
PLACEHOLDER_GLYPH_COLOR = "#CCCCCC"
PLACEHOLDER_GLYPH = "!"
FAILED_CELL_FILL = "#EEEEEE"

TEXT_EDGE_INSET = 20
MASK_REFERENCE_WIDTH = 500.0
MASK_WIDTH_FACTOR = 5.0
MASK_LINE_START = 0.2
MASK_LINE_END = 0.8

OVERLAY_PREVIEW_GRID = 3
OVERLAY_PREVIEW_CELL_WIDTH = 200
OVERLAY_PREVIEW_QUALITY = 80
QUALITY_PREVIEW_MAX_WIDTH = 1000

PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10

FONT_POSITIONS = (
	"bottom-center",
	"bottom-left",
	"bottom-right",
	"center",
	"top-left",
	"top-right",
)
MASK_MODES = ("line", "sticker")
LINE_STYLES = ("cross", "slash")
RUN_MODES = ("normal", "apply", "repack")

# camelCase keys used by older settings files
LEGACY_SETTING_KEYS = {
	"aspectRatio": "aspect_ratio",
	"customW": "custom_width",
	"customH": "custom_height",
	"showNum": "show_numbers",
	"startNumber": "start_number",
	"fontSize": "font_size",
	"fontWeight": "font_weight",
	"fontColor": "font_color",
	"enableStroke": "enable_stroke",
	"fontStrokeColor": "font_stroke_color",
	"fontShadowColor": "font_shadow_color",
	"enableShadow": "enable_shadow",
	"fontFamily": "font_family",
	"fontPos": "font_position",
	"groupRows": "group_rows",
	"overlayImgUrl": "overlay_image",
	"overlayMode": "overlay_mode",
	"overlayOpacity": "overlay_opacity",
	"qualityVal": "quality",
	"maskMode": "mask_mode",
	"maskIndices": "mask_indices",
	"maskColor": "mask_color",
	"maskWidth": "mask_width",
	"lineStyle": "line_style",
	"stickerImgUrl": "sticker_image",
	"stickerSize": "sticker_size",
	"stickerX": "sticker_x",
	"stickerY": "sticker_y",
}


@dataclasses.dataclass(frozen=True)
class Settings:
	aspect_ratio: str = "0.75"
	custom_width: int = DEFAULT_CUSTOM_WIDTH
	custom_height: int = DEFAULT_CUSTOM_HEIGHT
	gap: int = 0
	show_numbers: bool = True
	start_number: int = 1
	font_size: int = 350
	font_weight: str = "bold"
	font_color: str = "#FFFFFF"
	enable_stroke: bool = True
	font_stroke_color: str = "#000000"
	enable_shadow: bool = False
	font_shadow_color: str = "#000000"
	font_family: str = "sans-serif"
	font_position: str = "bottom-center"
	cols: int = 3
	group_rows: int = 3
	overlay_image: str | None = None
	overlay_mode: str = "source-over"
	overlay_opacity: float = 1.0
	quality: int = 50
	mask_mode: str = "line"
	mask_indices: str = ""
	mask_color: str = "#FF3B30"
	mask_width: float = 10
	line_style: str = "cross"
	sticker_image: str | None = None
	sticker_size: float = 50
	sticker_x: float = 50
	sticker_y: float = 50


@dataclasses.dataclass(frozen=True)
class GridSpec:
	rows: int
	cols: int
	cell_width: int
	cell_height: int
	gap: int

	@property
	def sheet_width(self) -> int:
		return self.cols * self.cell_width + (self.cols - 1) * self.gap

	@property
	def sheet_height(self) -> int:
		return self.rows * self.cell_height + (self.rows - 1) * self.gap

	def cell_rect(self, index: int) -> tuple[int, int, int, int]:
		"""
		Compute the (x, y, width, height) rectangle for a row-major cell index.
		"""
		row = index // self.cols
		col = index % self.cols
		x = col * (self.cell_width + self.gap)
		y = row * (self.cell_height + self.gap)
		return (x, y, self.cell_width, self.cell_height)


@dataclasses.dataclass(frozen=True)
class Artifact:
	data: bytes
	size: int
	format: str
	mime_type: str
	extension: str
	batch_index: int
	image_count: int
	first_number: int
	last_number: int


#============================================
def resolve_ratio(settings: Settings) -> float:
	"""
	Resolve the cell aspect ratio (width / height).

	Args:
		settings: Render settings.

	Returns:
		Aspect ratio as a float.
	"""
	if settings.aspect_ratio != "custom":
		return float(settings.aspect_ratio)
	width = settings.custom_width or DEFAULT_CUSTOM_WIDTH
	height = settings.custom_height or DEFAULT_CUSTOM_HEIGHT
	return width / height


#============================================
def compute_cell_size(settings: Settings) -> tuple[int, int]:
	"""
	Compute the export cell size, capping width to the raster ceiling.

	Args:
		settings: Render settings.

	Returns:
		Tuple of (cell_width, cell_height).
	"""
	cols = settings.cols
	cell_width = BASE_CELL_WIDTH
	if cols * cell_width > MAX_CANVAS_DIMENSION:
		cell_width = math.floor((MAX_CANVAS_DIMENSION - settings.gap * cols) / cols)
	cell_height = math.floor(cell_width / resolve_ratio(settings))
	return (cell_width, cell_height)


#============================================
def compute_total_batches(image_count: int, cols: int, group_rows: int) -> int:
	"""
	Compute how many sheets a run produces.

	Args:
		image_count: Number of images after any repack.
		cols: Columns per sheet.
		group_rows: Maximum rows per sheet.

	Returns:
		Number of batches.
	"""
	batch_size = cols * group_rows
	if image_count <= 0 or batch_size <= 0:
		return 0
	return math.ceil(image_count / batch_size)


#============================================
def build_grid_spec(settings: Settings, group_image_count: int) -> GridSpec:
	"""
	Derive the grid for one group of images.

	Args:
		settings: Render settings.
		group_image_count: Images in this group.

	Returns:
		GridSpec for the sheet.
	"""
	cell_width, cell_height = compute_cell_size(settings)
	rows = math.ceil(group_image_count / settings.cols)
	return GridSpec(
		rows=rows,
		cols=settings.cols,
		cell_width=cell_width,
		cell_height=cell_height,
		gap=settings.gap,
	)


#============================================
def clamp_quality(quality: int) -> int:
	"""
	Clamp export quality to the supported range.

	Args:
		quality: Requested quality.

	Returns:
		Quality between MIN_QUALITY and MAX_QUALITY.
	"""
	return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


#============================================
def settings_from_dict(data: dict) -> Settings:
	"""
	Build Settings from a JSON-style dictionary.

	Both snake_case field names and legacy camelCase keys are accepted. Unknown keys are ignored.

	Args:
		data: Settings dictionary.

	Returns:
		Settings instance.
	"""
	if not isinstance(data, dict):
		raise SettingsError(f"Settings must be a JSON object, got {type(data).__name__}")
	field_names = {field.name for field in dataclasses.fields(Settings)}
	values: dict = {}
	for key, value in data.items():
		name = LEGACY_SETTING_KEYS.get(key, key)
		if name not in field_names:
			continue
		values[name] = value
	if values.get("mask_mode") == "image":
		values["mask_mode"] = "sticker"
	if "aspect_ratio" in values:
		values["aspect_ratio"] = str(values["aspect_ratio"])
	try:
		settings = Settings(**values)
	except TypeError as error:
		raise SettingsError(str(error)) from error
	validate_settings(settings)
	return settings


#============================================
def validate_settings(settings: Settings) -> None:
	"""
	Check settings values that would break layout.

	Args:
		settings: Settings to check.
	"""
	if settings.cols < 1:
		raise SettingsError(f"cols must be >= 1, got {settings.cols}")
	if settings.group_rows < 1:
		raise SettingsError(f"group_rows must be >= 1, got {settings.group_rows}")
	if settings.gap < 0:
		raise SettingsError(f"gap must be >= 0, got {settings.gap}")
	if settings.mask_mode not in MASK_MODES:
		raise SettingsError(f"Unknown mask mode: {settings.mask_mode}")
	if settings.line_style not in LINE_STYLES:
		raise SettingsError(f"Unknown line style: {settings.line_style}")
	try:
		ratio = resolve_ratio(settings)
	except ValueError as error:
		raise SettingsError(f"Bad aspect ratio: {settings.aspect_ratio}") from error
	if not math.isfinite(ratio) or ratio <= 0.0:
		raise SettingsError(f"Aspect ratio must be a positive number, got {ratio}")


#============================================
def load_settings(path: pathlib.Path) -> Settings:
	"""
	Load settings from a JSON file.

	Args:
		path: JSON path.

	Returns:
		Settings instance.
	"""
	text = path.read_text(encoding="utf-8")
	try:
		data = json.loads(text)
	except json.JSONDecodeError as error:
		raise SettingsError(f"Invalid settings JSON in {path}: {error}") from error
	return settings_from_dict(data)


#============================================
def save_settings(settings: Settings, path: pathlib.Path) -> None:
	"""
	Write settings to a JSON file.

	Args:
		settings: Settings instance.
		path: Output JSON path.
	"""
	data = dataclasses.asdict(settings)
	with path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
