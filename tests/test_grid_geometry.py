import dataclasses
import json

import pytest

import photo_grid_batcher.config
import photo_grid_batcher.errors


Settings = photo_grid_batcher.config.Settings
SettingsError = photo_grid_batcher.errors.SettingsError


#============================================
def _boxes_overlap(a: tuple[int, int, int, int], b: tuple[int, int, int, int]) -> bool:
	"""
	Check if two (x, y, w, h) boxes overlap.
	"""
	ax0, ay0, aw, ah = a
	bx0, by0, bw, bh = b
	return not (ax0 + aw <= bx0 or bx0 + bw <= ax0 or ay0 + ah <= by0 or by0 + bh <= ay0)


#============================================
def test_resolve_ratio_presets_and_custom() -> None:
	"""
	Preset ratios parse as floats; custom uses width / height.
	"""
	assert photo_grid_batcher.config.resolve_ratio(Settings()) == pytest.approx(0.75)
	custom = Settings(aspect_ratio="custom", custom_width=400, custom_height=200)
	assert photo_grid_batcher.config.resolve_ratio(custom) == pytest.approx(2.0)
	fallback = Settings(aspect_ratio="custom", custom_width=0, custom_height=0)
	assert photo_grid_batcher.config.resolve_ratio(fallback) == pytest.approx(1000 / 1500)


#============================================
def test_cell_size_uses_base_width() -> None:
	"""
	Narrow grids keep the base cell width.
	"""
	settings = Settings(cols=5)
	assert photo_grid_batcher.config.compute_cell_size(settings) == (1500, 2000)


#============================================
def test_cell_size_caps_wide_grids() -> None:
	"""
	Wide grids shrink cells so the sheet fits the raster ceiling.
	"""
	settings = Settings(cols=6, gap=10)
	cell_width, cell_height = photo_grid_batcher.config.compute_cell_size(settings)
	assert cell_width == (8192 - 60) // 6
	assert cell_height == int(cell_width / 0.75)
	grid = photo_grid_batcher.config.build_grid_spec(settings, 6)
	assert grid.sheet_width <= photo_grid_batcher.config.MAX_CANVAS_DIMENSION


#============================================
@pytest.mark.parametrize(
	"count, cols, rows, expected",
	[
		(7, 3, 1, 3),
		(7, 3, 3, 1),
		(9, 3, 3, 1),
		(10, 3, 3, 2),
		(1, 1, 1, 1),
		(0, 3, 3, 0),
		(-4, 3, 3, 0),
	],
)
def test_total_batches(count: int, cols: int, rows: int, expected: int) -> None:
	"""
	Batch counts follow ceil(count / (cols * rows)).
	"""
	assert photo_grid_batcher.config.compute_total_batches(count, cols, rows) == expected


#============================================
def test_rows_follow_group_size() -> None:
	"""
	A sheet only has as many rows as its group needs.
	"""
	settings = Settings(cols=3)
	assert photo_grid_batcher.config.build_grid_spec(settings, 3).rows == 1
	assert photo_grid_batcher.config.build_grid_spec(settings, 4).rows == 2
	assert photo_grid_batcher.config.build_grid_spec(settings, 9).rows == 3


#============================================
def test_grid_boxes_in_bounds_and_disjoint() -> None:
	"""
	Cell boxes stay inside the sheet and never overlap.
	"""
	grid = photo_grid_batcher.config.GridSpec(rows=3, cols=4, cell_width=50, cell_height=70, gap=6)
	assert grid.sheet_width == 4 * 50 + 3 * 6
	assert grid.sheet_height == 3 * 70 + 2 * 6
	boxes = [grid.cell_rect(index) for index in range(12)]
	for x, y, width, height in boxes:
		assert x >= 0 and y >= 0
		assert x + width <= grid.sheet_width
		assert y + height <= grid.sheet_height
	for index, box in enumerate(boxes):
		for other in boxes[index + 1:]:
			assert not _boxes_overlap(box, other)
	assert boxes[4] == (0, 76, 50, 70)


#============================================
@pytest.mark.parametrize(
	"requested, expected",
	[(1, 10), (10, 10), (50, 50), (100, 100), (250, 100), (-5, 10)],
)
def test_clamp_quality(requested: int, expected: int) -> None:
	"""
	Quality is clamped to 10-100.
	"""
	assert photo_grid_batcher.config.clamp_quality(requested) == expected


#============================================
def test_settings_from_dict_maps_legacy_keys() -> None:
	"""
	camelCase keys and the old image mask mode are accepted.
	"""
	settings = photo_grid_batcher.config.settings_from_dict(
		{
			"groupRows": 2,
			"maskMode": "image",
			"aspectRatio": 0.5,
			"qualityVal": 90,
			"maskIndices": "1-3",
			"somethingElse": True,
		}
	)
	assert settings.group_rows == 2
	assert settings.mask_mode == "sticker"
	assert settings.aspect_ratio == "0.5"
	assert settings.quality == 90
	assert settings.mask_indices == "1-3"
	assert settings.cols == Settings().cols


#============================================
@pytest.mark.parametrize(
	"data",
	[
		{"cols": 0},
		{"group_rows": -1},
		{"gap": -2},
		{"mask_mode": "blur"},
		{"line_style": "dots"},
		{"aspect_ratio": "wide"},
		{"aspect_ratio": "0"},
		{"aspect_ratio": "nan"},
		{"aspect_ratio": "inf"},
		{"aspect_ratio": "-inf"},
		{"aspect_ratio": "custom", "custom_width": 100, "custom_height": -50},
		[1, 2, 3],
	],
)
def test_settings_from_dict_rejects_bad_values(data) -> None:
	"""
	Values that would break layout raise SettingsError.
	"""
	with pytest.raises(SettingsError):
		photo_grid_batcher.config.settings_from_dict(data)


#============================================
def test_settings_file_roundtrip(tmp_path) -> None:
	"""
	Saved settings load back unchanged.
	"""
	settings = dataclasses.replace(Settings(), cols=4, mask_indices="2, 5-7", overlay_opacity=0.4)
	path = tmp_path / "settings.json"
	photo_grid_batcher.config.save_settings(settings, path)
	assert json.loads(path.read_text(encoding="utf-8"))["cols"] == 4
	assert photo_grid_batcher.config.load_settings(path) == settings


#============================================
def test_load_settings_invalid_json(tmp_path) -> None:
	"""
	Broken JSON raises SettingsError.
	"""
	path = tmp_path / "settings.json"
	path.write_text("{not json", encoding="utf-8")
	with pytest.raises(SettingsError):
		photo_grid_batcher.config.load_settings(path)
