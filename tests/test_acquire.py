import asyncio
import io

import PIL.Image
import pytest

import photo_grid_batcher.acquire
import photo_grid_batcher.store


#============================================
def _flaky_loader(failures: int, calls: list):
	"""
	Build a loader that fails a fixed number of times before succeeding.
	"""
	def loader(ref):
		calls.append(ref)
		if len(calls) <= failures:
			raise OSError(f"attempt {len(calls)} failed")
		return PIL.Image.new("RGB", (8, 6), "#336699")
	return loader


#============================================
def test_acquire_first_try() -> None:
	"""
	A readable source decodes on the first attempt.
	"""
	calls: list = []
	acquired = asyncio.run(
		photo_grid_batcher.acquire.acquire_image("a.png", retry_delay=0, loader=_flaky_loader(0, calls))
	)
	assert isinstance(acquired, photo_grid_batcher.acquire.DecodedImage)
	assert acquired.image.size == (8, 6)
	assert calls == ["a.png"]
	acquired.release()
	assert acquired.image is None


#============================================
def test_acquire_recovers_within_budget() -> None:
	"""
	Two failures still fit a budget of two retries.
	"""
	calls: list = []
	acquired = asyncio.run(
		photo_grid_batcher.acquire.acquire_image("a.png", retries=2, retry_delay=0, loader=_flaky_loader(2, calls))
	)
	assert isinstance(acquired, photo_grid_batcher.acquire.DecodedImage)
	assert len(calls) == 3


#============================================
def test_acquire_exhausted_gives_broken() -> None:
	"""
	Exhausting the budget returns Broken after retries + 1 attempts.
	"""
	calls: list = []
	acquired = asyncio.run(
		photo_grid_batcher.acquire.acquire_image("a.png", retries=2, retry_delay=0, loader=_flaky_loader(10, calls))
	)
	assert isinstance(acquired, photo_grid_batcher.acquire.Broken)
	assert len(calls) == 3
	assert "attempt 3 failed" in acquired.reason


#============================================
def test_zero_size_decode_is_broken() -> None:
	"""
	A decode with zero width or height counts as a failure.
	"""
	calls: list = []

	def loader(ref):
		calls.append(ref)
		return PIL.Image.new("RGB", (0, 0))

	acquired = asyncio.run(
		photo_grid_batcher.acquire.acquire_image("empty.png", retries=1, retry_delay=0, loader=loader)
	)
	assert isinstance(acquired, photo_grid_batcher.acquire.Broken)
	assert len(calls) == 2


#============================================
def test_open_source_path_and_file_url(tmp_path) -> None:
	"""
	Local paths and file:// URLs both decode.
	"""
	path = tmp_path / "photo 1.png"
	PIL.Image.new("RGB", (12, 7), "#00FF00").save(path)
	image = photo_grid_batcher.acquire.open_source(path)
	assert image.size == (12, 7)
	image.close()
	image = photo_grid_batcher.acquire.open_source(path.as_uri())
	assert image.size == (12, 7)
	image.close()


#============================================
def test_open_source_missing_file(tmp_path) -> None:
	"""
	Missing files raise an acquisition error type.
	"""
	with pytest.raises(photo_grid_batcher.acquire.ACQUIRE_ERRORS):
		photo_grid_batcher.acquire.open_source(tmp_path / "missing.png")


#============================================
def test_acquire_real_files(tmp_path) -> None:
	"""
	The default loader turns a garbage file into Broken.
	"""
	good = tmp_path / "good.jpg"
	PIL.Image.new("RGB", (10, 10), "#FF0000").save(good)
	bad = tmp_path / "bad.jpg"
	bad.write_bytes(b"not an image at all")
	acquired = asyncio.run(photo_grid_batcher.acquire.acquire_image(good, retry_delay=0))
	assert isinstance(acquired, photo_grid_batcher.acquire.DecodedImage)
	acquired.release()
	broken = asyncio.run(photo_grid_batcher.acquire.acquire_image(bad, retry_delay=0))
	assert isinstance(broken, photo_grid_batcher.acquire.Broken)


#============================================
def test_load_optional_image() -> None:
	"""
	Auxiliary images come back as RGBA, or None when unusable.
	"""
	def loader(ref):
		if ref == "bad":
			raise ValueError("cannot decode")
		return PIL.Image.new("RGB", (4, 4), "#123456")

	image = asyncio.run(photo_grid_batcher.acquire.load_optional_image("ok", loader=loader))
	assert image.mode == "RGBA"
	assert asyncio.run(photo_grid_batcher.acquire.load_optional_image("bad", loader=loader)) is None
	assert asyncio.run(photo_grid_batcher.acquire.load_optional_image(None, loader=loader)) is None


#============================================
def test_open_source_stored_record(tmp_path) -> None:
	"""
	Stored records decode from their bytes, or from their url when empty.
	"""
	buffer = io.BytesIO()
	PIL.Image.new("RGB", (9, 5), "#FF00FF").save(buffer, format="PNG")
	record = photo_grid_batcher.store.StoredImage(
		id="a", name="a.png", size=len(buffer.getvalue()), url="", data=buffer.getvalue()
	)
	image = photo_grid_batcher.acquire.open_source(record)
	assert image.size == (9, 5)
	image.close()

	path = tmp_path / "b.png"
	PIL.Image.new("RGB", (4, 3), "#00FFFF").save(path)
	linked = photo_grid_batcher.store.StoredImage(id="b", name="b.png", size=0, url=path.as_uri(), data=b"")
	image = photo_grid_batcher.acquire.open_source(linked)
	assert image.size == (4, 3)
	image.close()
	assert "data" not in repr(linked)
