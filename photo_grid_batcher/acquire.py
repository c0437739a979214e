"""
Image acquisition with bounded retries.
"""

# Standard Library
import asyncio
import dataclasses
import io
import os
import pathlib
import urllib.parse

# PIP3 modules
import PIL.Image
import PIL.ImageOps
import requests

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.config
import photo_grid_batcher.store


ACQUIRE_RETRIES = pgb.config.ACQUIRE_RETRIES
ACQUIRE_RETRY_DELAY = pgb.config.ACQUIRE_RETRY_DELAY
ACQUIRE_HTTP_TIMEOUT = pgb.config.ACQUIRE_HTTP_TIMEOUT

ACQUIRE_ERRORS = (
	OSError,
	ValueError,
	PIL.Image.DecompressionBombError,
	requests.RequestException,
)

StoredImage = pgb.store.StoredImage

ImageRef = str | os.PathLike | StoredImage


@dataclasses.dataclass
class DecodedImage:
	ref: ImageRef
	image: PIL.Image.Image

	def __enter__(self) -> "DecodedImage":
		return self

	def __exit__(self, exc_type, exc_value, traceback) -> None:
		self.release()

	def release(self) -> None:
		"""
		Close the decoded raster so its memory is returned right away.
		"""
		if self.image is not None:
			self.image.close()
			self.image = None


@dataclasses.dataclass(frozen=True)
class Broken:
	ref: ImageRef
	reason: str

	def __enter__(self) -> "Broken":
		return self

	def __exit__(self, exc_type, exc_value, traceback) -> None:
		return None


#============================================
def open_source(ref: ImageRef) -> PIL.Image.Image:
	"""
	Open and fully decode one image source.

	Accepts local paths, file:// URLs, http(s):// URLs and stored
	image records. A record without bytes is opened through its url.

	Args:
		ref: Image locator.

	Returns:
		Decoded PIL image with EXIF orientation applied.
	"""
	if isinstance(ref, StoredImage):
		if not ref.data:
			return open_source(ref.url)
		image = PIL.Image.open(io.BytesIO(ref.data))
		return finish_decode(image)
	text = os.fspath(ref)
	lowered = text.lower()
	if lowered.startswith(("http://", "https://")):
		response = requests.get(text, timeout=ACQUIRE_HTTP_TIMEOUT)
		response.raise_for_status()
		image = PIL.Image.open(io.BytesIO(response.content))
	elif lowered.startswith("file://"):
		parsed = urllib.parse.urlparse(text)
		path = urllib.parse.unquote(parsed.path)
		if os.name == "nt" and path.startswith("/"):
			path = path[1:]
		image = PIL.Image.open(pathlib.Path(path))
	else:
		image = PIL.Image.open(pathlib.Path(text))
	return finish_decode(image)


#============================================
def finish_decode(image: PIL.Image.Image) -> PIL.Image.Image:
	"""
	Load the full raster and apply EXIF orientation.
	"""
	image.load()
	transposed = PIL.ImageOps.exif_transpose(image)
	if transposed is not image:
		image.close()
	return transposed


#============================================
def is_valid_image(image: PIL.Image.Image | None) -> bool:
	"""
	Check a decode result strictly.

	Args:
		image: Decoded image or None.

	Returns:
		True when the image has non-zero width and height.
	"""
	if image is None:
		return False
	width, height = image.size
	return width > 0 and height > 0


#============================================
async def acquire_image(
	ref: ImageRef,
	retries: int = ACQUIRE_RETRIES,
	retry_delay: float = ACQUIRE_RETRY_DELAY,
	loader=open_source,
) -> DecodedImage | Broken:
	"""
	Resolve one source to a decoded image, retrying on failure.

	The same source is tried up to retries + 1 times with a fixed delay
	between attempts. Exhausting the budget yields Broken, not an error.

	Args:
		ref: Image locator.
		retries: Retry budget after the first attempt.
		retry_delay: Seconds to wait before each retry.
		loader: Callable that opens and decodes the source.

	Returns:
		DecodedImage on success, Broken otherwise.
	"""
	reason = "not attempted"
	for attempt in range(retries + 1):
		if attempt > 0:
			await asyncio.sleep(retry_delay)
		try:
			image = await asyncio.to_thread(loader, ref)
		except ACQUIRE_ERRORS as error:
			reason = f"{type(error).__name__}: {error}"
			continue
		if is_valid_image(image):
			return DecodedImage(ref=ref, image=image)
		if image is not None:
			image.close()
		reason = "decoded image has zero size"
	return Broken(ref=ref, reason=reason)


#============================================
async def load_optional_image(ref: ImageRef | None, loader=open_source) -> PIL.Image.Image | None:
	"""
	Load an auxiliary image such as an overlay or a sticker.

	Args:
		ref: Image locator, or None when the effect is disabled.
		loader: Callable that opens and decodes the source.

	Returns:
		RGBA image, or None when absent or unreadable.
	"""
	if not ref:
		return None
	try:
		image = await asyncio.to_thread(loader, ref)
	except ACQUIRE_ERRORS:
		return None
	if not is_valid_image(image):
		if image is not None:
			image.close()
		return None
	if image.mode == "RGBA":
		return image
	converted = image.convert("RGBA")
	image.close()
	return converted
