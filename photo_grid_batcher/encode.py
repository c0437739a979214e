"""
Sheet encoding to PNG or JPEG artifacts.
"""

# Standard Library
import io

# PIP3 modules
import PIL.Image

# local repo modules
import photo_grid_batcher as pgb
import photo_grid_batcher.config


Artifact = pgb.config.Artifact

LOSSLESS_QUALITY = pgb.config.LOSSLESS_QUALITY

# format name, mime type, file extension
LOSSLESS_FORMAT = ("PNG", "image/png", "png")
LOSSY_FORMAT = ("JPEG", "image/jpeg", "jpg")


#============================================
def select_format(quality: int) -> tuple[str, str, str]:
	"""
	Pick the output format for a quality value.

	Args:
		quality: Clamped quality, 100 means lossless.

	Returns:
		Tuple of (format, mime_type, extension).
	"""
	if quality >= LOSSLESS_QUALITY:
		return LOSSLESS_FORMAT
	return LOSSY_FORMAT


#============================================
def encode_image(image: PIL.Image.Image, quality: int) -> tuple[bytes, str, str, str]:
	"""
	Encode an image at a quality value.

	Args:
		image: Image to encode.
		quality: Quality 1-100; clamped to the supported range first.

	Returns:
		Tuple of (data, format, mime_type, extension).
	"""
	quality = pgb.config.clamp_quality(quality)
	image_format, mime_type, extension = select_format(quality)
	buffer = io.BytesIO()
	if image_format == "PNG":
		image.save(buffer, format="PNG")
	else:
		rgb = image if image.mode == "RGB" else image.convert("RGB")
		rgb.save(buffer, format="JPEG", quality=quality)
		if rgb is not image:
			rgb.close()
	data = buffer.getvalue()
	if not data:
		raise OSError(f"{image_format} encoder produced no data")
	return (data, image_format, mime_type, extension)


#============================================
def encode_sheet(
	image: PIL.Image.Image,
	quality: int,
	batch_index: int = 0,
	image_count: int = 0,
	first_number: int = 0,
	last_number: int = 0,
) -> Artifact:
	"""
	Encode a finished sheet into an artifact.

	Args:
		image: Finished sheet image.
		quality: Export quality; 100 selects PNG, anything else JPEG.
		batch_index: Zero-based batch index.
		image_count: Images drawn on the sheet.
		first_number: First number on the sheet.
		last_number: Last number on the sheet.

	Returns:
		Artifact with the encoded bytes.
	"""
	data, image_format, mime_type, extension = encode_image(image, quality)
	return Artifact(
		data=data,
		size=len(data),
		format=image_format,
		mime_type=mime_type,
		extension=extension,
		batch_index=batch_index,
		image_count=image_count,
		first_number=first_number,
		last_number=last_number,
	)
