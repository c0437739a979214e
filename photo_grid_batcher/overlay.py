"""
Full-sheet overlay compositing.
"""

# PIP3 modules
import PIL.Image
import PIL.ImageChops


# None means plain source-over compositing
BLEND_OPERATIONS = {
	"source-over": None,
	"normal": None,
	"multiply": PIL.ImageChops.multiply,
	"screen": PIL.ImageChops.screen,
	"overlay": PIL.ImageChops.overlay,
	"soft-light": PIL.ImageChops.soft_light,
	"difference": PIL.ImageChops.difference,
	"darken": PIL.ImageChops.darker,
	"lighten": PIL.ImageChops.lighter,
}


#============================================
def scale_alpha(alpha: PIL.Image.Image, opacity: float) -> PIL.Image.Image:
	"""
	Multiply an alpha channel by a global opacity.

	Args:
		alpha: L-mode alpha channel.
		opacity: Opacity in 0.0-1.0.

	Returns:
		Scaled alpha channel.
	"""
	if opacity >= 1.0:
		return alpha
	lookup = [int(round(value * opacity)) for value in range(256)]
	return alpha.point(lookup)


#============================================
def apply_overlay(
	surface: PIL.Image.Image,
	overlay: PIL.Image.Image | None,
	blend_mode: str,
	opacity: float,
) -> None:
	"""
	Stretch an overlay over the whole sheet and blend it in place.

	Args:
		surface: RGB sheet image, modified in place.
		overlay: Overlay image, or None to skip.
		blend_mode: Blend mode name such as "multiply"; unknown names
			fall back to source-over.
		opacity: Global opacity in 0.0-1.0.
	"""
	if overlay is None:
		return
	opacity = max(0.0, min(1.0, float(opacity)))
	if opacity <= 0.0:
		return

	source = overlay if overlay.mode == "RGBA" else overlay.convert("RGBA")
	stretched = source.resize(surface.size, PIL.Image.Resampling.LANCZOS)
	if source is not overlay:
		source.close()
	top = stretched.convert("RGB")
	alpha = scale_alpha(stretched.getchannel("A"), opacity)
	stretched.close()

	operation = BLEND_OPERATIONS.get((blend_mode or "").strip().lower())
	if operation is None:
		blended = top
	else:
		base = surface if surface.mode == "RGB" else surface.convert("RGB")
		blended = operation(base, top)
		if base is not surface:
			base.close()
		top.close()
	surface.paste(blended, (0, 0), alpha)
	blended.close()
	alpha.close()
