"""
Font resolution for number text and placeholder glyphs.
"""

# Standard Library
import functools

# PIP3 modules
import PIL.ImageFont


BOLD_WEIGHT = 700

# generic CSS families mapped to common font file stems
GENERIC_FONT_FILES = {
	"sans-serif": {
		False: ("DejaVuSans", "LiberationSans-Regular", "Arial", "arial", "Helvetica"),
		True: ("DejaVuSans-Bold", "LiberationSans-Bold", "Arial Bold", "arialbd", "Helvetica-Bold"),
	},
	"serif": {
		False: ("DejaVuSerif", "LiberationSerif-Regular", "Times New Roman", "times"),
		True: ("DejaVuSerif-Bold", "LiberationSerif-Bold", "Times New Roman Bold", "timesbd"),
	},
	"monospace": {
		False: ("DejaVuSansMono", "LiberationMono-Regular", "Courier New", "cour"),
		True: ("DejaVuSansMono-Bold", "LiberationMono-Bold", "Courier New Bold", "courbd"),
	},
}


#============================================
def is_bold_weight(weight: str | int | None) -> bool:
	"""
	Decide whether a CSS-style font weight renders bold.

	Args:
		weight: Weight such as "bold", "normal", "700" or 400.

	Returns:
		True for bold weights.
	"""
	if weight is None:
		return True
	text = str(weight).strip().lower()
	if text in ("bold", "bolder"):
		return True
	if text.isdigit():
		return int(text) >= BOLD_WEIGHT
	return False


#============================================
def split_font_families(family: str) -> list[str]:
	"""
	Split a CSS font-family list into names.

	Args:
		family: Font family list, for example "Arial, sans-serif".

	Returns:
		Family names without quotes.
	"""
	names: list[str] = []
	for part in (family or "").split(","):
		name = part.strip().strip("\"'").strip()
		if name:
			names.append(name)
	if not names:
		names.append("sans-serif")
	return names


#============================================
def font_candidates(family: str, bold: bool) -> list[str]:
	"""
	List font file names to try for a family list.

	Args:
		family: CSS font-family list.
		bold: Whether a bold face is wanted.

	Returns:
		Candidate names for PIL.ImageFont.truetype().
	"""
	candidates: list[str] = []
	for name in split_font_families(family):
		generic = GENERIC_FONT_FILES.get(name.lower())
		if generic is not None:
			candidates.extend(generic[bold])
			continue
		if bold:
			candidates.append(f"{name}-Bold")
			candidates.append(f"{name} Bold")
		candidates.append(name)
	candidates.extend(GENERIC_FONT_FILES["sans-serif"][bold])
	return candidates


#============================================
@functools.lru_cache(maxsize=64)
def load_font(family: str, bold: bool, size: int) -> PIL.ImageFont.FreeTypeFont:
	"""
	Load a scalable font, falling back to Pillow's bundled default.

	Args:
		family: CSS font-family list.
		bold: Whether a bold face is wanted.
		size: Pixel size.

	Returns:
		Font object.
	"""
	size = max(1, int(round(size)))
	for candidate in font_candidates(family, bold):
		try:
			return PIL.ImageFont.truetype(candidate, size)
		except OSError:
			continue
	return PIL.ImageFont.load_default(size=size)
