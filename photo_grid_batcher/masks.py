"""
Mask index grammar.

A mask expression lists the displayed numbers of cells to redact, for
example "1, 3-5，8". Tokens are separated by ASCII or full-width commas,
the ideographic enumeration comma or whitespace. A token is a single
integer or a range A-B, where the range separator may also be an em dash,
en dash or tilde. Ranges expand inclusively in either direction. Tokens
that do not parse are dropped.
"""

# Standard Library
import re


TOKEN_SEPARATORS = re.compile(r"[,，、\s]+")
RANGE_SEPARATORS = re.compile(r"[~—–]")
LEADING_INTEGER = re.compile(r"^\s*(\+?[0-9]+)")


#============================================
def parse_leading_int(value: str) -> int | None:
	"""
	Parse the leading integer of a string, ignoring trailing characters.

	Args:
		value: Input text.

	Returns:
		Integer value, or None when the text has no leading integer.
	"""
	match = LEADING_INTEGER.match(value)
	if match is None:
		return None
	return int(match.group(1))


#============================================
def parse_mask_indices(text: str | None) -> frozenset[int]:
	"""
	Parse a mask expression into a set of 1-based numbers.

	Args:
		text: Mask expression.

	Returns:
		Frozen set of numbers. Never raises for malformed input.
	"""
	if not text:
		return frozenset()
	targets: set[int] = set()
	for part in TOKEN_SEPARATORS.split(str(text)):
		part = part.strip()
		if not part:
			continue
		standard = RANGE_SEPARATORS.sub("-", part)
		if "-" in standard:
			range_parts = standard.split("-")
			if len(range_parts) != 2:
				continue
			start = parse_leading_int(range_parts[0])
			end = parse_leading_int(range_parts[1])
			if start is None or end is None:
				continue
			targets.update(range(min(start, end), max(start, end) + 1))
			continue
		number = parse_leading_int(standard)
		if number is not None:
			targets.add(number)
	return frozenset(targets)


#============================================
def format_mask_indices(indices: set[int] | frozenset[int]) -> str:
	"""
	Format a set of numbers as a canonical mask expression.

	Consecutive runs collapse to "A-B" ranges; runs are joined by ", ".

	Args:
		indices: Numbers to format.

	Returns:
		Mask expression that parses back to the same set.
	"""
	ordered = sorted(indices)
	tokens: list[str] = []
	index = 0
	while index < len(ordered):
		start = ordered[index]
		end = start
		while index + 1 < len(ordered) and ordered[index + 1] == end + 1:
			index += 1
			end = ordered[index]
		if start == end:
			tokens.append(str(start))
		else:
			tokens.append(f"{start}-{end}")
		index += 1
	return ", ".join(tokens)
