"""
Exceptions raised to callers of the composition engine.
"""


class GridSheetError(Exception):
	"""
	Base class for grid sheet errors.
	"""


class PreconditionError(GridSheetError):
	"""
	Raised before any work starts when the inputs cannot produce a sheet.
	"""


class SettingsError(GridSheetError):
	"""
	Raised when a settings file or value is unusable.
	"""


class EncodeError(GridSheetError):
	"""
	Raised when a finished sheet cannot be encoded.

	The run stops at the failing batch. `completed` counts the sheets that
	were encoded before the failure and `artifacts` holds them when the
	caller collected the run through collect_batches().
	"""

	def __init__(self, batch_index: int, completed: int, message: str, artifacts: list | None = None):
		super().__init__(
			f"Encoding failed for sheet {batch_index + 1} after {completed} completed: {message}"
		)
		self.batch_index = batch_index
		self.completed = completed
		self.artifacts = artifacts if artifacts is not None else []
