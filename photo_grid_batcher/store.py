"""
Keyed image store on the local file system.

Each record's bytes live in their own blob file; a JSON index lists the
records in insertion order. Every write builds a complete new index in a
temporary file and swaps it in with os.replace(), so a reader of the
index sees either all records of a call or none of them.
"""

# Standard Library
import asyncio
import dataclasses
import json
import os
import pathlib
import tempfile
import uuid


INDEX_NAME = "index.json"
BLOB_DIR_NAME = "blobs"


@dataclasses.dataclass(frozen=True)
class StoredImage:
	id: str
	name: str
	size: int
	url: str
	data: bytes = dataclasses.field(repr=False)


class ImageStore:
	"""
	Async keyed store for imported images.
	"""

	def __init__(self, root: pathlib.Path) -> None:
		self.root = pathlib.Path(root)
		self.index_path = self.root / INDEX_NAME
		self.blob_dir = self.root / BLOB_DIR_NAME
		self._lock = asyncio.Lock()

	#============================================
	async def put(self, record: StoredImage) -> None:
		"""
		Store one record, replacing any record with the same id.
		"""
		await self.put_many([record])

	#============================================
	async def put_many(self, records: list[StoredImage]) -> None:
		"""
		Store several records in one atomic call.

		Args:
			records: Records to store; later duplicates of an id win.
		"""
		async with self._lock:
			await asyncio.to_thread(self._put_many, list(records))

	#============================================
	async def get_all(self) -> list[StoredImage]:
		"""
		Read every record in insertion order.
		"""
		async with self._lock:
			return await asyncio.to_thread(self._get_all)

	#============================================
	async def delete(self, record_id: str) -> None:
		"""
		Delete one record by id. Missing ids are ignored.
		"""
		async with self._lock:
			await asyncio.to_thread(self._delete, record_id)

	#============================================
	async def clear(self) -> None:
		"""
		Delete every record.
		"""
		async with self._lock:
			await asyncio.to_thread(self._clear)

	#============================================
	def _read_index(self) -> list[dict]:
		if not self.index_path.exists():
			return []
		text = self.index_path.read_text(encoding="utf-8")
		return json.loads(text)

	#============================================
	def _write_index(self, entries: list[dict]) -> None:
		self.root.mkdir(parents=True, exist_ok=True)
		handle, temp_name = tempfile.mkstemp(prefix=".index-", suffix=".json", dir=self.root)
		try:
			with os.fdopen(handle, "w", encoding="utf-8") as stream:
				json.dump(entries, stream, indent=2)
				stream.flush()
				os.fsync(stream.fileno())
			os.replace(temp_name, self.index_path)
		except BaseException:
			pathlib.Path(temp_name).unlink(missing_ok=True)
			raise

	#============================================
	def _remove_blobs(self, names: list[str]) -> None:
		for name in names:
			(self.blob_dir / name).unlink(missing_ok=True)

	#============================================
	def _put_many(self, records: list[StoredImage]) -> None:
		entries = self._read_index()
		self.blob_dir.mkdir(parents=True, exist_ok=True)
		written: list[str] = []
		new_entries: dict[str, dict] = {}
		try:
			for record in records:
				blob_name = f"{uuid.uuid4().hex}.bin"
				(self.blob_dir / blob_name).write_bytes(record.data)
				written.append(blob_name)
				new_entries[record.id] = {
					"id": record.id,
					"name": record.name,
					"size": record.size,
					"url": record.url,
					"blob": blob_name,
				}
			replaced: list[str] = []
			merged: list[dict] = []
			for entry in entries:
				if entry["id"] in new_entries:
					replaced.append(entry["blob"])
					merged.append(new_entries.pop(entry["id"]))
				else:
					merged.append(entry)
			merged.extend(new_entries.values())
			self._write_index(merged)
		except BaseException:
			self._remove_blobs(written)
			raise
		# blobs of superseded entries and of in-call duplicates are orphans now
		live = {entry["blob"] for entry in merged}
		self._remove_blobs(replaced + [name for name in written if name not in live])

	#============================================
	def _get_all(self) -> list[StoredImage]:
		records: list[StoredImage] = []
		for entry in self._read_index():
			data = (self.blob_dir / entry["blob"]).read_bytes()
			records.append(
				StoredImage(
					id=entry["id"],
					name=entry["name"],
					size=entry["size"],
					url=entry["url"],
					data=data,
				)
			)
		return records

	#============================================
	def _delete(self, record_id: str) -> None:
		entries = self._read_index()
		kept = [entry for entry in entries if entry["id"] != record_id]
		if len(kept) == len(entries):
			return
		self._write_index(kept)
		self._remove_blobs([entry["blob"] for entry in entries if entry["id"] == record_id])

	#============================================
	def _clear(self) -> None:
		entries = self._read_index()
		self._write_index([])
		self._remove_blobs([entry["blob"] for entry in entries])
