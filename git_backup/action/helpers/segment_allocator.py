import dataclasses
from pathlib import Path
from typing import List

from git_backup import logger
from git_backup.action.helpers.bin_allocator import BinAllocator
from git_backup.db import schema
from git_backup.db.session import DbSession
from git_backup.segment_codec import SegmentCodec, CompressResult
from git_backup.transport import BinTransport
from git_backup.types.storage_bin import StorageBin
from git_backup.utils.file_system import FileSystem


@dataclasses.dataclass(frozen=True)
class AllocateResult:
	manifest_entry: schema.ManifestEntry
	segment_count: int
	stored_size: int


class SegmentAllocator:
	"""
	Compresses a source file, spreads the produced segments over storage bins,
	and records them into the manifest. Everything happens within the given db session
	"""

	def __init__(self, session: DbSession, codec: SegmentCodec, transport: BinTransport, bin_allocator: BinAllocator, fs: FileSystem, max_segment_bytes: int):
		self.logger = logger.get()
		self.session = session
		self.codec = codec
		self.transport = transport
		self.bin_allocator = bin_allocator
		self.fs = fs
		self.max_segment_bytes = max_segment_bytes

	def __compress(self, file_name: str, source_path: Path) -> CompressResult:
		return self.codec.compress(source_path, self.max_segment_bytes, arc_name=file_name)

	def __discard_staged(self, result: CompressResult):
		for path in result.segment_paths:
			self.fs.remove_file(path, missing_ok=True)

	def __place_new_segment(self, manifest_entry_id: int, result: CompressResult, index: int):
		segment_path = result.get_segment_path(index)
		storage_bin = self.bin_allocator.allocate(self.fs.get_size(segment_path))
		self.transport.place(segment_path, storage_bin)
		repository = self.session.get_or_create_bin(storage_bin.name)
		self.session.create_and_add_segment(
			manifest_entry_id=manifest_entry_id,
			segment_index=index,
			segment_name=result.get_segment_name(index),
			repository_entry_id=repository.id,
		)
		self.logger.debug('Segment #{} {!r} placed into new location {}'.format(index, result.get_segment_name(index), storage_bin.name))

	def add_new_file(self, file_name: str, source_path: Path, timestamp_us: int) -> AllocateResult:
		result = self.__compress(file_name, source_path)
		try:
			entry = self.session.create_and_add_manifest_entry(
				file_name=file_name,
				created=timestamp_us,
				last_modified=timestamp_us,
			)
			for i in range(result.segment_count):
				self.__place_new_segment(entry.id, result, i)
			self.session.flush()
		finally:
			self.__discard_staged(result)

		self.logger.info('Added {!r}, {} segment(s)'.format(file_name, result.segment_count))
		return AllocateResult(entry, result.segment_count, result.stored_size)

	def __get_recorded_bin(self, segment: schema.CompressedFileEntry) -> StorageBin:
		repository = self.session.get_bin_by_id(segment.repository_entry_id)
		return self.bin_allocator.context.resolve(repository.repository_name)

	def update_file(self, entry: schema.ManifestEntry, source_path: Path, timestamp_us: int) -> AllocateResult:
		result = self.__compress(entry.file_name, source_path)
		try:
			existing: List[schema.CompressedFileEntry] = self.session.get_segments(entry.id)
			for i in range(result.segment_count):
				if i < len(existing):
					segment = existing[i]
					storage_bin = self.__get_recorded_bin(segment)
					self.transport.replace(result.get_segment_path(i), storage_bin)
					self.bin_allocator.context.touch(storage_bin)

					new_name = result.get_segment_name(i)
					if segment.segment_name != new_name:
						self.fs.remove_file(storage_bin.path / segment.segment_name, missing_ok=True)
						segment.segment_name = new_name
					self.logger.debug('Segment #{} {!r} replaced in {}'.format(i, new_name, storage_bin.name))
				else:
					self.__place_new_segment(entry.id, result, i)

			surplus = existing[result.segment_count:]
			for segment in surplus:
				storage_bin = self.__get_recorded_bin(segment)
				self.fs.remove_file(storage_bin.path / segment.segment_name, missing_ok=True)
				self.bin_allocator.context.touch(storage_bin)
				self.logger.debug('Surplus segment #{} {!r} removed from {}'.format(segment.segment_index, segment.segment_name, storage_bin.name))
			self.session.delete_segments([segment.id for segment in surplus])

			entry.last_modified = timestamp_us
			self.session.flush()
		finally:
			self.__discard_staged(result)

		self.logger.info('Updated {!r}, {} -> {} segment(s)'.format(entry.file_name, len(existing), result.segment_count))
		return AllocateResult(entry, result.segment_count, result.stored_size)
