import contextlib
import dataclasses
import time
from pathlib import Path
from typing import Optional, List

from typing_extensions import override

from git_backup.action import Action
from git_backup.action.detect_changes_action import DetectChangesAction
from git_backup.action.helpers.bin_allocator import BinAllocator, BinRotationContext
from git_backup.action.helpers.segment_allocator import SegmentAllocator
from git_backup.action.scan_source_files_action import ScanSourceFilesAction
from git_backup.db import db_constants
from git_backup.db.access import DbAccess
from git_backup.segment_codec import SegmentCodec
from git_backup.transport import BinTransport
from git_backup.transport.git_transport import GitTransport
from git_backup.types.change_set import ChangeSet
from git_backup.types.file_failure import FileFailures
from git_backup.types.storage_bin import StorageBin
from git_backup.types.units import ByteCount
from git_backup.utils import log_utils
from git_backup.utils.file_system import FileSystem
from git_backup.utils.temp_file_store import TempFileStore

# the bin that always holds the latest copy of the manifest
MANIFEST_BIN_ID = 1


@dataclasses.dataclass(frozen=True)
class BackupResult:
	change_set: ChangeSet
	added_files: List[str]
	updated_files: List[str]
	stored_size: int
	published_bins: List[StorageBin]
	failures: FileFailures

	@property
	def has_changes(self) -> bool:
		return len(self.added_files) + len(self.updated_files) > 0


class CreateBackupAction(Action[BackupResult]):
	def __init__(self, source_path: Optional[Path] = None, *, fs: Optional[FileSystem] = None, transport: Optional[BinTransport] = None):
		super().__init__(fs=fs)
		self.source_path = source_path or self.config.source_path
		self.transport = transport

	def __backup_file(self, file_name: str, is_new: bool, codec: SegmentCodec, transport: BinTransport, bin_allocator: BinAllocator) -> int:
		# captured before compressing, so changes made during the backup are picked up by the next run
		timestamp_us = time.time_ns() // 1000
		source_path = self.source_path / file_name

		with DbAccess.open_session() as session:
			segment_allocator = SegmentAllocator(session, codec, transport, bin_allocator, self.fs, self.config.compression.max_segment_bytes)
			if is_new:
				result = segment_allocator.add_new_file(file_name, source_path, timestamp_us)
			else:
				entry = session.get_manifest_entry(file_name)
				result = segment_allocator.update_file(entry, source_path, timestamp_us)
		return result.stored_size

	def __store_manifest_copy(self, temp_store: TempFileStore, transport: BinTransport, context: BinRotationContext) -> Optional[StorageBin]:
		with DbAccess.open_session() as session:
			repository = session.get_bin_by_id_opt(MANIFEST_BIN_ID)
			if repository is None:
				return None
			bin_name = repository.repository_name
		storage_bin = context.resolve(bin_name)

		manifest_copy = temp_store.get_path(db_constants.DB_FILE_NAME)
		self.fs.remove_file(manifest_copy, missing_ok=True)
		with DbAccess.open_session() as session:
			session.vacuum(manifest_copy.as_posix())

		transport.replace(manifest_copy, storage_bin)
		context.touch(storage_bin)
		self.logger.info('Stored manifest copy into bin {}'.format(storage_bin.name))
		return storage_bin

	def __touch_unpublished_bins(self, transport: BinTransport, bin_allocator: BinAllocator) -> int:
		"""
		Bins left unpublished by an interrupted run
		"""
		cnt = 0
		context = bin_allocator.context
		for storage_bin in bin_allocator.list_bins():
			if storage_bin.name not in context.touched_bins and transport.has_pending_changes(storage_bin):
				self.logger.info('Bin {} has unpublished changes from a previous run'.format(storage_bin.name))
				context.touch(storage_bin)
				cnt += 1
		return cnt

	@override
	def run(self) -> BackupResult:
		if self.transport is None:
			self.config.ensure_remote_location()

		file_names = ScanSourceFilesAction(self.source_path, fs=self.fs).run()
		change_set = DetectChangesAction(file_names, self.source_path, fs=self.fs).run()
		if change_set.is_empty():
			self.logger.info('Nothing changed')

		added_files: List[str] = []
		updated_files: List[str] = []
		failures = FileFailures()
		stored_size = 0
		published_bins: List[StorageBin] = []

		with contextlib.ExitStack() as es:
			temp_store = es.enter_context(TempFileStore(self.config.temp_path, self.fs))
			transport = self.transport
			if transport is None:
				git_logger = es.enter_context(log_utils.open_file_logger('git'))
				transport = GitTransport(self.config, self.fs, git_logger)

			context = BinRotationContext.from_config(self.config, self.fs, transport.init_bin)
			bin_allocator = BinAllocator(context)
			codec = SegmentCodec(temp_store.root, self.config.compression.compress_method)

			for is_new, names, done in [(True, change_set.new_files, added_files), (False, change_set.updated_files, updated_files)]:
				for file_name in names:
					with failures.handling_exception(file_name):
						stored_size += self.__backup_file(file_name, is_new, codec, transport, bin_allocator)
						done.append(file_name)

			unpublished_cnt = self.__touch_unpublished_bins(transport, bin_allocator)
			manifest_bin: Optional[StorageBin] = None
			if len(added_files) + len(updated_files) > 0 or unpublished_cnt > 0:
				manifest_bin = self.__store_manifest_copy(temp_store, transport, context)

			# the manifest goes last, so a published manifest never refers to unpublished segments
			to_publish = [b for b in context.get_touched_bins() if manifest_bin is None or b.name != manifest_bin.name]
			if manifest_bin is not None:
				to_publish.append(manifest_bin)
			for storage_bin in to_publish:
				transport.publish(storage_bin)
				published_bins.append(storage_bin)

		self.logger.info('Backup done, added {}, updated {}, failed {}, stored {}, published {} bin(s)'.format(
			len(added_files), len(updated_files), len(failures), ByteCount(stored_size).auto_str(), len(published_bins),
		))
		return BackupResult(change_set, added_files, updated_files, stored_size, published_bins, failures)
