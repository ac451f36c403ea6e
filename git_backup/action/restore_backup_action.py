import contextlib
import dataclasses
from typing import Optional, List

from typing_extensions import override

from git_backup import constants
from git_backup.action import Action
from git_backup.action.helpers.file_reconstructor import FileReconstructor
from git_backup.db import db_constants
from git_backup.db.access import DbAccess
from git_backup.exceptions import CodecError, SegmentFileNotFound
from git_backup.segment_codec import SegmentCodec
from git_backup.transport import BinTransport
from git_backup.transport.git_transport import GitTransport
from git_backup.types.file_failure import FileFailures
from git_backup.types.storage_bin import StorageBin
from git_backup.utils import log_utils
from git_backup.utils.file_system import FileSystem


@dataclasses.dataclass(frozen=True)
class RestoreResult:
	fetched_bins: List[StorageBin]
	restored_files: List[str]
	failures: FileFailures


class RestoreBackupAction(Action[RestoreResult]):
	"""
	Fetches all bins, then restores every file recorded in the manifest found inside them
	"""

	def __init__(self, *, fs: Optional[FileSystem] = None, transport: Optional[BinTransport] = None):
		super().__init__(fs=fs)
		self.transport = transport

	@override
	def run(self) -> RestoreResult:
		if self.transport is None:
			self.config.ensure_remote_location()

		restored_files: List[str] = []
		failures = FileFailures((CodecError, SegmentFileNotFound))
		with contextlib.ExitStack() as es:
			transport = self.transport
			if transport is None:
				git_logger = es.enter_context(log_utils.open_file_logger('git'))
				transport = GitTransport(self.config, self.fs, git_logger)
			fetched_bins = transport.fetch_all(db_constants.DB_FILE_NAME)

		DbAccess.init(self.config.restored_manifest_path, create=False)
		try:
			with DbAccess.open_session() as session:
				entries = session.get_entries_for_restore()
		finally:
			DbAccess.shutdown()
		self.logger.info('Restoring {} file(s) from {} bin(s)'.format(len(entries), len(fetched_bins)))

		work_path = self.config.restore_work_path
		codec = SegmentCodec(work_path / constants.SCRATCH_DIR_NAME, self.config.compression.compress_method)
		reconstructor = FileReconstructor(
			codec, self.fs,
			work_path=work_path,
			scratch_path=work_path / constants.SCRATCH_DIR_NAME,
			restore_path=self.config.restore_path,
		)
		for entry, locations in entries.items():
			with failures.handling_exception(entry.file_name):
				reconstructor.reconstruct(entry, locations)
				restored_files.append(entry.file_name)

		if len(failures) > 0:
			self.logger.warning('Restore done with {} failure(s)'.format(len(failures)))
		else:
			self.logger.info('Restore done, {} file(s) restored to {!r}'.format(len(restored_files), str(self.config.restore_path)))
		return RestoreResult(fetched_bins, restored_files, failures)
