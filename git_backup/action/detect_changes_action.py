from pathlib import Path
from typing import List, Optional

from git_backup.action import Action
from git_backup.db.access import DbAccess
from git_backup.types.change_set import ChangeSet
from git_backup.utils.file_system import FileSystem


class DetectChangesAction(Action[ChangeSet]):
	"""
	A file is new if the manifest does not know it,
	and updated if its modification time is later than the time it was last backed up
	"""

	def __init__(self, file_names: List[str], source_path: Optional[Path] = None, *, fs: Optional[FileSystem] = None):
		super().__init__(fs=fs)
		self.file_names = file_names
		self.source_path = source_path or self.config.source_path

	def run(self) -> ChangeSet:
		result = ChangeSet()
		with DbAccess.open_session() as session:
			entries = session.get_manifest_entries_by_names(self.file_names)
			for file_name in self.file_names:
				entry = entries[file_name]
				if entry is None:
					result.new_files.append(file_name)
					continue
				try:
					mtime_us = self.fs.get_mtime_us(self.source_path / file_name)
				except FileNotFoundError:
					self.logger.debug('File {!r} vanished after scanning, skipped'.format(file_name))
					continue
				if mtime_us > entry.last_modified:
					result.updated_files.append(file_name)

		self.logger.info('Found {} new file(s) and {} updated file(s) in {} scanned file(s)'.format(
			len(result.new_files), len(result.updated_files), len(self.file_names),
		))
		return result
