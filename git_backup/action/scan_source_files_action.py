import time
from pathlib import Path
from typing import List, Optional

import pathspec

from git_backup.action import Action
from git_backup.utils import path_utils
from git_backup.utils.file_system import FileSystem


class ScanSourceFilesAction(Action[List[str]]):
	"""
	Lists the files to back up, as posix paths related to the source path
	"""

	def __init__(self, source_path: Optional[Path] = None, *, recursive: Optional[bool] = None, fs: Optional[FileSystem] = None):
		super().__init__(fs=fs)
		self.source_path = source_path or self.config.source_path
		self.recursive = recursive if recursive is not None else self.config.recursive

	def __get_excluded_paths(self) -> List[Path]:
		return [
			self.config.backup_path.absolute(),
			self.config.restore_work_path.absolute(),
			self.config.restore_path.absolute(),
		]

	def run(self) -> List[str]:
		ignore_patterns = pathspec.GitIgnoreSpec.from_lines(self.config.ignore_patterns)
		excluded_paths = self.__get_excluded_paths()
		start_time = time.time()

		if self.recursive:
			paths = self.fs.walk_files(self.source_path)
		else:
			paths = self.fs.list_files(self.source_path)

		result: List[str] = []
		ignored: List[str] = []
		for full_path in sorted(paths):
			if any(path_utils.is_relative_to(full_path.absolute(), excluded) for excluded in excluded_paths):
				continue
			rel_path = full_path.relative_to(self.source_path).as_posix()
			if ignore_patterns.match_file(rel_path):
				ignored.append(rel_path)
				continue
			result.append(rel_path)

		self.logger.debug('Scan file done, cost {:.2f}s, count {}, ignored[:100] (len={}): {}'.format(
			time.time() - start_time, len(result), len(ignored), ignored[:100],
		))
		return result
