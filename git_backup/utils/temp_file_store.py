from pathlib import Path

from typing_extensions import Self

from git_backup.utils.file_system import FileSystem, LocalFileSystem


class TempFileStore:
	"""
	A directory that only lives within the with statement. Everything inside is erased on close
	"""

	def __init__(self, store_path: Path, fs: FileSystem = None):
		self.__store_path = store_path
		self.__fs = fs or LocalFileSystem()
		self.__has_closed = False

	def __enter__(self) -> Self:
		self.__fs.remove_tree(self.__store_path, missing_ok=True)
		self.__fs.make_dirs(self.__store_path)
		return self

	def __exit__(self, exc_type, exc_val, exc_tb):
		self.close()

	def close(self):
		if self.__has_closed:
			return
		self.__fs.remove_tree(self.__store_path, missing_ok=True)
		self.__has_closed = True

	@property
	def root(self) -> Path:
		if self.__has_closed:
			raise RuntimeError('TempFileStore has already been closed')
		return self.__store_path

	def get_path(self, file_name: str) -> Path:
		if self.__has_closed:
			raise RuntimeError('TempFileStore has already been closed')

		self.__fs.make_dirs(self.__store_path)
		return self.__store_path / file_name
