import errno
import os
import shutil
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

_HAS_COPY_FILE_RANGE = callable(getattr(os, 'copy_file_range', None))
_COPY_FILE_RANGE_UNSUPPORTED_ERRNO = (
	errno.ENOSYS, errno.ENOTTY, errno.EOPNOTSUPP, errno.ENOTSUP,
	errno.EINVAL, errno.EBADF, errno.EXDEV, errno.ETXTBSY,
	errno.EPERM, errno.EACCES,
)


class FileSystem(ABC):
	"""
	The file operations used by bin rotation, change detection and restore reconstruction
	"""

	@abstractmethod
	def exists(self, path: Path) -> bool:
		...

	@abstractmethod
	def is_file(self, path: Path) -> bool:
		...

	@abstractmethod
	def is_dir(self, path: Path) -> bool:
		...

	@abstractmethod
	def make_dirs(self, path: Path):
		"""
		mkdir -p
		"""
		...

	@abstractmethod
	def list_dirs(self, path: Path) -> List[Path]:
		"""
		Direct child directories, not sorted
		"""
		...

	@abstractmethod
	def list_files(self, path: Path) -> List[Path]:
		"""
		Direct child regular files, not sorted
		"""
		...

	@abstractmethod
	def walk_files(self, path: Path) -> List[Path]:
		"""
		All regular files under the given directory, recursively
		"""
		...

	@abstractmethod
	def get_size(self, path: Path) -> int:
		...

	@abstractmethod
	def get_mtime_us(self, path: Path) -> int:
		...

	@abstractmethod
	def copy_file(self, src: Path, dst: Path, *, overwrite: bool = True):
		...

	@abstractmethod
	def remove_file(self, path: Path, *, missing_ok: bool = False):
		...

	@abstractmethod
	def remove_tree(self, path: Path, *, missing_ok: bool = False):
		...

	def get_dir_footprint(self, path: Path) -> int:
		"""
		Sum of the sizes of the directly contained files. Sub-directories are not counted
		"""
		if not self.is_dir(path):
			return 0
		return sum(self.get_size(f) for f in self.list_files(path))

	def find_files(self, root: Path, name: str) -> List[Path]:
		return sorted(f for f in self.walk_files(root) if f.name == name)


class LocalFileSystem(FileSystem):
	def exists(self, path: Path) -> bool:
		return path.exists()

	def is_file(self, path: Path) -> bool:
		return path.is_file()

	def is_dir(self, path: Path) -> bool:
		return path.is_dir()

	def make_dirs(self, path: Path):
		path.mkdir(parents=True, exist_ok=True)

	def list_dirs(self, path: Path) -> List[Path]:
		with os.scandir(path) as it:
			return [Path(entry.path) for entry in it if entry.is_dir(follow_symlinks=False)]

	def list_files(self, path: Path) -> List[Path]:
		with os.scandir(path) as it:
			return [Path(entry.path) for entry in it if entry.is_file(follow_symlinks=False)]

	def walk_files(self, path: Path) -> List[Path]:
		result = []
		for root, dirs, files in os.walk(path):
			root_path = Path(root)
			for f in files:
				if (root_path / f).is_file():
					result.append(root_path / f)
		return result

	def get_size(self, path: Path) -> int:
		return path.stat().st_size

	def get_mtime_us(self, path: Path) -> int:
		return path.stat().st_mtime_ns // 1000

	@classmethod
	def __copy_file_range(cls, src: Path, dst: Path) -> bool:
		"""
		:return: False if the kernel refuses to copy these files without reading them, and nothing has been written
		"""
		# https://man7.org/linux/man-pages/man2/copy_file_range.2.html
		copied = 0
		try:
			with open(src, 'rb') as f_src, open(dst, 'wb') as f_dst:
				while n := os.copy_file_range(f_src.fileno(), f_dst.fileno(), 2 ** 30):
					copied += n
		except OSError as e:
			if copied == 0 and e.errno in _COPY_FILE_RANGE_UNSUPPORTED_ERRNO:
				return False
			raise
		return True

	def copy_file(self, src: Path, dst: Path, *, overwrite: bool = True):
		if not overwrite and dst.exists():
			raise FileExistsError(str(dst))
		if _HAS_COPY_FILE_RANGE and self.__copy_file_range(src, dst):
			return
		shutil.copyfile(src, dst, follow_symlinks=False)

	def remove_file(self, path: Path, *, missing_ok: bool = False):
		path.unlink(missing_ok=missing_ok)

	def remove_tree(self, path: Path, *, missing_ok: bool = False):
		# symlinks are removed, not followed
		try:
			st = path.lstat()
		except FileNotFoundError:
			if missing_ok:
				return
			raise
		if stat.S_ISDIR(st.st_mode):
			shutil.rmtree(path)
		else:
			path.unlink()
