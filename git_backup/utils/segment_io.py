import io
from pathlib import Path
from typing import Callable, List, Optional, BinaryIO, Union


class SegmentedWriter(io.RawIOBase):
	"""
	A write-only stream that spreads its content over several files, each at most max_segment_size bytes.
	The next segment file is opened lazily, so there's never a trailing empty segment
	"""

	def __init__(self, max_segment_size: int, segment_path_getter: Callable[[int], Path]):
		super().__init__()
		if max_segment_size <= 0:
			raise ValueError('max_segment_size should be positive, but found {}'.format(max_segment_size))
		self.max_segment_size = max_segment_size
		self.segment_path_getter = segment_path_getter
		self.segment_paths: List[Path] = []
		self.write_len = 0
		self.__current: Optional[BinaryIO] = None
		self.__current_len = 0

	def writable(self) -> bool:
		return True

	def __next_segment(self):
		if self.__current is not None:
			self.__current.close()
		path = self.segment_path_getter(len(self.segment_paths))
		self.segment_paths.append(path)
		self.__current = open(path, 'wb')
		self.__current_len = 0

	def write(self, buf: Union[bytes, bytearray, memoryview]) -> int:
		view = memoryview(buf).cast('B')
		total = len(view)
		while len(view) > 0:
			if self.__current is None or self.__current_len >= self.max_segment_size:
				self.__next_segment()
			n = min(len(view), self.max_segment_size - self.__current_len)
			self.__current.write(view[:n])
			self.__current_len += n
			view = view[n:]
		self.write_len += total
		return total

	def close(self):
		if not self.closed:
			if self.__current is None:
				# nothing written, still produce the primary segment
				self.__next_segment()
			self.__current.close()
			self.__current = None
		super().close()

	def get_write_len(self) -> int:
		return self.write_len


class ChainedReader(io.RawIOBase):
	"""
	A read-only stream that reads the given files one after another
	"""

	def __init__(self, paths: List[Path]):
		super().__init__()
		self.paths = list(paths)
		self.__index = 0
		self.__current: Optional[BinaryIO] = None

	def readable(self) -> bool:
		return True

	def readinto(self, b: Union[bytearray, memoryview]) -> int:
		while self.__index < len(self.paths):
			if self.__current is None:
				self.__current = open(self.paths[self.__index], 'rb')
			n = self.__current.readinto(b)
			if n:
				return n
			self.__current.close()
			self.__current = None
			self.__index += 1
		return 0

	def close(self):
		if self.__current is not None:
			self.__current.close()
			self.__current = None
		super().close()
