import contextlib
import enum
import importlib
from abc import abstractmethod, ABC
from typing import BinaryIO, Union, ContextManager

from typing_extensions import Protocol


class Compressor(ABC):
	"""
	Compression layer of a segment artifact, wrapped around the tar stream
	"""

	@classmethod
	def create(cls, method: Union[str, 'CompressMethod']) -> 'Compressor':
		if not isinstance(method, CompressMethod):
			try:
				method = CompressMethod[method]
			except KeyError:
				raise ValueError('unknown compress method {!r}'.format(method)) from None
		return method.value()

	@classmethod
	@abstractmethod
	def ensure_lib(cls):
		"""
		:raise ImportError: if the required library is not installed
		"""
		...

	@classmethod
	@abstractmethod
	def get_extension(cls) -> str:
		"""
		File extension appended to ".tar", including the leading ".". Empty string for no compression
		"""
		...

	@abstractmethod
	def compress_stream(self, f_out: BinaryIO) -> ContextManager[BinaryIO]:
		...

	@abstractmethod
	def decompress_stream(self, f_in: BinaryIO) -> ContextManager[BinaryIO]:
		...


class PlainCompressor(Compressor):
	@classmethod
	def ensure_lib(cls):
		pass

	@classmethod
	def get_extension(cls) -> str:
		return ''

	@contextlib.contextmanager
	def compress_stream(self, f_out: BinaryIO) -> ContextManager[BinaryIO]:
		yield f_out

	@contextlib.contextmanager
	def decompress_stream(self, f_in: BinaryIO) -> ContextManager[BinaryIO]:
		yield f_in


class _OpenableLibrary(Protocol):
	def open(self, file_obj: BinaryIO, mode: str) -> BinaryIO:
		...


class _LibraryCompressor(Compressor, ABC):
	"""
	For libraries with a gzip.open-like function that accepts a file object
	"""
	LIBRARY: str
	EXTENSION: str

	@classmethod
	def _lib(cls) -> _OpenableLibrary:
		return importlib.import_module(cls.LIBRARY)

	@classmethod
	def ensure_lib(cls):
		cls._lib()

	@classmethod
	def get_extension(cls) -> str:
		return cls.EXTENSION

	@contextlib.contextmanager
	def compress_stream(self, f_out: BinaryIO) -> ContextManager[BinaryIO]:
		with self._lib().open(f_out, 'wb') as f:
			yield f

	@contextlib.contextmanager
	def decompress_stream(self, f_in: BinaryIO) -> ContextManager[BinaryIO]:
		with self._lib().open(f_in, 'rb') as f:
			yield f


class GzipCompressor(_LibraryCompressor):
	LIBRARY = 'gzip'
	EXTENSION = '.gz'


class LzmaCompressor(_LibraryCompressor):
	LIBRARY = 'lzma'
	EXTENSION = '.xz'


class ZstdCompressor(_LibraryCompressor):
	LIBRARY = 'zstandard'
	EXTENSION = '.zst'


class Lz4Compressor(_LibraryCompressor):
	LIBRARY = 'lz4.frame'
	EXTENSION = '.lz4'


class CompressMethod(enum.Enum):
	plain = PlainCompressor
	gzip = GzipCompressor
	lzma = LzmaCompressor
	zstd = ZstdCompressor
	lz4 = Lz4Compressor

	@property
	def extension(self) -> str:
		return self.value.get_extension()

	def __repr__(self) -> str:
		return '{}({!r})'.format(self.__class__.__name__, self.name)
