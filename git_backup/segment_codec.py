import contextlib
import dataclasses
import io
import tarfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Iterator

from git_backup import constants, logger
from git_backup.compressors import Compressor, CompressMethod
from git_backup.exceptions import CodecError
from git_backup.utils import path_utils
from git_backup.utils.segment_io import SegmentedWriter, ChainedReader

ARTIFACT_EXTENSION = '.tar'


def get_artifact_name(stem: str, compress_method: CompressMethod) -> str:
	return stem + ARTIFACT_EXTENSION + compress_method.extension


def get_segment_name(stem: str, artifact_name: str, index: int) -> str:
	"""
	Segment 0 is the artifact itself, the continuations are "{stem}.z01", "{stem}.z02", ...
	"""
	if index < 0:
		raise ValueError('bad segment index {}'.format(index))
	if index == 0:
		return artifact_name
	return stem + constants.SEGMENT_SUFFIX_FORMAT.format(index)


def detect_compress_method(artifact_name: str) -> Optional[CompressMethod]:
	for method in CompressMethod:
		if method != CompressMethod.plain and artifact_name.endswith(ARTIFACT_EXTENSION + method.extension):
			return method
	if artifact_name.endswith(ARTIFACT_EXTENSION):
		return CompressMethod.plain
	return None


@dataclasses.dataclass(frozen=True)
class CompressResult:
	artifact_path: Path
	stem: str
	segment_count: int
	raw_size: int
	stored_size: int

	def get_segment_name(self, index: int) -> str:
		if not 0 <= index < self.segment_count:
			raise IndexError('segment index {} out of range [0, {})'.format(index, self.segment_count))
		return get_segment_name(self.stem, self.artifact_path.name, index)

	def get_segment_path(self, index: int) -> Path:
		return self.artifact_path.parent / self.get_segment_name(index)

	@property
	def segment_paths(self) -> List[Path]:
		return [self.get_segment_path(i) for i in range(self.segment_count)]


class SegmentCodec:
	"""
	Stores a single file as a tar archive, compressed with the given method,
	and split into segment files of at most max_segment_bytes bytes
	"""

	def __init__(self, work_dir: Path, compress_method: CompressMethod):
		self.logger = logger.get()
		self.work_dir = work_dir
		self.compress_method = compress_method
		self.compress_method.value.ensure_lib()

	def compress(self, source_path: Path, max_segment_bytes: int, *, arc_name: str, stem: Optional[str] = None) -> CompressResult:
		if stem is None:
			stem = path_utils.to_flat_name(arc_name)
		artifact_path = self.work_dir / get_artifact_name(stem, self.compress_method)
		compressor = Compressor.create(self.compress_method)

		self.work_dir.mkdir(parents=True, exist_ok=True)
		writer = SegmentedWriter(max_segment_bytes, lambda i: self.work_dir / get_segment_name(stem, artifact_path.name, i))
		try:
			raw_size = source_path.stat().st_size
			with contextlib.ExitStack() as es:
				buffered = es.enter_context(io.BufferedWriter(writer))
				f_compressed = es.enter_context(compressor.compress_stream(buffered))
				tar = es.enter_context(tarfile.open(fileobj=f_compressed, mode='w|', format=tarfile.PAX_FORMAT))
				tar.add(source_path, arcname=arc_name, recursive=False)
		except Exception as e:
			writer.close()
			for path in writer.segment_paths:
				path.unlink(missing_ok=True)
			raise CodecError('compress {!r} failed: {}'.format(str(source_path), e)) from e

		result = CompressResult(
			artifact_path=artifact_path,
			stem=stem,
			segment_count=len(writer.segment_paths),
			raw_size=raw_size,
			stored_size=writer.get_write_len(),
		)
		self.logger.debug('Compressed {!r} with {}, {} -> {} bytes in {} segment(s)'.format(
			str(source_path), self.compress_method.name, result.raw_size, result.stored_size, result.segment_count,
		))
		return result

	@classmethod
	def __iterate_safe_members(cls, tar: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
		for member in tar:
			path = PurePosixPath(member.name)
			if path.is_absolute() or '..' in path.parts:
				raise CodecError('unsafe archive member {!r}'.format(member.name))
			if not (member.isfile() or member.isdir()):
				raise CodecError('unexpected archive member {!r} with type {!r}'.format(member.name, member.type))
			yield member

	def reconstruct(self, segment_paths: List[Path], output_dir: Path) -> Path:
		"""
		:param segment_paths: all segment files, ordered by segment index
		:param output_dir: where the archive gets extracted to
		:return: the directory that contains the reconstructed file, somewhere down the tree
		"""
		if len(segment_paths) == 0:
			raise CodecError('no segment to reconstruct from')
		method = detect_compress_method(segment_paths[0].name)
		if method is None:
			raise CodecError('cannot infer compress method from segment name {!r}'.format(segment_paths[0].name))

		extract_kwargs = {}
		if hasattr(tarfile, 'data_filter'):
			extract_kwargs['filter'] = 'data'

		compressor = Compressor.create(method)
		try:
			with contextlib.ExitStack() as es:
				reader = es.enter_context(io.BufferedReader(ChainedReader(segment_paths)))
				f_decompressed = es.enter_context(compressor.decompress_stream(reader))
				tar = es.enter_context(tarfile.open(fileobj=f_decompressed, mode='r|'))
				tar.extractall(output_dir, members=self.__iterate_safe_members(tar), **extract_kwargs)
		except CodecError:
			raise
		except Exception as e:
			raise CodecError('reconstruct from {!r} failed: {}'.format(str(segment_paths[0]), e)) from e

		self.logger.debug('Reconstructed {} segment(s) starting from {!r} into {!r}'.format(len(segment_paths), segment_paths[0].name, str(output_dir)))
		return output_dir
