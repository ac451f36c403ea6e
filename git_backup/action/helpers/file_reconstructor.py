from pathlib import Path, PurePosixPath
from typing import List

from git_backup import logger
from git_backup.exceptions import CodecError, SegmentFileNotFound
from git_backup.segment_codec import SegmentCodec
from git_backup.types.manifest_info import ManifestEntryInfo, SegmentLocation
from git_backup.utils.file_system import FileSystem


class FileReconstructor:
	"""
	Collects the segments of a file from the fetched bins, reconstructs the file in the scratch directory,
	then copies it to the restore location. The scratch directory is erased after every file
	"""

	def __init__(self, codec: SegmentCodec, fs: FileSystem, *, work_path: Path, scratch_path: Path, restore_path: Path):
		self.logger = logger.get()
		self.codec = codec
		self.fs = fs
		self.work_path = work_path
		self.scratch_path = scratch_path
		self.restore_path = restore_path

	def __find_reconstructed(self, file_name: str) -> Path:
		posix_name = PurePosixPath(file_name)
		for candidate in self.fs.find_files(self.scratch_path, posix_name.name):
			rel_path = PurePosixPath(candidate.relative_to(self.scratch_path).as_posix())
			if rel_path.parts[-len(posix_name.parts):] == posix_name.parts:
				return candidate
		raise CodecError('reconstructed file {!r} not found in {!r}'.format(file_name, str(self.scratch_path)))

	def reconstruct(self, entry: ManifestEntryInfo, locations: List[SegmentLocation]) -> Path:
		"""
		:param locations: all segments of the entry, ordered by segment index
		:return: the path of the restored file
		"""
		try:
			self.fs.make_dirs(self.scratch_path)
			segment_paths = []
			for location in locations:
				src_path = self.work_path / location.repository.repository_name / location.segment_name
				if not self.fs.is_file(src_path):
					raise SegmentFileNotFound(src_path)
				dst_path = self.scratch_path / location.segment_name
				self.fs.copy_file(src_path, dst_path)
				segment_paths.append(dst_path)

			self.codec.reconstruct(segment_paths, self.scratch_path)

			reconstructed = self.__find_reconstructed(entry.file_name)
			target_path = self.restore_path / entry.file_name
			self.fs.make_dirs(target_path.parent)
			self.fs.copy_file(reconstructed, target_path, overwrite=True)
		finally:
			self.fs.remove_tree(self.scratch_path, missing_ok=True)

		self.logger.info('Restored {!r} from {} segment(s)'.format(entry.file_name, len(locations)))
		return target_path
