import itertools
import shutil
import tempfile
import unittest
from pathlib import Path
from typing import Dict, Set, List, Optional

from typing_extensions import override

from git_backup.compressors import CompressMethod
from git_backup.db.access import DbAccess
from git_backup.exceptions import CodecError, TransportError
from git_backup.segment_codec import SegmentCodec, CompressResult, get_artifact_name, get_segment_name
from git_backup.transport import BinTransport
from git_backup.types.storage_bin import StorageBin
from git_backup.utils import path_utils
from git_backup.utils.file_system import FileSystem


class MemoryFileSystem(FileSystem):
	"""
	Keeps everything in dicts. Paths are used as-is, so use absolute paths in tests
	"""

	def __init__(self):
		self.files: Dict[Path, bytes] = {}
		self.mtimes: Dict[Path, int] = {}
		self.dirs: Set[Path] = set()
		self.__clock = itertools.count(1_000_000)

	def write_file(self, path: Path, content: bytes, mtime_us: Optional[int] = None):
		self.make_dirs(path.parent)
		self.files[path] = content
		self.mtimes[path] = mtime_us if mtime_us is not None else next(self.__clock)

	def read_file(self, path: Path) -> bytes:
		if path not in self.files:
			raise FileNotFoundError(str(path))
		return self.files[path]

	def exists(self, path: Path) -> bool:
		return path in self.files or path in self.dirs

	def is_file(self, path: Path) -> bool:
		return path in self.files

	def is_dir(self, path: Path) -> bool:
		return path in self.dirs

	def make_dirs(self, path: Path):
		while path not in self.dirs:
			self.dirs.add(path)
			if path.parent == path:
				break
			path = path.parent

	def list_dirs(self, path: Path) -> List[Path]:
		return [d for d in self.dirs if d.parent == path and d != path]

	def list_files(self, path: Path) -> List[Path]:
		return [f for f in self.files if f.parent == path]

	def walk_files(self, path: Path) -> List[Path]:
		return [f for f in self.files if path_utils.is_relative_to(f, path)]

	def get_size(self, path: Path) -> int:
		return len(self.read_file(path))

	def get_mtime_us(self, path: Path) -> int:
		if path not in self.mtimes:
			raise FileNotFoundError(str(path))
		return self.mtimes[path]

	def copy_file(self, src: Path, dst: Path, *, overwrite: bool = True):
		if not overwrite and dst in self.files:
			raise FileExistsError(str(dst))
		content = self.read_file(src)
		self.make_dirs(dst.parent)
		self.files[dst] = content
		self.mtimes[dst] = self.mtimes[src]

	def remove_file(self, path: Path, *, missing_ok: bool = False):
		if path not in self.files:
			if missing_ok:
				return
			raise FileNotFoundError(str(path))
		self.files.pop(path)
		self.mtimes.pop(path)

	def remove_tree(self, path: Path, *, missing_ok: bool = False):
		if not self.exists(path):
			if missing_ok:
				return
			raise FileNotFoundError(str(path))
		for f in [f for f in self.files if path_utils.is_relative_to(f, path)]:
			self.remove_file(f)
		self.dirs = {d for d in self.dirs if not path_utils.is_relative_to(d, path)}


class FakeCodec(SegmentCodec):
	"""
	No real compression, the archive is "{arc_name}\\n{content}", split into segments
	"""

	def __init__(self, fs: MemoryFileSystem, work_dir: Path):
		super().__init__(work_dir, CompressMethod.plain)
		self.fs = fs
		self.broken_files: Set[str] = set()

	@override
	def compress(self, source_path: Path, max_segment_bytes: int, *, arc_name: str, stem: Optional[str] = None) -> CompressResult:
		if arc_name in self.broken_files:
			raise CodecError('cannot compress {!r}'.format(arc_name))
		if stem is None:
			stem = path_utils.to_flat_name(arc_name)
		content = self.fs.read_file(source_path)
		payload = arc_name.encode('utf8') + b'\n' + content

		artifact_name = get_artifact_name(stem, self.compress_method)
		chunks = [payload[i:i + max_segment_bytes] for i in range(0, len(payload), max_segment_bytes)]
		for i, chunk in enumerate(chunks):
			self.fs.write_file(self.work_dir / get_segment_name(stem, artifact_name, i), chunk)
		return CompressResult(
			artifact_path=self.work_dir / artifact_name,
			stem=stem,
			segment_count=len(chunks),
			raw_size=len(content),
			stored_size=len(payload),
		)

	@override
	def reconstruct(self, segment_paths: List[Path], output_dir: Path) -> Path:
		payload = b''.join(self.fs.read_file(p) for p in segment_paths)
		if b'\n' not in payload:
			raise CodecError('bad payload')
		arc_name, content = payload.split(b'\n', 1)
		self.fs.write_file(output_dir / arc_name.decode('utf8'), content)
		return output_dir


class FakeTransport(BinTransport):
	def __init__(self, fs: FileSystem):
		self.fs = fs
		self.initialized_bins: List[str] = []
		self.published_bins: List[str] = []
		self.pending_bins: Set[str] = set()
		self.failing_segments: Set[str] = set()

	def init_bin(self, storage_bin: StorageBin):
		self.initialized_bins.append(storage_bin.name)

	def place(self, source_path: Path, storage_bin: StorageBin) -> Path:
		if source_path.name in self.failing_segments:
			raise TransportError('cannot place {!r} into bin {}'.format(source_path.name, storage_bin.name))
		target_path = storage_bin.path / source_path.name
		self.fs.copy_file(source_path, target_path)
		self.fs.remove_file(source_path)
		self.pending_bins.add(storage_bin.name)
		return target_path

	def replace(self, source_path: Path, storage_bin: StorageBin) -> Path:
		return self.place(source_path, storage_bin)

	def has_pending_changes(self, storage_bin: StorageBin) -> bool:
		return storage_bin.name in self.pending_bins

	def publish(self, storage_bin: StorageBin):
		self.published_bins.append(storage_bin.name)
		self.pending_bins.discard(storage_bin.name)

	def fetch_all(self, manifest_file_name: str) -> List[StorageBin]:
		return []


class ManifestTestCaseBase(unittest.TestCase):
	"""
	Every test gets a fresh manifest database in a temp directory
	"""

	@override
	def setUp(self):
		self.temp_dir = Path(tempfile.mkdtemp(prefix='git_backup_test_'))
		DbAccess.init(self.temp_dir / 'manifest.db', create=True)

	@override
	def tearDown(self):
		DbAccess.shutdown()
		shutil.rmtree(self.temp_dir, ignore_errors=True)
