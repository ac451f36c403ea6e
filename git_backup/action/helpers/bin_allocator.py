import dataclasses
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from typing_extensions import Self

from git_backup import logger
from git_backup.config.config import Config
from git_backup.exceptions import SegmentTooLarge
from git_backup.types.storage_bin import StorageBin
from git_backup.types.units import ByteCount
from git_backup.utils.file_system import FileSystem

BinInitializer = Callable[[StorageBin], None]


@dataclasses.dataclass
class BinRotationContext:
	root: Path
	naming_convention: str
	max_bin_bytes: int
	fs: FileSystem
	bin_initializer: BinInitializer
	lock: threading.Lock = dataclasses.field(default_factory=threading.Lock)
	touched_bins: Dict[str, StorageBin] = dataclasses.field(default_factory=dict)  # ordered by first touch

	@classmethod
	def from_config(cls, config: Config, fs: FileSystem, bin_initializer: BinInitializer) -> Self:
		return cls(
			root=config.backup_path,
			naming_convention=config.git.naming_convention,
			max_bin_bytes=config.git.max_bin_bytes,
			fs=fs,
			bin_initializer=bin_initializer,
		)

	def resolve(self, bin_name: str) -> StorageBin:
		"""
		Get the bin with the given name, e.g. a bin recorded in the manifest
		"""
		sequence = StorageBin.parse_sequence(bin_name, self.naming_convention)
		return StorageBin(name=bin_name, sequence=sequence if sequence is not None else -1, path=self.root / bin_name)

	def touch(self, storage_bin: StorageBin):
		self.touched_bins.setdefault(storage_bin.name, storage_bin)

	def get_touched_bins(self) -> List[StorageBin]:
		return list(self.touched_bins.values())


class BinAllocator:
	"""
	Bins are append-only. Only the bin with the highest sequence number receives new segments,
	a new bin gets minted when the candidate segment does not fit into it
	"""

	def __init__(self, context: BinRotationContext):
		self.logger = logger.get()
		self.context = context

	def list_bins(self) -> List[StorageBin]:
		"""
		:return: all existing bins, ordered by the sequence number
		"""
		ctx = self.context
		if not ctx.fs.is_dir(ctx.root):
			return []
		bins = []
		for dir_path in ctx.fs.list_dirs(ctx.root):
			sequence = StorageBin.parse_sequence(dir_path.name, ctx.naming_convention)
			if sequence is not None:
				bins.append(StorageBin(name=dir_path.name, sequence=sequence, path=dir_path))
		bins.sort(key=lambda b: b.sequence)
		return bins

	def __mint(self, sequence: int) -> StorageBin:
		ctx = self.context
		storage_bin = StorageBin.of(ctx.root, ctx.naming_convention, sequence)
		ctx.fs.make_dirs(storage_bin.path)
		ctx.bin_initializer(storage_bin)
		self.logger.info('Created storage bin {}'.format(storage_bin.name))
		return storage_bin

	def allocate(self, candidate_size: int) -> StorageBin:
		ctx = self.context
		if candidate_size > ctx.max_bin_bytes:
			raise SegmentTooLarge(candidate_size, ctx.max_bin_bytes)

		with ctx.lock:
			bins = self.list_bins()
			chosen: Optional[StorageBin] = None
			if len(bins) == 0:
				chosen = self.__mint(0)
			else:
				last = bins[-1]
				footprint = ctx.fs.get_dir_footprint(last.path)
				if footprint + candidate_size > ctx.max_bin_bytes:
					self.logger.debug('Bin {} is full ({} + {} > {})'.format(
						last.name, ByteCount(footprint).auto_str(), ByteCount(candidate_size).auto_str(), ByteCount(ctx.max_bin_bytes).auto_str(),
					))
					chosen = self.__mint(last.sequence + 1)
				else:
					chosen = last
			ctx.touch(chosen)
			return chosen
