"""
Moves segment files into storage bins, and synchronizes the bins with their remote mirrors
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from git_backup.types.storage_bin import StorageBin


class BinTransport(ABC):
	@abstractmethod
	def init_bin(self, storage_bin: StorageBin):
		"""
		Set up the remote mirror of a freshly minted bin, and make the bin directory a working copy of it
		"""
		...

	@abstractmethod
	def place(self, source_path: Path, storage_bin: StorageBin) -> Path:
		"""
		Move a new segment file into the bin

		:return: the path of the placed file
		"""
		...

	@abstractmethod
	def replace(self, source_path: Path, storage_bin: StorageBin) -> Path:
		"""
		Move a segment file into the bin, overwriting the existing one

		:return: the path of the placed file
		"""
		...

	@abstractmethod
	def has_pending_changes(self, storage_bin: StorageBin) -> bool:
		"""
		:return: if the bin contains anything that has not reached its remote mirror yet
		"""
		...

	@abstractmethod
	def publish(self, storage_bin: StorageBin):
		...

	@abstractmethod
	def fetch_all(self, manifest_file_name: str) -> List[StorageBin]:
		"""
		Make every remote bin available locally in the restore work location,
		and copy the manifest file found inside them to the root of the restore work location
		"""
		...
