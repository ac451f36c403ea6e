import dataclasses
from pathlib import Path
from typing import Optional

from git_backup.exceptions import BadBinName


@dataclasses.dataclass(frozen=True)
class StorageBin:
	name: str
	sequence: int
	path: Path

	@classmethod
	def get_name(cls, naming_convention: str, sequence: int) -> str:
		return '{}{}'.format(naming_convention, sequence)

	@classmethod
	def parse_sequence(cls, dir_name: str, naming_convention: str) -> Optional[int]:
		"""
		:return: the sequence number of the bin, or None if the directory does not belong to the naming convention
		:raise BadBinName: if the directory name starts with the naming convention, but the remaining part is not a sequence number
		"""
		if not dir_name.startswith(naming_convention):
			return None
		remainder = dir_name[len(naming_convention):]
		if len(remainder) == 0 or not remainder.isascii() or not remainder.isdigit():
			raise BadBinName(dir_name, naming_convention)
		return int(remainder)

	@classmethod
	def of(cls, root: Path, naming_convention: str, sequence: int) -> 'StorageBin':
		name = cls.get_name(naming_convention, sequence)
		return StorageBin(name=name, sequence=sequence, path=root / name)

	def __str__(self) -> str:
		return self.name
