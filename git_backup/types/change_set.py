import dataclasses
from typing import List


@dataclasses.dataclass(frozen=True)
class ChangeSet:
	new_files: List[str] = dataclasses.field(default_factory=list)
	updated_files: List[str] = dataclasses.field(default_factory=list)

	def is_empty(self) -> bool:
		return len(self.new_files) == 0 and len(self.updated_files) == 0

	def __len__(self) -> int:
		return len(self.new_files) + len(self.updated_files)
