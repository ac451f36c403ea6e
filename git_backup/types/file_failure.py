import contextlib
import dataclasses
from typing import List, Iterator, Type, Tuple

from git_backup.exceptions import CodecError


@dataclasses.dataclass(frozen=True)
class FileFailure:
	file_name: str
	error: Exception


class FileFailures:
	"""
	Collects per-file errors, so a single bad file does not abort the whole run
	"""

	def __init__(self, soft_errors: Tuple[Type[Exception], ...] = (CodecError,)):
		self.__soft_errors = soft_errors
		self.failures: List[FileFailure] = []

	@contextlib.contextmanager
	def handling_exception(self, file_name: str):
		try:
			yield
		except self.__soft_errors as e:
			self.failures.append(FileFailure(file_name, e))

	def __len__(self) -> int:
		return len(self.failures)

	def __iter__(self) -> Iterator[FileFailure]:
		return self.failures.__iter__()

	def to_lines(self) -> List[str]:
		return ['{}: ({}) {}'.format(failure.file_name, type(failure.error).__name__, failure.error) for failure in self.failures]
