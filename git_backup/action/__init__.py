"""
Actions for backup, restore and manifest accesses
"""
import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional

from git_backup.utils.file_system import FileSystem, LocalFileSystem

_T = TypeVar('_T')


class Action(Generic[_T], ABC):
	def __init__(self, *, fs: Optional[FileSystem] = None):
		from git_backup import logger
		from git_backup.config.config import Config
		self.logger: logging.Logger = logger.get()
		self.config: Config = Config.get()
		self.fs: FileSystem = fs or LocalFileSystem()

	@abstractmethod
	def run(self) -> _T:
		...
