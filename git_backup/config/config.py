import functools
import json
from pathlib import Path
from typing import Optional, List

from mcdreforged.api.utils import Serializable

from git_backup import constants
from git_backup.config.compression_config import CompressionConfig
from git_backup.config.git_config import GitConfig
from git_backup.db import db_constants
from git_backup.exceptions import ConfigurationError


class Config(Serializable):
	debug: bool = False

	backup_location: str = './backup'
	source_location: str = '.'
	recursive: bool = False
	ignore_patterns: List[str] = []

	restore_work_location: str = './restore/work'
	restore_location: str = './restore/files'

	compression: CompressionConfig = CompressionConfig()
	git: GitConfig = GitConfig()

	# ==================== Instance getters ====================

	@classmethod
	@functools.lru_cache
	def __get_default(cls) -> 'Config':
		return Config.get_default()

	@classmethod
	def get(cls) -> 'Config':
		if _config is None:
			return cls.__get_default()
		return _config

	@classmethod
	def load(cls, file_path: Path) -> 'Config':
		with open(file_path, 'r', encoding='utf8') as f:
			try:
				return cls.deserialize(json.load(f))
			except (ValueError, TypeError) as e:
				raise ConfigurationError('bad config file {!r}: {}'.format(str(file_path), e)) from e

	# ==================== Field getters ====================

	@property
	def backup_path(self) -> Path:
		return Path(self.backup_location)

	@property
	def source_path(self) -> Path:
		return Path(self.source_location)

	@property
	def manifest_path(self) -> Path:
		return self.backup_path / db_constants.DB_FILE_NAME

	@property
	def temp_path(self) -> Path:
		return self.backup_path / constants.SCRATCH_DIR_NAME

	@property
	def logs_path(self) -> Path:
		return self.backup_path / constants.LOGS_DIR_NAME

	@property
	def restore_work_path(self) -> Path:
		return Path(self.restore_work_location)

	@property
	def restore_path(self) -> Path:
		return Path(self.restore_location)

	@property
	def restored_manifest_path(self) -> Path:
		return self.restore_work_path / db_constants.DB_FILE_NAME

	def on_deserialization(self, **kwargs):
		if self.compression.segment_size_kb > self.git.bin_size_kb:
			raise ValueError('compression.segment_size_kb ({}) cannot be larger than git.bin_size_kb ({})'.format(
				self.compression.segment_size_kb, self.git.bin_size_kb,
			))

	def ensure_remote_location(self) -> Path:
		if len(self.git.remote_location) == 0:
			raise ConfigurationError('git.remote_location is not set')
		return Path(self.git.remote_location)


_config: Optional[Config] = None


def set_config_instance(cfg: Optional[Config]):
	global _config
	_config = cfg

	from git_backup import logger
	logger.set_debug(cfg is not None and cfg.debug)
