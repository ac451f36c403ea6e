import contextlib
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional

LOG_FORMATTER = logging.Formatter('[%(asctime)s %(levelname)s] (%(funcName)s) %(message)s')
LOG_FORMATTER_NO_FUNC = logging.Formatter('[%(asctime)s %(levelname)s] %(message)s')
for _formatter in (LOG_FORMATTER, LOG_FORMATTER_NO_FUNC):
	_formatter.default_msec_format = '%s.%03d'

_MAX_LOG_FILE_BYTES = 10 * 1024 * 1024


def get_log_level() -> int:
	from git_backup.config.config import Config
	return logging.DEBUG if Config.get().debug else logging.INFO


class FileLogger(logging.Logger):
	"""
	A logger that writes to "{name}.log" only, with one rotated backup file
	"""

	def __init__(self, name: str, log_dir: Optional[Path] = None):
		from git_backup import constants
		from git_backup.config.config import Config
		super().__init__('{}-{}'.format(constants.PROGRAM_ID, name), get_log_level())

		if log_dir is None:
			log_dir = Config.get().logs_path
		self.log_file = log_dir / '{}.log'.format(name)
		self.log_file.parent.mkdir(parents=True, exist_ok=True)

		handler = RotatingFileHandler(self.log_file, maxBytes=_MAX_LOG_FILE_BYTES, backupCount=1, encoding='utf8')
		handler.setFormatter(LOG_FORMATTER_NO_FUNC)
		self.addHandler(handler)

	def close(self):
		for handler in list(self.handlers):
			handler.close()
			self.removeHandler(handler)


@contextlib.contextmanager
def open_file_logger(name: str, log_dir: Optional[Path] = None) -> Generator[FileLogger, None, None]:
	logger = FileLogger(name, log_dir)
	try:
		yield logger
	finally:
		logger.close()
