import functools
import logging
import sys

from git_backup import constants


@functools.lru_cache
def get() -> logging.Logger:
	"""
	The process-wide logger, writing to stdout
	"""
	from git_backup.utils.log_utils import LOG_FORMATTER, get_log_level
	logger = logging.Logger(constants.PROGRAM_ID, get_log_level())
	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(LOG_FORMATTER)
	logger.addHandler(handler)
	return logger


def set_debug(debug: bool):
	logger = get()
	logger.setLevel(logging.DEBUG if debug else logging.INFO)
	if debug:
		logger.debug('debug on')
