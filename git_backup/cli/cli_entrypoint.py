import argparse
from pathlib import Path

from git_backup.action.create_backup_action import CreateBackupAction
from git_backup.action.get_manifest_overview_action import GetManifestOverviewAction
from git_backup.action.restore_backup_action import RestoreBackupAction
from git_backup.cli.return_codes import ErrorReturnCodes
from git_backup.config.config import Config, set_config_instance
from git_backup.db.access import DbAccess
from git_backup.db.migration import BadDbVersion
from git_backup.exceptions import ConfigurationError, ManifestNotFound, TransportError, BinNotFound, ManifestEntryNotFound
from git_backup.logger import get as get_logger
from git_backup.types.units import ByteCount
from git_backup.utils import log_utils

__all__ = ['cli_entry']

DEFAULT_CONFIG_FILE = 'git_backup.json'


def __prepare_logger():
	logger = get_logger()
	assert len(logger.handlers) == 1
	logger.handlers[0].setFormatter(log_utils.LOG_FORMATTER_NO_FUNC)


__prepare_logger()


class CliHandler:
	def __init__(self, args: argparse.Namespace):
		self.args = args
		self.logger = get_logger()

	def init_environment(self):
		config_path = Path(self.args.config)
		if config_path.is_file():
			config = Config.load(config_path)
			self.logger.info('Loaded config from {!r}'.format(str(config_path)))
		else:
			config = Config.get_default()
			self.logger.info('Config file {!r} not found, using default config'.format(str(config_path)))
		if self.args.debug:
			config.debug = True
		set_config_instance(config)

	def cmd_backup(self):
		config = Config.get()
		DbAccess.init(config.manifest_path, create=True)
		self.logger.info('Backing up {!r} into {!r}'.format(str(config.source_path), str(config.backup_path)))
		result = CreateBackupAction().run()
		if len(result.failures) > 0:
			self.logger.warning('Found {} failures during the backup'.format(len(result.failures)))
			for line in result.failures.to_lines():
				self.logger.warning('  {}'.format(line))
			ErrorReturnCodes.action_failed.sys_exit()

	def cmd_restore(self):
		config = Config.get()
		self.logger.info('Restoring from {!r} into {!r}'.format(config.git.remote_location, str(config.restore_path)))
		result = RestoreBackupAction().run()
		if len(result.failures) > 0:
			self.logger.warning('Found {} failures during the restore'.format(len(result.failures)))
			for line in result.failures.to_lines():
				self.logger.warning('  {}'.format(line))
			ErrorReturnCodes.action_failed.sys_exit()

	def cmd_overview(self):
		DbAccess.init(Config.get().manifest_path, create=False)
		result = GetManifestOverviewAction().run()
		self.logger.info('DB version: %s', result.db_version)
		self.logger.info('DB file size: %s (%s)', result.db_file_size, ByteCount(result.db_file_size).auto_str())
		self.logger.info('Manifest entry count: %s', result.manifest_entry_count)
		self.logger.info('Segment count: %s', result.segment_count)
		self.logger.info('Bin count: %s', result.bin_count)
		for bin_name, segment_count in result.segment_count_by_bin.items():
			self.logger.info('  %s: %s segment(s)', bin_name, segment_count)

	@classmethod
	def entrypoint(cls):
		parser = argparse.ArgumentParser(description='Git Backup, backs up files into size-capped git repositories', formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument('-c', '--config', default=DEFAULT_CONFIG_FILE, help='Path to the json config file. The default config is used if the file does not exist')
		parser.add_argument('--debug', action='store_true', help='Enable debug logging')
		group = parser.add_mutually_exclusive_group()
		group.add_argument('-b', '--backup', action='store_true', help='Back up new and updated files of the source location')
		group.add_argument('-r', '--restore', action='store_true', help='Fetch all bins from the remote location and restore every file in the manifest')
		group.add_argument('--overview', action='store_true', help='Show overview information of the manifest')

		args = parser.parse_args()
		handler = CliHandler(args)
		logger = handler.logger
		try:
			handler.init_environment()
			if args.backup:
				handler.cmd_backup()
			elif args.restore:
				handler.cmd_restore()
			elif args.overview:
				handler.cmd_overview()
			else:
				logger.info('No option set')
		except ConfigurationError as e:
			logger.error('Invalid configuration: {}'.format(e))
			ErrorReturnCodes.invalid_config.sys_exit()
		except ManifestNotFound as e:
			logger.error('Manifest file {!r} does not exist'.format(str(e.path)))
			ErrorReturnCodes.manifest_not_found.sys_exit()
		except BadDbVersion as e:
			logger.error('Load manifest failed: {}'.format(e))
			ErrorReturnCodes.invalid_config.sys_exit()
		except (BinNotFound, ManifestEntryNotFound) as e:
			logger.error('Manifest is inconsistent, {} not found: {}'.format(type(e).__name__, e))
			ErrorReturnCodes.action_failed.sys_exit()
		except TransportError as e:
			logger.error('Transport failed: {}'.format(e))
			ErrorReturnCodes.transport_failed.sys_exit()
		except ImportError as e:
			logger.error('Missing dependency: {}'.format(e))
			ErrorReturnCodes.missing_dependency.sys_exit()
		finally:
			DbAccess.shutdown()


def cli_entry():
	CliHandler.entrypoint()
