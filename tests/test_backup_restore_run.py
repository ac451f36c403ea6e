import json
import os
import random
import shutil
import subprocess
import tempfile
import time
import unittest
from pathlib import Path
from typing import Dict, List
from unittest import mock

from git_backup.action.create_backup_action import CreateBackupAction
from git_backup.action.get_manifest_overview_action import GetManifestOverviewAction
from git_backup.action.restore_backup_action import RestoreBackupAction
from git_backup.cli import cli_entrypoint
from git_backup.cli.return_codes import ErrorReturnCodes
from git_backup.compressors import CompressMethod
from git_backup.config.config import Config, set_config_instance
from git_backup.db.access import DbAccess
from git_backup.exceptions import ConfigurationError, TransportError
from git_backup.transport.git_transport import GitTransport
from git_backup.types.storage_bin import StorageBin


def _create_config(root: Path) -> Config:
	config = Config.get_default()
	config.source_location = str(root / 'source')
	config.backup_location = str(root / 'backup')
	config.restore_work_location = str(root / 'restore' / 'work')
	config.restore_location = str(root / 'restore' / 'files')
	config.recursive = True
	config.ignore_patterns = ['*.tmp']
	config.compression.segment_size_kb = 16
	config.compression.compress_method = CompressMethod.zstd
	config.git.bin_size_kb = 64
	config.git.remote_location = str(root / 'remote')
	config.git.user_name = 'tester'
	config.git.user_email = 'tester@example.com'
	return config


@unittest.skipUnless(shutil.which('git'), 'git is not available')
class BackupRestoreRunTestCase(unittest.TestCase):
	def setUp(self):
		self.root = Path(tempfile.mkdtemp(prefix='git_backup_run_'))
		self.config = _create_config(self.root)
		set_config_instance(self.config)
		self.source = self.config.source_path
		self.rnd = random.Random(42)

	def tearDown(self):
		DbAccess.shutdown()
		set_config_instance(None)
		shutil.rmtree(self.root, ignore_errors=True)

	def write(self, file_name: str, content: bytes):
		path = self.source / file_name
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(content)

	def snapshot(self, base: Path) -> Dict[str, bytes]:
		return {
			p.relative_to(base).as_posix(): p.read_bytes()
			for p in base.rglob('*') if p.is_file()
		}

	def backup(self):
		DbAccess.init(self.config.manifest_path, create=True)
		try:
			return CreateBackupAction().run()
		finally:
			DbAccess.shutdown()

	def test_0_backup_and_restore(self):
		self.write('a.txt', b'hello git backup\n' * 100)
		self.write('sub/b.bin', self.rnd.randbytes(100 * 1024))
		self.write('sub/deep/c.bin', self.rnd.randbytes(30 * 1024))
		self.write('ignored.tmp', b'nope')

		result = self.backup()
		self.assertEqual(0, len(result.failures))
		self.assertEqual(['a.txt', 'sub/b.bin', 'sub/deep/c.bin'], result.added_files)
		self.assertEqual([], result.updated_files)

		backup_path = self.config.backup_path
		bin_names = sorted(p.name for p in backup_path.iterdir() if p.name.startswith('gitBackup-'))
		self.assertGreaterEqual(len(bin_names), 2)
		self.assertTrue((backup_path / 'gitBackup-0' / 'manifest.db').is_file())
		self.assertEqual(set(bin_names), {b.name for b in result.published_bins})
		for name in bin_names:
			self.assertTrue((self.config.ensure_remote_location() / name).is_dir())
		self.assertFalse(self.config.temp_path.exists())

		DbAccess.init(self.config.manifest_path, create=False)
		overview = GetManifestOverviewAction().run()
		DbAccess.shutdown()
		self.assertEqual(3, overview.manifest_entry_count)
		self.assertEqual(len(bin_names), overview.bin_count)
		self.assertEqual(overview.segment_count, sum(overview.segment_count_by_bin.values()))

		# no change, nothing to do
		result = self.backup()
		self.assertTrue(result.change_set.is_empty())
		self.assertEqual([], result.published_bins)

		# update a file, with a mtime later than the previous backup
		self.write('sub/deep/c.bin', self.rnd.randbytes(50 * 1024))
		future = time.time() + 10
		os.utime(self.source / 'sub' / 'deep' / 'c.bin', (future, future))
		self.write('d.txt', b'new file')
		result = self.backup()
		self.assertEqual(0, len(result.failures))
		self.assertEqual(['d.txt'], result.added_files)
		self.assertEqual(['sub/deep/c.bin'], result.updated_files)

		restore_result = RestoreBackupAction().run()
		self.assertEqual(0, len(restore_result.failures))
		self.assertEqual(4, len(restore_result.restored_files))

		expected = self.snapshot(self.source)
		expected.pop('ignored.tmp')
		self.assertEqual(expected, self.snapshot(self.config.restore_path))
		self.assertFalse((self.config.restore_work_path / 'temp').exists())

	def test_1_restore_again_pulls(self):
		self.write('a.txt', b'first')
		self.backup()
		RestoreBackupAction().run()
		self.assertEqual(b'first', (self.config.restore_path / 'a.txt').read_bytes())

		self.write('a.txt', b'second')
		future = time.time() + 10
		os.utime(self.source / 'a.txt', (future, future))
		self.backup()
		RestoreBackupAction().run()
		self.assertEqual(b'second', (self.config.restore_path / 'a.txt').read_bytes())

	def test_2_missing_remote_location(self):
		self.config.git.remote_location = ''
		self.write('a.txt', b'a')
		DbAccess.init(self.config.manifest_path, create=True)
		with self.assertRaises(ConfigurationError):
			CreateBackupAction().run()
		self.assertEqual([], list(self.config.backup_path.glob('gitBackup-*')))

	def test_3_failed_publish_is_repaired_by_next_run(self):
		for i in range(4):
			self.write('f{}.bin'.format(i), self.rnd.randbytes(40 * 1024))

		original_publish = GitTransport.publish
		published: List[str] = []

		def publish(transport: GitTransport, storage_bin: StorageBin):
			if storage_bin.name == 'gitBackup-1':
				raise TransportError('connection lost')
			published.append(storage_bin.name)
			original_publish(transport, storage_bin)

		with mock.patch.object(GitTransport, 'publish', publish):
			with self.assertRaises(TransportError):
				self.backup()
		self.assertNotIn('gitBackup-0', published)

		result = self.backup()
		self.assertTrue(result.change_set.is_empty())
		published_names = [b.name for b in result.published_bins]
		self.assertIn('gitBackup-1', published_names)
		self.assertEqual('gitBackup-0', published_names[-1])
		self.assertEqual([], self.backup().published_bins)

		restore_result = RestoreBackupAction().run()
		self.assertEqual(0, len(restore_result.failures))
		self.assertEqual(self.snapshot(self.source), self.snapshot(self.config.restore_path))

	def test_4_restore_skips_remote_without_branch(self):
		self.write('a.txt', b'a')
		self.backup()
		stray_remote = self.config.ensure_remote_location() / 'gitBackup-9'
		subprocess.run(['git', 'init', '--bare', str(stray_remote)], check=True, capture_output=True)

		result = RestoreBackupAction().run()
		self.assertEqual(['gitBackup-0'], [b.name for b in result.fetched_bins])
		self.assertEqual(b'a', (self.config.restore_path / 'a.txt').read_bytes())


class CliTestCase(unittest.TestCase):
	def setUp(self):
		self.root = Path(tempfile.mkdtemp(prefix='git_backup_cli_'))
		self.config_file = self.root / 'config.json'

	def tearDown(self):
		DbAccess.shutdown()
		set_config_instance(None)
		shutil.rmtree(self.root, ignore_errors=True)

	def run_cli(self, *args: str):
		with mock.patch('sys.argv', ['git-backup', '-c', str(self.config_file), *args]):
			cli_entrypoint.cli_entry()

	def test_0_no_option(self):
		self.config_file.write_text(json.dumps(_create_config(self.root).serialize()), encoding='utf8')
		with self.assertLogs(cli_entrypoint.get_logger(), level='INFO') as cm:
			self.run_cli()
		self.assertTrue(any('No option set' in line for line in cm.output))
		self.assertFalse((self.root / 'backup').exists())

	def test_1_mutually_exclusive(self):
		with self.assertRaises(SystemExit) as cm:
			self.run_cli('-b', '-r')
		self.assertEqual(ErrorReturnCodes.argparse_error.value, cm.exception.code)

	def test_2_bad_config(self):
		config = _create_config(self.root).serialize()
		config['git']['naming_convention'] = 'bin1'
		self.config_file.write_text(json.dumps(config), encoding='utf8')
		with self.assertRaises(SystemExit) as cm:
			self.run_cli('-b')
		self.assertEqual(ErrorReturnCodes.invalid_config.value, cm.exception.code)

	def test_3_overview_without_manifest(self):
		self.config_file.write_text(json.dumps(_create_config(self.root).serialize()), encoding='utf8')
		with self.assertRaises(SystemExit) as cm:
			self.run_cli('--overview')
		self.assertEqual(ErrorReturnCodes.manifest_not_found.value, cm.exception.code)


if __name__ == '__main__':
	unittest.main()
