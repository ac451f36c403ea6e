import unittest
from pathlib import Path

from git_backup.action.detect_changes_action import DetectChangesAction
from git_backup.action.scan_source_files_action import ScanSourceFilesAction
from git_backup.config.config import Config
from git_backup.db.access import DbAccess
from tests.helpers import MemoryFileSystem, ManifestTestCaseBase


class DetectChangesTestCase(ManifestTestCaseBase):
	def setUp(self):
		super().setUp()
		self.source = Path('/source')
		self.fs = MemoryFileSystem()

	def add_entry(self, file_name: str, last_modified: int):
		with DbAccess.open_session() as session:
			session.create_and_add_manifest_entry(file_name=file_name, created=last_modified, last_modified=last_modified)

	def detect(self, file_names):
		return DetectChangesAction(file_names, self.source, fs=self.fs).run()

	def test_0_all_new(self):
		self.fs.write_file(self.source / 'a.txt', b'a')
		self.fs.write_file(self.source / 'b.txt', b'b')
		result = self.detect(['a.txt', 'b.txt'])
		self.assertEqual(['a.txt', 'b.txt'], result.new_files)
		self.assertEqual([], result.updated_files)

	def test_1_classification(self):
		self.fs.write_file(self.source / 'new.txt', b'n', mtime_us=100)
		self.fs.write_file(self.source / 'older.txt', b'o', mtime_us=100)
		self.fs.write_file(self.source / 'same.txt', b's', mtime_us=200)
		self.fs.write_file(self.source / 'newer.txt', b'w', mtime_us=301)
		self.add_entry('older.txt', 200)
		self.add_entry('same.txt', 200)
		self.add_entry('newer.txt', 300)

		result = self.detect(['new.txt', 'older.txt', 'same.txt', 'newer.txt'])
		self.assertEqual(['new.txt'], result.new_files)
		self.assertEqual(['newer.txt'], result.updated_files)
		self.assertFalse(result.is_empty())
		self.assertEqual(2, len(result))

	def test_2_listing_order_kept(self):
		names = ['z.txt', 'a.txt', 'm.txt', 'b.txt']
		for name in names:
			self.fs.write_file(self.source / name, b'x', mtime_us=1000)
			self.add_entry(name, 1)
		result = self.detect(names)
		self.assertEqual([], result.new_files)
		self.assertEqual(names, result.updated_files)

	def test_3_many_files(self):
		names = ['f{}.bin'.format(i) for i in range(2500)]
		for name in names:
			self.fs.write_file(self.source / name, b'x', mtime_us=10)
		with DbAccess.open_session() as session:
			for name in names[::2]:
				session.create_and_add_manifest_entry(file_name=name, created=10, last_modified=10)

		result = self.detect(names)
		self.assertEqual(names[1::2], result.new_files)
		self.assertEqual([], result.updated_files)

	def test_4_nothing(self):
		result = self.detect([])
		self.assertTrue(result.is_empty())

	def test_5_vanished_file_skipped(self):
		self.fs.write_file(self.source / 'kept.txt', b'k', mtime_us=500)
		self.add_entry('kept.txt', 100)
		self.add_entry('gone.txt', 100)

		result = self.detect(['gone.txt', 'kept.txt'])
		self.assertEqual([], result.new_files)
		self.assertEqual(['kept.txt'], result.updated_files)


class ScanSourceFilesTestCase(unittest.TestCase):
	def setUp(self):
		self.source = Path('/source')
		self.fs = MemoryFileSystem()
		self.fs.write_file(self.source / 'a.txt', b'a')
		self.fs.write_file(self.source / 'b.log', b'b')
		self.fs.write_file(self.source / 'sub' / 'c.txt', b'c')
		self.fs.write_file(self.source / 'sub' / 'deep' / 'd.txt', b'd')

		self.config = Config.get()
		self.prev_ignore_patterns = self.config.ignore_patterns
		self.prev_backup_location = self.config.backup_location

	def tearDown(self):
		self.config.ignore_patterns = self.prev_ignore_patterns
		self.config.backup_location = self.prev_backup_location

	def test_0_single_directory(self):
		result = ScanSourceFilesAction(self.source, recursive=False, fs=self.fs).run()
		self.assertEqual(['a.txt', 'b.log'], result)

	def test_1_recursive(self):
		result = ScanSourceFilesAction(self.source, recursive=True, fs=self.fs).run()
		self.assertEqual(['a.txt', 'b.log', 'sub/c.txt', 'sub/deep/d.txt'], result)

	def test_2_ignore_patterns(self):
		self.config.ignore_patterns = ['*.log', 'deep/']
		result = ScanSourceFilesAction(self.source, recursive=True, fs=self.fs).run()
		self.assertEqual(['a.txt', 'sub/c.txt'], result)

	def test_3_skip_backup_location(self):
		self.fs.write_file(self.source / 'backup' / 'manifest.db', b'db')
		self.fs.write_file(self.source / 'backup' / 'conv-0' / 'a.txt.tar.zst', b'x')
		self.config.backup_location = '/source/backup'
		result = ScanSourceFilesAction(self.source, recursive=True, fs=self.fs).run()
		self.assertEqual(['a.txt', 'b.log', 'sub/c.txt', 'sub/deep/d.txt'], result)


if __name__ == '__main__':
	unittest.main()
