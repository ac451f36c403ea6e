import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from git_backup import logger
from git_backup.config.config import Config
from git_backup.exceptions import TransportError
from git_backup.transport import BinTransport
from git_backup.types.storage_bin import StorageBin
from git_backup.utils.file_system import FileSystem, LocalFileSystem


class GitTransport(BinTransport):
	"""
	Every bin is a clone of a bare repository named after the bin, inside the remote location
	"""

	def __init__(self, config: Optional[Config] = None, fs: Optional[FileSystem] = None, git_logger: Optional[logging.Logger] = None):
		self.config = config or Config.get()
		self.fs = fs or LocalFileSystem()
		self.logger = logger.get()
		self.git_logger = git_logger or self.logger

	@property
	def __git_config(self):
		return self.config.git

	def _run(self, *args: str, cwd: Optional[Path] = None, check: bool = True) -> subprocess.CompletedProcess:
		cmd = ['git', *args]
		self.git_logger.info('Running {} in {!r}'.format(cmd, str(cwd) if cwd is not None else '.'))
		try:
			result = subprocess.run(cmd, cwd=cwd, check=check, capture_output=True, text=True)
		except subprocess.CalledProcessError as e:
			self.git_logger.error('Command {} failed with return code {}: {}'.format(cmd, e.returncode, (e.stderr or '').strip()))
			raise TransportError('git {} failed with return code {}: {}'.format(args[0], e.returncode, (e.stderr or '').strip())) from e
		except FileNotFoundError as e:
			raise TransportError('git executable not found: {}'.format(e)) from e
		if result.stdout:
			self.git_logger.debug(result.stdout.strip())
		return result

	def __remote_path(self, bin_name: str) -> Path:
		return self.config.ensure_remote_location() / bin_name

	def __set_branch(self, repos_path: Path):
		# works on a repository without any commit too
		self._run('symbolic-ref', 'HEAD', 'refs/heads/' + self.__git_config.branch, cwd=repos_path)

	def __setup_identity(self, repos_path: Path):
		if self.__git_config.user_name is not None:
			self._run('config', 'user.name', self.__git_config.user_name, cwd=repos_path)
		if self.__git_config.user_email is not None:
			self._run('config', 'user.email', self.__git_config.user_email, cwd=repos_path)

	def init_bin(self, storage_bin: StorageBin):
		remote_path = self.__remote_path(storage_bin.name)
		self.fs.make_dirs(remote_path)
		self._run('init', '--bare', str(remote_path))
		self.__set_branch(remote_path)

		self.fs.make_dirs(storage_bin.path)
		self._run('clone', str(remote_path.absolute()), str(storage_bin.path))
		self.__set_branch(storage_bin.path)
		self.__setup_identity(storage_bin.path)
		self.git_logger.info('Initialized bin {} with remote {!r}'.format(storage_bin.name, str(remote_path)))

	def __move_into(self, source_path: Path, storage_bin: StorageBin, overwrite: bool) -> Path:
		target_path = storage_bin.path / source_path.name
		try:
			self.fs.copy_file(source_path, target_path, overwrite=overwrite)
			self.fs.remove_file(source_path)
		except OSError as e:
			raise TransportError('failed to move {!r} into bin {}: {}'.format(str(source_path), storage_bin.name, e)) from e
		return target_path

	def place(self, source_path: Path, storage_bin: StorageBin) -> Path:
		return self.__move_into(source_path, storage_bin, self.__git_config.overwrite_on_add)

	def replace(self, source_path: Path, storage_bin: StorageBin) -> Path:
		return self.__move_into(source_path, storage_bin, True)

	def __get_remote_head(self, remote: str, cwd: Optional[Path] = None) -> Optional[str]:
		result = self._run('ls-remote', '--heads', remote, 'refs/heads/' + self.__git_config.branch, cwd=cwd)
		lines = result.stdout.split()
		return lines[0] if len(lines) > 0 else None

	def has_pending_changes(self, storage_bin: StorageBin) -> bool:
		if not self.fs.is_dir(storage_bin.path / '.git'):
			return False
		if len(self._run('status', '--porcelain', cwd=storage_bin.path).stdout.strip()) > 0:
			return True
		head = self._run('rev-parse', '--verify', '--quiet', 'HEAD', cwd=storage_bin.path, check=False)
		if head.returncode != 0:
			return False
		return head.stdout.strip() != self.__get_remote_head('origin', cwd=storage_bin.path)

	def publish(self, storage_bin: StorageBin):
		self._run('add', '-A', cwd=storage_bin.path)
		if self._run('diff', '--cached', '--quiet', cwd=storage_bin.path, check=False).returncode != 0:
			self._run('commit', '-m', self.__git_config.commit_message, cwd=storage_bin.path)
		else:
			self.git_logger.info('Nothing to commit in bin {}'.format(storage_bin.name))

		if self._run('rev-parse', '--verify', '--quiet', 'HEAD', cwd=storage_bin.path, check=False).returncode != 0:
			self.git_logger.info('Bin {} has no commit yet, skip pushing'.format(storage_bin.name))
			return
		self._run('push', 'origin', 'HEAD:refs/heads/' + self.__git_config.branch, cwd=storage_bin.path)
		self.logger.info('Published bin {}'.format(storage_bin.name))

	def __list_remote_bins(self) -> List[StorageBin]:
		remote_root = self.config.ensure_remote_location()
		if not self.fs.is_dir(remote_root):
			raise TransportError('remote location {!r} does not exist'.format(str(remote_root)))

		bins = []
		naming_convention = self.__git_config.naming_convention
		for dir_path in self.fs.list_dirs(remote_root):
			sequence = StorageBin.parse_sequence(dir_path.name, naming_convention)
			if sequence is None:
				self.logger.debug('Skipping non-bin directory {!r} in remote location'.format(dir_path.name))
				continue
			bins.append(StorageBin.of(self.config.restore_work_path, naming_convention, sequence))
		bins.sort(key=lambda b: b.sequence)
		return bins

	def fetch_all(self, manifest_file_name: str) -> List[StorageBin]:
		work_path = self.config.restore_work_path
		self.fs.make_dirs(work_path)

		bins = []
		branch = self.__git_config.branch
		for storage_bin in self.__list_remote_bins():
			remote_path = self.__remote_path(storage_bin.name)
			if self.__get_remote_head(str(remote_path.absolute())) is None:
				self.logger.warning('Remote of bin {} has no branch {!r}, skipped'.format(storage_bin.name, branch))
				continue
			bins.append(storage_bin)
			if self.fs.is_dir(storage_bin.path / '.git'):
				self.logger.info('Pulling bin {}'.format(storage_bin.name))
				self._run('pull', '--ff-only', 'origin', branch, cwd=storage_bin.path)
			else:
				self.logger.info('Cloning bin {}'.format(storage_bin.name))
				self.fs.remove_tree(storage_bin.path, missing_ok=True)
				self._run('clone', '--branch', branch, str(remote_path.absolute()), str(storage_bin.path))

		for storage_bin in bins:
			found = self.fs.find_files(storage_bin.path, manifest_file_name)
			if len(found) > 0:
				target = work_path / manifest_file_name
				self.fs.copy_file(found[0], target, overwrite=True)
				self.logger.info('Found manifest {!r} in bin {}'.format(str(found[0]), storage_bin.name))
				break
		else:
			self.logger.warning('No manifest named {!r} found in {} fetched bin(s)'.format(manifest_file_name, len(bins)))
		return bins
