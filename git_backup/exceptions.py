from pathlib import Path


class GitBackupError(Exception):
	pass


class ConfigurationError(GitBackupError):
	pass


class BadBinName(ConfigurationError):
	def __init__(self, dir_name: str, naming_convention: str):
		super().__init__('directory {!r} starts with the bin naming convention {!r} but is not a valid bin name'.format(dir_name, naming_convention))
		self.dir_name = dir_name
		self.naming_convention = naming_convention


class SegmentTooLarge(ConfigurationError):
	def __init__(self, segment_size: int, max_bin_size: int):
		super().__init__('segment of {} bytes can never fit into a bin capped at {} bytes'.format(segment_size, max_bin_size))
		self.segment_size = segment_size
		self.max_bin_size = max_bin_size


class ManifestEntryNotFound(GitBackupError):
	def __init__(self, file_name: str):
		super().__init__(file_name)
		self.file_name = file_name


class BinNotFound(GitBackupError):
	def __init__(self, bin_id: int):
		super().__init__(bin_id)
		self.bin_id = bin_id


class ManifestNotFound(GitBackupError):
	def __init__(self, path: Path):
		super().__init__(str(path))
		self.path = path


class CodecError(GitBackupError):
	pass


class TransportError(GitBackupError):
	pass


class SegmentFileNotFound(GitBackupError):
	def __init__(self, path: Path):
		super().__init__(str(path))
		self.path = path
