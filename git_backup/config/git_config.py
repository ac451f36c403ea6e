from typing import Optional, Any

from mcdreforged.api.utils import Serializable

from git_backup import constants


class GitConfig(Serializable):
	naming_convention: str = 'gitBackup-'
	bin_size_kb: int = 800000  # 800MB
	remote_location: str = ''
	branch: str = 'master'
	commit_message: str = 'updating files..'
	user_name: Optional[str] = None
	user_email: Optional[str] = None
	overwrite_on_add: bool = True

	@property
	def max_bin_bytes(self) -> int:
		return self.bin_size_kb * 1024

	def validate_attribute(self, attr_name: str, attr_value: Any, **kwargs):
		if attr_name == 'naming_convention':
			if len(attr_value) == 0:
				raise ValueError('naming_convention cannot be empty')
			if attr_value[-1].isdigit():
				raise ValueError('naming_convention {!r} cannot end with a digit'.format(attr_value))
			if '/' in attr_value or '\\' in attr_value:
				raise ValueError('naming_convention {!r} cannot contain path separators'.format(attr_value))
			# these directories live next to the bins
			for dir_name in constants.RESERVED_DIR_NAMES:
				if dir_name.startswith(attr_value):
					raise ValueError('naming_convention {!r} clashes with the {!r} directory in the backup location'.format(attr_value, dir_name))
		elif attr_name == 'bin_size_kb' and attr_value <= 0:
			raise ValueError('bin_size_kb should be positive, but found {}'.format(attr_value))
