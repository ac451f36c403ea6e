import enum
import sys

from typing_extensions import NoReturn


class ErrorReturnCodes(enum.Enum):
	invalid_argument = 1
	argparse_error = 2  # see argparse.ArgumentParser.error
	action_failed = 3
	invalid_config = 4
	manifest_not_found = 5
	transport_failed = 6
	missing_dependency = 7

	def sys_exit(self) -> NoReturn:
		sys.exit(self.value)
