from pathlib import Path
from urllib.parse import quote


def is_relative_to(child: Path, parent: Path) -> bool:
	if hasattr(child, 'is_relative_to'):  # python3.9+
		return child.is_relative_to(parent)
	else:
		try:
			child.relative_to(parent)
		except ValueError:
			return False
		else:
			return True


def to_flat_name(file_name: str) -> str:
	"""
	Turns a posix relative path into a single path component, e.g. "foo/bar.txt" -> "foo%2Fbar.txt".
	Plain file names are kept as-is
	"""
	return quote(file_name, safe='')
