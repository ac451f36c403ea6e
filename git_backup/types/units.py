import re
from typing import Union, List, Tuple

_BYTE_UNITS: List[Tuple[str, int]] = [('', 1), ('Ki', 2 ** 10), ('Mi', 2 ** 20), ('Gi', 2 ** 30), ('Ti', 2 ** 40)]
_BYTE_UNIT_BY_LOWER_NAME = {name.lower(): size for name, size in _BYTE_UNITS}


class ByteCount(int):
	"""
	Binary-prefixed byte count, e.g. ByteCount('4KiB') == 4096
	"""

	def __new__(cls, value: Union[int, str]):
		if isinstance(value, str):
			value = cls.__parse(value)
		elif isinstance(value, bool) or not isinstance(value, int):
			raise TypeError(type(value))
		return super().__new__(cls, value)

	@classmethod
	def __parse(cls, s: str) -> int:
		match = re.fullmatch(r'([-+]?[\d.]+)\s*([a-zA-Z]*?)[bB]?', s.strip())
		if match is None:
			raise ValueError('bad byte count {!r}'.format(s))
		try:
			number = float(match.group(1))
		except ValueError:
			raise ValueError('{!r} is not a number'.format(match.group(1))) from None
		unit_size = _BYTE_UNIT_BY_LOWER_NAME.get(match.group(2).lower())
		if unit_size is None:
			raise ValueError('unknown unit {!r}'.format(match.group(2)))
		return int(number * unit_size)

	def auto_str(self, ndigits: int = 2) -> str:
		"""
		Human-readable, with the largest unit that keeps the number >= 1, e.g. "1.50KiB"
		"""
		value = abs(int(self))
		unit, unit_size = _BYTE_UNITS[0]
		for name, size in _BYTE_UNITS:
			if value >= size:
				unit, unit_size = name, size
		sign = '-' if int(self) < 0 else ''
		return '{}{:.{}f}{}B'.format(sign, value / unit_size, ndigits, unit)

	def __str__(self) -> str:
		value = int(self)
		if value != 0:
			for name, size in reversed(_BYTE_UNITS):
				if value % size == 0:
					return '{}{}B'.format(value // size, name)
		return '{}B'.format(value)

	def __repr__(self) -> str:
		return '{}({})'.format(type(self).__name__, int(self))
