from typing import Any

from mcdreforged.api.utils import Serializable

from git_backup.compressors import CompressMethod


class CompressionConfig(Serializable):
	segment_size_kb: int = 80000  # 80MB
	compress_method: CompressMethod = CompressMethod.zstd

	@property
	def max_segment_bytes(self) -> int:
		return self.segment_size_kb * 1024

	def validate_attribute(self, attr_name: str, attr_value: Any, **kwargs):
		if attr_name == 'segment_size_kb' and attr_value <= 0:
			raise ValueError('segment_size_kb should be positive, but found {}'.format(attr_value))
