import dataclasses

from git_backup.db import schema


@dataclasses.dataclass(frozen=True)
class ManifestEntryInfo:
	id: int
	file_name: str
	created: int  # timestamp in us
	last_modified: int  # timestamp in us

	@classmethod
	def of(cls, entry: schema.ManifestEntry) -> 'ManifestEntryInfo':
		"""
		Notes: should be inside a session
		"""
		return ManifestEntryInfo(
			id=entry.id,
			file_name=entry.file_name,
			created=entry.created,
			last_modified=entry.last_modified,
		)


@dataclasses.dataclass(frozen=True)
class RepositoryInfo:
	id: int
	repository_name: str

	@classmethod
	def of(cls, repository: schema.RepositoryEntry) -> 'RepositoryInfo':
		return RepositoryInfo(
			id=repository.id,
			repository_name=repository.repository_name,
		)


@dataclasses.dataclass(frozen=True)
class SegmentLocation:
	segment_index: int
	segment_name: str
	repository: RepositoryInfo

	@classmethod
	def of(cls, segment: schema.CompressedFileEntry, repository: schema.RepositoryEntry) -> 'SegmentLocation':
		return SegmentLocation(
			segment_index=segment.segment_index,
			segment_name=segment.segment_name,
			repository=RepositoryInfo.of(repository),
		)
