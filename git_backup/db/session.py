import shutil
import sqlite3
from pathlib import Path
from typing import Optional, Sequence, Dict, List, TypeVar

from sqlalchemy import select, delete, func, text
from sqlalchemy.orm import Session
from typing_extensions import TypedDict, Unpack

from git_backup.db import schema, db_constants
from git_backup.exceptions import ManifestEntryNotFound, BinNotFound
from git_backup.types.manifest_info import ManifestEntryInfo, SegmentLocation

_T = TypeVar('_T')


# make type checker happy
def _list_it(seq: Sequence[_T]) -> List[_T]:
	if not isinstance(seq, list):
		seq = list(seq)
	return seq


def _int_or_0(value: Optional[int]) -> int:
	if value is None:
		return 0
	return int(value)


def _supports_vacuum_into() -> bool:
	return sqlite3.sqlite_version_info >= (3, 27, 0)


class DbSession:
	def __init__(self, session: Session, db_path: Path = None):
		self.session = session
		self.db_path = db_path

		# the limit in old sqlite (https://www.sqlite.org/limits.html#max_variable_number)
		self.__safe_var_limit = 999 - 20

	# ========================= General Database Operations =========================

	def add(self, obj: schema.Base):
		self.session.add(obj)

	def flush(self):
		self.session.flush()

	def vacuum(self, into_file: Optional[str] = None):
		# https://www.sqlite.org/lang_vacuum.html
		if into_file is not None:
			if _supports_vacuum_into():
				self.session.execute(text('VACUUM INTO :into_file').bindparams(into_file=str(into_file)))
			else:
				self.session.commit()
				if self.db_path is None:
					raise RuntimeError('db_path undefined')
				shutil.copyfile(self.db_path, into_file)
		else:
			self.session.execute(text('VACUUM'))

	# ==================================== DbMeta ====================================

	def get_db_meta(self) -> schema.DbMeta:
		meta: Optional[schema.DbMeta] = self.session.get(schema.DbMeta, db_constants.DB_MAGIC_INDEX)
		if meta is None:
			raise ValueError('None db meta')
		return meta

	# ================================= ManifestEntry =================================

	class CreateManifestEntryKwargs(TypedDict):
		file_name: str
		created: int
		last_modified: int

	def create_and_add_manifest_entry(self, **kwargs: Unpack[CreateManifestEntryKwargs]) -> schema.ManifestEntry:
		entry = schema.ManifestEntry(**kwargs)
		self.add(entry)
		self.flush()  # this generates entry.id
		return entry

	def get_manifest_entry_opt(self, file_name: str) -> Optional[schema.ManifestEntry]:
		return self.session.execute(
			select(schema.ManifestEntry).where(schema.ManifestEntry.file_name == file_name)
		).scalar_one_or_none()

	def get_manifest_entry(self, file_name: str) -> schema.ManifestEntry:
		entry = self.get_manifest_entry_opt(file_name)
		if entry is None:
			raise ManifestEntryNotFound(file_name)
		return entry

	def get_manifest_entries_by_names(self, file_names: List[str]) -> Dict[str, Optional[schema.ManifestEntry]]:
		"""
		:return: a dict, file name -> optional manifest entry. All given file names are in the dict
		"""
		result: Dict[str, Optional[schema.ManifestEntry]] = {name: None for name in file_names}
		for i in range(0, len(file_names), self.__safe_var_limit):
			view = file_names[i:i + self.__safe_var_limit]
			for entry in self.session.execute(select(schema.ManifestEntry).where(schema.ManifestEntry.file_name.in_(view))).scalars().all():
				result[entry.file_name] = entry
		return result

	def list_manifest_entries(self) -> List[schema.ManifestEntry]:
		return _list_it(self.session.execute(select(schema.ManifestEntry).order_by(schema.ManifestEntry.id)).scalars().all())

	def get_manifest_entry_count(self) -> int:
		return _int_or_0(self.session.execute(select(func.count()).select_from(schema.ManifestEntry)).scalar_one())

	# ============================== CompressedFileEntry ==============================

	class CreateSegmentKwargs(TypedDict):
		manifest_entry_id: int
		segment_index: int
		segment_name: str
		repository_entry_id: int

	def create_and_add_segment(self, **kwargs: Unpack[CreateSegmentKwargs]) -> schema.CompressedFileEntry:
		segment = schema.CompressedFileEntry(**kwargs)
		self.add(segment)
		return segment

	def get_segments(self, manifest_entry_id: int) -> List[schema.CompressedFileEntry]:
		"""
		:return: segments of the manifest entry, ordered by segment index
		"""
		s = select(schema.CompressedFileEntry).where(schema.CompressedFileEntry.manifest_entry_id == manifest_entry_id).order_by(schema.CompressedFileEntry.segment_index)
		return _list_it(self.session.execute(s).scalars().all())

	def delete_segments(self, segment_ids: List[int]):
		for i in range(0, len(segment_ids), self.__safe_var_limit):
			view = segment_ids[i:i + self.__safe_var_limit]
			self.session.execute(delete(schema.CompressedFileEntry).where(schema.CompressedFileEntry.id.in_(view)))

	def get_segment_count(self) -> int:
		return _int_or_0(self.session.execute(select(func.count()).select_from(schema.CompressedFileEntry)).scalar_one())

	def get_segment_counts_by_bin(self) -> Dict[int, int]:
		s = select(schema.CompressedFileEntry.repository_entry_id, func.count()).group_by(schema.CompressedFileEntry.repository_entry_id)
		return {bin_id: cnt for bin_id, cnt in self.session.execute(s).all()}

	# ================================ RepositoryEntry ================================

	def create_and_add_bin(self, repository_name: str) -> schema.RepositoryEntry:
		repository = schema.RepositoryEntry(repository_name=repository_name)
		self.add(repository)
		self.flush()  # this generates repository.id
		return repository

	def get_bin_opt(self, repository_name: str) -> Optional[schema.RepositoryEntry]:
		return self.session.execute(
			select(schema.RepositoryEntry).where(schema.RepositoryEntry.repository_name == repository_name)
		).scalar_one_or_none()

	def get_or_create_bin(self, repository_name: str) -> schema.RepositoryEntry:
		repository = self.get_bin_opt(repository_name)
		if repository is None:
			repository = self.create_and_add_bin(repository_name)
		return repository

	def get_bin_by_id_opt(self, repository_id: int) -> Optional[schema.RepositoryEntry]:
		return self.session.get(schema.RepositoryEntry, repository_id)

	def get_bin_by_id(self, repository_id: int) -> schema.RepositoryEntry:
		repository = self.get_bin_by_id_opt(repository_id)
		if repository is None:
			raise BinNotFound(repository_id)
		return repository

	def list_bins(self) -> List[schema.RepositoryEntry]:
		return _list_it(self.session.execute(select(schema.RepositoryEntry).order_by(schema.RepositoryEntry.id)).scalars().all())

	# ==================================== Restore ====================================

	def get_entries_for_restore(self) -> Dict[ManifestEntryInfo, List[SegmentLocation]]:
		"""
		:return: a dict, manifest entry -> locations of all its segments, ordered by segment index
		"""
		bins: Dict[int, schema.RepositoryEntry] = {repo.id: repo for repo in self.list_bins()}
		result: Dict[ManifestEntryInfo, List[SegmentLocation]] = {}
		for entry in self.list_manifest_entries():
			locations = []
			for segment in self.get_segments(entry.id):
				if (repository := bins.get(segment.repository_entry_id)) is None:
					raise BinNotFound(segment.repository_entry_id)
				locations.append(SegmentLocation.of(segment, repository))
			result[ManifestEntryInfo.of(entry)] = locations
		return result
