import dataclasses
from typing import Dict

from git_backup.action import Action
from git_backup.db.access import DbAccess


@dataclasses.dataclass(frozen=True)
class ManifestOverviewResult:
	db_version: int
	manifest_entry_count: int
	segment_count: int
	bin_count: int
	segment_count_by_bin: Dict[str, int]
	db_file_size: int


class GetManifestOverviewAction(Action[ManifestOverviewResult]):
	def run(self) -> ManifestOverviewResult:
		db_file_size = DbAccess.get_db_file_path().stat().st_size
		with DbAccess.open_session() as session:
			meta = session.get_db_meta()
			counts = session.get_segment_counts_by_bin()
			bins = session.list_bins()
			return ManifestOverviewResult(
				db_version=meta.version,
				manifest_entry_count=session.get_manifest_entry_count(),
				segment_count=session.get_segment_count(),
				bin_count=len(bins),
				segment_count_by_bin={repo.repository_name: counts.get(repo.id, 0) for repo in bins},
				db_file_size=db_file_size,
			)
