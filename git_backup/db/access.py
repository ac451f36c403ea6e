import contextlib
from pathlib import Path
from typing import Optional, ContextManager

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session

from git_backup.db.migration import DbMigration
from git_backup.db.session import DbSession


class DbAccess:
	__engine: Optional[Engine] = None
	__db_file_path: Optional[Path] = None

	@classmethod
	def init(cls, db_path: Path, *, create: bool):
		"""
		:param db_path: path to the manifest database file
		:param create: create the database if it does not exist
		"""
		cls.shutdown()
		if create:
			db_path.parent.mkdir(parents=True, exist_ok=True)
		elif not db_path.is_file():
			from git_backup.exceptions import ManifestNotFound
			raise ManifestNotFound(db_path)

		cls.__engine = create_engine('sqlite:///' + str(db_path))
		cls.__db_file_path = db_path

		migration = DbMigration(cls.__engine)
		migration.check_and_create(create=create)

	@classmethod
	def shutdown(cls):
		if (engine := cls.__engine) is not None:
			engine.dispose()
			cls.__engine = None
			cls.__db_file_path = None

	@classmethod
	def __ensure_engine(cls) -> Engine:
		if cls.__engine is None:
			raise RuntimeError('engine unavailable')
		return cls.__engine

	@classmethod
	def get_db_file_path(cls) -> Path:
		if cls.__db_file_path is None:
			raise RuntimeError('db is not initialized yet')
		return cls.__db_file_path

	@classmethod
	@contextlib.contextmanager
	def open_session(cls) -> ContextManager['DbSession']:
		with Session(cls.__ensure_engine()) as session, session.begin():
			yield DbSession(session, cls.__db_file_path)
