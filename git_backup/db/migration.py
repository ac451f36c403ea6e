from typing import Optional

from sqlalchemy import Engine, inspect
from sqlalchemy.orm import Session

from git_backup import logger
from git_backup.db import schema, db_constants
from git_backup.exceptions import GitBackupError


class BadDbVersion(GitBackupError):
	pass


class DbMigration:
	DB_MAGIC_INDEX = db_constants.DB_MAGIC_INDEX
	DB_VERSION = db_constants.DB_VERSION

	def __init__(self, engine: Engine):
		self.logger = logger.get()
		self.engine = engine

	def check_and_create(self, *, create: bool):
		if inspect(self.engine).has_table(schema.DbMeta.__tablename__):
			with Session(self.engine) as session, session.begin():
				dbm: Optional[schema.DbMeta] = session.get(schema.DbMeta, self.DB_MAGIC_INDEX)
				if dbm is None:
					raise BadDbVersion('table {} is empty'.format(schema.DbMeta.__tablename__))
				current_version = dbm.version

			if current_version != self.DB_VERSION:
				raise BadDbVersion('DB version mismatch, expect {}, found {}'.format(self.DB_VERSION, current_version))
		else:
			if not create:
				raise BadDbVersion('table {} not found'.format(schema.DbMeta.__tablename__))

			self.logger.info('Table {} does not exist, assuming newly created manifest, create everything'.format(schema.DbMeta.__tablename__))
			self.__create_the_world()

	def __create_the_world(self):
		schema.Base.metadata.create_all(self.engine)
		with Session(self.engine) as session, session.begin():
			session.add(schema.DbMeta(
				magic=self.DB_MAGIC_INDEX,
				version=self.DB_VERSION,
			))
