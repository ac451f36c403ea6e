from typing import get_type_hints

from sqlalchemy import String, Integer, ForeignKey, BigInteger, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
	def __repr__(self) -> str:
		return '{}({})'.format(
			self.__class__.__name__,
			', '.join(f'{k}={v!r}' for k, v in self.to_dict().items()),
		)

	def to_dict(self) -> dict:
		values = {}
		for name, type_ in get_type_hints(self.__class__).items():
			if name == '__fields_end__':
				break
			if not name.startswith('_') and getattr(type_, '__origin__', None) == Mapped:
				values[name] = getattr(self, name)
		return values


class DbMeta(Base):
	__tablename__ = 'db_meta'

	magic: Mapped[int] = mapped_column(Integer, primary_key=True)
	version: Mapped[int] = mapped_column(Integer)


class ManifestEntry(Base):
	__tablename__ = 'manifest_entry'
	__table_args__ = {'sqlite_autoincrement': True}

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	file_name: Mapped[str] = mapped_column(String, unique=True, index=True)  # posix path related to the source root
	created: Mapped[int] = mapped_column(BigInteger)  # timestamp in us
	last_modified: Mapped[int] = mapped_column(BigInteger)  # timestamp in us, time of the last successful backup

	__fields_end__: bool


class RepositoryEntry(Base):
	__tablename__ = 'repository_entry'
	__table_args__ = {'sqlite_autoincrement': True}

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	repository_name: Mapped[str] = mapped_column(String, unique=True, index=True)

	__fields_end__: bool


class CompressedFileEntry(Base):
	__tablename__ = 'compressed_file_entry'
	__table_args__ = (
		UniqueConstraint('manifest_entry_id', 'segment_index'),
		{'sqlite_autoincrement': True},
	)

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	manifest_entry_id: Mapped[int] = mapped_column(ForeignKey('manifest_entry.id'), index=True)
	segment_index: Mapped[int] = mapped_column(Integer)  # 0: the primary artifact, 1..N: continuations
	segment_name: Mapped[str] = mapped_column(String)
	repository_entry_id: Mapped[int] = mapped_column(ForeignKey('repository_entry.id'), index=True)

	__fields_end__: bool
