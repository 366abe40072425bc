"""SQLAlchemy-backed CatalogStore (SQLite by default, any SQLAlchemy URL works)."""

from __future__ import annotations

import json
import os
import threading
from contextlib import contextmanager, nullcontext
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import NullPool

from spring_catalog.models.catalog import (
    CodeExample,
    CompatibilityLink,
    DocumentationContent,
    Project,
    ProjectRelationship,
    ProjectSummary,
    Version,
    VersionState,
)


class Base(DeclarativeBase):
    pass


class ProjectRecord(Base):
    __tablename__ = "catalog_projects"

    slug: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    homepage_url: Mapped[str | None] = mapped_column(String, nullable=True)
    repository_url: Mapped[str | None] = mapped_column(String, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class VersionRecord(Base):
    __tablename__ = "catalog_versions"
    __table_args__ = (UniqueConstraint("project_slug", "version", name="uq_catalog_version"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
    version: Mapped[str] = mapped_column(String, nullable=False)
    major: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    minor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patch: Mapped[int | None] = mapped_column(Integer, nullable=True)
    state: Mapped[str] = mapped_column(String, nullable=False, default=VersionState.GA.value)
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    release_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    oss_support_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    enterprise_support_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    reference_doc_url: Mapped[str | None] = mapped_column(String, nullable=True)
    api_doc_url: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CompatibilityRecord(Base):
    __tablename__ = "catalog_compatibility"
    __table_args__ = (
        UniqueConstraint(
            "anchor_slug", "anchor_version", "target_slug", "target_version", name="uq_catalog_compatibility"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    anchor_slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
    anchor_version: Mapped[str] = mapped_column(String, nullable=False)
    target_slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
    target_version: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RelationshipRecord(Base):
    __tablename__ = "catalog_relationships"

    parent_slug: Mapped[str] = mapped_column(String, primary_key=True)
    child_slug: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DocumentationRecord(Base):
    __tablename__ = "catalog_documentation"

    url: Mapped[str] = mapped_column(String, primary_key=True)
    project_slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
    version: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    last_fetched: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class CodeExampleRecord(Base):
    __tablename__ = "catalog_code_examples"
    __table_args__ = (
        UniqueConstraint("project_slug", "version", "title", "source_url", name="uq_catalog_code_example"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
    version: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    code: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String, nullable=False, default="java")
    category: Mapped[str] = mapped_column(String, nullable=False, default="")
    tags_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    source_url: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _key(slug: str) -> str:
    return slug.strip().lower()


def database_url() -> str | None:
    return os.getenv("CATALOG_DATABASE_URL") or os.getenv("DATABASE_URL") or None


def default_sqlite_url() -> str:
    path = Path(__file__).resolve().parents[2] / "logs" / "catalog.db"
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{path}"


def _create_engine(url: str):
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = NullPool
    return create_engine(url, **kwargs)


def _load_json(raw: str, default):
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return default
    return data if isinstance(data, type(default)) else default


def _project(row: ProjectRecord) -> Project:
    return Project(
        slug=row.slug,
        name=row.name,
        description=row.description,
        homepage_url=row.homepage_url,
        repository_url=row.repository_url,
        active=bool(row.active),
        created_at=row.created_at,
    )


def _version(row: VersionRecord) -> Version:
    return Version(
        project_slug=row.project_slug,
        version=row.version,
        major=row.major,
        minor=row.minor,
        patch=row.patch,
        state=VersionState(row.state),
        is_latest=bool(row.is_latest),
        is_default=bool(row.is_default),
        release_date=row.release_date,
        oss_support_end=row.oss_support_end,
        enterprise_support_end=row.enterprise_support_end,
        reference_doc_url=row.reference_doc_url,
        api_doc_url=row.api_doc_url,
        status=row.status,
        created_at=row.created_at,
    )


def _documentation(row: DocumentationRecord) -> DocumentationContent:
    return DocumentationContent(
        url=row.url,
        project_slug=row.project_slug,
        version=row.version,
        title=row.title,
        description=row.description,
        content_hash=row.content_hash,
        content=row.content,
        metadata=_load_json(row.metadata_json, {}),
        last_fetched=row.last_fetched,
    )


def _code_example(row: CodeExampleRecord) -> CodeExample:
    return CodeExample(
        project_slug=row.project_slug,
        version=row.version,
        title=row.title,
        description=row.description,
        code=row.code,
        language=row.language,
        category=row.category,
        tags=[t for t in _load_json(row.tags_json, []) if isinstance(t, str)],
        source_url=row.source_url,
        created_at=row.created_at,
    )


class SqlCatalogStore:
    """CatalogStore over SQLAlchemy.

    Outside `transaction()` every call runs in its own short session. Inside,
    calls made by the same thread share one session that commits when the
    outermost block exits. SQLite transactions are serialized: two deferred
    transactions upgrading to write locks at once fail with "database is locked".
    """

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("database_url is required for SqlCatalogStore")
        self.engine = _create_engine(database_url)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self._local = threading.local()
        self._write_guard = threading.Lock() if database_url.startswith("sqlite") else None
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "session", None) is not None:
            yield
            return
        with self._write_guard or nullcontext():
            session = self.SessionLocal()
            self._local.session = session
            try:
                yield
                session.commit()
            except BaseException:
                session.rollback()
                raise
            finally:
                self._local.session = None
                session.close()

    # --- projects ---

    def get_project(self, slug: str) -> Optional[Project]:
        with self._session() as session:
            row = session.get(ProjectRecord, _key(slug))
            return _project(row) if row is not None else None

    def save_project(self, project: Project) -> None:
        with self._session() as session:
            row = session.get(ProjectRecord, _key(project.slug))
            if row is None:
                row = ProjectRecord(slug=_key(project.slug), created_at=project.created_at)
                session.add(row)
            row.name = project.name
            row.description = project.description
            row.homepage_url = project.homepage_url
            row.repository_url = project.repository_url
            row.active = project.active
            session.flush()

    def list_projects(self, active_only: bool = False) -> list[Project]:
        with self._session() as session:
            stmt = select(ProjectRecord).order_by(ProjectRecord.slug.asc())
            if active_only:
                stmt = stmt.where(ProjectRecord.active.is_(True))
            return [_project(r) for r in session.scalars(stmt).all()]

    def count_projects(self) -> int:
        with self._session() as session:
            return int(session.scalar(select(func.count()).select_from(ProjectRecord)) or 0)

    def search(self, query: str, limit: int = 20) -> list[ProjectSummary]:
        q = query.lower().strip()
        if not q:
            return []
        pattern = f"%{q}%"
        with self._session() as session:
            stmt = (
                select(ProjectRecord)
                .where(
                    or_(
                        func.lower(ProjectRecord.slug).like(pattern),
                        func.lower(ProjectRecord.name).like(pattern),
                        func.lower(func.coalesce(ProjectRecord.description, "")).like(pattern),
                    )
                )
                .order_by(ProjectRecord.slug.asc())
                .limit(limit)
            )
            return [
                ProjectSummary(slug=r.slug, name=r.name, description=r.description or "")
                for r in session.scalars(stmt).all()
            ]

    # --- versions ---

    def _version_row(self, session: Session, project_slug: str, version: str) -> VersionRecord | None:
        stmt = select(VersionRecord).where(
            VersionRecord.project_slug == _key(project_slug),
            VersionRecord.version == version.strip(),
        )
        return session.scalars(stmt).first()

    def get_version(self, project_slug: str, version: str) -> Optional[Version]:
        with self._session() as session:
            row = self._version_row(session, project_slug, version)
            return _version(row) if row is not None else None

    def save_version(self, version: Version) -> None:
        with self._session() as session:
            row = self._version_row(session, version.project_slug, version.version)
            if row is None:
                row = VersionRecord(
                    project_slug=_key(version.project_slug),
                    version=version.version.strip(),
                    created_at=version.created_at,
                )
                session.add(row)
            row.major = version.major
            row.minor = version.minor
            row.patch = version.patch
            row.state = version.state.value
            row.is_latest = version.is_latest
            row.is_default = version.is_default
            row.release_date = version.release_date
            row.oss_support_end = version.oss_support_end
            row.enterprise_support_end = version.enterprise_support_end
            row.reference_doc_url = version.reference_doc_url
            row.api_doc_url = version.api_doc_url
            row.status = version.status
            session.flush()

    def list_versions(self, project_slug: str) -> list[Version]:
        with self._session() as session:
            stmt = select(VersionRecord).where(VersionRecord.project_slug == _key(project_slug))
            out = [_version(r) for r in session.scalars(stmt).all()]
        return sorted(out, key=lambda v: v.sort_key(), reverse=True)

    def find_versions(self, project_slug: str, major: int, minor: int) -> list[Version]:
        with self._session() as session:
            stmt = select(VersionRecord).where(
                VersionRecord.project_slug == _key(project_slug),
                VersionRecord.major == major,
                VersionRecord.minor == minor,
            )
            out = [_version(r) for r in session.scalars(stmt).all()]
        return sorted(out, key=lambda v: v.sort_key(), reverse=True)

    # --- compatibility ---

    def compatibility_exists(
        self, anchor_slug: str, anchor_version: str, target_slug: str, target_version: str
    ) -> bool:
        with self._session() as session:
            stmt = select(CompatibilityRecord.id).where(
                CompatibilityRecord.anchor_slug == _key(anchor_slug),
                CompatibilityRecord.anchor_version == anchor_version,
                CompatibilityRecord.target_slug == _key(target_slug),
                CompatibilityRecord.target_version == target_version,
            )
            return session.scalars(stmt).first() is not None

    def add_compatibility(self, link: CompatibilityLink) -> None:
        with self._session() as session:
            session.add(
                CompatibilityRecord(
                    anchor_slug=_key(link.anchor_slug),
                    anchor_version=link.anchor_version,
                    target_slug=_key(link.target_slug),
                    target_version=link.target_version,
                    created_at=link.created_at,
                )
            )
            session.flush()

    def list_compatibility(self, anchor_slug: Optional[str] = None) -> list[CompatibilityLink]:
        with self._session() as session:
            stmt = select(CompatibilityRecord).order_by(CompatibilityRecord.id.asc())
            if anchor_slug:
                stmt = stmt.where(CompatibilityRecord.anchor_slug == _key(anchor_slug))
            return [
                CompatibilityLink(
                    anchor_slug=r.anchor_slug,
                    anchor_version=r.anchor_version,
                    target_slug=r.target_slug,
                    target_version=r.target_version,
                    created_at=r.created_at,
                )
                for r in session.scalars(stmt).all()
            ]

    # --- relationships ---

    def relationship_exists(self, parent_slug: str, child_slug: str) -> bool:
        with self._session() as session:
            return session.get(RelationshipRecord, (_key(parent_slug), _key(child_slug))) is not None

    def add_relationship(self, relationship: ProjectRelationship) -> None:
        with self._session() as session:
            session.add(
                RelationshipRecord(
                    parent_slug=_key(relationship.parent_slug),
                    child_slug=_key(relationship.child_slug),
                    created_at=relationship.created_at,
                )
            )
            session.flush()

    def list_children(self, parent_slug: str) -> list[str]:
        with self._session() as session:
            stmt = (
                select(RelationshipRecord.child_slug)
                .where(RelationshipRecord.parent_slug == _key(parent_slug))
                .order_by(RelationshipRecord.child_slug.asc())
            )
            return list(session.scalars(stmt).all())

    # --- documentation + examples ---

    def get_documentation(self, url: str) -> Optional[DocumentationContent]:
        with self._session() as session:
            row = session.get(DocumentationRecord, url)
            return _documentation(row) if row is not None else None

    def save_documentation(self, doc: DocumentationContent) -> None:
        with self._session() as session:
            row = session.get(DocumentationRecord, doc.url)
            if row is None:
                row = DocumentationRecord(url=doc.url)
                session.add(row)
            row.project_slug = _key(doc.project_slug)
            row.version = doc.version
            row.title = doc.title
            row.description = doc.description
            row.content_hash = doc.content_hash
            row.content = doc.content
            row.metadata_json = json.dumps(doc.metadata)
            row.last_fetched = doc.last_fetched
            session.flush()

    def code_example_exists(self, project_slug: str, version: str, title: str, source_url: str) -> bool:
        with self._session() as session:
            stmt = select(CodeExampleRecord.id).where(
                CodeExampleRecord.project_slug == _key(project_slug),
                CodeExampleRecord.version == version,
                CodeExampleRecord.title == title,
                CodeExampleRecord.source_url == source_url,
            )
            return session.scalars(stmt).first() is not None

    def add_code_example(self, example: CodeExample) -> None:
        with self._session() as session:
            session.add(
                CodeExampleRecord(
                    project_slug=_key(example.project_slug),
                    version=example.version,
                    title=example.title,
                    description=example.description,
                    code=example.code,
                    language=example.language,
                    category=example.category,
                    tags_json=json.dumps(example.tags),
                    source_url=example.source_url,
                    created_at=example.created_at,
                )
            )
            session.flush()

    def list_code_examples(self, project_slug: str) -> list[CodeExample]:
        with self._session() as session:
            stmt = (
                select(CodeExampleRecord)
                .where(CodeExampleRecord.project_slug == _key(project_slug))
                .order_by(CodeExampleRecord.id.asc())
            )
            return [_code_example(r) for r in session.scalars(stmt).all()]
