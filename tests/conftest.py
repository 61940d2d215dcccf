"""Shared test fixtures for the version store test suite.

Every test gets a fresh in-memory SQLite database holding the version and
audit tables plus a handful of content tables, so tests are fully isolated
and need no running database server.
"""

import os

os.environ["LOG_FORMAT"] = "text"

import pytest
from sqlalchemy import (
    Column, Integer, LargeBinary, MetaData, String, Table, Text, create_engine, insert,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from versionstore.core.config import Settings
from versionstore.database import init_db
from versionstore.identity import Actor
from versionstore.registry import FieldDescriptor, SchemaRegistry, TableSchema
from versionstore.services.file_service import FileStore

NOW = 1_700_000_000

content_metadata = MetaData()

news_table = Table(
    "tl_news", content_metadata,
    Column("id", Integer, primary_key=True),
    Column("tstamp", Integer, nullable=False, default=0),
    Column("title", String(255), nullable=False, default=""),
    Column("headline", Text, nullable=False, default=""),
    Column("teaser", Text, nullable=False, default=""),
    Column("date", Integer, nullable=False, default=0),
    Column("time", Integer, nullable=False, default=0),
    Column("start", Integer, nullable=False, default=0),
    Column("password", String(255), nullable=False, default=""),
    Column("categories", Text, nullable=False, default=""),
    Column("tags", String(255), nullable=False, default=""),
    Column("secret", String(255), nullable=False, default=""),
    Column("singleSRC", LargeBinary(16), nullable=True),
)

files_table = Table(
    "tl_files", content_metadata,
    Column("id", Integer, primary_key=True),
    Column("tstamp", Integer, nullable=False, default=0),
    Column("path", String(1022), nullable=False, default=""),
    Column("extension", String(16), nullable=False, default=""),
    Column("name", String(255), nullable=False, default=""),
)

user_table = Table(
    "tl_user", content_metadata,
    Column("id", Integer, primary_key=True),
    Column("tstamp", Integer, nullable=False, default=0),
    Column("username", String(64), nullable=False, default=""),
    Column("name", String(255), nullable=False, default=""),
)

page_table = Table(
    "tl_page", content_metadata,
    Column("id", Integer, primary_key=True),
    Column("tstamp", Integer, nullable=False, default=0),
    Column("title", String(255), nullable=False, default=""),
)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    content_metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    """Per-test database session."""
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        upload_root=str(tmp_path),
        editable_files="css,txt,svg,svgz",
        date_format="%Y-%m-%d",
        time_format="%H:%M",
        datim_format="%Y-%m-%d %H:%M",
    )


@pytest.fixture()
def files(tmp_path, settings) -> FileStore:
    return FileStore(tmp_path, settings.get_editable_extensions())


@pytest.fixture()
def registry() -> SchemaRegistry:
    registry = SchemaRegistry(decryptor=lambda value: value[::-1])
    registry.register(TableSchema(
        name="tl_news",
        enable_versioning=True,
        fields={
            "title": FieldDescriptor(label="Title"),
            "headline": FieldDescriptor(label="Headline"),
            "teaser": FieldDescriptor(label="Teaser text"),
            "date": FieldDescriptor(label="Date", date_kind="date"),
            "time": FieldDescriptor(label="Time", date_kind="time"),
            "start": FieldDescriptor(label="Show from", date_kind="datim"),
            "password": FieldDescriptor(label="Password", hidden=True),
            "categories": FieldDescriptor(label="Categories", multiple=True),
            "tags": FieldDescriptor(label="Tags", multiple=True, delimiter=","),
            "secret": FieldDescriptor(label="Secret", encrypted=True),
            "singleSRC": FieldDescriptor(label="Source file", input_type="fileTree"),
        },
    ))
    registry.register(TableSchema(name="tl_files", enable_versioning=True))
    registry.register(TableSchema(name="tl_user", enable_versioning=True))
    registry.register(TableSchema(name="tl_page", enable_versioning=False))
    return registry


@pytest.fixture()
def editor() -> Actor:
    return Actor(username="k.jones", user_id=2, is_admin=False)


@pytest.fixture()
def admin() -> Actor:
    return Actor(username="admin", user_id=1, is_admin=True)


def add_row(db, table: Table, **values) -> int:
    """Insert a content row and commit. Returns its id."""
    values.setdefault("tstamp", NOW)
    result = db.execute(insert(table).values(**values))
    db.commit()
    return result.inserted_primary_key[0]


def update_row(db, table: Table, record_id: int, **values) -> None:
    db.execute(table.update().where(table.c.id == record_id).values(**values))
    db.commit()


def get_row(db, table: Table, record_id: int) -> dict:
    row = db.execute(table.select().where(table.c.id == record_id)).mappings().first()
    return dict(row) if row is not None else None
