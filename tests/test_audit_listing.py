"""Tests for the cross-table audit listing of edited versions."""

import pytest
from sqlalchemy import delete

from tests.conftest import NOW, add_row, files_table, news_table, user_table
from versionstore.identity import Actor
from versionstore.models import VersionRecord
from versionstore.services.version_service import list_for_audit


def _add_version(db, table="tl_news", pid=1, version=2, user_id=1, tstamp=NOW,
                 edit_url="contao?do=news&act=edit&id=1", description="A news item", username="admin"):
    db.add(VersionRecord(
        from_table=table, pid=pid, version=version, tstamp=tstamp, user_id=user_id,
        username=username, edit_url=edit_url, description=description, data="{}",
    ))
    db.commit()


class TestPagination:

    def test_31_versions_make_two_pages(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        for version in range(2, 33):
            _add_version(db, pid=record_id, version=version, tstamp=NOW + version)

        first = list_for_audit(db, admin, page=1, page_size=30, settings=settings)
        assert len(first.items) == 30
        assert first.total == 31
        assert first.last_page == 2
        assert first.not_found is False
        assert first.items[0].version == 32

        second = list_for_audit(db, admin, page=2, page_size=30, settings=settings)
        assert [item.version for item in second.items] == [2]

    def test_page_out_of_range(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        for version in range(2, 33):
            _add_version(db, pid=record_id, version=version)

        assert list_for_audit(db, admin, page=3, page_size=30, settings=settings).not_found is True
        assert list_for_audit(db, admin, page=0, page_size=30, settings=settings).not_found is True

    def test_empty_listing_is_not_an_error(self, db, admin, settings):
        page = list_for_audit(db, admin, page=1, settings=settings)
        assert page.items == []
        assert page.total == 0
        assert page.not_found is False

    def test_default_page_size_from_settings(self, db, admin, settings):
        assert list_for_audit(db, admin, settings=settings).page_size == settings.audit_page_size


class TestEligibility:

    def test_first_versions_and_missing_edit_urls_are_excluded(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        _add_version(db, pid=record_id, version=1)
        _add_version(db, pid=record_id, version=2, edit_url=None)
        _add_version(db, pid=record_id, version=3, edit_url="")
        _add_version(db, pid=record_id, version=4)

        page = list_for_audit(db, admin, settings=settings)
        assert [item.version for item in page.items] == [4]
        assert page.total == 1

    def test_editors_only_see_their_own_versions(self, db, settings):
        record_id = add_row(db, news_table, title="A")
        _add_version(db, pid=record_id, version=2, user_id=1)
        _add_version(db, pid=record_id, version=3, user_id=2)

        page = list_for_audit(db, Actor(username="k.jones", user_id=2), settings=settings)
        assert [item.version for item in page.items] == [3]

    def test_user_table_hidden_without_user_module(self, db, settings):
        user_id = add_row(db, user_table, username="k.jones", name="K. Jones")
        _add_version(db, table="tl_user", pid=user_id, user_id=2)

        plain = Actor(username="k.jones", user_id=2)
        assert list_for_audit(db, plain, settings=settings).items == []

        with_module = Actor(username="k.jones", user_id=2, modules=["user"])
        assert len(list_for_audit(db, with_module, settings=settings).items) == 1


class TestAnnotations:

    def test_row_annotations(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        _add_version(
            db, table="tl_news", pid=record_id, version=5,
            description="A rather long description that will not fit in the list",
            edit_url="contao?do=news&act=edit&id=1&popup=1&rt=oldtoken",
        )

        item = list_for_audit(db, admin, request_token="fresh", settings=settings).items[0]
        assert item.from_version == 4
        assert item.to_version == 5
        assert item.description == "A rather long description that …"
        assert len(item.description) <= 34
        assert item.short_table == "tl_news"
        assert item.edit_url == "contao?do=news&act=edit&id=1&rt=fresh"
        assert item.date
        assert item.deleted is False

    def test_deleted_records_are_flagged(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        _add_version(db, pid=record_id)
        db.execute(delete(news_table).where(news_table.c.id == record_id))
        db.commit()

        item = list_for_audit(db, admin, settings=settings).items[0]
        assert item.deleted is True

    def test_missing_tables_are_dropped(self, db, admin, settings):
        record_id = add_row(db, news_table, title="A")
        _add_version(db, pid=record_id, version=2)
        _add_version(db, table="tl_disabled_module", pid=1, version=2)

        page = list_for_audit(db, admin, settings=settings)
        assert [item.from_table for item in page.items] == ["tl_news"]

    def test_deleted_files_are_dropped(self, db, admin, settings):
        file_id = add_row(db, files_table, path="files/a.css", extension="css")
        _add_version(db, table="tl_files", pid=file_id, version=2)
        _add_version(db, table="tl_files", pid=file_id + 100, version=2)

        page = list_for_audit(db, admin, settings=settings)
        assert [item.pid for item in page.items] == [file_id]


@pytest.mark.parametrize("version, expected", [(2, 1), (3, 2), (10, 9)])
def test_from_version_is_previous(db, admin, settings, version, expected):
    record_id = add_row(db, news_table, title="A")
    _add_version(db, pid=record_id, version=version)
    assert list_for_audit(db, admin, settings=settings).items[0].from_version == expected
