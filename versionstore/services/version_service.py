"""Version service: snapshots, restores and comparisons of content records.

One service instance handles one record, identified by its table and id
(a "group" of versions). The table must be registered in the schema
registry; tables without ``enable_versioning`` accept every call and do
nothing.

Usage:
    service = VersionService(db, registry, "tl_news", 5, actor)
    service.initialize()          # once, right after the record was created
    service.create()              # after every save
    service.compare(query={"from": 1, "to": 2}).content
    service.restore(1)
"""

import logging
import math
import time
import warnings
from typing import Any, Dict, List, Mapping, Optional

import sqlalchemy.exc
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.orm import Session

from .. import lang
from ..core.config import Settings, settings as default_settings
from ..exceptions import StorageError, VersionConflictError
from ..identity import ANONYMOUS, Actor
from ..models import VersionRecord
from ..registry import SchemaRegistry
from ..repositories import RowRepository, VersionRepository, storage_errors
from ..schemas import AuditPage, Comparison, VersionOption, VersionSummary
from ..utils.payload import dump_payload, load_payload
from ..utils.text import maybe_structured, truncate
from ..utils.urls import build_edit_url, clean_audit_edit_url
from . import audit_service
from .diff_service import FieldDiffer, format_date
from .file_service import FileStore

logger = logging.getLogger(__name__)

# Fields tried in order for a version's description.
DESCRIPTION_FIELDS = ("title", "name", "firstname", "headline", "selector", "subject")

AUDIT_DESCRIPTION_LENGTH = 32
AUDIT_TABLE_LENGTH = 18


def _now() -> int:
    return int(time.time())


def derive_description(row: Mapping[str, Any]) -> str:
    """Pick a human-readable label for a row from its title-like fields."""
    for key in DESCRIPTION_FIELDS:
        value = row.get(key)
        if not value:
            continue
        if key == "firstname":
            return f"{value} {row.get('lastname') or ''}"
        if key == "headline":
            chunks = maybe_structured(value)
            if isinstance(chunks, dict) and "value" in chunks:
                return str(chunks["value"] or "")
        return str(value)
    return ""


def _has_timestamp(row: Mapping[str, Any]) -> bool:
    value = row.get("tstamp")
    if value is None:
        return False
    if hasattr(value, "timestamp"):
        return True
    try:
        return int(value) >= 1
    except (TypeError, ValueError):
        return False


def _version_number(params: Optional[Mapping[str, Any]], key: str, known: Mapping[int, Any]) -> int:
    """Version number requested in ``params[key]`` if it names an existing version, else 0."""
    if not params:
        return 0
    try:
        number = int(params.get(key) or 0)
    except (TypeError, ValueError):
        return 0
    return number if number in known else 0


class VersionService:
    """Deep module for the versions of one record.

    Encapsulates snapshot creation, restore, comparison and the retention
    sweep. Each public method runs its writes in one transaction and
    commits it; storage failures are rolled back and raised as StorageError.
    """

    def __init__(
        self,
        db: Session,
        registry: SchemaRegistry,
        table: str,
        record_id: int,
        actor: Optional[Actor] = None,
        *,
        edit_url: Optional[str] = None,
        request_url: Optional[str] = None,
        request_token: Optional[str] = None,
        files: Optional[FileStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.registry = registry
        self.schema = registry.get(table)
        self.table = table
        self.record_id = int(record_id)
        self.actor = actor or ANONYMOUS
        self.settings = settings or default_settings
        self.files = files or FileStore(self.settings.upload_root, self.settings.get_editable_extensions())
        self.version_repo = VersionRepository(db)
        self.row_repo = RowRepository(db)
        self.request_url = request_url
        self.request_token = request_token
        self._edit_url = edit_url
        self._username: Optional[str] = None
        self._user_id: Optional[int] = None

    # ------------------------------------------------------------------
    # Editor overrides
    # ------------------------------------------------------------------

    def set_edit_url(self, edit_url: str) -> None:
        """Set the edit URL template; ``%s`` is replaced by the record id."""
        self._edit_url = edit_url

    def set_username(self, username: str) -> None:
        self._username = username

    def set_user_id(self, user_id: int) -> None:
        self._user_id = user_id

    @property
    def username(self) -> str:
        return self._username if self._username is not None else self.actor.username

    @property
    def user_id(self) -> int:
        return self._user_id if self._user_id is not None else self.actor.user_id

    @property
    def edit_url(self) -> str:
        return build_edit_url(self._edit_url, self.record_id, self.request_url,
                              self.actor.user_id, self.request_token)

    @property
    def enabled(self) -> bool:
        return self.schema.enable_versioning

    @property
    def _label(self) -> str:
        return f"{self.table}.id={self.record_id}"

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def latest_version(self) -> Optional[int]:
        """Highest version number of the record, 0 without versions, None when versioning is off."""
        if not self.enabled:
            return None
        with storage_errors(self.db, f"read versions of {self._label}"):
            return self.version_repo.max_version(self.table, self.record_id) or 0

    def initialize(self) -> Optional[VersionRecord]:
        """Create the first version unless the record already has one."""
        if not self.enabled:
            return None
        with storage_errors(self.db, f"count versions of {self._label}"):
            if self.version_repo.count(self.table, self.record_id) > 0:
                return None
        return self.create()

    def purge_expired(self) -> int:
        """Delete versions of all tables older than the retention period."""
        cutoff = _now() - self.settings.version_period
        with storage_errors(self.db, "purge expired versions"):
            count = self.version_repo.delete_older_than(cutoff)
            self.db.commit()
        if count:
            logger.info("Purged expired versions", extra={"count": count, "cutoff": cutoff})
        return count

    def create(self) -> Optional[VersionRecord]:
        """Store the current state of the record as a new, active version.

        Returns None without touching the versions when versioning is off,
        the record is missing, or the record has no modification timestamp.
        """
        if not self.enabled:
            return None

        self.purge_expired()

        with storage_errors(self.db, f"read {self._label}"):
            row = self.row_repo.get(self.table, self.record_id)

        if row is None or not _has_timestamp(row):
            logger.debug("Skipping version of missing or unsaved record", extra={"table": self.table,
                                                                                  "record_id": self.record_id})
            return None

        row = self._capture_file(row)
        description = derive_description(row)[:255]
        record = self._insert(row, description)

        for hook in self.schema.on_create_version:
            hook(self.table, self.record_id, record.version, dict(row))

        audit_service.log(
            self.db, self.actor,
            action="version_create",
            resource_type=self.table,
            resource_id=self.record_id,
            message=f'Version {record.version} of record "{self._label}" has been created',
            details={"version": record.version},
        )
        return record

    def _insert(self, row: Dict[str, Any], description: str) -> VersionRecord:
        """Deactivate the group and insert the next version in one transaction.

        A concurrent creator taking the same number trips the unique
        constraint; the attempt is rolled back and retried with a fresh max.
        """
        attempts = self.settings.version_create_retries
        payload = dump_payload(row)

        for attempt in range(1, attempts + 1):
            try:
                version = (self.version_repo.max_version(self.table, self.record_id) or 0) + 1
                self.version_repo.deactivate_group(self.table, self.record_id)
                record = self.version_repo.add(VersionRecord(
                    from_table=self.table,
                    pid=self.record_id,
                    version=version,
                    tstamp=_now(),
                    username=self.username or "",
                    user_id=self.user_id or 0,
                    description=description,
                    edit_url=self.edit_url,
                    active=True,
                    data=payload,
                ))
                self.db.commit()
                return record
            except sqlalchemy.exc.IntegrityError as e:
                self.db.rollback()
                logger.warning(
                    "Version number taken by a concurrent writer, retrying",
                    extra={"table": self.table, "record_id": self.record_id, "attempt": attempt},
                )
                if attempt == attempts:
                    raise VersionConflictError(self.table, self.record_id, attempts, e) from e
            except sqlalchemy.exc.SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError(f"Failed to create version of {self._label}", original_error=e) from e

    # ------------------------------------------------------------------
    # File registry
    # ------------------------------------------------------------------

    def _editable_file_path(self, row: Optional[Mapping[str, Any]]) -> Optional[str]:
        if self.table != self.settings.files_table or not row or not row.get("path"):
            return None
        path = str(row["path"])
        extension = str(row.get("extension") or self.files.extension(path)).lower()
        if extension not in self.files.editable_extensions:
            return None
        return path

    def _capture_file(self, row: Dict[str, Any]) -> Dict[str, Any]:
        path = self._editable_file_path(row)
        if path is None:
            return row
        return {**row, "content": self.files.read_content(path)}

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore(self, version: int) -> Optional[Dict[str, Any]]:
        """Write a stored version back onto the record and make it the active one.

        Returns the data written, or None when versioning is off, the
        version does not exist or its payload is unreadable.
        """
        if not self.enabled:
            return None

        with storage_errors(self.db, f"read version {version} of {self._label}"):
            record = self.version_repo.get_version(self.table, self.record_id, version)
        if record is None:
            return None

        data = load_payload(record.data)
        if data is None:
            logger.warning("Version payload is not a mapping", extra={"table": self.table,
                                                                      "record_id": self.record_id,
                                                                      "version": version})
            return None

        with storage_errors(self.db, f"read {self._label}"):
            live = self.row_repo.get(self.table, self.record_id)
            fields = self.row_repo.field_names(self.table)

        # Snapshots taken while the file type was not editable carry no content.
        path = self._editable_file_path(live)
        if path is not None and "content" in data:
            self.files.write_content(path, data["content"] or "")

        # Drop fields removed since, reset fields added since
        data = {k: v for k, v in data.items() if k in fields}
        for name in fields:
            if name not in data:
                data[name] = self.row_repo.empty_value(self.table, name, self.schema.fields.get(name))

        with storage_errors(self.db, f"restore version {version} of {self._label}"):
            self.row_repo.set(self.table, self.record_id, data)
            self.version_repo.activate_only(self.table, self.record_id, version)
            self.db.commit()

        for hook in self.schema.on_restore_version:
            hook(self.table, self.record_id, version, data)

        if self.schema.on_restore:
            warnings.warn(
                'The "on_restore" hooks are deprecated, use "on_restore_version" instead.',
                DeprecationWarning,
                stacklevel=2,
            )
            for legacy_hook in self.schema.on_restore:
                legacy_hook(self.record_id, self.table, data, version)

        audit_service.log(
            self.db, self.actor,
            action="version_restore",
            resource_type=self.table,
            resource_id=self.record_id,
            message=f'Version {version} of record "{self._label}" has been restored',
            details={"version": version},
        )
        return data

    # ------------------------------------------------------------------
    # Compare
    # ------------------------------------------------------------------

    def _options(self, versions: List[VersionRecord]) -> List[VersionOption]:
        label = lang.MSC["version"]
        return [
            VersionOption(
                version=v.version,
                tstamp=v.tstamp,
                username=v.username,
                active=bool(v.active),
                info=f"{label} {v.version} ({format_date(v.tstamp, self.settings.datim_format)}) {v.username}",
            )
            for v in versions
        ]

    def list_versions(self) -> List[VersionOption]:
        """Versions for a picker, newest first. Empty unless there is something to choose from."""
        with storage_errors(self.db, f"read versions of {self._label}"):
            versions = self.version_repo.get_group(self.table, self.record_id)
        if len(versions) < 2:
            return []
        return self._options(versions)

    def compare(
        self,
        form: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Comparison:
        """Render the field differences between two versions.

        ``form`` and ``query`` are the request body and query string; either
        may name ``from`` / ``to`` versions, the body winning. Without them
        ``to`` is the active version and ``from`` the newest version if the
        active one is not the newest, else the one before it.
        """
        with storage_errors(self.db, f"read versions of {self._label}"):
            versions = self.version_repo.get_group(self.table, self.record_id)

        options = self._options(versions)

        if len(versions) < 2:
            message = lang.MSC["noVersions"].format(table=self.table, record_id=self.record_id)
            return Comparison(content=f"<p>{message}</p>", versions=options)

        by_number = {v.version: v for v in versions}
        newest = versions[0].version
        # A crash between deactivate and activate leaves no active version.
        active = next((v.version for v in versions if v.active), newest)

        to_version = (
            _version_number(form, "to", by_number)
            or _version_number(query, "to", by_number)
            or active
        )

        from_version = (
            _version_number(form, "from", by_number)
            or _version_number(query, "from", by_number)
        )
        if not from_version:
            if len(versions) > active:
                from_version = newest
            elif active > 1:
                from_version = active - 1
            # Pruned history: the previous number may be gone.
            if from_version and from_version not in by_number:
                from_version = newest

        content = ""
        if to_version > 0 and from_version > 0:
            to_data = load_payload(by_number[to_version].data) or {}
            from_data = load_payload(by_number[from_version].data) or {}
            differ = FieldDiffer(self.registry, self.schema, self.settings)
            content = differ.diff(from_data, to_data)

        if not content:
            content = f"<p>{lang.MSC['identicalVersions']}</p>"

        return Comparison(
            content=content,
            from_version=from_version,
            to_version=to_version,
            versions=options,
        )


# ----------------------------------------------------------------------
# Cross-table operations
# ----------------------------------------------------------------------


def list_for_audit(
    db: Session,
    actor: Actor,
    page: int = 1,
    page_size: Optional[int] = None,
    request_token: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> AuditPage:
    """One page of recently edited versions across all tables, newest first.

    Only versions after the first that carry an edit URL are listed; non-admins
    only see their own. A page outside ``1..last_page`` comes back with
    ``not_found`` set and no items.
    """
    settings = settings or default_settings
    page_size = page_size or settings.audit_page_size
    version_repo = VersionRepository(db)
    row_repo = RowRepository(db)
    owner = None if actor.is_admin else actor.user_id

    with storage_errors(db, "count versions for the audit listing"):
        total = version_repo.audit_count(owner)
    last_page = math.ceil(total / page_size)

    if page < 1 or (last_page > 0 and page > last_page):
        return AuditPage(page=page, page_size=page_size, total=total, last_page=last_page, not_found=True)

    with storage_errors(db, "read versions for the audit listing"):
        rows = version_repo.audit_rows(owner, (page - 1) * page_size, page_size)

    items = []
    for row in rows:
        # Account changes are only visible with access to the user module.
        if row.from_table == settings.user_table and not actor.has_module("user"):
            continue

        try:
            deleted = not row_repo.exists(row.from_table, row.pid)
        except NoSuchTableError:
            logger.debug("Skipping version of a table that no longer exists",
                         extra={"table": row.from_table})
            continue
        except sqlalchemy.exc.SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to probe {row.from_table}.id={row.pid}", original_error=e) from e

        if row.from_table == settings.files_table and deleted:
            continue

        items.append(VersionSummary(
            from_table=row.from_table,
            pid=row.pid,
            version=row.version,
            tstamp=row.tstamp,
            username=row.username,
            user_id=row.user_id,
            description=truncate(row.description, AUDIT_DESCRIPTION_LENGTH),
            edit_url=clean_audit_edit_url(row.edit_url, request_token),
            active=bool(row.active),
            from_version=max(row.version - 1, 1),
            to_version=row.version,
            date=format_date(row.tstamp, settings.datim_format),
            short_table=truncate(row.from_table, AUDIT_TABLE_LENGTH),
            deleted=deleted,
        ))

    return AuditPage(items=items, page=page, page_size=page_size, total=total, last_page=last_page)


def purge_version_table(db: Session, actor: Optional[Actor] = None) -> int:
    """Delete every stored version of every table."""
    with storage_errors(db, "purge the version table"):
        count = VersionRepository(db).delete_all()
        db.commit()

    audit_service.log(
        db, actor,
        action="version_purge",
        resource_type="versions",
        message="Purged the version table",
        details={"count": count},
    )
    return count
