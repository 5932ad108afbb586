"""
Tests unitarios para los casos de uso de esquema (migrate / apply-migrations).
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from cms_factories import author_type, blog_post_type, content_type, field_def, snapshot

from content_sync.application.use_cases.schema_use_cases import SchemaUseCases
from content_sync.domain.entities.contentful import SchemaSnapshot
from content_sync.infrastructure.storage.migration_files import MigrationFiles
from content_sync.infrastructure.storage.snapshot_store import SnapshotStore
from content_sync.shared.exceptions import MigrationFileExistsError, SchemaIncompatibleError


class _FakeGateway:
    """Gateway en memoria: versiones aplicadas y una conexión simulada."""

    def __init__(self, applied: set[str]) -> None:
        self.applied = applied
        self.conn = AsyncMock()
        self.tables: list[str] = []

    async def get_applied_versions(self, migration_table: str) -> set[str]:
        self.tables.append(migration_table)
        return set(self.applied)

    @asynccontextmanager
    async def transaction(self):
        yield self.conn


def _use_cases(tmp_path, migrator, naming, schema: SchemaSnapshot, *, gateway=None, migration_files=None):
    management = AsyncMock()
    management.fetch_schema.return_value = schema
    return SchemaUseCases(
        migrator=migrator,
        naming=naming,
        management=management,
        snapshot_store=SnapshotStore(str(tmp_path / "schema.json")),
        migration_files=migration_files or MigrationFiles(str(tmp_path / "migrations")),
        gateway=gateway,
    )


@pytest.mark.asyncio
async def test_first_migration_writes_file_and_snapshot(tmp_path, migrator, naming):
    schema = snapshot(author_type(), link_order=False, unique_indices=False)
    use_cases = _use_cases(tmp_path, migrator, naming, schema)

    path = await use_cases.migrate()

    assert path.parent == tmp_path / "migrations"
    assert "CREATE TABLE authors" in path.read_text(encoding="utf-8")
    saved = use_cases.snapshot_store.load()
    assert [ct.id for ct in saved.content_types] == ["author"]
    assert saved.metadata.has_link_order
    assert saved.metadata.has_unique_link_indices


@pytest.mark.asyncio
async def test_migrate_without_changes_writes_nothing(tmp_path, migrator, naming):
    schema = snapshot(author_type())
    use_cases = _use_cases(tmp_path, migrator, naming, schema)
    use_cases.snapshot_store.save(schema)

    assert await use_cases.migrate() is None
    assert use_cases.migration_files.list_versions() == []


@pytest.mark.asyncio
async def test_dry_run_does_not_touch_files(tmp_path, migrator, naming):
    use_cases = _use_cases(tmp_path, migrator, naming, snapshot(author_type()))

    assert await use_cases.migrate(dry_run=True) is None
    assert use_cases.migration_files.list_versions() == []
    assert not use_cases.snapshot_store.exists()


@pytest.mark.asyncio
async def test_snapshot_not_saved_when_file_write_fails(tmp_path, migrator, naming):
    migration_files = MagicMock()
    migration_files.write.side_effect = MigrationFileExistsError("migrations/20240101_000000.sql")
    use_cases = _use_cases(
        tmp_path, migrator, naming, snapshot(author_type()), migration_files=migration_files
    )

    with pytest.raises(MigrationFileExistsError):
        await use_cases.migrate()

    assert not use_cases.snapshot_store.exists()


@pytest.mark.asyncio
async def test_incompatible_change_leaves_snapshot_untouched(tmp_path, migrator, naming):
    old = snapshot(content_type("x", [field_def("flag", "Integer")]))
    new = snapshot(content_type("x", [field_def("flag", "Boolean")]))
    use_cases = _use_cases(tmp_path, migrator, naming, new)
    use_cases.snapshot_store.save(old)

    with pytest.raises(SchemaIncompatibleError):
        await use_cases.migrate()

    assert use_cases.snapshot_store.load() == old
    assert use_cases.migration_files.list_versions() == []


@pytest.mark.asyncio
async def test_pending_migrations_are_files_minus_applied(tmp_path, migrator, naming):
    directory = tmp_path / "migrations"
    directory.mkdir()
    for name in ("20240301_000000.sql", "20240101_000000.sql", "20240201_000000.sql"):
        (directory / name).write_text(f"-- {name}", encoding="utf-8")
    gateway = _FakeGateway({"20240101_000000.sql"})
    use_cases = _use_cases(tmp_path, migrator, naming, snapshot(), gateway=gateway)

    pending = await use_cases.pending_migrations()

    assert pending == ["20240201_000000.sql", "20240301_000000.sql"]
    assert gateway.tables == ["cfsync_migrations"]


@pytest.mark.asyncio
async def test_apply_migrations_runs_file_and_history_in_order(tmp_path, migrator, naming):
    directory = tmp_path / "migrations"
    directory.mkdir()
    (directory / "20240101_000000.sql").write_text("CREATE TABLE a ();", encoding="utf-8")
    (directory / "20240201_000000.sql").write_text("CREATE TABLE b ();", encoding="utf-8")
    gateway = _FakeGateway(set())
    use_cases = _use_cases(tmp_path, migrator, naming, snapshot(), gateway=gateway)

    applied = await use_cases.apply_migrations()

    assert applied == ["20240101_000000.sql", "20240201_000000.sql"]
    assert gateway.conn.execute.await_args_list == [
        call("CREATE TABLE a ();"),
        call("INSERT INTO cfsync_migrations (\"version\") VALUES ('20240101_000000.sql')"),
        call("CREATE TABLE b ();"),
        call("INSERT INTO cfsync_migrations (\"version\") VALUES ('20240201_000000.sql')"),
    ]


@pytest.mark.asyncio
async def test_apply_migrations_with_nothing_pending(tmp_path, migrator, naming):
    gateway = _FakeGateway(set())
    use_cases = _use_cases(tmp_path, migrator, naming, snapshot(), gateway=gateway)

    assert await use_cases.apply_migrations() == []
    gateway.conn.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_apply_migrations_requires_gateway(tmp_path, migrator, naming):
    use_cases = _use_cases(tmp_path, migrator, naming, snapshot(blog_post_type()))

    with pytest.raises(RuntimeError):
        await use_cases.apply_migrations()
