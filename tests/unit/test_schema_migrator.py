"""
Tests unitarios para el migrador de esquema (diff de snapshots -> DDL).
"""
import pytest

from cms_factories import array_field, author_type, blog_post_type, content_type, field_def, link_field, snapshot

from content_sync.application.services.naming import Naming
from content_sync.application.services.schema_migrator import SchemaMigrator
from content_sync.application.services.value_serializer import ValueSerializer
from content_sync.core.config import SyncOptions
from content_sync.shared.exceptions import (
    InvalidContentTypeError,
    SchemaIncompatibleError,
    UnsupportedFieldTypeError,
)


def test_first_migration_creates_history_and_tables(migrator: SchemaMigrator):
    ddl = migrator.migrate(None, snapshot(author_type()))

    assert 'CREATE TABLE IF NOT EXISTS cfsync_migrations (\n    "version" VARCHAR(256) UNIQUE\n)' in ddl
    assert "-- * NEW CONTENT TYPE: Author [author]" in ddl
    assert "CREATE TABLE authors (" in ddl
    assert '"name" VARCHAR(256)' in ddl
    assert '"age" BIGINT' in ddl
    assert "BACKFILL" not in ddl
    assert ddl.index("cfsync_migrations") < ddl.index("CREATE TABLE authors")


def test_create_table_has_base_columns_in_order(migrator: SchemaMigrator):
    statement = migrator.create_table_statements(author_type())[-1]

    columns = [line.strip().rstrip(",") for line in statement.splitlines()[1:-1]]
    assert columns[0] == '"id" BIGSERIAL PRIMARY KEY'
    assert columns[1] == '"cfid" VARCHAR(64) UNIQUE'
    assert columns[-3:] == ['"name" VARCHAR(256)', '"age" BIGINT', '"raw" JSONB']
    assert '"is_published" BOOLEAN NOT NULL DEFAULT FALSE' in columns


def test_column_types_for_links_and_arrays(migrator: SchemaMigrator):
    ddl = migrator.migrate(None, snapshot(blog_post_type()))

    assert '"author_cfid" VARCHAR(64)' in ddl
    assert '"hero_image_cfurl" VARCHAR(1024)' in ddl
    assert '"tags" VARCHAR(256)[]' in ddl
    assert '"related' not in ddl.split("CREATE TABLE blog_posts (")[1]


def test_array_of_links_creates_link_table_before_main_table(migrator: SchemaMigrator):
    ddl = migrator.migrate(None, snapshot(blog_post_type()))

    assert (
        "CREATE TABLE blog_posts_related (\n"
        '    "owner_cfid" VARCHAR(64) NOT NULL,\n'
        '    "item_cfid" VARCHAR(64) NOT NULL,\n'
        '    "order" INTEGER\n'
        ")"
    ) in ddl
    assert 'CREATE UNIQUE INDEX blog_posts_related_owner_item_idx ON blog_posts_related ("owner_cfid", "item_cfid")' in ddl
    assert ddl.index("CREATE TABLE blog_posts_related") < ddl.index("CREATE TABLE blog_posts (")


def test_number_maps_to_double_precision(migrator: SchemaMigrator):
    ct = content_type("product", [field_def("price", "Number"), field_def("location", "Location")])

    ddl = migrator.migrate(None, snapshot(ct))

    assert '"price" DOUBLE PRECISION' in ddl
    assert '"location" JSONB' in ddl


def test_added_field_emits_exactly_one_add_column(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("field_x", "Symbol")]))
    new = snapshot(content_type("x", [field_def("field_x", "Symbol"), field_def("field_y", "Integer")]))

    ddl = migrator.migrate(old, new)

    assert ddl.count("ADD COLUMN") == 1
    assert 'ALTER TABLE xs\n  ADD COLUMN "field_y" BIGINT' in ddl
    assert "CREATE TABLE" not in ddl
    assert "-- * MODIFIED CONTENT TYPE: x [x]" in ddl


def test_several_added_fields_share_one_alter_table(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("a", "Symbol")]))
    new = snapshot(
        content_type("x", [field_def("a", "Symbol"), field_def("b", "Boolean"), link_field("c")])
    )

    ddl = migrator.migrate(old, new)

    assert ddl.count("ALTER TABLE") == 1
    assert 'ALTER TABLE xs\n  ADD COLUMN "b" BOOLEAN,\n  ADD COLUMN "c_cfid" VARCHAR(64)' in ddl


def test_added_array_of_links_creates_link_table(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("a", "Symbol")]))
    new = snapshot(content_type("x", [field_def("a", "Symbol"), array_field("refs", "Link", "Entry")]))

    ddl = migrator.migrate(old, new)

    assert "CREATE TABLE xs_refs (" in ddl
    assert "ADD COLUMN" not in ddl


def test_no_changes_returns_none(migrator: SchemaMigrator):
    schema = snapshot(blog_post_type(), author_type())

    assert migrator.migrate(schema, schema) is None


def test_incompatible_type_change_raises_without_ddl(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("flag", "Integer")]))
    new = snapshot(content_type("x", [field_def("flag", "Boolean")]))

    with pytest.raises(SchemaIncompatibleError) as exc_info:
        migrator.migrate(old, new)

    assert exc_info.value.field_id == "flag"
    assert exc_info.value.details["old"] == "Integer"
    assert exc_info.value.details["new"] == "Boolean"


def test_array_to_scalar_change_raises(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [array_field("tags", "Symbol")]))
    new = snapshot(content_type("x", [field_def("tags", "Symbol")]))

    with pytest.raises(SchemaIncompatibleError):
        migrator.migrate(old, new)


def test_link_type_change_raises(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [link_field("image", "Entry")]))
    new = snapshot(content_type("x", [link_field("image", "Asset")]))

    with pytest.raises(SchemaIncompatibleError) as exc_info:
        migrator.migrate(old, new)

    assert exc_info.value.details["kind"] == "link type"


def test_symbol_to_text_widens_column(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("title", "Symbol"), array_field("tags", "Symbol")]))
    new = snapshot(content_type("x", [field_def("title", "Text"), array_field("tags", "Text")]))

    ddl = migrator.migrate(old, new)

    assert 'ALTER TABLE xs ALTER COLUMN "title" TYPE TEXT' in ddl
    assert 'ALTER TABLE xs ALTER COLUMN "tags" TYPE TEXT[]' in ddl


def test_compatible_changes_without_ddl(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("title", "Text"), field_def("body", "Text")]))
    new = snapshot(content_type("x", [field_def("title", "Symbol"), field_def("body", "RichText")]))

    assert migrator.migrate(old, new) is None


def test_unknown_field_type_fails(migrator: SchemaMigrator):
    ct = content_type("x", [field_def("shape", "Polygon")])

    with pytest.raises(UnsupportedFieldTypeError):
        migrator.migrate(None, snapshot(ct))


def test_unknown_field_type_in_modified_type_fails(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("a", "Symbol")]))
    new = snapshot(content_type("x", [field_def("a", "Symbol"), field_def("shape", "Polygon")]))

    with pytest.raises(UnsupportedFieldTypeError):
        migrator.migrate(old, new)


@pytest.mark.parametrize(
    "field",
    [field_def("createdAt", "Date"), field_def("raw", "Object"), field_def("environmentCfid", "Symbol")],
)
def test_field_colliding_with_system_column_fails(migrator: SchemaMigrator, field):
    ct = content_type("x", [field_def("title", "Symbol"), field])

    with pytest.raises(InvalidContentTypeError):
        migrator.migrate(None, snapshot(ct))


def test_fields_sharing_a_column_fail(migrator: SchemaMigrator):
    ct = content_type("x", [field_def("myField", "Symbol"), field_def("my_field", "Symbol")])

    with pytest.raises(InvalidContentTypeError):
        migrator.migrate(None, snapshot(ct))


def test_added_field_colliding_with_system_column_fails(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("a", "Symbol")]))
    new = snapshot(content_type("x", [field_def("a", "Symbol"), field_def("isPublished", "Boolean")]))

    with pytest.raises(InvalidContentTypeError):
        migrator.migrate(old, new)


def test_removed_field_and_type_are_kept(migrator: SchemaMigrator):
    old = snapshot(content_type("x", [field_def("a", "Symbol"), field_def("b", "Symbol")]), author_type())
    new = snapshot(content_type("x", [field_def("a", "Symbol")]))

    assert migrator.migrate(old, new) is None


def test_backfills_for_link_tables_of_old_snapshot(migrator: SchemaMigrator):
    old = snapshot(blog_post_type(), link_order=False, unique_indices=False)
    new = snapshot(blog_post_type())

    ddl = migrator.migrate(old, new)

    assert "-- * BACKFILL" in ddl
    assert 'ALTER TABLE blog_posts_related ADD COLUMN IF NOT EXISTS "order" INTEGER' in ddl
    assert "ALTER TABLE blog_posts_related DROP CONSTRAINT IF EXISTS blog_posts_related_item_cfid_key" in ddl
    assert "DELETE FROM blog_posts_related a USING blog_posts_related b" in ddl
    assert "CREATE UNIQUE INDEX IF NOT EXISTS blog_posts_related_owner_item_idx" in ddl
    assert ddl.index("ADD COLUMN IF NOT EXISTS") < ddl.index("DROP CONSTRAINT")


def test_backfills_are_gated_by_metadata_flags(migrator: SchemaMigrator):
    old = snapshot(blog_post_type(), link_order=True, unique_indices=False)

    ddl = migrator.migrate(old, snapshot(blog_post_type()))

    assert "ADD COLUMN IF NOT EXISTS" not in ddl
    assert "CREATE UNIQUE INDEX IF NOT EXISTS" in ddl


def test_statements_are_separated_by_semicolons(migrator: SchemaMigrator):
    ddl = migrator.migrate(None, snapshot(author_type()))

    assert ddl.rstrip().endswith(";")
    assert "cfsync_migrations (\n    \"version\" VARCHAR(256) UNIQUE\n);\n" in ddl


def test_migration_history_insert_quotes_version(migrator: SchemaMigrator):
    assert (
        migrator.migration_history_insert("20240101_000000.sql")
        == "INSERT INTO cfsync_migrations (\"version\") VALUES ('20240101_000000.sql')"
    )


def test_prefixes_apply_to_tables_and_history():
    options = SyncOptions(table_prefix="cf_", migration_table_prefix="sync_")
    migrator = SchemaMigrator(Naming(options), ValueSerializer())

    ddl = migrator.migrate(None, snapshot(author_type()))

    assert "CREATE TABLE IF NOT EXISTS sync_migrations" in ddl
    assert "CREATE TABLE cf_authors (" in ddl
