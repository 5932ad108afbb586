"""
Tests unitarios para el importador de una entrada (Entry -> RowUpdate por tabla).
"""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from cms_factories import asset_json, blog_post_type, content_type, entry_json, field_def, link, snapshot

from content_sync.application.services.entry_importer import EntryImporter
from content_sync.application.services.naming import Naming
from content_sync.core.config import SyncOptions
from content_sync.domain.entities.contentful import Asset, ContentStore, Entry
from content_sync.domain.entities.field_value import JsonValue
from content_sync.infrastructure.locators.offline_locator import OfflineContentLocator
from content_sync.shared.exceptions import InvalidContentTypeError, MissingDefinitionError


ASSET_URL = "//images.ctfassets.net/space1/img-1/hero.png"


def _store() -> ContentStore:
    return ContentStore(
        assets=(
            Asset.from_dict(asset_json("img-1", ASSET_URL)),
            Asset.from_dict(asset_json("img-nofile")),
        )
    )


def _importer(options: SyncOptions, naming: Naming, gateway=None) -> EntryImporter:
    return EntryImporter(
        options,
        naming,
        snapshot(blog_post_type()),
        OfflineContentLocator(_store(), default_space_id="space1"),
        gateway=gateway,
    )


def _post(**overrides) -> Entry:
    fields = {
        "title": "Hola",
        "body": "Texto",
        "author": link("author-1"),
        "heroImage": link("img-1", "Asset"),
        "tags": ["a", "b"],
        "related": [link("A"), link("B"), link("C")],
    }
    fields.update(overrides)
    return Entry.from_dict(entry_json("post-1", "blogPost", fields))


@pytest.mark.asyncio
async def test_main_row_columns_and_values(options, naming):
    entry = _post()

    data = await _importer(options, naming).generate_data(entry, entry)

    [row] = data["blog_posts"]
    assert row.unique_key == ("cfid",)
    assert row.on_conflict == "update"
    assert list(row.data) == [
        "environment_cfid",
        "cfid",
        "title",
        "body",
        "author_cfid",
        "hero_image_cfurl",
        "tags",
        "created_at",
        "updated_at",
        "published_at",
        "first_published_at",
        "is_published",
        "is_archived",
        "is_deleted",
        "published_version",
        "raw",
    ]
    assert row.data["cfid"] == "post-1"
    assert row.data["environment_cfid"] == "master"
    assert row.data["title"] == "Hola"
    assert row.data["author_cfid"] == "author-1"
    assert row.data["hero_image_cfurl"] == "https://images.ctfassets.net/space1/img-1/hero.png"
    assert row.data["tags"] == ["a", "b"]
    assert row.data["is_published"] is True
    assert row.data["published_version"] == 3
    assert row.data["raw"] == JsonValue(entry.to_dict())


@pytest.mark.asyncio
async def test_array_of_links_fans_out_with_order(options, naming):
    data = await _importer(options, naming).generate_data(_post(), None)

    rows = data["blog_posts_related"]
    assert [r.data for r in rows] == [
        {"owner_cfid": "post-1", "item_cfid": "A", "order": 0},
        {"owner_cfid": "post-1", "item_cfid": "B", "order": 1},
        {"owner_cfid": "post-1", "item_cfid": "C", "order": 2},
    ]
    assert all(r.unique_key == ("owner_cfid", "item_cfid") for r in rows)
    assert all(r.on_conflict == "update" for r in rows)


@pytest.mark.asyncio
async def test_repeated_link_targets_keep_first_position(options, naming):
    entry = _post(related=[link("A"), link("B"), link("A")])

    data = await _importer(options, naming).generate_data(entry, entry)

    assert [(r.data["item_cfid"], r.data["order"]) for r in data["blog_posts_related"]] == [("A", 0), ("B", 1)]


@pytest.mark.asyncio
async def test_empty_link_array_produces_no_link_rows(options, naming):
    entry = _post(related=[])

    data = await _importer(options, naming).generate_data(entry, entry)

    assert "blog_posts_related" not in data


@pytest.mark.asyncio
async def test_published_version_takes_precedence(options, naming):
    published = _post(title="Publicado")
    latest = _post(title="Borrador")

    data = await _importer(options, naming).generate_data(published, latest)

    assert data["blog_posts"][0].data["title"] == "Publicado"
    assert data["blog_posts"][0].data["is_published"] is True


@pytest.mark.asyncio
async def test_draft_only_is_imported_unpublished(options, naming):
    draft = Entry.from_dict(entry_json("post-2", "blogPost", {"title": "Borrador"}, published=False))

    data = await _importer(options, naming).generate_data(None, draft)

    row = data["blog_posts"][0].data
    assert row["title"] == "Borrador"
    assert row["is_published"] is False
    assert row["published_version"] is None
    assert row["author_cfid"] is None


@pytest.mark.asyncio
async def test_generate_data_requires_some_version(options, naming):
    with pytest.raises(ValueError):
        await _importer(options, naming).generate_data(None, None)


@pytest.mark.asyncio
async def test_missing_asset_uses_sentinel(options, naming):
    entry = _post(heroImage=link("img-404", "Asset"))

    data = await _importer(options, naming).generate_data(entry, entry)

    assert data["blog_posts"][0].data["hero_image_cfurl"] == "cf-asset-missing:img-404"


@pytest.mark.asyncio
async def test_asset_without_file_uses_sentinel(options, naming):
    entry = _post(heroImage=link("img-nofile", "Asset"))

    data = await _importer(options, naming).generate_data(entry, entry)

    assert data["blog_posts"][0].data["hero_image_cfurl"] == "cf-asset-file-missing:img-nofile"


@pytest.mark.asyncio
async def test_missing_default_locale_stores_null(options, naming):
    raw = entry_json("post-1", "blogPost", {"title": {"es": "Hola"}}, localize=False)

    data = await _importer(options, naming).generate_data(Entry.from_dict(raw), None)

    assert data["blog_posts"][0].data["title"] is None


@pytest.mark.asyncio
async def test_unknown_content_type_raises(options, naming):
    entry = Entry.from_dict(entry_json("x-1", "unknownType", {}))

    with pytest.raises(MissingDefinitionError):
        await _importer(options, naming).generate_data(entry, entry)


@pytest.mark.asyncio
async def test_field_missing_from_schema_raises(options, naming):
    entry = _post(subtitle="no existe")

    with pytest.raises(MissingDefinitionError) as exc_info:
        await _importer(options, naming).generate_data(entry, entry)

    assert exc_info.value.details["field"] == "subtitle"


@pytest.mark.asyncio
async def test_stale_links_are_pruned(options, naming):
    gateway = AsyncMock()
    gateway.get_link_table_targets.return_value = ["A", "B", "C"]
    gateway.delete_link_rows.return_value = 1
    entry = _post(related=[link("A"), link("C")])

    await _importer(options, naming, gateway).generate_data(entry, entry)

    gateway.get_link_table_targets.assert_awaited_once_with("blog_posts_related", "post-1")
    gateway.delete_link_rows.assert_awaited_once_with("blog_posts_related", "post-1", ["B"])


@pytest.mark.asyncio
async def test_nothing_to_prune(options, naming):
    gateway = AsyncMock()
    gateway.get_link_table_targets.return_value = ["A", "B", "C"]

    await _importer(options, naming, gateway).generate_data(_post(), None)

    gateway.delete_link_rows.assert_not_awaited()


@pytest.mark.asyncio
async def test_prune_failure_is_logged_not_raised(options, naming):
    gateway = AsyncMock()
    gateway.get_link_table_targets.side_effect = RuntimeError("conexión perdida")

    data = await _importer(options, naming, gateway).generate_data(_post(), None)

    assert len(data["blog_posts_related"]) == 3


def _place_importer(options: SyncOptions, naming: Naming, *fields) -> EntryImporter:
    place = content_type("place", [field_def("name", "Symbol"), *fields])
    return EntryImporter(
        options,
        naming,
        snapshot(place),
        OfflineContentLocator(ContentStore(), default_space_id="space1"),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "value, expected",
    [
        ([1, 2], "'[1, 2]'"),
        ("plain", "'\"plain\"'"),
        (3, "'3'"),
        ({"k": "O'Brien"}, "'{\"k\": \"O''Brien\"}'"),
    ],
)
async def test_object_fields_render_as_json_whatever_the_value(options, naming, serializer, value, expected):
    importer = _place_importer(options, naming, field_def("data", "Object"))
    entry = Entry.from_dict(entry_json("p1", "place", {"name": "Plaza", "data": value}))

    data = await importer.generate_data(entry, entry)

    row = data["places"][0].data
    assert row["data"] == JsonValue(value)
    assert serializer.serialize(row["data"]) == expected
    assert serializer.serialize(row["name"]) == "'Plaza'"


@pytest.mark.asyncio
async def test_location_and_empty_object_fields(options, naming, serializer):
    importer = _place_importer(
        options, naming, field_def("location", "Location"), field_def("data", "Object")
    )
    entry = Entry.from_dict(
        entry_json("p1", "place", {"name": "Plaza", "location": {"lat": 1.5, "lon": 2}})
    )

    row = (await importer.generate_data(entry, entry))["places"][0].data

    assert serializer.serialize(row["location"]) == "'{\"lat\": 1.5, \"lon\": 2}'"
    assert row["data"] is None
    assert serializer.serialize(row["raw"]).startswith("'{\"sys\": ")


@pytest.mark.asyncio
async def test_field_colliding_with_system_column_raises(options, naming):
    importer = _place_importer(options, naming, field_def("updatedAt", "Date"))
    entry = Entry.from_dict(entry_json("p1", "place", {"name": "Plaza"}))

    with pytest.raises(InvalidContentTypeError):
        await importer.generate_data(entry, entry)
