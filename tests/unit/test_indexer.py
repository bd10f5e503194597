"""Unit tests for docreg.indexer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from docreg.indexer import build_index, index_provider, resource_name_for, resource_type_for
from docreg.models.index import ResourceType

if TYPE_CHECKING:
    from pathlib import Path

    from docreg.store import StateStore


def _touch(root: Path, relative: str) -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("# doc\n")


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestResourceType:
    @pytest.mark.parametrize(
        ("parts", "expected"),
        [
            (("index.md",), ResourceType.INDEX),
            (("index.html.markdown",), ResourceType.INDEX),
            (("r", "s3_bucket.html.markdown"), ResourceType.RESOURCE),
            (("resources", "s3_bucket.md"), ResourceType.RESOURCE),
            (("d", "ami.html.markdown"), ResourceType.DATA),
            (("data-sources", "ami.md"), ResourceType.DATA),
            (("actions", "invoke.md"), ResourceType.ACTION),
            (("ephemeral-resources", "secret.md"), ResourceType.EPHEMERAL_RESOURCE),
            (("guides", "upgrade.html.md"), ResourceType.GUIDE),
            (("list-resources", "instances.md"), ResourceType.LIST_RESOURCES),
            (("functions", "arn_parse.md"), ResourceType.UNKNOWN),
            (("CHANGELOG.md",), ResourceType.UNKNOWN),
        ],
    )
    def test_section_mapping(self, parts: tuple[str, ...], expected: ResourceType) -> None:
        assert resource_type_for(parts) is expected

    def test_nested_index_is_not_provider_index(self) -> None:
        assert resource_type_for(("guides", "index.md")) is ResourceType.GUIDE


class TestResourceName:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("s3_bucket.html.markdown", "s3_bucket"),
            ("s3_bucket.html.md", "s3_bucket"),
            ("s3_bucket.markdown", "s3_bucket"),
            ("s3_bucket.md", "s3_bucket"),
            ("README", "README"),
        ],
    )
    def test_suffix_stripped(self, filename: str, expected: str) -> None:
        assert resource_name_for(filename) == expected


# ---------------------------------------------------------------------------
# build_index
# ---------------------------------------------------------------------------


class TestBuildIndex:
    def test_missing_provider_dir(self, tmp_path: Path) -> None:
        assert build_index(tmp_path / "absent") == []

    def test_artifact_merged_across_versions(self, tmp_path: Path) -> None:
        for version in ("v1", "v2", "v3"):
            _touch(tmp_path, f"{version}/r/s3_bucket.html.markdown")

        entries = build_index(tmp_path)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.type is ResourceType.RESOURCE
        assert entry.name == "s3_bucket"
        assert entry.versions == ["v1", "v2", "v3"]
        assert entry.path == str(tmp_path / "v1" / "r" / "s3_bucket.html.markdown")

    def test_version_only_where_present(self, tmp_path: Path) -> None:
        _touch(tmp_path, "v1/r/instance.html.markdown")
        _touch(tmp_path, "v2/r/instance.html.markdown")
        _touch(tmp_path, "v2/r/volume.html.markdown")

        by_name = {e.name: e for e in build_index(tmp_path)}

        assert by_name["instance"].versions == ["v1", "v2"]
        assert by_name["volume"].versions == ["v2"]

    def test_same_name_in_two_sections_yields_one_entry(self, tmp_path: Path) -> None:
        for version in ("v1", "v2", "v3"):
            _touch(tmp_path, f"{version}/r/widget.md")
        _touch(tmp_path, "v1/d/widget.md")

        entries = build_index(tmp_path)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.name == "widget"
        assert entry.versions == ["v1", "v2", "v3"]
        # Type and path come from the first file seen: v1/d sorts before v1/r.
        assert entry.type is ResourceType.DATA
        assert entry.path == str(tmp_path / "v1" / "d" / "widget.md")

    def test_stray_files_beside_versions_ignored(self, tmp_path: Path) -> None:
        _touch(tmp_path, "v1/index.md")
        (tmp_path / "index.json").write_text("[]")

        entries = build_index(tmp_path)

        assert [(e.type, e.name) for e in entries] == [(ResourceType.INDEX, "index")]


class TestIndexProvider:
    def test_written_index_readable(self, store: StateStore) -> None:
        provider_dir = store.provider_dir("aws")
        _touch(provider_dir, "v5/index.md")
        _touch(provider_dir, "v5/d/ami.html.markdown")
        _touch(provider_dir, "v4/d/ami.html.markdown")

        entries = index_provider(store, "aws")

        index = store.read_index("aws")
        assert index is not None
        assert index.root == entries
        ami = next(e for e in entries if e.name == "ami")
        assert ami.type is ResourceType.DATA
        assert ami.versions == ["v4", "v5"]

    def test_reindex_drops_removed_versions(self, store: StateStore) -> None:
        provider_dir = store.provider_dir("aws")
        _touch(provider_dir, "v1/r/instance.html.markdown")
        _touch(provider_dir, "v2/r/instance.html.markdown")
        index_provider(store, "aws")

        store.remove_tree(store.version_dir("aws", "v1"))
        entries = index_provider(store, "aws")

        assert entries[0].versions == ["v2"]
