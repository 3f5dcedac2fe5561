"""Tests for metadata/entities.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dtomaker.core.errors import ConfigError, ErrorCode, InvalidEntityReference
from dtomaker.metadata.entities import (
    AssociationMapping,
    ClassLocator,
    EntityMetadataReader,
    FieldMapping,
    SymbolOrigin,
)

BROKEN_CLASS = r"""<?php

namespace App\Entity;

class Broken
{
    public function f()
    {
"""


@pytest.fixture
def reader(blog_project: Path) -> EntityMetadataReader:
    return EntityMetadataReader(ClassLocator.for_project(blog_project))


class TestClassLocator:
    def test_reads_composer_autoload(self, blog_project: Path) -> None:
        locator = ClassLocator.for_project(blog_project)

        assert locator.path_for("App\\Dto\\TaskData") == blog_project / "src" / "Dto" / "TaskData.php"
        assert locator.find("App\\Entity\\Task") == blog_project / "src" / "Entity" / "Task.php"
        assert locator.find("App\\Entity\\Missing") is None

    def test_outside_every_prefix(self, blog_project: Path) -> None:
        locator = ClassLocator.for_project(blog_project)

        assert locator.path_for("Vendor\\Lib\\Thing") is None

    def test_longest_prefix_wins(self, tmp_path: Path) -> None:
        locator = ClassLocator(tmp_path, {"App\\": "src/", "App\\Legacy\\": ["lib/", "old/"]})

        assert locator.path_for("App\\Legacy\\Report") == tmp_path / "lib" / "Report.php"
        assert locator.path_for("App\\Report") == tmp_path / "src" / "Report.php"

    def test_default_prefix_without_composer(self, tmp_path: Path) -> None:
        locator = ClassLocator.for_project(tmp_path, "Acme\\", "lib")

        assert locator.path_for("Acme\\Dto\\X") == tmp_path / "lib" / "Dto" / "X.php"

    def test_invalid_composer_json(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError):
            ClassLocator.for_project(tmp_path)

    def test_classes_in_namespace(self, blog_project: Path) -> None:
        admin = blog_project / "src" / "Entity" / "Admin"
        admin.mkdir()
        (admin / "User.php").write_text("<?php\nnamespace App\\Entity\\Admin;\nclass User {}\n", encoding="utf-8")
        locator = ClassLocator.for_project(blog_project)

        assert locator.classes_in("App\\Entity") == [
            "App\\Entity\\Admin\\User",
            "App\\Entity\\BaseEntity",
            "App\\Entity\\Helper",
            "App\\Entity\\Post",
            "App\\Entity\\Task",
        ]

    def test_classes_in_missing_namespace(self, blog_project: Path) -> None:
        assert ClassLocator.for_project(blog_project).classes_in("App\\Model") == []


class TestEntityMetadataReader:
    def test_attribute_mapped_entity(self, reader: EntityMetadataReader) -> None:
        metadata = reader.get_metadata("App\\Entity\\Task")

        assert [m.name for m in metadata.mappings] == ["id", "task", "dueDate"]
        assert metadata.identifiers == ("id",)
        task = metadata.mapping("task")
        due = metadata.mapping("dueDate")
        assert isinstance(task, FieldMapping)
        assert (task.type, task.nullable) == ("string", False)
        assert isinstance(due, FieldMapping)
        assert (due.type, due.nullable) == ("date", True)
        assert due.php_type == "?\\DateTimeInterface"
        assert metadata.mapping("id").type == "integer"

    def test_annotation_mapped_entity_with_superclass(self, reader: EntityMetadataReader) -> None:
        metadata = reader.get_metadata("\\App\\Entity\\Post")

        assert [m.name for m in metadata.mappings] == ["id", "createdAt", "title", "body", "author", "tags"]
        assert metadata.is_identifier("id")
        created = metadata.mapping("createdAt")
        assert created.declared_in == "App\\Entity\\BaseEntity"
        assert created.type == "datetime_immutable"
        assert metadata.mapping("title").declared_in == "App\\Entity\\Post"
        assert metadata.mapping("body").nullable is True
        assert metadata.mapping("transient") is None

    def test_associations(self, reader: EntityMetadataReader) -> None:
        metadata = reader.get_metadata("App\\Entity\\Post")
        author = metadata.mapping("author")
        tags = metadata.mapping("tags")

        assert isinstance(author, AssociationMapping)
        assert author.kind == "ManyToOne"
        assert author.target == "App\\Entity\\User"
        assert author.nullable is False
        assert not author.is_collection
        assert isinstance(tags, AssociationMapping)
        assert tags.target == "App\\Entity\\Tag"
        assert tags.is_collection
        assert [a.name for a in metadata.associations] == ["author", "tags"]

    def test_field_annotations_are_kept(self, reader: EntityMetadataReader) -> None:
        title = reader.get_metadata("App\\Entity\\Post").mapping("title")

        assert [s.short_name for s in title.annotations] == ["Column", "NotBlank", "Length"]

    def test_metadata_is_cached(self, reader: EntityMetadataReader) -> None:
        assert reader.get_metadata("App\\Entity\\Task") is reader.get_metadata("App\\Entity\\Task")

    def test_not_mapped(self, reader: EntityMetadataReader) -> None:
        assert not reader.is_mapped_entity("App\\Entity\\Helper")
        with pytest.raises(InvalidEntityReference) as exc_info:
            reader.get_metadata("App\\Entity\\Helper")

        assert exc_info.value.code == ErrorCode.ENTITY_NOT_MAPPED

    def test_mapped_superclass_is_not_an_entity(self, reader: EntityMetadataReader) -> None:
        assert not reader.is_mapped_entity("App\\Entity\\BaseEntity")

    def test_missing_class(self, reader: EntityMetadataReader) -> None:
        assert not reader.is_mapped_entity("App\\Entity\\Nope")
        with pytest.raises(InvalidEntityReference) as exc_info:
            reader.get_metadata("App\\Entity\\Nope")

        assert exc_info.value.code == ErrorCode.ENTITY_NOT_FOUND
        assert exc_info.value.details["path"].endswith("Nope.php")

    def test_ancestors_stop_at_missing_parent(self, blog_project: Path) -> None:
        (blog_project / "src" / "Entity" / "Child.php").write_text(
            "<?php\nnamespace App\\Entity;\nuse Vendor\\Base;\nclass Child extends Base {}\n", encoding="utf-8"
        )
        reader = EntityMetadataReader(ClassLocator.for_project(blog_project))

        assert reader.ancestors("App\\Entity\\Child") == []
        assert [m.fqcn for m in reader.ancestors("App\\Entity\\Post")] == ["App\\Entity\\BaseEntity"]

    def test_list_entities_skips_unreadable_files(self, blog_project: Path) -> None:
        (blog_project / "src" / "Entity" / "Broken.php").write_text(BROKEN_CLASS, encoding="utf-8")
        reader = EntityMetadataReader(ClassLocator.for_project(blog_project))

        assert reader.list_entities("App\\Entity") == ["App\\Entity\\Post", "App\\Entity\\Task"]


class TestSymbolTable:
    def test_local_and_inherited_methods(self, reader: EntityMetadataReader) -> None:
        table = reader.symbol_table("App\\Entity\\Post")

        assert table.has_public_method("getTitle")
        assert table.has_method("SETTITLE")
        assert not table.has_public_method("setTitle")
        assert table.has_public_method("getCreatedAt")
        assert table.origin("getTitle") is SymbolOrigin.LOCAL
        assert table.origin("getCreatedAt") is SymbolOrigin.INHERITED
        assert table.method("getCreatedAt").declared_in == "App\\Entity\\BaseEntity"
        assert table.origin("getBody") is None
        assert len(table) == 3


class TestComposerPrefixes:
    def test_multiple_directories(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text(
            json.dumps({"autoload": {"psr-4": {"App\\": ["src/", "modules/"]}}}), encoding="utf-8"
        )
        module = tmp_path / "modules" / "Entity"
        module.mkdir(parents=True)
        (module / "Invoice.php").write_text("<?php\nnamespace App\\Entity;\nclass Invoice {}\n", encoding="utf-8")

        locator = ClassLocator.for_project(tmp_path)

        assert locator.find("App\\Entity\\Invoice") == module / "Invoice.php"
        assert locator.classes_in("App\\Entity") == ["App\\Entity\\Invoice"]
