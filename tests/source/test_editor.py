"""Tests for source/editor.py."""

from __future__ import annotations

from dataclasses import replace

import pytest

from dtomaker.core.errors import AdvisoryKind, MergeConflict
from dtomaker.source.editor import Anchor, StepKind, apply, plan
from dtomaker.source.fragments import (
    DeclarationFragment,
    FieldDescriptor,
    FieldType,
    GenerationOptions,
    Import,
    MemberFragment,
    TypeKind,
)
from dtomaker.source.loader import load
from dtomaker.source.model import MemberKind
from dtomaker.source.serializer import serialize
from dtomaker.source.synthesizer import synthesize, synthesize_helpers

EMPTY = "<?php\n\nnamespace App\\Dto;\n\nclass TaskData\n{\n}\n"


def _property(name: str, line: str | None = None) -> DeclarationFragment:
    return DeclarationFragment(
        property_member=MemberFragment(
            kind=MemberKind.PROPERTY,
            name=name,
            lines=(line or f"public ?string ${name} = null;",),
        )
    )


def _method(name: str) -> DeclarationFragment:
    return DeclarationFragment(
        methods=(
            MemberFragment(
                kind=MemberKind.METHOD,
                name=name,
                lines=(f"public function {name}(): void", "{", "}"),
            ),
        )
    )


def _imports(*imports: Import) -> DeclarationFragment:
    return DeclarationFragment(imports=imports)


class TestAddMembers:
    def test_into_empty_class(self) -> None:
        result = apply(load(EMPTY), [_property("task")], GenerationOptions())

        assert serialize(result.model) == (
            "<?php\n\nnamespace App\\Dto;\n\nclass TaskData\n{\n    public ?string $task = null;\n}\n"
        )
        assert result.added_members == ("task",)
        assert result.plan.steps[0].anchor is Anchor.BODY_START

    def test_properties_before_methods(self) -> None:
        result = apply(
            load(EMPTY),
            [_method("extract"), _property("task"), _property("dueDate")],
            GenerationOptions(),
        )

        assert serialize(result.model) == (
            "<?php\n\nnamespace App\\Dto;\n\nclass TaskData\n{\n"
            "    public ?string $task = null;\n"
            "\n"
            "    public ?string $dueDate = null;\n"
            "\n"
            "    public function extract(): void\n"
            "    {\n"
            "    }\n"
            "}\n"
        )
        anchors = [step.anchor for step in result.plan.steps]
        assert anchors == [Anchor.BODY_START, Anchor.BODY_START, Anchor.AFTER_LAST_PROPERTY]

    def test_method_after_last_method(self) -> None:
        source = (
            "<?php\nclass A\n{\n    const X = 1;\n\n    public $a;\n\n"
            "    public function first()\n    {\n    }\n}\n"
        )

        result = apply(load(source), [_method("second")], GenerationOptions())

        assert serialize(result.model).endswith(
            "    public function first()\n    {\n    }\n\n    public function second(): void\n    {\n    }\n}\n"
        )
        assert result.plan.steps[0].anchor is Anchor.AFTER_LAST_METHOD

    def test_property_after_constant_when_no_properties(self) -> None:
        source = "<?php\nclass A\n{\n    const X = 1;\n\n    public function f()\n    {\n    }\n}\n"

        result = apply(load(source), [_property("a")], GenerationOptions())

        assert "    const X = 1;\n\n    public ?string $a = null;\n\n    public function f()" in serialize(
            result.model
        )
        assert result.plan.steps[0].anchor is Anchor.AFTER_LAST_CONSTANT

    def test_follows_file_indentation(self) -> None:
        source = "<?php\nclass A\n{\n\tpublic $a;\n}\n"

        result = apply(load(source), [_method("f")], GenerationOptions())

        assert serialize(result.model) == (
            "<?php\nclass A\n{\n\tpublic $a;\n\n\tpublic function f(): void\n\t{\n\t}\n}\n"
        )

    def test_follows_crlf_newlines(self) -> None:
        source = "<?php\r\n\r\nnamespace App\\Dto;\r\n\r\nclass A\r\n{\r\n    public $a;\r\n}\r\n"

        result = apply(
            load(source),
            [_imports(Import("App\\Entity\\Task")), _method("f")],
            GenerationOptions(),
        )

        assert serialize(result.model) == (
            "<?php\r\n\r\nnamespace App\\Dto;\r\n\r\nuse App\\Entity\\Task;\r\n\r\nclass A\r\n{\r\n"
            "    public $a;\r\n\r\n    public function f(): void\r\n    {\r\n    }\r\n}\r\n"
        )

    def test_untouched_spans_are_byte_identical(self) -> None:
        source = (
            "<?php\nnamespace App\\Dto;\n\nclass A\n{\n    /** keep   me */\n    public    $a   =  1 ;\n\n"
            "    public function f() { return  [1,2]; }\n}\n"
        )
        model = load(source)

        result = apply(model, [_property("b")], GenerationOptions())

        text = serialize(result.model)
        for member in model.members:
            assert member.text in text
        assert text.startswith(model.prefix)

    def test_input_model_is_not_mutated(self) -> None:
        model = load(EMPTY)

        apply(model, [_property("task"), _imports(Import("App\\Entity\\Task"))], GenerationOptions())

        assert serialize(model) == EMPTY
        assert model.members == ()


class TestExistingMembers:
    SOURCE = (
        "<?php\n\nnamespace App\\Dto;\n\nclass TaskData\n{\n    public $task;\n\n"
        "    public function getTask()\n    {\n        return 'custom';\n    }\n}\n"
    )

    def test_existing_property_skipped_with_advisory(self) -> None:
        result = apply(load(self.SOURCE), [_property("task")], GenerationOptions())

        assert serialize(result.model) == self.SOURCE
        assert result.pre_existing == ("task",)
        assert not result.plan.changes_source
        (advisory,) = result.advisories
        assert advisory.kind is AdvisoryKind.MEMBER_ALREADY_EXISTS
        assert advisory.message == "Property $task already exists in TaskData and was left unchanged."

    def test_existing_method_never_replaced(self) -> None:
        result = apply(
            load(self.SOURCE),
            [_method("gettask")],
            GenerationOptions(overwrite_existing_members=True),
        )

        assert "return 'custom';" in serialize(result.model)
        assert result.advisories[0].message == "Method gettask() already exists in TaskData and was left unchanged."

    def test_overwrite_replaces_property_in_place(self) -> None:
        result = apply(
            load(self.SOURCE),
            [_property("task", "private ?string $task = null;")],
            GenerationOptions(overwrite_existing_members=True),
        )

        assert serialize(result.model) == self.SOURCE.replace("public $task;", "private ?string $task = null;")
        assert result.replaced_members == ("task",)
        assert result.plan.steps[0].anchor is Anchor.IN_PLACE
        assert result.advisories == ()

    def test_promoted_parameter_counts_as_property(self) -> None:
        source = "<?php\nclass A\n{\n    public function __construct(private string $task)\n    {\n    }\n}\n"

        result = apply(
            load(source),
            [_property("task")],
            GenerationOptions(overwrite_existing_members=True),
        )

        assert serialize(result.model) == source
        assert result.pre_existing == ("task",)

    def test_second_run_is_idempotent(self) -> None:
        options = GenerationOptions(generate_accessors=True)
        fragments = [
            synthesize(FieldDescriptor("task", FieldType(TypeKind.STRING)), options),
            synthesize(
                FieldDescriptor("owner", FieldType(TypeKind.REFERENCE, reference="App\\Entity\\User")),
                options,
            ),
        ]

        first = serialize(apply(load(EMPTY), fragments, options).model)
        second = apply(load(first), fragments, options)

        assert serialize(second.model) == first
        assert second.added_members == ()
        assert second.added_imports == ()
        assert not second.plan.changes_source


class TestImports:
    def test_after_namespace_when_no_uses(self) -> None:
        result = apply(load(EMPTY), [_imports(Import("App\\Entity\\Task"))], GenerationOptions())

        assert serialize(result.model) == (
            "<?php\n\nnamespace App\\Dto;\n\nuse App\\Entity\\Task;\n\nclass TaskData\n{\n}\n"
        )
        assert result.plan.steps[0].anchor is Anchor.AFTER_NAMESPACE

    def test_after_last_use(self) -> None:
        source = "<?php\n\nnamespace App\\Dto;\n\nuse App\\Entity\\Task;\n\nclass TaskData\n{\n}\n"

        result = apply(
            load(source),
            [_imports(Import("Symfony\\Component\\Validator\\Constraints", "Assert"), Import("App\\Entity\\Tag"))],
            GenerationOptions(),
        )

        assert serialize(result.model) == (
            "<?php\n\nnamespace App\\Dto;\n\nuse App\\Entity\\Task;\n"
            "use Symfony\\Component\\Validator\\Constraints as Assert;\n"
            "use App\\Entity\\Tag;\n\nclass TaskData\n{\n}\n"
        )
        assert result.added_imports == ("Symfony\\Component\\Validator\\Constraints", "App\\Entity\\Tag")

    def test_after_open_tag_without_namespace(self) -> None:
        source = "<?php\n\nclass TaskData\n{\n}\n"

        result = apply(load(source), [_imports(Import("App\\Entity\\Task"))], GenerationOptions())

        assert serialize(result.model) == "<?php\n\nuse App\\Entity\\Task;\n\nclass TaskData\n{\n}\n"
        assert result.plan.steps[0].anchor is Anchor.AFTER_OPEN_TAG

    def test_existing_import_not_duplicated(self) -> None:
        source = "<?php\n\nnamespace App\\Dto;\n\nuse App\\Entity\\Task;\n\nclass TaskData\n{\n}\n"

        result = apply(
            load(source),
            [_imports(Import("App\\Entity\\Task")), _imports(Import("\\App\\Entity\\Task"))],
            GenerationOptions(),
        )

        assert serialize(result.model) == source
        assert [s.kind for s in result.plan.steps] == [StepKind.SKIP_IMPORT, StepKind.SKIP_IMPORT]

    def test_shared_namespace_imported_once(self) -> None:
        assert_import = Import("Symfony\\Component\\Validator\\Constraints", "Assert")

        result = apply(load(EMPTY), [_imports(assert_import), _imports(assert_import)], GenerationOptions())

        assert serialize(result.model).count("use Symfony\\Component\\Validator\\Constraints as Assert;") == 1
        assert result.added_imports == ("Symfony\\Component\\Validator\\Constraints",)

    def test_same_namespace_needs_no_import(self) -> None:
        result = apply(load(EMPTY), [_imports(Import("App\\Dto\\Other"))], GenerationOptions())

        assert serialize(result.model) == EMPTY
        assert result.plan.steps[0].reason == "resolves without an import"

    def test_alias_clash_reported(self) -> None:
        source = "<?php\n\nnamespace App\\Dto;\n\nuse Other\\Task;\n\nclass TaskData\n{\n}\n"

        result = apply(load(source), [_imports(Import("App\\Entity\\Task"))], GenerationOptions())

        assert serialize(result.model) == source
        (advisory,) = result.advisories
        assert advisory.kind is AdvisoryKind.IMPORT_ALIAS_CLASH
        assert "already bound to Other\\Task" in advisory.message

    def test_clash_with_own_class_name(self) -> None:
        result = apply(load(EMPTY), [_imports(Import("App\\Entity\\TaskData"))], GenerationOptions())

        assert result.advisories[0].kind is AdvisoryKind.IMPORT_ALIAS_CLASH
        assert serialize(result.model) == EMPTY

    def test_after_strict_types_declare_without_namespace(self) -> None:
        source = "<?php\ndeclare(strict_types=1);\n\nclass TaskData\n{\n}\n"

        result = apply(load(source), [_imports(Import("App\\Entity\\User"))], GenerationOptions())

        assert serialize(result.model) == (
            "<?php\ndeclare(strict_types=1);\n\nuse App\\Entity\\User;\n\nclass TaskData\n{\n}\n"
        )
        assert result.plan.steps[0].anchor is Anchor.AFTER_DECLARE

    def test_clashing_reference_is_fully_qualified(self) -> None:
        source = "<?php\n\nnamespace App\\Dto;\n\nuse App\\Model\\User;\n\nclass TaskData\n{\n}\n"
        fragment = synthesize(
            FieldDescriptor("author", FieldType(TypeKind.REFERENCE, nullable=True, reference="App\\Entity\\User")),
            GenerationOptions(generate_accessors=True),
        )

        result = apply(load(source), [fragment], GenerationOptions(generate_accessors=True))

        text = serialize(result.model)
        assert "use App\\Model\\User;" in text
        assert "use App\\Entity\\User;" not in text
        assert "private ?\\App\\Entity\\User $author = null;" in text
        assert "public function getAuthor(): ?\\App\\Entity\\User" in text
        assert "public function setAuthor(?\\App\\Entity\\User $author): self" in text
        (advisory,) = result.advisories
        assert advisory.kind is AdvisoryKind.IMPORT_ALIAS_CLASH
        assert "Declarations use \\App\\Entity\\User instead." in advisory.message

    def test_clashing_entity_is_fully_qualified_in_helpers(self) -> None:
        source = "<?php\n\nnamespace App\\Dto;\n\nuse App\\Model\\Task;\n\nclass TaskData\n{\n}\n"
        helpers = synthesize_helpers("App\\Entity\\Task", [])

        text = serialize(apply(load(source), [helpers], GenerationOptions()).model)

        assert "public function __construct(?\\App\\Entity\\Task $task = null)" in text
        assert "public function fill(\\App\\Entity\\Task $task): \\App\\Entity\\Task" in text
        assert "public function extract(\\App\\Entity\\Task $task): self" in text
        assert "Fill the Task entity" in text


class TestPlan:
    def test_plan_matches_apply(self) -> None:
        fragments = [_imports(Import("App\\Entity\\Task")), _property("task"), _method("fill")]
        model = load(EMPTY)

        assert plan(model, fragments, GenerationOptions()) == apply(model, fragments, GenerationOptions()).plan

    def test_plan_step_kinds(self) -> None:
        steps = plan(load(EMPTY), [_property("task"), _property("task")], GenerationOptions()).steps

        assert [s.kind for s in steps] == [StepKind.ADD_MEMBER, StepKind.SKIP_MEMBER]


class TestMergeConflicts:
    def test_missing_body_anchor(self) -> None:
        model = replace(load(EMPTY), prefix="<?php\nclass TaskData\n")

        with pytest.raises(MergeConflict):
            apply(model, [_property("task")], GenerationOptions())

    def test_missing_import_anchor(self) -> None:
        model = replace(load(EMPTY), open_tag_end=None, namespace_end=None, use_statements=())

        with pytest.raises(MergeConflict):
            apply(model, [_imports(Import("App\\Entity\\Task"))], GenerationOptions())
