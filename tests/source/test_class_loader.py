"""Tests for source/loader.py and the ClassModel it builds."""

from __future__ import annotations

import pytest

from dtomaker.core.errors import ErrorCode, ParseError
from dtomaker.source.loader import load
from dtomaker.source.model import MemberKind, UseKind
from dtomaker.source.serializer import serialize

ENTITY = r"""<?php

declare(strict_types=1);

namespace App\Entity;

use App\Repository\PostRepository;
use Doctrine\ORM\Mapping as ORM;
use Symfony\Component\Validator\Constraints as Assert;
use function sprintf;
use Doctrine\Common\Collections\{ArrayCollection, Collection as Coll};

/**
 * A blog post.
 *
 * @ORM\Entity(repositoryClass=PostRepository::class)
 */
#[ORM\Table(name: 'post')]
final class Post extends BaseEntity implements \Stringable, \JsonSerializable
{
    public const STATUS_DRAFT = 'draft';

    /**
     * @ORM\Column(type="string")
     * @Assert\NotBlank
     */
    private ?string $title = null;

    #[ORM\OneToMany(targetEntity: Comment::class, mappedBy: 'post')]
    private Coll $comments;

    protected static int $count = 0;

    public function __construct(
        private readonly string $slug,
        #[Assert\Email] public ?string $author = null,
        int $plain = 1,
    ) {
        $this->comments = new ArrayCollection();
    }

    public function getTitle(): ?string
    {
        return $this->title ?? sprintf('%s', "{$this->slug}");
    }

    abstract protected function hook(array &$items = []): void;

    public function __toString(): string
    {
        return (string) $this->title;
    }
}
"""


class TestLoadClass:
    def test_round_trip_is_byte_identical(self) -> None:
        model = load(ENTITY)

        assert serialize(model) == ENTITY

    def test_header(self) -> None:
        model = load(ENTITY)

        assert model.class_name == "Post"
        assert model.namespace == "App\\Entity"
        assert model.fqcn == "App\\Entity\\Post"
        assert model.parent == "BaseEntity"
        assert model.interfaces == ("\\Stringable", "\\JsonSerializable")
        assert model.attributes == ("#[ORM\\Table(name: 'post')]",)
        assert model.doc_comment is not None
        assert "@ORM\\Entity" in model.doc_comment

    def test_prefix_ends_at_class_body(self) -> None:
        model = load(ENTITY)

        assert model.prefix.endswith("implements \\Stringable, \\JsonSerializable\n{")
        assert model.suffix == "\n}\n"

    def test_use_statements(self) -> None:
        uses = {u.short_name: u for u in load(ENTITY).use_statements}

        assert uses["PostRepository"].fqn == "App\\Repository\\PostRepository"
        assert uses["ORM"].fqn == "Doctrine\\ORM\\Mapping"
        assert uses["ORM"].alias == "ORM"
        assert uses["sprintf"].kind is UseKind.FUNCTION
        assert uses["ArrayCollection"].fqn == "Doctrine\\Common\\Collections\\ArrayCollection"
        assert uses["Coll"].fqn == "Doctrine\\Common\\Collections\\Collection"

    def test_members_in_order(self) -> None:
        members = [(m.kind, m.name) for m in load(ENTITY).members]

        assert members == [
            (MemberKind.CONSTANT, "STATUS_DRAFT"),
            (MemberKind.PROPERTY, "title"),
            (MemberKind.PROPERTY, "comments"),
            (MemberKind.PROPERTY, "count"),
            (MemberKind.METHOD, "__construct"),
            (MemberKind.METHOD, "getTitle"),
            (MemberKind.METHOD, "hook"),
            (MemberKind.METHOD, "__toString"),
        ]

    def test_member_spans_include_leading_trivia(self) -> None:
        model = load(ENTITY)
        title = model.members[model.find(MemberKind.PROPERTY, "title")]

        assert title.text.startswith("\n\n    /**")
        assert title.text.endswith("private ?string $title = null;")
        assert title.doc_comment is not None
        assert "@Assert\\NotBlank" in title.doc_comment

    def test_property_details(self) -> None:
        model = load(ENTITY)
        count = model.members[model.find(MemberKind.PROPERTY, "count")]
        comments = model.members[model.find(MemberKind.PROPERTY, "comments")]

        assert count.modifiers == ("protected", "static")
        assert count.is_static
        assert count.type == "int"
        assert count.default == "0"
        assert comments.attributes == ("#[ORM\\OneToMany(targetEntity: Comment::class, mappedBy: 'post')]",)

    def test_constant(self) -> None:
        model = load(ENTITY)
        constant = model.members[0]

        assert constant.default == "'draft'"
        assert constant.visibility == "public"

    def test_method_details(self) -> None:
        model = load(ENTITY)
        getter = model.members[model.find(MemberKind.METHOD, "gettitle")]
        hook = model.members[model.find(MemberKind.METHOD, "hook")]

        assert getter.type == "?string"
        assert getter.body is not None
        assert getter.body.startswith("{") and getter.body.endswith("}")
        assert hook.body is None
        assert hook.visibility == "protected"
        assert hook.parameters[0].name == "items"
        assert hook.parameters[0].default == "[]"

    def test_promoted_properties(self) -> None:
        model = load(ENTITY)
        props = {p.name: p for p in model.properties}

        assert props["slug"].promoted
        assert props["slug"].visibility == "private"
        assert props["author"].promoted
        assert props["author"].attributes == ("#[Assert\\Email]",)
        assert "plain" not in props
        assert not props["title"].promoted

    def test_has_property_and_method(self) -> None:
        model = load(ENTITY)

        assert model.has_property("slug")
        assert model.has_method("GETTITLE")
        assert not model.has_method("setTitle")

    def test_resolve_name(self) -> None:
        model = load(ENTITY)

        assert model.resolve_name("ORM\\Column") == "Doctrine\\ORM\\Mapping\\Column"
        assert model.resolve_name("PostRepository") == "App\\Repository\\PostRepository"
        assert model.resolve_name("Comment") == "App\\Entity\\Comment"
        assert model.resolve_name("\\DateTime") == "DateTime"
        assert model.resolve_name("namespace\\Tag") == "App\\Entity\\Tag"

    def test_markers(self) -> None:
        model = load(ENTITY)

        assert model.open_tag_end == len("<?php")
        assert model.namespace_end is not None
        assert ENTITY[: model.namespace_end].endswith("namespace App\\Entity;")
        assert model.declare_end is not None
        assert ENTITY[: model.declare_end].endswith("declare(strict_types=1);")

    def test_declare_marker_without_namespace(self) -> None:
        text = "<?php\ndeclare(strict_types=1);\n\nclass A\n{\n}\n"
        model = load(text)

        assert model.namespace_end is None
        assert text[: model.declare_end] == "<?php\ndeclare(strict_types=1);"

    def test_crlf_newline_detected(self) -> None:
        text = "<?php\r\n\r\nclass A\r\n{\r\n    public $a;\r\n}\r\n"
        model = load(text)

        assert model.newline == "\r\n"
        assert serialize(model) == text

    def test_global_class_without_namespace(self) -> None:
        model = load("<?php\nclass Legacy {}\n")

        assert model.namespace is None
        assert model.fqcn == "Legacy"
        assert model.members == ()
        assert model.resolve_name("Other") == "Other"

    def test_class_keyword_constant_is_not_declaration(self) -> None:
        model = load("<?php\n$x = Foo::class;\nclass A\n{\n}\n")

        assert model.class_name == "A"

    def test_non_ascii_text_keeps_character_offsets(self) -> None:
        text = "<?php\n\nnamespace App;\n\nuse Foo\\Bär;\n\n/** Größe */\nclass A\n{\n    public $ä = 'ü';\n}\n"
        model = load(text)

        assert serialize(model) == text
        (use,) = model.use_statements
        assert text[use.start : use.end] == "use Foo\\Bär;"
        assert text[: model.namespace_end].endswith("namespace App;")
        assert model.members[0].name == "ä"
        assert model.members[0].default == "'ü'"
        assert model.doc_comment == "/** Größe */"


class TestLoadErrors:
    @pytest.mark.parametrize(
        ("text", "code"),
        [
            ("<?php\n$a = 1;\n", ErrorCode.PARSE_ERROR),
            ("<?php\ninterface I {}\n", ErrorCode.UNSUPPORTED_CONSTRUCT),
            ("<?php\nclass A {}\nclass B {}\n", ErrorCode.UNSUPPORTED_CONSTRUCT),
            ("<?php\nnamespace A { class B {} }\n", ErrorCode.UNSUPPORTED_CONSTRUCT),
            ("<?php\nclass A { use T; }\n", ErrorCode.UNSUPPORTED_CONSTRUCT),
            ("<?php\nclass A { public $a, $b; }\n", ErrorCode.UNSUPPORTED_CONSTRUCT),
            ("<?php\nclass A { public function f() { }\n", ErrorCode.PARSE_ERROR),
            ("<?php\nclass A { public function f() ) }\n", ErrorCode.PARSE_ERROR),
        ],
    )
    def test_rejected_sources(self, text: str, code: ErrorCode) -> None:
        with pytest.raises(ParseError) as exc_info:
            load(text)

        assert exc_info.value.code == code
