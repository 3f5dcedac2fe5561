"""Class Model Loader - structural view of one PHP class file.

The file is parsed with tree-sitter; the loader then reads the top-level
statements (namespace, use, class) and the class body's member declarations.
Method bodies and default-value expressions are kept as opaque text.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from dtomaker.core.errors import ParseError
from dtomaker.core.logging import get_logger
from dtomaker.source.model import ClassModel, Member, MemberKind, Parameter, UseKind, UseStatement
from dtomaker.source.serializer import detect_newline
from dtomaker.source.treesitter import (
    TYPE_NODES,
    PhpSource,
    child_of_type,
    children_of_type,
    compact,
    field,
    is_doc_comment,
)

log = get_logger("source.loader")

TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "trait_declaration": "trait",
    "enum_declaration": "enum",
}
PARAMETER_NODES = ("simple_parameter", "variadic_parameter", "property_promotion_parameter")


def load(source_text: str) -> ClassModel:
    """Parse ``source_text`` into a ClassModel.

    Raises:
        ParseError: When the text does not hold exactly one class declaration
            or contains constructs the model cannot represent.
    """
    source = PhpSource(source_text)
    source.check_syntax()
    model = _Loader(source).load()
    log.debug(
        "class_loaded",
        class_name=model.fqcn,
        members=len(model.members),
        uses=len(model.use_statements),
    )
    return model


def _line(node: Any) -> int:
    return node.start_point[0] + 1


def _modifiers(node: Any, source: PhpSource) -> list[str]:
    return [
        source.node_text(child).lower()
        for child in node.children
        if child.type.endswith("_modifier") and child.type != "reference_modifier"
    ]


def _type_text(node: Any, source: PhpSource) -> str | None:
    type_node = field(node, "type", *TYPE_NODES)
    return compact(source.node_text(type_node)) if type_node is not None else None


def _after_equals(source: PhpSource, start: int, end: int) -> str | None:
    """Expression text following ``=`` between two byte offsets."""
    tail = source.slice(start, end).strip()
    if not tail.startswith("="):
        return None
    return tail[1:].strip() or None


class _Loader:
    def __init__(self, source: PhpSource) -> None:
        self.source = source

    def text(self, node: Any) -> str:
        return self.source.node_text(node)

    def attributes(self, node: Any) -> list[str]:
        """Each ``#[...]`` group attached to ``node``, as written."""
        attribute_list = field(node, "attributes", "attribute_list")
        if attribute_list is None:
            return []
        groups: list[str] = []
        group_start: int | None = None
        for child in attribute_list.children:
            if child.type == "attribute_group":
                groups.append(self.text(child))
            elif child.type == "#[":
                group_start = child.start_byte
            elif child.type == "]" and group_start is not None:
                groups.append(self.source.slice(group_start, child.end_byte))
                group_start = None
        return groups

    # -- top level ----------------------------------------------------------

    def load(self) -> ClassModel:
        root = self.source.root
        open_tag_end: int | None = None
        namespace: str | None = None
        namespace_end: int | None = None
        declare_end: int | None = None
        uses: list[UseStatement] = []
        declarations: list[Any] = []

        for node in root.children:
            if node.type == "php_tag" and open_tag_end is None:
                open_tag_end = self.source.char_offset(node.end_byte)
            elif node.type == "namespace_definition":
                if namespace is not None:
                    raise ParseError.unsupported("multiple namespaces", _line(node))
                namespace = self._namespace(node)
                namespace_end = self.source.char_offset(node.end_byte)
            elif node.type == "declare_statement" and not declarations:
                declare_end = self.source.char_offset(node.end_byte)
            elif node.type == "namespace_use_declaration":
                uses.extend(self._use(node))
            elif node.type in TYPE_DECLARATIONS:
                declarations.append(node)

        if not declarations:
            raise ParseError.at("No class declaration found")
        if len(declarations) > 1:
            raise ParseError.unsupported("more than one type declaration per file", _line(declarations[1]))
        declaration = declarations[0]
        kind = TYPE_DECLARATIONS[declaration.type]
        if kind != "class":
            raise ParseError.unsupported(f"{kind} declarations", _line(declaration))

        body = field(declaration, "body", "declaration_list")
        if body is None:
            raise ParseError.at("Class declaration without a body", _line(declaration))
        brace = child_of_type(body, "{")
        body_open = brace.end_byte if brace is not None else body.start_byte + 1
        members, members_end = self._members(body, body_open)
        name_node = field(declaration, "name", "name")

        return ClassModel(
            prefix=self.source.slice(0, body_open),
            members=tuple(members),
            suffix=self.source.slice(members_end, len(self.source.data)),
            class_name=self.text(name_node),
            namespace=namespace,
            use_statements=tuple(uses),
            parent=self._parent(declaration),
            interfaces=tuple(self._interfaces(declaration)),
            doc_comment=self._leading_doc(declaration),
            attributes=tuple(self.attributes(declaration)),
            open_tag_end=open_tag_end,
            namespace_end=namespace_end,
            declare_end=declare_end,
            newline=detect_newline(self.source.text),
        )

    def _namespace(self, node: Any) -> str:
        if field(node, "body", "compound_statement") is not None:
            if field(node, "name", "namespace_name") is None:
                raise ParseError.unsupported("global namespace blocks", _line(node))
            raise ParseError.unsupported("braced namespace declarations", _line(node))
        name = field(node, "name", "namespace_name")
        if name is None:
            raise ParseError.at("Namespace declaration without a name", _line(node))
        return compact(self.text(name)).lstrip("\\")

    def _use(self, node: Any) -> list[UseStatement]:
        clause = " ".join(self.text(node).split())
        clause = clause[len("use") :].rstrip(";").strip()
        kind = UseKind.CLASS
        head, _, rest = clause.partition(" ")
        if head.lower() in ("function", "const") and rest:
            kind = UseKind(head.lower())
            clause = rest

        if "{" in clause:
            group_prefix, _, inner = clause.partition("{")
            group_prefix = group_prefix.strip().strip("\\")
            entries = [f"{group_prefix}\\{entry.strip()}" for entry in inner.rstrip("} ").split(",") if entry.strip()]
        else:
            entries = [entry.strip() for entry in clause.split(",") if entry.strip()]

        start = self.source.char_offset(node.start_byte)
        stop = self.source.char_offset(node.end_byte)
        statements = []
        for entry in entries:
            entry_kind = kind
            words = entry.split()
            if words[0].lower() in ("function", "const") and len(words) > 1:
                entry_kind = UseKind(words[0].lower())
                words = words[1:]
            fqn = words[0].replace("\\ ", "\\").lstrip("\\")
            alias = words[2] if len(words) == 3 and words[1].lower() == "as" else None
            statements.append(UseStatement(fqn=fqn, alias=alias, kind=entry_kind, start=start, end=stop))
        return statements

    def _clause_names(self, declaration: Any, clause_type: str, keyword: str) -> list[str]:
        """Names listed in an ``extends`` or ``implements`` clause."""
        clause = child_of_type(declaration, clause_type)
        if clause is None:
            return []
        listed = self.text(clause).strip()[len(keyword) :]
        return [compact(name) for name in listed.split(",") if name.strip()]

    def _parent(self, declaration: Any) -> str | None:
        names = self._clause_names(declaration, "base_clause", "extends")
        return names[0] if names else None

    def _interfaces(self, declaration: Any) -> list[str]:
        return self._clause_names(declaration, "class_interface_clause", "implements")

    def _leading_doc(self, node: Any) -> str | None:
        """Closest doc-comment among the comments right before ``node``."""
        sibling = node.prev_named_sibling
        while sibling is not None and sibling.type == "comment":
            text = self.text(sibling)
            if is_doc_comment(text):
                return text
            sibling = sibling.prev_named_sibling
        return None

    # -- class body ---------------------------------------------------------

    def _members(self, body: Any, body_open: int) -> tuple[list[Member], int]:
        members: list[Member] = []
        pos = body_open
        doc_comment: str | None = None
        for node in body.named_children:
            if node.type == "comment":
                text = self.text(node)
                if is_doc_comment(text):
                    doc_comment = text
                continue
            member = self._member(node, doc_comment)
            members.append(_with_text(member, self.source.slice(pos, node.end_byte)))
            pos = node.end_byte
            doc_comment = None
        return members, pos

    def _member(self, node: Any, doc_comment: str | None) -> Member:
        if node.type == "use_declaration":
            raise ParseError.unsupported("trait use statements", _line(node))
        if node.type == "enum_case":
            raise ParseError.unsupported("enum cases", _line(node))
        if node.type == "const_declaration":
            return self._constant(node, doc_comment)
        if node.type == "property_declaration":
            return self._property(node, doc_comment)
        if node.type == "method_declaration":
            return self._method(node, doc_comment)
        raise ParseError.unsupported(f"class member {node.type!r}", _line(node))

    def _constant(self, node: Any, doc_comment: str | None) -> Member:
        elements = children_of_type(node, "const_element")
        if len(elements) > 1:
            raise ParseError.unsupported("grouped constant declarations", _line(node))
        if not elements:
            raise ParseError.at("Constant declaration without a name", _line(node))
        element = elements[0]
        name = child_of_type(element, "name")
        if name is None:
            raise ParseError.at("Constant declaration without a name", _line(node))
        return Member(
            kind=MemberKind.CONSTANT,
            name=self.text(name),
            text="",
            modifiers=tuple(_modifiers(node, self.source)),
            doc_comment=doc_comment,
            attributes=tuple(self.attributes(node)),
            default=_after_equals(self.source, name.end_byte, element.end_byte),
        )

    def _property(self, node: Any, doc_comment: str | None) -> Member:
        if child_of_type(node, "property_hook_list") is not None:
            raise ParseError.unsupported("property hooks", _line(node))
        elements = children_of_type(node, "property_element")
        if len(elements) > 1:
            raise ParseError.unsupported("grouped property declarations", _line(elements[1]))
        if not elements:
            raise ParseError.at("Property declaration without a variable", _line(node))
        variable = child_of_type(elements[0], "variable_name")
        if variable is None:
            raise ParseError.at("Property declaration without a variable", _line(node))
        return Member(
            kind=MemberKind.PROPERTY,
            name=self.text(variable).lstrip("$"),
            text="",
            modifiers=tuple(_modifiers(node, self.source)),
            doc_comment=doc_comment,
            attributes=tuple(self.attributes(node)),
            type=_type_text(node, self.source),
            default=_after_equals(self.source, variable.end_byte, elements[0].end_byte),
        )

    def _method(self, node: Any, doc_comment: str | None) -> Member:
        name = field(node, "name", "name")
        params = field(node, "parameters", "formal_parameters")
        if name is None or params is None:
            raise ParseError.at("Method declaration without a name or parameter list", _line(node))
        body_node = field(node, "body", "compound_statement")

        # Return type is whatever sits between the parameter list and the body
        header_end = body_node.start_byte if body_node is not None else node.end_byte
        return_type = self.source.slice(params.end_byte, header_end).strip().rstrip(";").strip()
        return Member(
            kind=MemberKind.METHOD,
            name=self.text(name),
            text="",
            modifiers=tuple(_modifiers(node, self.source)),
            doc_comment=doc_comment,
            attributes=tuple(self.attributes(node)),
            type=compact(return_type.removeprefix(":")) or None,
            parameters=tuple(self._parameter(p) for p in children_of_type(params, *PARAMETER_NODES)),
            body=self.text(body_node) if body_node is not None else None,
        )

    def _parameter(self, node: Any) -> Parameter:
        variable = child_of_type(node, "variable_name")
        if variable is None:
            by_ref = child_of_type(node, "by_ref")
            variable = child_of_type(by_ref, "variable_name") if by_ref is not None else None
        if variable is None:
            raise ParseError.at("Parameter without a variable name", _line(node))
        return Parameter(
            name=self.text(variable).lstrip("$"),
            type=_type_text(node, self.source),
            default=_after_equals(self.source, variable.end_byte, node.end_byte),
            modifiers=tuple(_modifiers(node, self.source)),
            attributes=tuple(self.attributes(node)),
            text=self.text(node),
        )


def _with_text(member: Member, text: str) -> Member:
    return replace(member, text=text)
