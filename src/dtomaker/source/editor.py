"""Source Editor - merge synthesized declarations into a loaded ClassModel.

Editing is two-phase. ``plan`` decides, fragment by fragment, what happens to
every import and member (add, replace, skip) and where it goes. ``apply``
carries out the same decisions and returns the edited model. Both are pure:
the input model is never mutated and nothing is written anywhere.

Fragments are processed in order and later insertion points depend on
earlier ones (a second new property goes after the first new one), so the
plan is built by walking a working copy of the model.

Name collisions are never errors. Existing methods are always kept, existing
properties are kept unless ``overwrite_existing_members`` is set, and every
kept member is reported as an Advisory. When an import cannot be added
because its short name is already bound, new declarations spell that class
fully qualified.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import StrEnum

from dtomaker.core.errors import Advisory, AdvisoryKind, MergeConflict
from dtomaker.source.fragments import DeclarationFragment, GenerationOptions, Import, MemberFragment
from dtomaker.source.model import ClassModel, Member, MemberKind, UseKind, UseStatement
from dtomaker.source.serializer import count_leading_newlines, detect_indent, reindent

_LEADING_WHITESPACE = re.compile(r"[ \t\r\n]*")


class StepKind(StrEnum):
    ADD_IMPORT = "add_import"
    SKIP_IMPORT = "skip_import"
    ADD_MEMBER = "add_member"
    REPLACE_MEMBER = "replace_member"
    SKIP_MEMBER = "skip_member"


class Anchor(StrEnum):
    """Where a step puts its text."""

    AFTER_LAST_USE = "after_last_use"
    AFTER_NAMESPACE = "after_namespace"
    AFTER_DECLARE = "after_declare"
    AFTER_OPEN_TAG = "after_open_tag"
    AFTER_LAST_METHOD = "after_last_method"
    AFTER_LAST_PROPERTY = "after_last_property"
    AFTER_LAST_CONSTANT = "after_last_constant"
    BODY_START = "body_start"
    IN_PLACE = "in_place"


@dataclass(frozen=True, slots=True)
class PlanStep:
    kind: StepKind
    name: str
    member_kind: MemberKind | None = None
    anchor: Anchor | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationPlan:
    """Ordered steps for one run; built once, applied once."""

    steps: tuple[PlanStep, ...] = ()

    def of_kind(self, kind: StepKind) -> tuple[PlanStep, ...]:
        return tuple(step for step in self.steps if step.kind is kind)

    @property
    def changes_source(self) -> bool:
        return any(step.kind not in (StepKind.SKIP_IMPORT, StepKind.SKIP_MEMBER) for step in self.steps)


@dataclass(frozen=True, slots=True)
class MergeResult:
    model: ClassModel
    plan: GenerationPlan
    advisories: tuple[Advisory, ...] = ()

    @property
    def added_members(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.plan.of_kind(StepKind.ADD_MEMBER))

    @property
    def replaced_members(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.plan.of_kind(StepKind.REPLACE_MEMBER))

    @property
    def pre_existing(self) -> tuple[str, ...]:
        """Members left untouched because they already existed."""
        return tuple(step.name for step in self.plan.of_kind(StepKind.SKIP_MEMBER))

    @property
    def added_imports(self) -> tuple[str, ...]:
        return tuple(step.name for step in self.plan.of_kind(StepKind.ADD_IMPORT))


def plan(
    model: ClassModel,
    fragments: Sequence[DeclarationFragment],
    options: GenerationOptions,
) -> GenerationPlan:
    """Decide what ``apply`` would do without producing the edited model."""
    return apply(model, fragments, options).plan


def apply(
    model: ClassModel,
    fragments: Sequence[DeclarationFragment],
    options: GenerationOptions,
) -> MergeResult:
    """Merge ``fragments`` into ``model`` in order.

    Raises:
        MergeConflict: When the model has no class body to insert into, or an
            import is needed and the file has no open tag, namespace or use
            statement to anchor it to.
    """
    if not model.prefix.endswith("{"):
        raise MergeConflict.missing_anchor("class body opening brace")
    merger = _Merger(model, options)
    for fragment in fragments:
        for imp in fragment.imports:
            merger.add_import(imp)
        for member in fragment.members:
            merger.add_member(member)
    return merger.result()


class _Merger:
    """Working copy of a model that fragments are merged into one at a time."""

    def __init__(self, model: ClassModel, options: GenerationOptions) -> None:
        self.original = model
        self.options = options
        self.nl = model.newline
        self.indent = detect_indent(model)
        self.prefix = model.prefix
        self.members: list[Member] = list(model.members)
        self.suffix = model.suffix
        self.uses: list[UseStatement] = list(model.use_statements)
        self.open_tag_end = model.open_tag_end
        self.namespace_end = model.namespace_end
        self.declare_end = model.declare_end
        self.promoted = {p.name for p in model.properties if p.promoted}
        # Short names whose import clashed, mapped to the fully qualified spelling
        self.qualified: dict[str, str] = {}
        self.steps: list[PlanStep] = []
        self.advisories: list[Advisory] = []

    def result(self) -> MergeResult:
        model = replace(
            self.original,
            prefix=self.prefix,
            members=tuple(self.members),
            suffix=self.suffix,
            use_statements=tuple(self.uses),
            open_tag_end=self.open_tag_end,
            namespace_end=self.namespace_end,
            declare_end=self.declare_end,
        )
        return MergeResult(model=model, plan=GenerationPlan(tuple(self.steps)), advisories=tuple(self.advisories))

    # -- imports ------------------------------------------------------------

    def add_import(self, imp: Import) -> None:
        fqn = imp.fqn.strip("\\")
        namespace = self.original.namespace
        owner = fqn.rpartition("\\")[0] or None

        if any(use.resolves(fqn, imp.alias) for use in self.uses):
            self._step(StepKind.SKIP_IMPORT, fqn, reason="already imported")
            return
        if imp.alias is None and owner == namespace:
            # Same namespace, or a global class in a file without one
            self._step(StepKind.SKIP_IMPORT, fqn, reason="resolves without an import")
            return

        local = imp.short_name.lower()
        clash = next(
            (use for use in self.uses if use.kind is UseKind.CLASS and use.short_name.lower() == local),
            None,
        )
        if clash is not None or local == self.original.class_name.lower():
            bound = clash.fqn if clash is not None else self.original.fqcn
            self._step(StepKind.SKIP_IMPORT, fqn, reason=f"{imp.short_name} is already bound to {bound}")
            self.qualified[imp.short_name] = "\\" + fqn
            self.advisories.append(
                Advisory(
                    AdvisoryKind.IMPORT_ALIAS_CLASH,
                    f"Cannot import {fqn} as {imp.short_name}: the name is already bound to {bound}."
                    f" Declarations use \\{fqn} instead.",
                    subject=fqn,
                )
            )
            return

        statement = imp.render() if imp.fqn == fqn else Import(fqn, imp.alias).render()
        class_uses = [use for use in self.uses if use.kind is UseKind.CLASS] or self.uses
        if class_uses:
            position = max(use.end for use in class_uses)
            anchor, lead = Anchor.AFTER_LAST_USE, self.nl
        elif self.namespace_end is not None:
            position = self.namespace_end
            anchor, lead = Anchor.AFTER_NAMESPACE, self.nl + self.nl
        elif self.declare_end is not None:
            # declare(strict_types=1) has to stay the first statement
            position = self.declare_end
            anchor, lead = Anchor.AFTER_DECLARE, self.nl + self.nl
        elif self.open_tag_end is not None:
            position = self.open_tag_end
            anchor, lead = Anchor.AFTER_OPEN_TAG, self.nl + self.nl
        else:
            raise MergeConflict.missing_anchor(f"import position for {fqn}")

        text = lead + statement
        self._shift(position, len(text))
        self.prefix = self.prefix[:position] + text + self.prefix[position:]
        start = position + len(lead)
        self.uses.append(UseStatement(fqn=fqn, alias=imp.alias, start=start, end=start + len(statement)))
        self._step(StepKind.ADD_IMPORT, fqn, anchor=anchor)

    def _shift(self, position: int, length: int) -> None:
        self.uses = [
            replace(use, start=use.start + length, end=use.end + length) if use.start > position else use
            for use in self.uses
        ]
        if self.namespace_end is not None and self.namespace_end > position:
            self.namespace_end += length
        if self.declare_end is not None and self.declare_end > position:
            self.declare_end += length
        if self.open_tag_end is not None and self.open_tag_end > position:
            self.open_tag_end += length

    # -- members ------------------------------------------------------------

    def add_member(self, fragment: MemberFragment) -> None:
        fragment = self._qualify(fragment)
        existing = self._find(fragment.kind, fragment.name)
        if fragment.kind is MemberKind.PROPERTY and fragment.name in self.promoted:
            self._skip(fragment, "declared as a promoted constructor parameter")
            return
        if existing is not None:
            if fragment.kind is MemberKind.PROPERTY and self.options.overwrite_existing_members:
                self._replace(existing, fragment)
            else:
                self._skip(fragment, "already exists")
            return

        index, anchor = self._insertion_point(fragment.kind)
        body = self.nl.join(reindent(fragment.lines, self.indent))
        if index == 0:
            # Keep one blank line between the new member and the next one
            text = self.nl + body
            if self.members:
                first = self.members[0]
                missing = 2 - count_leading_newlines(first.text)
                if missing > 0:
                    self.members[0] = replace(first, text=self.nl * missing + first.text)
            elif count_leading_newlines(self.suffix) < 1:
                self.suffix = self.nl + self.suffix
        else:
            text = self.nl + self.nl + body
        self.members.insert(index, self._member(fragment, text))
        self._step(StepKind.ADD_MEMBER, fragment.name, fragment.kind, anchor)

    def _find(self, kind: MemberKind, name: str) -> int | None:
        folded = name.lower() if kind is MemberKind.METHOD else name
        for i, member in enumerate(self.members):
            if member.kind is not kind:
                continue
            if (member.name.lower() if kind is MemberKind.METHOD else member.name) == folded:
                return i
        return None

    def _last(self, kind: MemberKind) -> int | None:
        for i in range(len(self.members) - 1, -1, -1):
            if self.members[i].kind is kind:
                return i
        return None

    def _insertion_point(self, kind: MemberKind) -> tuple[int, Anchor]:
        """Index the new member takes and the anchor it follows."""
        order = [
            (MemberKind.METHOD, Anchor.AFTER_LAST_METHOD),
            (MemberKind.PROPERTY, Anchor.AFTER_LAST_PROPERTY),
            (MemberKind.CONSTANT, Anchor.AFTER_LAST_CONSTANT),
        ]
        start = {MemberKind.METHOD: 0, MemberKind.PROPERTY: 1, MemberKind.CONSTANT: 2}[kind]
        for anchor_kind, anchor in order[start:]:
            last = self._last(anchor_kind)
            if last is not None:
                return last + 1, anchor
        return 0, Anchor.BODY_START

    def _replace(self, index: int, fragment: MemberFragment) -> None:
        old = self.members[index].text
        lead = _LEADING_WHITESPACE.match(old).group(0)
        lead = lead[: lead.rfind("\n") + 1] if "\n" in lead else self.nl
        text = lead + self.nl.join(reindent(fragment.lines, self.indent))
        self.members[index] = self._member(fragment, text)
        self._step(StepKind.REPLACE_MEMBER, fragment.name, fragment.kind, Anchor.IN_PLACE)

    def _skip(self, fragment: MemberFragment, reason: str) -> None:
        self._step(StepKind.SKIP_MEMBER, fragment.name, fragment.kind, reason=reason)
        label = f"${fragment.name}" if fragment.kind is MemberKind.PROPERTY else f"{fragment.name}()"
        self.advisories.append(
            Advisory(
                AdvisoryKind.MEMBER_ALREADY_EXISTS,
                f"{fragment.kind.value.capitalize()} {label} already exists in {self.original.class_name}"
                " and was left unchanged.",
                subject=fragment.name,
            )
        )

    def _member(self, fragment: MemberFragment, text: str) -> Member:
        return Member(
            kind=fragment.kind,
            name=fragment.name,
            text=text,
            modifiers=fragment.modifiers,
            type=fragment.type,
        )

    def _step(
        self,
        kind: StepKind,
        name: str,
        member_kind: MemberKind | None = None,
        anchor: Anchor | None = None,
        reason: str | None = None,
    ) -> None:
        self.steps.append(PlanStep(kind, name, member_kind, anchor, reason))

    def _qualify(self, fragment: MemberFragment) -> MemberFragment:
        """Spell clashing short names fully qualified in type positions."""
        if not self.qualified:
            return fragment
        return replace(
            fragment,
            lines=tuple(_qualify_types(line, self.qualified) for line in fragment.lines),
            type=_qualify_types(fragment.type, self.qualified) if fragment.type else fragment.type,
        )


def _qualify_types(text: str, qualified: dict[str, str]) -> str:
    for short_name, fqn in qualified.items():
        # A type is followed by a variable, or ends the line (return types)
        pattern = re.compile(rf"(?<![\w\\$]){re.escape(short_name)}(?=\s+&?\s*\$|\s*$)")
        text = pattern.sub(lambda _: fqn, text)
    return text
