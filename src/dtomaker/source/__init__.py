"""Source module - load, edit and serialize a single PHP class file."""

from dtomaker.source.editor import GenerationPlan, MergeResult, PlanStep, StepKind, apply, plan
from dtomaker.source.fragments import (
    AnnotationSpec,
    Constant,
    DeclarationFragment,
    FieldDescriptor,
    FieldType,
    GenerationOptions,
    Import,
    TypeKind,
)
from dtomaker.source.loader import load
from dtomaker.source.model import ClassModel, Member, MemberKind, UseStatement
from dtomaker.source.serializer import serialize
from dtomaker.source.synthesizer import synthesize, synthesize_helpers

__all__ = [
    # Model
    "ClassModel",
    "Member",
    "MemberKind",
    "UseStatement",
    "load",
    "serialize",
    # Synthesis
    "AnnotationSpec",
    "Constant",
    "DeclarationFragment",
    "FieldDescriptor",
    "FieldType",
    "GenerationOptions",
    "Import",
    "TypeKind",
    "synthesize",
    "synthesize_helpers",
    # Editing
    "GenerationPlan",
    "MergeResult",
    "PlanStep",
    "StepKind",
    "apply",
    "plan",
]
