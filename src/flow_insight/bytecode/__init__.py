"""Compiled-module support: module image, IL listing reader, publisher extractor."""

from .il_reader import ILListingReader
from .model import (
    FieldRef,
    Instruction,
    MethodDef,
    MethodRef,
    ModuleImage,
    OpCategory,
    SequencePoint,
    TypeDef,
    TypeNode,
    TypeRef,
    TypeResolver,
    categorize,
)
from .publishers import UNKNOWN_EVENT, BytecodePublisherExtractor

__all__ = [
    "BytecodePublisherExtractor",
    "FieldRef",
    "ILListingReader",
    "Instruction",
    "MethodDef",
    "MethodRef",
    "ModuleImage",
    "OpCategory",
    "SequencePoint",
    "TypeDef",
    "TypeNode",
    "TypeRef",
    "TypeResolver",
    "UNKNOWN_EVENT",
    "categorize",
]
