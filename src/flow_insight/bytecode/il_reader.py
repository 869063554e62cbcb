"""Reader for textual IL listings (``ildasm`` / ``monodis`` output).

Only the parts the publisher extractor needs are recovered: type
declarations with their base type, interfaces and custom attributes,
method bodies as instruction lists, local slot names and ``.line``
sequence points. Everything else in the listing is skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..exceptions import ModuleReadError
from ..logging_config import get_logger
from .model import (
    FieldRef,
    Instruction,
    MethodDef,
    MethodRef,
    ModuleImage,
    OpCategory,
    SequencePoint,
    TypeDef,
    TypeRef,
)

logger = get_logger(__name__)

_INSTRUCTION = re.compile(r"^IL_([0-9A-Fa-f]+):\s*([a-zA-Z][\w.]*)\s*(.*)$")
_LINE_DIRECTIVE = re.compile(r"^\.line\s+(\d+)(?:[^']*'([^']*)')?")
_METHOD_NAME = re.compile(r"('[^']+'|[\w.$`<>]+)\s*\(")
_TRAILING_NUMBER = re.compile(r"(\d+)$")
_SLOT_PREFIX = re.compile(r"^\[(\d+)\]\s*")

# ildasm marks compiler-hidden sequence points with this line number
_HIDDEN_LINE = 0xFEEFEE


@dataclass
class _Header:
    """Declaration text gathered until its opening brace."""

    kind: str  # "class" | "method" | "namespace"
    text: str


@dataclass
class _Block:
    kind: str  # "class" | "method" | "namespace" | "other"
    node: Union[TypeDef, MethodDef, str, None] = None
    locals: Dict[str, int] = field(default_factory=dict)


def strip_comment(line: str) -> str:
    """Remove a trailing ``//`` comment that is not inside a quoted literal."""
    quote = None
    i = 0
    while i < len(line):
        ch = line[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "/" and line.startswith("//", i):
            return line[:i].rstrip()
        i += 1
    return line


def split_top_level(text: str, separator: Optional[str] = None) -> List[str]:
    """Split ``text`` on whitespace (or ``separator``) outside brackets and quotes."""
    parts: List[str] = []
    depth = 0
    quote = None
    current: List[str] = []

    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch == "'":
            quote = ch
        elif ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth = max(0, depth - 1)

        is_break = ch.isspace() if separator is None else ch == separator
        if is_break and depth == 0:
            if current:
                parts.append("".join(current).strip())
                current = []
            continue
        current.append(ch)

    if current and "".join(current).strip():
        parts.append("".join(current).strip())
    return parts


def _strip_generic_args(text: str) -> str:
    """``Ns.Envelope`1<class Ns.E>`` -> ``Ns.Envelope`1``; quoted names are kept."""
    depth = 0
    quoted = False
    for i, ch in enumerate(text):
        if ch == "'":
            quoted = not quoted
        elif quoted:
            continue
        elif ch == "<":
            if depth == 0 and i > 0:
                return text[:i]
            depth += 1
        elif ch == ">":
            depth -= 1
    return text


def parse_type_ref(text: str) -> TypeRef:
    """Parse an IL type reference such as ``class [Asm]Ns.Outer/Inner``."""
    tokens = split_top_level(text.strip())
    tokens = [t for t in tokens if t not in ("class", "valuetype", "instance", "modopt", "modreq")]
    raw = tokens[-1] if tokens else text.strip()

    scope = ""
    if raw.startswith("["):
        end = raw.find("]")
        if end > 0:
            scope = raw[1:end]
            raw = raw[end + 1 :]

    raw = _strip_generic_args(raw)
    while raw.endswith(("[]", "&", "*")):
        raw = raw[:-2] if raw.endswith("[]") else raw[:-1]

    full_name = raw.replace("'", "")
    simple = full_name.rsplit("/", 1)[-1]
    if "/" not in full_name:
        simple = simple.rsplit(".", 1)[-1]
    return TypeRef(name=simple, full_name=full_name, scope=scope)


def _split_member(text: str):
    """Split ``<signature prefix> Owner::Member(...)`` at the top-level ``::``."""
    depth = 0
    quote = False
    for i, ch in enumerate(text):
        if ch == "'":
            quote = not quote
        elif quote:
            continue
        elif ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth -= 1
        elif ch == ":" and depth == 0 and text.startswith("::", i):
            return text[:i], text[i + 2 :]
    return None


def parse_method_ref(text: str) -> Optional[MethodRef]:
    parts = _split_member(text)
    if parts is None:
        return None
    owner_text, member = parts
    owner_tokens = split_top_level(owner_text)
    if not owner_tokens:
        return None

    if member.startswith("'"):
        name = member[1 : member.find("'", 1)]
    else:
        name = re.split(r"[(<]", member, maxsplit=1)[0].strip()
    return MethodRef(name=name, declaring_type=parse_type_ref(owner_tokens[-1]))


def parse_field_ref(text: str) -> Optional[FieldRef]:
    parts = _split_member(text)
    if parts is None:
        return None
    owner_text, member = parts
    tokens = split_top_level(owner_text)
    if len(tokens) < 2:
        return None
    return FieldRef(
        name=member.strip().strip("'"),
        field_type=parse_type_ref(" ".join(tokens[:-1])),
        declaring_type=parse_type_ref(tokens[-1]),
    )


class ILListingReader:
    """Builds a :class:`ModuleImage` from an IL listing file."""

    def read(self, path: Path) -> ModuleImage:
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ModuleReadError(path, f"Cannot read listing: {e}")
        return self.parse(text, str(path), default_name=Path(path).stem)

    def parse(self, text: str, path: str = "", default_name: str = "") -> ModuleImage:
        module = ModuleImage(name=default_name, path=path)
        assembly_name: Optional[str] = None
        stack: List[_Block] = []
        header: Optional[_Header] = None
        locals_text: Optional[str] = None
        pending_line: Optional[SequencePoint] = None

        for number, raw in enumerate(text.splitlines(), start=1):
            line = strip_comment(raw.strip())
            if not line:
                continue

            if header is not None:
                if line.startswith("{"):
                    stack.append(self._open(header, stack, module))
                    header = None
                else:
                    header.text += " " + line.rstrip("{").strip()
                    if line.endswith("{"):
                        stack.append(self._open(header, stack, module))
                        header = None
                continue

            if locals_text is not None:
                locals_text += " " + line
                if self._balanced(locals_text):
                    self._record_locals(locals_text, stack)
                    locals_text = None
                continue

            if line.startswith((".class ", ".method ", ".namespace ")):
                kind, _, rest = line[1:].partition(" ")
                header = _Header(kind=kind, text=rest.rstrip("{").strip())
                if line.endswith("{"):
                    stack.append(self._open(header, stack, module))
                    header = None
                continue

            if line.startswith(".assembly ") and not line.startswith(".assembly extern"):
                tokens = split_top_level(line[len(".assembly ") :].rstrip("{"))
                if tokens:
                    assembly_name = tokens[-1].strip("'")
                if line.endswith("{"):
                    stack.append(_Block("other"))
                continue

            if line.startswith("{"):
                stack.append(_Block("other"))
                continue

            if line.startswith("}"):
                if not stack:
                    raise ModuleReadError(Path(path), f"Unbalanced '}}' at line {number}")
                stack.pop()
                continue

            if line.startswith(".custom"):
                self._record_attribute(line, stack)
                continue

            if line.startswith(".locals"):
                locals_text = line
                if self._balanced(locals_text):
                    self._record_locals(locals_text, stack)
                    locals_text = None
                continue

            if line.startswith(".line"):
                directive = _LINE_DIRECTIVE.match(line)
                if directive and int(directive.group(1)) < _HIDDEN_LINE:
                    pending_line = SequencePoint(
                        offset=-1, line=int(directive.group(1)), document=directive.group(2) or ""
                    )
                continue

            instruction = _INSTRUCTION.match(line)
            if instruction:
                method_block = self._innermost(stack, "method")
                if method_block is None:
                    continue
                method = method_block.node
                decoded = self._decode(instruction, method_block)
                method.instructions.append(decoded)
                if pending_line is not None:
                    method.sequence_points.append(
                        SequencePoint(decoded.offset, pending_line.line, pending_line.document)
                    )
                    pending_line = None
                continue

            if line.endswith("{"):
                stack.append(_Block("other"))

        if stack:
            logger.debug(f"{path}: {len(stack)} block(s) left open at end of listing")
        if assembly_name:
            module.name = assembly_name
        if not module.name:
            raise ModuleReadError(Path(path), "Listing declares no assembly")
        return module

    # ── Blocks ─────────────────────────────────────────────────

    def _open(self, header: _Header, stack: List[_Block], module: ModuleImage) -> _Block:
        if header.kind == "namespace":
            return _Block("namespace", node=header.text.strip())
        if header.kind == "class":
            type_def = self._parse_class(header.text, stack)
            module.types.append(type_def)
            return _Block("class", node=type_def)

        owner = self._innermost(stack, "class")
        method = MethodDef(name=self._method_name(header.text))
        if owner is not None:
            owner.node.methods.append(method)
        return _Block("method", node=method)

    def _parse_class(self, text: str, stack: List[_Block]) -> TypeDef:
        implements = ""
        if " implements " in f" {text} ":
            text, _, implements = f" {text} ".partition(" implements ")
        extends = ""
        if " extends " in f" {text} ":
            text, _, extends = f" {text} ".partition(" extends ")

        tokens = split_top_level(text)
        flags = set(tokens[:-1])
        name = _strip_generic_args(tokens[-1]).strip("'") if tokens else ""

        outer = self._innermost(stack, "class")
        namespace = self._innermost(stack, "namespace")
        if "nested" in flags and outer is not None:
            full_name = f"{outer.node.full_name}/{name}"
            simple = name
            declaring_type = outer.node
        else:
            full_name = name
            if namespace is not None and "." not in name:
                full_name = f"{namespace.node}.{name}"
            simple = name.rsplit(".", 1)[-1]
            declaring_type = None

        return TypeDef(
            name=simple,
            full_name=full_name,
            base_type=parse_type_ref(extends) if extends.strip() else None,
            interfaces=[parse_type_ref(i) for i in split_top_level(implements, ",")],
            is_interface="interface" in flags,
            is_abstract="abstract" in flags,
            declaring_type=declaring_type,
        )

    @staticmethod
    def _method_name(text: str) -> str:
        for match in _METHOD_NAME.finditer(text):
            name = match.group(1)
            if name in ("pinvokeimpl", "marshal"):
                continue
            if name.startswith("'"):
                return name.strip("'")
            return name.split("<", 1)[0] or name
        return text.split()[-1] if text.split() else ""

    @staticmethod
    def _innermost(stack: List[_Block], kind: str) -> Optional[_Block]:
        for block in reversed(stack):
            if block.kind == kind:
                return block
        return None

    # ── Members ────────────────────────────────────────────────

    def _record_attribute(self, line: str, stack: List[_Block]) -> None:
        if not stack or stack[-1].kind not in ("class", "method"):
            return
        ctor = line.find("::.ctor")
        if ctor < 0:
            return
        tokens = split_top_level(line[len(".custom") : ctor])
        if not tokens:
            return
        stack[-1].node.attributes.append(parse_type_ref(tokens[-1]).name)

    @staticmethod
    def _balanced(text: str) -> bool:
        return "(" in text and text.count("(") <= text.count(")")

    def _record_locals(self, text: str, stack: List[_Block]) -> None:
        method_block = self._innermost(stack, "method")
        if method_block is None:
            return
        inner = text[text.find("(") + 1 : text.rfind(")")]
        for index, entry in enumerate(split_top_level(inner, ",")):
            slot = index
            explicit = _SLOT_PREFIX.match(entry)
            if explicit:
                slot = int(explicit.group(1))
                entry = entry[explicit.end() :]
            tokens = split_top_level(entry)
            if len(tokens) >= 2:
                method_block.locals[tokens[-1].strip("'")] = slot

    def _decode(self, match: re.Match, method_block: _Block) -> Instruction:
        offset = int(match.group(1), 16)
        opcode = match.group(2)
        text = match.group(3).strip()
        bare = Instruction(offset, opcode)

        operand = None
        if bare.category in (OpCategory.CALL, OpCategory.NEW_OBJECT):
            operand = parse_method_ref(text) if text else None
        elif bare.category is OpCategory.LOAD_FIELD:
            operand = parse_field_ref(text) if text else None
        elif bare.category in (OpCategory.LOAD_LOCAL, OpCategory.STORE_LOCAL):
            operand = self._slot(text, method_block)
        elif text:
            operand = text
        return Instruction(offset, opcode, operand)

    @staticmethod
    def _slot(text: str, method_block: _Block) -> Optional[int]:
        if not text:
            return None
        name = text.strip("'")
        if name in method_block.locals:
            return method_block.locals[name]
        number = _TRAILING_NUMBER.search(name)
        return int(number.group(1)) if number else None
