"""Bytecode publisher extractor.

Walks every method body of a compiled module looking for calls to a
publish method on a publisher capability, then traces backwards through
the preceding instructions to work out which event type was passed.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from ..config import DEFAULT_INDICATORS, DEFAULT_LIMITS, IndicatorSets, ScanLimits
from ..exceptions import TypeResolutionError
from ..logging_config import get_logger
from ..models import PublishSite
from ..scanning import lookback
from .model import (
    FieldRef,
    Instruction,
    MethodDef,
    MethodRef,
    ModuleImage,
    OpCategory,
    TypeDef,
    TypeRef,
    TypeResolver,
)

logger = get_logger(__name__)

UNKNOWN_EVENT = "Unknown"

# Upper bound on base-type hops; guards against cyclic metadata
_MAX_HIERARCHY_DEPTH = 32

_GENERATED_NAME = re.compile(r"^<([^>]+)>")


def source_method_name(type_def: TypeDef, method: MethodDef) -> str:
    """Method name as written in source.

    ``<Run>b__2_0`` (lambda) and ``MoveNext`` inside ``<Run>d__2`` (async
    state machine) both map back to ``Run``.
    """
    for name in (method.name, type_def.name):
        match = _GENERATED_NAME.match(name)
        if match:
            return match.group(1)
    return method.name


class BytecodePublisherExtractor:
    """Finds publish sites in a compiled module image."""

    def __init__(
        self,
        indicators: Optional[IndicatorSets] = None,
        limits: Optional[ScanLimits] = None,
    ):
        self.indicators = indicators or DEFAULT_INDICATORS
        self.limits = limits or DEFAULT_LIMITS
        self._job_markers = tuple(
            m.strip("[]()") for m in self.indicators.background_job_markers if m.strip("[]()")
        )

    def extract(
        self,
        module: ModuleImage,
        repository: str,
        include_details: bool = False,
        resolver: Optional[TypeResolver] = None,
    ) -> List[PublishSite]:
        """Return every publish site in ``module``.

        ``resolver`` defaults to the module itself, so references into
        other modules are unresolvable and fall back to name matching.
        """
        resolver = resolver or module
        publishers: List[PublishSite] = []

        for type_def in module.types:
            if type_def.is_interface or type_def.is_abstract:
                continue

            # Async and lambda bodies live in nested generated types
            owner = type_def.source_type()
            in_job = self.is_background_job_type(owner)
            for method in type_def.methods:
                if not method.has_body:
                    continue
                publishers.extend(
                    self._scan_method(
                        method, type_def, owner, module, repository, include_details, in_job, resolver
                    )
                )

        return publishers

    def _scan_method(
        self,
        method: MethodDef,
        type_def: TypeDef,
        owner: TypeDef,
        module: ModuleImage,
        repository: str,
        include_details: bool,
        in_job: bool,
        resolver: TypeResolver,
    ) -> List[PublishSite]:
        sites: List[PublishSite] = []
        instructions = method.instructions

        for i, instruction in enumerate(instructions):
            if instruction.category is not OpCategory.CALL:
                continue
            target = instruction.operand
            if not isinstance(target, MethodRef) or not self.is_publish_call(target, resolver):
                continue

            event_name = self.trace_event_type(instructions, i, resolver)
            context = (
                self._il_context(instructions, i)
                if include_details
                else f"Call to {target.name}"
            )
            site = PublishSite(
                event_name=event_name,
                repository=repository,
                project=module.name,
                origin_unit=module.path or f"{module.name}.dll",
                class_name=owner.name,
                method_name=source_method_name(type_def, method),
                position=method.line_for(instruction.offset),
                context=context,
                is_in_background_job=in_job,
                background_job_class_name=owner.name if in_job else None,
            )
            logger.debug(f"Found publisher: {site.class_name}.{site.method_name}() -> {event_name}")
            sites.append(site)

        return sites

    # ── Candidate call detection ───────────────────────────────

    def is_publish_call(self, target: MethodRef, resolver: TypeResolver) -> bool:
        """True if ``target`` is a publish method on a publisher capability."""
        if target.name not in self.indicators.publisher_method_names:
            return False
        return self.is_publisher_type(target.declaring_type, resolver)

    def is_publisher_type(self, ref: TypeRef, resolver: TypeResolver) -> bool:
        """True if ``ref`` is, implements or inherits a publisher capability.

        Walks the base-type chain, checking each level's name and declared
        interfaces (and the interfaces those extend, when resolvable). An
        unresolvable ``ref`` is judged by its own name.
        """
        try:
            resolved = resolver.resolve(ref)
        except TypeResolutionError as e:
            logger.debug(f"Falling back to name match for {ref}: {e.reason}")
            resolved = None
        if resolved is None:
            return self._names_publisher(ref.name)

        seen: set[str] = set()
        node = resolved
        for _ in range(_MAX_HIERARCHY_DEPTH):
            if self._names_publisher(node.name):
                return True
            if any(self._interface_is_publisher(iface, resolver, seen) for iface in node.interfaces):
                return True
            base = node.base_type
            if base is None:
                return False
            if self._names_publisher(base.name):
                return True
            node = self._try_resolve(base, resolver)
            if node is None:
                return False
        return False

    def _interface_is_publisher(self, ref: TypeRef, resolver: TypeResolver, seen: set) -> bool:
        if ref.full_name in seen:
            return False
        seen.add(ref.full_name)
        if self._names_publisher(ref.name):
            return True
        node = self._try_resolve(ref, resolver)
        if node is None:
            return False
        return any(self._interface_is_publisher(parent, resolver, seen) for parent in node.interfaces)

    def _names_publisher(self, name: str) -> bool:
        return any(p in name for p in self.indicators.publisher_type_names)

    # ── Event type tracing ─────────────────────────────────────

    def trace_event_type(
        self, instructions: Sequence[Instruction], call_index: int, resolver: TypeResolver
    ) -> str:
        """Event type passed to the call at ``call_index``, or ``Unknown``.

        Walks back over the preceding instructions; at each one it accepts,
        in this order, an event construction, a local load whose slot was
        last stored straight from an event construction, or a load of a
        field typed as an event.
        """

        def origin(index: int, instruction: Instruction) -> Optional[str]:
            category = instruction.category
            operand = instruction.operand

            if category is OpCategory.NEW_OBJECT and isinstance(operand, MethodRef):
                if self.is_event_type(operand.declaring_type, resolver):
                    return operand.declaring_type.name

            elif category is OpCategory.LOAD_LOCAL:
                return self._trace_local(instructions, index, resolver)

            elif category is OpCategory.LOAD_FIELD and isinstance(operand, FieldRef):
                if self.is_event_type(operand.field_type, resolver):
                    return operand.field_type.name

            return None

        found = lookback(instructions, call_index, self.limits.bytecode_lookback, origin)
        return found if found is not None else UNKNOWN_EVENT

    def _trace_local(
        self, instructions: Sequence[Instruction], load_index: int, resolver: TypeResolver
    ) -> Optional[str]:
        """Event type constructed right before the nearest store to the loaded slot."""
        slot = instructions[load_index].local_slot
        if slot is None:
            return None

        def nearest_store(index: int, instruction: Instruction) -> Optional[int]:
            if instruction.category is OpCategory.STORE_LOCAL and instruction.local_slot == slot:
                return index
            return None

        store_index = lookback(instructions, load_index, None, nearest_store)
        if store_index is None or store_index == 0:
            return None

        previous = instructions[store_index - 1]
        if previous.category is OpCategory.NEW_OBJECT and isinstance(previous.operand, MethodRef):
            constructed = previous.operand.declaring_type
            if self.is_event_type(constructed, resolver):
                return constructed.name
        return None

    def is_event_type(self, ref: TypeRef, resolver: TypeResolver) -> bool:
        """True if ``ref`` is named like an event or derives from the event base type."""
        if ref.name.endswith(tuple(self.indicators.bytecode_event_suffixes)):
            return True

        base_name = self.indicators.event_base_type
        node = self._try_resolve(ref, resolver)
        for _ in range(_MAX_HIERARCHY_DEPTH):
            if node is None or node.base_type is None:
                return False
            base = node.base_type
            if base.name == base_name or base.name.endswith(base_name):
                return True
            node = self._try_resolve(base, resolver)
        return False

    # ── Background jobs and context ────────────────────────────

    def is_background_job_type(self, type_def: TypeDef) -> bool:
        """True if the type, or one of its methods, is marked as job code."""
        if any(self._is_job_attribute(a) for a in type_def.attributes):
            return True
        if any(self.indicators.job_interface_token in iface.name for iface in type_def.interfaces):
            return True
        return any(
            self._is_job_attribute(a) for method in type_def.methods for a in method.attributes
        )

    def _is_job_attribute(self, attribute_name: str) -> bool:
        return any(marker in attribute_name for marker in self._job_markers)

    def _il_context(self, instructions: Sequence[Instruction], index: int) -> str:
        radius = self.limits.il_context_radius
        start = max(0, index - radius)
        end = min(len(instructions) - 1, index + radius)
        return "\n".join(
            f"{'>>> ' if i == index else '    '}{instructions[i]}" for i in range(start, end + 1)
        )

    @staticmethod
    def _try_resolve(ref: TypeRef, resolver: TypeResolver):
        try:
            return resolver.resolve(ref)
        except TypeResolutionError as e:
            logger.debug(f"Cannot resolve {ref}: {e.reason}")
            return None
