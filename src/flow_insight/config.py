"""Configuration loading and management for Flow Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.flow-insight.toml)
    3. Project config (./flow-insight.toml)
    4. Explicit config file
    5. Environment variables (FLOW_INSIGHT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(include_details=True)
    >>> config.include_details
    True
    >>> config.limits.lookback_lines
    20
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import FlowInsightError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]


@dataclass(frozen=True)
class IndicatorSets:
    """Fixed token lists the extractors recognise.

    Attributes:
        test_project_markers: Name fragments marking test projects/assemblies
        background_job_markers: Tokens marking code run by a job framework
        job_interface_token: Interface-name fragment marking a job type
        publisher_method_names: Method names that publish an event
        publisher_type_names: Type-name fragments of publisher capabilities
        publisher_field_names: Field names holding a publisher in source code
        event_base_type: Base type an event definition inherits from
        event_type_suffix: Suffix of event type names in source code
        bytecode_event_suffixes: Suffixes of event type names in compiled code
        handler_interface: Generic handler interface implemented by consumers
        registration_lifetimes: DI registration methods binding a handler
        registration_keywords: Lower-case fragments of a registration context
        subscribe_method_names: Event-bus subscribe method names
        entry_unit_markers: Lower-case file-name fragments of startup units
        standard_event_properties: Properties every event inherits
    """

    test_project_markers: tuple[str, ...] = (
        ".Test",
        ".Tests",
        ".UnitTest",
        ".UnitTests",
        ".IntegrationTest",
        ".IntegrationTests",
        ".FunctionalTest",
        ".FunctionalTests",
        "Test.",
        "Tests.",
        ".Testing",
        ".Specs",
        ".Spec",
    )
    background_job_markers: tuple[str, ...] = (
        "BackgroundJob",
        "RecurringJob",
        "[AutomaticRetry]",
        "[Queue(",
        "IJob",
        "[JobDisplayName",
    )
    job_interface_token: str = "IJob"
    publisher_method_names: tuple[str, ...] = ("Publish", "PublishAsync", "Send", "SendAsync")
    publisher_type_names: tuple[str, ...] = (
        "IMessagePublisher",
        "IEventBus",
        "IIntegrationEventPublisher",
        "IPublisher",
    )
    publisher_field_names: tuple[str, ...] = ("_messagePublisher",)
    event_base_type: str = "IntegrationEvent"
    event_type_suffix: str = "IntegrationEvent"
    bytecode_event_suffixes: tuple[str, ...] = ("IntegrationEvent", "Event", "Message")
    handler_interface: str = "IIntegrationEventHandler"
    registration_lifetimes: tuple[str, ...] = ("AddTransient", "AddScoped", "AddSingleton")
    registration_keywords: tuple[str, ...] = (
        "configureservices",
        "addtransient",
        "addscoped",
        "addsingleton",
        "services.",
    )
    subscribe_method_names: tuple[str, ...] = ("Subscribe", "SubscribeAsync")
    entry_unit_markers: tuple[str, ...] = ("startup", "program", "configuration")
    standard_event_properties: tuple[str, ...] = ("Id", "CreatedAt", "Version")

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                # TOML arrays arrive as lists
                object.__setattr__(self, f.name, tuple(value))
                value = getattr(self, f.name)
            if isinstance(value, tuple) and not all(isinstance(v, str) for v in value):
                raise ValueError(f"{f.name} must contain only strings")
        for name in ("event_base_type", "event_type_suffix", "handler_interface"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")
        if not self.publisher_method_names:
            raise ValueError("publisher_method_names must not be empty")


@dataclass(frozen=True)
class ScanLimits:
    """Window sizes used by the line and instruction scanners."""

    # Backward search for the assignment of a published identifier
    lookback_lines: int = 20
    # Forward window after an event declaration
    definition_window: int = 50
    # Lines above/below a handler match searched for its class
    class_search_radius: int = 5
    # Registration context spans these many lines before/after a match
    registration_before: int = 10
    registration_after: int = 3
    # Forward search for the Handle method, and body lines copied
    handler_window: int = 50
    handler_body_lines: int = 15
    publish_context_radius: int = 3
    subscription_context_radius: int = 2
    # Backward search from a publish call instruction
    bytecode_lookback: int = 20
    il_context_radius: int = 2

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{f.name} must be a non-negative integer")
        if self.lookback_lines < 1 or self.bytecode_lookback < 1:
            raise ValueError("lookback windows must be at least 1")


DEFAULT_INDICATORS = IndicatorSets()
DEFAULT_LIMITS = ScanLimits()


@dataclass(frozen=True)
class AnalysisConfig:
    """Options for one analysis run.

    Attributes:
        include_details: Capture code context and handler bodies
        background_jobs_only: Keep only publish/consume sites in job code
        exclude_tests: Skip test projects, files and assemblies
        use_bytecode: Find publishers from compiled-module listings
        export_json: Write the JSON document after the run
        export_gremlin: Write the Gremlin graph script after the run
        export_html: Write the self-contained HTML report after the run
        export_arango: Write the ArangoDB AQL script after the run
        output_dir: Directory for exports (None = analysed root)
        workers: Units scanned concurrently (1 = sequential)
        max_file_size_mb: Units larger than this are skipped
        verbosity: Logging verbosity level
    """

    include_details: bool = False
    background_jobs_only: bool = False
    exclude_tests: bool = False
    use_bytecode: bool = False

    export_json: bool = True
    export_gremlin: bool = False
    export_html: bool = False
    export_arango: bool = False
    output_dir: Optional[str] = None

    workers: int = 1
    max_file_size_mb: float = 10.0
    verbosity: Verbosity = "normal"

    indicators: IndicatorSets = field(default_factory=IndicatorSets)
    limits: ScanLimits = field(default_factory=ScanLimits)

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be positive")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError("verbosity must be one of quiet, normal, verbose")

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated AnalysisConfig instance

    Raises:
        FlowInsightError: If a config file is invalid or missing
        InvalidConfigError: If a setting has an unknown name or a bad value
    """
    merged: dict = {}

    global_config = Path.home() / ".flow-insight.toml"
    if global_config.exists():
        try:
            _merge(merged, _load_toml_file(global_config))
        except Exception as e:
            raise FlowInsightError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "flow-insight.toml"
    if project_config.exists():
        try:
            _merge(merged, _load_toml_file(project_config))
        except Exception as e:
            raise FlowInsightError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise FlowInsightError(f"Config file not found: {config_file}")
        try:
            _merge(merged, _load_toml_file(config_file))
        except Exception as e:
            raise FlowInsightError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    _merge(merged, overrides)

    merged["indicators"] = _build_section(merged.pop("indicators", None), IndicatorSets, "indicators")
    merged["limits"] = _build_section(merged.pop("limits", None), ScanLimits, "limits")

    for key in merged:
        if key not in AnalysisConfig.__dataclass_fields__:
            raise InvalidConfigError(key, merged[key], "unknown option")

    try:
        return AnalysisConfig(**merged)
    except (TypeError, ValueError) as e:
        # Validation messages lead with the offending field name
        key = str(e).split(" ", 1)[0]
        raise InvalidConfigError(key, merged.get(key), str(e))


def _merge(target: dict, source: dict) -> None:
    """Merge ``source`` into ``target``; nested tables merge key by key."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            target[key] = {**target[key], **value}
        else:
            target[key] = value


def _build_section(value: Any, cls: type, name: str) -> Any:
    """Turn a ``[indicators]`` / ``[limits]`` table into its dataclass."""
    if value is None:
        return cls()
    if isinstance(value, cls):
        return value
    if not isinstance(value, dict):
        raise InvalidConfigError(name, value, "expected a table")
    try:
        return cls(**value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(name, value, str(e))


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from FLOW_INSIGHT_* environment variables.

    Only scalar fields of AnalysisConfig are read, e.g.
    FLOW_INSIGHT_EXCLUDE_TESTS=true or FLOW_INSIGHT_WORKERS=4.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"FLOW_INSIGHT_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise FlowInsightError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot be set from the environment.
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise FlowInsightError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
