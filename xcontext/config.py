"""
Configuration model, TOML loading and path resolution.

The config file lives at ``.xtools/xcontext/xcontext.toml`` by default. Every
section is optional. Section filter lists distinguish "absent" (``None``,
inherit the common list) from "explicitly empty" (``[]``, no filter).
"""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from xcontext.errors import ConfigError, InvalidArgumentError, TomlParseError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_CONFIG_DIR = ".xtools/xcontext"
DEFAULT_CONFIG_FILENAME = "xcontext.toml"
DEFAULT_CACHE_DIR = ".xtools/xcontext/cache"
DEFAULT_WATCH_DELAY = "300ms"
PROJECT_ROOT_ENV = "PROJECT_ROOT"


class Defaults:
    """Default configuration values."""
    OUTPUT_FORMAT = "json"
    DOCS_INCLUDE = ("*.md", "*.org", "*.rst", "*.adoc")


OUTPUT_FORMATS = ("json", "yaml", "xml")


# =============================================================================
# ENUMS AND DATA MODELS
# =============================================================================

class IgnoreSetting(Enum):
    """Per-section gitignore override."""
    INHERIT = "inherit"
    TRUE = "true"
    FALSE = "false"

    @classmethod
    def parse(cls, value: Any, key: str) -> "IgnoreSetting":
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ConfigError(
            f"Invalid value for '{key}': {value!r}. Use 'inherit', 'true' or 'false'."
        )


@dataclass
class GeneralConfig:
    project_name: Optional[str] = None
    use_gitignore: bool = True
    enable_builtin_ignore: bool = True


@dataclass
class CommonFiltersConfig:
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)


@dataclass
class MetaConfig:
    enabled: bool = True
    custom_meta: Dict[str, str] = field(default_factory=dict)


@dataclass
class SectionConfig:
    """Filter settings for one of the tree, source or docs sections."""
    enabled: bool = True
    use_gitignore: IgnoreSetting = IgnoreSetting.INHERIT
    include: Optional[List[str]] = None
    exclude: Optional[List[str]] = None


@dataclass
class RulesConfig:
    enabled: bool = True
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    imports: List[Path] = field(default_factory=list)
    custom: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class PromptsConfig:
    imports: List[Path] = field(default_factory=list)
    custom: Dict[str, str] = field(default_factory=dict)


@dataclass
class OutputConfig:
    format: str = Defaults.OUTPUT_FORMAT
    json_minify: bool = True
    xml_pretty_print: bool = False
    include_project_name: bool = True
    include_project_root: bool = True
    include_system_info: bool = True
    include_timestamp: bool = True


@dataclass
class SaveConfig:
    output_dir: Path = Path(DEFAULT_CACHE_DIR)
    filename_base: Optional[str] = None
    extension: Optional[str] = None


@dataclass
class WatchConfig:
    delay: str = DEFAULT_WATCH_DELAY


def _default_docs() -> SectionConfig:
    return SectionConfig(include=list(Defaults.DOCS_INCLUDE), exclude=[])


@dataclass
class Config:
    """Complete xcontext configuration."""
    general: GeneralConfig = field(default_factory=GeneralConfig)
    common_filters: CommonFiltersConfig = field(default_factory=CommonFiltersConfig)
    meta: MetaConfig = field(default_factory=MetaConfig)
    docs: SectionConfig = field(default_factory=_default_docs)
    tree: SectionConfig = field(default_factory=SectionConfig)
    source: SectionConfig = field(default_factory=SectionConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    save: SaveConfig = field(default_factory=SaveConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    # -------------------------------------------------------------------------
    # Effective values
    # -------------------------------------------------------------------------

    def get_effective_include(self, section_include: Optional[List[str]]) -> List[str]:
        """Section include list, or the common list when the section has none."""
        if section_include is None:
            return self.common_filters.include
        return section_include

    def get_effective_exclude(self, section_exclude: Optional[List[str]]) -> List[str]:
        """Section exclude list, or the common list when the section has none."""
        if section_exclude is None:
            return self.common_filters.exclude
        return section_exclude

    def get_effective_gitignore(self, section_setting: IgnoreSetting) -> bool:
        if section_setting is IgnoreSetting.TRUE:
            return True
        if section_setting is IgnoreSetting.FALSE:
            return False
        return self.general.use_gitignore

    def get_effective_builtin_ignore(self) -> bool:
        return self.general.enable_builtin_ignore

    def is_docs_section_active(self) -> bool:
        return self.docs.enabled

    def get_effective_project_name(self, project_root: Path) -> str:
        if self.general.project_name:
            return self.general.project_name
        return project_root.name or "UnknownProject"

    def get_watch_delay(self) -> float:
        """Watch debounce delay in seconds."""
        return parse_duration(self.watch.delay)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view of the config (paths and enums as strings)."""
        def convert(value: Any) -> Any:
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, Path):
                return value.as_posix()
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            if isinstance(value, list):
                return [convert(v) for v in value]
            return value

        data = convert(asdict(self))
        meta = data.pop("meta")
        data["meta"] = {"enabled": meta["enabled"], **meta["custom_meta"]}
        rules = data.pop("rules")
        data["rules"] = {
            "enabled": rules["enabled"],
            "include": rules["include"],
            "exclude": rules["exclude"],
            "import": rules["imports"],
            **rules["custom"],
        }
        prompts = data.pop("prompts")
        data["prompts"] = {"import": prompts["imports"], **prompts["custom"]}
        return data

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a config from parsed TOML. Unknown keys are rejected."""
        _reject_unknown(data, {f for f in cls.__dataclass_fields__}, "top level")
        config = cls()
        if "general" in data:
            config.general = _parse_general(_table(data, "general"))
        if "common_filters" in data:
            section = _table(data, "common_filters")
            _reject_unknown(section, {"include", "exclude"}, "common_filters")
            config.common_filters = CommonFiltersConfig(
                include=_str_list(section.get("include", []), "common_filters.include"),
                exclude=_str_list(section.get("exclude", []), "common_filters.exclude"),
            )
        if "meta" in data:
            config.meta = _parse_meta(_table(data, "meta"))
        for name in ("docs", "tree", "source"):
            if name in data:
                setattr(config, name, _parse_section(_table(data, name), name))
        if "rules" in data:
            config.rules = _parse_rules(_table(data, "rules"))
        if "prompts" in data:
            config.prompts = _parse_prompts(_table(data, "prompts"))
        if "output" in data:
            config.output = _parse_output(_table(data, "output"))
        if "save" in data:
            config.save = _parse_save(_table(data, "save"))
        if "watch" in data:
            section = _table(data, "watch")
            _reject_unknown(section, {"delay"}, "watch")
            config.watch = WatchConfig(
                delay=_str(section.get("delay", DEFAULT_WATCH_DELAY), "watch.delay")
            )
        return config

    @classmethod
    def load_from_path(cls, config_path: Path) -> "Config":
        """Read and parse a TOML config file."""
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigError(f"Failed to read config file '{config_path}': {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise TomlParseError(
                f"Error parsing config file '{config_path}': {e}. "
                "Check TOML syntax and structure."
            ) from e
        try:
            return cls.from_dict(data)
        except ConfigError as e:
            raise TomlParseError(f"Error parsing config file '{config_path}': {e}") from e

    # -------------------------------------------------------------------------
    # Path resolution
    # -------------------------------------------------------------------------

    @staticmethod
    def determine_project_root(cli_project_root: Optional[str] = None) -> Path:
        """CLI value, then $PROJECT_ROOT, then the current directory."""
        raw = str(cli_project_root) if cli_project_root else os.environ.get(PROJECT_ROOT_ENV)
        candidate = Path(os.path.expanduser(raw)) if raw else Path.cwd()
        try:
            resolved = candidate.resolve(strict=True)
        except OSError as e:
            raise ConfigError(f"Failed to canonicalize project root '{candidate}': {e}") from e
        if not resolved.is_dir():
            raise ConfigError(f"Project root is not a directory: {resolved}")
        return resolved

    @staticmethod
    def resolve_config_path(
        project_root: Path,
        cli_config_file: Optional[str] = None,
        disable_config: bool = False,
    ) -> Optional[Path]:
        """Locate the config file to load, or None to use defaults."""
        if disable_config:
            logger.debug("Config file loading disabled via CLI flag.")
            return None

        if cli_config_file is None:
            default_path = project_root / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILENAME
            if default_path.exists():
                logger.debug(f"Using default config file path: {default_path}")
                return default_path
            logger.debug(f"No config file specified and default not found at: {default_path}")
            return None

        path = Path(os.path.expanduser(cli_config_file))
        looks_like_path = (
            path.is_absolute()
            or len(path.parts) > 1
            or "/" in cli_config_file
            or "\\" in cli_config_file
        )
        if looks_like_path:
            if not path.exists() and not path.suffix:
                path = path.with_suffix(".toml")
            if not path.exists():
                raise ConfigError(f"Specified config file not found at path: {path}")
            logger.debug(f"Using specified config file path: {path}")
            return path

        filename = cli_config_file if path.suffix == ".toml" else f"{cli_config_file}.toml"
        full_path = project_root / DEFAULT_CONFIG_DIR / filename
        if not full_path.exists():
            raise ConfigError(
                f"Specified config file '{cli_config_file}' not found in default directory: "
                f"{project_root / DEFAULT_CONFIG_DIR}"
            )
        logger.debug(f"Using specified config filename in default directory: {full_path}")
        return full_path


# =============================================================================
# DURATIONS
# =============================================================================

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """Parse '500ms', '2s', '1m' into seconds. A bare number is seconds."""
    match = _DURATION_RE.match(value or "")
    if not match:
        raise InvalidArgumentError(
            f"Invalid watch delay duration '{value}'. Use format like '500ms', '2s'."
        )
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[(unit or "s").lower()]


# =============================================================================
# TOML SECTION PARSERS
# =============================================================================

def _table(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data[key]
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a table")
    return value


def _reject_unknown(section: Dict[str, Any], allowed: set, where: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigError(f"Unknown field(s) in {where}: {', '.join(unknown)}")


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a boolean, got {value!r}")
    return value


def _str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string, got {value!r}")
    return value


def _str_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def _optional_str_list(section: Dict[str, Any], key: str, where: str) -> Optional[List[str]]:
    if key not in section:
        return None
    return _str_list(section[key], f"{where}.{key}")


def _parse_general(section: Dict[str, Any]) -> GeneralConfig:
    _reject_unknown(section, {"project_name", "use_gitignore", "enable_builtin_ignore"}, "general")
    name = section.get("project_name")
    return GeneralConfig(
        project_name=_str(name, "general.project_name") if name is not None else None,
        use_gitignore=_bool(section.get("use_gitignore", True), "general.use_gitignore"),
        enable_builtin_ignore=_bool(
            section.get("enable_builtin_ignore", True), "general.enable_builtin_ignore"
        ),
    )


def _parse_meta(section: Dict[str, Any]) -> MetaConfig:
    enabled = _bool(section.get("enabled", True), "meta.enabled")
    custom = {}
    for key, value in section.items():
        if key == "enabled":
            continue
        custom[key] = _str(value, f"meta.{key}")
    return MetaConfig(enabled=enabled, custom_meta=custom)


def _parse_section(section: Dict[str, Any], name: str) -> SectionConfig:
    _reject_unknown(section, {"enabled", "use_gitignore", "include", "exclude"}, name)
    return SectionConfig(
        enabled=_bool(section.get("enabled", True), f"{name}.enabled"),
        use_gitignore=IgnoreSetting.parse(
            section.get("use_gitignore", "inherit"), f"{name}.use_gitignore"
        ),
        include=_optional_str_list(section, "include", name),
        exclude=_optional_str_list(section, "exclude", name),
    )


def _parse_rules(section: Dict[str, Any]) -> RulesConfig:
    rules = RulesConfig(
        enabled=_bool(section.get("enabled", True), "rules.enabled"),
        include=_str_list(section.get("include", []), "rules.include"),
        exclude=_str_list(section.get("exclude", []), "rules.exclude"),
        imports=[Path(p) for p in _str_list(section.get("import", []), "rules.import")],
    )
    for key, value in section.items():
        if key in ("enabled", "include", "exclude", "import"):
            continue
        rules.custom[key] = _str_list(value, f"rules.{key}")
    return rules


def _parse_prompts(section: Dict[str, Any]) -> PromptsConfig:
    prompts = PromptsConfig(
        imports=[Path(p) for p in _str_list(section.get("import", []), "prompts.import")],
    )
    for key, value in section.items():
        if key == "import":
            continue
        prompts.custom[key] = _str(value, f"prompts.{key}")
    return prompts


def _parse_output(section: Dict[str, Any]) -> OutputConfig:
    defaults = OutputConfig()
    _reject_unknown(section, set(OutputConfig.__dataclass_fields__), "output")
    output = OutputConfig(
        format=_str(section.get("format", defaults.format), "output.format").lower(),
    )
    for key in OutputConfig.__dataclass_fields__:
        if key != "format" and key in section:
            setattr(output, key, _bool(section[key], f"output.{key}"))
    if output.format not in OUTPUT_FORMATS + ("yml",):
        raise ConfigError(
            f"Unsupported output.format '{output.format}'. Use one of: {', '.join(OUTPUT_FORMATS)}"
        )
    return output


def _parse_save(section: Dict[str, Any]) -> SaveConfig:
    _reject_unknown(section, {"output_dir", "filename_base", "extension"}, "save")
    base = section.get("filename_base")
    ext = section.get("extension")
    return SaveConfig(
        output_dir=Path(_str(section.get("output_dir", DEFAULT_CACHE_DIR), "save.output_dir")),
        filename_base=_str(base, "save.filename_base") if base is not None else None,
        extension=_str(ext, "save.extension") if ext is not None else None,
    )
