"""
Command-line interface.

Architecture:
    CLI Args → Config (file + overrides) → Command handler → Output
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from xcontext import get_version
from xcontext.assets import get_builtin_ignore_patterns, get_default_config_template
from xcontext.config import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILENAME, OUTPUT_FORMATS, Config
from xcontext.errors import (
    ChunkingError,
    ConfigError,
    DataLoadingError,
    FileReadError,
    FileWriteError,
    GlobError,
    InvalidArgumentError,
    RuleLoadingError,
    SerializationError,
    TokenizerError,
    XContextError,
)
from xcontext.gather import gather, report_read_errors
from xcontext.generate import OutputTarget, generate_context
from xcontext.globs import build_pattern_set, compile_pattern, matches_path
from xcontext.metrics import calculate_metrics, format_metrics_table
from xcontext.output import OutputWriter, serialize, to_yaml
from xcontext.prompts import resolve_prompts
from xcontext.reader import read_files
from xcontext.rules import ResolvedRules, detect_project_characteristics, resolve_rules
from xcontext.tree import build_tree, render_tree
from xcontext.walker import walk_project
from xcontext.watch import ContextWatcher

logger = logging.getLogger(__name__)


# =============================================================================
# EXIT CODES
# =============================================================================

EXIT_CODES: Tuple[Tuple[type, int], ...] = (
    (ConfigError, 1),
    (DataLoadingError, 1),
    (GlobError, 2),
    (FileReadError, 2),
    (FileWriteError, 2),
    (RuleLoadingError, 2),
    (ChunkingError, 3),
    (InvalidArgumentError, 5),
    (SerializationError, 6),
    (TokenizerError, 8),
)


def exit_code_for(error: BaseException) -> int:
    for error_type, code in EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return 1


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================

def parse_key_val(value: str) -> Tuple[str, str]:
    """Parse a KEY=VALUE pair for --add-meta."""
    if "=" not in value:
        raise argparse.ArgumentTypeError("Invalid KEY=VALUE format for --add-meta")
    key, _, val = value.partition("=")
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Metadata key cannot be empty")
    return key, val.strip()


def apply_format_overrides(config: Config, args: argparse.Namespace) -> None:
    if getattr(args, "format", None):
        config.output.format = args.format
    if getattr(args, "json_minify", None) is not None:
        config.output.json_minify = args.json_minify
    if getattr(args, "xml_pretty", None) is not None:
        config.output.xml_pretty_print = args.xml_pretty


def merge_config_with_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply generate-command flags on top of the loaded config."""
    if args.project_name:
        config.general.project_name = args.project_name
    apply_format_overrides(config, args)

    if args.exclude_project_name:
        config.output.include_project_name = False
    if args.exclude_project_root:
        config.output.include_project_root = False
    if args.exclude_timestamp:
        config.output.include_timestamp = False
    if args.exclude_system_info:
        config.output.include_system_info = False

    for section in ("tree", "source", "meta", "rules", "docs"):
        toggle = getattr(args, f"{section}_enabled")
        if toggle is not None:
            getattr(config, section).enabled = toggle

    if args.use_gitignore is not None:
        config.general.use_gitignore = args.use_gitignore
    if args.builtin_ignore is not None:
        config.general.enable_builtin_ignore = args.builtin_ignore

    for section in ("tree", "source", "docs"):
        for kind in ("include", "exclude"):
            patterns = getattr(args, f"{section}_{kind}")
            if patterns:
                setattr(getattr(config, section), kind, list(patterns))

    if args.add_meta:
        config.meta.enabled = True
        for key, value in args.add_meta:
            config.meta.custom_meta[key] = value

    logger.debug(f"Config after CLI overrides: {config}")
    return config


def load_config_for_command(
    project_root: Path,
    args: argparse.Namespace,
    generate: bool = False,
) -> Tuple[Config, Optional[Path]]:
    """Load the config file (if any) and apply the command's overrides."""
    config_path = Config.resolve_config_path(
        project_root, args.context_file, args.disable_context_file
    )
    config = Config.load_from_path(config_path) if config_path else Config()

    if generate:
        merge_config_with_cli_overrides(config, args)
    else:
        if args.project_name:
            config.general.project_name = args.project_name
        apply_format_overrides(config, args)
    if getattr(args, "watch_delay", None):
        config.watch.delay = args.watch_delay

    config.general.project_name = config.get_effective_project_name(project_root)
    return config, config_path


def print_data_or_text(
    data: Any,
    plain_text: Optional[str],
    args: argparse.Namespace,
    default_format: str,
    root_name: str,
) -> None:
    """Print plain text when no format was requested, structured data otherwise."""
    fmt = args.format or default_format
    if fmt == "text":
        if plain_text is not None:
            OutputWriter.write_stdout(plain_text)
        else:
            OutputWriter.write_stdout(serialize(data, "json", pretty_json=True))
        return
    OutputWriter.write_stdout(serialize(
        data,
        fmt,
        pretty_json=args.json_minify is not True,
        pretty_xml=bool(args.xml_pretty),
        xml_root=root_name,
    ))


# =============================================================================
# COMMAND HANDLERS
# =============================================================================

def cmd_generate(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    logger.info(f"Project root determined: {project_root}")
    config, _ = load_config_for_command(project_root, args, generate=True)
    target = OutputTarget(save=args.save, chunks=args.chunks, stdout=args.stdout, copy=args.copy)
    generate_context(project_root, config, target, quiet=quiet, verbose=verbose)
    return 0


def cmd_watch(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    target = OutputTarget(save=args.save)

    def load() -> Tuple[Config, Optional[Path]]:
        return load_config_for_command(project_root, args)

    def regenerate(config: Config) -> None:
        generate_context(project_root, config, target, quiet=quiet, verbose=verbose)

    ContextWatcher(project_root, load, regenerate, quiet=quiet).run()
    return 0


def _list_keys(keys: List[str], item_type: str, origins: Optional[Dict[str, str]] = None) -> None:
    print(f"\nAvailable {item_type} keys:", file=sys.stderr)
    if not keys:
        print("  (None available)", file=sys.stderr)
        return
    for key in sorted(keys):
        suffix = f" ({origins.get(key, '?')})" if origins is not None else ""
        print(f"  - {key}{suffix}", file=sys.stderr)


def _show_meta(args: argparse.Namespace, config: Config, quiet: bool, plural: bool) -> int:
    if not config.meta.enabled:
        if not quiet:
            print("⚠️ Meta section is disabled in config.", file=sys.stderr)
        return 0
    meta = config.meta.custom_meta

    if plural:
        if not meta:
            if not quiet:
                print("No custom metadata defined.")
            return 0
        ordered = dict(sorted(meta.items()))
        text = "\n--- Custom Metadata ---\n" + "\n".join(
            f"  {k:<25} : {v}" for k, v in ordered.items()
        )
        print_data_or_text(ordered, text, args, "text", "Metadata")
        return 0

    if args.key is None:
        if not quiet:
            print("Please specify a metadata key to show, or use 'show metas' to list all.",
                  file=sys.stderr)
        _list_keys(list(meta), "metadata")
        return 0
    if args.key not in meta:
        _list_keys(list(meta), "metadata")
        raise ConfigError(f'Metadata key "{args.key}" not found.')
    value = meta[args.key]
    print_data_or_text({"value": value}, value, args, "text", "MetaValue")
    return 0


def _find_prompt_key(prompts: Dict[str, str], name: str) -> Optional[str]:
    if name in prompts:
        return name
    for prefix in ("static", "custom", "imported"):
        key = f"{prefix}:{name}"
        if key in prompts:
            return key
    return None


def _show_prompts(args: argparse.Namespace, config: Config, project_root: Path,
                  quiet: bool, plural: bool) -> int:
    prompts = resolve_prompts(config.prompts, project_root)

    if plural:
        if not prompts:
            if not quiet:
                print("No prompts available (static, custom, or imported).")
            return 0
        ordered = dict(sorted(prompts.items()))
        lines = ["\n--- Available Prompts ---"]
        for key, text in ordered.items():
            lines.append(f"\n▶ {key}:")
            lines.extend(f"    {line}" for line in text.strip().splitlines())
        print_data_or_text(ordered, "\n".join(lines), args, "text", "Prompts")
        return 0

    if args.name is None:
        if not quiet:
            print("Please specify a prompt name to show, or use 'show prompts' to show all.",
                  file=sys.stderr)
        _list_keys(list(prompts), "prompt")
        return 0
    key = _find_prompt_key(prompts, args.name)
    if key is None:
        _list_keys(list(prompts), "prompt")
        raise ConfigError(f'Prompt name "{args.name}" not found.')
    text = prompts[key]
    print_data_or_text({"value": text}, text.strip(), args, "text", "PromptText")
    return 0


def _resolve_project_rules(config: Config, project_root: Path) -> ResolvedRules:
    characteristics = detect_project_characteristics(project_root)
    return resolve_rules(config.rules, project_root, characteristics)


def _find_rule_key(resolved: ResolvedRules, name: str) -> Optional[str]:
    stem = name.split(":")[-1]
    for candidate in (name, f"static:{stem}", f"imported:{stem}", f"custom:{stem}"):
        if candidate in resolved.rulesets:
            return candidate
    return None


def _show_rules(args: argparse.Namespace, config: Config, project_root: Path,
                quiet: bool, plural: bool) -> int:
    if not config.rules.enabled:
        if not quiet:
            print("⚠️ Rules section is disabled in config.", file=sys.stderr)
        return 0
    resolved = _resolve_project_rules(config, project_root)

    if plural:
        if not resolved:
            if not quiet:
                print("No rules available or resolved based on current configuration "
                      "and project content.")
            return 0
        ordered = dict(sorted(resolved.rulesets.items()))
        lines = ["\n--- Resolved Rule Sets ---"]
        for key, rules in ordered.items():
            lines.append(f"\n▶ {key} ({resolved.origins.get(key, '?')}):")
            lines.extend(f"  {rule}" for rule in rules or ["(empty)"])
        print_data_or_text(ordered, "\n".join(lines), args, "text", "RuleSets")
        return 0

    if args.name is None:
        if not quiet:
            print("Please specify a rule set name to show, or use 'show rules' to show all.",
                  file=sys.stderr)
        _list_keys(list(resolved.rulesets), "rule set", resolved.origins)
        return 0
    key = _find_rule_key(resolved, args.name)
    if key is None:
        _list_keys(list(resolved.rulesets), "rule set", resolved.origins)
        raise ConfigError(f'Rule set name "{args.name}" not found in resolved rules.')
    rules = resolved.rulesets[key]
    print_data_or_text({"value": rules}, "\n".join(rules), args, "text", "RuleSet")
    return 0


def cmd_show(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    config, _ = load_config_for_command(project_root, args)
    item = args.item
    if item in ("meta", "metas"):
        return _show_meta(args, config, quiet, plural=item == "metas")
    if item in ("prompt", "prompts"):
        return _show_prompts(args, config, project_root, quiet, plural=item == "prompts")
    return _show_rules(args, config, project_root, quiet, plural=item == "rules")


def cmd_metrics(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    config, _ = load_config_for_command(project_root, args)
    source_files, docs_files, _ = gather(project_root, config, quiet)
    combined = list(source_files) + list(docs_files)
    if not combined:
        if not quiet:
            print("No source or documentation files found to calculate metrics.")
        return 0

    metrics = calculate_metrics(combined, project_root)
    if args.format is None:
        OutputWriter.write_stdout(format_metrics_table(metrics))
    else:
        print_data_or_text(metrics.to_dict(), None, args, "json", "ProjectMetrics")
    return 0


def _relative_paths(files, project_root: Path) -> List[str]:
    return sorted(f.path.relative_to(project_root).as_posix() for f in files)


def cmd_debug(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    config, config_path = load_config_for_command(project_root, args)
    source_files, docs_files, tree_entries = gather(project_root, config, quiet)
    resolved = _resolve_project_rules(config, project_root)

    debug_data = {
        "config_file": str(config_path) if config_path else None,
        "effective_config": config.to_dict(),
        "source_files_to_include": _relative_paths(source_files, project_root),
        "docs_files_to_include": _relative_paths(docs_files, project_root),
        "tree_elements_to_include": [[path, is_dir] for path, is_dir in tree_entries],
        "resolved_rules": {"rulesets": resolved.rulesets, "origins": resolved.origins},
    }
    if args.format is not None:
        print_data_or_text(debug_data, None, args, "json", "DebugInfo")
        return 0

    lines = ["\n--- Effective Configuration ---"]
    if config_path:
        lines.append(f"# loaded from {config_path}")
    lines.append(to_yaml(debug_data["effective_config"]).rstrip())
    for title, paths in (
        ("Source Files Included", debug_data["source_files_to_include"]),
        ("Docs Files Included", debug_data["docs_files_to_include"]),
    ):
        lines.append(f"\n--- {title} ---")
        if paths:
            lines.extend(f"- {p}" for p in paths)
        else:
            lines.append("(None)")

    lines.append("\n--- Tree Elements Included ---")
    if tree_entries:
        lines.append(".")
        lines.extend(render_tree(build_tree(tree_entries)))
    else:
        lines.append("(None)")

    lines.append("\n--- Resolved Rules ---")
    if resolved:
        lines.append(f"{'Ruleset Key':<35} {'Origin':<18} {'Rule Count':<10}")
        lines.append("-" * 65)
        for key in sorted(resolved.rulesets):
            origin = resolved.origins.get(key, "unknown")
            lines.append(f"{key:<35} {origin:<18} {len(resolved.rulesets[key]):<10}")
    else:
        lines.append("(No rules enabled or resolved)")
    lines.append("\n--- End Debug Info ---")
    OutputWriter.write_stdout("\n".join(lines))
    return 0


def quick_pattern(pattern: str, project_root: Path, quiet: bool = False) -> str:
    """Turn a directory argument into a recursive glob."""
    trimmed = pattern.rstrip("/\\")
    if (project_root / pattern).is_dir():
        processed = "**/*" if trimmed in ("", ".") else f"{trimmed}/**/*"
        logger.info(f"Interpreting directory input '{pattern}' as glob '{processed}'")
        return processed
    if trimmed != pattern:
        if not quiet:
            print(f"⚠️ Directory pattern '{pattern}' matches no existing directory, "
                  "using pattern without trailing slash.", file=sys.stderr)
        return trimmed
    return pattern


def cmd_quick(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    project_root = Config.determine_project_root(args.project_root)
    config, _ = load_config_for_command(project_root, args)
    glob = compile_pattern(quick_pattern(args.pattern, project_root, quiet))

    common_ignores = None
    if config.get_effective_builtin_ignore():
        common_ignores = build_pattern_set(get_builtin_ignore_patterns().common)

    matched = []
    for entry in walk_project(project_root, use_gitignore=config.general.use_gitignore):
        if entry.is_dir:
            continue
        if common_ignores and matches_path(common_ignores, entry.relative_path, False):
            continue
        if glob.matches(entry.relative_path.as_posix()):
            matched.append(entry.path)

    logger.info(f"Found {len(matched)} files matching pattern. Reading content...")
    files, errors = read_files(matched)
    if not quiet:
        report_read_errors(errors)
    if not files:
        if not quiet:
            print(f"No files matched the pattern '{args.pattern}'.")
        return 0

    data = {"files": {f.path.relative_to(project_root).as_posix(): f.content for f in files}}
    print_data_or_text(data, None, args, "json", "QuickOutput")
    return 0


def cmd_config(args: argparse.Namespace, quiet: bool, verbose: int) -> int:
    template = get_default_config_template()
    if not args.save:
        OutputWriter.write_stdout(template)
        return 0

    project_root = Config.determine_project_root(args.project_root)
    path = project_root / DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILENAME
    if path.exists() and not args.force:
        try:
            answer = input(f"⚠️ {path} already exists. Overwrite? [y/N]: ").strip().lower()
        except EOFError:
            answer = ""
        if answer not in ("y", "yes"):
            if not quiet:
                print("Aborted, existing config left unchanged.", file=sys.stderr)
            return 0
    OutputWriter.write_file(path, template)
    if not quiet:
        print(f"✅ Default config saved to: {path}", file=sys.stderr)
    return 0


# =============================================================================
# ARGUMENT PARSER
# =============================================================================

def _verbosity_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("-v", "--verbose", action="count", default=argparse.SUPPRESS,
                        help="Increase message verbosity (-v, -vv)")
    parent.add_argument("-q", "--quiet", action="store_true", default=argparse.SUPPRESS,
                        help="Silence informational messages and warnings")
    return parent


def _project_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    proj = parent.add_argument_group("Project Setup")
    proj.add_argument("--project-root", metavar="PATH",
                      help="Target project directory (default: $PROJECT_ROOT or current dir)")
    cfg = proj.add_mutually_exclusive_group()
    cfg.add_argument("--context-file", metavar="CONTEXT_FILE",
                     help=f"Config file path or name (default: {DEFAULT_CONFIG_DIR}/"
                          f"{DEFAULT_CONFIG_FILENAME})")
    cfg.add_argument("--disable-context-file", action="store_true",
                     help="Disable loading any TOML config file")
    proj.add_argument("--project-name", metavar="NAME",
                      help="Project name (overrides config/dir name)")
    return parent


def _format_parent() -> argparse.ArgumentParser:
    parent = argparse.ArgumentParser(add_help=False)
    fmt = parent.add_argument_group("Output Formatting")
    fmt.add_argument("-f", "--format", choices=OUTPUT_FORMATS, help="Output format")
    minify = fmt.add_mutually_exclusive_group()
    minify.add_argument("--enable-json-minify", dest="json_minify", action="store_const",
                        const=True, help="Compact (minified) JSON output [default]")
    minify.add_argument("--disable-json-minify", dest="json_minify", action="store_const",
                        const=False, help="Pretty-printed JSON output")
    pretty = fmt.add_mutually_exclusive_group()
    pretty.add_argument("--enable-xml-pretty", dest="xml_pretty", action="store_const",
                        const=True, help="Pretty-printed XML output")
    pretty.add_argument("--disable-xml-pretty", dest="xml_pretty", action="store_const",
                        const=False, help="Compact XML output [default]")
    return parent


def _add_toggle(group, name: str, dest: str, enable_help: str, disable_help: str) -> None:
    group.add_argument(f"--enable-{name}", dest=dest, action="store_const", const=True,
                       help=enable_help)
    group.add_argument(f"--disable-{name}", dest=dest, action="store_const", const=False,
                       help=disable_help)


def _add_save_option(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument("-s", "--save", nargs="?", const="", default=None, metavar="SAVE_DIR",
                        help=help_text)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="xcontext",
        description="Generate structured project context for AI models.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  xcontext generate -f yaml --save ./output
  xcontext show rules -f json
  xcontext metrics
  xcontext watch -s
        """,
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase message verbosity (-v, -vv)")
    parser.add_argument("-q", "--quiet", action="store_true", default=False,
                        help="Silence informational messages and warnings")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    verbosity, project, formatting = _verbosity_parent(), _project_parent(), _format_parent()
    common = [verbosity, project, formatting]
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    # generate
    gen = sub.add_parser("generate", aliases=["g", "gen"], parents=common,
                         help="Generate the full project context")
    gen.set_defaults(handler=cmd_generate)
    out = gen.add_argument_group("Output Control")
    dest = out.add_mutually_exclusive_group()
    dest.add_argument("--stdout", action="store_true",
                      help="Force output of the main context to standard output")
    dest.add_argument("--copy", action="store_true", help="Copy the main context to the clipboard")
    _add_save_option(out, "Save context. Optional SAVE_DIR overrides config/default logic")
    out.add_argument("-c", "--chunks", metavar="SIZE",
                     help="Split source content into chunks (e.g. '5MB', '1024kb'). Requires JSON")

    excl = gen.add_argument_group("Core Exclusions")
    excl.add_argument("--exclude-project-name", action="store_true",
                      help="Omit 'projectName' from output")
    excl.add_argument("--exclude-project-root", action="store_true",
                      help="Omit 'projectRoot' from output")
    excl.add_argument("--exclude-timestamp", action="store_true",
                      help="Omit 'generationTimestamp' from output")
    excl.add_argument("--exclude-system-info", action="store_true",
                      help="Omit 'systemInfo' from output")

    toggles = gen.add_argument_group("Section Toggles")
    for section in ("tree", "source", "meta", "rules", "docs"):
        _add_toggle(toggles, section, f"{section}_enabled",
                    f"Force inclusion of the '{section}' section [default: enabled]",
                    f"Disable the '{section}' section")

    ignores = gen.add_argument_group("Ignore Rules")
    _add_toggle(ignores, "gitignore", "use_gitignore",
                "Respect .gitignore files [default: enabled]",
                "Do not respect .gitignore files")
    _add_toggle(ignores, "builtin-ignore", "builtin_ignore",
                "Apply built-in ignores (e.g. *.lock, node_modules/) [default: enabled]",
                "Disable built-in ignores")

    filters = gen.add_argument_group("Content Filtering")
    for section in ("tree", "source", "docs"):
        for kind in ("include", "exclude"):
            filters.add_argument(f"--{section}-{kind}", action="append", metavar="PATTERN",
                                 help=f"Add {kind} glob pattern for the {section} section")

    meta = gen.add_argument_group("Metadata Override")
    meta.add_argument("--add-meta", action="append", type=parse_key_val, metavar="KEY=VALUE",
                      help="Add/override key=value pairs in the 'meta' section")

    # watch
    watch = sub.add_parser("watch", aliases=["w"], parents=common,
                           help="Monitor project files and regenerate context automatically")
    watch.set_defaults(handler=cmd_watch)
    watch.add_argument("--watch-delay", metavar="DELAY",
                       help="Polling delay for watch mode [default: 300ms]")
    _add_save_option(watch, "Save context on change. Optional SAVE_DIR overrides config")

    # show
    show = sub.add_parser("show", aliases=["s"],
                          help="Show configured items (metadata, prompts, rules)")
    show.set_defaults(handler=cmd_show)
    items = show.add_subparsers(dest="item", metavar="<item>", required=True)
    for item, arg, help_text in (
        ("meta", "key", "Show a metadata key or list available keys"),
        ("metas", None, "Show all metadata"),
        ("prompt", "name", "Show a prompt or list available prompt names"),
        ("prompts", None, "Show all prompts"),
        ("rule", "name", "Show a rule set or list available names"),
        ("rules", None, "Show all rule sets"),
    ):
        item_parser = items.add_parser(item, parents=common, help=help_text)
        if arg:
            item_parser.add_argument(arg, nargs="?")

    # metrics / debug
    metrics = sub.add_parser("metrics", aliases=["m"], parents=common,
                             help="Calculate and display project statistics")
    metrics.set_defaults(handler=cmd_metrics)
    debug = sub.add_parser("debug", aliases=["d"], parents=common,
                           help="Show effective configuration and planned file inclusions")
    debug.set_defaults(handler=cmd_debug)

    # quick
    quick = sub.add_parser("quick", aliases=["q"], parents=common,
                           help="Quickly extract content of files matching a pattern")
    quick.set_defaults(handler=cmd_quick)
    quick.add_argument("pattern", help="Glob pattern (e.g. 'src/**/*.py', 'data/', 'file.txt')")

    # config
    config = sub.add_parser("config", parents=[verbosity],
                            help="Show or save the default configuration file")
    config.set_defaults(handler=cmd_config)
    config.add_argument("--project-root", metavar="PATH",
                        help="Project whose config directory receives --save")
    config.add_argument("--save", action="store_true",
                        help="Save the default config to the default path")
    config.add_argument("--force", action="store_true",
                        help="Overwrite an existing config without asking")

    return parser


# =============================================================================
# MAIN
# =============================================================================

def setup_logging(quiet: bool, verbose: int) -> None:
    if quiet:
        level = logging.CRITICAL + 10
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(level)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    quiet, verbose = args.quiet, args.verbose
    setup_logging(quiet, verbose)
    logger.debug(f"CLI args parsed: {args}")

    if not getattr(args, "handler", None):
        parser.print_help()
        return 0

    try:
        return args.handler(args, quiet, verbose)
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted", file=sys.stderr)
        return 130
    except XContextError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return exit_code_for(e)
    except Exception as e:
        logging.exception("Critical error")
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
