"""
Prompt resolution: predefined, imported and custom prompts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from xcontext.assets import get_predefined_prompts
from xcontext.config import PromptsConfig
from xcontext.errors import ConfigError
from xcontext.rules import resolve_import_path

logger = logging.getLogger(__name__)


def get_predefined_prompt(name: str) -> str:
    """Return a predefined prompt. Raises ConfigError for unknown names."""
    try:
        return get_predefined_prompts()[name]
    except KeyError:
        raise ConfigError(
            f'Predefined prompt name "{name}" specified in config not found.'
        ) from None


def resolve_prompts(prompts_config: PromptsConfig, project_root: Path) -> Dict[str, str]:
    """Merge static, imported and custom prompts. Empty prompts are skipped."""
    resolved = {f"static:{name}": text for name, text in get_predefined_prompts().items()}

    for import_rel in prompts_config.imports:
        import_path = resolve_import_path(import_rel, project_root)
        if import_path is None:
            logger.warning(
                f"Could not find imported prompt file '{import_rel}' relative to "
                f"project root or config dir. Skipping."
            )
            continue
        try:
            content = import_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read imported prompt file '{import_path}': {e}")
            continue
        if not content.strip():
            logger.debug(f"Skipping empty imported prompt: {import_path}")
            continue
        resolved[f"imported:{import_path.stem or 'imported_prompt'}"] = content

    for name, text in prompts_config.custom.items():
        if not text.strip():
            logger.debug(f"Skipping empty custom prompt: {name}")
            continue
        resolved[f"custom:{name}"] = text

    logger.info(f"Resolved {len(resolved)} prompts.")
    return resolved
