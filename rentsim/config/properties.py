"""Read ``key=value`` properties files (app config, pricing, repair coefficients)."""

import logging
from pathlib import Path
from typing import Dict

from rentsim.config.schema import AppConfig, PricingConfig, RepairConfig
from rentsim.errors import ConfigurationError

logger = logging.getLogger(__name__)


def read_properties(path: Path) -> Dict[str, str]:
    """Parse a properties file.

    Blank lines and lines starting with ``#`` or ``!`` are ignored. Both ``=``
    and ``:`` separate keys from values.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read properties file {path}: {exc}") from exc

    props: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line[0] in "#!":
            continue

        positions = [p for p in (line.find("="), line.find(":")) if p >= 0]
        if not positions:
            raise ConfigurationError(f"{path}:{lineno}: expected key=value, got {line!r}")

        sep = min(positions)
        props[line[:sep].strip()] = line[sep + 1:].strip()

    logger.debug(f"Loaded {len(props)} properties from {path}")
    return props


def load_app_config(path: Path) -> AppConfig:
    """Load the top-level config; relative paths resolve against its directory."""
    path = Path(path)
    return AppConfig.from_properties(read_properties(path), base_dir=path.parent)


def load_pricing(path: Path) -> PricingConfig:
    return PricingConfig.from_properties(read_properties(path), source=str(path))


def load_repair(path: Path) -> RepairConfig:
    return RepairConfig.from_properties(read_properties(path), source=str(path))
