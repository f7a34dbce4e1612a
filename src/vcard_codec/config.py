from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_NAME = "vcard-codec.toml"


@dataclass
class Settings:
    strict: bool = True
    encoding: str = "utf-8"
    fold_width: int = 75


DEFAULT_CONF = """# vcard-codec configuration (TOML)

# Reject the whole file on the first bad property (true) or drop bad
# properties and keep going (false).
strict = true

# Encoding used to read .vcf files.
encoding = "utf-8"

# Maximum octets per physical line when writing.
fold_width = 75
"""


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from *path*, or ./vcard-codec.toml when not given.

    A missing file gives the defaults; a malformed one is logged and ignored.
    """
    conf = Path(path) if path is not None else Path.cwd() / CONFIG_NAME
    settings = Settings()
    if not conf.exists():
        return settings

    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring malformed config %s: %s", conf, exc)
        return settings

    for f in fields(Settings):
        if f.name not in data:
            continue
        value = data[f.name]
        expected = type(getattr(settings, f.name))
        if type(value) is not expected:
            logger.warning(
                "Ignoring %s in %s: expected %s, got %r", f.name, conf, expected.__name__, value
            )
            continue
        setattr(settings, f.name, value)

    if settings.fold_width < 2:
        logger.warning("fold_width %d in %s is too small, using 75", settings.fold_width, conf)
        settings.fold_width = 75
    return settings


def write_default_config(path: Path) -> bool:
    """Write the default config file; return False if one already exists."""
    path = Path(path)
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONF, encoding="utf-8")
    return True
