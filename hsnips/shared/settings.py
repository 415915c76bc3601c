from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from std2.pickle.decoder import new_decoder
from std2.tree import merge
from yaml import safe_load

from ..consts import CONFIG_YML, UTF8


@dataclass(frozen=True)
class Settings:
    extensions: Sequence[str]
    global_filetype: str


def _read(path: Path) -> Any:
    return safe_load(path.read_text(UTF8)) or {}


def load_settings(user_config: Optional[Path] = None) -> Settings:
    defaults = _read(CONFIG_YML)
    overrides = _read(user_config) if user_config else {}
    config = merge(defaults, overrides, replace=True)
    settings: Settings = new_decoder[Settings](Settings)(config)
    return settings
