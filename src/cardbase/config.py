"""Settings for a cardbase session.

Settings come from three layers, later ones winning:

1. dataclass defaults,
2. the ``[cardbase]`` table of a TOML file::

       [cardbase]
       weighting   = "normalized"   # or "raw"
       max_results = 50
       db_path     = "~/.cardbase/snapshots.duckdb"

3. ``CARDBASE_<FIELD>`` environment variables (e.g. ``CARDBASE_WORKER_URL``).
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from cardbase.text import Weighting

ENV_PREFIX = "CARDBASE_"


@dataclass
class Settings:
    weighting: str = Weighting.NORMALIZED.value
    max_results: int = 50
    copy_on_write: bool = False
    undo_depth: int = 100
    #: DuckDB file holding local snapshots
    db_path: str = ":memory:"
    #: Sync worker base URL; empty disables remote sync
    worker_url: str = ""
    api_token: str = ""
    log_level: str = "INFO"
    log_file: str = ""

    def __post_init__(self) -> None:
        self.weighting = Weighting(self.weighting).value
        if self.max_results < 1:
            raise ValueError(f"max_results must be positive, got {self.max_results}")
        if self.undo_depth < 0:
            raise ValueError(f"undo_depth must not be negative, got {self.undo_depth}")


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, str):
            return raw.strip().lower() in {"1", "true", "yes", "on"}
        return bool(raw)
    if isinstance(default, int):
        return int(raw)
    return str(raw)


def load_settings(path: Path | str | None = None, env: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from an optional TOML file and the environment."""
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    if path is not None:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
        values.update(data.get("cardbase", {}))

    defaults = Settings()
    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown cardbase settings: {', '.join(sorted(unknown))}")

    for name in known:
        key = ENV_PREFIX + name.upper()
        if key in env:
            values[name] = env[key]

    return Settings(**{k: _coerce(v, getattr(defaults, k)) for k, v in values.items()})
