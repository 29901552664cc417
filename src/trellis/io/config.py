"""
Configuration for trellis.

Defines TrellisSettings, a frozen dataclass carrying runtime configuration for API
extraction modes, archetype creation, state restore, and persistence.

Sources and precedence
- Defaults on the dataclass.
- TOML: ./trellis.toml (either a [trellis] table or top-level keys), then ./pyproject.toml
  under [tool.trellis].
- Environment variables with the TRELLIS_ prefix.
- ``TrellisSettings.load()`` applies env > TOML > defaults. Invalid values are ignored
  key by key; the loaders never raise.

Import DAG discipline
- Depends only on stdlib.
- Imported by trellis.dynamic (registry settings) and the trellis.io writers.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

__all__ = ["ApiMode", "Compression", "TrellisSettings"]

ApiMode = Literal["off", "print_api", "validate_api"]
Compression = Literal["zstd", "lz4", "snappy"]

_API_MODES = ("off", "print_api", "validate_api")
_COMPRESSIONS = ("zstd", "lz4", "snappy")


@dataclass(frozen=True)
class TrellisSettings:
    """
    Runtime settings for trellis.

    Attributes:
        root_dir (str): Root under which state documents and API snapshots are written.
        api_mode (Literal["off","print_api","validate_api"]): Static API extraction mode.
            Any mode other than "off" makes containers build archetypes at startup.
        create_archetypes (bool): Build archetypes even when api_mode is "off".
        strict_state (bool): If True, the state engine validates every entry of a state
            document against its element's IO Type before applying anything.
        max_restore_passes (int): Upper bound on restore passes (>= 1). The engine stops
            earlier when a pass makes no progress.
        compression (Literal["zstd","lz4","snappy"]): Parquet codec for API snapshots.
        row_group_size (int): Parquet row group size for API snapshots.

    Examples:
        >>> from trellis.io.config import TrellisSettings
        >>> TrellisSettings(api_mode="print_api").archetypes_enabled
        True
    """

    root_dir: str = "out"
    api_mode: ApiMode = "off"
    create_archetypes: bool = False
    strict_state: bool = True
    max_restore_passes: int = 100
    compression: Compression = "zstd"
    row_group_size: int = 128_000

    @property
    def archetypes_enabled(self) -> bool:
        """True when containers should build archetypes during startup."""
        return self.api_mode != "off" or self.create_archetypes

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: TrellisSettings, cfg: dict[str, Any] | None) -> TrellisSettings:
        """Apply a loose config mapping onto TrellisSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _bool(v: Any) -> bool:
            if isinstance(v, bool):
                return v
            if isinstance(v, (int, float)):
                return bool(v)
            if isinstance(v, str):
                return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
            return False

        def _positive_int(v: Any) -> int | None:
            try:
                n = int(v)
            except (TypeError, ValueError):
                return None
            return n if n >= 1 else None

        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        if "api_mode" in cfg and isinstance(cfg["api_mode"], str):
            mode = cfg["api_mode"].strip().lower()
            if mode in _API_MODES:
                s = replace(s, api_mode=mode)  # type: ignore[arg-type]

        if "create_archetypes" in cfg:
            s = replace(s, create_archetypes=_bool(cfg["create_archetypes"]))

        if "strict_state" in cfg:
            s = replace(s, strict_state=_bool(cfg["strict_state"]))

        if "max_restore_passes" in cfg:
            n = _positive_int(cfg["max_restore_passes"])
            if n is not None:
                s = replace(s, max_restore_passes=n)

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSIONS:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        if "row_group_size" in cfg:
            n = _positive_int(cfg["row_group_size"])
            if n is not None:
                s = replace(s, row_group_size=n)

        return s

    @classmethod
    def from_env(
        cls, base: TrellisSettings | None = None, prefix: str = "TRELLIS_"
    ) -> TrellisSettings:
        """
        Build TrellisSettings from environment variables. Precedence is env > base (if
        provided) > defaults.

        Recognized variables:
            - TRELLIS_ROOT_DIR
            - TRELLIS_API_MODE ("off" | "print_api" | "validate_api")
            - TRELLIS_CREATE_ARCHETYPES (1/0/true/false/yes/no/on/off)
            - TRELLIS_STRICT_STATE (1/0/true/false/yes/no/on/off)
            - TRELLIS_MAX_RESTORE_PASSES
            - TRELLIS_COMPRESSION ("zstd" | "lz4" | "snappy")
            - TRELLIS_ROW_GROUP_SIZE
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in (
            "root_dir",
            "api_mode",
            "create_archetypes",
            "strict_state",
            "max_restore_passes",
            "compression",
            "row_group_size",
        ):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> TrellisSettings:
        """
        Build TrellisSettings from a TOML file.

        Search order when `path` is None:
            1) ./trellis.toml (with either a [trellis] table or direct keys)
            2) ./pyproject.toml under [tool.trellis]

        Returns defaults if no file is present or it cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "trellis.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("trellis") if isinstance(tool, dict) else None
            elif "trellis" in data and isinstance(data["trellis"], dict):
                cfg = data["trellis"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> TrellisSettings:
        """
        Load TrellisSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (trellis.toml,
                pyproject.toml).

        Returns:
            TrellisSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
