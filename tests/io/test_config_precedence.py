from __future__ import annotations

from pathlib import Path

from trellis.io.config import TrellisSettings

_ENV_KEYS = [
    "TRELLIS_ROOT_DIR",
    "TRELLIS_API_MODE",
    "TRELLIS_CREATE_ARCHETYPES",
    "TRELLIS_STRICT_STATE",
    "TRELLIS_MAX_RESTORE_PASSES",
    "TRELLIS_COMPRESSION",
    "TRELLIS_ROW_GROUP_SIZE",
]


def _write_trellis_toml(tmp: Path, content: str) -> Path:
    p = tmp / "trellis.toml"
    p.write_text(content)
    return p


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    _write_trellis_toml(
        tmp_path,
        """
        [trellis]
        root_dir = "tmp_out_toml"
        max_restore_passes = 7
        compression = "lz4"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("TRELLIS_ROOT_DIR", "tmp_out_env")
    monkeypatch.setenv("TRELLIS_MAX_RESTORE_PASSES", "12")
    monkeypatch.setenv("TRELLIS_API_MODE", "validate_api")

    s = TrellisSettings.load()

    assert s.root_dir == "tmp_out_env"
    assert s.max_restore_passes == 12
    assert s.api_mode == "validate_api"
    # Not overridden by env.
    assert s.compression == "lz4"


def test_settings_from_toml_when_no_env(tmp_path: Path, monkeypatch) -> None:
    _write_trellis_toml(
        tmp_path,
        """
        [trellis]
        root_dir = "tmp_out_toml"
        api_mode = "print_api"
        strict_state = false
        compression = "snappy"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = TrellisSettings.load()

    assert s.root_dir == "tmp_out_toml"
    assert s.api_mode == "print_api"
    assert s.strict_state is False
    assert s.compression == "snappy"
    assert s.archetypes_enabled is True


def test_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text(
        '[tool.trellis]\ncreate_archetypes = true\nrow_group_size = 1000\n'
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = TrellisSettings.load()

    assert s.create_archetypes is True
    assert s.archetypes_enabled is True
    assert s.row_group_size == 1000


def test_invalid_values_are_ignored(tmp_path: Path, monkeypatch) -> None:
    _write_trellis_toml(
        tmp_path,
        """
        [trellis]
        api_mode = "loud"
        max_restore_passes = 0
        compression = "gzip"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("TRELLIS_ROW_GROUP_SIZE", "many")

    s = TrellisSettings.load()

    assert s == TrellisSettings()


def test_settings_defaults_when_no_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = TrellisSettings.load()

    assert s.root_dir == "out"
    assert s.api_mode == "off"
    assert s.strict_state is True
    assert s.max_restore_passes == 100
    assert s.compression == "zstd"
    assert s.archetypes_enabled is False
