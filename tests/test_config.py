from __future__ import annotations

from pathlib import Path

import pytest

from lighthousectl.core.config import load_config
from lighthousectl.core.errors import ConfigLoadError, ConfigValidationError
from lighthousectl.core.model import Settings


def _write_config(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_missing_default_config_uses_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))

    loaded = load_config()
    assert loaded.source is None
    assert loaded.settings == Settings()
    assert loaded.settings.retries == 3
    assert loaded.settings.scan_timeout_s == 10.0
    assert loaded.settings.ble_timeout_s == 1.0
    assert loaded.settings.update_frequency_s == 60.0
    assert loaded.settings.lighthouses is None


def test_default_location_is_read(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    path = _write_config(
        tmp_path / "cfg" / "lighthousectl" / "config.yaml",
        """
platform: lighthouse
name: Play Space
lighthouses: ["LHB-0A1B2C3D", "LHB-11223344"]
retries: 5
scanTimeout: 4
bleTimeout: 1.5
updateFrequency: 30
""",
    )

    loaded = load_config()
    assert loaded.source == path
    assert loaded.warnings == ()
    assert loaded.settings == Settings(
        name="Play Space",
        lighthouses=("LHB-0A1B2C3D", "LHB-11223344"),
        retries=5,
        scan_timeout_s=4.0,
        ble_timeout_s=1.5,
        update_frequency_s=30.0,
    )


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "")
    assert load_config(path).settings == Settings()


def test_unknown_key_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "retries: 3\nscan_timeout: 5\n")
    with pytest.raises(ConfigValidationError) as exc:
        load_config(path)
    assert "scan_timeout" in str(exc.value)


def test_invalid_value_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "retries: 0\n")
    with pytest.raises(ConfigValidationError) as exc:
        load_config(path)
    assert "(retries)" in str(exc.value)


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "retries: 3\nretries: 4\n")
    with pytest.raises(ConfigValidationError):
        load_config(path)


def test_non_mapping_root_rejected(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "- LHB-1\n- LHB-2\n")
    with pytest.raises(ConfigValidationError):
        load_config(path)


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path / "nope.yaml")


def test_allow_list_entry_without_prefix_warns(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", 'lighthouses: ["Garage", "LHB-1"]\n')

    loaded = load_config(path)
    assert loaded.settings.lighthouses == ("Garage", "LHB-1")
    assert len(loaded.warnings) == 1
    assert "Garage" in loaded.warnings[0]
    assert loaded.settings.accepts("Garage")
    assert not loaded.settings.accepts("LHB-2")


def test_prefix_matching_without_allow_list() -> None:
    settings = Settings()
    assert settings.accepts("LHB-DEADBEEF")
    assert not settings.accepts("HTC BS 123456")
    assert not settings.accepts(None)
    assert Settings(name_prefix="HTC BS").accepts("HTC BS 123456")


def test_empty_allow_list_means_prefix_matching(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "config.yaml", "lighthouses: []\n")
    loaded = load_config(path)
    assert loaded.settings.lighthouses is None
    assert loaded.settings.accepts("LHB-DEADBEEF")
    assert Settings(lighthouses=()).accepts("LHB-DEADBEEF")
