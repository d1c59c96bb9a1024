"""Tests for TOML-backed settings."""
from __future__ import annotations

from pathlib import Path

from settings import AppSettings, SettingsManager, get_settings


def test_defaults_when_file_missing(tmp_path):
    mgr = SettingsManager(settings_dir=tmp_path)
    assert mgr.settings == AppSettings()
    assert not mgr.settings_file.exists()


def test_ensure_file_complete_writes_defaults(tmp_path):
    mgr = SettingsManager(settings_dir=tmp_path)
    mgr.ensure_file_complete()
    assert mgr.settings_file.exists()
    assert "[canvas.handles]" in mgr.settings_file.read_text()


def test_save_and_reload(tmp_path):
    mgr = SettingsManager(settings_dir=tmp_path)
    mgr.settings.default_mode = "signer"
    mgr.settings.canvas.zoom_step = 1.5
    mgr.settings.fields.default_height = 0.1
    mgr.settings.export.signed_prefix = "final-"
    mgr.save()

    again = SettingsManager(settings_dir=tmp_path)
    assert again.settings.default_mode == "signer"
    assert again.settings.canvas.zoom_step == 1.5
    assert again.settings.fields.default_height == 0.1
    assert again.settings.export.signed_prefix == "final-"


def test_partial_file_falls_back_per_key(tmp_path):
    (tmp_path / "settings.toml").write_text('[export]\nfont_size = 9.0\n')
    mgr = SettingsManager(settings_dir=tmp_path)
    assert mgr.settings.export.font_size == 9.0
    assert mgr.settings.export.font_name == "helv"
    assert mgr.settings.canvas.render_scale == 1.2


def test_corrupt_file_uses_defaults(tmp_path):
    (tmp_path / "settings.toml").write_text("this is = = not toml")
    mgr = SettingsManager(settings_dir=tmp_path)
    assert mgr.settings == AppSettings()


def test_saved_file_has_every_section(tmp_path):
    mgr = SettingsManager(settings_dir=tmp_path)
    mgr.save()
    text = mgr.settings_file.read_text()
    for section in ("[general]", "[canvas]", "[fields]", "[export]"):
        assert section in text


def test_get_settings_returns_isolated_singleton(isolated_settings):
    assert get_settings() is isolated_settings


def test_last_directory_defaults_to_home(tmp_path):
    mgr = SettingsManager(settings_dir=tmp_path)
    assert mgr.get_last_directory() == Path.home()
    mgr.settings.last_directory = str(tmp_path)
    assert mgr.get_last_directory() == tmp_path
