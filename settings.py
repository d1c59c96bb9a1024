"""
settings.py

Persistent settings management for PDF Signer.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/pdfsigner/settings.toml
    - macOS: ~/Library/Application Support/pdfsigner/settings.toml
    - Linux: ~/.config/pdfsigner/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "pdfsigner"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasHandleSettings:
    """Resize handle settings.

    Defaults:
        size: 8.0
        hit_distance: 10.0
        border_color: "#0071E3"
        fill_color: "#FFFFFF"
    """
    size: float = 8.0                 # Default: 8.0 pixels
    hit_distance: float = 10.0        # Default: 10.0 pixels
    border_color: str = "#0071E3"     # Default: blue
    fill_color: str = "#FFFFFF"       # Default: white


@dataclass
class CanvasFieldColorSettings:
    """Placeholder fill colors per field type (with alpha).

    Defaults:
        signature: "#0071E322"
        text: "#34C75922"
        date: "#FF950022"
        stamp: "#AF52DE22"
        border: "#0071E3"
    """
    signature: str = "#0071E322"   # Default: translucent blue
    text: str = "#34C75922"        # Default: translucent green
    date: str = "#FF950022"        # Default: translucent orange
    stamp: str = "#AF52DE22"       # Default: translucent purple
    border: str = "#0071E3"        # Default: blue


@dataclass
class CanvasSettings:
    """All canvas-related settings.

    Defaults:
        render_scale: 1.2
        min_size: 5.0
        selection_color: "#0071E3"
        zoom_step: 1.15
    """
    render_scale: float = 1.2          # Default: 1.2 (page raster scale)
    min_size: float = 5.0              # Default: 5.0 pixels
    selection_color: str = "#0071E3"   # Default: blue
    zoom_step: float = 1.15            # Default: 1.15 (15% per zoom step)
    handles: CanvasHandleSettings = field(default_factory=CanvasHandleSettings)
    colors: CanvasFieldColorSettings = field(default_factory=CanvasFieldColorSettings)


# =============================================================================
# Field Settings
# =============================================================================

@dataclass
class FieldDefaultSettings:
    """Factory defaults for newly placed fields.

    Defaults:
        default_width: 0.2
        default_height: 0.05
        default_required: True
    """
    default_width: float = 0.2        # Default: 20% of page width
    default_height: float = 0.05      # Default: 5% of page height
    default_required: bool = True     # Default: True


# =============================================================================
# Export Settings
# =============================================================================

@dataclass
class ExportSettings:
    """Flattening/export settings.

    Defaults:
        font_name: "helv"
        font_size: 12.0
        descender: 6.0
        placeholder_color: "#D32F2F"
        label_font_size: 8.0
        signed_prefix: "signed-"
        config_prefix: "config-"
    """
    font_name: str = "helv"              # Default: "helv" (Helvetica)
    font_size: float = 12.0              # Default: 12 points
    descender: float = 6.0               # Default: 6 points
    placeholder_color: str = "#D32F2F"   # Default: red
    label_font_size: float = 8.0         # Default: 8 points
    signed_prefix: str = "signed-"       # Default: "signed-"
    config_prefix: str = "config-"       # Default: "config-"


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        last_directory: Directory of the last opened/saved file.
        default_mode: Mode to start in ("designer", "signer" or "").
        log_level: Logging level name.
        canvas: Canvas-related settings.
        fields: Field factory defaults.
        export: Export settings.
    """
    # Directory used by file dialogs (empty = home directory)
    last_directory: str = ""

    # Mode on startup (empty = none, pick from the Mode menu)
    default_mode: str = "designer"

    # Logging level. Default: "INFO"
    log_level: str = "INFO"

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    fields: FieldDefaultSettings = field(default_factory=FieldDefaultSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Override for the config directory.
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        self.settings_dir = Path(settings_dir) if settings_dir else Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, AttributeError, TypeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # General section
        general = data.get("general", {})
        settings.last_directory = general.get("last_directory", settings.last_directory)
        settings.default_mode = general.get("default_mode", settings.default_mode)
        settings.log_level = general.get("log_level", settings.log_level)

        # Canvas section
        canvas = data.get("canvas", {})
        settings.canvas.render_scale = canvas.get("render_scale", settings.canvas.render_scale)
        settings.canvas.min_size = canvas.get("min_size", settings.canvas.min_size)
        settings.canvas.selection_color = canvas.get("selection_color", settings.canvas.selection_color)
        settings.canvas.zoom_step = canvas.get("zoom_step", settings.canvas.zoom_step)
        if "handles" in canvas:
            h = canvas["handles"]
            settings.canvas.handles.size = h.get("size", settings.canvas.handles.size)
            settings.canvas.handles.hit_distance = h.get("hit_distance", settings.canvas.handles.hit_distance)
            settings.canvas.handles.border_color = h.get("border_color", settings.canvas.handles.border_color)
            settings.canvas.handles.fill_color = h.get("fill_color", settings.canvas.handles.fill_color)
        if "colors" in canvas:
            c = canvas["colors"]
            settings.canvas.colors.signature = c.get("signature", settings.canvas.colors.signature)
            settings.canvas.colors.text = c.get("text", settings.canvas.colors.text)
            settings.canvas.colors.date = c.get("date", settings.canvas.colors.date)
            settings.canvas.colors.stamp = c.get("stamp", settings.canvas.colors.stamp)
            settings.canvas.colors.border = c.get("border", settings.canvas.colors.border)

        # Fields section
        fields = data.get("fields", {})
        settings.fields.default_width = fields.get("default_width", settings.fields.default_width)
        settings.fields.default_height = fields.get("default_height", settings.fields.default_height)
        settings.fields.default_required = fields.get("default_required", settings.fields.default_required)

        # Export section
        export = data.get("export", {})
        settings.export.font_name = export.get("font_name", settings.export.font_name)
        settings.export.font_size = export.get("font_size", settings.export.font_size)
        settings.export.descender = export.get("descender", settings.export.descender)
        settings.export.placeholder_color = export.get("placeholder_color", settings.export.placeholder_color)
        settings.export.label_font_size = export.get("label_font_size", settings.export.label_font_size)
        settings.export.signed_prefix = export.get("signed_prefix", settings.export.signed_prefix)
        settings.export.config_prefix = export.get("config_prefix", settings.export.config_prefix)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "last_directory": s.last_directory,
                "default_mode": s.default_mode,
                "log_level": s.log_level,
            },
            "canvas": {
                "render_scale": s.canvas.render_scale,
                "min_size": s.canvas.min_size,
                "selection_color": s.canvas.selection_color,
                "zoom_step": s.canvas.zoom_step,
                "handles": {
                    "size": s.canvas.handles.size,
                    "hit_distance": s.canvas.handles.hit_distance,
                    "border_color": s.canvas.handles.border_color,
                    "fill_color": s.canvas.handles.fill_color,
                },
                "colors": {
                    "signature": s.canvas.colors.signature,
                    "text": s.canvas.colors.text,
                    "date": s.canvas.colors.date,
                    "stamp": s.canvas.colors.stamp,
                    "border": s.canvas.colors.border,
                },
            },
            "fields": {
                "default_width": s.fields.default_width,
                "default_height": s.fields.default_height,
                "default_required": s.fields.default_required,
            },
            "export": {
                "font_name": s.export.font_name,
                "font_size": s.export.font_size,
                "descender": s.export.descender,
                "placeholder_color": s.export.placeholder_color,
                "label_font_size": s.export.label_font_size,
                "signed_prefix": s.export.signed_prefix,
                "config_prefix": s.export.config_prefix,
            },
        }

    def get_last_directory(self) -> Path:
        """Get the directory file dialogs should open in.

        Returns:
            Path to the last used directory, or the home directory if unset.
        """
        if self.settings.last_directory:
            return Path(self.settings.last_directory)
        return Path.home()
