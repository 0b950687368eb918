"""Config settings – 12-factor env-based configuration."""
from filevault.config.settings.base import Settings
from filevault.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader

__all__ = ["DotenvSettingsLoader", "EnvSettingsLoader", "Settings", "SettingsLoader"]
