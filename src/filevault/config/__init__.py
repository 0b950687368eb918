"""Config – settings loading and the FileSystemSettings struct."""
from filevault.config.file_system import DEFAULT_ALLOWED_MIME_TYPES, MB, FileSystemSettings
from filevault.config.settings import DotenvSettingsLoader, EnvSettingsLoader, Settings, SettingsLoader
from filevault.config.validation import ConfigError, InvalidSettingValueError, MissingRequiredSettingError

__all__ = [
    "ConfigError",
    "DEFAULT_ALLOWED_MIME_TYPES",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "FileSystemSettings",
    "InvalidSettingValueError",
    "MB",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
