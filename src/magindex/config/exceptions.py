"""Configuration errors."""


class ConfigError(Exception):
    """Raised when configuration data cannot be read, merged, or validated."""


class ConfigFileError(ConfigError):
    """Raised when the configuration file is unreadable or not a YAML mapping."""


class ConfigValueError(ConfigError):
    """Raised when merged settings fail validation or an override is malformed."""
