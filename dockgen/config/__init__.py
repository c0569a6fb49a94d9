"""Settings loading for dockgen."""
from .settings import DEFAULT_SETTINGS_FILE, Settings, load_settings  # noqa: F401
