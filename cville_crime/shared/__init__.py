from cville_crime.shared.config import Settings, get_config, get_dataset_config, reload_config
from cville_crime.shared.logging_config import configure_logging

__all__ = [
    "get_config",
    "reload_config",
    "get_dataset_config",
    "Settings",
    "configure_logging",
]
