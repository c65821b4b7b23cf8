"""
Config manager - read and manage engine tuning

Configuration is a flat dict: {"key": value, ...}
"""
from typing import Any, Dict, Optional


class ConfigManager:
    """
    Config manager

    Holds the default tuning of the pet engine and any overrides passed in
    by the hosting app. Engines receive an instance explicitly; get_config()
    returns the shared default one.
    """

    # Default configuration (flat structure)
    DEFAULT_CONFIG = {
        "feed_hunger_relief": 30,
        "feed_happiness_gain": 15,
        "play_happiness_gain": 20,
        "play_energy_cost": 10,
        "play_experience_gain": 10,
        "rest_energy_gain": 40,
        "decay_interval": 300,
        "hungry_after_hours": 2,
        "hungry_fullness_below": 50,
        "tired_after_hours": 4,
        "tired_energy_below": 30,
        "message_log_size": 5,
        "motivation_interval": 60,
        "motivation_chance": 0.3,
    }

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = self.DEFAULT_CONFIG.copy()
        if config:
            self.load_config(config)

    @classmethod
    def get_instance(cls) -> 'ConfigManager':
        """Return the shared config manager"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load_config(self, config: Dict[str, Any]) -> None:
        """
        Load configuration

        Args:
            config: flat dict of overrides; unknown keys raise KeyError
        """
        unknown = set(config) - set(self.DEFAULT_CONFIG)
        if unknown:
            raise KeyError(f"unknown config keys: {', '.join(sorted(unknown))}")
        self._config.update(config)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value

        Args:
            key: config key
            default: value returned when the key is missing

        Returns:
            config value
        """
        return self._config.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._config)

    @property
    def decay_interval(self) -> float:
        """Seconds between two passive decay checks"""
        return self._config["decay_interval"]

    @property
    def motivation_interval(self) -> float:
        """Seconds between two motivation rolls"""
        return self._config["motivation_interval"]

    @property
    def motivation_chance(self) -> float:
        return self._config["motivation_chance"]

    @property
    def message_log_size(self) -> int:
        return self._config["message_log_size"]


def get_config() -> ConfigManager:
    """Get the shared config manager"""
    return ConfigManager.get_instance()
