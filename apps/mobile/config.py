# apps/mobile/config.py
import os
from dataclasses import dataclass


@dataclass
class MobileConfig:
    api_base_url: str = 'http://localhost:8000/api'
    relay_url: str = 'ws://localhost:8000/ws/relay/'
    storage_path: str = '~/.securenest/storage.json'

    # Foreground watch: high frequency, ~1 m / 2 s
    foreground_distance_interval: float = 1.0
    foreground_time_interval: float = 2.0
    # Background task: lower duty cycle
    background_distance_interval: float = 10.0
    background_time_interval: float = 5.0

    zone_reset_delay: float = 2.0

    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 5.0
    request_timeout: float = 10.0

    @classmethod
    def from_env(cls, environ=None):
        environ = os.environ if environ is None else environ
        config = cls()
        config.api_base_url = environ.get('SECURENEST_API_URL', config.api_base_url)
        config.relay_url = environ.get('SECURENEST_RELAY_URL', config.relay_url)
        config.storage_path = environ.get('SECURENEST_STORAGE_PATH', config.storage_path)
        return config
