"""
RotaTV - unattended broadcast rotation

- Shuffled main rotation that avoids recently played videos
- Audience voting and requests through chat
- Timed commercial breaks with a rare special variant
- OBS scene control over obs-websocket
"""

__version__ = "1.0.0"
__license__ = "MIT"

from rotatv.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
