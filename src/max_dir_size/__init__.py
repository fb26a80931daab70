from __future__ import annotations

from .sizeconfig import SizeConfig
from .sizeconfig import load_config
from .sizescheduler import SizeScheduler

__version__ = "0.1.0"

__all__ = [
    "SizeConfig",
    "SizeScheduler",
    "load_config",
]
