"""
Adapters layer - Schedule data stores (JSON file, REST API).
"""

from .json_store import JsonScheduleStore
from .rest_store import RestScheduleStore

__all__ = ["JsonScheduleStore", "RestScheduleStore"]
