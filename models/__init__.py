from models.config import DEFAULT_POLL_INTERVAL_MS, ResourceConfig
from models.event import ResourceEvent

__all__ = ["DEFAULT_POLL_INTERVAL_MS", "ResourceConfig", "ResourceEvent"]
