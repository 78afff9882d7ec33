from core.collection import LiveCollection
from core.errors import LiveResourceError, StatusCodeError
from core.event_bus import EventBus
from core.interest import InterestCounter
from core.resource import LiveResource

__all__ = [
    "EventBus",
    "InterestCounter",
    "LiveCollection",
    "LiveResource",
    "LiveResourceError",
    "StatusCodeError",
]
