from consumers.base import EventConsumer
from consumers.console import ConsoleConsumer

__all__ = ["EventConsumer", "ConsoleConsumer"]
