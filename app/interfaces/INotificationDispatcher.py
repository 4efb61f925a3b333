from abc import ABC, abstractmethod

from app.domain.schemas import LifecycleEvent

class INotificationDispatcher(ABC):
    @abstractmethod
    def publish(self, event: LifecycleEvent) -> None:
        """Fire-and-forget. Implementations log their own failures and never raise."""
        pass
