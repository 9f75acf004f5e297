from typing import List, Optional, Protocol, Tuple

from backend.app.log import get_logger

logger = get_logger("reviews.notifications")


class NotificationSink(Protocol):
    def notify_success(self, message: str) -> None: ...

    def notify_error(self, message: str) -> None: ...


class LoggingNotificationSink:
    def notify_success(self, message: str) -> None:
        logger.info(f"success: {message}")

    def notify_error(self, message: str) -> None:
        logger.warning(f"error: {message}")


class CollectingNotificationSink:
    """
    Keeps notifications in arrival order so a caller can relay them.
    If `forward` is given, every notification is passed on to it as well.
    """

    def __init__(self, forward: Optional[NotificationSink] = None) -> None:
        self.forward = forward
        self.messages: List[Tuple[str, str]] = []

    def notify_success(self, message: str) -> None:
        self.messages.append(("success", message))
        if self.forward is not None:
            self.forward.notify_success(message)

    def notify_error(self, message: str) -> None:
        self.messages.append(("error", message))
        if self.forward is not None:
            self.forward.notify_error(message)

    @property
    def last(self) -> Tuple[str, str]:
        return self.messages[-1]
