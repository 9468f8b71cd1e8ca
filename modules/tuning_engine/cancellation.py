import threading


class CancellationToken:
    """Cooperative cancellation flag checked by the tuning loop between rounds."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
