from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class OutgoingMail:
    """A rendered message handed to the delivery collaborator."""

    to: str
    subject: str
    body: str
    link: str | None = None


class Mailer(Protocol):
    """Port for outbound transactional mail. Delivery is out of scope."""

    def send(self, message: OutgoingMail) -> None: ...


class InMemoryMailer(Mailer):
    """Collects messages instead of sending them."""

    def __init__(self) -> None:
        self.outbox: list[OutgoingMail] = []
        self._lock = threading.Lock()

    def send(self, message: OutgoingMail) -> None:
        with self._lock:
            self.outbox.append(message)

    def last_to(self, address: str) -> OutgoingMail | None:
        with self._lock:
            for message in reversed(self.outbox):
                if message.to == address:
                    return message
        return None
