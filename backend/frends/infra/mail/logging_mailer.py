# frends/infra/mail/logging_mailer.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from frends.services._shared.ports import Mailer, OutgoingMail

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LoggingMailer(Mailer):
    """
    Mailer that records outgoing messages in the log.

    Delivery belongs to an external collaborator; this adapter only hands the
    message over. Links are not logged since they carry bearer tokens.
    """

    sender: str = "no-reply@frends.local"

    def send(self, message: OutgoingMail) -> None:
        log.info(
            "mail.queued: from=%s to=%s subject=%s",
            self.sender,
            message.to,
            message.subject,
            extra={"event": "mail.queued"},
        )
