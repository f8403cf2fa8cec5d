"""Outbound account mail (password reset, email verification).

The default transport writes a structured log line per message and
does not include the token. Swap `get_notifier` through
`app.dependency_overrides` to plug a real mail provider.
"""

import json
import logging
from typing import Any, Dict

from . import models

logger = logging.getLogger("campus.notifications")

RESET_SUBJECT = "Reset your password"
VERIFY_SUBJECT = "Verify your email address"


class Notifier:
    def send(self, to: str, subject: str, template: str, context: Dict[str, Any]) -> None:
        logger.info("mail_sent %s", json.dumps({"to": to, "subject": subject, "template": template}))

    def password_reset(self, user: models.User, token: str, expires_minutes: int) -> None:
        self.send(
            user.email,
            RESET_SUBJECT,
            "password-reset",
            {"name": user.first_name or user.username, "token": token, "expires_minutes": expires_minutes},
        )

    def email_verification(self, user: models.User, token: str) -> None:
        self.send(
            user.email,
            VERIFY_SUBJECT,
            "verify-email",
            {"name": user.first_name or user.username, "token": token},
        )


_notifier = Notifier()


def get_notifier() -> Notifier:
    return _notifier
