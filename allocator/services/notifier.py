"""
Delivery of verification codes

Delivery is an external concern: the verification service hands
(recipient, code, expires_at) to a notifier and does not rely on it
for correctness.
"""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class CodeNotifier:
    """Interface for anything that can deliver a verification code"""

    def send_code(self, recipient: str, code: str, expires_at: datetime) -> None:
        raise NotImplementedError


class LoggingNotifier(CodeNotifier):
    """Default notifier: records the issue in the application log"""

    def send_code(self, recipient: str, code: str, expires_at: datetime) -> None:
        logger.info(f"Verification code issued to {recipient}, expires {expires_at.isoformat()}")
        logger.debug(f"Verification code for {recipient}: {code}")
