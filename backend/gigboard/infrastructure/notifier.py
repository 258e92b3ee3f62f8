"""Outbound Adapters — notification intents and one-time code delivery.

Invariants:
    - emit()/send_code() never raise into the caller: delivery is fire-and-forget
    - Codes are never written to logs above DEBUG

Design Decisions:
    - Logging adapters stand in for the external notifier / mailer; the real
      delivery service consumes the structured log stream or replaces these classes
"""

import logging

from gigboard.core.domain_types import CodePurpose, NotificationIntent, Role

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Publishes notification intents as structured log records."""

    def emit(self, intent: NotificationIntent) -> None:
        logger.info(
            "Notification intent %s", intent.event.value,
            extra={
                "event": intent.event.value,
                "job_id": intent.job_id,
                "application_id": intent.application_id,
                "new_status": intent.new_status.value,
            },
        )


class LoggingCodeSender:
    """Hands issued codes to the delivery pipeline (logs in development)."""

    def send_code(
        self, email: str, code: str, purpose: CodePurpose, user_type: Role,
    ) -> None:
        logger.info(
            "Verification code issued for %s (%s)", user_type.value, purpose.value,
            extra={"purpose": purpose.value},
        )
        logger.debug("Verification code for %s: %s", email, code)


notifier = LoggingNotifier()
code_sender = LoggingCodeSender()
