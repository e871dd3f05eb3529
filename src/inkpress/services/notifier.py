"""Password-reset notification.

Learn: Delivering the reset token (email, SMS, ...) is outside this
service. The API hands the token to a ResetNotifier; the default one just
records that a reset was requested. Deployments that send mail plug their
own notifier into app.state.reset_notifier.
"""

from typing import Protocol

import structlog

logger = structlog.get_logger()


class ResetNotifier(Protocol):
    async def send_reset_token(self, email: str, token: str) -> None: ...


class LogResetNotifier:
    """Logs reset requests instead of delivering them."""

    async def send_reset_token(self, email: str, token: str) -> None:
        logger.info("auth.reset_requested", email=email, token=token[:10] + "...")
