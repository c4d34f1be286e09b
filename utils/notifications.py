import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

RESEND_API_BASE = "https://api.resend.com"


class NotificationDispatcher:
    """
    Delivers match and like notifications.

    This base dispatcher only logs. Delivery is best effort: the engine calls
    these after the swipe has committed and never lets a failure reach the
    swipe result.
    """

    def notify_match(self, user_id: str, other_user_id: str, match_id: str):
        logger.info(f"Notify {user_id}: matched with {other_user_id} (match {match_id})")

    def notify_like(self, user_id: str, from_user_id: str):
        logger.info(f"Notify {user_id}: liked by {from_user_id}")

    def notify_super_like(self, user_id: str, from_user_id: str):
        logger.info(f"Notify {user_id}: super liked by {from_user_id}")


class EmailNotificationDispatcher(NotificationDispatcher):
    """Sends notifications as e-mails through the Resend API"""

    def __init__(self, user_repository, api_key: Optional[str], from_email: str, timeout: int = 15):
        self.users = user_repository
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    def notify_match(self, user_id: str, other_user_id: str, match_id: str):
        other = self.users.find_by_id(other_user_id)
        name = other.name if other else "someone"
        self._send_to_user(user_id, f"It's a match! You and {name} liked each other")

    def notify_like(self, user_id: str, from_user_id: str):
        self._send_to_user(user_id, "Someone liked your profile")

    def notify_super_like(self, user_id: str, from_user_id: str):
        self._send_to_user(user_id, "Someone super liked your profile!")

    def _send_to_user(self, user_id: str, subject: str) -> bool:
        user = self.users.find_by_id(user_id)
        if not user or not user.email:
            logger.info(f"No e-mail address for user {user_id}; skipping notification")
            return False
        return self.send(user.email, subject, f"<p>{subject}</p>")

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set; skipping email send to %s", to)
            return False

        resp = requests.post(
            f"{RESEND_API_BASE}/emails",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "from": self.from_email,
                "to": to,
                "subject": subject,
                "html": html,
            },
            timeout=self.timeout,
        )
        if resp.status_code not in (200, 201):
            logger.error("Resend email failed (%s): %s", resp.status_code, resp.text)
            return False
        logger.info("Resend email queued for %s", to)
        return True
