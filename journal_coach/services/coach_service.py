"""CoachService - mentor chat"""
import logging
from typing import Dict, List, Optional

from journal_coach.db.store import ProgressStore
from journal_coach.exceptions import ValidationError
from journal_coach.services.text_generation import TextGenerator

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000


class CoachService:
    """Replies to the user as a supportive journaling mentor"""

    def __init__(self, store: ProgressStore, text_generator: TextGenerator):
        self.store = store
        self.text_generator = text_generator

    async def reply(
        self,
        user_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """
        Mentor reply; falls back to a fixed message when the text service fails.

        Raises:
            ValidationError: empty or oversized message
        """
        message = (message or "").strip()
        if not message:
            raise ValidationError(message="Message cannot be empty", field="message", user_id=user_id)
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                message=f"Message exceeds {MAX_MESSAGE_LENGTH} characters",
                field="message",
                value=len(message),
                user_id=user_id
            )

        progress = await self.store.get_progress(user_id)
        if progress is not None:
            message = (
                f"(Context: level {progress.level}, {progress.streak}-day journaling streak, "
                f"{progress.total_entries} entries so far)\n{message}"
            )

        reply = await self.text_generator.chat_reply(message, history)
        logger.info(f"Mentor replied to user {user_id} ({len(reply)} chars)")
        return reply
