from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from typing import List, Dict, Any, Optional
from app.config import get_settings
import logging

logger = logging.getLogger(__name__)


class SlackService:
    """
    Optional direct-message channel for logbook notifications.
    Without a bot token every send is skipped and reported as not delivered.
    """

    def __init__(self, client: Optional[WebClient] = None):
        token = get_settings().slack_bot_token
        self.client = client or (WebClient(token=token) if token else None)
        self._dm_channels: Dict[str, str] = {}

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _open_dm(self, slack_user_id: str) -> str:
        channel_id = self._dm_channels.get(slack_user_id)
        if channel_id is None:
            response = self.client.conversations_open(users=slack_user_id)
            channel_id = response['channel']['id']
            self._dm_channels[slack_user_id] = channel_id
        return channel_id

    def send_dm(self, slack_user_id: str, blocks: List[Dict[str, Any]], text: str = "") -> bool:
        if not self.enabled:
            logger.debug(f"Slack disabled, skipping DM to {slack_user_id}")
            return False
        try:
            self.client.chat_postMessage(
                channel=self._open_dm(slack_user_id),
                blocks=blocks,
                text=text
            )
            return True
        except SlackApiError as e:
            logger.error(f"Error sending DM to {slack_user_id}: {e.response['error']}")
            return False
