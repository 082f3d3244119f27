# messenger/handler.py
"""
Messenger page events. Only logged for now; ordering runs on WhatsApp.
"""
import logging
from typing import Dict, List

logger = logging.getLogger(__name__)


class MessengerHandler:
    """Accepts ``object == page`` deliveries"""

    def __init__(self, page_token: str = None):
        self.page_token = page_token

    def extract_events(self, payload: Dict) -> List[Dict]:
        events = []
        for entry in payload.get('entry') or []:
            for event in entry.get('messaging') or []:
                events.append(event)
        return events

    def handle_webhook(self, payload: Dict) -> int:
        """Log each messaging event and return how many there were"""
        events = self.extract_events(payload)
        for event in events:
            sender = (event.get('sender') or {}).get('id', 'unknown')
            text = (event.get('message') or {}).get('text', '')
            logger.info(f"💬 Messenger event from {sender}: {text[:80]}")

        if events and not self.page_token:
            logger.warning("⚠️ MESSENGER_PAGE_TOKEN not set - Messenger replies are disabled")
        return len(events)
