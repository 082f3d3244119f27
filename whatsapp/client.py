import requests
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, List
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from utils.constants import APIConfig, ButtonIds, MenuDefaults, MessageTypes, Platforms
from utils.helpers import chunk_list, truncate_message, truncate_text

logger = logging.getLogger(__name__)


@dataclass
class IncomingMessage:
    """Platform-neutral shape of one inbound message"""
    user_id: str
    platform: str
    type: str
    message_id: Optional[str] = None
    text: str = ''
    interactive: Optional[Dict] = None
    user_name: str = 'Unknown'


class WhatsAppClient:
    """WhatsApp Business Cloud API client"""

    def __init__(self, config: Dict[str, Any]):
        self.whatsapp_token = config.get('whatsapp_token')
        self.phone_number_id = config.get('phone_number_id')
        self.verify_token = config.get('verify_token')
        self.timeout = config.get('whatsapp_timeout', 15.0)

        # API configuration
        self.api_version = config.get('whatsapp_api_version') or APIConfig.WHATSAPP_API_VERSION
        self.base_url = f"{APIConfig.WHATSAPP_BASE_URL}/{self.api_version}"

        # Headers for API requests
        self.headers = {
            'Authorization': f'Bearer {self.whatsapp_token}',
            'Content-Type': 'application/json'
        }

        self.session = self._create_retry_session(config.get('whatsapp_max_retries', 2))

        if self.has_credentials():
            logger.info(f"✅ WhatsApp client initialized with phone ID: {self.phone_number_id}")
        else:
            logger.warning("⚠️ WhatsApp credentials missing - outbound messages will be skipped")

    def _create_retry_session(self, max_retries: int) -> requests.Session:
        """Create session with retry strategy"""
        session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"]
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def has_credentials(self) -> bool:
        return bool(self.whatsapp_token and self.phone_number_id)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.phone_number_id}/messages"

    def _post_message(self, payload: Dict, description: str) -> bool:
        """POST a message payload; logs and returns False instead of raising"""
        if not self.has_credentials():
            logger.error("❌ Missing WhatsApp credentials (WHATSAPP_PHONE_NUMBER_ID, WHATSAPP_ACCESS_TOKEN)")
            return False

        try:
            response = self.session.post(
                self.messages_url, headers=self.headers, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"❌ Timeout sending {description}: {e}")
            return False
        except requests.exceptions.ConnectionError as e:
            logger.error(f"❌ Connection error sending {description}: {e}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Request failed sending {description}: {e}")
            return False

        if response.status_code == 401:
            logger.error("❌ Authentication failed - check WhatsApp token")
            return False
        if not 200 <= response.status_code < 300:
            logger.error(f"❌ WhatsApp API error sending {description}: {response.status_code} {response.text}")
            return False

        try:
            message_id = (response.json().get('messages') or [{}])[0].get('id')
        except ValueError:
            message_id = None
        logger.info(f"✅ {description.capitalize()} sent successfully: {message_id}")
        return True

    def send_text_message(self, to: str, message: str) -> bool:
        """Send a text message to WhatsApp user"""
        payload = {
            'messaging_product': 'whatsapp',
            'to': to,
            'type': 'text',
            'text': {'body': truncate_message(message)}
        }
        logger.info(f"📤 Sending text message to {to}")
        return self._post_message(payload, 'text message')

    def send_image_message(self, to: str, image_url: str, caption: str = '') -> bool:
        """Send an image by link with an optional caption"""
        image = {'link': image_url}
        if caption:
            image['caption'] = truncate_message(caption, 1024)

        payload = {
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': to,
            'type': 'image',
            'image': image
        }
        logger.info(f"📤 Sending image message to {to}")
        return self._post_message(payload, 'image message')

    @staticmethod
    def build_reply_button(button_id: str, title: str) -> Dict:
        return {
            'type': 'reply',
            'reply': {
                'id': button_id,
                'title': truncate_text(title, APIConfig.MAX_BUTTON_TITLE_LENGTH)
            }
        }

    def send_button_message(self, to: str, header_text: str, body_text: str,
                            footer_text: str, buttons: List[Dict]) -> bool:
        """Send an interactive message with up to three reply buttons"""
        if len(buttons) > APIConfig.MAX_BUTTONS:
            logger.warning(f"⚠️ {len(buttons)} buttons requested, only the first {APIConfig.MAX_BUTTONS} are sent")
            buttons = buttons[:APIConfig.MAX_BUTTONS]

        interactive_payload = {
            'type': 'button',
            'header': {'type': 'text', 'text': header_text},
            'body': {'text': truncate_message(body_text, 1024)},
            'footer': {'text': footer_text},
            'action': {'buttons': buttons}
        }

        payload = {
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': to,
            'type': 'interactive',
            'interactive': interactive_payload
        }

        logger.info(f"📤 Sending button message to {to}")
        return self._post_message(payload, 'button message')

    @staticmethod
    def paginate_sections(sections: List[Dict]) -> List[Dict]:
        """Split any section with more than ten rows into consecutive sections"""
        paginated = []
        for section in sections:
            rows = section.get('rows', [])
            if len(rows) <= APIConfig.MAX_LIST_ROWS_PER_SECTION:
                paginated.append(section)
                continue
            for index, chunk in enumerate(chunk_list(rows, APIConfig.MAX_LIST_ROWS_PER_SECTION)):
                title = section.get('title', '')
                paginated.append({
                    'title': title if index == 0 else f"{title} ({index + 1})",
                    'rows': chunk
                })
        return paginated

    def send_list_message(self, to: str, header_text: str, body_text: str,
                          footer_text: str, button_text: str, sections: List[Dict]) -> bool:
        """Send a list message; sections over the row limit are paginated"""
        interactive_payload = {
            'type': 'list',
            'header': {'type': 'text', 'text': header_text},
            'body': {'text': truncate_message(body_text, 1024)},
            'footer': {'text': footer_text},
            'action': {
                'button': button_text,
                'sections': self.paginate_sections(sections)
            }
        }

        payload = {
            'messaging_product': 'whatsapp',
            'recipient_type': 'individual',
            'to': to,
            'type': 'interactive',
            'interactive': interactive_payload
        }

        logger.info(f"📤 Sending list message to {to}")
        return self._post_message(payload, 'list message')

    def send_order_confirmation(self, to: str, order_details: str) -> bool:
        """Fixed Confirm/Cancel layout for the order summary"""
        buttons = [
            self.build_reply_button(ButtonIds.CONFIRM_ORDER, 'Confirm Order ✅'),
            self.build_reply_button(ButtonIds.CANCEL_ORDER, 'Cancel Order ❌'),
        ]
        body_text = (
            f"📋 Order Summary:\n{order_details}\n\n"
            "Please confirm your order or cancel if you'd like to make changes."
        )
        return self.send_button_message(
            to,
            '🛒 Confirm Your Order',
            body_text,
            f"Thank you for ordering with {MenuDefaults.RESTAURANT_NAME}!",
            buttons
        )

    def verify_webhook(self, mode: str, token: str, challenge: str) -> Optional[str]:
        """Verify webhook for WhatsApp subscription"""
        logger.info("🔐 Webhook verification attempt")
        logger.info(f"Mode: {mode}")

        if mode == 'subscribe' and self.verify_token and token == self.verify_token:
            logger.info("✅ Webhook verified successfully!")
            return challenge

        logger.warning("❌ Webhook verification failed!")
        return None

    @staticmethod
    def normalize_message(message: Dict, value: Dict) -> Optional[IncomingMessage]:
        """Convert a Cloud API message object into an IncomingMessage, None if unsupported"""
        user_id = message.get('from')
        if not user_id:
            return None

        contacts = value.get('contacts') or [{}]
        user_name = (contacts[0].get('profile') or {}).get('name') or 'Unknown'
        message_type = message.get('type') or MessageTypes.TEXT

        incoming = IncomingMessage(
            user_id=user_id,
            platform=Platforms.WHATSAPP,
            type=message_type,
            message_id=message.get('id'),
            user_name=user_name,
        )

        if message_type == MessageTypes.TEXT:
            incoming.text = (message.get('text') or {}).get('body', '')
        elif message_type == MessageTypes.INTERACTIVE:
            interactive = message.get('interactive') or {}
            reply_type = interactive.get('type')
            if reply_type in (MessageTypes.BUTTON_REPLY, MessageTypes.LIST_REPLY):
                incoming.interactive = interactive
                incoming.text = (interactive.get(reply_type) or {}).get('title', '')

        if not incoming.text and not incoming.interactive:
            return None
        return incoming

    def get_webhook_data(self, payload: Dict) -> List[IncomingMessage]:
        """Extract supported messages from a webhook payload, in delivery order"""
        messages = []

        for entry in payload.get('entry') or []:
            for change in entry.get('changes') or []:
                value = change.get('value') or {}

                # Ignore deliveries addressed to another phone number id
                incoming_phone_id = (value.get('metadata') or {}).get('phone_number_id')
                if self.phone_number_id and incoming_phone_id and incoming_phone_id != self.phone_number_id:
                    logger.info(f"Ignoring webhook for phone_number_id {incoming_phone_id}")
                    continue

                for message in value.get('messages') or []:
                    incoming = self.normalize_message(message, value)
                    if incoming is None:
                        logger.info(f"⏭️ Skipping unsupported message type: {message.get('type')}")
                        continue
                    messages.append(incoming)

        return messages
