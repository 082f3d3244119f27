import logging
from typing import Any, Dict, Optional

from ai.processor import AIProcessor
from database.manager import DatabaseError, RestaurantDatabase
from utils.constants import Messages, MessageTypes, Platforms
from utils.helpers import clean_text_input
from utils.logging import log_message_flow
from utils.thread_safe_session import ThreadSafeSessionManager, session_manager
from whatsapp.client import IncomingMessage, WhatsAppClient
from .context import ContextStore
from .handlers import ToolHandlers
from .router import IntentRouter, parse_interactive_reply

logger = logging.getLogger(__name__)


class OrderingWorkflow:
    """Main workflow orchestrator: context in, route, context out"""

    def __init__(self, config: Dict[str, Any], database_manager: RestaurantDatabase = None,
                 whatsapp_client: WhatsAppClient = None, classifier: AIProcessor = None,
                 sessions: ThreadSafeSessionManager = None):
        """Initialize the complete workflow system; collaborators may be injected"""
        self.config = config
        self.db = database_manager
        self.whatsapp = whatsapp_client
        self.ai = classifier
        self.sessions = sessions or session_manager

        self._init_components()

        logger.info("✅ Ordering workflow initialized successfully")

    def _init_components(self):
        """Initialize all workflow components"""
        try:
            if self.db is None:
                self.db = RestaurantDatabase(
                    self.config.get('db_path', 'momo_house.db'),
                    seed_menu=self.config.get('seed_menu', True)
                )
            logger.info("✅ Database manager initialized")

            if self.ai is None:
                self.ai = AIProcessor(self.config.get('openai_api_key'), {
                    'model': self.config.get('llm_model'),
                    'base_url': self.config.get('llm_base_url'),
                    'temperature': self.config.get('llm_temperature', 0.1),
                    'timeout': self.config.get('llm_timeout', 30.0),
                })
            logger.info("✅ AI processor initialized")

            if self.whatsapp is None:
                self.whatsapp = WhatsAppClient(self.config)
            logger.info("✅ WhatsApp client initialized")

            self.contexts = ContextStore(self.db, self.config.get('context_ttl_seconds', 86400))
            self.handlers = ToolHandlers(self.db, self.whatsapp)
            self.router = IntentRouter(self.handlers, self.ai)
            logger.info("✅ Router and handlers initialized")

        except Exception as e:
            logger.error(f"❌ Error initializing components: {str(e)}")
            raise

    def process_webhook(self, payload: Dict) -> int:
        """Handle every supported message of one delivery in array order"""
        messages = self.whatsapp.get_webhook_data(payload)
        for message in messages:
            self.handle_incoming_message(message)
        return len(messages)

    def handle_incoming_message(self, message: IncomingMessage) -> Dict[str, Any]:
        """Main entry point for one normalized message; never raises"""
        user_id = message.user_id

        if self.sessions.is_message_duplicate(user_id, message.message_id):
            return {'status': 'duplicate', 'user_id': user_id}

        logger.info(f"📨 Processing {message.type} message from {user_id} ({message.user_name})")

        try:
            with self.sessions.user_session_lock(user_id):
                context = self.contexts.get(user_id)
                interactive_reply = None
                if message.type == MessageTypes.INTERACTIVE:
                    interactive_reply = parse_interactive_reply(message.interactive)

                result = self.router.route(
                    clean_text_input(message.text), context, user_id, interactive_reply
                )
                self.contexts.set(user_id, result.context)

                if result.reply:
                    self.whatsapp.send_text_message(user_id, result.reply)

                log_message_flow(user_id, context.stage, result.context.stage)
                return {'status': 'processed', 'user_id': user_id, 'stage': result.context.stage}

        except TimeoutError as e:
            logger.warning(f"⏳ {e}")
            self.whatsapp.send_text_message(user_id, Messages.SERVICE_BUSY)
            return {'status': 'busy', 'user_id': user_id}

        except Exception as e:
            logger.exception(f"❌ Error processing message from {user_id}: {e}")
            log_message_flow(user_id, 'unknown', 'error', success=False)
            self.whatsapp.send_text_message(user_id, Messages.SYSTEM_ERROR)
            return {'status': 'error', 'user_id': user_id, 'error': str(e)}

    def simulate_message(self, user_id: str, text: str = '', button_id: Optional[str] = None,
                         user_name: str = "Test User") -> Dict[str, Any]:
        """Run a text or button id through the pipeline as if WhatsApp had delivered it"""
        if button_id:
            message = IncomingMessage(
                user_id=user_id, platform=Platforms.WHATSAPP, type=MessageTypes.INTERACTIVE,
                text=text or button_id, user_name=user_name,
                interactive={
                    'type': MessageTypes.BUTTON_REPLY,
                    MessageTypes.BUTTON_REPLY: {'id': button_id, 'title': text or button_id}
                }
            )
        else:
            message = IncomingMessage(
                user_id=user_id, platform=Platforms.WHATSAPP, type=MessageTypes.TEXT,
                text=text, user_name=user_name
            )

        result = self.handle_incoming_message(message)
        result['context'] = self.contexts.get(user_id).to_dict()
        return result

    def cleanup_expired_contexts(self) -> int:
        return self.contexts.cleanup_expired()

    def health_check(self) -> Dict[str, Any]:
        """Database connectivity for the /health endpoint"""
        try:
            connected = self.db.ping()
        except DatabaseError as e:
            logger.error(f"❌ Health check failed: {e}")
            connected = False

        if connected:
            return {'status': 'ok', 'database': 'connected'}
        return {'status': 'error', 'database': 'disconnected'}

    def get_status(self) -> Dict[str, Any]:
        """Component status for the index page"""
        return {
            'whatsapp_configured': self.whatsapp.has_credentials(),
            'ai_available': self.ai.is_available(),
            'contexts': self.contexts.get_stats(),
            'sessions': self.sessions.get_session_stats(),
        }

    def initialize_database(self) -> Dict[str, int]:
        return self.db.init_database()

