import os
import logging
from typing import Dict, List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() in ('1', 'true', 'yes')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ {name}={raw!r} is not an integer, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️ {name}={raw!r} is not a number, using {default}")
        return default


class BotConfig:
    """Centralized configuration management for the ordering bot.

    Every credential is optional: a missing value is reported and the feature
    that needs it is disabled, but the process still starts.
    """

    def __init__(self):
        """Initialize configuration from environment variables"""
        # Webhook and WhatsApp Cloud API credentials
        self.verify_token = os.getenv('VERIFY_TOKEN')
        self.whatsapp_token = os.getenv('WHATSAPP_ACCESS_TOKEN') or os.getenv('WHATSAPP_TOKEN')
        self.phone_number_id = (os.getenv('WHATSAPP_PHONE_NUMBER_ID') or os.getenv('PHONE_NUMBER_ID') or '').lstrip('+') or None
        self.whatsapp_api_version = os.getenv('WHATSAPP_API_VERSION', 'v20.0')
        self.whatsapp_timeout = _env_float('WHATSAPP_TIMEOUT_SECONDS', 15.0)
        self.whatsapp_max_retries = _env_int('WHATSAPP_MAX_RETRIES', 2)

        # Messenger (page) credentials, used only by the stub handler
        self.messenger_page_token = os.getenv('MESSENGER_PAGE_TOKEN')

        # LLM configuration (any OpenAI-compatible endpoint)
        self.openai_api_key = os.getenv('OPENAI_API_KEY') or os.getenv('LLM_API_KEY')
        self.llm_base_url = os.getenv('LLM_BASE_URL') or None
        self.llm_model = os.getenv('LLM_MODEL', 'gpt-4o-mini')
        self.llm_temperature = _env_float('LLM_TEMPERATURE', 0.1)
        self.llm_timeout = _env_float('LLM_TIMEOUT_SECONDS', 30.0)
        self.ai_enabled = bool(self.openai_api_key)

        # Database configuration
        self.db_path = os.getenv('DATABASE_PATH', 'momo_house.db')
        self.seed_menu = _env_bool('SEED_MENU', 'true')

        # Conversation context persistence
        self.context_ttl_seconds = _env_int('CONTEXT_TTL_SECONDS', 86400)
        self.context_cleanup_interval = _env_int('CONTEXT_CLEANUP_INTERVAL_SECONDS', 1800)

        # Server configuration
        self.port = _env_int('PORT', 5000)
        self.host = os.getenv('HOST', '0.0.0.0')
        self.debug_mode = os.getenv('ENVIRONMENT', 'development') == 'development'
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.log_file = os.getenv('LOG_FILE') or None

    def print_safe_debug_info(self):
        """Print safe debug information without exposing credentials"""
        logger.info("=" * 50)
        logger.info("🔧 MOMO HOUSE BOT CONFIGURATION")
        logger.info("=" * 50)
        logger.info(f"VERIFY_TOKEN: {'✅ Loaded' if self.verify_token else '❌ Missing'}")
        logger.info(f"WHATSAPP_ACCESS_TOKEN: {'✅ Loaded' if self.whatsapp_token else '❌ Missing'}")
        logger.info(f"WHATSAPP_PHONE_NUMBER_ID: {self.phone_number_id or '❌ Missing'}")
        logger.info(f"WHATSAPP_API_VERSION: {self.whatsapp_api_version}")
        logger.info(f"OPENAI_API_KEY: {'✅ Loaded' if self.openai_api_key else 'ℹ️ Missing (Optional)'}")
        logger.info(f"LLM_MODEL: {self.llm_model}")
        logger.info(f"LLM_BASE_URL: {self.llm_base_url or 'default'}")
        logger.info(f"AI_ENABLED: {'✅ Yes' if self.ai_enabled else '❌ No'}")
        logger.info(f"DATABASE_PATH: {self.db_path}")
        logger.info(f"CONTEXT_TTL_SECONDS: {self.context_ttl_seconds}")
        logger.info(f"ENVIRONMENT: {'development' if self.debug_mode else 'production'}")
        logger.info(f"PORT: {self.port}")
        logger.info("=" * 50)

    def get_missing_settings(self) -> List[str]:
        """Names of settings whose absence disables a feature"""
        missing = []
        if not self.verify_token:
            missing.append('VERIFY_TOKEN')
        if not self.whatsapp_token:
            missing.append('WHATSAPP_ACCESS_TOKEN')
        if not self.phone_number_id:
            missing.append('WHATSAPP_PHONE_NUMBER_ID')
        if not self.openai_api_key:
            missing.append('OPENAI_API_KEY')
        return missing

    def validate_config(self) -> bool:
        """Report configuration problems; returns True when every feature is enabled"""
        missing = self.get_missing_settings()
        problems = []

        if not 1 <= self.port <= 65535:
            problems.append(f"Invalid port number: {self.port}")
        if not 0 <= self.llm_temperature <= 2:
            problems.append(f"LLM_TEMPERATURE out of range: {self.llm_temperature}")
        if self.phone_number_id and not self.phone_number_id.isdigit():
            problems.append("WHATSAPP_PHONE_NUMBER_ID should be numeric")

        for name in missing:
            logger.warning(f"⚠️ {name} not set - related features are disabled")
        for problem in problems:
            logger.warning(f"⚠️ Configuration issue: {problem}")

        if not missing and not problems:
            logger.info("✅ Configuration validated successfully")
        return not missing and not problems

    def get_config_dict(self) -> Dict:
        """Return configuration as dictionary"""
        return {
            'verify_token': self.verify_token,
            'whatsapp_token': self.whatsapp_token,
            'phone_number_id': self.phone_number_id,
            'whatsapp_api_version': self.whatsapp_api_version,
            'whatsapp_timeout': self.whatsapp_timeout,
            'whatsapp_max_retries': self.whatsapp_max_retries,
            'messenger_page_token': self.messenger_page_token,
            'openai_api_key': self.openai_api_key,
            'llm_base_url': self.llm_base_url,
            'llm_model': self.llm_model,
            'llm_temperature': self.llm_temperature,
            'llm_timeout': self.llm_timeout,
            'ai_enabled': self.ai_enabled,
            'db_path': self.db_path,
            'seed_menu': self.seed_menu,
            'context_ttl_seconds': self.context_ttl_seconds,
            'context_cleanup_interval': self.context_cleanup_interval,
            'port': self.port,
            'host': self.host,
            'debug_mode': self.debug_mode,
            'log_level': self.log_level,
            'log_file': self.log_file,
        }

    def get_safe_config(self) -> Dict:
        """Get configuration with sensitive data hidden"""
        safe_config = self.get_config_dict().copy()

        for key in ('whatsapp_token', 'openai_api_key', 'messenger_page_token', 'verify_token'):
            if safe_config.get(key):
                safe_config[key] = safe_config[key][:6] + "..."

        return safe_config
