"""Utility functions module"""

from .constants import (
    ConversationStages, OrderStatus, PaymentMethods, ToolNames, ButtonIds,
    MessageTypes, Platforms, APIConfig, MenuDefaults, Messages,
    ORDER_HISTORY_KEYWORDS
)
from .helpers import (
    format_price, truncate_text, truncate_message, chunk_list, cart_total,
    cart_item_count, generate_fallback_order_id, safe_int, clean_text_input,
    title_case_category
)
from .logging import (
    ColoredFormatter, setup_logging, install_global_exception_logging, log_message_flow
)

__all__ = [
    # Constants
    'ConversationStages', 'OrderStatus', 'PaymentMethods', 'ToolNames', 'ButtonIds',
    'MessageTypes', 'Platforms', 'APIConfig', 'MenuDefaults', 'Messages',
    'ORDER_HISTORY_KEYWORDS',

    # Helpers
    'format_price', 'truncate_text', 'truncate_message', 'chunk_list', 'cart_total',
    'cart_item_count', 'generate_fallback_order_id', 'safe_int', 'clean_text_input',
    'title_case_category',

    # Logging
    'ColoredFormatter', 'setup_logging', 'install_global_exception_logging', 'log_message_flow'
]
