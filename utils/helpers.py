"""Helper utility functions"""

import time
import logging
from typing import Any, Iterable, List

from .constants import APIConfig, MenuDefaults

logger = logging.getLogger(__name__)


def format_price(price: Any, currency: str = MenuDefaults.CURRENCY) -> str:
    """Format price with currency, dropping the fraction for whole amounts"""
    amount = float(price or 0)
    if amount.is_integer():
        return f"{currency}{int(amount)}"
    return f"{currency}{amount:.2f}"


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to a platform field limit"""
    if not text:
        return ""
    return text[:max_length]


def truncate_message(message: str, max_length: int = APIConfig.MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to WhatsApp limits"""
    if len(message) <= max_length:
        return message

    return message[:max_length - 20] + "... (truncated)"


def chunk_list(items: List, size: int) -> List[List]:
    """Split a list into consecutive chunks, preserving order"""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


def cart_total(lines: Iterable) -> float:
    """Sum of price × quantity over cart lines"""
    return sum(line.price * line.quantity for line in lines)


def cart_item_count(lines: Iterable) -> int:
    """Total number of units in the cart"""
    return sum(line.quantity for line in lines)


def generate_fallback_order_id() -> str:
    """Synthetic order reference used when the database is unreachable"""
    return f"MH{str(int(time.time() * 1000))[-6:]}"


def safe_int(value: Any, default: int = 0) -> int:
    """Safely convert value to integer"""
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def clean_text_input(text: str) -> str:
    """Clean and sanitize text input"""
    if not text:
        return ""

    # Remove excessive whitespace
    text = ' '.join(text.split())

    # Limit length
    if len(text) > 1000:
        text = text[:1000]

    return text.strip()


def title_case_category(category: str) -> str:
    """'momos' -> 'Momos'"""
    if not category:
        return ""
    return category[0].upper() + category[1:]
