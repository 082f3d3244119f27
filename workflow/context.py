# workflow/context.py
"""
Per-user conversation context and the store that keeps it between messages
"""
import copy
import logging
import threading
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from utils.constants import ConversationStages
from utils.helpers import cart_total, cart_item_count, safe_int

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    """One cart row; price always comes from the food record"""
    food_id: int
    name: str
    price: float
    quantity: int = 1

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity

    @classmethod
    def from_dict(cls, data: Dict) -> 'CartLine':
        return cls(
            food_id=safe_int(data.get('food_id', data.get('foodId'))),
            name=data.get('name', ''),
            price=float(data.get('price') or 0),
            quantity=safe_int(data.get('quantity'), 1) or 1,
        )


@dataclass
class ConversationContext:
    """Where the user is in the ordering flow and what they have picked"""
    stage: str = ConversationStages.INITIAL
    cart: List[CartLine] = field(default_factory=list)
    current_category: Optional[str] = None
    order_id: Optional[Any] = None
    payment_method: Optional[str] = None
    last_action: Optional[str] = None
    last_added_item: Optional[str] = None
    pending_order: Optional[Dict] = None

    @property
    def cart_total(self) -> float:
        return cart_total(self.cart)

    @property
    def cart_item_count(self) -> int:
        return cart_item_count(self.cart)

    def find_line(self, food_id: int) -> Optional[CartLine]:
        for line in self.cart:
            if line.food_id == food_id:
                return line
        return None

    def copy(self) -> 'ConversationContext':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'ConversationContext':
        if not data:
            return cls()

        stage = data.get('stage') or ConversationStages.INITIAL
        if stage not in ConversationStages.ALL:
            logger.warning(f"⚠️ Unknown stored stage '{stage}', resetting to initial")
            stage = ConversationStages.INITIAL

        return cls(
            stage=stage,
            cart=[CartLine.from_dict(line) for line in data.get('cart') or []],
            current_category=data.get('current_category'),
            order_id=data.get('order_id'),
            payment_method=data.get('payment_method'),
            last_action=data.get('last_action'),
            last_added_item=data.get('last_added_item'),
            pending_order=data.get('pending_order'),
        )


class ContextStore:
    """get/set conversation contexts by user id.

    Contexts live in an in-memory cache backed by the ``conversation_contexts``
    table, so a restart keeps them. Entries idle longer than ``ttl_seconds``
    read back as the default context.
    """

    def __init__(self, database_manager=None, ttl_seconds: Optional[float] = 86400):
        self.db = database_manager
        self.ttl_seconds = ttl_seconds
        self._cache: Dict[str, Tuple[Dict, float]] = {}
        self._cache_lock = threading.RLock()

    def _is_expired(self, updated_at: float) -> bool:
        return self.ttl_seconds is not None and time.time() - updated_at > self.ttl_seconds

    def get(self, user_id: str) -> ConversationContext:
        """Stored context for the user, or a fresh default"""
        with self._cache_lock:
            cached = self._cache.get(user_id)
            if cached:
                data, updated_at = cached
                if not self._is_expired(updated_at):
                    return ConversationContext.from_dict(data)
                logger.info(f"⏰ Context expired for {user_id}")
                del self._cache[user_id]

        if self.db is not None:
            try:
                stored = self.db.load_context(user_id, self.ttl_seconds)
            except Exception as e:
                logger.error(f"❌ Error loading context for {user_id}: {e}")
                stored = None
            if stored is not None:
                data, updated_at = stored
                with self._cache_lock:
                    self._cache[user_id] = (data, updated_at)
                return ConversationContext.from_dict(data)

        return ConversationContext()

    def set(self, user_id: str, context: ConversationContext) -> None:
        """Replace the stored context wholesale"""
        data = context.to_dict()
        with self._cache_lock:
            self._cache[user_id] = (data, time.time())

        if self.db is not None:
            try:
                self.db.save_context(user_id, data)
            except Exception as e:
                # The cached copy still serves this process
                logger.error(f"❌ Error persisting context for {user_id}: {e}")

        logger.debug(f"💾 Context saved for {user_id}: {context.stage}")

    def cleanup_expired(self) -> int:
        """Drop expired contexts from the cache and the database"""
        if self.ttl_seconds is None:
            return 0

        with self._cache_lock:
            expired = [user_id for user_id, (_, updated_at) in self._cache.items()
                       if self._is_expired(updated_at)]
            for user_id in expired:
                del self._cache[user_id]

        removed = len(expired)
        if self.db is not None:
            try:
                removed = max(removed, self.db.delete_expired_contexts(self.ttl_seconds))
            except Exception as e:
                logger.error(f"❌ Error cleaning up stored contexts: {e}")

        if removed:
            logger.info(f"🧹 Cleaned up {removed} expired contexts")
        return removed

    def get_stats(self) -> Dict:
        with self._cache_lock:
            return {
                'cached_contexts': len(self._cache),
                'context_ttl_seconds': self.ttl_seconds,
            }
