# database/manager.py
"""
SQLite data-access layer: parameterized queries over foods, orders and order_items.

Nothing here formats messages or talks to the LLM. Money is never accepted as a
parameter: every total is computed from the stored food price.
"""
import sqlite3
import json
import logging
import threading
import time
from typing import Dict, Iterable, List, Optional, Tuple
from contextlib import contextmanager

from .models import DatabaseSchema, FoodItem, Order, OrderItem, OrderHistoryEntry
from utils.constants import OrderStatus

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when a storage operation fails"""


class RestaurantDatabase:
    """Database manager for the menu, orders and persisted conversation contexts"""

    FOOD_COLUMNS = "id, name, description, price, category, image_url, available"

    def __init__(self, db_path: str = "momo_house.db", seed_menu: bool = True):
        self.db_path = db_path
        self.seed_menu = seed_menu
        self._db_lock = threading.RLock()

        # Initialize database
        self.init_database()

        logger.info(f"✅ Database manager initialized ({db_path})")

    @contextmanager
    def get_db_connection(self, timeout: float = 30.0):
        """Get database connection, rolling back on failure"""
        conn = None
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=timeout,
                check_same_thread=False  # Allow cross-thread usage
            )
            conn.row_factory = sqlite3.Row

            # Configure for better concurrency
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA busy_timeout=30000")

            yield conn

        except sqlite3.Error as e:
            logger.error(f"❌ Database error: {e}")
            if conn:
                conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            if conn:
                conn.close()

    def init_database(self) -> Dict[str, int]:
        """Create tables and indexes, seed the menu when empty, return table counts"""
        with self._db_lock:
            with self.get_db_connection(timeout=60.0) as conn:
                for table_name, sql in DatabaseSchema.get_table_definitions().items():
                    conn.execute(sql)
                    logger.debug(f"✅ Created/verified table: {table_name}")

                for sql in DatabaseSchema.get_index_definitions():
                    conn.execute(sql)

                conn.commit()

                if self.seed_menu:
                    self._populate_initial_data(conn)

        return self.get_database_stats()

    def _populate_initial_data(self, conn):
        """Insert the seed menu if the foods table is empty"""
        count = conn.execute("SELECT COUNT(*) FROM foods").fetchone()[0]
        if count:
            return

        logger.info("📝 Populating initial menu data...")
        conn.executemany("""
            INSERT INTO foods (name, description, price, category, image_url, available)
            VALUES (?, ?, ?, ?, ?, 1)
        """, DatabaseSchema.get_initial_menu_data())
        conn.commit()
        logger.info("✅ Initial menu data populated successfully")

    # Menu Operations (read-only)
    def get_categories(self) -> List[str]:
        """Distinct categories with at least one available item"""
        with self.get_db_connection() as conn:
            cursor = conn.execute(
                "SELECT DISTINCT category FROM foods WHERE available = 1 ORDER BY category"
            )
            return [row['category'] for row in cursor.fetchall()]

    def get_category_items(self, category: str) -> List[FoodItem]:
        """Available items of one category, ordered by name"""
        with self.get_db_connection() as conn:
            cursor = conn.execute(f"""
                SELECT {self.FOOD_COLUMNS}
                FROM foods
                WHERE category = ? AND available = 1
                ORDER BY name, id
            """, (category,))
            return [FoodItem.from_row(row) for row in cursor.fetchall()]

    def get_food_by_id(self, food_id: int) -> Optional[FoodItem]:
        """Get an available item by ID"""
        with self.get_db_connection() as conn:
            row = conn.execute(f"""
                SELECT {self.FOOD_COLUMNS}
                FROM foods
                WHERE id = ? AND available = 1
            """, (food_id,)).fetchone()
            return FoodItem.from_row(row) if row else None

    def get_food_by_name(self, name: str) -> List[FoodItem]:
        """Case-insensitive substring search over available item names"""
        if not name or not name.strip():
            return []
        with self.get_db_connection() as conn:
            cursor = conn.execute(f"""
                SELECT {self.FOOD_COLUMNS}
                FROM foods
                WHERE LOWER(name) LIKE LOWER(?) AND available = 1
                ORDER BY name, id
            """, (f"%{name.strip()}%",))
            return [FoodItem.from_row(row) for row in cursor.fetchall()]

    # Order Operations
    def create_order(self, user_id: str) -> Order:
        """Create an empty order in 'created' status"""
        with self.get_db_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO orders (user_id, status) VALUES (?, ?)",
                (user_id, OrderStatus.CREATED)
            )
            conn.commit()
            order_id = cursor.lastrowid

        logger.info(f"🧾 Created order {order_id} for {user_id}")
        return self.get_order(order_id)

    def create_order_with_items(self, user_id: str, lines: Iterable[Tuple[int, int]]) -> Order:
        """Create an order and its items in one transaction.

        ``lines`` are ``(food_id, quantity)`` pairs; repeated foods are merged.
        """
        merged: Dict[int, int] = {}
        for food_id, quantity in lines:
            merged[food_id] = merged.get(food_id, 0) + quantity

        with self._db_lock:
            with self.get_db_connection() as conn:
                conn.execute("BEGIN IMMEDIATE TRANSACTION")
                cursor = conn.execute(
                    "INSERT INTO orders (user_id, status) VALUES (?, ?)",
                    (user_id, OrderStatus.CREATED)
                )
                order_id = cursor.lastrowid
                for food_id, quantity in merged.items():
                    self._upsert_item(conn, order_id, food_id, quantity)
                conn.commit()

        logger.info(f"🧾 Created order {order_id} for {user_id} with {len(merged)} line(s)")
        return self.get_order(order_id)

    def get_order(self, order_id: int) -> Optional[Order]:
        with self.get_db_connection() as conn:
            row = conn.execute("""
                SELECT id, user_id, status, payment_method, created_at, updated_at
                FROM orders WHERE id = ?
            """, (order_id,)).fetchone()
            return Order.from_row(row) if row else None

    def get_active_order(self, user_id: str) -> Optional[Order]:
        """Most recent order that is not completed or cancelled"""
        with self.get_db_connection() as conn:
            row = conn.execute("""
                SELECT id, user_id, status, payment_method, created_at, updated_at
                FROM orders
                WHERE user_id = ? AND status NOT IN (?, ?)
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            """, (user_id, *OrderStatus.CLOSED)).fetchone()
            return Order.from_row(row) if row else None

    @staticmethod
    def _upsert_item(conn, order_id: int, food_id: int, quantity: int) -> int:
        existing = conn.execute(
            "SELECT id, quantity FROM order_items WHERE order_id = ? AND food_id = ?",
            (order_id, food_id)
        ).fetchone()

        if existing:
            conn.execute(
                "UPDATE order_items SET quantity = ? WHERE id = ?",
                (existing['quantity'] + quantity, existing['id'])
            )
            return existing['id']

        cursor = conn.execute(
            "INSERT INTO order_items (order_id, food_id, quantity) VALUES (?, ?, ?)",
            (order_id, food_id, quantity)
        )
        return cursor.lastrowid

    def add_item(self, order_id: int, food_id: int, quantity: int = 1) -> OrderItem:
        """Add a food to an order, summing quantity if it is already there"""
        with self._db_lock:
            with self.get_db_connection() as conn:
                conn.execute("BEGIN IMMEDIATE TRANSACTION")
                item_id = self._upsert_item(conn, order_id, food_id, quantity)
                conn.commit()
                row = conn.execute(
                    "SELECT id, order_id, food_id, quantity FROM order_items WHERE id = ?",
                    (item_id,)
                ).fetchone()

        return OrderItem(id=row['id'], order_id=row['order_id'],
                         food_id=row['food_id'], quantity=row['quantity'])

    def remove_item(self, order_id: int, food_id: int) -> bool:
        with self.get_db_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM order_items WHERE order_id = ? AND food_id = ?",
                (order_id, food_id)
            )
            conn.commit()
            return cursor.rowcount > 0

    def get_order_items(self, order_id: int) -> List[OrderItem]:
        """Order lines joined with the current food name and price"""
        with self.get_db_connection() as conn:
            cursor = conn.execute("""
                SELECT oi.id, oi.order_id, oi.quantity, f.id AS food_id,
                       f.name, f.price, f.category
                FROM order_items oi
                JOIN foods f ON oi.food_id = f.id
                WHERE oi.order_id = ?
                ORDER BY f.name
            """, (order_id,))
            return [
                OrderItem(id=row['id'], order_id=row['order_id'], food_id=row['food_id'],
                          quantity=row['quantity'], name=row['name'],
                          price=float(row['price']), category=row['category'])
                for row in cursor.fetchall()
            ]

    def get_order_total(self, order_id: int) -> float:
        with self.get_db_connection() as conn:
            row = conn.execute("""
                SELECT COALESCE(SUM(oi.quantity * f.price), 0) AS total
                FROM order_items oi
                JOIN foods f ON oi.food_id = f.id
                WHERE oi.order_id = ?
            """, (order_id,)).fetchone()
            return float(row['total'] or 0)

    def update_order_status(self, order_id: int, status: str) -> Optional[Order]:
        if status not in OrderStatus.ALL:
            raise ValueError(f"Unknown order status: {status}")
        with self.get_db_connection() as conn:
            conn.execute(
                "UPDATE orders SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status, order_id)
            )
            conn.commit()
        return self.get_order(order_id)

    def select_payment(self, order_id: int, method: str) -> Optional[Order]:
        """Record the payment method and mark the order confirmed"""
        with self.get_db_connection() as conn:
            conn.execute("""
                UPDATE orders
                SET payment_method = ?, status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
            """, (method, OrderStatus.CONFIRMED, order_id))
            conn.commit()
        return self.get_order(order_id)

    def cancel_order(self, order_id: int) -> Optional[Order]:
        return self.update_order_status(order_id, OrderStatus.CANCELLED)

    def get_order_history(self, user_id: str, limit: int = 5) -> List[OrderHistoryEntry]:
        """Newest orders first with line count and total"""
        with self.get_db_connection() as conn:
            cursor = conn.execute("""
                SELECT o.id, o.status, o.payment_method, o.created_at,
                       COUNT(oi.id) AS item_count,
                       COALESCE(SUM(oi.quantity * f.price), 0) AS total
                FROM orders o
                LEFT JOIN order_items oi ON o.id = oi.order_id
                LEFT JOIN foods f ON oi.food_id = f.id
                WHERE o.user_id = ?
                GROUP BY o.id
                ORDER BY o.created_at DESC, o.id DESC
                LIMIT ?
            """, (user_id, limit))
            return [
                OrderHistoryEntry(
                    id=row['id'], status=row['status'], payment_method=row['payment_method'],
                    created_at=row['created_at'], item_count=row['item_count'],
                    total=float(row['total'] or 0)
                )
                for row in cursor.fetchall()
            ]

    # Conversation context persistence
    def load_context(self, user_id: str,
                     max_age_seconds: Optional[float] = None) -> Optional[Tuple[Dict, float]]:
        """Stored (context dict, updated_at), or None when absent or older than max_age_seconds"""
        with self.get_db_connection() as conn:
            row = conn.execute(
                "SELECT context_json, updated_at FROM conversation_contexts WHERE user_id = ?",
                (user_id,)
            ).fetchone()

        if not row:
            return None
        if max_age_seconds is not None and time.time() - row['updated_at'] > max_age_seconds:
            logger.info(f"⏰ Stored context expired for {user_id}")
            return None
        return json.loads(row['context_json']), row['updated_at']

    def save_context(self, user_id: str, context: Dict) -> None:
        with self.get_db_connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO conversation_contexts (user_id, context_json, updated_at)
                VALUES (?, ?, ?)
            """, (user_id, json.dumps(context), time.time()))
            conn.commit()

    def delete_expired_contexts(self, max_age_seconds: float) -> int:
        cutoff = time.time() - max_age_seconds
        with self.get_db_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM conversation_contexts WHERE updated_at < ?", (cutoff,)
            )
            conn.commit()
            return cursor.rowcount

    # Health
    def ping(self) -> bool:
        """Trivial connectivity probe"""
        try:
            with self.get_db_connection(timeout=5.0) as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except DatabaseError:
            return False

    def get_database_stats(self) -> Dict[str, int]:
        with self.get_db_connection() as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in ('foods', 'orders', 'order_items', 'conversation_contexts')
            }
