"""
Database Models and Schema Definitions for the Momo House ordering bot
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass


@dataclass
class FoodItem:
    """Menu item data model (read-only reference data)"""
    id: int
    name: str
    price: float
    category: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    available: bool = True

    @classmethod
    def from_row(cls, row) -> 'FoodItem':
        return cls(
            id=row['id'],
            name=row['name'],
            price=float(row['price']),
            category=row['category'],
            description=row['description'],
            image_url=row['image_url'],
            available=bool(row['available']),
        )


@dataclass
class Order:
    """Order data model"""
    id: int
    user_id: str
    status: str
    payment_method: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> 'Order':
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            status=row['status'],
            payment_method=row['payment_method'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )


@dataclass
class OrderItem:
    """Order line data model"""
    id: int
    order_id: int
    food_id: int
    quantity: int
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None

    @property
    def subtotal(self) -> float:
        return (self.price or 0) * self.quantity


@dataclass
class OrderHistoryEntry:
    """One row of the order history digest"""
    id: int
    status: str
    payment_method: Optional[str]
    created_at: str
    item_count: int
    total: float


class DatabaseSchema:
    """Database schema definitions"""

    @staticmethod
    def get_table_definitions() -> Dict[str, str]:
        """Get all table creation SQL statements"""
        return {
            'foods': """
                CREATE TABLE IF NOT EXISTS foods (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT,
                    price REAL NOT NULL,
                    category TEXT NOT NULL,
                    image_url TEXT,
                    available BOOLEAN DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """,

            'orders': """
                CREATE TABLE IF NOT EXISTS orders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'created',
                    payment_method TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """,

            'order_items': """
                CREATE TABLE IF NOT EXISTS order_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id INTEGER NOT NULL,
                    food_id INTEGER NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 1,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (order_id) REFERENCES orders (id) ON DELETE CASCADE,
                    FOREIGN KEY (food_id) REFERENCES foods (id) ON DELETE CASCADE
                )
            """,

            'conversation_contexts': """
                CREATE TABLE IF NOT EXISTS conversation_contexts (
                    user_id TEXT PRIMARY KEY,
                    context_json TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """,
        }

    @staticmethod
    def get_index_definitions() -> List[str]:
        """Indexes for the lookup paths used by the handlers"""
        return [
            "CREATE INDEX IF NOT EXISTS idx_foods_category ON foods(category)",
            "CREATE INDEX IF NOT EXISTS idx_foods_available ON foods(available)",
            "CREATE INDEX IF NOT EXISTS idx_orders_user_id ON orders(user_id)",
            "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)",
            "CREATE INDEX IF NOT EXISTS idx_order_items_order_id ON order_items(order_id)",
            "CREATE INDEX IF NOT EXISTS idx_contexts_updated_at ON conversation_contexts(updated_at)",
        ]

    @staticmethod
    def get_initial_menu_data() -> List[Tuple]:
        """Seed menu: (name, description, price, category, image_url)"""
        return [
            ('Steamed Veg Momo', 'Fresh vegetables & herbs wrapped in soft dough, steamed to perfection', 180.00, 'momos', 'https://example.com/images/steamed-veg-momo.jpg'),
            ('Steamed Chicken Momo', 'Juicy chicken filling in soft steamed dumplings', 220.00, 'momos', 'https://example.com/images/steamed-chicken-momo.jpg'),
            ('Fried Veg Momo', 'Crispy fried vegetable momos with crunchy exterior', 200.00, 'momos', 'https://example.com/images/fried-veg-momo.jpg'),
            ('Fried Chicken Momo', 'Golden fried chicken momos, crispy and delicious', 240.00, 'momos', 'https://example.com/images/fried-chicken-momo.jpg'),
            ('Tandoori Momo', 'Momos grilled in tandoor with special spices', 260.00, 'momos', 'https://example.com/images/tandoori-momo.jpg'),
            ('Jhol Momo', 'Steamed momos served in spicy soup gravy', 250.00, 'momos', 'https://example.com/images/jhol-momo.jpg'),
            ('Veg Thukpa', 'Traditional Tibetan noodle soup with vegetables', 200.00, 'noodles', 'https://example.com/images/veg-thukpa.jpg'),
            ('Chicken Thukpa', 'Hearty noodle soup with tender chicken pieces', 250.00, 'noodles', 'https://example.com/images/chicken-thukpa.jpg'),
            ('Veg Chowmein', 'Stir-fried noodles with fresh vegetables', 180.00, 'noodles', 'https://example.com/images/veg-chowmein.jpg'),
            ('Chicken Chowmein', 'Stir-fried noodles with chicken and vegetables', 220.00, 'noodles', 'https://example.com/images/chicken-chowmein.jpg'),
            ('Veg Chopsuey', 'Crispy noodles with vegetable gravy', 220.00, 'noodles', 'https://example.com/images/veg-chopsuey.jpg'),
            ('Veg Fried Rice', 'Wok-tossed rice with mixed vegetables', 180.00, 'rice', 'https://example.com/images/veg-fried-rice.jpg'),
            ('Chicken Fried Rice', 'Delicious fried rice with chicken pieces', 220.00, 'rice', 'https://example.com/images/chicken-fried-rice.jpg'),
            ('Egg Fried Rice', 'Classic egg fried rice with vegetables', 190.00, 'rice', 'https://example.com/images/egg-fried-rice.jpg'),
            ('Chicken Biryani', 'Aromatic basmati rice with spiced chicken', 300.00, 'rice', 'https://example.com/images/chicken-biryani.jpg'),
            ('Masala Tea', 'Traditional spiced tea', 40.00, 'beverages', 'https://example.com/images/masala-tea.jpg'),
            ('Coffee', 'Hot brewed coffee', 60.00, 'beverages', 'https://example.com/images/coffee.jpg'),
            ('Fresh Lime Soda', 'Refreshing lime soda (sweet/salty)', 80.00, 'beverages', 'https://example.com/images/lime-soda.jpg'),
            ('Mango Lassi', 'Creamy mango yogurt drink', 100.00, 'beverages', 'https://example.com/images/mango-lassi.jpg'),
            ('Cold Coffee', 'Iced coffee with cream', 120.00, 'beverages', 'https://example.com/images/cold-coffee.jpg'),
        ]
