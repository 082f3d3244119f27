"""Database management module"""

from .manager import RestaurantDatabase, DatabaseError
from .models import (
    DatabaseSchema, FoodItem, Order, OrderItem, OrderHistoryEntry
)

__all__ = [
    'RestaurantDatabase', 'DatabaseError', 'DatabaseSchema',
    'FoodItem', 'Order', 'OrderItem', 'OrderHistoryEntry'
]
