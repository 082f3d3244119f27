"""Facebook Messenger (page) webhook handling"""

from .handler import MessengerHandler

__all__ = ['MessengerHandler']
