"""WhatsApp Cloud API module"""

from .client import WhatsAppClient, IncomingMessage

__all__ = ['WhatsAppClient', 'IncomingMessage']
