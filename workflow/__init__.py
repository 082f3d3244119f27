"""Workflow management module"""

from .context import CartLine, ConversationContext, ContextStore
from .handlers import HandlerResult, ToolHandlers
from .router import IntentRouter, InteractiveReply, parse_interactive_reply
from .stages import STAGE_RULES, is_transition_allowed
from .main import OrderingWorkflow

__all__ = [
    'CartLine', 'ConversationContext', 'ContextStore', 'HandlerResult', 'ToolHandlers',
    'IntentRouter', 'InteractiveReply', 'parse_interactive_reply', 'STAGE_RULES',
    'is_transition_allowed', 'OrderingWorkflow'
]
