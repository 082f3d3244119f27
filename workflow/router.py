# workflow/router.py
"""
Decides which tool handles an inbound message.

Interactive reply ids are matched first, then the order-history keywords,
and only free text that neither catches goes to the LLM.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ai.tools import ToolValidationError, validate_tool_arguments
from utils.constants import (
    ButtonIds, MessageTypes, Messages, ORDER_HISTORY_KEYWORDS, PaymentMethods, ToolNames
)
from .context import ConversationContext
from .handlers import HandlerResult, ToolHandlers
from .stages import is_transition_allowed

logger = logging.getLogger(__name__)


@dataclass
class InteractiveReply:
    type: str
    id: str
    title: str = ''


# Exact interactive ids and the tool call each one stands for
FIXED_BUTTON_ROUTES: Dict[str, Tuple[str, Dict[str, Any]]] = {
    ButtonIds.ADD_MORE_ITEMS: (ToolNames.SHOW_FOOD_MENU, {}),
    ButtonIds.VIEW_ALL_CATEGORIES: (ToolNames.SHOW_FOOD_MENU, {}),
    ButtonIds.PROCEED_CHECKOUT: (ToolNames.CONFIRM_ORDER, {}),
    ButtonIds.CONFIRM_ORDER: (ToolNames.PROCESS_ORDER_RESPONSE, {'action': 'confirmed'}),
    ButtonIds.CANCEL_ORDER: (ToolNames.PROCESS_ORDER_RESPONSE, {'action': 'cancelled'}),
    ButtonIds.CONFIRM_CANCEL: (ToolNames.PROCESS_ORDER_RESPONSE, {'action': 'cancel_confirm'}),
    ButtonIds.BACK_TO_CART: (ToolNames.SHOW_CART_OPTIONS, {}),
    ButtonIds.PAY_COD: (ToolNames.PROCESS_PAYMENT, {'method': PaymentMethods.COD}),
    ButtonIds.PAY_ONLINE: (ToolNames.PROCESS_PAYMENT, {'method': PaymentMethods.ONLINE}),
}


def parse_interactive_reply(interactive: Optional[Dict]) -> Optional[InteractiveReply]:
    """Pull the id/title out of a WhatsApp button_reply or list_reply payload"""
    if not interactive:
        return None

    reply_type = interactive.get('type')
    if reply_type not in (MessageTypes.BUTTON_REPLY, MessageTypes.LIST_REPLY):
        return None

    reply = interactive.get(reply_type) or {}
    if not reply.get('id'):
        return None
    return InteractiveReply(type=reply_type, id=reply['id'], title=reply.get('title', ''))


def match_interactive_id(reply_id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Map an interactive id to ``(tool_name, arguments)``; None when nothing matches"""
    if reply_id.startswith(ButtonIds.CATEGORY_PREFIX):
        return ToolNames.SHOW_CATEGORY_ITEMS, {'category': reply_id[len(ButtonIds.CATEGORY_PREFIX):]}

    # add_more_items shares the prefix, so only a numeric suffix is a food id
    if reply_id.startswith(ButtonIds.ADD_PREFIX):
        suffix = reply_id[len(ButtonIds.ADD_PREFIX):]
        if suffix.isdigit():
            return ToolNames.ADD_TO_CART, {'food_id': int(suffix)}

    if reply_id in FIXED_BUTTON_ROUTES:
        tool_name, arguments = FIXED_BUTTON_ROUTES[reply_id]
        return tool_name, dict(arguments)

    if reply_id.startswith(ButtonIds.MORE_PREFIX):
        return ToolNames.SHOW_CATEGORY_ITEMS, {'category': reply_id[len(ButtonIds.MORE_PREFIX):]}

    return None


def is_order_history_request(text: str) -> bool:
    lowered = (text or '').lower()
    return any(keyword in lowered for keyword in ORDER_HISTORY_KEYWORDS)


class IntentRouter:
    """Routes one message to a tool handler and returns its result"""

    def __init__(self, handlers: ToolHandlers, classifier):
        self.handlers = handlers
        self.classifier = classifier

    def route(self, text: str, context: ConversationContext, user_id: str,
              interactive_reply: Optional[InteractiveReply] = None) -> HandlerResult:
        logger.info(f"🧭 Routing message for {user_id} (stage: {context.stage})")

        if interactive_reply:
            logger.info(f"🔘 Interactive reply: {interactive_reply.id} - {interactive_reply.title}")
            matched = match_interactive_id(interactive_reply.id)
            if matched:
                tool_name, arguments = matched
                return self.invoke(tool_name, arguments, user_id, context)
            logger.warning(f"⚠️ Unrecognized interactive id: {interactive_reply.id}")

        if is_order_history_request(text):
            return self.invoke(ToolNames.SHOW_ORDER_HISTORY, {}, user_id, context)

        logger.info("🤖 Asking LLM for intent...")
        decision = self.classifier.classify(text or '', context.to_dict())
        logger.info(f"🎯 Intent: {decision.intent} | Tool: {decision.tool_name} | Args: {decision.arguments}")

        return self.invoke(decision.tool_name, decision.arguments, user_id, context,
                           fallback_text=decision.response)

    def invoke(self, tool_name: str, arguments: Optional[Dict[str, Any]], user_id: str,
               context: ConversationContext, fallback_text: str = '') -> HandlerResult:
        """Validate a tool call, check it against the stage, then run the handler"""
        try:
            args = validate_tool_arguments(tool_name, arguments)
        except ToolValidationError as e:
            logger.warning(f"⚠️ Rejected tool call: {e}")
            return self._send_fallback_text(fallback_text, user_id, context)

        if not self.handlers.has_handler(tool_name):
            logger.warning(f"⚠️ No handler registered for {tool_name}")
            return self._send_fallback_text(fallback_text, user_id, context)

        if not is_transition_allowed(tool_name, context.stage):
            logger.warning(f"🚫 {tool_name} not allowed from stage '{context.stage}' for {user_id}")
            return self._redirect_expired(user_id, context)

        return self.handlers.dispatch(tool_name, args, user_id, context)

    def _send_fallback_text(self, text: str, user_id: str,
                            context: ConversationContext) -> HandlerResult:
        args = validate_tool_arguments(ToolNames.SEND_TEXT_REPLY,
                                       {'message': text or Messages.DEFAULT_GREETING})
        return self.handlers.dispatch(ToolNames.SEND_TEXT_REPLY, args, user_id, context)

    def _redirect_expired(self, user_id: str, context: ConversationContext) -> HandlerResult:
        """A stale button: say so, then show wherever the user actually is"""
        self.handlers.whatsapp.send_text_message(user_id, Messages.OPTION_EXPIRED)
        if context.cart:
            return self.handlers.show_cart_options(None, user_id, context)
        return self.handlers.show_food_menu(None, user_id, context)
