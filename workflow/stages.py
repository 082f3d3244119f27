# workflow/stages.py
"""
Which tools may run from which conversation stage.

Browsing and cart tools are open from every stage; the order and payment steps
only accept input while the user is actually looking at those buttons, so a
stale tap on an old message cannot confirm or pay for the wrong thing.
"""
from typing import Dict, FrozenSet, Optional

from utils.constants import ConversationStages as Stages, ToolNames

ANY_STAGE: Optional[FrozenSet[str]] = None

STAGE_RULES: Dict[str, Optional[FrozenSet[str]]] = {
    ToolNames.SHOW_FOOD_MENU: ANY_STAGE,
    ToolNames.SHOW_CATEGORY_ITEMS: ANY_STAGE,
    ToolNames.SHOW_MOMO_VARIETIES: ANY_STAGE,
    ToolNames.ADD_TO_CART: ANY_STAGE,
    ToolNames.ADD_ITEM_BY_NAME: ANY_STAGE,
    ToolNames.SHOW_CART_OPTIONS: ANY_STAGE,
    ToolNames.CONFIRM_ORDER: ANY_STAGE,
    ToolNames.SHOW_ORDER_HISTORY: ANY_STAGE,
    ToolNames.SEND_TEXT_REPLY: ANY_STAGE,
    ToolNames.SHOW_PAYMENT_OPTIONS: frozenset({
        Stages.CONFIRMING_ORDER, Stages.SELECTING_PAYMENT,
    }),
    ToolNames.PROCESS_ORDER_RESPONSE: frozenset({
        Stages.CONFIRMING_ORDER, Stages.CONFIRMING_CANCEL,
    }),
    ToolNames.PROCESS_PAYMENT: frozenset({
        Stages.SELECTING_PAYMENT,
    }),
}


def is_transition_allowed(tool_name: str, stage: str) -> bool:
    """True when ``tool_name`` may be invoked while the user is at ``stage``"""
    if tool_name not in STAGE_RULES:
        return False
    allowed = STAGE_RULES[tool_name]
    return allowed is ANY_STAGE or stage in allowed
