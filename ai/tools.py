"""
Tool registry: the functions the model may call and the argument contract of every handler
"""
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from utils.constants import ToolNames


class ToolArguments(BaseModel):
    """Base for handler arguments; unknown keys (a made-up price, say) are dropped"""
    model_config = ConfigDict(extra='ignore')


class NoArguments(ToolArguments):
    pass


class ShowCategoryItemsArgs(ToolArguments):
    category: Optional[str] = Field(None, description="Menu category, e.g. momos")

    @field_validator('category', mode='before')
    @classmethod
    def _normalize_category(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value


class AddToCartArgs(ToolArguments):
    food_id: int = Field(..., validation_alias=AliasChoices('food_id', 'foodId'))
    quantity: int = Field(1, ge=1, le=99)


class AddItemByNameArgs(ToolArguments):
    name: str = Field('', validation_alias=AliasChoices('name', 'itemName', 'item_name'))
    quantity: int = Field(1, ge=1, le=99)

    @field_validator('name', mode='before')
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class RequestedItem(ToolArguments):
    food_id: Optional[int] = Field(None, validation_alias=AliasChoices('food_id', 'foodId'))
    name: str = ''
    quantity: int = Field(1, ge=1, le=99)


class ConfirmOrderArgs(ToolArguments):
    items: Optional[List[RequestedItem]] = None


class ProcessOrderResponseArgs(ToolArguments):
    action: str = Field(..., description="confirmed, cancel_confirm, or anything else to ask about cancelling")


class ProcessPaymentArgs(ToolArguments):
    method: Literal['COD', 'ONLINE']

    @field_validator('method', mode='before')
    @classmethod
    def _upper(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class SendTextReplyArgs(ToolArguments):
    message: Optional[str] = None


TOOL_ARGUMENT_MODELS: Dict[str, Type[ToolArguments]] = {
    ToolNames.SHOW_FOOD_MENU: NoArguments,
    ToolNames.SHOW_CATEGORY_ITEMS: ShowCategoryItemsArgs,
    ToolNames.SHOW_MOMO_VARIETIES: NoArguments,
    ToolNames.ADD_TO_CART: AddToCartArgs,
    ToolNames.ADD_ITEM_BY_NAME: AddItemByNameArgs,
    ToolNames.SHOW_CART_OPTIONS: NoArguments,
    ToolNames.CONFIRM_ORDER: ConfirmOrderArgs,
    ToolNames.SHOW_PAYMENT_OPTIONS: NoArguments,
    ToolNames.PROCESS_ORDER_RESPONSE: ProcessOrderResponseArgs,
    ToolNames.PROCESS_PAYMENT: ProcessPaymentArgs,
    ToolNames.SHOW_ORDER_HISTORY: NoArguments,
    ToolNames.SEND_TEXT_REPLY: SendTextReplyArgs,
}


class ToolValidationError(ValueError):
    """The tool name is unknown or its arguments do not match the contract"""


def validate_tool_arguments(tool_name: str, arguments: Optional[Dict[str, Any]]) -> ToolArguments:
    """Check raw arguments against the registered model for ``tool_name``"""
    model = TOOL_ARGUMENT_MODELS.get(tool_name)
    if model is None:
        raise ToolValidationError(f"Unknown tool: {tool_name}")
    if arguments is not None and not isinstance(arguments, dict):
        raise ToolValidationError(f"Arguments for {tool_name} must be an object")
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        raise ToolValidationError(f"Invalid arguments for {tool_name}: {e}") from e


# Functions offered to the model (OpenAI tools format)
LLM_TOOL_CATALOG: List[Dict] = [
    {
        "type": "function",
        "function": {
            "name": ToolNames.SHOW_FOOD_MENU,
            "description": "Show a list of food categories available in the restaurant menu. Use this when user wants to see the menu, browse food options, or asks what's available.",
            "parameters": {"type": "object", "properties": {}, "required": []}
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.SHOW_MOMO_VARIETIES,
            "description": "Show the momo varieties. Use this when user selects momos from the menu, wants to see momo options, or asks specifically about momos.",
            "parameters": {"type": "object", "properties": {}, "required": []}
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.ADD_ITEM_BY_NAME,
            "description": "Add an item to cart by name. Use this when user wants to add a specific item by typing its name (e.g., 'add momo', 'I want tandoori momo', 'add 2 steam momo'). This validates the item against the menu before adding.",
            "parameters": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "The name of the food item to add"},
                    "quantity": {"type": "number", "description": "Quantity to add (default 1)"}
                },
                "required": ["name"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.CONFIRM_ORDER,
            "description": "Show order confirmation with confirm and cancel buttons. ONLY use this when user explicitly says 'checkout', 'place order', 'confirm order', or clicks checkout. Do NOT use this when user is adding items.",
            "parameters": {"type": "object", "properties": {}, "required": []}
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.PROCESS_ORDER_RESPONSE,
            "description": "Process the user's response to order confirmation (confirmed or cancelled).",
            "parameters": {
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": ["confirmed", "cancelled"],
                        "description": "Whether the order was confirmed or cancelled"
                    }
                },
                "required": ["action"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.SEND_TEXT_REPLY,
            "description": "Send a simple text reply for greetings, general questions, or when no special UI is needed.",
            "parameters": {
                "type": "object",
                "properties": {
                    "message": {"type": "string", "description": "The text message to send to the user"}
                },
                "required": ["message"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": ToolNames.SHOW_ORDER_HISTORY,
            "description": "Show the user's past orders and order history. Use when user asks about their previous orders, order history, past orders, or wants to see what they ordered before.",
            "parameters": {"type": "object", "properties": {}, "required": []}
        }
    },
]


def get_llm_tool_names() -> List[str]:
    return [tool['function']['name'] for tool in LLM_TOOL_CATALOG]
