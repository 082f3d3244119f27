"""Constants and enumerations"""


# Conversation stages
class ConversationStages:
    INITIAL = 'initial'
    VIEWING_MENU = 'viewing_menu'
    VIEWING_ITEMS = 'viewing_items'
    SELECTING_ITEM = 'selecting_item'
    QUICK_CART_ACTION = 'quick_cart_action'
    CART_OPTIONS = 'cart_options'
    CONFIRMING_ORDER = 'confirming_order'
    CONFIRMING_CANCEL = 'confirming_cancel'
    SELECTING_PAYMENT = 'selecting_payment'
    ORDER_COMPLETE = 'order_complete'

    ALL = (
        INITIAL, VIEWING_MENU, VIEWING_ITEMS, SELECTING_ITEM, QUICK_CART_ACTION,
        CART_OPTIONS, CONFIRMING_ORDER, CONFIRMING_CANCEL, SELECTING_PAYMENT,
        ORDER_COMPLETE,
    )


# Order statuses stored in the orders table
class OrderStatus:
    CREATED = 'created'
    CONFIRMED = 'confirmed'
    PREPARING = 'preparing'
    DELIVERED = 'delivered'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    ALL = (CREATED, CONFIRMED, PREPARING, DELIVERED, COMPLETED, CANCELLED)
    CLOSED = (COMPLETED, CANCELLED)

    EMOJI = {
        CREATED: '🆕',
        CONFIRMED: '✅',
        PREPARING: '👨‍🍳',
        DELIVERED: '📦',
        COMPLETED: '✔️',
        CANCELLED: '❌',
    }


class PaymentMethods:
    COD = 'COD'
    ONLINE = 'ONLINE'


# Tool names shared by the router, the classifier and the handlers
class ToolNames:
    SHOW_FOOD_MENU = 'show_food_menu'
    SHOW_CATEGORY_ITEMS = 'show_category_items'
    SHOW_MOMO_VARIETIES = 'show_momo_varieties'
    ADD_TO_CART = 'add_to_cart'
    ADD_ITEM_BY_NAME = 'add_item_by_name'
    SHOW_CART_OPTIONS = 'show_cart_options'
    CONFIRM_ORDER = 'confirm_order'
    SHOW_PAYMENT_OPTIONS = 'show_payment_options'
    PROCESS_ORDER_RESPONSE = 'process_order_response'
    PROCESS_PAYMENT = 'process_payment'
    SHOW_ORDER_HISTORY = 'show_order_history'
    SEND_TEXT_REPLY = 'send_text_reply'


# Interactive reply identifiers
class ButtonIds:
    CATEGORY_PREFIX = 'cat_'
    ADD_PREFIX = 'add_'
    MORE_PREFIX = 'more_'
    ADD_MORE_ITEMS = 'add_more_items'
    VIEW_ALL_CATEGORIES = 'view_all_categories'
    PROCEED_CHECKOUT = 'proceed_checkout'
    CONFIRM_ORDER = 'confirm_order'
    CANCEL_ORDER = 'cancel_order'
    CONFIRM_CANCEL = 'confirm_cancel'
    BACK_TO_CART = 'back_to_cart'
    PAY_COD = 'pay_cod'
    PAY_ONLINE = 'pay_online'


class MessageTypes:
    TEXT = 'text'
    INTERACTIVE = 'interactive'
    BUTTON_REPLY = 'button_reply'
    LIST_REPLY = 'list_reply'


class Platforms:
    WHATSAPP = 'whatsapp'
    MESSENGER = 'messenger'


# API Configuration
class APIConfig:
    WHATSAPP_API_VERSION = 'v20.0'
    WHATSAPP_BASE_URL = 'https://graph.facebook.com'
    MAX_MESSAGE_LENGTH = 4096
    MAX_BUTTONS = 3
    MAX_LIST_ROWS_PER_SECTION = 10
    MAX_ROW_TITLE_LENGTH = 24
    MAX_ROW_DESCRIPTION_LENGTH = 72
    MAX_BUTTON_TITLE_LENGTH = 20


class MenuDefaults:
    RESTAURANT_NAME = 'Momo House'
    DEFAULT_CATEGORY = 'momos'
    HISTORY_LIMIT = 5
    CURRENCY = 'Rs.'
    CATEGORY_EMOJIS = {
        'momos': '🥟',
        'noodles': '🍜',
        'rice': '🍚',
        'beverages': '☕',
    }
    DEFAULT_CATEGORY_EMOJI = '🍽️'


# Free-text phrases that go straight to order history
ORDER_HISTORY_KEYWORDS = (
    'order history',
    'my orders',
    'past orders',
    'previous orders',
)


# User-facing messages
class Messages:
    DEFAULT_GREETING = "Hello! Welcome to our restaurant 🍽️ Type 'menu' to see our delicious options!"
    HELP_PROMPT = "How can I help you today?"
    AI_APOLOGY = "Sorry, I'm having trouble understanding. Could you try again?"
    SYSTEM_ERROR = "Sorry, something went wrong. Please try again."
    SERVICE_BUSY = "We're still working on your previous message. Please try again in a few seconds."
    OPTION_EXPIRED = "⚠️ That option is no longer available. Here's where you are now:"
    MENU_LOAD_FAILED = "Sorry, I couldn't load the menu. Please try again."
    ITEMS_LOAD_FAILED = "Sorry, I couldn't load the items. Please try again."
    ITEM_NOT_AVAILABLE = "Sorry, that item is not available."
    ADD_FAILED = "Sorry, couldn't add that item. Please try again."
    NAME_REQUIRED = "Please specify which item you want to add."
    NAME_SEARCH_FAILED = "Sorry, couldn't find that item. Try browsing our menu!"
    CART_EMPTY = "Your cart is empty! Let me show you our menu."
    PAYMENT_FALLBACK = "Order confirmed! We'll contact you for payment details."
    HISTORY_FAILED = "Sorry, couldn't load your order history. Please try again."
    CONFIRM_FAILED = "Sorry, I couldn't check your order right now. Please try again."
