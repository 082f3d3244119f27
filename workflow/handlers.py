# workflow/handlers.py

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ai.tools import (
    AddItemByNameArgs, AddToCartArgs, ConfirmOrderArgs, NoArguments, ProcessOrderResponseArgs,
    ProcessPaymentArgs, SendTextReplyArgs, ShowCategoryItemsArgs, ToolArguments
)
from database.manager import DatabaseError
from database.models import FoodItem
from utils.constants import (
    APIConfig, ButtonIds, ConversationStages as Stages, MenuDefaults, Messages, OrderStatus,
    PaymentMethods, ToolNames
)
from utils.helpers import (
    chunk_list, format_price, generate_fallback_order_id, title_case_category, truncate_text
)
from .context import CartLine, ConversationContext

logger = logging.getLogger(__name__)

CART_DIVIDER = '━━━━━━━━━━━━━━━'

ONLINE_PAYMENT_DETAILS = (
    "💳 *Online Payment Details*\n\n"
    "━━━━━━━━━━━━━━━━━━━━━\n"
    "📱 *eSewa*\n"
    "   ID: 9800000001\n"
    "   Name: Momo House Pvt Ltd\n\n"
    "📱 *Khalti*\n"
    "   ID: 9800000002\n"
    "   Name: Momo House\n\n"
    "🏦 *Bank Transfer*\n"
    "   Bank: Nepal Bank Ltd\n"
    "   A/C: 0123456789012\n"
    "   Name: Momo House Pvt Ltd\n"
    "━━━━━━━━━━━━━━━━━━━━━\n\n"
)


@dataclass
class HandlerResult:
    """Outcome of one tool handler.

    ``reply`` is only set when the caller still has to send a plain text;
    handlers normally send their own messages and leave it ``None``.
    """
    context: ConversationContext
    reply: Optional[str] = None


def _food_row(food: FoodItem) -> Dict:
    return {
        'id': f"{ButtonIds.ADD_PREFIX}{food.id}",
        'title': truncate_text(food.name, APIConfig.MAX_ROW_TITLE_LENGTH),
        'description': f"{format_price(food.price)} - {(food.description or '')[:50]}"
    }


def _cart_lines_text(lines: List[CartLine]) -> str:
    return '\n'.join(
        f"• {line.name} x{line.quantity} - {format_price(line.subtotal)}" for line in lines
    )


def _format_order_date(created_at: str) -> str:
    try:
        return datetime.strptime(created_at, '%Y-%m-%d %H:%M:%S').strftime('%b %d, %I:%M %p')
    except (TypeError, ValueError):
        return created_at or ''


class ToolHandlers:
    """One handler per tool; each sends its own WhatsApp messages"""

    def __init__(self, database_manager, whatsapp_client):
        self.db = database_manager
        self.whatsapp = whatsapp_client

        self._registry: Dict[str, Callable] = {
            ToolNames.SHOW_FOOD_MENU: self.show_food_menu,
            ToolNames.SHOW_CATEGORY_ITEMS: self.show_category_items,
            ToolNames.SHOW_MOMO_VARIETIES: self.show_momo_varieties,
            ToolNames.ADD_TO_CART: self.add_to_cart,
            ToolNames.ADD_ITEM_BY_NAME: self.add_item_by_name,
            ToolNames.SHOW_CART_OPTIONS: self.show_cart_options,
            ToolNames.CONFIRM_ORDER: self.confirm_order,
            ToolNames.SHOW_PAYMENT_OPTIONS: self.show_payment_options,
            ToolNames.PROCESS_ORDER_RESPONSE: self.process_order_response,
            ToolNames.PROCESS_PAYMENT: self.process_payment,
            ToolNames.SHOW_ORDER_HISTORY: self.show_order_history,
            ToolNames.SEND_TEXT_REPLY: self.send_text_reply,
        }

    def has_handler(self, tool_name: str) -> bool:
        return tool_name in self._registry

    def dispatch(self, tool_name: str, args: ToolArguments, user_id: str,
                 context: ConversationContext) -> HandlerResult:
        """Run the handler registered for ``tool_name`` with validated arguments"""
        handler = self._registry.get(tool_name)
        if handler is None:
            raise KeyError(f"No handler for tool: {tool_name}")
        logger.info(f"🔧 {tool_name} for {user_id} (stage: {context.stage})")
        return handler(args, user_id, context)

    # Browsing

    def show_food_menu(self, args: Optional[NoArguments], user_id: str,
                       context: ConversationContext) -> HandlerResult:
        try:
            categories = self.db.get_categories()
        except DatabaseError as e:
            logger.error(f"❌ Error fetching menu: {e}")
            self.whatsapp.send_text_message(user_id, Messages.MENU_LOAD_FAILED)
            return HandlerResult(context)

        rows = [
            {
                'id': f"{ButtonIds.CATEGORY_PREFIX}{category}",
                'title': truncate_text(
                    f"{title_case_category(category)} "
                    f"{MenuDefaults.CATEGORY_EMOJIS.get(category, MenuDefaults.DEFAULT_CATEGORY_EMOJI)}",
                    APIConfig.MAX_ROW_TITLE_LENGTH
                ),
                'description': f"Browse our {category} options"
            }
            for category in categories
        ]
        if not rows:
            rows = [{
                'id': f"{ButtonIds.CATEGORY_PREFIX}{MenuDefaults.DEFAULT_CATEGORY}",
                'title': 'Momos 🥟',
                'description': 'Steamed, fried, tandoori varieties'
            }]

        self.whatsapp.send_list_message(
            user_id,
            '🍽️ Restaurant Menu',
            'Welcome! What would you like to order today? Browse our delicious categories below.',
            'Tap to view options',
            'View Categories',
            [{'title': 'Food Categories', 'rows': rows}]
        )

        updated = context.copy()
        updated.stage = Stages.VIEWING_MENU
        updated.last_action = ToolNames.SHOW_FOOD_MENU
        return HandlerResult(updated)

    def show_category_items(self, args: Optional[ShowCategoryItemsArgs], user_id: str,
                            context: ConversationContext) -> HandlerResult:
        category = (args.category if args else None) or MenuDefaults.DEFAULT_CATEGORY

        try:
            foods = self.db.get_category_items(category)
        except DatabaseError as e:
            logger.error(f"❌ Error fetching items for {category}: {e}")
            self.whatsapp.send_text_message(user_id, Messages.ITEMS_LOAD_FAILED)
            return HandlerResult(context)

        if not foods:
            self.whatsapp.send_text_message(
                user_id, f"No items found in {category}. Try another category!"
            )
            return self.show_food_menu(None, user_id, context)

        # WhatsApp caps a list section at ten rows
        sections = []
        for index, chunk in enumerate(chunk_list([_food_row(food) for food in foods],
                                                 APIConfig.MAX_LIST_ROWS_PER_SECTION)):
            sections.append({
                'title': title_case_category(category) if index == 0 else f"More {category}",
                'rows': chunk
            })

        if context.cart:
            body_text = (
                f"🛒 Cart: {len(context.cart)} item(s) - {format_price(context.cart_total)}\n\n"
                "Select more items to add:"
            )
        else:
            body_text = "Select items to add to your cart.\nTap an item to add it."

        self.whatsapp.send_list_message(
            user_id,
            f"🍽️ {category.upper()} Menu",
            body_text,
            'Tap item to add to cart',
            'View Items',
            sections
        )

        updated = context.copy()
        updated.stage = Stages.VIEWING_ITEMS
        updated.current_category = category
        updated.last_action = ToolNames.SHOW_CATEGORY_ITEMS
        return HandlerResult(updated)

    def show_momo_varieties(self, args: Optional[NoArguments], user_id: str,
                            context: ConversationContext) -> HandlerResult:
        return self.show_category_items(
            ShowCategoryItemsArgs(category=MenuDefaults.DEFAULT_CATEGORY), user_id, context
        )

    # Cart

    def _add_food_to_cart(self, food: FoodItem, quantity: int, user_id: str,
                          context: ConversationContext, action: str,
                          more_category: str) -> HandlerResult:
        """Merge a food into the cart at its stored price and offer the next steps"""
        updated = context.copy()
        line = updated.find_line(food.id)
        if line:
            line.quantity += quantity
        else:
            updated.cart.append(CartLine(food_id=food.id, name=food.name,
                                         price=food.price, quantity=quantity))

        buttons = [
            self.whatsapp.build_reply_button(f"{ButtonIds.MORE_PREFIX}{more_category}", 'Add More ➕'),
            self.whatsapp.build_reply_button(ButtonIds.VIEW_ALL_CATEGORIES, 'Other Categories 📋'),
            self.whatsapp.build_reply_button(ButtonIds.PROCEED_CHECKOUT, 'Checkout 🛒'),
        ]
        self.whatsapp.send_button_message(
            user_id,
            '✅ Added to Cart!',
            f"*{food.name}* x{quantity} - {format_price(food.price * quantity)}\n\n"
            f"🛒 Cart: {updated.cart_item_count} item(s) | Total: {format_price(updated.cart_total)}\n\n"
            "What would you like to do?",
            'Keep adding or checkout!',
            buttons
        )

        logger.info(f"🛒 {user_id} added {food.name} x{quantity}")
        updated.stage = Stages.QUICK_CART_ACTION
        updated.last_added_item = food.name
        updated.last_action = action
        return HandlerResult(updated)

    def add_to_cart(self, args: AddToCartArgs, user_id: str,
                    context: ConversationContext) -> HandlerResult:
        try:
            food = self.db.get_food_by_id(args.food_id)
        except DatabaseError as e:
            logger.error(f"❌ Error adding to cart: {e}")
            self.whatsapp.send_text_message(user_id, Messages.ADD_FAILED)
            return HandlerResult(context)

        if not food:
            self.whatsapp.send_text_message(user_id, Messages.ITEM_NOT_AVAILABLE)
            return HandlerResult(context)

        return self._add_food_to_cart(
            food, args.quantity, user_id, context, ToolNames.ADD_TO_CART,
            context.current_category or MenuDefaults.DEFAULT_CATEGORY
        )

    def add_item_by_name(self, args: AddItemByNameArgs, user_id: str,
                         context: ConversationContext) -> HandlerResult:
        item_name = args.name
        if not item_name:
            self.whatsapp.send_text_message(user_id, Messages.NAME_REQUIRED)
            return HandlerResult(context)

        try:
            matches = self.db.get_food_by_name(item_name)
        except DatabaseError as e:
            logger.error(f"❌ Error adding item by name: {e}")
            self.whatsapp.send_text_message(user_id, Messages.NAME_SEARCH_FAILED)
            return HandlerResult(context)

        if not matches:
            self.whatsapp.send_text_message(
                user_id,
                f"❌ Sorry, \"{item_name}\" is not available on our menu.\n\n"
                "Type \"menu\" to see what we have! 🍽️"
            )
            return HandlerResult(context)

        if len(matches) == 1:
            food = matches[0]
            return self._add_food_to_cart(
                food, args.quantity, user_id, context, ToolNames.ADD_ITEM_BY_NAME,
                food.category or MenuDefaults.DEFAULT_CATEGORY
            )

        rows = [_food_row(food) for food in matches[:APIConfig.MAX_LIST_ROWS_PER_SECTION]]
        self.whatsapp.send_list_message(
            user_id,
            '🔍 Multiple Matches Found',
            f"Found {len(matches)} item(s) matching \"{item_name}\".\nSelect the one you want:",
            'Tap to add to cart',
            'Select Item',
            [{'title': 'Matching Items', 'rows': rows}]
        )

        updated = context.copy()
        updated.stage = Stages.SELECTING_ITEM
        updated.last_action = ToolNames.ADD_ITEM_BY_NAME
        return HandlerResult(updated)

    def show_cart_options(self, args: Optional[NoArguments], user_id: str,
                          context: ConversationContext) -> HandlerResult:
        if not context.cart:
            self.whatsapp.send_text_message(user_id, Messages.CART_EMPTY)
            return self.show_food_menu(None, user_id, context)

        buttons = [
            self.whatsapp.build_reply_button(ButtonIds.ADD_MORE_ITEMS, 'Add More Items ➕'),
            self.whatsapp.build_reply_button(ButtonIds.PROCEED_CHECKOUT, 'Checkout 🛒'),
        ]
        self.whatsapp.send_button_message(
            user_id,
            '🛒 Your Cart',
            f"{_cart_lines_text(context.cart)}\n{CART_DIVIDER}\n"
            f"Subtotal: {format_price(context.cart_total)}\n\n"
            "Would you like to add more items or proceed to checkout?",
            'You can add more items anytime!',
            buttons
        )

        updated = context.copy()
        updated.stage = Stages.CART_OPTIONS
        updated.last_action = ToolNames.SHOW_CART_OPTIONS
        return HandlerResult(updated)

    # Ordering

    def _revalidate_lines(self, args: Optional[ConfirmOrderArgs],
                          context: ConversationContext):
        """Re-resolve requested lines against the menu; returns (valid, invalid_names).

        Lines with an id are looked up by id, the rest by name. Prices always
        come from the stored food record.
        """
        if args and args.items:
            requested = [(item.food_id, item.name, item.quantity) for item in args.items]
        else:
            requested = [(line.food_id, line.name, line.quantity) for line in context.cart]

        valid: List[CartLine] = []
        invalid: List[str] = []
        for food_id, name, quantity in requested:
            if food_id:
                food = self.db.get_food_by_id(food_id)
            else:
                matches = self.db.get_food_by_name(name) if name else []
                food = matches[0] if matches else None

            if not food:
                invalid.append(name or f"Item {food_id}")
                continue

            existing = next((line for line in valid if line.food_id == food.id), None)
            if existing:
                existing.quantity += quantity
            else:
                valid.append(CartLine(food_id=food.id, name=food.name,
                                      price=food.price, quantity=quantity))
        return valid, invalid

    def confirm_order(self, args: Optional[ConfirmOrderArgs], user_id: str,
                      context: ConversationContext) -> HandlerResult:
        if not (args and args.items) and not context.cart:
            self.whatsapp.send_text_message(user_id, Messages.CART_EMPTY)
            return self.show_food_menu(None, user_id, context)

        try:
            valid, invalid = self._revalidate_lines(args, context)
        except DatabaseError as e:
            logger.error(f"❌ Error validating order lines: {e}")
            self.whatsapp.send_text_message(user_id, Messages.CONFIRM_FAILED)
            return HandlerResult(context)

        invalid_list = '\n'.join(f"• {name}" for name in invalid)
        if not valid:
            logger.warning(f"⚠️ No valid items for {user_id}: {invalid}")
            self.whatsapp.send_text_message(
                user_id,
                f"❌ Sorry, none of the items are available:\n{invalid_list}\n\n"
                "Type \"menu\" to see what we have! 🍽️"
            )
            return self.show_food_menu(None, user_id, context)

        if invalid:
            self.whatsapp.send_text_message(
                user_id,
                f"⚠️ Note: These items are not available and were removed:\n{invalid_list}"
            )

        total = sum(line.subtotal for line in valid)
        order_details = f"{_cart_lines_text(valid)}\n{CART_DIVIDER}\nTotal: {format_price(total)}"
        self.whatsapp.send_order_confirmation(user_id, order_details)

        updated = context.copy()
        updated.cart = valid
        updated.stage = Stages.CONFIRMING_ORDER
        updated.last_action = ToolNames.CONFIRM_ORDER
        updated.pending_order = {
            'items': [
                {'food_id': line.food_id, 'name': line.name, 'price': line.price,
                 'quantity': line.quantity}
                for line in valid
            ],
            'total': total
        }
        return HandlerResult(updated)

    def show_payment_options(self, args: Optional[NoArguments], user_id: str,
                             context: ConversationContext) -> HandlerResult:
        buttons = [
            self.whatsapp.build_reply_button(ButtonIds.PAY_COD, 'Cash on Delivery'),
            self.whatsapp.build_reply_button(ButtonIds.PAY_ONLINE, 'Online Payment'),
        ]
        self.whatsapp.send_button_message(
            user_id,
            '💳 Payment Method',
            'Choose your preferred payment method:',
            'Select to continue',
            buttons
        )

        updated = context.copy()
        updated.stage = Stages.SELECTING_PAYMENT
        updated.last_action = ToolNames.SHOW_PAYMENT_OPTIONS
        return HandlerResult(updated)

    def process_order_response(self, args: ProcessOrderResponseArgs, user_id: str,
                               context: ConversationContext) -> HandlerResult:
        action = args.action

        if action == 'confirmed':
            return self._place_order(user_id, context)
        if action == 'cancel_confirm':
            return self._cancel_order(user_id, context)

        # Anything else asks before throwing the cart away
        buttons = [
            self.whatsapp.build_reply_button(ButtonIds.CONFIRM_CANCEL, 'Yes, Cancel ❌'),
            self.whatsapp.build_reply_button(ButtonIds.BACK_TO_CART, 'No, Go Back 🔙'),
        ]
        self.whatsapp.send_button_message(
            user_id,
            '⚠️ Cancel Order?',
            f"Are you sure you want to cancel?\n\n"
            f"🛒 Cart: {context.cart_item_count} item(s)\n"
            f"💰 Total: {format_price(context.cart_total)}\n\n"
            "This will remove all items from your cart.",
            'Please confirm',
            buttons
        )

        updated = context.copy()
        updated.stage = Stages.CONFIRMING_CANCEL
        updated.last_action = 'ask_cancel_confirmation'
        return HandlerResult(updated)

    def _place_order(self, user_id: str, context: ConversationContext) -> HandlerResult:
        if not context.cart:
            self.whatsapp.send_text_message(user_id, Messages.CART_EMPTY)
            return self.show_food_menu(None, user_id, context)

        self._discard_open_order(user_id, context)

        try:
            order = self.db.create_order_with_items(
                user_id, [(line.food_id, line.quantity) for line in context.cart]
            )
        except DatabaseError as e:
            logger.error(f"❌ Error creating order: {e}")
            order_id = generate_fallback_order_id()
            self.whatsapp.send_text_message(
                user_id,
                "✅ Order Confirmed!\n\nThank you for your order! Your delicious food is being "
                "prepared and will be delivered in 30-40 minutes.\n\n"
                f"Order ID: #{order_id}\n\nEnjoy your meal! 🥟"
            )
            return HandlerResult(ConversationContext(
                stage=Stages.ORDER_COMPLETE, last_action='order_confirmed', order_id=order_id
            ))

        logger.info(f"✅ Order {order.id} created for {user_id}")
        updated = context.copy()
        updated.order_id = order.id
        return self.show_payment_options(None, user_id, updated)

    def _discard_open_order(self, user_id: str, context: ConversationContext) -> None:
        """Cancel the unpaid order row the context points at; paid orders are left alone"""
        if not isinstance(context.order_id, int):
            return
        try:
            order = self.db.get_order(context.order_id)
            if order and order.user_id == user_id and order.status == OrderStatus.CREATED:
                self.db.cancel_order(order.id)
                logger.info(f"❌ Order {order.id} cancelled for {user_id}")
        except DatabaseError as e:
            logger.error(f"❌ Error cancelling order {context.order_id}: {e}")

    def _cancel_order(self, user_id: str, context: ConversationContext) -> HandlerResult:
        self._discard_open_order(user_id, context)

        self.whatsapp.send_text_message(
            user_id,
            f"❌ Order Cancelled\n\n{context.cart_item_count} item(s) removed from cart.\n\n"
            "No worries! Feel free to browse our menu again whenever you're ready.\n\n"
            "Type \"menu\" to start a new order! 🍽️"
        )
        return HandlerResult(ConversationContext(
            stage=Stages.INITIAL, last_action='order_cancelled'
        ))

    def process_payment(self, args: ProcessPaymentArgs, user_id: str,
                        context: ConversationContext) -> HandlerResult:
        method = args.method
        order_id = context.order_id

        try:
            if isinstance(order_id, int):
                self.db.select_payment(order_id, method)
                total = self.db.get_order_total(order_id)
            else:
                total = context.cart_total
        except DatabaseError as e:
            logger.error(f"❌ Error processing payment: {e}")
            self.whatsapp.send_text_message(user_id, Messages.PAYMENT_FALLBACK)
            return HandlerResult(ConversationContext(stage=Stages.ORDER_COMPLETE))

        reference = order_id or generate_fallback_order_id()
        amount = format_price(total)

        if method == PaymentMethods.ONLINE:
            self.whatsapp.send_text_message(
                user_id,
                f"{ONLINE_PAYMENT_DETAILS}"
                f"💰 *Amount to Pay: {amount}*\n\n"
                "📝 Please send payment screenshot to confirm.\n"
                f"Order ID: #{reference}"
            )
            self.whatsapp.send_text_message(
                user_id,
                "✅ Order Placed!\n\nYour order will be prepared once payment is confirmed.\n\n"
                "Delivery: 30-40 minutes after confirmation.\n\nThank you for ordering! 🥟"
            )
        else:
            self.whatsapp.send_text_message(
                user_id,
                "✅ Order Confirmed!\n\n"
                "💳 Payment: Cash on Delivery\n"
                f"💰 Amount: {amount}\n\n"
                "Your delicious food is being prepared and will be delivered in 30-40 minutes.\n\n"
                f"Order ID: #{reference}\n\n"
                f"Please keep {amount} ready!\n\nEnjoy your meal! 🥟"
            )

        logger.info(f"💳 {user_id} paid order {reference} via {method} ({amount})")
        return HandlerResult(ConversationContext(
            stage=Stages.ORDER_COMPLETE,
            last_action='order_confirmed',
            payment_method=method,
        ))

    # Misc

    def show_order_history(self, args: Optional[NoArguments], user_id: str,
                           context: ConversationContext) -> HandlerResult:
        try:
            orders = self.db.get_order_history(user_id, MenuDefaults.HISTORY_LIMIT)
        except DatabaseError as e:
            logger.error(f"❌ Error fetching order history: {e}")
            self.whatsapp.send_text_message(user_id, Messages.HISTORY_FAILED)
            return HandlerResult(context)

        if not orders:
            self.whatsapp.send_text_message(
                user_id,
                "📋 *Order History*\n\nYou haven't placed any orders yet!\n\n"
                "Type \"menu\" to start your first order! 🍽️"
            )
            return HandlerResult(context)

        history_text = "📋 *Your Order History*\n\n"
        for order in orders:
            history_text += (
                f"{OrderStatus.EMOJI.get(order.status, '📝')} *Order #{order.id}*\n"
                f"   📅 {_format_order_date(order.created_at)}\n"
                f"   🛒 {order.item_count} item(s) | {MenuDefaults.CURRENCY}{order.total:.0f}\n"
                f"   💳 {order.payment_method or 'Pending'}\n"
                f"   Status: {order.status.upper()}\n\n"
            )
        history_text += "\nType \"menu\" to place a new order! 🍽️"

        self.whatsapp.send_text_message(user_id, history_text)

        updated = context.copy()
        updated.last_action = ToolNames.SHOW_ORDER_HISTORY
        return HandlerResult(updated)

    def send_text_reply(self, args: Optional[SendTextReplyArgs], user_id: str,
                        context: ConversationContext) -> HandlerResult:
        message = (args.message if args else None) or Messages.DEFAULT_GREETING
        logger.info(f"💬 Text reply to {user_id}: {message[:80]}")
        self.whatsapp.send_text_message(user_id, message)
        return HandlerResult(context)
