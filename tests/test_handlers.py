import re

import pytest

from ai.tools import validate_tool_arguments
from database.manager import DatabaseError
from utils.constants import ConversationStages as Stages
from workflow.context import CartLine, ConversationContext
from workflow.handlers import ToolHandlers
from tests.conftest import USER, add_food


def args(tool_name, **arguments):
    return validate_tool_arguments(tool_name, arguments)


def row_ids(interactive):
    return [row['id'] for section in interactive['action']['sections'] for row in section['rows']]


def raise_db_error(*_args):
    raise DatabaseError('database is locked')


class TestMenu:
    def test_show_food_menu_lists_categories(self, handlers, whatsapp, context):
        result = handlers.show_food_menu(None, USER, context)

        menu = whatsapp.interactives('list')[0]
        assert menu['action']['sections'][0]['title'] == 'Food Categories'
        assert row_ids(menu) == ['cat_beverages', 'cat_momos', 'cat_noodles', 'cat_rice']
        assert menu['action']['sections'][0]['rows'][1]['title'] == 'Momos 🥟'
        assert result.context.stage == Stages.VIEWING_MENU
        assert result.reply is None

    def test_empty_menu_falls_back_to_momos_row(self, empty_db, whatsapp, context):
        ToolHandlers(empty_db, whatsapp).show_food_menu(None, USER, context)
        assert row_ids(whatsapp.interactives('list')[0]) == ['cat_momos']

    def test_menu_storage_error_keeps_context(self, handlers, whatsapp, monkeypatch):
        monkeypatch.setattr(handlers.db, 'get_categories', raise_db_error)
        context = ConversationContext(stage=Stages.CART_OPTIONS)

        result = handlers.show_food_menu(None, USER, context)

        assert whatsapp.texts() == ["Sorry, I couldn't load the menu. Please try again."]
        assert result.context is context

    def test_category_rows_are_paginated_by_ten(self, empty_db, whatsapp, context):
        for index in range(23):
            add_food(empty_db, f"Momo Variety Number {index:02d} Extra Long", 100 + index, 'momos',
                     description='x' * 80)

        result = ToolHandlers(empty_db, whatsapp).show_category_items(
            args('show_category_items', category='momos'), USER, context
        )

        sections = whatsapp.interactives('list')[0]['action']['sections']
        assert [len(section['rows']) for section in sections] == [10, 10, 3]
        assert [section['title'] for section in sections] == ['Momos', 'More momos', 'More momos']
        first = sections[0]['rows'][0]
        assert len(first['title']) <= 24
        assert first['description'] == 'Rs.100 - ' + 'x' * 50
        assert result.context.stage == Stages.VIEWING_ITEMS
        assert result.context.current_category == 'momos'

    def test_category_body_shows_cart_summary(self, handlers, whatsapp):
        context = ConversationContext(cart=[CartLine(1, 'Steamed Veg Momo', 180.0, 2)])
        handlers.show_category_items(args('show_category_items', category='rice'), USER, context)
        assert whatsapp.interactives('list')[0]['body']['text'].startswith('🛒 Cart: 1 item(s) - Rs.360')

    def test_empty_category_redirects_to_menu(self, handlers, whatsapp, context):
        result = handlers.show_category_items(args('show_category_items', category='pizza'), USER, context)

        assert whatsapp.texts() == ['No items found in pizza. Try another category!']
        assert result.context.stage == Stages.VIEWING_MENU

    def test_momo_varieties_shows_momos(self, handlers, whatsapp, context):
        result = handlers.show_momo_varieties(None, USER, context)
        assert result.context.current_category == 'momos'
        assert len(row_ids(whatsapp.interactives('list')[0])) == 6


class TestCart:
    def test_add_to_cart_merges_with_stored_price(self, handlers, whatsapp, context):
        first = handlers.add_to_cart(args('add_to_cart', food_id=5), USER, context)
        second = handlers.add_to_cart(args('add_to_cart', food_id=5, quantity=2, price=1), USER, first.context)

        assert len(second.context.cart) == 1
        line = second.context.cart[0]
        assert (line.food_id, line.price, line.quantity) == (5, 260.0, 3)
        assert second.context.stage == Stages.QUICK_CART_ACTION
        assert second.context.last_added_item == 'Tandoori Momo'
        assert context.cart == []

        buttons = whatsapp.interactives('button')[-1]
        assert [b['reply']['id'] for b in buttons['action']['buttons']] == [
            'more_momos', 'view_all_categories', 'proceed_checkout'
        ]
        assert 'Total: Rs.780' in buttons['body']['text']

    def test_add_unknown_food(self, handlers, whatsapp, context):
        result = handlers.add_to_cart(args('add_to_cart', food_id=4242), USER, context)
        assert whatsapp.texts() == ['Sorry, that item is not available.']
        assert result.context is context

    def test_add_by_name_single_match(self, handlers, whatsapp, context):
        result = handlers.add_item_by_name(args('add_item_by_name', name='tandoori', quantity=2), USER, context)
        assert result.context.cart[0].name == 'Tandoori Momo'
        assert result.context.cart_total == 520
        button_ids = [b['reply']['id'] for b in whatsapp.interactives('button')[0]['action']['buttons']]
        assert button_ids[0] == 'more_momos'

    def test_add_by_name_multiple_matches_asks(self, handlers, whatsapp, context):
        result = handlers.add_item_by_name(args('add_item_by_name', name='coffee'), USER, context)

        assert result.context.stage == Stages.SELECTING_ITEM
        assert result.context.cart == []
        assert row_ids(whatsapp.interactives('list')[0]) == ['add_17', 'add_20']

    def test_add_by_name_no_match(self, handlers, whatsapp, context):
        handlers.add_item_by_name(args('add_item_by_name', name='pizza'), USER, context)
        assert '"pizza" is not available on our menu' in whatsapp.texts()[0]

    def test_add_by_name_requires_name(self, handlers, whatsapp, context):
        handlers.add_item_by_name(args('add_item_by_name', name='  '), USER, context)
        assert whatsapp.texts() == ['Please specify which item you want to add.']

    def test_cart_options(self, handlers, whatsapp):
        context = ConversationContext(cart=[CartLine(1, 'Steamed Veg Momo', 180.0, 2),
                                            CartLine(16, 'Masala Tea', 40.0, 1)])
        result = handlers.show_cart_options(None, USER, context)

        body = whatsapp.interactives('button')[0]['body']['text']
        assert '• Steamed Veg Momo x2 - Rs.360' in body
        assert 'Subtotal: Rs.400' in body
        assert result.context.stage == Stages.CART_OPTIONS

    def test_empty_cart_options_redirects_to_menu(self, handlers, whatsapp, context):
        result = handlers.show_cart_options(None, USER, context)
        assert whatsapp.texts() == ['Your cart is empty! Let me show you our menu.']
        assert result.context.stage == Stages.VIEWING_MENU


class TestConfirmOrder:
    def test_confirm_revalidates_and_reprices(self, handlers, whatsapp):
        context = ConversationContext(cart=[CartLine(1, 'Steamed Veg Momo', 1.0, 2)])
        result = handlers.confirm_order(args('confirm_order'), USER, context)

        assert result.context.stage == Stages.CONFIRMING_ORDER
        assert result.context.cart[0].price == 180.0
        assert result.context.pending_order['total'] == 360
        confirmation = whatsapp.interactives('button')[0]
        assert [b['reply']['id'] for b in confirmation['action']['buttons']] == ['confirm_order', 'cancel_order']
        assert 'Total: Rs.360' in confirmation['body']['text']

    def test_confirm_drops_unresolved_lines(self, handlers, whatsapp, context):
        result = handlers.confirm_order(
            args('confirm_order', items=[{'name': 'Tandoori', 'quantity': 2, 'price': 5},
                                         {'name': 'Pizza'}]),
            USER, context
        )

        assert whatsapp.texts() == ['⚠️ Note: These items are not available and were removed:\n• Pizza']
        assert [(line.food_id, line.quantity, line.price) for line in result.context.cart] == [(5, 2, 260.0)]

    def test_all_invalid_lines_create_no_order(self, handlers, whatsapp, db):
        context = ConversationContext(cart=[CartLine(999, 'Ghost Momo', 10.0)])
        result = handlers.confirm_order(args('confirm_order'), USER, context)

        assert whatsapp.texts()[0].startswith('❌ Sorry, none of the items are available:\n• Ghost Momo')
        assert result.context.stage == Stages.VIEWING_MENU
        assert db.get_database_stats()['orders'] == 0

    def test_confirm_with_empty_cart(self, handlers, whatsapp, context):
        result = handlers.confirm_order(args('confirm_order'), USER, context)
        assert whatsapp.texts() == ['Your cart is empty! Let me show you our menu.']
        assert result.context.stage == Stages.VIEWING_MENU


class TestOrderResponse:
    @pytest.fixture
    def confirming(self):
        return ConversationContext(stage=Stages.CONFIRMING_ORDER,
                                   cart=[CartLine(2, 'Steamed Chicken Momo', 220.0, 2)])

    def test_confirmed_persists_order_and_asks_payment(self, handlers, whatsapp, db, confirming):
        result = handlers.process_order_response(
            args('process_order_response', action='confirmed'), USER, confirming
        )

        assert result.context.stage == Stages.SELECTING_PAYMENT
        assert isinstance(result.context.order_id, int)
        assert db.get_order_total(result.context.order_id) == 440
        buttons = whatsapp.interactives('button')[0]['action']['buttons']
        assert [b['reply']['id'] for b in buttons] == ['pay_cod', 'pay_online']

    def test_database_outage_gives_synthetic_order_id(self, handlers, whatsapp, monkeypatch, confirming):
        monkeypatch.setattr(handlers.db, 'create_order_with_items', raise_db_error)

        result = handlers.process_order_response(
            args('process_order_response', action='confirmed'), USER, confirming
        )

        text = whatsapp.texts()[0]
        assert text.startswith('✅ Order Confirmed!')
        assert re.search(r'Order ID: #MH\d{6}\n', text)
        assert result.context.stage == Stages.ORDER_COMPLETE
        assert result.context.cart == []

    def test_cancel_asks_first(self, handlers, whatsapp, confirming):
        result = handlers.process_order_response(
            args('process_order_response', action='cancelled'), USER, confirming
        )

        prompt = whatsapp.interactives('button')[0]
        assert [b['reply']['id'] for b in prompt['action']['buttons']] == ['confirm_cancel', 'back_to_cart']
        assert '💰 Total: Rs.440' in prompt['body']['text']
        assert result.context.stage == Stages.CONFIRMING_CANCEL
        assert result.context.cart == confirming.cart

    def test_cancel_confirm_clears_cart_and_open_order(self, handlers, whatsapp, db, confirming):
        order = db.create_order_with_items(USER, [(2, 2)])
        confirming.order_id = order.id
        result = handlers.process_order_response(
            args('process_order_response', action='cancel_confirm'), USER, confirming
        )

        assert whatsapp.texts()[0].startswith('❌ Order Cancelled\n\n2 item(s) removed from cart.')
        assert result.context == ConversationContext(stage=Stages.INITIAL, last_action='order_cancelled')
        assert db.get_order(order.id).status == 'cancelled'

    def test_cancel_confirm_leaves_paid_order_alone(self, handlers, db, confirming):
        order = db.create_order_with_items(USER, [(2, 2)])
        db.select_payment(order.id, 'COD')
        confirming.order_id = order.id

        handlers.process_order_response(
            args('process_order_response', action='cancel_confirm'), USER, confirming
        )

        assert db.get_order(order.id).status == 'confirmed'

    def test_confirming_again_cancels_the_unpaid_order(self, handlers, db, confirming):
        stale = db.create_order_with_items(USER, [(1, 1)])
        confirming.order_id = stale.id

        result = handlers.process_order_response(
            args('process_order_response', action='confirmed'), USER, confirming
        )

        assert db.get_order(stale.id).status == 'cancelled'
        assert result.context.order_id != stale.id
        assert db.get_order_total(result.context.order_id) == 440


class TestPayment:
    def test_cod_uses_stored_total(self, handlers, whatsapp, db):
        order = db.create_order_with_items(USER, [(1, 2), (16, 1)])
        context = ConversationContext(stage=Stages.SELECTING_PAYMENT, order_id=order.id,
                                      cart=[CartLine(1, 'Steamed Veg Momo', 1.0, 2)])

        result = handlers.process_payment(args('process_payment', method='cod'), USER, context)

        text = whatsapp.texts()[0]
        assert '💳 Payment: Cash on Delivery' in text
        assert 'Please keep Rs.400 ready!' in text
        assert f'Order ID: #{order.id}' in text
        assert db.get_order(order.id).payment_method == 'COD'
        assert result.context.stage == Stages.ORDER_COMPLETE
        assert result.context.cart == []
        assert result.context.order_id is None

    def test_online_sends_details_and_placed_notice(self, handlers, whatsapp, db):
        order = db.create_order_with_items(USER, [(5, 1)])
        context = ConversationContext(stage=Stages.SELECTING_PAYMENT, order_id=order.id)

        handlers.process_payment(args('process_payment', method='ONLINE'), USER, context)

        details, placed = whatsapp.texts()
        assert '📱 *eSewa*' in details
        assert '💰 *Amount to Pay: Rs.260*' in details
        assert placed.startswith('✅ Order Placed!')
        assert db.get_order(order.id).status == 'confirmed'

    def test_payment_storage_failure(self, handlers, whatsapp, monkeypatch):
        monkeypatch.setattr(handlers.db, 'select_payment', raise_db_error)
        context = ConversationContext(stage=Stages.SELECTING_PAYMENT, order_id=1)

        result = handlers.process_payment(args('process_payment', method='COD'), USER, context)

        assert whatsapp.texts() == ["Order confirmed! We'll contact you for payment details."]
        assert result.context.stage == Stages.ORDER_COMPLETE


class TestHistoryAndText:
    def test_empty_history_nudges(self, handlers, whatsapp, context):
        handlers.show_order_history(None, USER, context)
        assert "You haven't placed any orders yet!" in whatsapp.texts()[0]

    def test_history_digest(self, handlers, whatsapp, db, context):
        order = db.create_order_with_items(USER, [(1, 2)])
        db.select_payment(order.id, 'COD')

        handlers.show_order_history(None, USER, context)

        text = whatsapp.texts()[0]
        assert f'✅ *Order #{order.id}*' in text
        assert '🛒 1 item(s) | Rs.360' in text
        assert '💳 COD' in text
        assert 'Status: CONFIRMED' in text

    def test_text_reply_defaults_to_greeting(self, handlers, whatsapp, context):
        handlers.send_text_reply(args('send_text_reply'), USER, context)
        handlers.send_text_reply(args('send_text_reply', message='Namaste!'), USER, context)
        assert whatsapp.texts() == [
            "Hello! Welcome to our restaurant 🍽️ Type 'menu' to see our delicious options!",
            'Namaste!',
        ]
