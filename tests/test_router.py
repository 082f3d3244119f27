import pytest

from utils.constants import ConversationStages as Stages
from workflow.context import CartLine, ConversationContext
from workflow.router import InteractiveReply, match_interactive_id, parse_interactive_reply
from tests.conftest import USER


def button(reply_id, title=''):
    return InteractiveReply(type='button_reply', id=reply_id, title=title)


@pytest.mark.parametrize('reply_id, expected', [
    ('cat_noodles', ('show_category_items', {'category': 'noodles'})),
    ('add_42', ('add_to_cart', {'food_id': 42})),
    ('add_more_items', ('show_food_menu', {})),
    ('more_rice', ('show_category_items', {'category': 'rice'})),
    ('view_all_categories', ('show_food_menu', {})),
    ('proceed_checkout', ('confirm_order', {})),
    ('confirm_order', ('process_order_response', {'action': 'confirmed'})),
    ('cancel_order', ('process_order_response', {'action': 'cancelled'})),
    ('confirm_cancel', ('process_order_response', {'action': 'cancel_confirm'})),
    ('back_to_cart', ('show_cart_options', {})),
    ('pay_cod', ('process_payment', {'method': 'COD'})),
    ('pay_online', ('process_payment', {'method': 'ONLINE'})),
    ('something_else', None),
])
def test_interactive_id_table(reply_id, expected):
    assert match_interactive_id(reply_id) == expected


def test_parse_interactive_reply():
    reply = parse_interactive_reply({'type': 'list_reply', 'list_reply': {'id': 'add_3', 'title': 'Fried Veg Momo'}})
    assert reply == InteractiveReply(type='list_reply', id='add_3', title='Fried Veg Momo')
    assert parse_interactive_reply({'type': 'nfm_reply'}) is None
    assert parse_interactive_reply(None) is None


@pytest.mark.parametrize('stage', Stages.ALL)
def test_add_button_adds_that_food_from_any_stage(router, classifier, stage):
    result = router.route('Jhol Momo', ConversationContext(stage=stage), USER, button('add_6'))

    assert [line.food_id for line in result.context.cart] == [6]
    assert result.context.stage == Stages.QUICK_CART_ACTION
    assert classifier.calls == []


def test_add_more_items_is_not_a_food_id(router, whatsapp):
    result = router.route('Add More Items ➕', ConversationContext(), USER, button('add_more_items'))
    assert result.context.stage == Stages.VIEWING_MENU
    assert result.context.cart == []


def test_order_history_keywords_bypass_the_model(router, classifier, whatsapp):
    router.route('Can you show MY ORDERS please', ConversationContext(), USER)

    assert classifier.calls == []
    assert "You haven't placed any orders yet!" in whatsapp.texts()[0]


def test_unknown_interactive_id_falls_through_to_model(router, classifier):
    router.route('Mystery', ConversationContext(), USER, button('mystery_button'))
    assert classifier.calls[0][0] == 'Mystery'


def test_free_text_dispatches_model_tool(router, classifier, whatsapp):
    classifier.queue('add_item_by_name', {'itemName': 'tandoori', 'quantity': 2})
    result = router.route('2 tandoori please', ConversationContext(), USER)

    assert classifier.calls[0][1]['stage'] == Stages.INITIAL
    assert result.context.cart[0].name == 'Tandoori Momo'
    assert result.context.cart[0].quantity == 2


def test_unknown_model_tool_sends_model_text(router, classifier, whatsapp):
    classifier.queue('order_pizza', {}, response='We only serve momos!')
    result = router.route('pizza', ConversationContext(stage=Stages.VIEWING_MENU), USER)

    assert whatsapp.texts() == ['We only serve momos!']
    assert result.context.stage == Stages.VIEWING_MENU


def test_invalid_model_arguments_send_greeting(router, classifier, whatsapp):
    classifier.queue('add_to_cart', {'food_id': 'lots'})
    router.route('add stuff', ConversationContext(), USER)

    assert whatsapp.texts() == ["Hello! Welcome to our restaurant 🍽️ Type 'menu' to see our delicious options!"]


def test_stale_payment_button_redirects_to_cart(router, whatsapp, db):
    context = ConversationContext(stage=Stages.VIEWING_ITEMS,
                                  cart=[CartLine(1, 'Steamed Veg Momo', 180.0)])
    result = router.route('Cash on Delivery', context, USER, button('pay_cod'))

    assert whatsapp.texts()[0].startswith('⚠️ That option is no longer available.')
    assert result.context.stage == Stages.CART_OPTIONS
    assert db.get_database_stats()['orders'] == 0


def test_stale_confirm_button_with_empty_cart_shows_menu(router, whatsapp):
    result = router.route('Confirm', ConversationContext(stage=Stages.ORDER_COMPLETE), USER,
                          button('confirm_order'))

    assert result.context.stage == Stages.VIEWING_MENU
    assert whatsapp.interactives('list')
