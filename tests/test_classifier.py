import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from ai.processor import AIProcessor
from ai.tools import LLM_TOOL_CATALOG, ToolValidationError, get_llm_tool_names, validate_tool_arguments


def completion(content=None, tool_name=None, arguments='{}'):
    tool_calls = None
    if tool_name:
        tool_calls = [SimpleNamespace(function=SimpleNamespace(name=tool_name, arguments=arguments))]
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def processor_returning(result):
    client = MagicMock()
    if isinstance(result, Exception):
        client.chat.completions.create.side_effect = result
    else:
        client.chat.completions.create.return_value = result
    return AIProcessor(config={'model': 'test-model'}, client=client), client


def test_tool_call_becomes_decision():
    processor, client = processor_returning(
        completion(tool_name='add_item_by_name', arguments=json.dumps({'name': 'jhol', 'quantity': 2}))
    )

    decision = processor.classify('2 jhol momo', {'stage': 'initial', 'cart': []})

    assert decision.tool_name == 'add_item_by_name'
    assert decision.arguments == {'name': 'jhol', 'quantity': 2}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs['model'] == 'test-model'
    assert kwargs['temperature'] == 0.1
    assert kwargs['tool_choice'] == 'auto'
    assert kwargs['tools'] is LLM_TOOL_CATALOG
    assert '"stage": "initial"' in kwargs['messages'][0]['content']


def test_plain_content_becomes_text_reply():
    processor, _ = processor_returning(completion(content='Namaste! Hungry?'))
    decision = processor.classify('hi', {})
    assert decision.tool_name == 'send_text_reply'
    assert decision.arguments == {'message': 'Namaste! Hungry?'}


def test_empty_response_asks_how_to_help():
    processor, _ = processor_returning(completion())
    assert processor.classify('...', {}).arguments == {'message': 'How can I help you today?'}


def test_api_errors_become_apology():
    request = httpx.Request('POST', 'https://api.example.com/v1/chat/completions')
    processor, _ = processor_returning(openai.APIConnectionError(request=request))

    decision = processor.classify('menu', {})

    assert decision.tool_name == 'send_text_reply'
    assert decision.arguments['message'].startswith("Sorry, I'm having trouble understanding")


def test_malformed_arguments_become_apology():
    processor, _ = processor_returning(completion(tool_name='confirm_order', arguments='{not json'))
    assert processor.classify('checkout', {}).tool_name == 'send_text_reply'


def test_fenced_arguments_are_accepted():
    assert AIProcessor._parse_arguments('```json\n{"action": "confirmed"}\n```') == {'action': 'confirmed'}


def test_missing_client_never_calls_out():
    processor = AIProcessor(api_key=None)
    assert processor.is_available() is False
    assert processor.classify('menu', {}).tool_name == 'send_text_reply'


def test_catalog_offers_seven_tools():
    assert sorted(get_llm_tool_names()) == sorted([
        'show_food_menu', 'show_momo_varieties', 'add_item_by_name', 'confirm_order',
        'process_order_response', 'send_text_reply', 'show_order_history',
    ])


def test_argument_models_drop_made_up_prices():
    parsed = validate_tool_arguments('add_to_cart', {'foodId': '7', 'price': 1})
    assert parsed.food_id == 7
    assert not hasattr(parsed, 'price')


@pytest.mark.parametrize('tool_name, arguments', [
    ('process_payment', {'method': 'BITCOIN'}),
    ('add_to_cart', {'food_id': 1, 'quantity': 0}),
    ('process_order_response', {}),
    ('teleport', {}),
])
def test_argument_validation_failures(tool_name, arguments):
    with pytest.raises(ToolValidationError):
        validate_tool_arguments(tool_name, arguments)
