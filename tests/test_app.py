import pytest

from app import create_flask_app
from tests.conftest import USER


@pytest.fixture
def client(workflow):
    app = create_flask_app(config={'verify_token': 'verify-me'}, workflow=workflow,
                           start_background_tasks=False)
    app.config['TESTING'] = True
    return app.test_client()


def whatsapp_delivery(*messages):
    return {
        'object': 'whatsapp_business_account',
        'entry': [{'changes': [{'value': {
            'metadata': {'phone_number_id': '123456'},
            'contacts': [{'profile': {'name': 'Pema'}}],
            'messages': list(messages),
        }}]}]
    }


def text_message(message_id, body):
    return {'from': USER, 'id': message_id, 'type': 'text', 'text': {'body': body}}


def test_webhook_verification(client):
    ok = client.get('/webhook?hub.mode=subscribe&hub.verify_token=verify-me&hub.challenge=1158201444')
    assert ok.status_code == 200
    assert ok.get_data(as_text=True) == '1158201444'

    denied = client.get('/webhook?hub.mode=subscribe&hub.verify_token=nope&hub.challenge=1')
    assert denied.status_code == 403


def test_webhook_processes_messages_in_order(client, whatsapp):
    response = client.post('/webhook', json=whatsapp_delivery(
        text_message('m1', 'show my orders'),
        {'from': USER, 'id': 'm2', 'type': 'interactive', 'interactive': {
            'type': 'button_reply', 'button_reply': {'id': 'cat_rice', 'title': 'Rice'}}},
    ))

    assert response.status_code == 200
    assert response.get_json()['processed'] == 2
    assert whatsapp.sent[0]['type'] == 'text'
    assert whatsapp.sent[1]['interactive']['header']['text'] == '🍽️ RICE Menu'


def test_duplicate_delivery_is_processed_once(client, whatsapp):
    delivery = whatsapp_delivery(text_message('same-id', 'my orders'))
    client.post('/webhook', json=delivery)
    client.post('/webhook', json=delivery)
    assert len(whatsapp.texts()) == 1


def test_other_objects_are_acknowledged(client, whatsapp):
    page = client.post('/webhook', json={'object': 'page', 'entry': [{'messaging': [
        {'sender': {'id': 'psid'}, 'message': {'text': 'hello'}}
    ]}]})
    assert page.status_code == 200
    assert page.get_json()['processed'] == 1

    other = client.post('/webhook', json={'object': 'instagram'})
    assert other.status_code == 200
    assert whatsapp.sent == []


def test_health_reports_database_state(client, workflow, monkeypatch):
    healthy = client.get('/health')
    assert healthy.status_code == 200
    assert healthy.get_json() == {'status': 'ok', 'database': 'connected'}

    monkeypatch.setattr(workflow.db, 'ping', lambda: False)
    down = client.get('/health')
    assert down.status_code == 503
    assert down.get_json() == {'status': 'error', 'database': 'disconnected'}


def test_init_db_returns_table_counts(client):
    response = client.post('/init-db')
    assert response.status_code == 200
    assert response.get_json()['tables']['foods'] == 20


def test_simulate_runs_the_pipeline(client):
    response = client.post('/simulate', json={'user_id': USER, 'button_id': 'add_5'})

    body = response.get_json()
    assert response.status_code == 200
    context = body['simulation']['response']['context']
    assert context['stage'] == 'quick_cart_action'
    assert context['cart'][0]['food_id'] == 5

    assert client.post('/simulate', json={}).status_code == 400


def test_unexpected_errors_return_json_500(client, workflow, monkeypatch):
    def explode():
        raise RuntimeError('boom')
    monkeypatch.setattr(workflow, 'health_check', explode)

    response = client.get('/health')
    assert response.status_code == 500
    assert response.get_json()['status'] == 'error'


def test_unknown_route_is_still_404(client):
    assert client.get('/nope').status_code == 404
