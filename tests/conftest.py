import pytest

from ai.processor import ToolDecision
from database.manager import RestaurantDatabase
from utils.thread_safe_session import ThreadSafeSessionManager
from whatsapp.client import WhatsAppClient
from workflow.context import ConversationContext
from workflow.handlers import ToolHandlers
from workflow.main import OrderingWorkflow
from workflow.router import IntentRouter

USER = '9779800000000'


class RecordingWhatsAppClient(WhatsAppClient):
    """Real payload building, no HTTP: every payload is kept in ``sent``"""

    def __init__(self):
        super().__init__({
            'whatsapp_token': 'test-token',
            'phone_number_id': '123456',
            'verify_token': 'verify-me',
        })
        self.sent = []

    def _post_message(self, payload, description):
        self.sent.append(payload)
        return True

    def texts(self):
        return [p['text']['body'] for p in self.sent if p['type'] == 'text']

    def interactives(self, kind=None):
        return [p['interactive'] for p in self.sent
                if p['type'] == 'interactive' and (kind is None or p['interactive']['type'] == kind)]

    def last(self):
        return self.sent[-1]

    def clear(self):
        self.sent.clear()


class StubClassifier:
    """Returns queued decisions, or a canned text reply once the queue is empty"""

    def __init__(self, decisions=None):
        self.decisions = list(decisions or [])
        self.calls = []

    def queue(self, tool_name, arguments=None, response=''):
        self.decisions.append(ToolDecision(intent=tool_name, tool_name=tool_name,
                                           arguments=arguments or {}, response=response))

    def classify(self, text, context):
        self.calls.append((text, context))
        if self.decisions:
            return self.decisions.pop(0)
        return ToolDecision.text_reply('How can I help you today?')

    def is_available(self):
        return True


@pytest.fixture
def db(tmp_path):
    return RestaurantDatabase(str(tmp_path / 'test.db'))


@pytest.fixture
def empty_db(tmp_path):
    return RestaurantDatabase(str(tmp_path / 'empty.db'), seed_menu=False)


@pytest.fixture
def whatsapp():
    return RecordingWhatsAppClient()


@pytest.fixture
def classifier():
    return StubClassifier()


@pytest.fixture
def handlers(db, whatsapp):
    return ToolHandlers(db, whatsapp)


@pytest.fixture
def router(handlers, classifier):
    return IntentRouter(handlers, classifier)


@pytest.fixture
def context():
    return ConversationContext()


@pytest.fixture
def workflow(db, whatsapp, classifier):
    return OrderingWorkflow(
        {'context_ttl_seconds': 3600},
        database_manager=db,
        whatsapp_client=whatsapp,
        classifier=classifier,
        sessions=ThreadSafeSessionManager(lock_timeout=1.0),
    )


def add_food(db, name, price, category, description='', available=1):
    with db.get_db_connection() as conn:
        cursor = conn.execute(
            "INSERT INTO foods (name, description, price, category, available) VALUES (?, ?, ?, ?, ?)",
            (name, description, price, category, available)
        )
        conn.commit()
        return cursor.lastrowid
