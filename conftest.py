"""Root pytest configuration: a fake Rocket.Chat server and a small Moodle in memory."""

import json
from collections import namedtuple
from urllib.parse import urlparse

import pytest

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import config, SyncConfig
from rocketchat_sync.provider_memory import MemoryStore
from rocketchat_sync.provider_mysql import Mysql

NOW = 1700000000

Call = namedtuple('Call', ['method', 'path', 'json', 'params', 'headers'])


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.status_code = status_code
        self.text = payload if isinstance(payload, str) else json.dumps(payload)


class FakeChatServer:
    """
    Stands in for requests.Session.  Keeps a list of room names and usernames and answers the
    Rocket.Chat calls the sync makes.  Every call is recorded in self.calls.

    Override any endpoint by path:
        server.override('/api/v1/channels.create', {'success': False, 'error': 'nope'}, 400)
    The answer can be a payload dict, raw text, an exception to raise, or a function of the
    request kwargs returning a payload or (payload, status).
    """

    def __init__(self):
        self.rooms = []
        self.users = ['jane.doe']
        self.calls = []
        self.overrides = {}

    def override(self, path, answer, status_code=200):
        self.overrides[path] = (answer, status_code)

    def fail(self, path, error='Internal error'):
        self.override(path, {'success': False, 'error': error}, 400)

    def calls_to(self, path):
        return [c for c in self.calls if c.path == path]

    def request(self, method, url, **kwargs):
        path = urlparse(url).path
        self.calls.append(Call(method, path, kwargs.get('json'), kwargs.get('params'), kwargs.get('headers')))

        if path in self.overrides:
            answer, status_code = self.overrides[path]
            if isinstance(answer, Exception):
                raise answer
            if callable(answer):
                answer = answer(kwargs)
                if isinstance(answer, tuple):
                    answer, status_code = answer
            return FakeResponse(answer, status_code)

        handler = getattr(self, path.rsplit('/', 1)[-1].replace('.', '_'))
        answer = handler(kwargs.get('json') or {}, kwargs.get('params') or {})
        if isinstance(answer, tuple):
            return FakeResponse(*answer)
        return FakeResponse(answer)

    def login(self, body, params):
        return {'status': 'success', 'data': {'authToken': 'token-123', 'userId': 'bot-id'}}

    def rooms_get(self, body, params):
        return {'success': True, 'update': [{'_id': f'room-{name}', 'name': name} for name in self.rooms]}

    def channels_create(self, body, params):
        self.rooms.append(body['name'])
        return {'success': True, 'channel': {'_id': f"room-{body['name']}", 'name': body['name']}}

    def channels_setType(self, body, params):
        return {'success': True}

    def groups_info(self, body, params):
        if params['roomName'] in self.rooms:
            return {'success': True, 'group': {'_id': f"room-{params['roomName']}"}}
        return {'success': False, 'error': 'The required "roomId" or "roomName" param provided does not match any group'}, 400

    def groups_invite(self, body, params):
        return {'success': True}

    def users_list(self, body, params):
        return {'success': True, 'users': [{'_id': f'user-{name}', 'username': name} for name in self.users]}

    def users_create(self, body, params):
        self.users.append(body['username'])
        return {'success': True, 'user': {'_id': f"user-{body['username']}", 'username': body['username']}}

    def users_info(self, body, params):
        if params['username'] in self.users:
            return {'success': True, 'user': {'_id': f"user-{params['username']}"}}
        return {'success': False, 'error': 'User not found.'}, 400

    def users_update(self, body, params):
        return {'success': True}


@pytest.fixture(autouse=True)
def reset_config():
    config.dryrun = False
    config.debug = False
    yield
    config.dryrun = False
    config.debug = False
    Mysql._instances.clear()


@pytest.fixture
def chat_server():
    return FakeChatServer()


@pytest.fixture
def settings():
    return SyncConfig(host='chat.example.com', username='moodle_bot', password='secret', group_regex='.*Lab.*')


@pytest.fixture
def client(settings, chat_server):
    return RocketChatClient(settings, session=chat_server)


@pytest.fixture
def client_factory(chat_server):
    return lambda settings: RocketChatClient(settings, session=chat_server)


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    """
    CS101 has groups Lab-A, Lab-B and Misc.  jane.doe already has a chat account.
    ENG 200 has one group, Lab 1, and nobody enrolled.
    """
    return MemoryStore(
        plugin_config={'host': 'chat.example.com', 'port': '', 'protocol': '0', 'username': 'moodle_bot',
                       'password': 'secret', 'groupregex': '.*Lab.*', 'allowexternalconnection': '1'},
        courses=[{'id': 5, 'shortname': 'CS101', 'fullname': 'Intro to Computer Science'},
                 {'id': 6, 'shortname': 'ENG 200', 'fullname': 'Writing'}],
        groups=[{'id': 11, 'courseid': 5, 'name': 'Lab-A'},
                {'id': 12, 'courseid': 5, 'name': 'Lab-B'},
                {'id': 13, 'courseid': 5, 'name': 'Misc'},
                {'id': 21, 'courseid': 6, 'name': 'Lab 1'}],
        users=[{'id': 301, 'username': 'jdoe', 'email': 'jane.doe@example.com', 'firstname': 'Jane', 'lastname': 'Doe'},
               {'id': 302, 'username': 'bsmith', 'email': 'bob.smith@example.com', 'firstname': 'Bob',
                'lastname': 'Smith'},
               {'id': 303, 'username': 'cjones', 'email': 'carol.jones@example.com', 'firstname': 'Carol',
                'lastname': 'Jones'}],
        user_enrolments=[{'id': 1, 'userid': 301, 'courseid': 5, 'status': 0},
                         {'id': 2, 'userid': 302, 'courseid': 5, 'status': 0},
                         {'id': 3, 'userid': 303, 'courseid': 5, 'status': 1}],
        group_members=[{'groupid': 11, 'userid': 301}, {'groupid': 11, 'userid': 302},
                       {'groupid': 12, 'userid': 303}, {'groupid': 13, 'userid': 301}],
        roles=[{'id': 1, 'shortname': 'manager', 'name': 'Manager'},
               {'id': 5, 'shortname': 'student', 'name': 'Student'}],
    )
