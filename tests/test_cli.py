# file: tests/test_cli.py

import json
from unittest.mock import patch

import pytest

from rocketchat_sync import cli
from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import config
from rocketchat_sync.models import CourseSyncRecord


@pytest.fixture
def settings_file(tmp_path):
    filename = tmp_path / 'rocketchat_sync.json'
    filename.write_text(json.dumps({'db_user': 'moodle_sync', 'db_password': 'dbsecret',
                                    'rocketchat': {'host': 'chat-test.example.com'}}))
    return str(filename)


@pytest.fixture
def patched(store, chat_server):
    """ The cli against the memory store and the fake chat server."""
    def make_client(settings, login=True):
        return RocketChatClient(settings, session=chat_server, login=login)

    with patch('rocketchat_sync.cli.connect_store', return_value=store), \
            patch('rocketchat_sync.cli.RocketChatClient', side_effect=make_client), \
            patch('rocketchat_sync.sync.RocketChatClient', side_effect=make_client):
        yield


def test_missing_settings_file(tmp_path):
    assert cli.main(['--settings', str(tmp_path / 'nope.json'), 'status']) == 2


def test_sync(settings_file, patched, store, chat_server):
    store.insert_course_sync(CourseSyncRecord(course=5, pendingsync=True))
    assert cli.main(['--settings', settings_file, 'sync']) == 0
    assert store.get_course_sync(5).pendingsync is False
    assert chat_server.rooms == ['CS101-Lab-A', 'CS101-Lab-B']


def test_settings_file_overrides_plugin_config(settings_file, patched, store):
    with patch('rocketchat_sync.cli.RocketChatSync') as sync_class:
        cli.main(['--settings', settings_file, 'sync'])
    assert sync_class.call_args.kwargs['settings'].host == 'chat-test.example.com'


def test_sync_with_errors(settings_file, patched, store, chat_server):
    store.insert_course_sync(CourseSyncRecord(course=5, pendingsync=True))
    chat_server.fail('/api/v1/channels.create')
    assert cli.main(['--settings', settings_file, 'sync']) == 1


def test_dryrun_flag(settings_file, patched, store, chat_server):
    store.insert_course_sync(CourseSyncRecord(course=5, pendingsync=True))
    cli.main(['--settings', settings_file, '--dryrun', 'sync'])
    assert config.dryrun is True
    assert chat_server.calls_to('/api/v1/channels.create') == []
    assert store.get_course_sync(5).pendingsync is True


def test_flag_commands(settings_file, patched, store, capsys):
    assert cli.main(['--settings', settings_file, 'set-pending', '5']) == 0
    assert cli.main(['--settings', settings_file, 'set-event-sync', '5']) == 0
    assert cli.main(['--settings', settings_file, 'set-pending', '5', '--off']) == 0
    assert cli.main(['--settings', settings_file, 'set-role-sync', '1']) == 0

    record = store.get_course_sync(5)
    assert (record.pendingsync, record.eventbasedsync) == (False, True)
    assert store.get_role_sync(1).requiresync is True
    assert 'Course 5 pending sync set to 0' in capsys.readouterr().out


def test_bad_id(settings_file, patched):
    assert cli.main(['--settings', settings_file, 'set-pending', 'CS101']) == 1


def test_sync_course(settings_file, patched, capsys):
    assert cli.main(['--settings', settings_file, 'sync-course', '5']) == 0
    assert 'Sync of course 5 triggered, finished successfully' in capsys.readouterr().out


def test_status(settings_file, patched, store, capsys):
    store.insert_course_sync(CourseSyncRecord(course=5, lastsync=1700000000, error='[channel_creation] nope'))
    assert cli.main(['--settings', settings_file, 'status']) == 0
    out = capsys.readouterr().out
    assert 'CS101' in out and 'FAILED' in out and '[channel_creation] nope' in out
    assert 'ENG 200' in out and 'never' in out


def test_link_account(settings_file, patched, chat_server, capsys):
    with patch('getpass.getpass', return_value='secret'):
        assert cli.main(['--settings', settings_file, 'link-account', 'jane.doe@example.com']) == 0
    assert chat_server.calls_to('/api/v1/login')[-1].json == {'user': 'jane.doe@example.com', 'password': 'secret'}
    assert 'Connected to https://chat-test.example.com' in capsys.readouterr().out


def test_link_account_refused(settings_file, patched, chat_server):
    chat_server.override('/api/v1/login', {'status': 'error', 'message': 'Incorrect password'}, 401)
    with patch('getpass.getpass', return_value='wrong'):
        assert cli.main(['--settings', settings_file, 'link-account', 'jane.doe@example.com']) == 1
