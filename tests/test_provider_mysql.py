# file: tests/test_provider_mysql.py

from unittest.mock import MagicMock, patch

import pytest

from rocketchat_sync.config import config
from rocketchat_sync.models import CourseSyncRecord
from rocketchat_sync.provider_mysql import Mysql, MoodleMySQLStore


@pytest.fixture
def cursor():
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.description = []
    cursor.fetchall.return_value = []
    return cursor


@pytest.fixture
def connect(cursor):
    with patch('pymysql.connect') as connect:
        connect.return_value.cursor.return_value = cursor
        yield connect


@pytest.fixture
def mysql_store(connect):
    return MoodleMySQLStore('db.example.com', 'moodle_sync', 'dbsecret', 'moodle', prefix='m_')


def returns(cursor, columns, rows):
    cursor.description = [(c,) for c in columns]
    cursor.fetchall.return_value = rows


def test_one_instance_per_connection():
    assert Mysql('h', 'db', 'u', 'p1') is Mysql('h', 'db', 'u', 'p2')
    assert Mysql('h', 'db', 'u', 'p1').connection_parameters['password'] == 'p1'
    assert Mysql('h', 'db', 'u', 'p1') is not Mysql('h', 'other', 'u', 'p1')


def test_plugin_config(mysql_store, connect, cursor):
    returns(cursor, ['name', 'value'], [('host', 'chat.example.com'), ('groupregex', '.*Lab.*')])
    assert mysql_store.get_plugin_config() == {'host': 'chat.example.com', 'groupregex': '.*Lab.*'}

    query, params = cursor.execute.call_args.args
    assert 'FROM m_config_plugins' in query
    assert params == ('local_rocketchat',)
    connect.assert_called_with(host='db.example.com', user='moodle_sync', password='dbsecret', database='moodle',
                               charset='utf8mb4')
    connect.return_value.commit.assert_called_once()
    connect.return_value.close.assert_called_once()


def test_get_course_sync(mysql_store, cursor):
    returns(cursor, ['id', 'course', 'pendingsync', 'eventbasedsync', 'lastsync', 'error'],
            [(3, 5, 1, 0, None, None)])
    assert mysql_store.get_course_sync(5) == CourseSyncRecord(id=3, course=5, pendingsync=True)


def test_get_course_sync_missing(mysql_store, cursor):
    assert mysql_store.get_course_sync(5) is None


def test_insert_course_sync(mysql_store, cursor):
    cursor.lastrowid = 17
    record = CourseSyncRecord(course=5, pendingsync=True)
    assert mysql_store.insert_course_sync(record) == 17
    assert record.id == 17

    query, params = cursor.execute.call_args.args
    assert 'INSERT INTO m_local_rocketchat_courses' in query
    assert params == {'id': None, 'course': 5, 'pendingsync': 1, 'eventbasedsync': 0, 'lastsync': None,
                      'error': None}


def test_update_course_sync(mysql_store, connect, cursor):
    cursor.rowcount = 1
    mysql_store.update_course_sync(CourseSyncRecord(id=17, course=5, lastsync=1700000000, error='[x] y'))
    query, params = cursor.execute.call_args.args
    assert query.strip().startswith('UPDATE m_local_rocketchat_courses')
    assert params['id'] == 17 and params['pendingsync'] == 0 and params['error'] == '[x] y'
    connect.return_value.commit.assert_called_once()


def test_failed_write_rolls_back(mysql_store, connect, cursor):
    cursor.execute.side_effect = RuntimeError('deadlock')
    with pytest.raises(RuntimeError):
        mysql_store.update_course_sync(CourseSyncRecord(id=17, course=5))
    connect.return_value.rollback.assert_called()
    connect.return_value.commit.assert_not_called()


def test_dryrun_skips_writes(mysql_store, cursor):
    config.dryrun = True
    record = CourseSyncRecord(course=5)
    assert mysql_store.insert_course_sync(record) == -1
    cursor.execute.assert_not_called()


def test_group_members(mysql_store, cursor):
    returns(cursor, ['id', 'username', 'email', 'firstname', 'lastname'],
            [(301, 'jdoe', 'jane.doe@example.com', 'Jane', 'Doe')])
    assert mysql_store.get_group_members(11) == [
        {'id': 301, 'username': 'jdoe', 'email': 'jane.doe@example.com', 'firstname': 'Jane', 'lastname': 'Doe'}]
    query, params = cursor.execute.call_args.args
    assert 'm_groups_members gm' in query and 'JOIN m_user u' in query
    assert params == (11,)


def test_course_overview(mysql_store, cursor):
    returns(cursor, ['courseid', 'shortname', 'eventbasedsync', 'pendingsync', 'lastsync', 'error'],
            [(5, 'CS101', 0, 1, None, None)])
    assert mysql_store.get_course_sync_overview()[0]['pendingsync'] == 1
    assert 'LEFT JOIN m_local_rocketchat_courses' in cursor.execute.call_args.args[0]
