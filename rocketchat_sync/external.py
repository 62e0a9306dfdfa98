# file: rocketchat_sync/external.py

from typing import Any, Dict, List, Union

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import SyncConfig
from rocketchat_sync.exceptions import InvalidParameter
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, RoleSyncRecord
from rocketchat_sync.store import MoodleStore
from rocketchat_sync.sync import RocketChatSync

"""
The operations the course integration page (or a script, or the command line) can call.

Every one of them checks its parameters first, raising InvalidParameter, and answers with a
short status string.
"""


def validate_int(name: str, value: Any) -> int:
    """ Accept ints and digit strings.  bool is not an id."""
    if isinstance(value, bool):
        raise InvalidParameter(f"Invalid parameter {name}: expected an integer, got {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.strip().isdigit():
        result = int(value.strip())
    else:
        raise InvalidParameter(f"Invalid parameter {name}: expected an integer, got {value!r}")
    if result <= 0:
        raise InvalidParameter(f"Invalid parameter {name}: must be positive, got {result}")
    return result


def validate_bool(name: str, value: Any) -> bool:
    """ Accept True/False, 0/1 and their string forms."""
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ('0', '1', 'true', 'false'):
        return value.strip().lower() in ('1', 'true')
    raise InvalidParameter(f"Invalid parameter {name}: expected a boolean, got {value!r}")


def set_course_sync(store: MoodleStore, courseid, pendingsync=False) -> str:
    course_id = validate_int('courseid', courseid)
    pending = validate_bool('pendingsync', pendingsync)

    record = store.get_course_sync(course_id)
    if record:
        record.pendingsync = pending
        store.update_course_sync(record)
    else:
        store.insert_course_sync(CourseSyncRecord(course=course_id, pendingsync=pending))
    logger.info(f"Course {course_id} pending sync set to {int(pending)}")
    return f"Course {course_id} pending sync set to {int(pending)}"


def set_event_based_sync(store: MoodleStore, courseid, eventbasedsync=False) -> str:
    course_id = validate_int('courseid', courseid)
    event_based = validate_bool('eventbasedsync', eventbasedsync)

    record = store.get_course_sync(course_id)
    if record:
        record.eventbasedsync = event_based
        store.update_course_sync(record)
    else:
        store.insert_course_sync(CourseSyncRecord(course=course_id, eventbasedsync=event_based))
    logger.info(f"Course {course_id} event based sync set to {int(event_based)}")
    return f"Course {course_id} event based sync set to {int(event_based)}"


def set_role_sync(store: MoodleStore, roleid, requiresync=False) -> str:
    role_id = validate_int('roleid', roleid)
    require = validate_bool('requiresync', requiresync)

    record = store.get_role_sync(role_id)
    if record:
        record.requiresync = require
        store.update_role_sync(record)
    else:
        store.insert_role_sync(RoleSyncRecord(role=role_id, requiresync=require))
    logger.info(f"Role {role_id} sync set to {int(require)}")
    return f"Role {role_id} sync set to {int(require)}"


def manually_trigger_sync(store: MoodleStore, courseid, settings: Union[SyncConfig, None] = None,
                          client: Union[RocketChatClient, None] = None) -> str:
    """
    Sync one course now, whether or not it is flagged as pending.
    The outcome is in the course's sync record, the returned string only says it ran.
    """
    course_id = validate_int('courseid', courseid)
    record = RocketChatSync(store, settings=settings, client=client).sync_pending_course(course_id)
    status = 'with errors' if record.error else 'successfully'
    return f"Sync of course {course_id} triggered, finished {status}"


def is_external_connection_allowed(settings: SyncConfig) -> bool:
    return bool(settings.allow_external_connection)


def validate_account_link(client: RocketChatClient, email: str, password: str) -> Dict[str, str]:
    """
    Check Rocket.Chat credentials someone wants to link to their Moodle account.
    :return: dict of field name -> error message.  Empty when the credentials work.
    """
    errors = {}
    result = client.authenticate(email, password)
    if not result.success:
        errors['email'] = 'Unexpected result while trying to connect to Rocket.Chat.'
        message = result.message or result.error
        if message:
            errors['email'] += f' The message was: {message}'
    return errors


def course_overview(store: MoodleStore) -> List[Dict]:
    return store.get_course_sync_overview()


def role_overview(store: MoodleStore) -> List[Dict]:
    return store.get_role_sync_overview()
