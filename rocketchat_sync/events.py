# file: rocketchat_sync/events.py

from typing import Callable, Dict, Tuple

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import SyncConfig
from rocketchat_sync.exceptions import NotFound, RemoteCallFailure
from rocketchat_sync.logger import logger
from rocketchat_sync.models import GroupMemberAddedEvent, UserEnrolmentUpdatedEvent
from rocketchat_sync.store import MoodleStore
from rocketchat_sync.subscription import SubscriptionManager
from rocketchat_sync.sync import is_event_based_sync_on_course
from rocketchat_sync.user import UserManager

"""
Handlers for Moodle events, for courses that have event based sync turned on.

They do the one small thing the event is about and nothing else: no channels or users are
created here, those come from the full course sync.  Each handler logs in with a fresh client
and quietly gives up if that doesn't work.

Pass the event payload as Moodle has it, or the typed event:

    group_member_added({'courseid': 5, 'objectid': 12, 'relateduserid': 301}, store)
"""


def get_user_and_group_by_event(event: GroupMemberAddedEvent, store: MoodleStore) -> Tuple[Dict, Dict]:
    user = store.get_user(event.user_id)
    if user is None:
        raise NotFound(f"User does not exist: {event.user_id}")
    group = store.get_group(event.group_id)
    if group is None:
        raise NotFound(f"Group does not exist: {event.group_id}")
    return user, group


def _connect(store: MoodleStore, settings: SyncConfig, client_factory: Callable) -> RocketChatClient:
    if settings is None:
        settings = SyncConfig.from_plugin_config(store.get_plugin_config())
    return client_factory(settings)


def group_member_added(event, store: MoodleStore, settings: SyncConfig = None,
                       client_factory: Callable = RocketChatClient) -> bool:
    """
    Subscribe a new group member to the group's channel.
    :param event: GroupMemberAddedEvent or the Moodle event data dict
    :param store: the Moodle store
    :param settings: Rocket.Chat settings.  Read from the plugin config if None.
    :param client_factory: builds the client from the settings
    :return: True if a subscription was added
    """
    if isinstance(event, dict):
        event = GroupMemberAddedEvent.from_event_data(event)

    if not is_event_based_sync_on_course(store, event.course_id):
        logger.debug(f"Event based sync is off for course {event.course_id}, ignoring group member added.")
        return False

    client = _connect(store, settings, client_factory)
    if not client.authenticated:
        return False

    user, group = get_user_and_group_by_event(event, store)
    subscription_api = SubscriptionManager(client, store)
    added = subscription_api.add_subscription_for_user(user, group)
    for error in subscription_api.errors:
        logger.error(f"Group member added in course {event.course_id}: {error}")
    return added


def user_enrolment_updated(event, store: MoodleStore, settings: SyncConfig = None,
                           client_factory: Callable = RocketChatClient) -> bool:
    """
    Activate or deactivate the chat user when their enrolment is suspended or resumed.
    :param event: UserEnrolmentUpdatedEvent or the Moodle event data dict
    :return: True if the chat user was looked at.  False when skipped or the update failed.
    """
    if isinstance(event, dict):
        event = UserEnrolmentUpdatedEvent.from_event_data(event)

    if not is_event_based_sync_on_course(store, event.course_id):
        logger.debug(f"Event based sync is off for course {event.course_id}, ignoring enrolment update.")
        return False

    client = _connect(store, settings, client_factory)
    if not client.authenticated:
        return False

    try:
        UserManager(client, store).update_user_activity(event.enrolment_id)
    except RemoteCallFailure as e:
        logger.error(f"User enrolment updated in course {event.course_id}: {e}")
        return False
    return True
