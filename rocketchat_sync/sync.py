# file: rocketchat_sync/sync.py

from typing import List, Callable, Union

from rocketchat_sync.channel import ChannelManager
from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import SyncConfig
from rocketchat_sync.exceptions import RocketChatSyncError
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, SyncErrorEntry
from rocketchat_sync.store import MoodleStore
from rocketchat_sync.subscription import SubscriptionManager, SUBSCRIPTION_CREATION
from rocketchat_sync.user import UserManager
import rocketchat_sync.util as util

AUTH_FAILURE = 'auth_failure'
CONNECTION_FAILURE = 'Could not connect to Rocket.Chat. Check the host and the credentials of the integration user.'


class RocketChatSync:
    """
    Sync Moodle courses flagged as pending to Rocket.Chat.

    For each course: make sure it has a local_rocketchat_courses record, then create the channels,
    then the users, then the subscriptions.  All three stages run even if an earlier one had errors.
    The errors are collected and written to the record at the end.  pendingsync is cleared whether
    or not there were errors - a failed course is not retried until someone flags it again.
    """

    def __init__(self, store: MoodleStore, settings: Union[SyncConfig, None] = None,
                 client: Union[RocketChatClient, None] = None,
                 clock: Callable[[], int] = util.unix_timestamp):
        """
        :param store: where the Moodle data and the sync records live
        :param settings: Rocket.Chat connection settings.  Read from the plugin config if None.
        :param client: an already built client.  One is built (and logs in) from settings if None.
        :param clock: returns the time to record as lastsync
        """
        self.store = store
        if client is None:
            if settings is None:
                settings = SyncConfig.from_plugin_config(store.get_plugin_config())
            client = RocketChatClient(settings)
        self.client = client
        self.clock = clock
        self.errors: List[SyncErrorEntry] = []

    def reset_errors(self):
        self.errors = []

    def sync_pending_courses(self) -> List[CourseSyncRecord]:
        """
        Sync every course with pendingsync set.  Each course is independent of the others.
        :return: the updated records
        """
        pending = self.store.get_pending_course_syncs()
        logger.info(f"Found {len(pending)} courses pending sync.")
        results = []
        for course_sync in pending:
            try:  # keep going after individual failures.
                results.append(self.sync_pending_course(course_sync.course))
            except Exception as e:
                logger.error(f"Error syncing course {course_sync.course}: {type(e).__name__} {e}")
                self.reset_errors()
        failed = len([r for r in results if r.error])
        logger.info(f"Synced {len(results) - failed} courses, {failed} with errors.")
        return results

    def sync_pending_course(self, course_id: int) -> CourseSyncRecord:
        course_sync = self.store.get_course_sync(course_id)
        if course_sync is None:
            course_sync = self.create_course_sync(course_id)

        self.run_sync(course_sync)
        return self.record_result(course_sync)

    def is_event_based_sync_on_course(self, course_id: int) -> bool:
        return is_event_based_sync_on_course(self.store, course_id)

    def create_course_sync(self, course_id: int) -> CourseSyncRecord:
        course_sync = CourseSyncRecord(course=course_id, pendingsync=True)
        self.store.insert_course_sync(course_sync)
        logger.debug(f"Created sync record {course_sync.id} for course {course_id}")
        return course_sync

    def run_sync(self, course_sync: CourseSyncRecord):
        if not self.client.authenticated:
            logger.error(f"Not syncing course {course_sync.course}: not logged in to {self.client.url}")
            self.errors.append(SyncErrorEntry(AUTH_FAILURE, CONNECTION_FAILURE))
            return

        course = self.store.get_course(course_sync.course)

        channel_api = ChannelManager(self.client, self.store)
        self._run_stage(channel_api, 'create channels', channel_api.create_channels_for_course, course_sync)

        user_api = UserManager(self.client, self.store)
        self._run_stage(user_api, 'create users', user_api.create_users_for_course, course_sync)

        subscription_api = SubscriptionManager(self.client, self.store)
        if course is None:
            self.errors.append(SyncErrorEntry(SUBSCRIPTION_CREATION, f"Course does not exist: {course_sync.course}"))
        else:
            self._run_stage(subscription_api, 'add subscriptions', subscription_api.add_subscriptions_for_course,
                            course)

    def _run_stage(self, manager, action: str, func: Callable, argument):
        """
        Run one stage and merge its errors.  A stage that raises adds one error entry for
        what it was doing, and the next stage still runs.
        """
        try:
            func(argument)
        except RocketChatSyncError as e:
            logger.error(f"Error {action} for course {getattr(argument, 'course', argument)}: "
                         f"{type(e).__name__} {e}")
            manager.errors.append(SyncErrorEntry(manager.error_code, str(e)))
        self.errors.extend(manager.errors)

    def record_result(self, course_sync: CourseSyncRecord) -> CourseSyncRecord:
        if not self.errors:
            self.pass_sync(course_sync)
        else:
            self.fail_sync(course_sync)
        self.store.update_course_sync(course_sync)
        self.reset_errors()
        return course_sync

    def pass_sync(self, course_sync: CourseSyncRecord):
        course_sync.pendingsync = False
        course_sync.lastsync = self.clock()
        course_sync.error = None
        logger.info(f"Course {course_sync.course} synced.")

    def fail_sync(self, course_sync: CourseSyncRecord):
        course_sync.pendingsync = False
        course_sync.lastsync = self.clock()
        course_sync.error = '\n'.join(str(error) for error in self.errors)
        logger.error(f"Course {course_sync.course} synced with {len(self.errors)} errors.")


def is_event_based_sync_on_course(store: MoodleStore, course_id: int) -> bool:
    """ No record means event based sync is off."""
    course_sync = store.get_course_sync(course_id)
    return bool(course_sync.eventbasedsync) if course_sync else False
