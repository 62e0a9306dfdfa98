# file: rocketchat_sync/subscription.py

from typing import List, Dict

from rocketchat_sync.channel import ChannelManager
from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.logger import logger
from rocketchat_sync.models import SyncErrorEntry
from rocketchat_sync.store import MoodleStore
from rocketchat_sync.user import UserManager
import rocketchat_sync.util as util

SUBSCRIPTION_CREATION = 'subscription_creation'


class SubscriptionManager:
    """
    Put group members into their group's private channel (groups.invite).
    Inviting someone who is already in the channel is harmless, so there is no membership check.
    """

    error_code = SUBSCRIPTION_CREATION

    def __init__(self, client: RocketChatClient, store: MoodleStore):
        self.client = client
        self.store = store
        self.channels = ChannelManager(client, store)
        self.users = UserManager(client, store)
        self.errors: List[SyncErrorEntry] = []

    def add_subscriptions_for_course(self, course: Dict):
        cnt_added = 0
        for group in self.store.get_groups(course['id']):
            if not self.channels.group_requires_channel(group['name']):
                continue

            room_id = self.channels.has_channel_for_group(group)
            if not room_id:
                self.errors.append(SyncErrorEntry(
                    SUBSCRIPTION_CREATION, f"[ group_id - {group['id']} ] No channel for group {group['name']}"))
                continue

            for user in self.store.get_group_members(group['id']):
                if self._invite(user, group, room_id):
                    cnt_added += 1
        logger.info(f"Subscriptions for course {course['shortname']}: Added {cnt_added}, Errors {len(self.errors)}")

    def add_subscription_for_user(self, user: Dict, group: Dict) -> bool:
        """
        Add one user to the channel of one group.  Does nothing when the group has no channel.
        :return: True if the user was added
        """
        room_id = self.channels.has_channel_for_group(group)
        if not room_id:
            logger.debug(f"No channel for group {group['name']}, {util.chat_username(user)} not subscribed.")
            return False
        return self._invite(user, group, room_id)

    def _invite(self, user: Dict, group: Dict, room_id: str) -> bool:
        username = util.chat_username(user)
        chat_user_id = self.users.get_user(user)
        if not chat_user_id:
            self.errors.append(SyncErrorEntry(
                SUBSCRIPTION_CREATION, f"[ user_id - {user['id']} | email - {user.get('email')}] "
                                       f"No Rocket.Chat user {username}"))
            return False

        response = self.client.post('/api/v1/groups.invite', {'roomId': room_id, 'userId': chat_user_id})
        if not response.success:
            logger.error(f"Could not add {username} to channel of group {group['name']}: {response.error}")
            self.errors.append(SyncErrorEntry(
                SUBSCRIPTION_CREATION, f"[ user_id - {user['id']} | group_id - {group['id']}] {response.error}"))
            return False
        logger.debug(f"Added {username} to channel of group {group['name']}")
        return True
