# file: rocketchat_sync/channel.py

import re
from typing import List, Union, Dict

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.exceptions import NotFound
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, SyncErrorEntry
from rocketchat_sync.store import MoodleStore

CHANNEL_CREATION = 'channel_creation'

# PHP style /pattern/flags, the way the patterns are written in the plugin settings.
_delimited_pattern = re.compile(r'^/(?P<pattern>.*)/(?P<flags>[imsxu]*)$', re.DOTALL)
_php_flags = {'i': re.IGNORECASE, 'm': re.MULTILINE, 's': re.DOTALL, 'x': re.VERBOSE, 'u': 0}


def compile_group_patterns(group_regex: str) -> List[re.Pattern]:
    """
    Turn the newline separated group regex setting into compiled patterns.
    Blank lines are skipped.  A pattern wrapped in slashes may carry PHP flags, like /lab/i.
    A line that does not compile is logged and skipped.
    :param group_regex: the raw setting text
    :return: list of compiled patterns
    """
    patterns = []
    for line in (group_regex or '').splitlines():
        line = line.strip()
        if not line:
            continue
        flags = 0
        delimited = _delimited_pattern.match(line)
        if delimited:
            line = delimited.group('pattern')
            for flag in delimited.group('flags'):
                flags |= _php_flags[flag]
        try:
            patterns.append(re.compile(line, flags))
        except re.error as e:
            logger.error(f"Ignoring invalid group regex {line!r}: {e}")
    return patterns


def group_requires_channel(group_name: str, patterns: List[re.Pattern]) -> bool:
    """ True if any pattern matches somewhere in the group name.  No patterns never matches."""
    for pattern in patterns:
        if pattern.search(group_name):
            return True
    return False


def format_channel_name(course_shortname: str, group_name: str) -> str:
    return f'{course_shortname}-{group_name}'.replace(' ', '_')


class ChannelManager:
    """
    Create a private Rocket.Chat channel for each group of a course that matches the group regex setting.

    Failures don't stop the loop.  They end up in self.errors for the sync to record.
    """

    error_code = CHANNEL_CREATION

    def __init__(self, client: RocketChatClient, store: MoodleStore):
        self.client = client
        self.store = store
        self.patterns = compile_group_patterns(client.settings.group_regex)
        self.errors: List[SyncErrorEntry] = []

    def create_channels_for_course(self, course_sync: CourseSyncRecord):
        course = self.store.get_course(course_sync.course)
        if course is None:
            raise NotFound(f"Course does not exist: {course_sync.course}")

        groups = self.store.get_groups(course['id'])
        cnt_created, cnt_exists, cnt_skipped = 0, 0, 0
        for group in groups:
            if not self.group_requires_channel(group['name']):
                cnt_skipped += 1
                continue

            channel_name = format_channel_name(course['shortname'], group['name'])
            if self.channel_exists(channel_name):
                cnt_exists += 1
                continue
            if self.create_channel(channel_name):
                cnt_created += 1
        logger.info(f"Channels for course {course['shortname']}: Created {cnt_created}, "
                    f"Existing {cnt_exists}, Skipped {cnt_skipped}, Errors {len(self.errors)}")

    def group_requires_channel(self, group_name: str) -> bool:
        return group_requires_channel(group_name, self.patterns)

    def has_channel_for_group(self, group: Dict) -> Union[str, bool]:
        """
        Return the room id of the group's private channel, or False if there isn't one.
        """
        course = self.store.get_course(group['courseid'])
        if course is None:
            raise NotFound(f"Course does not exist: {group['courseid']}")
        return self.has_private_group(format_channel_name(course['shortname'], group['name']))

    def has_private_group(self, name: str) -> Union[str, bool]:
        response = self.client.get('/api/v1/groups.info', {'roomName': name})
        if response.success:
            room_id = response.get('group', '_id')
            if room_id:
                return room_id
        return False

    def get_existing_channels(self) -> List[Dict]:
        response = self.client.get('/api/v1/rooms.get')
        rooms = response.get('update')
        if not isinstance(rooms, list):
            logger.debug(f"No room list from rooms.get: {response.error}")
            return []
        return rooms

    def channel_exists(self, channel_name: str) -> bool:
        # fetched fresh for every check.  A channel made a moment ago has to show up.
        for channel in self.get_existing_channels():
            if channel.get('name') == channel_name:
                return True
        return False

    def create_channel(self, channel_name: str) -> bool:
        """
        Create the channel and then make it private.  Two calls, either can fail.
        :return: True when both worked
        """
        response = self.client.post('/api/v1/channels.create', {'name': channel_name},
                                    dryrun_result={'channel': {'_id': 'dryrun', 'name': channel_name}})
        room_id = response.get('channel', '_id')
        if not response.success or not room_id:
            logger.error(f"Channel {channel_name} not created: {response.error}")
            self.errors.append(SyncErrorEntry(CHANNEL_CREATION, response.error or 'No channel id returned'))
            return False

        response = self.client.post('/api/v1/channels.setType', {'roomId': room_id, 'type': 'p'})
        if not response.success:
            logger.error(f"Channel {channel_name} not made private: {response.error}")
            self.errors.append(SyncErrorEntry(CHANNEL_CREATION, response.error))
            return False

        logger.info(f"Created private channel {channel_name} ({room_id})")
        return True
