# file: rocketchat_sync/user.py

from typing import List, Dict, Union

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.exceptions import NotFound, RemoteCallFailure
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, SyncErrorEntry
from rocketchat_sync.store import MoodleStore
import rocketchat_sync.util as util

USER_CREATION = 'user_creation'


class UserManager:
    """
    Create Rocket.Chat users for the people enrolled in a course, and keep their active flag in step
    with their enrolment.

    Chat usernames are the local part of the Moodle email address.  Here is what gets posted:
        {'name': 'Wilma Flintrock', 'username': 'wflintrock', 'email': 'wflintrock@warren-wilson.edu',
         'verified': True, 'password': 'x7Gq2a', 'joinDefaultChannels': False}
    The random password is never used.  People log in through their linked account.
    """

    error_code = USER_CREATION

    def __init__(self, client: RocketChatClient, store: MoodleStore):
        self.client = client
        self.store = store
        self.errors: List[SyncErrorEntry] = []

    def create_users_for_course(self, course_sync: CourseSyncRecord):
        users = self.store.get_enrolled_users(course_sync.course)
        cnt_created, cnt_exists = 0, 0
        logger_line = ""
        for user in users:
            username = util.chat_username(user)
            if self.user_exists(user):
                logger_line += (' ' if logger_line else "Exists: ") + username
                cnt_exists += 1
            else:
                if logger_line: logger.info(logger_line)
                logger_line = ''
                if self.create_user(user):
                    cnt_created += 1
            if len(logger_line) > 80:
                logger.info(logger_line)
                logger_line = ""
        if logger_line: logger.info(logger_line)
        logger.info(f"User sync for course {course_sync.course} complete. Users Created: {cnt_created}  "
                    f"Existing: {cnt_exists}  Errors: {len(self.errors)}")

    def create_user(self, user: Dict) -> bool:
        data = {
            'name': f"{user['firstname']} {user['lastname']}",
            'username': user['email'].split('@')[0],
            'email': user['email'],
            'verified': True,
            'password': util.random_password(),
            'joinDefaultChannels': False,
        }
        response = self.client.post('/api/v1/users.create', data)
        if not response.success:
            logger.error(f"User {data['username']} not created: {response.error}")
            self.errors.append(SyncErrorEntry(
                USER_CREATION, f"[ user_id - {user['id']} | email - {user['email']}] {response.error}"))
            return False
        logger.info(f"User {data['username']} not found in Rocket.Chat.  Created.")
        return True

    def get_existing_users(self) -> List[Dict]:
        response = self.client.get('/api/v1/users.list')
        users = response.get('users')
        if not isinstance(users, list):
            logger.debug(f"No user list from users.list: {response.error}")
            return []
        return users

    def user_exists(self, user: Dict) -> bool:
        username = util.chat_username(user)
        for existing_user in self.get_existing_users():
            if existing_user.get('username') == username:
                return True
        return False

    def get_user(self, user: Dict) -> Union[str, bool]:
        """
        Look the user up in Rocket.Chat.
        :param user: Moodle user dict
        :return: the Rocket.Chat user id, or False if the user doesn't exist
        """
        response = self.client.get('/api/v1/users.info', {'username': util.chat_username(user)})
        if response.success:
            user_id = response.get('user', '_id')
            if user_id:
                return user_id
        return False

    def update_user_activity(self, enrolment_id: int):
        """
        Activate or deactivate the chat user to match a Moodle user enrolment.
        Nothing happens if the user has no chat account.
        :param enrolment_id: id in user_enrolments
        """
        enrolment = self.store.get_user_enrolment(enrolment_id)
        if enrolment is None:
            raise NotFound(f"User enrolment does not exist: {enrolment_id}")
        user = self.store.get_user(enrolment['userid'])
        if user is None:
            raise NotFound(f"User does not exist: {enrolment['userid']}")

        # status '1' is a suspended enrolment.  Everything else counts as active.
        is_active = str(enrolment['status']) != '1'

        chat_user_id = self.get_user(user)
        if not chat_user_id:
            logger.debug(f"No Rocket.Chat user for {util.chat_username(user)}, activity not updated.")
            return

        response = self.client.post('/api/v1/users.update', {'userId': chat_user_id, 'active': is_active})
        if not response.success:
            raise RemoteCallFailure(f"Failed to update activity for {util.chat_username(user)}: {response.error}", response)
        logger.info(f"User {util.chat_username(user)} set to {'active' if is_active else 'inactive'}")
