"""
This provider keeps everything in dicts in memory.

Load it with rows shaped like the Moodle tables and it behaves like the database store.
Useful for dry runs against a copy of the data, and for testing.
"""

import copy
from typing import List, Dict, Union

from rocketchat_sync.config import config
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, RoleSyncRecord
from rocketchat_sync.store import MoodleStore


class MemoryStore(MoodleStore):

    def __init__(self, plugin_config: Union[Dict, None] = None, courses: Union[List[Dict], None] = None,
                 groups: Union[List[Dict], None] = None, users: Union[List[Dict], None] = None,
                 user_enrolments: Union[List[Dict], None] = None, group_members: Union[List[Dict], None] = None,
                 roles: Union[List[Dict], None] = None):
        """
        :param plugin_config: name -> value of the local_rocketchat settings
        :param courses: dicts with id, shortname, fullname
        :param groups: dicts with id, courseid, name
        :param users: dicts with id, username, email, firstname, lastname
        :param user_enrolments: dicts with id, userid, courseid, status
        :param group_members: dicts with groupid, userid
        :param roles: dicts with id, shortname, name
        """
        super().__init__()
        self.plugin_config = dict(plugin_config or {})
        self.courses = {c['id']: c for c in courses or []}
        self.groups = {g['id']: g for g in groups or []}
        self.users = {u['id']: u for u in users or []}
        self.user_enrolments = {ue['id']: ue for ue in user_enrolments or []}
        self.group_members = list(group_members or [])
        self.roles = {r['id']: r for r in roles or []}
        self.course_syncs: Dict[int, CourseSyncRecord] = {}
        self.role_syncs: Dict[int, RoleSyncRecord] = {}
        self._next_id = 1

    def _new_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def get_plugin_config(self) -> Dict[str, str]:
        return dict(self.plugin_config)

    def get_course(self, course_id: int) -> Union[Dict, None]:
        return self.courses.get(course_id)

    def get_courses(self) -> List[Dict]:
        return [self.courses[k] for k in sorted(self.courses)]

    def get_groups(self, course_id: int) -> List[Dict]:
        return [g for _, g in sorted(self.groups.items()) if g['courseid'] == course_id]

    def get_group(self, group_id: int) -> Union[Dict, None]:
        return self.groups.get(group_id)

    def get_group_members(self, group_id: int) -> List[Dict]:
        user_ids = sorted({gm['userid'] for gm in self.group_members if gm['groupid'] == group_id})
        return [self.users[uid] for uid in user_ids if uid in self.users]

    def get_user(self, user_id: int) -> Union[Dict, None]:
        return self.users.get(user_id)

    def get_enrolled_users(self, course_id: int) -> List[Dict]:
        user_ids = sorted({ue['userid'] for ue in self.user_enrolments.values() if ue['courseid'] == course_id})
        return [self.users[uid] for uid in user_ids if uid in self.users]

    def get_user_enrolment(self, enrolment_id: int) -> Union[Dict, None]:
        return self.user_enrolments.get(enrolment_id)

    def get_roles(self) -> List[Dict]:
        return [self.roles[k] for k in sorted(self.roles)]

    # records are copied in and out so callers can't change the store behind its back.

    def get_course_sync(self, course_id: int) -> Union[CourseSyncRecord, None]:
        record = self.course_syncs.get(course_id)
        return copy.copy(record) if record else None

    def get_pending_course_syncs(self) -> List[CourseSyncRecord]:
        return [copy.copy(r) for r in sorted(self.course_syncs.values(), key=lambda r: r.id) if r.pendingsync]

    def insert_course_sync(self, record: CourseSyncRecord) -> int:
        if config.dryrun:
            logger.info("DRYRUN mode: skipping insert of ", record.to_row())
            return -1
        record.id = self._new_id()
        self.course_syncs[record.course] = copy.copy(record)
        return record.id

    def update_course_sync(self, record: CourseSyncRecord) -> None:
        if config.dryrun:
            logger.info("DRYRUN mode: skipping update of ", record.to_row())
            return
        self.course_syncs[record.course] = copy.copy(record)

    def get_role_sync(self, role_id: int) -> Union[RoleSyncRecord, None]:
        record = self.role_syncs.get(role_id)
        return copy.copy(record) if record else None

    def insert_role_sync(self, record: RoleSyncRecord) -> int:
        if config.dryrun:
            logger.info("DRYRUN mode: skipping insert of ", record.to_row())
            return -1
        record.id = self._new_id()
        self.role_syncs[record.role] = copy.copy(record)
        return record.id

    def update_role_sync(self, record: RoleSyncRecord) -> None:
        if config.dryrun:
            logger.info("DRYRUN mode: skipping update of ", record.to_row())
            return
        self.role_syncs[record.role] = copy.copy(record)
