# file: rocketchat_sync/store.py

from typing import List, Dict, Union

from rocketchat_sync.models import CourseSyncRecord, RoleSyncRecord


class MoodleStore:
    """
    This is meant to be a base class.

    Read courses, groups, users and enrolments out of Moodle, and keep the two plugin tables
    (local_rocketchat_courses and local_rocketchat_roles) up to date.
    Override this class to read them from the Moodle database directly or from anything else.

    Moodle rows are returned as dicts keyed by the Moodle column names:
        course:  id, shortname, fullname
        group:   id, courseid, name
        user:    id, username, email, firstname, lastname
        user enrolment:  id, userid, enrolid, status  (status is a string, '1' is suspended)
    Lookups return None when nothing matches.
    """

    def get_plugin_config(self) -> Dict[str, str]:
        """
        Return the local_rocketchat settings as name -> value.  host, port, protocol, username,
        password, groupregex, allowexternalconnection.
        """
        raise NotImplementedError("No plugin config getter provided.")

    def get_course(self, course_id: int) -> Union[Dict, None]:
        raise NotImplementedError("No course getter provided.")

    def get_courses(self) -> List[Dict]:
        raise NotImplementedError("No courses getter provided.")

    def get_groups(self, course_id: int) -> List[Dict]:
        raise NotImplementedError("No groups getter provided.")

    def get_group(self, group_id: int) -> Union[Dict, None]:
        raise NotImplementedError("No group getter provided.")

    def get_group_members(self, group_id: int) -> List[Dict]:
        """ Return the user dicts of everyone in the group."""
        raise NotImplementedError("No group member getter provided.")

    def get_user(self, user_id: int) -> Union[Dict, None]:
        raise NotImplementedError("No user getter provided.")

    def get_enrolled_users(self, course_id: int) -> List[Dict]:
        """ Return the user dicts of everyone enrolled in the course, each user once."""
        raise NotImplementedError("No enrolled users getter provided.")

    def get_user_enrolment(self, enrolment_id: int) -> Union[Dict, None]:
        raise NotImplementedError("No user enrolment getter provided.")

    def get_roles(self) -> List[Dict]:
        raise NotImplementedError("No roles getter provided.")

    # plugin tables.

    def get_course_sync(self, course_id: int) -> Union[CourseSyncRecord, None]:
        raise NotImplementedError("No course sync getter provided.")

    def get_pending_course_syncs(self) -> List[CourseSyncRecord]:
        raise NotImplementedError("No pending course sync getter provided.")

    def insert_course_sync(self, record: CourseSyncRecord) -> int:
        """ Insert the record, set record.id and return it."""
        raise NotImplementedError("No course sync creator provided.")

    def update_course_sync(self, record: CourseSyncRecord) -> None:
        raise NotImplementedError("No course sync updater provided.")

    def get_role_sync(self, role_id: int) -> Union[RoleSyncRecord, None]:
        raise NotImplementedError("No role sync getter provided.")

    def insert_role_sync(self, record: RoleSyncRecord) -> int:
        raise NotImplementedError("No role sync creator provided.")

    def update_role_sync(self, record: RoleSyncRecord) -> None:
        raise NotImplementedError("No role sync updater provided.")

    # admin view.  Providers can override these with something cheaper.

    def get_course_sync_overview(self) -> List[Dict]:
        """
        Every course with its sync flags, 0 when the course has no sync record yet.
        :return: list of dicts with courseid, shortname, eventbasedsync, pendingsync, lastsync, error
        """
        overview = []
        for course in self.get_courses():
            record = self.get_course_sync(course['id'])
            overview.append({
                'courseid': course['id'],
                'shortname': course.get('shortname'),
                'eventbasedsync': int(record.eventbasedsync) if record else 0,
                'pendingsync': int(record.pendingsync) if record else 0,
                'lastsync': record.lastsync if record else None,
                'error': record.error if record else None,
            })
        return overview

    def get_role_sync_overview(self) -> List[Dict]:
        overview = []
        for role in self.get_roles():
            record = self.get_role_sync(role['id'])
            overview.append({'roleid': role['id'], 'shortname': role.get('shortname'),
                             'requiresync': int(record.requiresync) if record else 0})
        return overview
