# file: rocketchat_sync/provider_mysql.py

import cryptography  # this is a non-included dependency package of pymysql
import pymysql

from typing import List, Dict, Union

from rocketchat_sync.config import config, PLUGIN_NAME
from rocketchat_sync.logger import logger
from rocketchat_sync.models import CourseSyncRecord, RoleSyncRecord
from rocketchat_sync.store import MoodleStore


class Mysql:

    _instances = {}

    r"""
    Usage

        with Mysql(host, database, user, password) as mysql:
            result = mysql.select('SELECT * FROM your_table')
            print(result)

    or to manually deal with the connection ...
        mysql = Mysql(host, database, user, password)
        mysql.connect()
        result = mysql.select('SELECT * FROM your_table')
        mysql.close()

    Inside a with block everything is one transaction: committed on the way out,
    rolled back if there was an exception.
    """

    def __new__(cls, host: str, database: str, user: str, password: str):
        """
        Implement a singleton pattern for the Mysql class that offers a single instance for each connection.
        Allows one connection for each host / user / db combination.
        """
        instance_id = f"{host}:{user}:{database}"
        if instance_id not in cls._instances:
            cls._instances[instance_id] = super(Mysql, cls).__new__(cls)
        return cls._instances[instance_id]

    def __init__(self, host: str, database: str, user: str, password: str):
        if getattr(self, '_initialized', False):
            # already initialized.  But allow updates to the password
            self.connection_parameters['password'] = password
            return
        self._initialized = True
        self.connection_parameters = {'host': host, 'user': user, 'password': password, 'database': database,
                                      'charset': 'utf8mb4'}
        self._connection = None
        self.columns = None
        self.last_query = None
        self.last_params = None

    def connect(self, **connection_parameters):
        """
        Optionally updates any of the connection parameters on a new connection.
        Connection must be closed otherwise the existing connection will be returned.
        @param connection_parameters:  {'host': host, 'user': user, 'password': password, 'database': database}
        @return: the sql connection
        """
        self.connection_parameters.update(connection_parameters)
        if self._connection is None:
            self._connection = pymysql.connect(**self.connection_parameters)
        return self._connection

    def close(self):
        if self._connection:
            self._connection.close()
            self._connection = None

    def __enter__(self):
        self.connect()
        self._connection.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._connection.commit()
        else:
            self._connection.rollback()
        self.close()

    def select(self, select: str, params: Union[Dict, tuple, None] = None) -> List[dict]:
        """
        Run a select and return the rows as dicts keyed by column name.

        result = instance.select("SELECT * FROM mdl_user WHERE username = %(username)s", {'username': 'jdoe'})
        result = instance.select("SELECT * from mdl_course WHERE shortname LIKE %s", ('%' + value + '%',))

        @param select: a string for the query
        @param params: If it is a dict, use %(key)s placeholders.  If it is a tuple, use %s placeholders.
        @return: a list of dicts of rows (rows with row headers as keys)
        """
        self.last_query = select
        self.last_params = params
        temp_connection = self._connection is None
        if temp_connection:
            self.connect()

        try:
            with self._connection.cursor() as cursor:
                cursor.execute(select, params)
                self.columns = [d[0] for d in cursor.description]
                result = cursor.fetchall()
        finally:
            if temp_connection:
                self.close()

        return [self.row_to_dict(row) for row in result]

    def query(self, query: str, params: Union[Dict, tuple, None] = None, dryrun_result=None) -> int:
        """
        Execute an insert / update / delete with optional parameters.
        :return: int - for inserts the new row id, otherwise the number of rows affected.
            In dryrun mode nothing is executed and dryrun_result is returned.
        """
        self.last_query = query
        self.last_params = params
        if config.debug:
            logger.debug("Query", query)
            logger.debug("Params", params)
        if config.dryrun:
            logger.info("DRYRUN mode: skipping query ", query.strip().split('\n')[0], params)
            return dryrun_result
        temp_connection = self._connection is None
        if temp_connection:
            self.connect()

        try:
            with self._connection.cursor() as cursor:
                cursor.execute(query, params)
                result = cursor.lastrowid if query.lstrip().upper().startswith('INSERT') else cursor.rowcount
            if temp_connection:
                self._connection.commit()
        except Exception:
            self._connection.rollback()
            raise
        finally:
            if temp_connection:
                self.close()
        return result

    def row_to_dict(self, row: tuple) -> dict:
        return {x[0]: x[1] for x in zip(self.columns, row)}


class MoodleMySQLStore(MoodleStore):
    """
    Based on Moodle 4.1 Schema.  Table names are prefixed with prefix (mdl_ by default).
    """

    user_columns = 'u.id, u.username, u.email, u.firstname, u.lastname'

    def __init__(self, host, user, password, database, prefix='mdl_'):
        super().__init__()
        self.mysql = Mysql(host=host, database=database, user=user, password=password)
        self.prefix = prefix

    def _select(self, query: str, params=None) -> List[Dict]:
        with self.mysql as conn:
            return conn.select(query.format(p=self.prefix), params)

    def _select_one(self, query: str, params=None) -> Union[Dict, None]:
        rows = self._select(query, params)
        return rows[0] if rows else None

    def _query(self, query: str, params=None, dryrun_result=None) -> int:
        with self.mysql as conn:
            return conn.query(query.format(p=self.prefix), params, dryrun_result=dryrun_result)

    def get_plugin_config(self) -> Dict[str, str]:
        rows = self._select("SELECT name, value FROM {p}config_plugins WHERE plugin = %s", (PLUGIN_NAME,))
        return {row['name']: row['value'] for row in rows}

    def get_course(self, course_id: int) -> Union[Dict, None]:
        return self._select_one("SELECT id, shortname, fullname FROM {p}course WHERE id = %s", (course_id,))

    def get_courses(self) -> List[Dict]:
        # course 1 is the site front page.
        return self._select("SELECT id, shortname, fullname FROM {p}course WHERE id <> 1 ORDER BY id")

    def get_groups(self, course_id: int) -> List[Dict]:
        return self._select("SELECT id, courseid, name FROM {p}groups WHERE courseid = %s ORDER BY id", (course_id,))

    def get_group(self, group_id: int) -> Union[Dict, None]:
        return self._select_one("SELECT id, courseid, name FROM {p}groups WHERE id = %s", (group_id,))

    def get_group_members(self, group_id: int) -> List[Dict]:
        query = f"""
        SELECT {self.user_columns}
        FROM {{p}}groups_members gm
        JOIN {{p}}user u ON u.id = gm.userid
        WHERE gm.groupid = %s AND u.deleted = 0
        ORDER BY u.id
        """
        return self._select(query, (group_id,))

    def get_user(self, user_id: int) -> Union[Dict, None]:
        return self._select_one(f"SELECT {self.user_columns} FROM {{p}}user u WHERE u.id = %s", (user_id,))

    def get_enrolled_users(self, course_id: int) -> List[Dict]:
        # all enrolments, suspended ones too.  Activity is handled by update_user_activity.
        query = f"""
        SELECT DISTINCT {self.user_columns}
        FROM {{p}}user u
        JOIN {{p}}user_enrolments ue ON ue.userid = u.id
        JOIN {{p}}enrol e ON e.id = ue.enrolid
        WHERE e.courseid = %s AND u.deleted = 0
        ORDER BY u.id
        """
        return self._select(query, (course_id,))

    def get_user_enrolment(self, enrolment_id: int) -> Union[Dict, None]:
        return self._select_one("SELECT id, userid, enrolid, status FROM {p}user_enrolments WHERE id = %s",
                                (enrolment_id,))

    def get_roles(self) -> List[Dict]:
        return self._select("SELECT id, shortname, name FROM {p}role ORDER BY sortorder")

    def get_course_sync(self, course_id: int) -> Union[CourseSyncRecord, None]:
        row = self._select_one("SELECT * FROM {p}local_rocketchat_courses WHERE course = %s", (course_id,))
        return CourseSyncRecord.from_row(row) if row else None

    def get_pending_course_syncs(self) -> List[CourseSyncRecord]:
        rows = self._select("SELECT * FROM {p}local_rocketchat_courses WHERE pendingsync = 1 ORDER BY id")
        return [CourseSyncRecord.from_row(row) for row in rows]

    def insert_course_sync(self, record: CourseSyncRecord) -> int:
        query = """
        INSERT INTO {p}local_rocketchat_courses (course, pendingsync, eventbasedsync, lastsync, error)
        VALUES (%(course)s, %(pendingsync)s, %(eventbasedsync)s, %(lastsync)s, %(error)s)
        """
        record.id = self._query(query, record.to_row(), dryrun_result=-1)
        return record.id

    def update_course_sync(self, record: CourseSyncRecord) -> None:
        query = """
        UPDATE {p}local_rocketchat_courses
        SET course = %(course)s, pendingsync = %(pendingsync)s, eventbasedsync = %(eventbasedsync)s,
            lastsync = %(lastsync)s, error = %(error)s
        WHERE id = %(id)s
        """
        self._query(query, record.to_row())

    def get_role_sync(self, role_id: int) -> Union[RoleSyncRecord, None]:
        row = self._select_one("SELECT * FROM {p}local_rocketchat_roles WHERE role = %s", (role_id,))
        return RoleSyncRecord.from_row(row) if row else None

    def insert_role_sync(self, record: RoleSyncRecord) -> int:
        query = "INSERT INTO {p}local_rocketchat_roles (role, requiresync) VALUES (%(role)s, %(requiresync)s)"
        record.id = self._query(query, record.to_row(), dryrun_result=-1)
        return record.id

    def update_role_sync(self, record: RoleSyncRecord) -> None:
        query = "UPDATE {p}local_rocketchat_roles SET role = %(role)s, requiresync = %(requiresync)s WHERE id = %(id)s"
        self._query(query, record.to_row())

    def get_course_sync_overview(self) -> List[Dict]:
        query = """
        SELECT
            c.id AS courseid,
            c.shortname,
            CASE WHEN lrc.id IS NULL THEN 0 ELSE lrc.eventbasedsync END AS eventbasedsync,
            CASE WHEN lrc.id IS NULL THEN 0 ELSE lrc.pendingsync END AS pendingsync,
            lrc.lastsync,
            lrc.error
        FROM {p}course c
        LEFT JOIN {p}local_rocketchat_courses lrc ON lrc.course = c.id
        WHERE c.id <> 1
        ORDER BY c.id
        """
        return self._select(query)

    def get_role_sync_overview(self) -> List[Dict]:
        query = """
        SELECT
            r.id AS roleid,
            r.shortname,
            CASE WHEN lrr.id IS NULL THEN 0 ELSE lrr.requiresync END AS requiresync
        FROM {p}role r
        LEFT JOIN {p}local_rocketchat_roles lrr ON lrr.role = r.id
        ORDER BY r.sortorder
        """
        return self._select(query)
