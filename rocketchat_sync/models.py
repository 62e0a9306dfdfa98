# file: rocketchat_sync/models.py

import json
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Union

"""
Records and payloads passed between the store, the Rocket.Chat client and the sync.

Moodle rows for courses, groups and users stay plain dicts with the Moodle column names,
the same way the providers hand them around.  The two plugin tables and the API responses get
explicit types.
"""


@dataclass
class CourseSyncRecord:
    """A row of local_rocketchat_courses."""
    course: int
    pendingsync: bool = False
    eventbasedsync: bool = False
    lastsync: Union[int, None] = None
    error: Union[str, None] = None
    id: Union[int, None] = None

    @classmethod
    def from_row(cls, row: Dict) -> 'CourseSyncRecord':
        return cls(
            id=row.get('id'),
            course=int(row['course']),
            pendingsync=bool(int(row.get('pendingsync') or 0)),
            eventbasedsync=bool(int(row.get('eventbasedsync') or 0)),
            lastsync=int(row['lastsync']) if row.get('lastsync') else None,
            error=row.get('error') or None,
        )

    def to_row(self) -> Dict:
        row = asdict(self)
        row['pendingsync'] = int(self.pendingsync)
        row['eventbasedsync'] = int(self.eventbasedsync)
        return row


@dataclass
class RoleSyncRecord:
    """A row of local_rocketchat_roles."""
    role: int
    requiresync: bool = False
    id: Union[int, None] = None

    @classmethod
    def from_row(cls, row: Dict) -> 'RoleSyncRecord':
        return cls(id=row.get('id'), role=int(row['role']), requiresync=bool(int(row.get('requiresync') or 0)))

    def to_row(self) -> Dict:
        return {'id': self.id, 'role': self.role, 'requiresync': int(self.requiresync)}


@dataclass(frozen=True)
class SyncErrorEntry:
    code: str
    error: str

    def __str__(self):
        return f'[{self.code}] {self.error}'


@dataclass
class ChatSession:
    authenticated: bool = False
    auth_token: Union[str, None] = None
    user_id: Union[str, None] = None


@dataclass(frozen=True)
class ApiResponse:
    """
    A decoded Rocket.Chat response.  success is False for error payloads, non-JSON bodies
    and transport failures.  data is always a dict (empty when there was nothing to decode).
    """
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Union[str, None] = None
    status_code: Union[int, None] = None

    @classmethod
    def from_payload(cls, payload: Any, status_code: Union[int, None] = None) -> 'ApiResponse':
        if not isinstance(payload, dict):
            return cls(False, {}, f'Unexpected response: {payload!r}', status_code)
        # Most endpoints answer with success, login answers with status.
        success = payload.get('success') is True or payload.get('status') == 'success'
        error = None
        if not success:
            error = payload.get('error') or payload.get('message') or f'Request failed with status {status_code}'
            error = str(error)
        return cls(success, payload, error, status_code)

    @classmethod
    def from_text(cls, text: str, status_code: Union[int, None] = None) -> 'ApiResponse':
        try:
            payload = json.loads(text)
        except (TypeError, ValueError):
            return cls(False, {}, f'Malformed JSON response (HTTP {status_code})', status_code)
        return cls.from_payload(payload, status_code)

    @classmethod
    def failure(cls, error: str) -> 'ApiResponse':
        return cls(False, {}, error, None)

    def get(self, *path: str, default: Any = None) -> Any:
        """ response.get('channel', '_id') walks nested dicts, returning default when anything is missing."""
        value = self.data
        for key in path:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value


@dataclass(frozen=True)
class LoginResponse:
    status: Union[str, None]
    auth_token: Union[str, None] = None
    user_id: Union[str, None] = None
    error: Union[str, None] = None
    message: Union[str, None] = None

    @property
    def success(self) -> bool:
        return self.status == 'success' and bool(self.auth_token) and bool(self.user_id)

    @classmethod
    def from_response(cls, response: ApiResponse) -> 'LoginResponse':
        data = response.get('data', default={})
        if not isinstance(data, dict):
            data = {}
        return cls(
            status=response.get('status'),
            auth_token=data.get('authToken'),
            user_id=data.get('userId'),
            error=None if response.success else response.error,
            message=response.get('message'),
        )


@dataclass(frozen=True)
class GroupMemberAddedEvent:
    """\\core\\event\\group_member_added: objectid is the group, relateduserid the user."""
    course_id: int
    group_id: int
    user_id: int

    @classmethod
    def from_event_data(cls, data: Dict) -> 'GroupMemberAddedEvent':
        return cls(course_id=int(data['courseid']), group_id=int(data['objectid']),
                   user_id=int(data['relateduserid']))


@dataclass(frozen=True)
class UserEnrolmentUpdatedEvent:
    """\\core\\event\\user_enrolment_updated: objectid is the user_enrolments id."""
    course_id: int
    enrolment_id: int

    @classmethod
    def from_event_data(cls, data: Dict) -> 'UserEnrolmentUpdatedEvent':
        return cls(course_id=int(data['courseid']), enrolment_id=int(data['objectid']))
