# file: rocketchat_sync/util.py

import random
import string
import time
from datetime import datetime
from typing import Dict, Union


def chat_username(user: Dict) -> str:
    """
    The Rocket.Chat username for a Moodle user: the part of the email before the @,
    or the Moodle username if the email has no @.
    :param user: dict with email and username
    :return: str
    """
    email = user.get('email') or ''
    if '@' in email:
        return email.split('@')[0]
    return user['username']


def random_password(length: int = 6) -> str:
    # not a secret.  Chat logins go through the linked account, this just fills the field.
    return ''.join(random.choice(string.ascii_letters + string.digits) for _ in range(length))


def unix_timestamp() -> int:
    return int(time.time())


def format_timestamp(timestamp: Union[int, None], format='%Y/%m/%d, %H:%M') -> str:
    """
    Format a unix timestamp in local time the way the course integration page shows it.
    :param timestamp: int or None
    :return: str, empty for None
    """
    if not timestamp:
        return ''
    return datetime.fromtimestamp(int(timestamp)).strftime(format)
