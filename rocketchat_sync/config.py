"""
This is a base import that defines global configuration variables that you can then override if you wish.

It also holds the Rocket.Chat connection settings (SyncConfig) and the loader for the local
settings file.  Passwords that are not in the settings file are pulled from the system keyring.
"""
import json
from dataclasses import dataclass
from typing import Union, Dict

import keyring

__all__ = ['config', 'Config', 'SyncConfig', 'load_settings', 'get_secret', 'PLUGIN_NAME']

PLUGIN_NAME = 'local_rocketchat'   # the Moodle plugin whose config and tables we share.
KEYRING_SERVICE = 'rocketchat_sync'


class Config:
    # A singleton config class
    _instance = None

    def __new__(cls):
        if not cls._instance:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, debug=False, dryrun=False):
        if self._initialized:
            return
        self._initialized = True
        self._debug = debug
        self.dryrun = dryrun

    @property
    def debug(self):
        return self._debug         # are we in debuggy the mode?  If so log detailed messages.

    @debug.setter
    def debug(self, value: bool):
        # allow to set and unset logger level.
        from rocketchat_sync.logger import logger
        import logging
        logger.setLevel(logging.DEBUG if value else logging.INFO)
        self._debug = value


config = Config()


@dataclass(frozen=True)
class SyncConfig:
    """
    Connection settings for the Rocket.Chat instance.  Loaded once, never changed afterwards.

    protocol follows the plugin setting: '0' is https, anything else is http.
    group_regex is the raw newline separated list of group name patterns.
    """
    host: str
    port: str = ''
    protocol: str = '0'
    username: str = ''
    password: str = ''
    group_regex: str = ''
    allow_external_connection: bool = False

    @property
    def instance_url(self) -> str:
        scheme = 'https' if str(self.protocol) == '0' else 'http'
        port = f':{self.port}' if self.port else ''
        return f'{scheme}://{self.host}{port}'

    @classmethod
    def from_plugin_config(cls, plugin_config: Dict[str, str], overrides: Union[Dict, None] = None) -> 'SyncConfig':
        """
        Build the settings from the Moodle plugin config (name -> value) and optional overrides.
        :param plugin_config: dict of the local_rocketchat rows in config_plugins
        :param overrides: dict with any of the SyncConfig field names
        :return: SyncConfig
        """
        values = dict(plugin_config or {})
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls(
            host=values.get('host', '') or '',
            port=str(values.get('port') or ''),
            protocol=str(values.get('protocol', '0') or '0'),
            username=values.get('username', '') or '',
            password=values.get('password', '') or '',
            group_regex=values.get('groupregex', values.get('group_regex', '')) or '',
            allow_external_connection=str(values.get('allowexternalconnection',
                                                     values.get('allow_external_connection', '0'))) in ('1', 'True', 'true'),
        )


def get_secret(username: str, service: str = KEYRING_SERVICE) -> Union[str, None]:
    """
    Look up a password in the system keyring.
    :param username: the account name stored in the keyring
    :param service: keyring service name
    :return: the password or None if there is no entry (or no usable keyring backend)
    """
    try:
        return keyring.get_password(service, username)
    except keyring.errors.KeyringError as e:
        from rocketchat_sync.logger import logger
        logger.warning(f"No keyring entry found for service {service} user {username}: {e}")
        return None


def load_settings(filename: str = 'rocketchat_sync.json') -> Dict:
    """
    Load the local settings file.  Example:

    {
        "db_host": "localhost",
        "db_name": "moodle",
        "db_user": "moodle_sync",
        "db_prefix": "mdl_",
        "keyring_service": "rocketchat_sync",
        "rocketchat": {"host": "chat.myschool.edu", "username": "moodle_bot"}
    }

    db_password and rocketchat.password are read from the keyring when they are missing.
    :param filename: path to the json file
    :return: dict of settings.  Raises FileNotFoundError if the file is missing.
    """
    with open(filename) as f:
        settings = json.load(f)

    service = settings.get('keyring_service', KEYRING_SERVICE)
    if not settings.get('db_password') and settings.get('db_user'):
        settings['db_password'] = get_secret(settings['db_user'], service)

    rocketchat = settings.setdefault('rocketchat', {})
    if rocketchat.get('username') and not rocketchat.get('password'):
        rocketchat['password'] = get_secret(rocketchat['username'], service)
    return settings
