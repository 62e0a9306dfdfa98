# file: rocketchat_sync/cli.py

import argparse
import getpass
import sys
from typing import List, Union

from rocketchat_sync.client import RocketChatClient
from rocketchat_sync.config import config, SyncConfig, load_settings
from rocketchat_sync.exceptions import RocketChatSyncError, InvalidParameter
from rocketchat_sync import external
from rocketchat_sync.logger import logger
from rocketchat_sync.provider_mysql import MoodleMySQLStore
from rocketchat_sync.sync import RocketChatSync
import rocketchat_sync.util as util

"""
rocketchat-sync: run the Rocket.Chat course sync against a Moodle database.

Put this in cron for the scheduled sync:
    */15 * * * *  rocketchat-sync --settings /etc/rocketchat_sync.json sync

Other commands toggle the flags the course integration page toggles, or show them.
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='rocketchat-sync', description='Sync Moodle course groups to Rocket.Chat.')
    parser.add_argument('--settings', default='rocketchat_sync.json', help='settings json file')
    parser.add_argument('--debug', action='store_true', help='log debug output')
    parser.add_argument('--dryrun', action='store_true', help='log changes instead of making them')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('sync', help='sync every course flagged as pending')

    sync_course = commands.add_parser('sync-course', help='sync one course now')
    sync_course.add_argument('courseid')

    pending = commands.add_parser('set-pending', help='flag a course for the next sync')
    pending.add_argument('courseid')
    pending.add_argument('--off', action='store_true', help='clear the flag instead')

    event_sync = commands.add_parser('set-event-sync', help='turn event based sync on for a course')
    event_sync.add_argument('courseid')
    event_sync.add_argument('--off', action='store_true', help='turn it off instead')

    role_sync = commands.add_parser('set-role-sync', help='flag a role as requiring sync')
    role_sync.add_argument('roleid')
    role_sync.add_argument('--off', action='store_true', help='clear the flag instead')

    commands.add_parser('status', help='list courses with their sync state')
    commands.add_parser('roles', help='list roles with their sync flag')

    link = commands.add_parser('link-account', help='check Rocket.Chat credentials for account linking')
    link.add_argument('email')
    return parser


def connect_store(settings: dict) -> MoodleMySQLStore:
    return MoodleMySQLStore(host=settings.get('db_host', 'localhost'), user=settings['db_user'],
                            password=settings.get('db_password'), database=settings.get('db_name', 'moodle'),
                            prefix=settings.get('db_prefix', 'mdl_'))


def print_status(store) -> None:
    for row in external.course_overview(store):
        if row['lastsync']:
            state = 'FAILED' if row['error'] else 'ok'
            last = f"{util.format_timestamp(row['lastsync'])} {state}"
        else:
            last = 'never'
        print(f"{row['courseid']:>6}  {str(row['shortname']):30}  event:{row['eventbasedsync']}  "
              f"pending:{row['pendingsync']}  last sync: {last}")
        if row['error']:
            for line in row['error'].splitlines():
                print(f"{'':8}{line}")


def main(argv: Union[List[str], None] = None) -> int:
    args = build_parser().parse_args(argv)
    config.debug = args.debug
    config.dryrun = args.dryrun

    try:
        settings = load_settings(args.settings)
    except FileNotFoundError:
        logger.error(f"No settings file {args.settings}.  See rocketchat_sync.config.load_settings for an example.")
        return 2

    store = connect_store(settings)
    sync_config = SyncConfig.from_plugin_config(store.get_plugin_config(), settings.get('rocketchat'))

    try:
        if args.command == 'sync':
            results = RocketChatSync(store, settings=sync_config).sync_pending_courses()
            return 1 if any(r.error for r in results) else 0
        elif args.command == 'sync-course':
            print(external.manually_trigger_sync(store, args.courseid, settings=sync_config))
        elif args.command == 'set-pending':
            print(external.set_course_sync(store, args.courseid, not args.off))
        elif args.command == 'set-event-sync':
            print(external.set_event_based_sync(store, args.courseid, not args.off))
        elif args.command == 'set-role-sync':
            print(external.set_role_sync(store, args.roleid, not args.off))
        elif args.command == 'status':
            print_status(store)
        elif args.command == 'roles':
            for row in external.role_overview(store):
                print(f"{row['roleid']:>4}  {str(row['shortname']):20}  requiresync:{row['requiresync']}")
        elif args.command == 'link-account':
            if not external.is_external_connection_allowed(sync_config):
                logger.error("Linking accounts is not allowed by the plugin settings.")
                return 1
            client = RocketChatClient(sync_config, login=False)
            errors = external.validate_account_link(client, args.email, getpass.getpass('Rocket.Chat password: '))
            if errors:
                for field, message in errors.items():
                    logger.error(f"{field}: {message}")
                return 1
            print(f"Connected to {client.get_instance_url()} as {args.email}")
    except (InvalidParameter, RocketChatSyncError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
