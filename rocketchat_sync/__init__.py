"""
Sync Moodle course groups into Rocket.Chat private channels.
"""
