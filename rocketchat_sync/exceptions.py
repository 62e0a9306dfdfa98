"""Exceptions raised by rocketchat_sync.  Inside a sync run they are collected, not thrown."""


class RocketChatSyncError(RuntimeError):
    """Base class for everything this package raises."""


class AuthFailure(RocketChatSyncError):
    """Login did not return a success status with a token and user id."""


class RemoteCallFailure(RocketChatSyncError):
    """A Rocket.Chat call returned success false or something that is not JSON."""

    def __init__(self, message, response=None):
        super().__init__(message)
        self.response = response


class NotFound(RocketChatSyncError):
    """A record that must exist in the Moodle database is missing."""


class InvalidParameter(ValueError):
    """An external operation was called with a bad parameter."""


__all__ = ['RocketChatSyncError', 'AuthFailure', 'RemoteCallFailure', 'NotFound', 'InvalidParameter']
