# file: tests/test_subscription.py

from rocketchat_sync.subscription import SubscriptionManager, SUBSCRIPTION_CREATION


def test_add_subscriptions_for_course(client, chat_server, store):
    chat_server.rooms = ['CS101-Lab-A', 'CS101-Lab-B']
    chat_server.users = ['jane.doe', 'bob.smith', 'carol.jones']
    subscriptions = SubscriptionManager(client, store)
    subscriptions.add_subscriptions_for_course(store.get_course(5))

    assert len(chat_server.calls_to('/api/v1/groups.invite')) == 3
    assert subscriptions.errors == []


def test_group_without_channel(client, chat_server, store):
    chat_server.rooms = ['CS101-Lab-A']
    chat_server.users = ['jane.doe', 'bob.smith', 'carol.jones']
    subscriptions = SubscriptionManager(client, store)
    subscriptions.add_subscriptions_for_course(store.get_course(5))

    assert len(chat_server.calls_to('/api/v1/groups.invite')) == 2
    assert [str(e) for e in subscriptions.errors] == [
        f'[{SUBSCRIPTION_CREATION}] [ group_id - 12 ] No channel for group Lab-B']


def test_member_without_chat_user(client, chat_server, store):
    chat_server.rooms = ['CS101-Lab-A']
    subscriptions = SubscriptionManager(client, store)
    assert not subscriptions.add_subscription_for_user(store.get_user(302), store.get_group(11))
    assert [e.error for e in subscriptions.errors] == [
        '[ user_id - 302 | email - bob.smith@example.com] No Rocket.Chat user bob.smith']


def test_add_subscription_for_user(client, chat_server, store):
    chat_server.rooms = ['CS101-Lab-A']
    subscriptions = SubscriptionManager(client, store)
    assert subscriptions.add_subscription_for_user(store.get_user(301), store.get_group(11))
    assert chat_server.calls_to('/api/v1/groups.invite')[0].json == {'roomId': 'room-CS101-Lab-A',
                                                                      'userId': 'user-jane.doe'}


def test_no_channel_is_not_an_error_for_one_user(client, chat_server, store):
    subscriptions = SubscriptionManager(client, store)
    assert not subscriptions.add_subscription_for_user(store.get_user(301), store.get_group(12))
    assert subscriptions.errors == []
    assert chat_server.calls_to('/api/v1/groups.invite') == []


def test_failed_invite(client, chat_server, store):
    chat_server.rooms = ['CS101-Lab-A']
    chat_server.fail('/api/v1/groups.invite', 'error-room-not-found')
    subscriptions = SubscriptionManager(client, store)
    assert not subscriptions.add_subscription_for_user(store.get_user(301), store.get_group(11))
    assert [e.error for e in subscriptions.errors] == ['[ user_id - 301 | group_id - 11] error-room-not-found']
