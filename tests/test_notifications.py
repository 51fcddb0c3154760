import json

from storecore.services.notifications import OrderNotificationHub


def test_publish_reaches_every_subscriber():
    hub = OrderNotificationHub()
    first, second = hub.subscribe(), hub.subscribe()

    assert hub.publish("order.created", {"id": "o1"}) == 2
    for sub in (first, second):
        message = json.loads(sub.get(timeout=1))
        assert message == {"event": "order.created", "data": {"id": "o1"}}


def test_slow_subscriber_is_dropped():
    hub = OrderNotificationHub(buffer_size=2)
    slow = hub.subscribe()
    fast = hub.subscribe()

    for i in range(3):
        hub.publish("order.created", {"n": i})
        fast.get(timeout=1)

    assert slow.closed
    assert hub.subscriber_count == 1
    assert hub.publish("order.created", {"n": 3}) == 1


def test_unsubscribe_and_empty_hub():
    hub = OrderNotificationHub()
    sub = hub.subscribe()
    hub.unsubscribe(sub)

    assert hub.publish("order.created", {}) == 0
    assert sub.get(timeout=0.01) is None
