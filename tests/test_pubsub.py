from concurrent.futures import ThreadPoolExecutor

from sdb.pubsub import Message, PubSub


def _drain(subscription):
    return [message.payload for message in subscription]


def test_published_message_reaches_subscriber():
    hub = PubSub()
    sub = hub.subscribe(b"hhh")
    assert hub.publish(b"hhh", b"payload0") is True
    assert sub.get(timeout=1) == Message(topic=b"hhh", payload=b"payload0")


def test_other_topic_is_not_delivered():
    hub = PubSub()
    sub = hub.subscribe(b"hhh")
    hub.publish(b"hhhaaa", b"payloadaaa0")
    assert sub.get(timeout=0.05) is None


def test_every_subscriber_of_topic_receives():
    hub = PubSub()
    first = hub.subscribe(b"t")
    second = hub.subscribe(b"t")
    hub.publish(b"t", b"x")
    assert first.get(timeout=1).payload == b"x"
    assert second.get(timeout=1).payload == b"x"


def test_str_topic_matches_bytes():
    hub = PubSub()
    sub = hub.subscribe("t")
    hub.publish(b"t", "p")
    assert sub.get(timeout=1) == Message(b"t", b"p")


def test_iteration_drains_then_stops_after_close():
    hub = PubSub()
    sub = hub.subscribe(b"t")
    hub.publish(b"t", b"1")
    hub.publish(b"t", b"2")
    sub.close()
    hub.publish(b"t", b"3")
    assert [m.payload for m in sub] == [b"1", b"2"]
    assert sub.closed is True


def test_unsubscribe_stops_delivery():
    hub = PubSub()
    sub = hub.subscribe(b"t")
    hub.unsubscribe(sub)
    hub.publish(b"t", b"late")
    assert sub.get(timeout=0.05) is None
    assert sub.closed is True


def test_consumer_thread_sees_messages_in_order():
    hub = PubSub()
    sub = hub.subscribe(b"t")
    payloads = [b"a", b"b", b"c"]
    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(_drain, sub)
        for payload in payloads:
            hub.publish(b"t", payload)
        sub.close()
        received = future.result(timeout=5)
    assert received == payloads


def test_context_manager_closes():
    hub = PubSub()
    with hub.subscribe(b"t") as sub:
        hub.publish(b"t", b"x")
    assert sub.closed is True
    assert sub.get(timeout=0) == Message(b"t", b"x")
    assert sub.get(timeout=0) is None