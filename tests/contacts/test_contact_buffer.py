from __future__ import annotations

import threading

from tire_friction.contacts.buffer import ContactBuffer
from tire_friction.contacts.records import ContactBatch


def test_take_on_empty_buffer_returns_none() -> None:
    buffer = ContactBuffer()

    assert buffer.take() is None
    assert not buffer.pending
    assert buffer.statistics == {"received": 0, "consumed": 0, "overwritten": 0, "rejected": 0}


def test_take_hands_over_batch_once() -> None:
    buffer = ContactBuffer()
    batch = ContactBatch(time=1.0)

    buffer.put(batch)

    assert buffer.pending
    assert buffer.take() is batch
    assert buffer.take() is None
    assert buffer.statistics["consumed"] == 1


def test_latest_batch_wins() -> None:
    buffer = ContactBuffer()
    first = ContactBatch(time=1.0)
    second = ContactBatch(time=2.0)

    buffer.put(first)
    buffer.put(second)

    assert buffer.take() is second
    assert buffer.statistics == {"received": 2, "consumed": 1, "overwritten": 1, "rejected": 0}


def test_concurrent_producers_leave_one_batch() -> None:
    buffer = ContactBuffer()
    producers = 8
    per_producer = 200
    start = threading.Barrier(producers)

    def produce(offset: int) -> None:
        start.wait()
        for index in range(per_producer):
            buffer.put(ContactBatch(time=float(offset * per_producer + index)))

    threads = [threading.Thread(target=produce, args=(offset,)) for offset in range(producers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    batch = buffer.take()
    stats = buffer.statistics

    assert batch is not None
    assert buffer.take() is None
    assert stats["received"] == producers * per_producer
    assert stats["overwritten"] == producers * per_producer - 1


def test_consumer_sees_each_batch_at_most_once() -> None:
    buffer = ContactBuffer()
    total = 500
    taken: list[ContactBatch] = []
    done = threading.Event()

    def consume() -> None:
        while not done.is_set() or buffer.pending:
            batch = buffer.take()
            if batch is not None:
                taken.append(batch)

    consumer = threading.Thread(target=consume)
    consumer.start()
    for index in range(total):
        buffer.put(ContactBatch(time=float(index)))
    done.set()
    consumer.join()

    times = [batch.time for batch in taken]
    assert len(times) == len(set(times))
    assert times == sorted(times)
    stats = buffer.statistics
    assert stats["consumed"] + stats["overwritten"] == total


def test_concurrent_rejections_are_all_counted() -> None:
    buffer = ContactBuffer()
    workers = 8
    per_worker = 500
    start = threading.Barrier(workers)

    def reject() -> None:
        start.wait()
        for _ in range(per_worker):
            buffer.reject()

    threads = [threading.Thread(target=reject) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stats = buffer.statistics
    assert stats["rejected"] == workers * per_worker
    assert stats["received"] == 0
    assert not buffer.pending
