import asyncio
import time

import pytest

from schoolportal.core.errors import DataStoreError
from schoolportal.datastore import DataStore


def test_slow_query_does_not_block_event_loop(store: DataStore, monkeypatch: pytest.MonkeyPatch) -> None:
    original_query = store.db.query

    def slow_query(*entities):
        time.sleep(0.2)
        return original_query(*entities)

    monkeypatch.setattr(store.db, 'query', slow_query)

    async def select_while_ticking():
        ticks = 0

        async def ticker():
            nonlocal ticks
            for _ in range(20):
                await asyncio.sleep(0.01)
                ticks += 1

        ticking = asyncio.create_task(ticker())
        rows = await store.select('users')
        ticks_during_select = ticks
        await ticking
        return rows, ticks_during_select

    rows, ticks_during_select = asyncio.run(select_while_ticking())

    assert rows == []
    assert ticks_during_select > 0


def test_select_reflects_committed_updates(store: DataStore) -> None:
    user = asyncio.run(store.insert('users', email='jane@gmail.com', hashed_password='x'))

    changed = asyncio.run(store.update('users', {'id': user.id}, {'email_confirmed': False}))

    assert changed == 1
    assert asyncio.run(store.select_one('users', id=user.id)).email_confirmed is False


def test_transaction_rolls_back_every_write(store: DataStore) -> None:
    async def failing_registration():
        async with store.transaction():
            await store.insert('users', email='jane@gmail.com', hashed_password='x')
            raise RuntimeError('profile write failed')

    with pytest.raises(RuntimeError):
        asyncio.run(failing_registration())

    assert asyncio.run(store.select('users')) == []


def test_unknown_table_is_rejected(store: DataStore) -> None:
    with pytest.raises(ValueError):
        asyncio.run(store.select('grades'))


def test_duplicate_insert_raises_datastore_error(store: DataStore) -> None:
    asyncio.run(store.insert('users', email='jane@gmail.com', hashed_password='x'))

    with pytest.raises(DataStoreError):
        asyncio.run(store.insert('users', email='jane@gmail.com', hashed_password='x'))
