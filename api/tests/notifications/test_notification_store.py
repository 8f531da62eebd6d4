"""Tests for the Cassandra notification stores against a mocked session."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session
from cassandra.query import BatchType

from src.notifications.models import (
    EmailFrequency,
    NotificationType,
    PageUpdateParams,
    create_notification,
)
from src.notifications.store import CassandraNotificationStore, CassandraSettingsStore


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def batch_cls(monkeypatch):
    batch = Mock()
    monkeypatch.setattr("src.notifications.store.BatchStatement", batch)
    return batch


@pytest.fixture
def store(mock_session, batch_cls) -> CassandraNotificationStore:
    return CassandraNotificationStore(session=mock_session, keyspace="test_keyspace")


def _notification(user_id=None):
    return create_notification(
        user_id=user_id or uuid4(),
        notification_type=NotificationType.PAGE_UPDATE,
        params=PageUpdateParams(username="Dana", page_name="Roadmap"),
        created_at=NOW,
        page_id=uuid4(),
    )


class TestInsertMany:
    """Tests for the fan-out batch write."""

    @pytest.mark.asyncio
    async def test_rows_of_many_recipients_share_one_unlogged_batch(
        self, store, mock_session, batch_cls
    ):
        rows = [_notification(), _notification(), _notification()]

        await store.insert_many(rows)

        batch_cls.assert_called_once_with(batch_type=BatchType.UNLOGGED)
        assert batch_cls.return_value.add.call_count == 3
        first_values = batch_cls.return_value.add.call_args_list[0].args[1]
        assert first_values[0] == rows[0].user_id
        assert first_values[6] == '{"username": "Dana", "pageName": "Roadmap"}'
        mock_session.aexecute.assert_awaited_once_with(batch_cls.return_value)

    @pytest.mark.asyncio
    async def test_nothing_to_write_skips_the_store(self, store, mock_session):
        await store.insert_many([])

        mock_session.aexecute.assert_not_awaited()


class TestMarkSent:
    """Tests for the conditional mark-as-sent write."""

    @pytest.mark.asyncio
    async def test_applied_write_flags_rows(self, store, mock_session):
        notification = _notification()
        mock_session.aexecute.return_value = Mock(was_applied=True)

        assert await store.mark_sent([notification]) is True
        assert notification.email_sent is True

    @pytest.mark.asyncio
    async def test_lost_race_leaves_rows_unflagged(self, store, mock_session):
        notification = _notification()
        mock_session.aexecute.return_value = Mock(was_applied=False)

        assert await store.mark_sent([notification]) is False
        assert notification.email_sent is False

    @pytest.mark.asyncio
    async def test_digest_rows_go_in_one_batch(self, store, mock_session, batch_cls):
        user_id = uuid4()
        rows = [_notification(user_id), _notification(user_id)]
        mock_session.aexecute.return_value = Mock(was_applied=True)

        await store.mark_sent(rows)

        assert batch_cls.return_value.add.call_count == 2
        mock_session.aexecute.assert_awaited_once_with(batch_cls.return_value)

    @pytest.mark.asyncio
    async def test_rows_of_different_recipients_are_refused(self, store):
        with pytest.raises(ValueError, match="single recipient"):
            await store.mark_sent([_notification(), _notification()])

    @pytest.mark.asyncio
    async def test_empty_is_a_no_op(self, store, mock_session):
        assert await store.mark_sent([]) is True
        mock_session.aexecute.assert_not_awaited()


class TestListUnsent:
    @pytest.mark.asyncio
    async def test_since_uses_windowed_query(self, store, mock_session):
        mock_session.aexecute.return_value = []

        await store.list_unsent(since=NOW)

        mock_session.aexecute.assert_awaited_once_with(store._get_unsent_since, [NOW])

    @pytest.mark.asyncio
    async def test_rows_are_parsed(self, store, mock_session):
        user_id = uuid4()
        row = Mock(
            notification_id=uuid4(),
            user_id=user_id,
            type="NewComment",
            title_key="notification.newComment.title",
            message_key="notification.newComment.message",
            params='{"username": "Dana", "pageName": "Roadmap", "preview": "Hi"}',
            title="New comment on followed page",
            message="Dana commented",
            created_at=NOW.replace(tzinfo=None),
            page_id=None,
            comment_id=None,
            related_user_id=None,
            is_read=False,
            read_at=None,
            email_sent=False,
        )
        mock_session.aexecute.return_value = [row]

        (notification,) = await store.list_unsent()

        assert notification.user_id == user_id
        assert notification.type is NotificationType.NEW_COMMENT
        assert notification.params.preview == "Hi"
        assert notification.created_at == NOW


class TestSettingsStore:
    @pytest.mark.asyncio
    async def test_first_access_inserts_defaults_if_not_exists(self, mock_session):
        store = CassandraSettingsStore(mock_session, "test_keyspace")
        empty = Mock()
        empty.one.return_value = None
        mock_session.aexecute.return_value = empty
        user_id = uuid4()

        settings = await store.get_or_create(user_id)

        assert settings.user_id == user_id
        assert settings.email_frequency is EmailFrequency.NONE
        insert_call = mock_session.aexecute.await_args_list[-1]
        assert insert_call.args[0] is store._insert_default_settings
        assert insert_call.args[1][:5] == [user_id, True, True, True, "none"]

    @pytest.mark.asyncio
    async def test_get_many_with_no_ids_skips_query(self, mock_session):
        store = CassandraSettingsStore(mock_session, "test_keyspace")

        assert await store.get_many([]) == {}
        mock_session.aexecute.assert_not_awaited()
