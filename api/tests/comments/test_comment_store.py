"""Tests for CassandraCommentStore against a mocked session."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from src.comments.models import CommentTarget, create_comment
from src.comments.store import CassandraCommentStore


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: Mock(name="prepared", cql=cql))
    # Make aexecute awaitable (cassandra-asyncio-driver)
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def store(mock_session, monkeypatch) -> CassandraCommentStore:
    monkeypatch.setattr("src.comments.store.BatchStatement", Mock())
    return CassandraCommentStore(session=mock_session, keyspace="test_keyspace")


class TestInsert:
    @pytest.mark.asyncio
    async def test_paragraph_comment_bumps_counter_outside_batch(self, store, mock_session):
        paragraph_id = uuid4()
        comment = create_comment(
            uuid4(), "text", CommentTarget.paragraph(paragraph_id), NOW, origin_ip="10.1.1.1"
        )

        await store.insert(comment)

        assert mock_session.aexecute.await_count == 2
        counter_call = mock_session.aexecute.await_args_list[1]
        assert counter_call.args[0] is store._update_paragraph_count
        assert counter_call.args[1] == [1, paragraph_id]

    @pytest.mark.asyncio
    async def test_page_comment_only_writes_batch(self, store, mock_session):
        comment = create_comment(uuid4(), "text", CommentTarget.page(uuid4()), NOW)

        await store.insert(comment)

        assert mock_session.aexecute.await_count == 1


class TestQueries:
    @pytest.mark.asyncio
    async def test_authors_by_ip_since_returns_distinct_ids(self, store, mock_session):
        a, b = uuid4(), uuid4()
        mock_session.aexecute.return_value = [
            Mock(author_id=a), Mock(author_id=b), Mock(author_id=a)
        ]

        authors = await store.authors_by_ip_since("10.1.1.1", NOW)

        assert authors == {a, b}
        mock_session.aexecute.assert_awaited_with(
            store._get_authors_by_ip, ["10.1.1.1", NOW]
        )

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store, mock_session):
        result = Mock()
        result.one.return_value = None
        mock_session.aexecute.return_value = result

        assert await store.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_live_counts_skip_deleted_and_page_comments(self, store, mock_session):
        p1, p2 = uuid4(), uuid4()
        mock_session.aexecute.return_value = [
            Mock(paragraph_id=p1, is_deleted=False),
            Mock(paragraph_id=p1, is_deleted=False),
            Mock(paragraph_id=p2, is_deleted=True),
            Mock(paragraph_id=None, is_deleted=False),
        ]

        assert await store.live_paragraph_counts() == {p1: 2}


class TestMarkDeleted:
    @pytest.mark.asyncio
    async def test_clears_content_and_decrements_positive_counter(self, store, mock_session):
        paragraph_id = uuid4()
        comment = create_comment(uuid4(), "text", CommentTarget.paragraph(paragraph_id), NOW)
        count_result = Mock()
        count_result.one.return_value = Mock(comment_count=4)
        mock_session.aexecute.return_value = count_result

        deleted = await store.mark_deleted(comment, NOW)

        assert deleted.is_deleted is True
        assert deleted.content == ""
        mock_session.aexecute.assert_awaited_with(
            store._update_paragraph_count, [-1, paragraph_id]
        )

    @pytest.mark.asyncio
    async def test_zero_counter_is_not_decremented(self, store, mock_session):
        comment = create_comment(uuid4(), "text", CommentTarget.paragraph(uuid4()), NOW)
        count_result = Mock()
        count_result.one.return_value = Mock(comment_count=0)
        mock_session.aexecute.return_value = count_result

        await store.mark_deleted(comment, NOW)

        assert mock_session.aexecute.await_count == 2
