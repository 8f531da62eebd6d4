"""Tests for multi-account abuse detection."""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.accounts.models import Role
from src.comments.abuse import AbuseDetector
from src.comments.models import CommentTarget, create_comment


IP = "203.0.113.50"


@pytest.fixture
def detector(account_store, comment_store) -> AbuseDetector:
    return AbuseDetector(account_store, comment_store)


@pytest.fixture
def post(comment_store):
    """Store a comment from ``account`` at ``when``."""

    async def _post(account, when, origin_ip=IP):
        comment = create_comment(
            author_id=account.account_id,
            content="spam",
            target=CommentTarget.page(uuid4()),
            created_at=when,
            origin_ip=origin_ip,
        )
        await comment_store.insert(comment)
        return comment

    return _post


class TestCheckAndFreeze:
    """Tests for AbuseDetector.check_and_freeze."""

    @pytest.mark.asyncio
    async def test_two_accounts_do_not_trigger(self, detector, make_account, post, start_time):
        a, b = make_account("a"), make_account("b")
        await post(a, start_time)
        await post(b, start_time + timedelta(seconds=5))

        frozen = await detector.check_and_freeze(IP, start_time + timedelta(seconds=5))

        assert frozen == []
        assert a.frozen_until is None
        assert b.frozen_until is None

    @pytest.mark.asyncio
    async def test_three_accounts_within_window_are_frozen_for_a_day(
        self, detector, make_account, post, start_time
    ):
        accounts = [make_account(name) for name in ("a", "b", "c")]
        for offset, account in enumerate(accounts):
            await post(account, start_time + timedelta(seconds=offset * 10))
        now = start_time + timedelta(seconds=20)

        frozen = await detector.check_and_freeze(IP, now)

        assert set(frozen) == {a.account_id for a in accounts}
        for account in accounts:
            assert account.frozen_until == now + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_comments_outside_window_do_not_count(
        self, detector, make_account, post, start_time
    ):
        old, b, c = make_account("old"), make_account("b"), make_account("c")
        await post(old, start_time)
        await post(b, start_time + timedelta(seconds=25))
        await post(c, start_time + timedelta(seconds=30))

        frozen = await detector.check_and_freeze(IP, start_time + timedelta(seconds=30))

        assert frozen == []

    @pytest.mark.asyncio
    async def test_same_account_repeated_counts_once(
        self, detector, make_account, post, start_time
    ):
        a, b = make_account("a"), make_account("b")
        for offset in range(3):
            await post(a, start_time + timedelta(seconds=offset))
        await post(b, start_time + timedelta(seconds=3))

        assert await detector.check_and_freeze(IP, start_time + timedelta(seconds=3)) == []

    @pytest.mark.asyncio
    async def test_other_addresses_are_ignored(
        self, detector, make_account, post, start_time
    ):
        a, b, c = make_account("a"), make_account("b"), make_account("c")
        await post(a, start_time)
        await post(b, start_time)
        await post(c, start_time, origin_ip="198.51.100.1")

        assert await detector.check_and_freeze(IP, start_time) == []

    @pytest.mark.asyncio
    async def test_privileged_authors_count_but_are_not_frozen(
        self, detector, make_account, post, start_time
    ):
        editor = make_account("editor", roles={Role.EDITOR})
        a, b = make_account("a"), make_account("b")
        for account in (editor, a, b):
            await post(account, start_time)

        frozen = await detector.check_and_freeze(IP, start_time)

        assert set(frozen) == {a.account_id, b.account_id}
        assert editor.frozen_until is None

    @pytest.mark.asyncio
    async def test_already_frozen_accounts_count_and_are_extended(
        self, detector, make_account, post, start_time
    ):
        earlier_freeze = start_time + timedelta(hours=1)
        frozen_one = make_account("f", frozen_until=earlier_freeze)
        a, b = make_account("a"), make_account("b")
        for account in (frozen_one, a, b):
            await post(account, start_time)

        frozen = await detector.check_and_freeze(IP, start_time)

        assert frozen_one.account_id in frozen
        assert frozen_one.frozen_until == start_time + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_empty_address_is_ignored(self, detector):
        assert await detector.check_and_freeze("", None) == []
