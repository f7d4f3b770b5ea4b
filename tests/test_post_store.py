"""Unit tests for posts/store.py -- PostStore CRUD and paging."""

import pytest

from posts.models import Post
from posts.store import PostStore, page_offset


@pytest.fixture
def store():
    s = PostStore("sqlite:///:memory:")
    yield s
    s.close()


def _post(n: int, owner: int = 1) -> Post:
    return Post(title=f"Title {n}", description=f"Description number {n}", user_id=owner)


class TestPageOffset:
    @pytest.mark.parametrize("page,expected", [(None, 0), (-3, 0), (0, 0), (1, 0), (2, 10), (5, 40)])
    def test_offsets(self, page, expected):
        assert page_offset(page, 10) == expected


class TestCrud:
    def test_create_and_get(self, store):
        pid = store.create_post(_post(1, owner=4))
        post = store.get_post(pid)
        assert post.title == "Title 1"
        assert post.user_id == 4
        assert post.created_at == post.updated_at
        assert post.owner_email is None

    def test_get_missing(self, store):
        assert store.get_post(42) is None

    def test_update(self, store):
        pid = store.create_post(_post(1))
        assert store.update_post(pid, title="Renamed") is True
        post = store.get_post(pid)
        assert post.title == "Renamed"
        assert post.description == "Description number 1"

    def test_update_missing(self, store):
        assert store.update_post(42, title="Renamed") is False

    def test_update_nothing(self, store):
        pid = store.create_post(_post(1))
        assert store.update_post(pid) is False

    def test_update_rejects_unknown_fields(self, store):
        pid = store.create_post(_post(1))
        with pytest.raises(ValueError):
            store.update_post(pid, user_id=99)

    def test_delete(self, store):
        pid = store.create_post(_post(1))
        assert store.delete_post(pid) is True
        assert store.get_post(pid) is None
        assert store.delete_post(pid) is False


class TestListing:
    def test_newest_first_and_paged(self, store):
        ids = [store.create_post(_post(n)) for n in range(12)]
        first = store.list_posts(page=1, per_page=10)
        second = store.list_posts(page=2, per_page=10)

        assert [p.id for p in first] == list(reversed(ids))[:10]
        assert [p.id for p in second] == list(reversed(ids))[10:]
        assert store.count_posts() == 12

    def test_page_below_one_is_first_page(self, store):
        for n in range(3):
            store.create_post(_post(n))
        assert [p.id for p in store.list_posts(page=0)] == [p.id for p in store.list_posts(page=1)]

    def test_past_last_page_is_empty(self, store):
        store.create_post(_post(1))
        assert store.list_posts(page=3) == []


class TestIntegerRange:
    """Values past SQLite's signed 64-bit INTEGER never reach the driver."""

    def test_huge_page_is_empty(self, store):
        store.create_post(_post(1))
        assert store.list_posts(page=10**19) == []

    @pytest.mark.parametrize("post_id", [2**63, -(2**63) - 1, 10**30])
    def test_huge_ids_are_missing(self, store, post_id):
        assert store.get_post(post_id) is None
        assert store.update_post(post_id, title="Renamed") is False
        assert store.delete_post(post_id) is False

    def test_largest_id_still_queried(self, store):
        assert store.get_post(2**63 - 1) is None
