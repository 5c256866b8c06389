import pytest

from postsync.entities import (
    ListView,
    Pagination,
    PostPage,
    PostStats,
    PostStatus,
    UploadedImage,
)
from postsync.operations import (
    Fulfilled,
    ListRequest,
    OperationKind,
    Rejected,
    SearchRequest,
    UserListRequest,
)
from postsync.store import PostStore
from tests.fake_gateway import make_post


def fulfill(store: PostStore, kind: OperationKind, payload=None, request=None) -> bool:
    pending = store.begin(kind)
    return store.settle(Fulfilled(kind, pending.token, payload, request))


def reject(store: PostStore, kind: OperationKind, message: str) -> bool:
    pending = store.begin(kind)
    return store.settle(Rejected(kind, pending.token, message))


@pytest.fixture
def seeded(store):
    """Store with p1 in every view and as the current post"""
    p1, p2, p3 = make_post("p1"), make_post("p2"), make_post("p3", user_id="u2")
    fulfill(store, OperationKind.LIST, PostPage(items=[p1, p2, p3], total=3), ListRequest())
    fulfill(
        store,
        OperationKind.LIST_BY_USER,
        PostPage(items=[p1, p2], total=2),
        UserListRequest(user_id="u1"),
    )
    fulfill(
        store,
        OperationKind.SEARCH,
        PostPage(items=[p1], total=1),
        SearchRequest(query="Title"),
    )
    fulfill(store, OperationKind.GET_BY_ID, p1, "p1")
    return store


class TestOperationLifecycle:
    def test_begin_sets_loading_and_clears_error(self, store):
        reject(store, OperationKind.SEARCH, "timeout")
        assert store.state.errors[OperationKind.SEARCH] == "timeout"

        pending = store.begin(OperationKind.SEARCH)

        assert pending.kind == OperationKind.SEARCH
        assert store.state.loading[OperationKind.SEARCH] is True
        assert store.state.errors[OperationKind.SEARCH] is None

    def test_tokens_increase_per_kind(self, store):
        first = store.begin(OperationKind.LIST)
        second = store.begin(OperationKind.LIST)
        other = store.begin(OperationKind.SEARCH)

        assert second.token == first.token + 1
        assert other.token == 1

    def test_stale_outcome_is_discarded(self, store):
        stale = store.begin(OperationKind.LIST)
        latest = store.begin(OperationKind.LIST)
        page = PostPage(items=[make_post("old")], total=1)

        assert store.settle(Fulfilled(OperationKind.LIST, stale.token, page, ListRequest())) is False
        assert store.state.primary == ()
        assert store.state.loading[OperationKind.LIST] is True

        fresh = PostPage(items=[make_post("new")], total=1)
        assert store.settle(Fulfilled(OperationKind.LIST, latest.token, fresh, ListRequest()))
        assert [post.id for post in store.state.primary] == ["new"]
        assert store.state.loading[OperationKind.LIST] is False

    def test_rejection_keeps_views(self, seeded):
        before = seeded.state

        reject(seeded, OperationKind.LIST, "boom")

        after = seeded.state
        assert after.primary == before.primary
        assert after.primary_page == before.primary_page
        assert after.errors[OperationKind.LIST] == "boom"
        assert after.loading[OperationKind.LIST] is False

    def test_rejection_does_not_touch_other_kinds(self, store):
        reject(store, OperationKind.SEARCH, "search failed")
        upload = store.begin(OperationKind.UPLOAD_IMAGE)

        reject(store, OperationKind.DELETE, "delete failed")

        assert store.state.errors[OperationKind.SEARCH] == "search failed"
        assert store.state.loading[OperationKind.UPLOAD_IMAGE] is True
        assert store.is_current(OperationKind.UPLOAD_IMAGE, upload.token)

    def test_abandon_clears_loading_without_error(self, store):
        pending = store.begin(OperationKind.GET_STATS)
        store.abandon(OperationKind.GET_STATS, pending.token)

        assert store.state.loading[OperationKind.GET_STATS] is False
        assert store.state.errors[OperationKind.GET_STATS] is None

    def test_abandon_of_superseded_token_is_ignored(self, store):
        stale = store.begin(OperationKind.GET_STATS)
        store.begin(OperationKind.GET_STATS)
        store.abandon(OperationKind.GET_STATS, stale.token)

        assert store.state.loading[OperationKind.GET_STATS] is True

    def test_malformed_payload_is_recorded_as_error(self, seeded):
        before = seeded.state.primary

        assert fulfill(seeded, OperationKind.UPDATE, payload="not a post")
        assert seeded.state.errors[OperationKind.UPDATE].startswith("Malformed update response")
        assert seeded.state.loading[OperationKind.UPDATE] is False
        assert seeded.state.primary == before


class TestReconciliation:
    def test_create_prepends_to_primary_only(self, seeded):
        new = make_post("p9", minutes=5)

        fulfill(seeded, OperationKind.CREATE, new)

        state = seeded.state
        assert state.primary[0] == new
        assert state.primary_page.total == 4
        assert all(post.id != "p9" for post in state.by_user)
        assert all(post.id != "p9" for post in state.search_results)

    def test_create_does_not_duplicate(self, seeded):
        fulfill(seeded, OperationKind.CREATE, make_post("p2", title="Again"))

        ids = [post.id for post in seeded.state.primary]
        assert ids.count("p2") == 1
        assert ids[0] == "p2"

    def test_list_replaces_view_and_cursor(self, seeded):
        page = PostPage(items=[make_post("p7")], total=31)

        fulfill(seeded, OperationKind.LIST, page, ListRequest(page=2, limit=10))

        state = seeded.state
        assert [post.id for post in state.primary] == ["p7"]
        assert state.primary_page == Pagination(page=2, limit=10, total=31)
        assert state.primary_page.total_pages == 4

    def test_list_append_keeps_prior_items(self, seeded):
        page = PostPage(items=[make_post("p3", user_id="u2"), make_post("p4")], total=4)

        fulfill(seeded, OperationKind.LIST, page, ListRequest(page=2, limit=3, append=True))

        state = seeded.state
        assert [post.id for post in state.primary] == ["p1", "p2", "p3", "p4"]
        assert state.primary_page.page == 2

    def test_append_on_first_page_replaces(self, seeded):
        page = PostPage(items=[make_post("p5")], total=1)

        fulfill(seeded, OperationKind.LIST, page, ListRequest(page=1, append=True))

        assert [post.id for post in seeded.state.primary] == ["p5"]

    def test_list_by_user_sets_selected_user(self, store):
        fulfill(
            store,
            OperationKind.LIST_BY_USER,
            PostPage(items=[make_post("p1", user_id="u7")], total=1),
            UserListRequest(user_id="u7"),
        )

        assert store.state.selected_user_id == "u7"
        assert store.state.by_user_page.total_pages == 1

    def test_search_sets_query(self, store):
        fulfill(
            store,
            OperationKind.SEARCH,
            PostPage(items=[], total=0),
            SearchRequest(query="golang"),
        )

        assert store.state.search_query == "golang"
        assert store.state.search_results == ()

    def test_get_by_id_overwrites_current(self, seeded):
        other = make_post("p2")
        fulfill(seeded, OperationKind.GET_BY_ID, other, "p2")

        assert seeded.state.current == other

    def test_update_replaces_in_place_everywhere(self, seeded):
        updated = make_post("p1", title="Renamed", status=PostStatus.PUBLISHED)

        fulfill(seeded, OperationKind.UPDATE, updated, "p1")

        state = seeded.state
        assert state.primary[0] == updated
        assert state.by_user[0] == updated
        assert state.search_results[0] == updated
        assert state.current == updated
        assert [post.id for post in state.primary] == ["p1", "p2", "p3"]

    def test_update_never_inserts(self, seeded):
        stranger = make_post("p3", user_id="u2", title="Changed")

        fulfill(seeded, OperationKind.UPDATE, stranger, "p3")

        state = seeded.state
        assert state.primary[2] == stranger
        assert all(post.id != "p3" for post in state.by_user)
        assert all(post.id != "p3" for post in state.search_results)
        assert state.current.id == "p1"

    def test_delete_removes_from_every_view(self, seeded):
        fulfill(seeded, OperationKind.DELETE, None, "p1")

        state = seeded.state
        assert all(post.id != "p1" for post in state.primary)
        assert all(post.id != "p1" for post in state.by_user)
        assert state.search_results == ()
        assert state.current is None
        assert state.primary_page.total == 2
        assert state.by_user_page.total == 1
        assert state.search_page.total == 0

    def test_delete_leaves_unrelated_filtered_totals(self, seeded):
        fulfill(seeded, OperationKind.DELETE, None, "p3")

        state = seeded.state
        assert state.primary_page.total == 2
        assert state.by_user_page.total == 2
        assert state.search_page.total == 1
        assert state.current.id == "p1"

    def test_delete_of_unknown_post_floors_primary_total(self, store):
        fulfill(store, OperationKind.DELETE, None, "ghost")

        assert store.state.primary_page.total == 0

    def test_delete_counts_selected_user_post_known_only_as_current(self, store):
        fulfill(
            store,
            OperationKind.LIST_BY_USER,
            PostPage(items=[make_post("p1")], total=12),
            UserListRequest(user_id="u1"),
        )
        fulfill(store, OperationKind.GET_BY_ID, make_post("p20"), "p20")

        fulfill(store, OperationKind.DELETE, None, "p20")

        assert store.state.by_user_page.total == 11
        assert store.state.current is None

    def test_upload_lifecycle(self, store):
        store.set_upload_progress(40)
        pending = store.begin(OperationKind.UPLOAD_IMAGE)
        assert store.state.upload.progress == 0

        image = UploadedImage(url="https://cdn.test/a.png", path="featured-images/a.png")
        store.settle(Fulfilled(OperationKind.UPLOAD_IMAGE, pending.token, image, None))

        upload = store.state.upload
        assert (upload.progress, upload.url, upload.path) == (
            100,
            "https://cdn.test/a.png",
            "featured-images/a.png",
        )

        fulfill(store, OperationKind.DELETE_IMAGE, None, "featured-images/a.png")
        assert store.state.upload.url is None
        assert store.state.upload.path is None

    def test_upload_rejection_resets_progress(self, store):
        store.set_upload_progress(70)
        reject(store, OperationKind.UPLOAD_IMAGE, "File size exceeds 5MB limit")

        assert store.state.upload.progress == 0
        assert store.state.errors[OperationKind.UPLOAD_IMAGE] == "File size exceeds 5MB limit"

    def test_upload_does_not_touch_posts(self, seeded):
        before = seeded.state
        fulfill(
            seeded,
            OperationKind.UPLOAD_IMAGE,
            UploadedImage(url="https://cdn.test/x.png", path="x.png"),
            "p1",
        )

        assert seeded.state.primary == before.primary
        assert seeded.state.current == before.current

    def test_stats_are_stored(self, store):
        stats = PostStats(total_posts=3, published_posts=1, draft_posts=2)
        fulfill(store, OperationKind.GET_STATS, stats)

        assert store.state.stats == stats


def apply_step(store: PostStore, step) -> None:
    action, value = step
    if action == "create":
        fulfill(store, OperationKind.CREATE, value)
    elif action == "update":
        fulfill(store, OperationKind.UPDATE, value, value.id)
    else:
        fulfill(store, OperationKind.DELETE, None, value)


def track_step(known: dict, totals: dict, search_ids: set, step) -> None:
    """Apply step to the expected server-side picture"""
    action, value = step
    if action in ("create", "update"):
        known[value.id] = value
        return
    removed = known.pop(value)
    if removed.user_id == "u1":
        totals["by_user"] = max(0, totals["by_user"] - 1)
    if value in search_ids:
        search_ids.discard(value)
        totals["search"] = max(0, totals["search"] - 1)


SEQUENCES = {
    "create_update_delete": [
        ("create", make_post("p4", minutes=4)),
        ("update", make_post("p4", title="Edited", minutes=4)),
        ("delete", "p4"),
    ],
    "update_then_delete_current": [
        ("update", make_post("p1", title="Live", status=PostStatus.PUBLISHED)),
        ("update", make_post("p1", title="Live again", status=PostStatus.PUBLISHED)),
        ("delete", "p1"),
        ("update", make_post("p2", title="Still here")),
    ],
    "interleaved_users": [
        ("create", make_post("p4", user_id="u2", minutes=4)),
        ("create", make_post("p5", minutes=5)),
        ("delete", "p3"),
        ("update", make_post("p5", content="Rewritten", minutes=5)),
        ("delete", "p5"),
        ("update", make_post("p4", user_id="u2", title="Theirs", minutes=4)),
    ],
    "drain_everything": [
        ("delete", "p2"),
        ("create", make_post("p4", minutes=4)),
        ("delete", "p1"),
        ("delete", "p3"),
        ("delete", "p4"),
    ],
}


class TestMutationSequences:
    @pytest.mark.parametrize("steps", list(SEQUENCES.values()), ids=list(SEQUENCES))
    def test_views_track_latest_versions(self, seeded, steps):
        known = {post.id: post for post in seeded.state.primary}
        totals = {"by_user": 2, "search": 1}
        search_ids = {"p1"}
        deleted = set()

        for step in steps:
            apply_step(seeded, step)
            track_step(known, totals, search_ids, step)
            if step[0] == "delete":
                deleted.add(step[1])

            state = seeded.state
            views = {
                "primary": state.primary,
                "by_user": state.by_user,
                "search_results": state.search_results,
                "current": (state.current,) if state.current is not None else (),
            }
            for name, posts in views.items():
                ids = [post.id for post in posts]
                assert len(ids) == len(set(ids)), f"{name} after {step}"
                assert not deleted & set(ids), f"{name} after {step}"
                assert all(post == known[post.id] for post in posts), f"{name} after {step}"

            assert {post.id for post in state.primary} == set(known)
            assert state.primary_page.total == len(known)
            assert state.by_user_page.total == totals["by_user"]
            assert state.search_page.total == totals["search"]



class TestActions:
    def test_clear_single_error(self, store):
        reject(store, OperationKind.CREATE, "create failed")
        reject(store, OperationKind.SEARCH, "search failed")

        store.clear_error(OperationKind.CREATE)

        assert store.state.errors[OperationKind.CREATE] is None
        assert store.state.errors[OperationKind.SEARCH] == "search failed"

    def test_clear_all_errors(self, store):
        reject(store, OperationKind.CREATE, "create failed")
        reject(store, OperationKind.SEARCH, "search failed")

        store.clear_error()

        assert all(error is None for error in store.state.errors.values())

    def test_clear_search(self, seeded):
        reject(seeded, OperationKind.SEARCH, "oops")
        seeded.clear_search()

        state = seeded.state
        assert state.search_results == ()
        assert state.search_query == ""
        assert state.search_page == Pagination(limit=seeded.config.page_size)
        assert state.errors[OperationKind.SEARCH] is None

    def test_clear_user_view(self, seeded):
        seeded.clear_user_view()

        state = seeded.state
        assert state.by_user == ()
        assert state.selected_user_id is None
        assert state.by_user_page.total == 0

    def test_clear_current(self, seeded):
        seeded.clear_current()
        assert seeded.state.current is None

    def test_reset_upload_state(self, store):
        fulfill(
            store,
            OperationKind.UPLOAD_IMAGE,
            UploadedImage(url="https://cdn.test/a.png", path="a.png"),
        )
        reject(store, OperationKind.DELETE_IMAGE, "missing")

        store.reset_upload_state()

        assert store.state.upload.progress == 0
        assert store.state.upload.url is None
        assert store.state.errors[OperationKind.DELETE_IMAGE] is None

    @pytest.mark.parametrize("progress,expected", [(-5, 0), (55, 55), (180, 100)])
    def test_upload_progress_is_clamped(self, store, progress, expected):
        store.set_upload_progress(progress)
        assert store.state.upload.progress == expected

    def test_setters(self, store):
        store.set_search_query("rust")
        store.set_selected_user_id("u3")

        assert store.state.search_query == "rust"
        assert store.state.selected_user_id == "u3"

    def test_reset_invalidates_in_flight(self, seeded):
        pending = seeded.begin(OperationKind.LIST)

        seeded.reset()

        page = PostPage(items=[make_post("late")], total=1)
        assert not seeded.settle(Fulfilled(OperationKind.LIST, pending.token, page, ListRequest()))
        assert seeded.state.primary == ()
        assert seeded.state.current is None
        assert seeded.state.loading[OperationKind.LIST] is False


class TestListeners:
    def test_listener_sees_each_snapshot(self, store):
        seen = []
        store.subscribe(seen.append)

        fulfill(store, OperationKind.GET_BY_ID, make_post("p1"), "p1")

        # pending then fulfilled
        assert len(seen) == 2
        assert seen[0].loading[OperationKind.GET_BY_ID] is True
        assert seen[-1].current.id == "p1"

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()

        store.set_search_query("x")
        assert seen == []

    def test_failing_listener_does_not_break_store(self, store):
        def broken(state):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.set_search_query("still works")

        assert store.state.search_query == "still works"
