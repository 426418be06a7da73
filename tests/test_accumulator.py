import pytest
import requests

from othershorts.client.accumulator import (
    LOAD_FAILED_MESSAGE,
    NO_VIDEOS_MESSAGE,
    FeedAccumulator,
    LoadState,
)
from othershorts.client.api import ApiError
from othershorts.client.session import FeedSession


class FakeFeedApi:
    """
    In-memory stand-in for the batch endpoint: serves the first eligible
    uploader (dict order) instead of a random one.
    """

    def __init__(self, uploads, fail_fetch=False, fail_rating=False):
        self.uploads = uploads
        self.fail_fetch = fail_fetch
        self.fail_rating = fail_rating
        self.fetch_calls = []
        self.ratings = []

    def fetch_batch(self, user_id, seen, submitted):
        self.fetch_calls.append((list(seen), list(submitted)))
        if self.fail_fetch:
            raise requests.ConnectionError("connection refused")
        for uploader, urls in self.uploads.items():
            if uploader == user_id or uploader in seen:
                continue
            left = [u for u in urls if u not in submitted]
            if left:
                return [{"url": u, "uploaderId": uploader} for u in reversed(left)][:5]
        return []

    def submit_rating(self, user_id, reviewer_id, rating, political, video_url=None):
        if self.fail_rating:
            raise ApiError(500, "Database operation failed.")
        self.ratings.append((user_id, reviewer_id, rating, political, video_url))


def urls_of(uploader, n):
    return [f"https://www.youtube.com/shorts/{uploader}-{i}" for i in range(n)]


def assert_unique(session):
    urls = [v["url"] for v in session.videos]
    assert len(urls) == len(set(urls))


def test_single_uploader_fills_page():
    api = FakeFeedApi({"u1": urls_of("u1", 8)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.DONE
    assert outcome.calls == 1
    assert len(session.videos) == 5
    assert session.seen == {"u1"}


def test_short_batches_keep_calling():
    api = FakeFeedApi({"u1": urls_of("u1", 2), "u2": urls_of("u2", 2), "u3": urls_of("u3", 3)})
    acc = FeedAccumulator(api, page_size=5, max_calls=3)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.DONE
    assert outcome.calls == 3
    assert len(session.videos) == 7
    assert session.seen == {"u1", "u2", "u3"}
    # every later call excluded the uploaders already served
    assert [seen for seen, _ in api.fetch_calls] == [[], ["u1"], ["u1", "u2"]]


def test_call_budget_caps_the_loop():
    uploads = {f"u{i}": urls_of(f"u{i}", 1) for i in range(10)}
    api = FakeFeedApi(uploads)
    acc = FeedAccumulator(api, page_size=5, max_calls=3)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.calls == 3
    assert outcome.state is LoadState.DONE
    assert len(session.videos) == 3


def test_pool_exhaustion_resets_seen_once():
    api = FakeFeedApi({"u1": urls_of("u1", 6)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me", seen={"u1"})

    outcome = acc.load_page(session)

    assert outcome.resets == 1
    assert outcome.calls == 2
    assert outcome.state is LoadState.DONE
    assert api.fetch_calls[0][0] == ["u1"]
    assert api.fetch_calls[1][0] == []
    assert session.seen == {"u1"}


def test_reset_happens_at_most_once_per_load():
    api = FakeFeedApi({})
    acc = FeedAccumulator(api, max_calls=3)
    session = FeedSession(user_id="me", seen={"u1", "u2"})

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.EXHAUSTED
    assert outcome.resets == 1
    assert outcome.calls == 2
    assert session.error == NO_VIDEOS_MESSAGE


def test_empty_pool_with_nothing_seen_does_not_reset():
    api = FakeFeedApi({"me": urls_of("me", 3)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.EXHAUSTED
    assert outcome.calls == 1
    assert outcome.resets == 0
    assert session.error == NO_VIDEOS_MESSAGE


def test_no_error_when_videos_already_on_screen():
    api = FakeFeedApi({})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me", videos=[{"url": "https://www.youtube.com/shorts/x", "uploaderId": "u9"}])

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.EXHAUSTED
    assert session.error is None
    assert len(session.videos) == 1


def test_repeated_loads_never_duplicate_urls():
    api = FakeFeedApi({"u1": urls_of("u1", 3), "u2": urls_of("u2", 4)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    for _ in range(4):
        acc.load_page(session)

    assert_unique(session)
    assert len(session.videos) == 7


def test_merge_dedupes_against_displayed_list():
    session = FeedSession(user_id="me", videos=[{"url": "a"}, {"url": "b"}])
    added = session.merge([{"url": "b"}, {"url": "c"}, {"url": "c"}, {"nourl": True}])
    assert added == [{"url": "c"}]
    assert [v["url"] for v in session.videos] == ["a", "b", "c"]


def test_fetch_failure_halts_load():
    api = FakeFeedApi({"u1": urls_of("u1", 5)}, fail_fetch=True)
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.FAILED
    assert outcome.calls == 1
    assert session.error == LOAD_FAILED_MESSAGE
    assert session.in_flight is False


def test_load_in_flight_is_a_noop():
    api = FakeFeedApi({"u1": urls_of("u1", 5)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me", in_flight=True)

    assert acc.load_page(session) is None
    assert api.fetch_calls == []


def test_submit_rating_marks_url_and_excludes_it():
    api = FakeFeedApi({"u1": urls_of("u1", 6)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")
    acc.load_page(session)
    video = session.videos[0]

    assert acc.submit_rating(session, video, 80, False) is True
    assert session.is_submitted(video["url"])
    assert api.ratings == [("u1", "me", 80, False, video["url"])]

    session.seen.clear()
    acc.load_page(session)
    _, submitted = api.fetch_calls[-1]
    assert submitted == [video["url"]]


def test_submit_rating_is_one_shot():
    api = FakeFeedApi({})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")
    video = {"url": "https://www.youtube.com/shorts/x", "uploaderId": "u1"}

    assert acc.submit_rating(session, video, 40, True) is True
    assert acc.submit_rating(session, video, 90, False) is False
    assert len(api.ratings) == 1


@pytest.mark.parametrize("video,political", [
    ({"url": "https://www.youtube.com/shorts/x", "uploaderId": "u1"}, None),
    ({"url": "https://www.youtube.com/shorts/x"}, True),
    ({"uploaderId": "u1"}, True),
])
def test_submit_rating_needs_complete_input(video, political):
    api = FakeFeedApi({})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    assert acc.submit_rating(session, video, 50, political) is False
    assert api.ratings == []


def test_submit_rating_failure_leaves_video_unrated():
    api = FakeFeedApi({}, fail_rating=True)
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")
    video = {"url": "https://www.youtube.com/shorts/x", "uploaderId": "u1"}

    assert acc.submit_rating(session, video, 50, False) is False
    assert not session.is_submitted(video["url"])
    assert session.submitting is None

    api.fail_rating = False
    assert acc.submit_rating(session, video, 50, False) is True


def test_unavailable_video_is_dropped_from_screen():
    session = FeedSession(user_id="me", videos=[{"url": "a"}, {"url": "b"}])
    session.remove("a")
    assert session.videos == [{"url": "b"}]
    assert session.merge([{"url": "a"}]) == [{"url": "a"}]


class FailsAfterFirstCall(FakeFeedApi):
    def fetch_batch(self, user_id, seen, submitted):
        if self.fetch_calls:
            self.fetch_calls.append((list(seen), list(submitted)))
            raise requests.ConnectionError("connection reset")
        return super().fetch_batch(user_id, seen, submitted)


def test_failure_mid_load_keeps_videos_already_fetched():
    api = FailsAfterFirstCall({"u1": urls_of("u1", 1), "u2": urls_of("u2", 3)})
    acc = FeedAccumulator(api)
    session = FeedSession(user_id="me")

    outcome = acc.load_page(session)

    assert outcome.state is LoadState.FAILED
    assert outcome.calls == 2
    assert session.error == LOAD_FAILED_MESSAGE
    # u1 is in seen, so its video has to be on screen
    assert session.seen == {"u1"}
    assert [v["url"] for v in session.videos] == urls_of("u1", 1)
    assert [v["url"] for v in outcome.added] == urls_of("u1", 1)
