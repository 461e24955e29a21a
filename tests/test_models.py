"""
Aggregate unit tests: status machine, content updates, the image
collection with its cover pointer, and keyword membership with usage
counters.  No database is involved; everything runs on transient objects.
"""
import pytest

from app.models import ArticleStatus, EventArticle, Keyword, RegularArticle
from conftest import BASE_TIME, make_regular


def _article() -> RegularArticle:
    return make_regular("a1", board_id=1)


def _keyword(kid: int, name: str = "k", usage: int = 0) -> Keyword:
    return Keyword(id=kid, name=f"{name}{kid}", board_id=None, usage_count=usage)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_new_article_defaults():
    article = RegularArticle(id="x", title="t", content="c", writer_id="u1", board_id=1)
    assert article.status == ArticleStatus.ACTIVE
    assert article.images == []
    assert article.keyword_mappings == []
    assert article.cover_image_url is None
    assert article.image_sequence == 0
    assert article.created_at == article.updated_at


def test_view_count_treats_none_as_zero():
    article = RegularArticle(id="x", title="t", content="c", writer_id="u1", board_id=1)
    assert article.view_count is None
    assert article.increment_view_count() == 1
    assert article.increment_view_count() == 2


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("start", list(ArticleStatus))
def test_block_and_delete_allowed_from_any_state(start):
    article = _article()
    article.status = start
    article.block()
    assert article.is_blocked
    article.delete()
    assert article.is_deleted
    article.activate()
    assert article.is_active


def test_transition_touches_updated_at_only_on_change():
    article = _article()
    assert article.updated_at == BASE_TIME

    assert article.activate() is False
    assert article.updated_at == BASE_TIME

    assert article.block() is True
    touched = article.updated_at
    assert touched > BASE_TIME

    assert article.block() is False
    assert article.updated_at == touched


def test_delete_is_a_status_change():
    article = _article()
    article.delete()
    assert article.status == ArticleStatus.DELETED
    assert not article.is_active and not article.is_blocked


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

def test_update_content_ignores_none_and_blank():
    article = _article()
    assert article.update_content(None, "   ") is False
    assert article.title == "title a1"
    assert article.content == "content a1"
    assert article.updated_at == BASE_TIME


def test_update_content_changes_only_given_fields():
    article = _article()
    assert article.update_content("new title", None) is True
    assert article.title == "new title"
    assert article.content == "content a1"
    assert article.updated_at > BASE_TIME


def test_is_written_by():
    article = _article()
    assert article.is_written_by("u1")
    assert not article.is_written_by("u2")
    assert not article.is_written_by(None)


def test_event_reschedule():
    start = BASE_TIME
    end = BASE_TIME.replace(day=5)
    event = EventArticle(
        id="e1", title="t", content="c", writer_id="u1", board_id=1,
        event_start_date=start, event_end_date=end,
    )
    assert event.reschedule(start, end) is False
    new_end = BASE_TIME.replace(day=9)
    assert event.reschedule(None, new_end) is True
    assert event.event_start_date == start
    assert event.event_end_date == new_end


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def test_cover_follows_lowest_remaining_sequence():
    article = _article()
    article.add_image("id1", "url1")
    article.add_image("id2", "url2")
    assert article.cover_image_url == "url1"

    assert article.remove_image(article.find_image("id1")) is True
    assert article.cover_image_url == "url2"

    assert article.remove_image(article.find_image("id2")) is True
    assert article.cover_image_url is None
    assert article.images == []


def test_add_image_ignores_missing_values():
    article = _article()
    assert article.add_image(None, "url") is None
    assert article.add_image("id", None) is None
    assert article.images == []
    assert article.image_sequence == 0


def test_remove_image_noop_for_none_or_foreign():
    article = _article()
    article.add_image("id1", "url1")
    other = make_regular("a2", board_id=1)
    foreign = other.add_image("id1", "url1")
    assert article.remove_image(None) is False
    assert article.remove_image(foreign) is False
    assert len(article.images) == 1


def test_sequence_numbers_are_never_reused():
    article = _article()
    article.add_image("id1", "url1")
    article.add_image("id2", "url2")
    article.remove_image(article.find_image("id2"))
    third = article.add_image("id3", "url3")
    assert third.sequence == 3
    assert [i.sequence for i in article.images] == [1, 3]


def test_replace_images_restarts_cover_after_counter():
    article = _article()
    article.add_image("id1", "url1")
    article.replace_images([("id8", "url8"), ("id9", "url9")])
    assert [i.image_id for i in article.images] == ["id8", "id9"]
    assert [i.sequence for i in article.images] == [2, 3]
    assert article.cover_image_url == "url8"


def test_remove_images_clears_cover():
    article = _article()
    article.add_image("id1", "url1")
    article.remove_images()
    assert article.images == []
    assert article.cover_image_url is None


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------

def test_add_keyword_once():
    article = _article()
    keyword = _keyword(1)
    assert article.add_keyword(keyword) is True
    assert article.add_keyword(keyword) is False
    assert article.add_keyword(None) is False
    assert keyword.usage_count == 1
    assert article.keywords == [keyword]


def test_add_keyword_dedups_by_id():
    article = _article()
    article.add_keyword(_keyword(1))
    assert article.add_keyword(_keyword(1)) is False
    assert len(article.keyword_mappings) == 1


def test_remove_keyword():
    article = _article()
    keyword = _keyword(1)
    article.add_keyword(keyword)
    assert article.remove_keyword(keyword) is True
    assert keyword.usage_count == 0
    assert article.remove_keyword(keyword) is False
    assert article.remove_keyword(None) is False
    assert keyword.usage_count == 0


def test_usage_count_shared_between_articles():
    keyword = _keyword(1)
    first, second = _article(), make_regular("a2", board_id=1)
    first.add_keyword(keyword)
    second.add_keyword(keyword)
    assert keyword.usage_count == 2
    first.remove_keyword(keyword)
    assert keyword.usage_count == 1


def test_decrement_usage_floors_at_zero():
    keyword = _keyword(1, usage=0)
    keyword.decrement_usage()
    assert keyword.usage_count == 0
    keyword.usage_count = None
    keyword.decrement_usage()
    assert keyword.usage_count == 0


def test_replace_keywords_end_state():
    article = _article()
    k1, k2, k3 = _keyword(1), _keyword(2), _keyword(3)
    article.add_keywords([k1, k2])

    article.replace_keywords([k2, k3])

    assert {k.id for k in article.keywords} == {2, 3}
    assert (k1.usage_count, k2.usage_count, k3.usage_count) == (0, 1, 1)


def test_remove_keywords():
    article = _article()
    k1, k2 = _keyword(1), _keyword(2)
    article.add_keywords([k1, k2])
    article.remove_keywords()
    assert article.keyword_mappings == []
    assert (k1.usage_count, k2.usage_count) == (0, 0)
