"""
Cursor pagination: criteria normalisation, the keyset bound, the N+1
protocol, id-only cursor resolution and full page walks over rows that
share timestamps.
"""
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidCursorError
from app.models import ArticleStatus
from app.pagination import Cursor, SearchCriteria, clamp_page_size, fetch_page
from app.services import read_service
from conftest import BASE_TIME, make_regular


def _ids(page) -> list[str]:
    return [a.id for a in page.items]


# ---------------------------------------------------------------------------
# SearchCriteria
# ---------------------------------------------------------------------------

def test_criteria_blank_strings_mean_no_filter():
    criteria = SearchCriteria(title="  ", content="", keyword_ids=[], writer_ids=set())
    assert criteria.title is None
    assert criteria.content is None
    assert criteria.keyword_ids is None
    assert criteria.writer_ids is None


@pytest.mark.parametrize("raw", [None, "", "bogus", 42])
def test_criteria_status_defaults_to_active(raw):
    assert SearchCriteria(status=raw).status is ArticleStatus.ACTIVE


def test_criteria_status_parsed_case_insensitively():
    assert SearchCriteria(status="blocked").status is ArticleStatus.BLOCKED


def test_criteria_is_hashable_and_structural():
    a = SearchCriteria(board_id=1, keyword_ids=[2, 1], writer_ids="u1")
    b = SearchCriteria(board_id=1, keyword_ids=[1, 2, 2], writer_ids=["u1"])
    assert a == b
    assert hash(a) == hash(b)
    assert a.writer_ids == frozenset({"u1"})


def test_clamp_page_size():
    assert clamp_page_size(None) == 10
    assert clamp_page_size(0) == 10
    assert clamp_page_size(-3) == 10
    assert clamp_page_size(7) == 7
    assert clamp_page_size(1000) == 100


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_board_and_keyword_search_skips_hidden_rows(db_session: AsyncSession, boards, keywords):
    board = boards["FREE"]
    keyword = keywords["python"]
    articles = [make_regular(f"a{i}", board.id, minutes=i) for i in range(1, 6)]
    for n in (2, 4, 5):
        articles[n - 1].add_keyword(keyword)
    blocked = make_regular("a6", board.id, minutes=6, status=ArticleStatus.BLOCKED)
    deleted = make_regular("a7", board.id, minutes=7, status=ArticleStatus.DELETED)
    blocked.add_keyword(keyword)
    deleted.add_keyword(keyword)
    db_session.add_all([*articles, blocked, deleted])
    await db_session.commit()

    criteria = SearchCriteria(board_id=board.id, keyword_ids=[keyword.id])
    page = await fetch_page(db_session, criteria, None, 3)

    assert _ids(page) == ["a5", "a4", "a2"]
    assert page.has_next is False
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_over_fetch_sets_next_cursor_to_last_kept_row(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([make_regular(f"a{i}", board.id, minutes=i) for i in range(1, 6)])
    await db_session.commit()

    page = await fetch_page(db_session, SearchCriteria(), None, 2)
    assert _ids(page) == ["a5", "a4"]
    assert page.has_next is True
    assert page.next_cursor_id == "a4"

    last = await fetch_page(db_session, SearchCriteria(), Cursor(BASE_TIME + timedelta(minutes=2), "a2"), 5)
    assert _ids(last) == ["a1"]
    assert last.has_next is False


@pytest.mark.asyncio
async def test_exact_page_boundary_has_no_next(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([make_regular(f"a{i}", board.id, minutes=i) for i in range(1, 4)])
    await db_session.commit()

    page = await fetch_page(db_session, SearchCriteria(), None, 3)
    assert len(page.items) == 3
    assert page.has_next is False


@pytest.mark.asyncio
async def test_full_walk_with_tied_timestamps(db_session: AsyncSession, boards):
    board = boards["FREE"]
    # Five batches of five rows; every row in a batch shares updated_at.
    rows = [make_regular(f"a{i:02d}", board.id, minutes=i // 5) for i in range(25)]
    db_session.add_all(rows)
    await db_session.commit()

    expected = [
        a.id for a in sorted(rows, key=lambda a: (a.updated_at, a.id), reverse=True)
    ]

    seen, cursor, pages = [], None, 0
    while True:
        page = await fetch_page(db_session, SearchCriteria(board_id=board.id), cursor, 4)
        seen.extend(_ids(page))
        pages += 1
        if not page.has_next:
            break
        cursor = page.next_cursor

    assert seen == expected
    assert len(set(seen)) == 25
    assert pages == 7


@pytest.mark.asyncio
async def test_timestamp_only_cursor_is_strict(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([make_regular(f"a{i}", board.id, minutes=i // 2) for i in range(6)])
    await db_session.commit()

    page = await fetch_page(db_session, SearchCriteria(), Cursor(BASE_TIME + timedelta(minutes=2)), 10)
    assert _ids(page) == ["a3", "a2", "a1", "a0"]


@pytest.mark.asyncio
async def test_keyword_filter_is_or_without_duplicates(db_session: AsyncSession, boards, keywords):
    board = boards["FREE"]
    k1, k2 = keywords["python"], keywords["redis"]
    only_k1 = make_regular("a1", board.id, minutes=1)
    only_k2 = make_regular("a2", board.id, minutes=2)
    both = make_regular("a3", board.id, minutes=3)
    neither = make_regular("a4", board.id, minutes=4)
    only_k1.add_keyword(k1)
    only_k2.add_keyword(k2)
    both.add_keywords([k1, k2])
    db_session.add_all([only_k1, only_k2, both, neither])
    await db_session.commit()

    page = await fetch_page(db_session, SearchCriteria(keyword_ids=[k1.id, k2.id]), None, 10)
    assert _ids(page) == ["a3", "a2", "a1"]


@pytest.mark.asyncio
async def test_text_and_writer_filters(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([
        make_regular("a1", board.id, minutes=1, title="Hello World", writer_id="u1"),
        make_regular("a2", board.id, minutes=2, title="100% done", writer_id="u2"),
        make_regular("a3", board.id, minutes=3, title="other", content="WORLD news", writer_id="u3"),
    ])
    await db_session.commit()

    by_title = await fetch_page(db_session, SearchCriteria(title="world"), None, 10)
    assert _ids(by_title) == ["a1"]

    # LIKE wildcards in the term are matched literally.
    by_percent = await fetch_page(db_session, SearchCriteria(title="%"), None, 10)
    assert _ids(by_percent) == ["a2"]

    by_content = await fetch_page(db_session, SearchCriteria(content="world"), None, 10)
    assert _ids(by_content) == ["a3"]

    by_writers = await fetch_page(db_session, SearchCriteria(writer_ids=["u1", "u3"]), None, 10)
    assert _ids(by_writers) == ["a3", "a1"]


@pytest.mark.asyncio
async def test_status_filter(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([
        make_regular("a1", board.id, minutes=1),
        make_regular("a2", board.id, minutes=2, status=ArticleStatus.BLOCKED),
        make_regular("a3", board.id, minutes=3, status=ArticleStatus.DELETED),
    ])
    await db_session.commit()

    assert _ids(await fetch_page(db_session, SearchCriteria(), None, 10)) == ["a1"]
    assert _ids(await fetch_page(db_session, SearchCriteria(status="BLOCKED"), None, 10)) == ["a2"]


# ---------------------------------------------------------------------------
# Id-only cursor resolution
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_id_only_cursor_resolves_timestamp(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([make_regular(f"a{i}", board.id, minutes=0) for i in range(5)])
    await db_session.commit()

    page = await read_service.search_articles(db_session, SearchCriteria(), size=10, cursor_id="a3")
    assert _ids(page) == ["a2", "a1", "a0"]


@pytest.mark.asyncio
async def test_cursor_to_missing_row_is_invalid(db_session: AsyncSession, boards):
    with pytest.raises(InvalidCursorError):
        await read_service.search_articles(db_session, SearchCriteria(), cursor_id="nope")


@pytest.mark.asyncio
async def test_cursor_to_hidden_row_is_invalid(db_session: AsyncSession, boards):
    board = boards["FREE"]
    db_session.add_all([
        make_regular("a1", board.id, minutes=1),
        make_regular("a2", board.id, minutes=2, status=ArticleStatus.BLOCKED),
    ])
    await db_session.commit()

    with pytest.raises(InvalidCursorError):
        await read_service.search_articles(db_session, SearchCriteria(), cursor_id="a2")

    page = await read_service.search_articles(
        db_session, SearchCriteria(status="BLOCKED"), cursor_id="a2"
    )
    assert page.items == []
