"""Database seeder for cursor-pagination testing.

Articles are inserted in batches that share one ``updated_at``, the way a
bulk import writes them, so page walks exercise the ``id`` tie-break.
"""
import asyncio
import argparse
import random
import time
from datetime import timedelta
from app.article_types import build_article
from app.config import settings
from app.database import engine, async_session, Base
from app.id_generator import id_generator
from app.models import ArticleType, Board, Keyword, utcnow

BOARDS = ["FREE", "QNA", "REVIEW", settings.NOTICE_BOARD_NAME, settings.EVENT_BOARD_NAME]
GLOBAL_KEYWORDS = ["python", "fastapi", "postgresql", "redis", "docker", "performance"]
BOARD_KEYWORDS = ["question", "tip", "review", "announcement"]


async def seed(small: bool = False):
    num_articles = 100 if small else 10000
    batch_size = 20 if small else 500

    print(f"Seeding: {len(BOARDS)} boards, {num_articles} articles in batches of {batch_size}")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        boards = {}
        for order, name in enumerate(BOARDS):
            board = Board(name=name, description=f"{name.title()} board", display_order=order)
            session.add(board)
            boards[name] = board
        await session.flush()

        keywords = [Keyword(name=name, board_id=None) for name in GLOBAL_KEYWORDS]
        for board in boards.values():
            keywords.extend(Keyword(name=name, board_id=board.id) for name in BOARD_KEYWORDS)
        session.add_all(keywords)
        await session.flush()
        print(f"  Created {len(boards)} boards, {len(keywords)} keywords")

        regular_boards = [b for name, b in boards.items() if name not in (settings.NOTICE_BOARD_NAME, settings.EVENT_BOARD_NAME)]
        now = utcnow()
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            # Older batches first; every article in a batch shares the timestamp.
            stamp = now - timedelta(minutes=num_articles - batch_start)
            for i in range(batch_start, batch_end):
                roll = random.random()
                if roll < 0.05:
                    article_type, board = ArticleType.NOTICE, boards[settings.NOTICE_BOARD_NAME]
                elif roll < 0.15:
                    article_type, board = ArticleType.EVENT, boards[settings.EVENT_BOARD_NAME]
                else:
                    article_type, board = ArticleType.REGULAR, random.choice(regular_boards)
                event_start = stamp + timedelta(days=random.randint(-30, 30))
                article = build_article(
                    article_type,
                    article_id=id_generator.generate_key(),
                    title=f"Article {i} on {random.choice(GLOBAL_KEYWORDS)}",
                    content=f"This is the full content of article {i}. " * 10,
                    writer_id=f"writer_{random.randint(0, 49):02d}",
                    board_id=board.id,
                    event_start_date=event_start,
                    event_end_date=event_start + timedelta(days=7),
                )
                for n in range(random.randint(0, 3)):
                    article.add_image(f"img-{i}-{n}", f"https://cdn.example.com/{i}/{n}.jpg")
                usable = [k for k in keywords if k.board_id in (None, board.id)]
                article.add_keywords(random.sample(usable, k=random.randint(0, 3)))
                article.created_at = article.updated_at = stamp
                session.add(article)

            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
