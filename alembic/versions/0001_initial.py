"""initial schema: boards, keywords, articles, images, keyword mappings

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Single-table article hierarchy (article_type = REGULAR | EVENT | NOTICE);
event window columns are NULL for the other variants.  The
(status, updated_at, id) index backs the cursor search order.
"""

import sqlalchemy as sa
from alembic import op

revision      = "0001"
down_revision = None
branch_labels = None
depends_on    = None


def upgrade() -> None:
    op.create_table(
        "boards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(255)),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_boards_name", "boards", ["name"], unique=True)

    op.create_table(
        "keywords",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("board_id", sa.Integer, sa.ForeignKey("boards.id", ondelete="CASCADE")),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.UniqueConstraint(
            "board_id", "name",
            name="uq_keywords_board_id_name",
            postgresql_nulls_not_distinct=True,
        ),
    )
    op.create_index("ix_keywords_name", "keywords", ["name"])
    op.create_index("ix_keywords_board_id", "keywords", ["board_id"])

    op.create_table(
        "articles",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("article_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("writer_id", sa.String(50), nullable=False),
        sa.Column("board_id", sa.Integer, sa.ForeignKey("boards.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("cover_image_url", sa.String(500)),
        sa.Column("image_sequence", sa.Integer, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("event_start_date", sa.DateTime(timezone=True)),
        sa.Column("event_end_date", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_articles_status_updated_at_id", "articles", ["status", "updated_at", "id"])
    op.create_index(
        "ix_articles_board_id_status_updated_at", "articles", ["board_id", "status", "updated_at"]
    )
    op.create_index(
        "ix_articles_writer_id_status_updated_at", "articles", ["writer_id", "status", "updated_at"]
    )
    op.create_index(
        "ix_articles_type_status_created_at", "articles", ["article_type", "status", "created_at"]
    )

    op.create_table(
        "article_images",
        sa.Column(
            "article_id", sa.String(50),
            sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("sequence", sa.Integer, primary_key=True),
        sa.Column("image_id", sa.String(100), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=False),
    )

    op.create_table(
        "keyword_mappings",
        sa.Column(
            "article_id", sa.String(50),
            sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "keyword_id", sa.Integer,
            sa.ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_keyword_mappings_keyword_id", "keyword_mappings", ["keyword_id"])


def downgrade() -> None:
    op.drop_table("keyword_mappings")
    op.drop_table("article_images")
    op.drop_table("articles")
    op.drop_table("keywords")
    op.drop_table("boards")
