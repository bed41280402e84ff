"""create library item, label, highlight and recommendation tables

Revision ID: 3f1c2a9d8e47
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d8e47"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _tsv(column: str) -> sa.Computed:
    return sa.Computed(f"to_tsvector('english'::regconfig, coalesce({column}, ''))", persisted=True)


def _text_array(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.ARRAY(sa.Text()),
        nullable=False,
        server_default=sa.text("'{}'::text[]"),
    )


SEARCH_TSV = (
    "setweight(to_tsvector('english'::regconfig, coalesce(title, '')), 'A')"
    " || setweight(to_tsvector('english'::regconfig, coalesce(author, '')), 'B')"
    " || setweight(to_tsvector('english'::regconfig, coalesce(description, '')), 'C')"
    " || setweight(to_tsvector('english'::regconfig, coalesce(site_name, '')), 'C')"
    " || setweight(to_tsvector('english'::regconfig, coalesce(readable_content, '')), 'D')"
)


def upgrade() -> None:
    # ---- users / profiles / groups ----------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("picture_url", sa.String(length=1000), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # ---- library_items -----------------------------------------------------
    op.create_table(
        "library_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("original_url", sa.Text(), nullable=False),
        sa.Column("slug", sa.String(length=600), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("author", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("item_type", sa.String(length=40), nullable=False),
        sa.Column("site_name", sa.Text(), nullable=True),
        sa.Column("site_icon", sa.Text(), nullable=True),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("readable_content", sa.Text(), nullable=False),
        sa.Column("subscription", sa.Text(), nullable=True),
        sa.Column("saved_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reading_progress_top_percent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reading_progress_bottom_percent", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "reading_progress_highest_read_anchor", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("word_count", sa.Integer(), nullable=True),
        _text_array("label_names"),
        _text_array("highlight_labels"),
        _text_array("highlight_annotations"),
        _text_array("recommender_names"),
        sa.Column("search_tsv", postgresql.TSVECTOR(), sa.Computed(SEARCH_TSV, persisted=True)),
        sa.Column("title_tsv", postgresql.TSVECTOR(), _tsv("title")),
        sa.Column("author_tsv", postgresql.TSVECTOR(), _tsv("author")),
        sa.Column("description_tsv", postgresql.TSVECTOR(), _tsv("description")),
        sa.Column("content_tsv", postgresql.TSVECTOR(), _tsv("readable_content")),
        sa.Column("site_tsv", postgresql.TSVECTOR(), _tsv("site_name")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "original_url", name="uq_library_items_user_url"),
    )
    op.create_index(op.f("ix_library_items_user_id"), "library_items", ["user_id"], unique=False)
    op.create_index(
        "ix_library_items_user_saved_at", "library_items", ["user_id", "saved_at"], unique=False
    )
    op.create_index(
        "ix_library_items_search_tsv", "library_items", ["search_tsv"], postgresql_using="gin"
    )
    op.create_index(
        "ix_library_items_label_names", "library_items", ["label_names"], postgresql_using="gin"
    )

    # ---- labels / highlights / entity_labels -------------------------------
    op.create_table(
        "labels",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_labels_user_id"), "labels", ["user_id"], unique=False)
    op.create_index(
        "ix_labels_user_lower_name_unique",
        "labels",
        ["user_id", sa.text("lower(name)")],
        unique=True,
    )

    op.create_table(
        "highlights",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("library_item_id", sa.String(length=36), nullable=False),
        sa.Column("highlight_type", sa.String(length=20), nullable=False),
        sa.Column("quote", sa.Text(), nullable=True),
        sa.Column("annotation", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["library_item_id"], ["library_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_highlights_user_id"), "highlights", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_highlights_library_item_id"), "highlights", ["library_item_id"], unique=False
    )

    op.create_table(
        "entity_labels",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("label_id", sa.String(length=36), nullable=False),
        sa.Column("library_item_id", sa.String(length=36), nullable=True),
        sa.Column("highlight_id", sa.String(length=36), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["label_id"], ["labels.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["library_item_id"], ["library_items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["highlight_id"], ["highlights.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("label_id", "library_item_id", name="uq_entity_labels_label_item"),
    )
    op.create_index(op.f("ix_entity_labels_label_id"), "entity_labels", ["label_id"], unique=False)
    op.create_index(
        op.f("ix_entity_labels_library_item_id"), "entity_labels", ["library_item_id"], unique=False
    )
    op.create_index(
        op.f("ix_entity_labels_highlight_id"), "entity_labels", ["highlight_id"], unique=False
    )

    # ---- recommendations ---------------------------------------------------
    op.create_table(
        "recommendations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("library_item_id", sa.String(length=36), nullable=False),
        sa.Column("recommender_id", sa.String(length=36), nullable=False),
        sa.Column("group_id", sa.String(length=36), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["library_item_id"], ["library_items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["recommender_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_recommendations_library_item_id"), "recommendations", ["library_item_id"], unique=False
    )
    op.create_index(
        op.f("ix_recommendations_recommender_id"), "recommendations", ["recommender_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("recommendations")
    op.drop_table("entity_labels")
    op.drop_table("highlights")
    op.drop_index("ix_labels_user_lower_name_unique", table_name="labels")
    op.drop_index(op.f("ix_labels_user_id"), table_name="labels")
    op.drop_table("labels")
    op.drop_index("ix_library_items_label_names", table_name="library_items")
    op.drop_index("ix_library_items_search_tsv", table_name="library_items")
    op.drop_index("ix_library_items_user_saved_at", table_name="library_items")
    op.drop_index(op.f("ix_library_items_user_id"), table_name="library_items")
    op.drop_table("library_items")
    op.drop_table("groups")
    op.drop_table("user_profiles")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
