"""Create contents and publications tables

Revision ID: a7c1e4f2b9d0
Revises:
Create Date: 2026-10-17

contents holds the metadata of each encrypted artifact, keyed by the same
id as its blob. publications references artifacts through the slug of its
title only; there is no foreign key between the two tables.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e4f2b9d0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "contents",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("encryption_key", sa.LargeBinary(), nullable=False),
        sa.Column("location", sa.String(255), nullable=False, server_default=""),
        sa.Column("length", sa.BigInteger(), nullable=False, server_default="-1"),
        sa.Column("sha256", sa.String(64), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_contents_created_at", "contents", ["created_at"], unique=False)

    op.create_table(
        "publications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="registered"),
        sa.Column("master_filename", sa.String(512), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_publications_title", "publications", ["title"], unique=True)
    op.create_index("ix_publications_status", "publications", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_publications_status", table_name="publications")
    op.drop_index("ix_publications_title", table_name="publications")
    op.drop_table("publications")
    op.drop_index("ix_contents_created_at", table_name="contents")
    op.drop_table("contents")
