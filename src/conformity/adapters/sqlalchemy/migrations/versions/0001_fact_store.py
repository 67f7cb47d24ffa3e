"""Create the fact store tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_entity")),
        sqlite_autoincrement=True,
    )
    op.create_table(
        "transaction",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("instant", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["id"], ["entity.id"], name=op.f("fk_transaction_transaction_id_entity")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_transaction")),
    )
    op.create_table(
        "attribute",
        sa.Column("ident", sa.String(), nullable=False),
        sa.Column("value_type", sa.String(length=16), nullable=False),
        sa.Column("cardinality", sa.String(length=16), nullable=False),
        sa.Column("is_indexed", sa.Boolean(), nullable=False),
        sa.Column("is_unique", sa.Boolean(), nullable=False),
        sa.Column("doc", sa.Text(), nullable=True),
        sa.Column("tx", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["tx"], ["transaction.id"], name=op.f("fk_attribute_attribute_tx_transaction")
        ),
        sa.PrimaryKeyConstraint("ident", name=op.f("pk_attribute")),
    )
    op.create_table(
        "procedure",
        sa.Column("ident", sa.String(), nullable=False),
        sa.Column("function", sa.String(), nullable=False),
        sa.Column("doc", sa.Text(), nullable=True),
        sa.Column("tx", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["tx"], ["transaction.id"], name=op.f("fk_procedure_procedure_tx_transaction")
        ),
        sa.PrimaryKeyConstraint("ident", name=op.f("pk_procedure")),
    )
    op.create_table(
        "datom",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("e", sa.Integer(), nullable=False),
        sa.Column("a", sa.String(), nullable=False),
        sa.Column("v", sa.Text(), nullable=False),
        sa.Column("tx", sa.Integer(), nullable=False),
        sa.Column("retracted_tx", sa.Integer(), nullable=True),
        sa.Column("unique_key", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["tx"], ["transaction.id"], name=op.f("fk_datom_datom_tx_transaction")
        ),
        sa.ForeignKeyConstraint(
            ["retracted_tx"],
            ["transaction.id"],
            name=op.f("fk_datom_datom_retracted_tx_transaction"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_datom")),
        sa.UniqueConstraint("unique_key", name=op.f("uq_datom_datom_unique_key")),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_datom_a_v", "datom", ["a", "v"], unique=False)
    op.create_index("ix_datom_e_a", "datom", ["e", "a"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_datom_e_a", table_name="datom")
    op.drop_index("ix_datom_a_v", table_name="datom")
    op.drop_table("datom")
    op.drop_table("procedure")
    op.drop_table("attribute")
    op.drop_table("transaction")
    op.drop_table("entity")
