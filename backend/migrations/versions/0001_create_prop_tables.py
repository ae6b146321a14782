"""create_prop_tables

Revision ID: 0001_create_prop_tables
Revises:
Create Date: 2026-01-10 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_create_prop_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'scrape_runs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('sport', sa.String(), nullable=False, server_default='nba'),
        sa.Column('date_iso', sa.Date(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('categories_attempted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('categories_succeeded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rows_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('errors', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('source', sa.String(), nullable=False, server_default='props.cash'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_scrape_runs_date', 'scrape_runs', ['sport', 'date_iso'])

    op.create_table(
        'prop_rows',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('run_id', sa.Uuid(), sa.ForeignKey('scrape_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sport', sa.String(), nullable=False, server_default='nba'),
        sa.Column('date_iso', sa.Date(), nullable=False),
        sa.Column('category_key', sa.String(), nullable=False),
        sa.Column('category_label', sa.String(), nullable=False),
        sa.Column('player_name', sa.String(), nullable=False),
        sa.Column('team', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('line', sa.Numeric(), nullable=True),
        sa.Column('odds_over', sa.Integer(), nullable=True),
        sa.Column('odds_under', sa.Integer(), nullable=True),
        sa.Column('projection', sa.Numeric(), nullable=True),
        sa.Column('diff', sa.Numeric(), nullable=True),
        sa.Column('rank_metric', sa.String(), nullable=True),
        sa.Column('hit_rates', postgresql.JSONB(), nullable=True),
        sa.Column('raw', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('row_signature', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_prop_rows_date_category', 'prop_rows', ['sport', 'date_iso', 'category_key'])
    op.create_index('idx_prop_rows_player', 'prop_rows', ['player_name'])
    op.create_index('idx_prop_rows_run', 'prop_rows', ['run_id'])

    # Null line/odds collapse to -999 so repeated runs hit the same slot
    op.create_index(
        'uq_prop_rows_natural_key',
        'prop_rows',
        [
            'sport',
            'date_iso',
            'category_key',
            'player_name',
            sa.text('COALESCE(line, -999)'),
            sa.text('COALESCE(odds_over, -999)'),
            sa.text('COALESCE(odds_under, -999)'),
        ],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index('uq_prop_rows_natural_key', table_name='prop_rows')
    op.drop_index('idx_prop_rows_run', table_name='prop_rows')
    op.drop_index('idx_prop_rows_player', table_name='prop_rows')
    op.drop_index('idx_prop_rows_date_category', table_name='prop_rows')
    op.drop_table('prop_rows')
    op.drop_index('idx_scrape_runs_date', table_name='scrape_runs')
    op.drop_table('scrape_runs')
