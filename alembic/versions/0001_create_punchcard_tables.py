"""Create punch card tables

Revision ID: 0001_punchcards
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_punchcards'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade():
    op.create_table(
        'punch_users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'establishments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_establishments_id', 'establishments', ['id'])
    op.create_index('ix_establishments_owner_user_id', 'establishments', ['owner_user_id'], unique=True)

    op.create_table(
        'punch_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('establishment_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('rules', sa.JSON(), nullable=False),
        sa.Column('status', sa.Enum('active', 'paused', 'ended', name='eventstatus'), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['establishment_id'], ['establishments.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_punch_events_id', 'punch_events', ['id'])
    op.create_index('ix_punch_events_establishment_id', 'punch_events', ['establishment_id'])
    op.create_index('ix_punch_events_status', 'punch_events', ['status'])

    op.create_table(
        'punch_tags',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('activation_code', sa.String(length=32), nullable=True),
        sa.Column('status', sa.Enum('inactive', 'active', 'disabled', 'stolen', name='tagstatus'), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=True),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['event_id'], ['punch_events.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('activation_code'),
    )
    op.create_index('ix_punch_tags_id', 'punch_tags', ['id'])
    op.create_index('ix_punch_tags_token', 'punch_tags', ['token'], unique=True)
    op.create_index('ix_punch_tags_status', 'punch_tags', ['status'])
    op.create_index('ix_punch_tags_event_id', 'punch_tags', ['event_id'])

    op.create_table(
        'punch_cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('active', 'completed', name='cardstatus'), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['punch_users.id']),
        sa.ForeignKeyConstraint(['event_id'], ['punch_events.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'event_id', name='uq_punch_cards_user_event'),
        sa.CheckConstraint('progress >= 0', name='progress_non_negative'),
    )
    op.create_index('ix_punch_cards_id', 'punch_cards', ['id'])
    op.create_index('ix_punch_cards_user_id', 'punch_cards', ['user_id'])
    op.create_index('ix_punch_cards_event_id', 'punch_cards', ['event_id'])

    op.create_table(
        'punches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['card_id'], ['punch_cards.id']),
        sa.ForeignKeyConstraint(['tag_id'], ['punch_tags.id']),
        sa.ForeignKeyConstraint(['user_id'], ['punch_users.id']),
        sa.ForeignKeyConstraint(['event_id'], ['punch_events.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_punches_id', 'punches', ['id'])
    op.create_index('ix_punches_card_id', 'punches', ['card_id'])
    op.create_index('ix_punches_user_event_timestamp', 'punches', ['user_id', 'event_id', 'timestamp'])

    op.create_table(
        'punch_rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('code', sa.String(length=20), nullable=False),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
        sa.Column('redeemed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['card_id'], ['punch_cards.id']),
        sa.ForeignKeyConstraint(['event_id'], ['punch_events.id']),
        sa.ForeignKeyConstraint(['user_id'], ['punch_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_punch_rewards_id', 'punch_rewards', ['id'])
    op.create_index('ix_punch_rewards_code', 'punch_rewards', ['code'], unique=True)
    op.create_index('ix_punch_rewards_card_id', 'punch_rewards', ['card_id'])
    op.create_index('ix_punch_rewards_event_id', 'punch_rewards', ['event_id'])
    op.create_index('ix_punch_rewards_user_id', 'punch_rewards', ['user_id'])


def downgrade():
    op.drop_table('punch_rewards')
    op.drop_table('punches')
    op.drop_table('punch_cards')
    op.drop_table('punch_tags')
    op.drop_table('punch_events')
    op.drop_table('establishments')
    op.drop_table('punch_users')
    sa.Enum(name='cardstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='tagstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='eventstatus').drop(op.get_bind(), checkfirst=True)
