"""Initial migration

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # 1. Companions (seeded out of band, read-only for the app)
    op.create_table('companions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('personality', sa.String(length=255), nullable=True),
        sa.Column('personality_traits', postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column('interests', postgresql.ARRAY(sa.Text()), nullable=True),
        sa.Column('communication_style', sa.String(length=255), nullable=True),
        sa.Column('backstory', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=1000), nullable=True),
        sa.Column('compatibility_score', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_companions_active_score', 'companions', ['is_active', 'compatibility_score'], unique=False)

    # 2. Swipe decisions
    op.create_table('swipe_decisions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('companion_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('decision', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['companion_id'], ['companions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'companion_id', name='uq_swipe_decision_user_companion')
    )
    op.create_index(op.f('ix_swipe_decisions_user_id'), 'swipe_decisions', ['user_id'], unique=False)

    # 3. Matches
    op.create_table('matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('companion_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('matched_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.ForeignKeyConstraint(['companion_id'], ['companions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'companion_id', name='uq_match_user_companion')
    )
    op.create_index(op.f('ix_matches_user_id'), 'matches', ['user_id'], unique=False)

    # 4. Conversations
    op.create_table('conversations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('companion_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        sa.Column('last_message_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['companion_id'], ['companions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'companion_id', name='uq_conversation_user_companion')
    )
    op.create_index(op.f('ix_conversations_user_id'), 'conversations', ['user_id'], unique=False)

    # 5. Messages
    op.create_table('messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('conversation_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('companion_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('message_type', sa.String(length=20), server_default='text', nullable=False),
        sa.Column('is_read', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('(sender_id IS NULL) <> (companion_id IS NULL)', name='ck_message_single_author'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['companion_id'], ['companions.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_conversation_created', 'messages', ['conversation_id', 'created_at'], unique=False)

    # 6. Per-user singletons
    op.create_table('user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('interests', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=True),
        sa.Column('personality_traits', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=True),
        sa.Column('preferences', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=True),
        sa.Column('avatar_url', sa.String(length=1000), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=True),
        sa.Column('last_active_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('user_preferences',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('age_range_min', sa.Integer(), server_default='18', nullable=True),
        sa.Column('age_range_max', sa.Integer(), server_default='35', nullable=True),
        sa.Column('preferred_personalities', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=True),
        sa.Column('preferred_interests', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=True),
        sa.Column('communication_style_preference', sa.String(length=255), nullable=True),
        sa.Column('relationship_goals', postgresql.ARRAY(sa.Text()), server_default='{}', nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('user_stats',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_swipes', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_likes', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_passes', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_super_likes', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_matches', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_conversations', sa.Integer(), server_default='0', nullable=True),
        sa.Column('total_messages_sent', sa.Integer(), server_default='0', nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    # 7. Media keys
    op.create_table('user_profile_pics',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('profile_pic_key', sa.String(length=1000), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_table('user_banners',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('banner_key', sa.String(length=1000), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('user_id')
    )


def downgrade() -> None:
    op.drop_table('user_banners')
    op.drop_table('user_profile_pics')
    op.drop_table('user_stats')
    op.drop_table('user_preferences')
    op.drop_table('user_profiles')

    op.drop_index('ix_messages_conversation_created', table_name='messages')
    op.drop_table('messages')

    op.drop_index(op.f('ix_conversations_user_id'), table_name='conversations')
    op.drop_table('conversations')

    op.drop_index(op.f('ix_matches_user_id'), table_name='matches')
    op.drop_table('matches')

    op.drop_index(op.f('ix_swipe_decisions_user_id'), table_name='swipe_decisions')
    op.drop_table('swipe_decisions')

    op.drop_index('ix_companions_active_score', table_name='companions')
    op.drop_table('companions')
