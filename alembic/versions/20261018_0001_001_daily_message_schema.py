"""Daily message schema - preferences, profiles, push subscriptions, delivery records, run summaries.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

This migration creates:
- user_notification_preferences and user_profiles (read by the pipeline)
- push_subscriptions with deactivation tracking
- user_notifications, the append-only delivery record log, with a partial
  unique index allowing one sent (non-test) daily message per user per day
- automation_logs for per-run summaries
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create user_notification_preferences table
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_notification_preferences (
            user_id UUID PRIMARY KEY,
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            preferred_time VARCHAR(16) DEFAULT '08:00',
            push_enabled BOOLEAN NOT NULL DEFAULT TRUE,
            email_enabled BOOLEAN NOT NULL DEFAULT FALSE,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            experience_tier VARCHAR(32) DEFAULT 'beginner',
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_user_notification_preferences_is_active
            ON user_notification_preferences(is_active);
    """)

    # Create user_profiles table
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            id UUID PRIMARY KEY,
            email VARCHAR(255),
            full_name VARCHAR(255)
        );
    """)

    # Create push_subscriptions table
    op.execute("""
        CREATE TABLE IF NOT EXISTS push_subscriptions (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL,
            endpoint VARCHAR(1024) NOT NULL,
            auth_key VARCHAR(255) NOT NULL,
            p256dh_key VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            deactivated_at TIMESTAMP
        );
        CREATE INDEX IF NOT EXISTS ix_push_subscriptions_user_id ON push_subscriptions(user_id);
        CREATE INDEX IF NOT EXISTS ix_push_subscriptions_is_active ON push_subscriptions(is_active);
    """)

    # Create user_notifications table (delivery records)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_notifications (
            id UUID PRIMARY KEY,
            user_id UUID NOT NULL,
            notification_type VARCHAR(64) NOT NULL,
            title VARCHAR(255) NOT NULL,
            message TEXT NOT NULL,
            status VARCHAR(16) NOT NULL,
            delivery_date DATE NOT NULL,
            is_test BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb
        );
        CREATE INDEX IF NOT EXISTS ix_user_notifications_user_id ON user_notifications(user_id);
        CREATE INDEX IF NOT EXISTS ix_user_notifications_notification_type ON user_notifications(notification_type);
        CREATE INDEX IF NOT EXISTS ix_user_notifications_status ON user_notifications(status);
        CREATE INDEX IF NOT EXISTS ix_user_notifications_delivery_date ON user_notifications(delivery_date);
        CREATE UNIQUE INDEX IF NOT EXISTS uq_user_notifications_daily_sent
            ON user_notifications(user_id, notification_type, delivery_date)
            WHERE status = 'sent' AND is_test = false;
    """)

    # Create automation_logs table (run summaries)
    op.execute("""
        CREATE TABLE IF NOT EXISTS automation_logs (
            id UUID PRIMARY KEY,
            job_type VARCHAR(50) NOT NULL,
            run_time TIMESTAMP NOT NULL,
            users_processed INTEGER NOT NULL DEFAULT 0,
            notifications_sent INTEGER NOT NULL DEFAULT 0,
            errors INTEGER NOT NULL DEFAULT 0,
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            duration_ms DOUBLE PRECISION NOT NULL DEFAULT 0,
            automated BOOLEAN NOT NULL DEFAULT TRUE,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb
        );
        CREATE INDEX IF NOT EXISTS ix_automation_logs_job_type ON automation_logs(job_type);
        CREATE INDEX IF NOT EXISTS ix_automation_logs_run_time ON automation_logs(run_time);
    """)


def downgrade() -> None:
    # Drop tables in reverse order
    op.execute("DROP TABLE IF EXISTS automation_logs CASCADE")
    op.execute("DROP TABLE IF EXISTS user_notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS push_subscriptions CASCADE")
    op.execute("DROP TABLE IF EXISTS user_profiles CASCADE")
    op.execute("DROP TABLE IF EXISTS user_notification_preferences CASCADE")
