"""create_model_switch_tables

Revision ID: 3c9e1a7b5d20
Revises:
Create Date: 2026-10-16

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3c9e1a7b5d20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    providers = op.create_table(
        "model_providers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("base_url", sa.String(length=1024), nullable=False),
        sa.Column("model_name", sa.String(length=100), nullable=False),
        sa.Column("model_name_small", sa.String(length=100), nullable=True),
        sa.Column("is_builtin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("icon_url", sa.String(length=500), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(op.f("ix_model_providers_code"), "model_providers", ["code"], unique=True)

    op.create_table(
        "user_configs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("current_provider_id", sa.Integer(), sa.ForeignKey("model_providers.id"), nullable=False),
        sa.Column("api_timeout", sa.Integer(), nullable=False, server_default="600000"),
        sa.Column("extra_config", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(op.f("ix_user_configs_user_id"), "user_configs", ["user_id"], unique=True)

    op.create_table(
        "config_backups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "provider_id",
            sa.Integer(),
            sa.ForeignKey("model_providers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("provider_code", sa.String(length=50), nullable=False),
        sa.Column("provider_name", sa.String(length=100), nullable=False),
        sa.Column("backup_name", sa.String(length=255), nullable=False),
        sa.Column("config_content", sa.JSON(), nullable=False),
        sa.Column("backup_type", sa.String(length=32), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index(op.f("ix_config_backups_user_id"), "config_backups", ["user_id"])
    op.create_index(op.f("ix_config_backups_created_at"), "config_backups", ["created_at"])

    op.create_table(
        "switch_histories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "from_provider_id",
            sa.Integer(),
            sa.ForeignKey("model_providers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "to_provider_id",
            sa.Integer(),
            sa.ForeignKey("model_providers.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("switch_type", sa.String(length=32), nullable=False),
        sa.Column("ai_prompt", sa.Text(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("client_info", sa.String(length=255), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(op.f("ix_switch_histories_user_id"), "switch_histories", ["user_id"])
    op.create_index(op.f("ix_switch_histories_created_at"), "switch_histories", ["created_at"])

    op.create_table(
        "provider_api_keys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "provider_id",
            sa.Integer(),
            sa.ForeignKey("model_providers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("encrypted_key", sa.Text(), nullable=False),
        sa.Column("key_hint", sa.String(length=32), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_id", "provider_id", name="uq_provider_api_keys_user_provider"),
    )
    op.create_index(op.f("ix_provider_api_keys_user_id"), "provider_api_keys", ["user_id"])

    op.create_table(
        "ai_conversations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index(op.f("ix_ai_conversations_user_id"), "ai_conversations", ["user_id"])
    op.create_index(op.f("ix_ai_conversations_session_id"), "ai_conversations", ["session_id"])

    # 内置提供商
    op.bulk_insert(
        providers,
        [
            {
                "code": "claude",
                "name": "Claude 官方",
                "description": "Anthropic 官方 API",
                "base_url": "https://api.anthropic.com",
                "model_name": "claude-sonnet-4",
                "model_name_small": None,
                "is_builtin": True,
                "is_active": True,
                "sort_order": 1,
            },
            {
                "code": "deepseek",
                "name": "DeepSeek",
                "description": "DeepSeek Anthropic 兼容接口",
                "base_url": "https://api.deepseek.com/anthropic",
                "model_name": "deepseek-chat",
                "model_name_small": "deepseek-chat",
                "is_builtin": True,
                "is_active": True,
                "sort_order": 2,
            },
            {
                "code": "zhipu",
                "name": "智谱 AI",
                "description": "智谱 GLM Anthropic 兼容接口",
                "base_url": "https://open.bigmodel.cn/api/anthropic",
                "model_name": "glm-4.7",
                "model_name_small": "glm-4.7-air",
                "is_builtin": True,
                "is_active": True,
                "sort_order": 3,
            },
            {
                "code": "openrouter",
                "name": "OpenRouter",
                "description": "多模型网关",
                "base_url": "https://openrouter.ai/api",
                "model_name": "openrouter/pony-alpha",
                "model_name_small": None,
                "is_builtin": True,
                "is_active": True,
                "sort_order": 4,
            },
        ],
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_ai_conversations_session_id"), table_name="ai_conversations")
    op.drop_index(op.f("ix_ai_conversations_user_id"), table_name="ai_conversations")
    op.drop_table("ai_conversations")
    op.drop_index(op.f("ix_provider_api_keys_user_id"), table_name="provider_api_keys")
    op.drop_table("provider_api_keys")
    op.drop_index(op.f("ix_switch_histories_created_at"), table_name="switch_histories")
    op.drop_index(op.f("ix_switch_histories_user_id"), table_name="switch_histories")
    op.drop_table("switch_histories")
    op.drop_index(op.f("ix_config_backups_created_at"), table_name="config_backups")
    op.drop_index(op.f("ix_config_backups_user_id"), table_name="config_backups")
    op.drop_table("config_backups")
    op.drop_index(op.f("ix_user_configs_user_id"), table_name="user_configs")
    op.drop_table("user_configs")
    op.drop_index(op.f("ix_model_providers_code"), table_name="model_providers")
    op.drop_table("model_providers")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_table("users")
