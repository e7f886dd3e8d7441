"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

All 16 tables as defined in portfolio/models/database_models.py:
projects, blog_series, blog_posts, contact_submissions, carousel_images,
top_five_lists, top_five_list_items, resume_content, chatbot_conversations,
user_feedback, chatbot_evaluations, chatbot_training_sessions,
chatbot_documents, chatbot_document_chunks, chatbot_learning_insights,
system_prompt_templates.
"""
from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

VECTOR_DIM = 1536


def _timestamps(*names: str):
    return [
        sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        for name in names
    ]


def upgrade() -> None:
    # pgvector extension
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # ── Enum types ────────────────────────────────────────────────────────
    feedback_rating = sa.Enum("up", "down", name="feedbackrating")
    insight_category = sa.Enum("improvement", "best_practice", "avoid_pattern", name="insightcategory")
    prompt_slot = sa.Enum("default", "enhanced", "custom", "langchain", name="promptslot")

    # ── projects ──────────────────────────────────────────────────────────
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("short_description", sa.Text, nullable=False, server_default=""),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("media_files", sa.JSON, nullable=False),
        sa.Column("thumbnail_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("technologies", sa.JSON, nullable=False),
        sa.Column("demo_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("code_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("client", sa.String(255), nullable=True),
        sa.Column("published", sa.Boolean, nullable=False, server_default=sa.true(), index=True),
        sa.Column("featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps("created_at", "updated_at"),
    )

    # ── blog ──────────────────────────────────────────────────────────────
    op.create_table(
        "blog_series",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("cover_image", sa.String(512), nullable=True),
        *_timestamps("created_at", "updated_at"),
    )

    op.create_table(
        "blog_posts",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("excerpt", sa.Text, nullable=False, server_default=""),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("cover_image", sa.String(512), nullable=False, server_default=""),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("published", sa.Boolean, nullable=False, server_default=sa.true(), index=True),
        sa.Column("read_time", sa.Integer, nullable=False, server_default="1"),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "series_id", sa.Integer,
            sa.ForeignKey("blog_series.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column("series_position", sa.Integer, nullable=True),
        *_timestamps("created_at", "updated_at"),
    )

    # ── contact / carousel / lists ────────────────────────────────────────
    op.create_table(
        "contact_submissions",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        *_timestamps("created_at"),
    )

    op.create_table(
        "carousel_images",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("caption", sa.Text, nullable=True),
        sa.Column("alt_text", sa.String(255), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps("created_at", "updated_at"),
    )

    op.create_table(
        "top_five_lists",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("icon", sa.String(100), nullable=False, server_default="star"),
        sa.Column("color", sa.String(50), nullable=False, server_default="blue"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("main_image", sa.String(512), nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        *_timestamps("created_at"),
    )

    op.create_table(
        "top_five_list_items",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "list_id", sa.Integer,
            sa.ForeignKey("top_five_lists.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("link", sa.String(512), nullable=True),
        sa.Column("link_text", sa.String(255), nullable=True),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("highlight", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer, nullable=False, server_default="1"),
        *_timestamps("created_at"),
    )

    # ── resume ────────────────────────────────────────────────────────────
    op.create_table(
        "resume_content",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("url", sa.String(512), nullable=False),
        sa.Column("size", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps("uploaded_at"),
    )
    op.create_index(
        "uq_resume_content_single_active",
        "resume_content",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # ── chatbot ───────────────────────────────────────────────────────────
    op.create_table(
        "chatbot_conversations",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("session_id", sa.String(255), nullable=False, index=True),
        sa.Column("user_question", sa.Text, nullable=False),
        sa.Column("bot_response", sa.Text, nullable=False),
        sa.Column("is_on_topic", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("confidence", sa.Float, nullable=False, server_default="0"),
        sa.Column("source_documents", sa.JSON, nullable=False),
        *_timestamps("created_at"),
    )

    op.create_table(
        "user_feedback",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "conversation_id", sa.Integer,
            sa.ForeignKey("chatbot_conversations.id", ondelete="CASCADE"),
            nullable=False, unique=True, index=True,
        ),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("rating", feedback_rating, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        *_timestamps("created_at"),
    )

    op.create_table(
        "chatbot_evaluations",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "conversation_id", sa.Integer,
            sa.ForeignKey("chatbot_conversations.id", ondelete="CASCADE"),
            nullable=False, unique=True, index=True,
        ),
        sa.Column("correctness_score", sa.Float, nullable=False),
        sa.Column("conciseness_score", sa.Float, nullable=False),
        sa.Column("comprehensiveness_score", sa.Float, nullable=False),
        sa.Column("coherence_score", sa.Float, nullable=False),
        sa.Column("overall_score", sa.Float, nullable=False),
        sa.Column("feedback", sa.Text, nullable=False, server_default=""),
        sa.Column("strengths", sa.JSON, nullable=False),
        sa.Column("improvements", sa.JSON, nullable=False),
        sa.Column("evaluator_insights", sa.JSON, nullable=False),
        *_timestamps("evaluated_at"),
    )

    op.create_table(
        "chatbot_training_sessions",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("answer", sa.Text, nullable=False),
        sa.Column("category", sa.String(100), nullable=False, server_default="general"),
        *_timestamps("created_at"),
    )

    op.create_table(
        "chatbot_documents",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("file_type", sa.String(50), nullable=False),
        sa.Column("size", sa.Integer, nullable=False, server_default="0"),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        *_timestamps("uploaded_at"),
    )

    op.create_table(
        "chatbot_document_chunks",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "document_id", sa.Integer,
            sa.ForeignKey("chatbot_documents.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("chunk_index", sa.Integer, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("embedding", Vector(VECTOR_DIM), nullable=True),
    )
    op.execute(
        "CREATE INDEX ix_chatbot_document_chunks_embedding ON chatbot_document_chunks "
        "USING hnsw (embedding vector_cosine_ops)"
    )

    op.create_table(
        "chatbot_learning_insights",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("category", insight_category, nullable=False),
        sa.Column("insight", sa.Text, nullable=False),
        sa.Column("examples", sa.JSON, nullable=False),
        sa.Column("importance", sa.Integer, nullable=False, server_default="5"),
        sa.Column(
            "source_evaluation_id", sa.Integer,
            sa.ForeignKey("chatbot_evaluations.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true(), index=True),
        *_timestamps("created_at"),
    )

    op.create_table(
        "system_prompt_templates",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("slot", prompt_slot, nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("template", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps("created_at", "updated_at"),
    )
    op.create_index(
        "uq_system_prompt_active_per_slot",
        "system_prompt_templates",
        ["slot"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )


def downgrade() -> None:
    op.drop_index("uq_system_prompt_active_per_slot", table_name="system_prompt_templates")
    op.drop_table("system_prompt_templates")
    op.drop_table("chatbot_learning_insights")
    op.drop_table("chatbot_document_chunks")
    op.drop_table("chatbot_documents")
    op.drop_table("chatbot_training_sessions")
    op.drop_table("chatbot_evaluations")
    op.drop_table("user_feedback")
    op.drop_table("chatbot_conversations")
    op.drop_index("uq_resume_content_single_active", table_name="resume_content")
    op.drop_table("resume_content")
    op.drop_table("top_five_list_items")
    op.drop_table("top_five_lists")
    op.drop_table("carousel_images")
    op.drop_table("contact_submissions")
    op.drop_table("blog_posts")
    op.drop_table("blog_series")
    op.drop_table("projects")

    op.execute("DROP TYPE IF EXISTS promptslot")
    op.execute("DROP TYPE IF EXISTS insightcategory")
    op.execute("DROP TYPE IF EXISTS feedbackrating")
