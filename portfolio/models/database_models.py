"""
SQLAlchemy ORM models for the portfolio content store.
List-valued columns use JSON; chunk embeddings use pgvector on PostgreSQL
and fall back to JSON on SQLite.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Float,
    Boolean,
    Enum as SQLEnum,
    Index,
    JSON,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pgvector.sqlalchemy import Vector
import enum

from portfolio.config import settings
from portfolio.database import Base
from portfolio.utils.helpers import utcnow


# Enums
class FeedbackRating(str, enum.Enum):
    """Thumbs rating a visitor can leave on a chatbot answer."""

    UP = "up"
    DOWN = "down"


class PromptSlot(str, enum.Enum):
    """Named slots a system prompt template can override."""

    DEFAULT = "default"
    ENHANCED = "enhanced"
    CUSTOM = "custom"
    LANGCHAIN = "langchain"


class InsightCategory(str, enum.Enum):
    """Kinds of learning insight extracted from evaluations."""

    IMPROVEMENT = "improvement"
    BEST_PRACTICE = "best_practice"
    AVOID_PATTERN = "avoid_pattern"


def _enum_values(enum_cls):
    """Persist enum values ('up') rather than member names ('UP')."""
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Site content
# ---------------------------------------------------------------------------

class Project(Base):
    """Portfolio project shown on the public site."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    short_description = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    image = Column(String(512), nullable=False, default="")  # thumbnail
    media_files = Column(JSON, nullable=False, default=list)
    thumbnail_index = Column(Integer, nullable=False, default=0)
    technologies = Column(JSON, nullable=False, default=list)
    demo_url = Column(String(512), nullable=False, default="")
    code_url = Column(String(512), nullable=False, default="")
    client = Column(String(255), nullable=True)
    published = Column(Boolean, nullable=False, default=True, index=True)
    featured = Column(Boolean, nullable=False, default=False)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class BlogSeries(Base):
    """Named, ordered collection of blog posts."""

    __tablename__ = "blog_series"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    cover_image = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    posts = relationship("BlogPost", back_populates="series")


class BlogPost(Base):
    """Blog post, optionally part of a series."""

    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    excerpt = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    cover_image = Column(String(512), nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    category = Column(String(100), nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    published = Column(Boolean, nullable=False, default=True, index=True)
    read_time = Column(Integer, nullable=False, default=1)  # minutes
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Series membership; position is advisory ordering only
    series_id = Column(Integer, ForeignKey("blog_series.id", ondelete="SET NULL"), nullable=True, index=True)
    series_position = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    series = relationship("BlogSeries", back_populates="posts")


class ContactSubmission(Base):
    """Visitor-submitted contact form entry."""

    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class CarouselImage(Base):
    """Image shown in the home page carousel."""

    __tablename__ = "carousel_images"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    caption = Column(Text, nullable=True)
    alt_text = Column(String(255), nullable=True)
    image_url = Column(String(512), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    is_visible = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class AboutMeContent(Base):
    """Editable About page content. The site keeps a single row."""

    __tablename__ = "about_me_content"

    id = Column(Integer, primary_key=True, index=True)
    hero_image = Column(String(512), nullable=True)
    life_pictures_title = Column(String(255), nullable=False, default="Life in Pictures")
    life_pictures_image = Column(String(512), nullable=True)
    life_pictures_caption = Column(String(255), nullable=False, default="")
    life_pictures_description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class TopFiveList(Base):
    """A themed "top 5" list."""

    __tablename__ = "top_five_lists"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    icon = Column(String(100), nullable=False, default="star")
    color = Column(String(50), nullable=False, default="blue")
    description = Column(Text, nullable=True)
    main_image = Column(String(512), nullable=True)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    items = relationship(
        "TopFiveListItem",
        back_populates="top_five_list",
        cascade="all, delete-orphan",
        order_by="TopFiveListItem.position",
    )


class TopFiveListItem(Base):
    """Single ranked entry of a top-5 list."""

    __tablename__ = "top_five_list_items"

    id = Column(Integer, primary_key=True, index=True)
    list_id = Column(Integer, ForeignKey("top_five_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    link = Column(String(512), nullable=True)
    link_text = Column(String(255), nullable=True)
    image = Column(String(512), nullable=True)
    highlight = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=1)  # 1-5
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    top_five_list = relationship("TopFiveList", back_populates="items")


class ResumeContent(Base):
    """Metadata for an uploaded resume PDF. At most one row is active."""

    __tablename__ = "resume_content"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(255), nullable=False)  # name on disk
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    url = Column(String(512), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index(
            "uq_resume_content_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )


# ---------------------------------------------------------------------------
# Chatbot
# ---------------------------------------------------------------------------

class ChatbotConversation(Base):
    """One visitor question and the bot's answer."""

    __tablename__ = "chatbot_conversations"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(255), nullable=False, index=True)  # generated client-side
    user_question = Column(Text, nullable=False)
    bot_response = Column(Text, nullable=False)
    is_on_topic = Column(Boolean, nullable=False, default=True)
    confidence = Column(Float, nullable=False, default=0.0)
    source_documents = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    feedback = relationship(
        "UserFeedback", back_populates="conversation", uselist=False, cascade="all, delete-orphan"
    )
    evaluation = relationship(
        "ChatbotEvaluation", back_populates="conversation", uselist=False, cascade="all, delete-orphan"
    )


class UserFeedback(Base):
    """Thumbs up/down left on a single conversation."""

    __tablename__ = "user_feedback"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer,
        ForeignKey("chatbot_conversations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    session_id = Column(String(255), nullable=False)
    rating = Column(SQLEnum(FeedbackRating, values_callable=_enum_values), nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    conversation = relationship("ChatbotConversation", back_populates="feedback")


class ChatbotEvaluation(Base):
    """LLM-as-judge scores for a conversation."""

    __tablename__ = "chatbot_evaluations"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer,
        ForeignKey("chatbot_conversations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Scores (1-10)
    correctness_score = Column(Float, nullable=False)
    conciseness_score = Column(Float, nullable=False)
    comprehensiveness_score = Column(Float, nullable=False)
    coherence_score = Column(Float, nullable=False)
    overall_score = Column(Float, nullable=False)

    feedback = Column(Text, nullable=False, default="")
    strengths = Column(JSON, nullable=False, default=list)
    improvements = Column(JSON, nullable=False, default=list)
    evaluator_insights = Column(JSON, nullable=False, default=list)
    evaluated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    conversation = relationship("ChatbotConversation", back_populates="evaluation")


class ChatbotTrainingSession(Base):
    """Admin-curated question/answer pair used to ground answers."""

    __tablename__ = "chatbot_training_sessions"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, default="general")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class ChatbotDocument(Base):
    """Reference document uploaded by the admin."""

    __tablename__ = "chatbot_documents"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String(255), nullable=False)  # name on disk
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_type = Column(String(50), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=False, default="")
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    # Relationships
    chunks = relationship("ChatbotDocumentChunk", back_populates="document", cascade="all, delete-orphan")


class ChatbotDocumentChunk(Base):
    """Text chunk of a reference document with its embedding."""

    __tablename__ = "chatbot_document_chunks"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(
        Integer, ForeignKey("chatbot_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    # pgvector on PostgreSQL, a JSON list on SQLite; unit-length, filled by the indexer
    embedding = Column(
        Vector(settings.VECTOR_DIMENSION).with_variant(JSON(none_as_null=True), "sqlite"),
        nullable=True,
    )

    # Relationships
    document = relationship("ChatbotDocument", back_populates="chunks")


class ChatbotLearningInsight(Base):
    """Actionable lesson distilled from an evaluation."""

    __tablename__ = "chatbot_learning_insights"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(SQLEnum(InsightCategory, values_callable=_enum_values), nullable=False)
    insight = Column(Text, nullable=False)
    examples = Column(JSON, nullable=False, default=list)
    importance = Column(Integer, nullable=False, default=5)  # 1-10
    source_evaluation_id = Column(
        Integer, ForeignKey("chatbot_evaluations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class SystemPromptTemplate(Base):
    """Editable override of a hardcoded chatbot system prompt."""

    __tablename__ = "system_prompt_templates"

    id = Column(Integer, primary_key=True, index=True)
    slot = Column(SQLEnum(PromptSlot, values_callable=_enum_values), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    template = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index(
            "uq_system_prompt_active_per_slot",
            "slot",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
