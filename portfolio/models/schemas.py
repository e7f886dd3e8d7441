"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List
from datetime import datetime
from enum import Enum


# Enums (matching database enums)
class FeedbackRatingSchema(str, Enum):
    """Feedback ratings for API requests/responses."""

    UP = "up"
    DOWN = "down"


class PromptSlotSchema(str, Enum):
    """System prompt slots for API requests/responses."""

    DEFAULT = "default"
    ENHANCED = "enhanced"
    CUSTOM = "custom"
    LANGCHAIN = "langchain"


class InsightCategorySchema(str, Enum):
    """Learning insight categories for API responses."""

    IMPROVEMENT = "improvement"
    BEST_PRACTICE = "best_practice"
    AVOID_PATTERN = "avoid_pattern"


class ContentTypeSchema(str, Enum):
    """Kinds of content the polisher knows how to review."""

    BLOG = "blog"
    PROJECT = "project"
    GENERAL = "general"


# ═══════════════════════════════════════════════════════════════════════════════
# Site content
# ═══════════════════════════════════════════════════════════════════════════════

# Project Schemas
class ProjectCreate(BaseModel):
    """Schema for creating a project. ``slug`` is derived from the title when omitted."""

    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    short_description: str = ""
    description: str = ""
    image: str = ""
    media_files: List[str] = Field(default_factory=list)
    thumbnail_index: int = Field(0, ge=0)
    technologies: List[str] = Field(default_factory=list)
    demo_url: str = ""
    code_url: str = ""
    client: Optional[str] = None
    published: bool = True
    featured: bool = False
    date: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    """Partial update for a project; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    short_description: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    media_files: Optional[List[str]] = None
    thumbnail_index: Optional[int] = Field(None, ge=0)
    technologies: Optional[List[str]] = None
    demo_url: Optional[str] = None
    code_url: Optional[str] = None
    client: Optional[str] = None
    published: Optional[bool] = None
    featured: Optional[bool] = None
    date: Optional[datetime] = None


class ProjectResponse(BaseModel):
    """Schema for project responses."""

    id: int
    title: str
    slug: str
    short_description: str
    description: str
    image: str
    media_files: List[str] = Field(default_factory=list)
    thumbnail_index: int = 0
    technologies: List[str] = Field(default_factory=list)
    demo_url: str
    code_url: str
    client: Optional[str] = None
    published: bool
    featured: bool
    date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Blog Schemas
class BlogPostCreate(BaseModel):
    """Schema for creating a blog post."""

    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    excerpt: str = ""
    content: str = ""
    cover_image: str = ""
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    featured: bool = False
    published: bool = True
    read_time: Optional[int] = Field(None, ge=1)
    date: Optional[datetime] = None
    series_id: Optional[int] = None
    series_position: Optional[int] = None


class BlogPostUpdate(BaseModel):
    """Partial update for a blog post."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    excerpt: Optional[str] = None
    content: Optional[str] = None
    cover_image: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    featured: Optional[bool] = None
    published: Optional[bool] = None
    read_time: Optional[int] = Field(None, ge=1)
    date: Optional[datetime] = None
    series_id: Optional[int] = None
    series_position: Optional[int] = None


class BlogPostResponse(BaseModel):
    """Schema for blog post responses."""

    id: int
    title: str
    slug: str
    excerpt: str
    content: str
    cover_image: str
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    featured: bool
    published: bool
    read_time: int
    date: datetime
    series_id: Optional[int] = None
    series_position: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlogMarkdownImportResponse(BaseModel):
    """Draft parsed from an uploaded Markdown file. Nothing is saved."""

    message: str
    data: BlogPostCreate


class BlogSeriesCreate(BaseModel):
    """Schema for creating a blog series."""

    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    cover_image: Optional[str] = None


class BlogSeriesUpdate(BaseModel):
    """Partial update for a blog series."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    cover_image: Optional[str] = None


class BlogSeriesResponse(BaseModel):
    """Schema for blog series responses."""

    id: int
    title: str
    slug: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    post_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BlogSeriesDetailResponse(BlogSeriesResponse):
    """A series together with its posts in reading order."""

    posts: List[BlogPostResponse] = Field(default_factory=list)


# Contact Schemas
class ContactCreate(BaseModel):
    """Visitor contact form submission."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)


class ContactResponse(BaseModel):
    """Stored contact submission."""

    id: int
    name: str
    email: str
    subject: str
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Carousel Schemas
class CarouselImageCreate(BaseModel):
    """Schema for adding a carousel image."""

    title: str = Field(..., min_length=1, max_length=255)
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    image_url: str = Field(..., min_length=1)
    position: int = 0
    is_visible: bool = True


class CarouselImageUpdate(BaseModel):
    """Partial update for a carousel image."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    image_url: Optional[str] = Field(None, min_length=1)
    position: Optional[int] = None
    is_visible: Optional[bool] = None


class CarouselImageResponse(BaseModel):
    """Schema for carousel image responses."""

    id: int
    title: str
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    image_url: str
    position: int
    is_visible: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# About Me Schemas
class AboutImageFieldSchema(str, Enum):
    """About page fields that hold an uploaded image."""

    HERO_IMAGE = "hero_image"
    LIFE_PICTURES_IMAGE = "life_pictures_image"


class AboutMeSave(BaseModel):
    """Full About page content; replaces whatever is stored."""

    hero_image: Optional[str] = None
    life_pictures_title: str = Field("Life in Pictures", max_length=255)
    life_pictures_image: Optional[str] = None
    life_pictures_caption: str = Field("", max_length=255)
    life_pictures_description: str = ""


class AboutMeUpdate(BaseModel):
    """Partial update of the About page content."""

    hero_image: Optional[str] = None
    life_pictures_title: Optional[str] = Field(None, max_length=255)
    life_pictures_image: Optional[str] = None
    life_pictures_caption: Optional[str] = Field(None, max_length=255)
    life_pictures_description: Optional[str] = None


class AboutMeResponse(BaseModel):
    """About page content. ``id`` is null until an admin saves it."""

    id: Optional[int] = None
    hero_image: Optional[str] = None
    life_pictures_title: str = "Life in Pictures"
    life_pictures_image: Optional[str] = None
    life_pictures_caption: str = ""
    life_pictures_description: str = ""
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AboutImageUploadResponse(BaseModel):
    """Stored About page image."""

    url: str
    filename: str
    original_name: str
    field: Optional[AboutImageFieldSchema] = None


# Top-5 List Schemas
class TopFiveListItemCreate(BaseModel):
    """Schema for adding an item to a top-5 list."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    link: Optional[str] = None
    link_text: Optional[str] = None
    image: Optional[str] = None
    highlight: bool = False
    position: int = Field(1, ge=1, le=5)


class TopFiveListItemUpdate(BaseModel):
    """Partial update for a top-5 list item."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    link: Optional[str] = None
    link_text: Optional[str] = None
    image: Optional[str] = None
    highlight: Optional[bool] = None
    position: Optional[int] = Field(None, ge=1, le=5)


class TopFiveListItemResponse(BaseModel):
    """Schema for top-5 list item responses."""

    id: int
    list_id: int
    title: str
    description: Optional[str] = None
    link: Optional[str] = None
    link_text: Optional[str] = None
    image: Optional[str] = None
    highlight: bool
    position: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TopFiveListCreate(BaseModel):
    """Schema for creating a top-5 list."""

    title: str = Field(..., min_length=1, max_length=255)
    icon: str = "star"
    color: str = "blue"
    description: Optional[str] = None
    main_image: Optional[str] = None
    position: int = 0


class TopFiveListUpdate(BaseModel):
    """Partial update for a top-5 list."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    icon: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    main_image: Optional[str] = None
    position: Optional[int] = None


class TopFiveListResponse(BaseModel):
    """A top-5 list with its items ordered by position."""

    id: int
    title: str
    icon: str
    color: str
    description: Optional[str] = None
    main_image: Optional[str] = None
    position: int
    created_at: datetime
    items: List[TopFiveListItemResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# Resume Schemas
class ResumeStatusResponse(BaseModel):
    """Whether a resume is available for download."""

    available: bool
    original_name: Optional[str] = None
    uploaded_at: Optional[datetime] = None


class ResumeDownloadRequest(BaseModel):
    """Shared password gating the resume download."""

    password: str = Field(..., min_length=1)


class ResumeResponse(BaseModel):
    """Stored resume metadata."""

    id: int
    filename: str
    original_name: str
    url: str
    size: int
    is_active: bool
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Upload Schemas
class UploadedFile(BaseModel):
    """One file saved by the media upload endpoint."""

    filename: str
    original_name: str
    url: str
    size: int
    content_type: Optional[str] = None


class UploadResponse(BaseModel):
    """Schema for media upload responses."""

    files: List[UploadedFile] = Field(default_factory=list)
    urls: List[str] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════════
# Chatbot
# ═══════════════════════════════════════════════════════════════════════════════

class ChatRequest(BaseModel):
    """Visitor message for the portfolio chatbot."""

    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str = Field(..., min_length=1, max_length=255)


class ChatResponse(BaseModel):
    """Answer returned by the chatbot."""

    response: str
    is_on_topic: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    conversation_id: Optional[int] = None
    sources: List[str] = Field(default_factory=list)


class FeedbackRequest(BaseModel):
    """Thumbs up/down on a chatbot answer."""

    conversation_id: int
    session_id: str = Field(..., min_length=1, max_length=255)
    rating: FeedbackRatingSchema
    comment: Optional[str] = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    """Stored feedback row."""

    id: int
    conversation_id: int
    session_id: str
    rating: FeedbackRatingSchema
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    """Stored chatbot exchange."""

    id: int
    session_id: str
    user_question: str
    bot_response: str
    is_on_topic: bool
    confidence: float
    source_documents: List[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatAnalyticsResponse(BaseModel):
    """Aggregate chatbot usage figures."""

    total_conversations: int = 0
    unique_sessions: int = 0
    on_topic_rate: float = 0.0
    average_confidence: float = 0.0
    thumbs_up: int = 0
    thumbs_down: int = 0
    feedback_count: int = 0


class TrainingSessionCreate(BaseModel):
    """Admin-curated question/answer pair."""

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    category: str = Field("general", max_length=100)


class TrainingSessionUpdate(BaseModel):
    """Partial update for a training pair."""

    question: Optional[str] = Field(None, min_length=1)
    answer: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, max_length=100)


class TrainingSessionResponse(BaseModel):
    """Stored training pair."""

    id: int
    question: str
    answer: str
    category: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatbotDocumentResponse(BaseModel):
    """Reference document metadata (content omitted)."""

    id: int
    filename: str
    original_name: str
    file_type: str
    size: int
    uploaded_at: datetime
    chunk_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class ChatbotDocumentUploadResponse(BaseModel):
    """Schema for reference document upload responses."""

    id: int
    original_name: str
    file_type: str
    chunk_count: int = 0
    embedded_count: int = 0
    message: str = "Document uploaded successfully"


class ReindexResponse(BaseModel):
    """Result of re-embedding chunks that lack a vector."""

    embedded: int = 0
    failed: int = 0
    message: str = ""


# Evaluation Schemas
class EvaluatorInsight(BaseModel):
    """One criterion's verdict."""

    evaluator: str
    score: float
    feedback: str


class EvaluationResponse(BaseModel):
    """Stored evaluation of a conversation."""

    id: int
    conversation_id: int
    correctness_score: float
    conciseness_score: float
    comprehensiveness_score: float
    coherence_score: float
    overall_score: float
    feedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    evaluator_insights: List[EvaluatorInsight] = Field(default_factory=list)
    evaluated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EvaluationBatchRequest(BaseModel):
    """Conversations to evaluate; empty means every unevaluated one."""

    conversation_ids: List[int] = Field(default_factory=list)
    limit: int = Field(20, ge=1, le=200)


class EvaluationBatchResponse(BaseModel):
    """Outcome of a batch evaluation run."""

    evaluated: int = 0
    skipped: List[int] = Field(default_factory=list)
    evaluations: List[EvaluationResponse] = Field(default_factory=list)


class EvaluationStatsResponse(BaseModel):
    """Aggregate evaluation scores."""

    total_evaluations: int = 0
    average_overall: float = 0.0
    average_correctness: float = 0.0
    average_conciseness: float = 0.0
    average_comprehensiveness: float = 0.0
    average_coherence: float = 0.0
    last_7_days_average: Optional[float] = None
    last_30_days_average: Optional[float] = None
    last_7_days_count: int = 0
    last_30_days_count: int = 0


# Learning Schemas
class LearningInsightResponse(BaseModel):
    """Stored learning insight."""

    id: int
    category: InsightCategorySchema
    insight: str
    examples: List[str] = Field(default_factory=list)
    importance: int
    source_evaluation_id: Optional[int] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LearningInsightUpdate(BaseModel):
    """Toggle or re-weight an insight."""

    is_active: Optional[bool] = None
    importance: Optional[int] = Field(None, ge=1, le=10)
    insight: Optional[str] = Field(None, min_length=1)


class ExtractInsightsResponse(BaseModel):
    """Insights persisted from one evaluation."""

    evaluation_id: int
    insights: List[LearningInsightResponse] = Field(default_factory=list)


class PromptPreviewStats(BaseModel):
    """What the chatbot prompt is currently built from."""

    documents: int
    training_sessions: int
    learning_insights: int
    active_insights: int


class PromptPreviewResponse(BaseModel):
    """System prompt the chatbot would use right now."""

    prompt: str
    stats: PromptPreviewStats


class LearningPromptUpdateRequest(BaseModel):
    """Custom prompt to activate; omit it to snapshot the insight-enhanced default."""

    custom_prompt: Optional[str] = None


class LearningPromptUpdateResponse(BaseModel):
    """Template stored by the learning prompt update."""

    message: str
    slot: PromptSlotSchema
    prompt: str


# System Prompt Schemas
class SystemPromptUpdateRequest(BaseModel):
    """New template text for a chatbot prompt slot."""

    template: str = Field(..., min_length=1)
    name: str = Field("", max_length=255)


class SystemPromptSlotResponse(BaseModel):
    """Registry default and active override for one slot."""

    slot: PromptSlotSchema
    default_template: str
    active_template: Optional[str] = None
    active_name: Optional[str] = None
    is_overridden: bool = False
    updated_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Polisher
# ═══════════════════════════════════════════════════════════════════════════════

class PolishRequest(BaseModel):
    """Draft content to review."""

    content: str = ""
    content_type: ContentTypeSchema = ContentTypeSchema.GENERAL


class PolishSuggestion(BaseModel):
    """One suggested edit."""

    type: str
    original: str = ""
    suggested: str = ""
    explanation: str = ""
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class PolishResponse(BaseModel):
    """Full polish report."""

    suggestions: List[PolishSuggestion] = Field(default_factory=list)
    overall_score: float
    summary: str
    word_count: int = 0
    readability_score: float


class QuickSuggestionsRequest(BaseModel):
    """Content for inline writing tips."""

    content: str = ""


class QuickSuggestionsResponse(BaseModel):
    """Short writing tips."""

    suggestions: List[str] = Field(default_factory=list)


class ImproveSelectionRequest(BaseModel):
    """A highlighted span and its surrounding text."""

    text: str = Field(..., min_length=1)
    context: str = ""


class ImproveSelectionResponse(BaseModel):
    """Rewritten selection."""

    original: str
    improved: str


# ═══════════════════════════════════════════════════════════════════════════════
# System
# ═══════════════════════════════════════════════════════════════════════════════

class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    llm: str
    timestamp: datetime
    version: str = "1.0.0"


class AuthCheckResponse(BaseModel):
    """Admin credential check result."""

    authenticated: bool = True
    message: str = "Authenticated"
