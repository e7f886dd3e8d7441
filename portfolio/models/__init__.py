"""Database and schema models for the portfolio backend."""
from portfolio.models.database_models import (
    Project,
    BlogSeries,
    BlogPost,
    ContactSubmission,
    CarouselImage,
    TopFiveList,
    TopFiveListItem,
    ResumeContent,
    ChatbotConversation,
    UserFeedback,
    ChatbotEvaluation,
    ChatbotTrainingSession,
    ChatbotDocument,
    ChatbotDocumentChunk,
    ChatbotLearningInsight,
    SystemPromptTemplate,
    FeedbackRating,
    PromptSlot,
    InsightCategory,
)
from portfolio.models.schemas import (
    ProjectCreate,
    ProjectResponse,
    BlogPostResponse,
    BlogSeriesDetailResponse,
    ChatRequest,
    ChatResponse,
    EvaluationResponse,
    PolishResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Project",
    "BlogSeries",
    "BlogPost",
    "ContactSubmission",
    "CarouselImage",
    "TopFiveList",
    "TopFiveListItem",
    "ResumeContent",
    "ChatbotConversation",
    "UserFeedback",
    "ChatbotEvaluation",
    "ChatbotTrainingSession",
    "ChatbotDocument",
    "ChatbotDocumentChunk",
    "ChatbotLearningInsight",
    "SystemPromptTemplate",
    "FeedbackRating",
    "PromptSlot",
    "InsightCategory",
    # Pydantic schemas
    "ProjectCreate",
    "ProjectResponse",
    "BlogPostResponse",
    "BlogSeriesDetailResponse",
    "ChatRequest",
    "ChatResponse",
    "EvaluationResponse",
    "PolishResponse",
    "HealthCheckResponse",
]
