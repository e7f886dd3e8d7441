"""
LLM client dependency.

The client is built once in the application lifespan and stored on
``app.state.llm_client``; tests replace this dependency with a fake.
"""
from fastapi import Request

from portfolio.services.llm_client import LLMClient


def get_llm_client(request: Request) -> LLMClient:
    return request.app.state.llm_client
