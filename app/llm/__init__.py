# app/llm/__init__.py
from .client import LLMClient, OpenAILLMClient, build_llm_client

__all__ = ["LLMClient", "OpenAILLMClient", "build_llm_client"]
