"""
Retriever - Read-Retrieve-Read chat pipeline

Key Components:
- QueryRefiner: Turns the question into a terse search query
- DocumentRetriever: Hybrid/lexical/vector search and content extraction
- AnswerSynthesizer: Grounded answer with a strict JSON contract
- FollowupGenerator: Optional follow-up questions
- ChatOrchestrator: Sequences the stages for one request

Pipeline:
1. Embed the question and refine it into a search query
2. Search the index for supporting content
3. Synthesize the answer from the conversation and the content
4. Append follow-up questions if requested
"""

from .query_processor import QueryRefiner
from .searcher import DocumentRetriever, build_search_options, build_vector_query
from .synthesizer import AnswerSynthesizer
from .followups import FollowupGenerator, append_followups
from .orchestrator import ChatOrchestrator, create_chat_service

__all__ = [
    "QueryRefiner",
    "DocumentRetriever",
    "build_search_options",
    "build_vector_query",
    "AnswerSynthesizer",
    "FollowupGenerator",
    "append_followups",
    "ChatOrchestrator",
    "create_chat_service",
]
