"""
ragchat

Read-Retrieve-Read chat over a document index: refine the question into a
search query, retrieve grounding passages with hybrid lexical/vector/semantic
search, then synthesize a cited answer with an optional set of follow-up
questions.

Usage:
    from ragchat.common import load_config
    from ragchat.common.schemas import ConversationTurn, RequestOverrides
    from ragchat.retriever import create_chat_service

    service = create_chat_service(load_config())
    response = await service.reply([ConversationTurn(user="What is the deductible?")])
"""

__version__ = "0.1.0"
