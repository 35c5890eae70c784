"""
Tests for Retriever Agent

Tests query refinement, searching, answer synthesis and follow-ups.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from ragchat.common.errors import ContractViolationError, UpstreamCallError
from ragchat.common.llm_client import ChatChoice
from ragchat.common.schemas.chat import (
    ConversationTurn,
    RequestOverrides,
    RetrievalMode,
    SupportingContentRecord,
)
from ragchat.common.search_client import SearchHit


def _chat(*contents):
    chat = Mock()
    chat.complete = AsyncMock(return_value=[ChatChoice(content=c) for c in contents])
    return chat


class TestQueryRefiner:
    """Tests for QueryRefiner"""

    @pytest.mark.asyncio
    async def test_returns_single_choice(self):
        from ragchat.retriever.query_processor import QueryRefiner
        chat = _chat("deductible AND employee plan")

        query = await QueryRefiner(chat).refine("What is my deductible?")

        assert query == "deductible AND employee plan"
        system, messages = chat.complete.call_args.args
        assert system.startswith("You are a helpful AI assistant, generate search query")
        assert messages == [{"role": "user", "content": "What is my deductible?"}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contents", [(), ("a", "b")])
    async def test_choice_count_other_than_one_rejected(self, contents):
        from ragchat.retriever.query_processor import QueryRefiner
        chat = _chat(*contents)

        with pytest.raises(ContractViolationError) as exc_info:
            await QueryRefiner(chat).refine("q")

        assert "Failed to get search query" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_history_ignored_by_default(self):
        from ragchat.retriever.query_processor import QueryRefiner
        chat = _chat("dental")
        history = [
            ConversationTurn(user="What plans are there?", bot="Standard and Plus."),
            ConversationTurn(user="What about dental?"),
        ]

        await QueryRefiner(chat).refine("What about dental?", history)

        _, messages = chat.complete.call_args.args
        assert len(messages) == 1

    @pytest.mark.asyncio
    async def test_history_replayed_when_enabled(self):
        from ragchat.retriever.query_processor import QueryRefiner
        chat = _chat("Northwind Health Plus AND dental")
        history = [
            ConversationTurn(user="What plans are there?", bot="Standard and Plus."),
            ConversationTurn(user="What about dental?"),
        ]

        await QueryRefiner(chat, include_history=True).refine("What about dental?", history)

        _, messages = chat.complete.call_args.args
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[-1]["content"] == "What about dental?"


class TestSearchOptions:
    """Tests for search option and vector query construction"""

    def test_defaults_are_plain_search(self):
        from ragchat.retriever.searcher import build_search_options
        options = build_search_options(RequestOverrides())
        assert options.size == 3
        assert options.filter is None
        assert not options.is_semantic
        assert options.query_caption == "none"

    def test_semantic_ranker_with_captions(self):
        from ragchat.retriever.searcher import build_search_options
        options = build_search_options(RequestOverrides(semantic_ranker=True, semantic_captions=True))
        assert options.query_type == "semantic"
        assert options.query_language == "en-us"
        assert options.query_speller == "lexicon"
        assert options.semantic_configuration_name == "default"
        assert options.query_caption == "extractive"

    def test_captions_without_ranker_have_no_effect(self):
        from ragchat.retriever.searcher import build_search_options
        options = build_search_options(RequestOverrides(semantic_captions=True))
        assert not options.is_semantic
        assert options.query_caption == "none"

    def test_exclude_category_filter_escapes_quotes(self):
        from ragchat.retriever.searcher import build_search_options
        options = build_search_options(RequestOverrides(exclude_category="employee's guide"))
        assert options.filter == "category ne 'employee''s guide'"

    def test_vector_k_is_top_without_ranker(self):
        from ragchat.retriever.searcher import build_vector_query
        vq = build_vector_query(RequestOverrides(top=5), [0.1, 0.2])
        assert vq.k == 5
        assert vq.field == "embedding"

    def test_vector_k_is_fifty_with_ranker(self):
        from ragchat.retriever.searcher import build_vector_query
        vq = build_vector_query(RequestOverrides(top=5, semantic_ranker=True), [0.1, 0.2])
        assert vq.k == 50

    def test_no_vector_query_in_text_mode(self):
        from ragchat.retriever.searcher import build_vector_query
        overrides = RequestOverrides(retrieval_mode=RetrievalMode.TEXT)
        assert build_vector_query(overrides, [0.1]) is None

    def test_no_vector_query_without_embedding(self):
        from ragchat.retriever.searcher import build_vector_query
        assert build_vector_query(RequestOverrides(), None) is None


class TestDocumentRetriever:
    """Tests for DocumentRetriever"""

    @pytest.fixture
    def search_client(self):
        client = Mock()
        client.search = AsyncMock(return_value=[])
        return client

    @pytest.fixture
    def retriever(self, search_client):
        from ragchat.retriever.searcher import DocumentRetriever
        return DocumentRetriever(search_client)

    @pytest.mark.asyncio
    async def test_records_keep_ranking_order(self, retriever, search_client):
        search_client.search.return_value = [
            SearchHit(document={"sourcepage": "benefits-3.pdf", "content": "Deductible is $500."}),
            SearchHit(document={"sourcepage": "handbook-1.pdf", "content": "Welcome."}),
        ]

        records = await retriever.retrieve("deductible", None, RequestOverrides())

        assert [r.title for r in records] == ["benefits-3.pdf", "handbook-1.pdf"]
        assert records[0].content == "Deductible is $500."

    @pytest.mark.asyncio
    async def test_line_breaks_replaced_with_spaces(self, retriever, search_client):
        search_client.search.return_value = [
            SearchHit(document={"sourcepage": "a.pdf", "content": "line1\r\nline2\nline3"}),
        ]

        records = await retriever.retrieve("q", None, RequestOverrides())

        assert records[0].content == "line1  line2 line3"

    @pytest.mark.asyncio
    async def test_hits_missing_source_or_content_skipped(self, retriever, search_client):
        search_client.search.return_value = [
            SearchHit(document={"content": "no source"}),
            SearchHit(document={"sourcepage": "b.pdf"}),
            SearchHit(document={"sourcepage": "c.pdf", "content": None}),
            SearchHit(document={"sourcepage": "d.pdf", "content": "kept"}),
        ]

        records = await retriever.retrieve("q", None, RequestOverrides())

        assert [r.title for r in records] == ["d.pdf"]

    @pytest.mark.asyncio
    async def test_captions_joined_when_requested(self, retriever, search_client):
        search_client.search.return_value = [
            SearchHit(document={"sourcepage": "a.pdf", "content": "full"}, captions=["one", "two"]),
            SearchHit(document={"sourcepage": "b.pdf", "content": "full"}, captions=None),
        ]
        overrides = RequestOverrides(semantic_ranker=True, semantic_captions=True)

        records = await retriever.retrieve("q", None, overrides)

        assert len(records) == 1
        assert records[0].content == "one . two"

    @pytest.mark.asyncio
    async def test_captions_without_ranker_drop_every_hit(self, retriever, search_client):
        # No captions are requested without the ranker, so no hit carries any
        search_client.search.return_value = [
            SearchHit(document={"sourcepage": "a.pdf", "content": "full"}),
            SearchHit(document={"sourcepage": "b.pdf", "content": "full"}),
        ]
        overrides = RequestOverrides(semantic_captions=True, semantic_ranker=False)

        records = await retriever.retrieve("q", None, overrides)

        assert records == []
        _, _, options = search_client.search.call_args.args
        assert options.query_caption == "none"

    @pytest.mark.asyncio
    async def test_empty_captions_give_empty_content(self, retriever, search_client):
        search_client.search.return_value = [
            SearchHit(document={"sourcepage": "a.pdf", "content": "full"}, captions=[]),
        ]
        overrides = RequestOverrides(semantic_ranker=True, semantic_captions=True)

        records = await retriever.retrieve("q", None, overrides)

        assert records[0].content == ""

    @pytest.mark.asyncio
    async def test_none_response_raises(self, retriever, search_client):
        search_client.search.return_value = None

        with pytest.raises(UpstreamCallError) as exc_info:
            await retriever.retrieve("q", None, RequestOverrides())

        assert "fail to get search result" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_passes_query_vector_and_options(self, retriever, search_client):
        overrides = RequestOverrides(top=4, semantic_ranker=True)

        await retriever.retrieve("deductible", [0.5, 0.5], overrides)

        query, vector_query, options = search_client.search.call_args.args
        assert query == "deductible"
        assert vector_query.k == 50
        assert vector_query.vector == [0.5, 0.5]
        assert options.size == 4
        assert options.is_semantic

    @pytest.mark.asyncio
    async def test_custom_field_names(self, search_client):
        from ragchat.common.config import SearchConfig
        from ragchat.retriever.searcher import DocumentRetriever
        cfg = SearchConfig(source_field="path", content_field="chunk")
        search_client.search.return_value = [SearchHit(document={"path": "x.md", "chunk": "text"})]

        records = await DocumentRetriever(search_client, search_config=cfg).retrieve(
            "q", None, RequestOverrides()
        )

        assert records == [SupportingContentRecord(title="x.md", content="text")]


class TestAnswerSynthesizer:
    """Tests for AnswerSynthesizer"""

    @pytest.mark.asyncio
    async def test_prompt_contains_grounding_lines(self):
        from ragchat.retriever.synthesizer import AnswerSynthesizer
        chat = _chat('{"answer": "It is $500 [benefits-3.pdf].", "thoughts": "used benefits-3"}')
        records = [
            SupportingContentRecord(title="benefits-3.pdf", content="Deductible is $500."),
            SupportingContentRecord(title="benefits-4.pdf", content="Co-pay is $20."),
        ]
        history = [ConversationTurn(user="What is my deductible?")]

        result = await AnswerSynthesizer(chat).synthesize(history, records)

        assert result.answer == "It is $500 [benefits-3.pdf]."
        assert result.thoughts == "used benefits-3"
        system, messages = chat.complete.call_args.args
        assert system.startswith("You are a system assistant who helps the company employees")
        prompt = messages[-1]["content"]
        assert prompt.startswith(" ## Source ##\nbenefits-3.pdf:Deductible is $500.\rbenefits-4.pdf:Co-pay is $20.\n## End ##")
        assert '"answer":' in prompt
        assert "{{" not in prompt

    @pytest.mark.asyncio
    async def test_no_records_uses_sentinel(self):
        from ragchat.retriever.synthesizer import AnswerSynthesizer
        chat = _chat('{"answer": "I don\'t know.", "thoughts": "no sources"}')

        await AnswerSynthesizer(chat).synthesize([ConversationTurn(user="q")], [])

        _, messages = chat.complete.call_args.args
        assert "## Source ##\nno source available.\n## End ##" in messages[-1]["content"]

    @pytest.mark.asyncio
    async def test_history_replayed_in_order(self):
        from ragchat.retriever.synthesizer import AnswerSynthesizer
        chat = _chat('{"answer": "a", "thoughts": "t"}')
        history = [
            ConversationTurn(user="q1", bot="a1"),
            ConversationTurn(user="q2", bot="a2"),
            ConversationTurn(user="q3"),
        ]

        await AnswerSynthesizer(chat).synthesize(history, [])

        _, messages = chat.complete.call_args.args
        assert [(m["role"], m["content"]) for m in messages[:-1]] == [
            ("user", "q1"), ("assistant", "a1"),
            ("user", "q2"), ("assistant", "a2"),
            ("user", "q3"),
        ]
        assert messages[-1]["role"] == "user"

    @pytest.mark.asyncio
    async def test_malformed_answer_rejected(self, caplog):
        from ragchat.retriever.synthesizer import AnswerSynthesizer
        chat = _chat("The deductible is $500.")

        with pytest.raises(ContractViolationError):
            await AnswerSynthesizer(chat).synthesize([ConversationTurn(user="q")], [])

        assert "violates the JSON contract" in caplog.text

    @pytest.mark.asyncio
    async def test_no_choices_rejected(self):
        from ragchat.retriever.synthesizer import AnswerSynthesizer
        chat = _chat()

        with pytest.raises(ContractViolationError):
            await AnswerSynthesizer(chat).synthesize([ConversationTurn(user="q")], [])


class TestFollowupGenerator:
    """Tests for FollowupGenerator"""

    @pytest.mark.asyncio
    async def test_returns_questions_in_order(self):
        from ragchat.retriever.followups import FollowupGenerator
        chat = _chat('["What is the co-pay?", "Is vision covered?", "How do I enroll?"]')

        questions = await FollowupGenerator(chat).generate("The deductible is $500.")

        assert questions == ["What is the co-pay?", "Is vision covered?", "How do I enroll?"]
        system, messages = chat.complete.call_args.args
        assert system == "You are a helpful AI assistant"
        assert "# Answer\nThe deductible is $500.\n" in messages[0]["content"]

    @pytest.mark.asyncio
    async def test_other_counts_returned_with_warning(self, caplog):
        from ragchat.retriever.followups import FollowupGenerator
        chat = _chat('["Only one?"]')

        questions = await FollowupGenerator(chat).generate("a")

        assert questions == ["Only one?"]
        assert "Expected 3 follow-up questions" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_list_rejected(self):
        from ragchat.retriever.followups import FollowupGenerator
        chat = _chat("1. What is the co-pay?")

        with pytest.raises(ContractViolationError):
            await FollowupGenerator(chat).generate("a")

    def test_append_followups_markers(self):
        from ragchat.retriever.followups import append_followups
        assert append_followups("Answer.", ["A?", "B?"]) == "Answer. <<A?>>  <<B?>> "
        assert append_followups("Answer.", []) == "Answer."
