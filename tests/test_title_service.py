"""Tests for note title resolution.

``respx`` patches ``httpx`` at the transport layer so the OpenRouter
generator is exercised without network access.
"""
import json

import httpx
import pytest
import respx

from memospace_mcp.config import MemoSpaceConfig
from memospace_mcp.exceptions import ErrorCode, ExternalServiceError
from memospace_mcp.services.title_service import (
    OpenRouterTitleGenerator,
    SimpleTitleGenerator,
    TitleService,
)
from memospace_mcp.utils import derive_simple_title
from tests.fakes import BrokenTitleGenerator, FailingTitleGenerator, FakeTitleGenerator

OPENROUTER_URL = "https://openrouter.test/api/v1/chat/completions"
LONG_CONTENT = "Notes from the meeting about the new storage layer and its migration plan"


def _completion(text):
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


@pytest.fixture
def generator():
    return OpenRouterTitleGenerator(
        api_key="test-key", url=OPENROUTER_URL, model="test/model", timeout=1.0
    )


class TestSimpleTitle:
    def test_qa_uses_question(self):
        content = "Q: How do I center a div?\n\nA: Use flexbox"
        assert derive_simple_title(content) == "How do I center a div?"

    def test_long_question_is_truncated(self):
        question = "x" * 60
        title = derive_simple_title(f"Q: {question}\n\nA: yes")
        assert title == "x" * 47 + "..."

    def test_short_first_line(self):
        assert derive_simple_title("Shopping list\n- milk\n- eggs") == "Shopping list"

    def test_crlf_line_ending(self):
        assert derive_simple_title("Shopping list\r\n- milk") == "Shopping list"

    @pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\x85", "\u2028"])
    def test_only_newline_ends_first_line(self, separator):
        content = f"Part one{separator}part two\nrest"
        assert derive_simple_title(content) == f"Part one{separator}part two"

    def test_surrounding_whitespace_is_trimmed(self):
        assert derive_simple_title("   Hello world  \n") == "Hello world"

    def test_long_line_cut_at_word_boundary(self):
        content = " ".join(["word"] * 14)
        assert derive_simple_title(content) == " ".join(["word"] * 10) + "..."

    def test_long_line_without_spaces_is_hard_cut(self):
        assert derive_simple_title("a" * 70) == "a" * 50 + "..."

    def test_early_space_does_not_count_as_boundary(self):
        content = "short " + "b" * 70
        assert derive_simple_title(content) == content[:50] + "..."

    def test_question_without_answer_falls_through(self):
        assert derive_simple_title("Q: what is this?") == "Q: what is this?"


class TestResolveTitle:
    def test_custom_title_wins(self):
        generator = FakeTitleGenerator()
        service = TitleService(generator)
        assert service.resolve_title(LONG_CONTENT, "  My Title  ") == "My Title"
        assert generator.calls == []

    def test_blank_custom_title_is_ignored(self):
        service = TitleService(FakeTitleGenerator())
        assert service.resolve_title("short note", "   ") == "short note"

    def test_long_content_uses_generator(self):
        generator = FakeTitleGenerator("Storage Migration")
        service = TitleService(generator)
        assert service.resolve_title(LONG_CONTENT) == "Storage Migration"
        assert generator.calls == [LONG_CONTENT]

    def test_short_content_is_its_own_title(self):
        generator = FakeTitleGenerator()
        service = TitleService(generator)
        assert service.resolve_title("  buy milk  ") == "buy milk"
        assert generator.calls == []

    def test_threshold_is_exclusive(self):
        generator = FakeTitleGenerator()
        service = TitleService(generator)
        assert service.resolve_title("x" * 20) == "x" * 20
        assert service.resolve_title("x" * 21) == "Generated Title"

    def test_generator_failure_falls_back(self):
        generator = FailingTitleGenerator()
        service = TitleService(generator)
        assert service.resolve_title(LONG_CONTENT) == derive_simple_title(LONG_CONTENT)
        assert generator.calls == 1

    def test_unexpected_generator_error_falls_back(self):
        generator = BrokenTitleGenerator()
        service = TitleService(generator)
        assert service.resolve_title(LONG_CONTENT) == derive_simple_title(LONG_CONTENT)
        assert generator.calls == 1

    def test_default_generator_is_deterministic(self):
        service = TitleService()
        assert isinstance(service.generator, SimpleTitleGenerator)
        assert service.resolve_title(LONG_CONTENT) == derive_simple_title(LONG_CONTENT)


class TestOpenRouterTitleGenerator:
    def test_returns_trimmed_completion(self, generator):
        with respx.mock:
            route = respx.post(OPENROUTER_URL).mock(return_value=_completion("  Storage Plan \n"))
            assert generator.generate(LONG_CONTENT) == "Storage Plan"

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-key"
        body = json.loads(request.content)
        assert body["model"] == "test/model"
        assert body["max_tokens"] == 50
        assert body["temperature"] == 0.1
        assert LONG_CONTENT in body["messages"][0]["content"]

    def test_qa_content_gets_qa_prompt(self, generator):
        prompt = generator.build_prompt("Q: What is ML?\n\nA: A subset of AI")
        assert prompt.startswith("Analyze this Q&A")
        assert generator.build_prompt(LONG_CONTENT).startswith("Generate a short")

    def test_overlong_title_is_rejected(self, generator):
        with respx.mock:
            respx.post(OPENROUTER_URL).mock(return_value=_completion("t" * 61))
            with pytest.raises(ExternalServiceError):
                generator.generate(LONG_CONTENT)

    def test_http_error(self, generator):
        with respx.mock:
            respx.post(OPENROUTER_URL).mock(return_value=httpx.Response(500))
            with pytest.raises(ExternalServiceError) as exc_info:
                generator.generate(LONG_CONTENT)
        assert exc_info.value.code == ErrorCode.EXTERNAL_SERVICE_FAILED

    def test_timeout(self, generator):
        with respx.mock:
            respx.post(OPENROUTER_URL).mock(side_effect=httpx.ConnectTimeout)
            with pytest.raises(ExternalServiceError) as exc_info:
                generator.generate(LONG_CONTENT)
        assert exc_info.value.code == ErrorCode.EXTERNAL_SERVICE_TIMEOUT

    def test_malformed_response(self, generator):
        with respx.mock:
            respx.post(OPENROUTER_URL).mock(return_value=httpx.Response(200, json={"choices": []}))
            with pytest.raises(ExternalServiceError):
                generator.generate(LONG_CONTENT)

    def test_service_falls_back_on_remote_failure(self, generator):
        service = TitleService(generator)
        with respx.mock:
            respx.post(OPENROUTER_URL).mock(return_value=httpx.Response(503))
            title = service.resolve_title(LONG_CONTENT)
        assert title == derive_simple_title(LONG_CONTENT)


class TestTitleServiceFromConfig:
    def test_without_api_key_uses_simple_generator(self):
        cfg = MemoSpaceConfig(openrouter_api_key=None)
        assert isinstance(TitleService.from_config(cfg).generator, SimpleTitleGenerator)

    def test_disabled_generation_uses_simple_generator(self):
        cfg = MemoSpaceConfig(openrouter_api_key="key", title_generation_enabled=False)
        assert isinstance(TitleService.from_config(cfg).generator, SimpleTitleGenerator)

    def test_api_key_enables_openrouter(self):
        cfg = MemoSpaceConfig(openrouter_api_key="key", ai_model="some/model", title_timeout=5.0)
        generator = TitleService.from_config(cfg).generator
        assert isinstance(generator, OpenRouterTitleGenerator)
        assert generator.model == "some/model"
        assert generator.timeout == 5.0
