"""Title resolution for notes.

Titles come from, in order: an explicit title, a remote text-generation
service for longer content, or the content itself. Any failure of the
remote service falls back to the deterministic rule in ``utils``.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from memospace_mcp.config import MemoSpaceConfig
from memospace_mcp.config import config as default_config
from memospace_mcp.exceptions import ErrorCode, ExternalServiceError
from memospace_mcp.utils import derive_simple_title, is_qa_content

logger = logging.getLogger(__name__)

# Content at or below this length is used verbatim as its own title
GENERATION_THRESHOLD = 20

QA_TITLE_PROMPT = (
    "Analyze this Q&A and create a concise, informative title (max 50 chars) "
    "that captures the main topic. Focus on the key subject matter, not the "
    "question format. \n\nExamples:\n"
    "\"Q: How do I center a div?\nA: Use flexbox with justify-content and "
    "align-items center\" → \"CSS Flexbox Centering\"\n\n"
    "\"Q: What is machine learning?\nA: ML is a subset of AI that uses "
    "algorithms to learn patterns\" → \"Machine Learning Basics\"\n\n"
    "Content:\n{content}\n\nRespond with ONLY the title:"
)

TITLE_PROMPT = (
    "Generate a short, descriptive title (max 50 characters) that captures "
    "the main topic or key insight from this content. Make it informative "
    "and specific. Respond with ONLY the title:\n\n{content}"
)


class TitleGenerator(ABC):
    """Produces a short title for note content."""

    @abstractmethod
    def generate(self, content: str) -> str:
        """Generate a title.

        Raises:
            ExternalServiceError: If no usable title could be produced.
        """
        pass


class SimpleTitleGenerator(TitleGenerator):
    """Deterministic generator used when no remote service is configured."""

    def generate(self, content: str) -> str:
        return derive_simple_title(content)


class OpenRouterTitleGenerator(TitleGenerator):
    """Asks an OpenRouter chat-completions model for a title.

    Each request is bounded by ``timeout`` seconds. Responses that are
    empty or longer than ``max_length`` are rejected.
    """

    def __init__(
        self,
        api_key: str,
        url: str,
        model: str,
        timeout: float = 30.0,
        max_length: int = 60,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.max_length = max_length

    @classmethod
    def from_config(cls, cfg: MemoSpaceConfig) -> "OpenRouterTitleGenerator":
        return cls(
            api_key=cfg.openrouter_api_key or "",
            url=cfg.openrouter_url,
            model=cfg.ai_model,
            timeout=cfg.title_timeout,
            max_length=cfg.title_max_length,
        )

    def build_prompt(self, content: str) -> str:
        """Pick the Q&A-aware prompt for chat transcripts."""
        template = QA_TITLE_PROMPT if is_qa_content(content) else TITLE_PROMPT
        return template.format(content=content)

    def generate(self, content: str) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": self.build_prompt(content)}],
            "max_tokens": 50,
            "temperature": 0.1,
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                f"Title request timed out after {self.timeout}s",
                code=ErrorCode.EXTERNAL_SERVICE_TIMEOUT,
                original_error=e,
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Title request failed: {e}", original_error=e)
        except ValueError as e:
            raise ExternalServiceError(
                f"Failed to parse title response: {e}", original_error=e
            )

        try:
            title = data["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ExternalServiceError(
                "Title response has no completion", original_error=e
            )
        if not title:
            raise ExternalServiceError("Title response was empty")
        if len(title) > self.max_length:
            raise ExternalServiceError(
                f"Generated title exceeds {self.max_length} characters"
            )
        return title


class TitleService:
    """Decides the title of a saved or updated note."""

    def __init__(self, generator: Optional[TitleGenerator] = None):
        """Initialize the service.

        Args:
            generator: Remote generator. If None, long content gets the
                deterministic title.
        """
        self.generator = generator or SimpleTitleGenerator()

    @classmethod
    def from_config(cls, cfg: Optional[MemoSpaceConfig] = None) -> "TitleService":
        """Use OpenRouter when enabled and an API key is configured."""
        cfg = cfg or default_config
        if cfg.title_generation_enabled and cfg.openrouter_api_key:
            logger.info(f"Title generation via {cfg.ai_model}")
            return cls(OpenRouterTitleGenerator.from_config(cfg))
        return cls()

    def resolve_title(self, content: str, custom_title: Optional[str] = None) -> str:
        """Pick the title for ``content``.

        A non-blank ``custom_title`` wins. Content longer than 20 characters
        is sent to the generator, falling back to the deterministic rule on
        any generator error. Short content becomes its own title.
        """
        if custom_title and custom_title.strip():
            return custom_title.strip()

        if len(content) > GENERATION_THRESHOLD:
            try:
                return self.generator.generate(content)
            except Exception as e:
                logger.warning(f"Title generation failed, using simple title: {e}")
                return derive_simple_title(content)

        return content.strip()
