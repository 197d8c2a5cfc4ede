"""Utility functions for the MemoSpace MCP server."""

QA_PREFIX = "Q:"
QA_ANSWER_MARKER = "\n\nA:"

# Limits of the deterministic title rule
QA_TITLE_MAX = 50
FIRST_LINE_MAX = 60
TRUNCATE_AT = 50
MIN_WORD_BREAK = 30
ELLIPSIS = "..."


def is_qa_content(content: str) -> bool:
    """True for chat transcripts saved as ``Q: ...\\n\\nA: ...``."""
    return content.startswith(QA_PREFIX) and QA_ANSWER_MARKER in content


def derive_simple_title(content: str) -> str:
    """Derive a short title from note content without any remote call.

    Rules, applied to the trimmed content in order:
    1. Q&A transcripts use the question, cut to 47 chars + "..." past 50.
    2. A first line of at most 60 chars (not itself a question) is used as-is.
    3. Content of at most 50 chars is used verbatim; longer content is cut
       at the last space before char 50 when that space is past char 30,
       otherwise hard-cut at 50, and "..." is appended.

    Examples:
        "Q: How do I center a div?\\n\\nA: Use flexbox" -> "How do I center a div?"
        "Shopping list\\n- milk" -> "Shopping list"

    Args:
        content: Raw note content.

    Returns:
        A title of at most 60 characters (53 for truncated content).
    """
    content = content.strip()

    if is_qa_content(content):
        question_end = content.find(QA_ANSWER_MARKER)
        question = content[len(QA_PREFIX):question_end].strip()
        if len(question) <= QA_TITLE_MAX:
            return question
        return question[: QA_TITLE_MAX - len(ELLIPSIS)] + ELLIPSIS

    # Only "\n" and "\r\n" end a line
    first_line = content.split("\n", 1)[0].rstrip("\r").strip()
    if first_line and len(first_line) <= FIRST_LINE_MAX and not first_line.startswith(QA_PREFIX):
        return first_line

    if len(content) <= TRUNCATE_AT:
        return content

    truncated = content[:TRUNCATE_AT]
    last_space = truncated.rfind(" ")
    if last_space > MIN_WORD_BREAK:
        return truncated[:last_space] + ELLIPSIS
    return truncated + ELLIPSIS
