"""
Question answering over one document, and general legal questions.

Each call is a single, stateless model request. The Q&A log kept per document
is persisted by the router; nothing here remembers earlier turns.
"""

import logging

from langchain_core.messages import HumanMessage

from lexease.api.errors import GenerationFailure, ValidationError
from lexease.api.llm_utilities import build_document_messages, lc_text_from_content

logger = logging.getLogger(__name__)

DOCUMENT_QA_PROMPT = """You are an AI assistant specialized in answering questions about legal documents.
Answer the user's question using only the content of the legal document below.
If the document does not contain the answer, say so plainly instead of guessing."""

GENERAL_QA_PROMPT = """You are "Lexy", an AI legal assistant. Give accurate, well-structured answers to legal questions.

- Explain the relevant rules clearly and precisely, citing statutes and cases where you are confident of them.
- Use an issue / rule / application / conclusion structure where it helps.
- If the question needs advice you cannot give, say that you are an AI assistant and recommend consulting a qualified lawyer.

Question:
{question}"""


def _check_question(question: str) -> str:
    if not question or not question.strip():
        raise ValidationError("Question must not be empty.")
    return question.strip()


def _answer_text(response) -> str:
    answer = lc_text_from_content(getattr(response, "content", response)).strip()
    if not answer:
        raise GenerationFailure("The model returned an empty answer.")
    return answer


async def answer_question(model, document_text: str, question: str) -> str:
    """
    Answer a question about one document.

    Args:
        model: LangChain chat model (anything with ``ainvoke``).
        document_text (str): Extracted text, or a data URI for binary content.
        question (str): The user question.

    Returns:
        str: The answer.

    Raises:
        ValidationError: Empty question or empty document.
        GenerationFailure: The model call failed or returned nothing.
    """
    question = _check_question(question)
    if not document_text or not document_text.strip():
        raise ValidationError("Document text is empty; nothing to answer from.")

    messages = build_document_messages(DOCUMENT_QA_PROMPT, document_text, trailer=f"Question:\n{question}\n\nAnswer:")
    try:
        response = await model.ainvoke(messages)
    except Exception as e:
        logger.error("Document Q&A failed: %s", e)
        raise GenerationFailure(str(e)) from e
    return _answer_text(response)


async def answer_general_question(model, question: str) -> str:
    """General legal Q&A, not tied to any document."""
    question = _check_question(question)
    try:
        response = await model.ainvoke([HumanMessage(content=GENERAL_QA_PROMPT.format(question=question))])
    except Exception as e:
        logger.error("General legal Q&A failed: %s", e)
        raise GenerationFailure(str(e)) from e
    return _answer_text(response)
