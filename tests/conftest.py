"""Pytest configuration and shared fixtures."""

import os
import re
import tempfile
from pathlib import Path

# Settings are read once at import time, so the test database must be chosen
# before anything from `lexease` is imported.
_DB_DIR = tempfile.mkdtemp(prefix="lexease-tests-")
os.environ["DB_DRIVER_NAME"] = "sqlite"
os.environ["DB_DATABASE_NAME"] = str(Path(_DB_DIR) / "lexease-test.db")
os.environ["API_KEY"] = "test-key"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["TEMPLATE_SOURCE"] = "static"
os.environ["INIT_MODE"] = "runtime"

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from lexease.api.drafting_agent import StaticTemplateCatalog
from lexease.api.fast_api import init_app_state
from lexease.api.llm_utilities import lc_text_from_content
from lexease.api.utils import create_access_token
from lexease.database.config.connection_engine import connection_engine, create_tables, metadata

SUMMARY_MARKER = "plainLanguageSummary"
ENTITIES_MARKER = '{"entities": ['
RISKS_MARKER = "riskyClauses"
DRAFT_MARKER = "TEMPLATE:"

CONTRACT_TEXT = "Party A shall pay Party B $500 within 30 days."

SUMMARY_REPLY = '{"plainLanguageSummary": "Party A has to pay Party B $500 within 30 days."}'
ENTITIES_REPLY = """```json
{"entities": [
  {"type": "Party", "value": "Party A"},
  {"type": "Party", "value": "Party B"},
  {"type": "Monetary Amount", "value": "$500"},
  {"type": "Duration", "value": "30 days"}
]}
```"""
RISKS_REPLY = '{"riskyClauses": ["No consequence is stated for late payment."]}'


def echo_template(prompt: str) -> str:
    """Reply with the template section of a drafting prompt, as a lazy model would."""
    match = re.search(r"TEMPLATE:\n---\n(.*?)\n---", prompt, re.DOTALL)
    return match.group(1) if match else ""


class ScriptedChatModel:
    """Stands in for `ChatOpenAI`: picks a reply by looking for a marker in the prompt.

    A reply may be a string, a callable receiving the prompt text, or an
    exception to raise. Every call is recorded.
    """

    def __init__(self, replies: dict | None = None, default: str = "A scripted answer."):
        self.replies = dict(replies or {})
        self.default = default
        self.calls: list[list] = []
        self.prompts: list[str] = []

    async def ainvoke(self, messages, **kwargs):
        prompt = "\n".join(lc_text_from_content(message.content) for message in messages)
        self.calls.append(messages)
        self.prompts.append(prompt)
        for marker, reply in self.replies.items():
            if marker in prompt:
                if isinstance(reply, BaseException):
                    raise reply
                if callable(reply):
                    reply = reply(prompt)
                return AIMessage(content=reply)
        return AIMessage(content=self.default)


def make_pdf(*page_texts: str) -> bytes:
    """Build a minimal PDF with one Helvetica text line per page."""
    count = len(page_texts)
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(count))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {count} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, text in enumerate(page_texts):
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode()
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {5 + 2 * i} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


@pytest.fixture
def pdf_factory():
    """Return the minimal PDF builder."""
    return make_pdf


@pytest.fixture
def scripted_model() -> ScriptedChatModel:
    """Chat model answering the three analysis stages and echoing drafting templates."""
    return ScriptedChatModel(
        {
            SUMMARY_MARKER: SUMMARY_REPLY,
            ENTITIES_MARKER: ENTITIES_REPLY,
            RISKS_MARKER: RISKS_REPLY,
            DRAFT_MARKER: echo_template,
        }
    )


@pytest.fixture
def db():
    """Fresh schema in the SQLite test database."""
    create_tables()
    yield
    metadata.drop_all(connection_engine)


@pytest.fixture
def auth_cookie() -> dict:
    """Cookie of an authenticated user `user-1`."""
    return {"token": create_access_token({"sub": "user-1"})}


@pytest.fixture
def client(db, scripted_model, auth_cookie):
    """TestClient for the app, wired to the scripted model and the bundled templates."""
    from lexease.main import app

    init_app_state(app.state, model=scripted_model, template_repository=StaticTemplateCatalog())
    with TestClient(app) as test_client:
        for name, value in auth_cookie.items():
            test_client.cookies.set(name, value)
        yield test_client
