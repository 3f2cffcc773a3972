"""
Drafting Agent (Template + User Details → Draft)
================================================

Purpose
-------
Generates a legal document draft from a template and free-form user details.

Flow
----
1) Resolve the template for (document type, language) from the configured
   repository: exact match on the normalized type first, then the closest
   template name in that language (difflib). No match is a `TemplateNotFound`.
2) Substitute ``key: value`` pairs found in the user details into matching
   ``[Placeholder]`` tokens.
3) Ask the model to fill the remaining placeholders and return only the
   document body.
4) Strip code fences, substitute the same placeholder values again, reject
   empty output.

Repositories
------------
- StaticTemplateCatalog : bundled ``docs_for_drafts/{Language}/{Document_Type}.txt``
- S3TemplateStore       : bucket ``BUCKET_NAME``, objects ``{Language}/{Document_Type}.{txt|docx|pdf}``
"""

import asyncio
import difflib
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from langchain_core.messages import HumanMessage

from lexease.api.aws_bucket_funcs.funcs import download, get_client, list_template_keys
from lexease.api.errors import GenerationFailure, TemplateNotFound, ValidationError
from lexease.api.file_ingestion import EXTENSION_MIME_TYPES, decode_text, extract_text, guess_ext
from lexease.api.llm_utilities import lc_text_from_content, strip_code_fences
from lexease.database.config.config import settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "docs_for_drafts"
TEMPLATE_EXTENSIONS = (".txt", ".docx", ".pdf")
FUZZY_CUTOFF = 0.6

PLACEHOLDER_PATTERN = re.compile(r"\[([^\[\]\n]{1,80})\]")
WORD_PATTERN = re.compile(r"[\w']+")

DRAFTING_PROMPT = """You are an expert legal drafting assistant.
Generate a formal legal document by completing the template below with the details provided by the user.

1. Keep the structure, headings and wording of the template.
2. Replace every placeholder in square brackets (e.g. [Full Name], [Date], [Address]) with the matching information from the user details.
3. Where the template asks for additional details, integrate the remaining user details there in a formal style.
4. Leave a placeholder unchanged only if the user details contain nothing for it. Do not invent facts.
5. Write the document in {language} only.

Document Type: {document_type}
Language: {language}

TEMPLATE:
---
{template}
---

USER DETAILS:
---
{user_inputs}
---

Return only the final document. Do not add any explanations, headers or conversational text."""


@dataclass
class DraftTemplate:
    """A template body with bracketed placeholders, and where it came from."""

    document_type: str
    language: str
    body: str
    source: str


def normalize_document_type(document_type: str) -> str:
    """'Simple Affidavit', 'simple_affidavit' and 'Simple-Affidavit ' all map to 'simple_affidavit'."""
    return "_".join(re.split(r"[\s_\-]+", document_type.strip().casefold())).strip("_")


def template_label(file_name: str) -> str:
    """Display name of a template file: 'English/Simple_Affidavit.txt' -> 'Simple Affidavit'."""
    return PurePosixPath(file_name).stem.replace("_", " ")


def resolve_template_name(document_type: str, language: str, names: list[str]) -> str:
    """
    Pick the template file for `document_type` among `names`.

    Exact match on the normalized type first, then the closest name
    (difflib ratio >= FUZZY_CUTOFF).

    Raises:
        TemplateNotFound: Nothing matches.
    """
    wanted = normalize_document_type(document_type)
    by_key = {}
    for name in names:
        by_key.setdefault(normalize_document_type(PurePosixPath(name).stem), name)

    if wanted in by_key:
        return by_key[wanted]

    close = difflib.get_close_matches(wanted, list(by_key), n=1, cutoff=FUZZY_CUTOFF)
    if close:
        logger.info("No exact template for '%s' (%s); using closest match %s", document_type, language, by_key[close[0]])
        return by_key[close[0]]
    raise TemplateNotFound(document_type, language)


def read_template_body(data: bytes, file_name: str) -> str:
    """Template text; .docx and .pdf bodies go through the file extractor."""
    ext = guess_ext(file_name)
    if ext == ".txt":
        return decode_text(data)
    return extract_text(data, EXTENSION_MIME_TYPES[ext])


class TemplateRepository(ABC):
    """Source of drafting templates."""

    @abstractmethod
    def list_templates(self, language: Optional[str] = None) -> list[str]:
        """Template display names, for one language or all."""

    @abstractmethod
    def get_template(self, document_type: str, language: str) -> DraftTemplate:
        """Resolve one template. Raises `TemplateNotFound`."""


class StaticTemplateCatalog(TemplateRepository):
    """Templates bundled with the package, one folder per language."""

    def __init__(self, root: Path | str = TEMPLATES_DIR):
        self.root = Path(root)

    def _language_dirs(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(path for path in self.root.iterdir() if path.is_dir())

    def _language_dir(self, language: str) -> Optional[Path]:
        for path in self._language_dirs():
            if path.name.casefold() == language.strip().casefold():
                return path
        return None

    def _files(self, language_dir: Path) -> list[Path]:
        return sorted(
            path for path in language_dir.iterdir() if path.is_file() and path.suffix.lower() in TEMPLATE_EXTENSIONS
        )

    def list_templates(self, language: Optional[str] = None) -> list[str]:
        if language:
            language_dir = self._language_dir(language)
            dirs = [language_dir] if language_dir is not None else []
        else:
            dirs = self._language_dirs()
        labels = {template_label(path.name) for language_dir in dirs for path in self._files(language_dir)}
        return sorted(labels)

    def get_template(self, document_type: str, language: str) -> DraftTemplate:
        language_dir = self._language_dir(language)
        if language_dir is None:
            raise TemplateNotFound(document_type, language)
        files = {path.name: path for path in self._files(language_dir)}
        name = resolve_template_name(document_type, language, list(files))
        body = read_template_body(files[name].read_bytes(), name)
        return DraftTemplate(
            document_type=template_label(name),
            language=language_dir.name,
            body=body,
            source=f"{language_dir.name}/{name}",
        )


class S3TemplateStore(TemplateRepository):
    """Templates stored in the S3 bucket `settings.BUCKET_NAME`."""

    def __init__(self, s3_client=None):
        self._s3_client = s3_client

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = get_client()
        return self._s3_client

    def _keys(self, language: Optional[str]) -> list[str]:
        keys = [key for key in list_template_keys(self.s3_client, language) if guess_ext(key) in TEMPLATE_EXTENSIONS]
        if keys or not language:
            return keys
        # prefixes are case-sensitive; retry on the full listing
        return [
            key
            for key in list_template_keys(self.s3_client)
            if guess_ext(key) in TEMPLATE_EXTENSIONS and PurePosixPath(key).parent.name.casefold() == language.casefold()
        ]

    def list_templates(self, language: Optional[str] = None) -> list[str]:
        try:
            keys = self._keys(language)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to list templates from bucket %s: %s", settings.BUCKET_NAME, e)
            return []
        return sorted({template_label(key) for key in keys})

    def get_template(self, document_type: str, language: str) -> DraftTemplate:
        try:
            keys = self._keys(language)
            by_name = {PurePosixPath(key).name: key for key in keys}
            name = resolve_template_name(document_type, language, list(by_name))
            body = read_template_body(download(by_name[name], self.s3_client), name)
        except (BotoCoreError, ClientError) as e:
            logger.error("Template lookup in bucket %s failed: %s", settings.BUCKET_NAME, e)
            raise GenerationFailure(f"Template storage unavailable: {e}") from e
        return DraftTemplate(
            document_type=template_label(name),
            language=language,
            body=body,
            source=by_name[name],
        )


def get_template_repository(source: str | None = None) -> TemplateRepository:
    """Repository for `source` ('static' or 's3'), defaulting to `settings.TEMPLATE_SOURCE`."""
    source = source or settings.TEMPLATE_SOURCE
    if source == "s3":
        return S3TemplateStore()
    if source == "static":
        return StaticTemplateCatalog()
    raise ValueError(f"Unknown template source: {source}")


def parse_user_inputs(user_inputs: str) -> dict[str, str]:
    """
    Collect ``key: value`` pairs from free-form details.

    Pairs are separated by commas, semicolons or newlines; a fragment without a
    colon continues the previous value ("Address: 12 MG Road, Pune").
    """
    pairs: dict[str, str] = {}
    last_key = None
    for chunk in re.split(r"[,;\n]+", user_inputs or ""):
        key, sep, value = chunk.partition(":")
        if sep and key.strip() and value.strip():
            last_key = key.strip()
            pairs[last_key] = value.strip()
        elif last_key is not None and chunk.strip():
            pairs[last_key] = f"{pairs[last_key]}, {chunk.strip()}"
    return pairs


def _words(text: str) -> list[str]:
    return WORD_PATTERN.findall(text.casefold())


def _names_someone_else(extra_words: set[str]) -> bool:
    # "Father's Name" is a different person's name than "Name"
    return any(word.endswith("'s") for word in extra_words)


def match_placeholder(key: str, placeholders: list[str]) -> Optional[str]:
    """
    Placeholder that a user-supplied key fills.

    Same words first; otherwise the placeholder containing all of the key's
    words with the fewest extra words, earliest in the template on ties
    ("Name" fills "[Full Name]"). A placeholder qualified by a possessive
    ("[Father's Name]") only matches a key that names it.
    """
    key_words = _words(key)
    if not key_words:
        return None
    for placeholder in placeholders:
        if _words(placeholder) == key_words:
            return placeholder

    wanted = set(key_words)
    candidates = []
    for placeholder in placeholders:
        words = set(_words(placeholder))
        if wanted <= words and not _names_someone_else(words - wanted):
            candidates.append(placeholder)
    if not candidates:
        return None
    return min(candidates, key=lambda placeholder: len(set(_words(placeholder)) - wanted))


def assign_placeholders(text: str, values: dict[str, str]) -> dict[str, str]:
    """
    Map the placeholders of `text` to the user-supplied values that fill them.

    Each placeholder takes at most one value and each key fills at most one
    placeholder.
    """
    placeholders = list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(text)))
    assigned: dict[str, str] = {}
    for key, value in values.items():
        target = match_placeholder(key, placeholders)
        if target is None:
            continue
        assigned[target] = value
        placeholders.remove(target)
    return assigned


def prefill_placeholders(text: str, assigned: dict[str, str]) -> str:
    """Replace every ``[placeholder]`` token of `assigned` with its value."""
    for placeholder, value in assigned.items():
        text = text.replace(f"[{placeholder}]", value)
    return text


async def draft_document(
    model, repository: TemplateRepository, document_type: str, language: str, user_inputs: str
) -> str:
    """
    Generate a draft for (document_type, language) filled with `user_inputs`.

    Raises:
        ValidationError: Missing document type, language or details.
        TemplateNotFound: No template resolves for the request.
        GenerationFailure: The model failed or produced nothing.
    """
    if not document_type or not document_type.strip():
        raise ValidationError("Document type is required.")
    if not language or not language.strip():
        raise ValidationError("Language is required.")
    if not user_inputs or not user_inputs.strip():
        raise ValidationError("Provide the details to fill into the document.")

    template = await asyncio.to_thread(repository.get_template, document_type, language)
    assigned = assign_placeholders(template.body, parse_user_inputs(user_inputs))
    prompt = DRAFTING_PROMPT.format(
        document_type=template.document_type,
        language=language.strip(),
        template=prefill_placeholders(template.body, assigned).strip(),
        user_inputs=user_inputs.strip(),
    )

    try:
        response = await model.ainvoke([HumanMessage(content=prompt)])
    except Exception as e:
        logger.error("Drafting '%s' (%s) failed: %s", document_type, language, e)
        raise GenerationFailure(str(e)) from e

    draft = prefill_placeholders(strip_code_fences(lc_text_from_content(response.content)), assigned)
    if not draft.strip():
        raise GenerationFailure("The model returned an empty draft.")
    logger.info("Drafted '%s' (%s) from %s", template.document_type, language, template.source)
    return draft
