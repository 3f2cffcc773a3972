"""Tests for template resolution and drafting."""

import asyncio
import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from conftest import DRAFT_MARKER, ScriptedChatModel, echo_template
from lexease.api.drafting_agent import (
    S3TemplateStore,
    StaticTemplateCatalog,
    assign_placeholders,
    draft_document,
    get_template_repository,
    match_placeholder,
    normalize_document_type,
    parse_user_inputs,
    prefill_placeholders,
)
from lexease.api.errors import GenerationFailure, TemplateNotFound, ValidationError
from lexease.database.config.config import settings


@pytest.fixture
def catalog() -> StaticTemplateCatalog:
    return StaticTemplateCatalog()


def test_parse_user_inputs():
    assert parse_user_inputs("Name: Jane Doe, Age: 30") == {"Name": "Jane Doe", "Age": "30"}
    assert parse_user_inputs("Address: 12 MG Road, Pune; City: Pune") == {"Address": "12 MG Road, Pune", "City": "Pune"}
    assert parse_user_inputs("I need an affidavit for my bank") == {}


def test_placeholder_matching_prefers_fewest_extra_words():
    placeholders = ["City", "Full Name", "Father's Name", "Age", "Full Address"]
    assert match_placeholder("Name", placeholders) == "Full Name"
    assert match_placeholder("father's name", placeholders) == "Father's Name"
    assert match_placeholder("address", placeholders) == "Full Address"
    assert match_placeholder("Occupation", placeholders) is None


def test_name_never_fills_another_persons_placeholder():
    assert match_placeholder("Name", ["Father's Name", "Age"]) is None
    assert assign_placeholders("[Full Name], child of [Father's Name]", {"Name": "Jane Doe"}) == {
        "Full Name": "Jane Doe"
    }


def test_prefill_replaces_every_occurrence():
    text = "I, [Full Name], aged [Age]. Signed: [Full Name]"
    assigned = assign_placeholders(text, {"Name": "Jane Doe", "Age": "30"})
    assert prefill_placeholders(text, assigned) == "I, Jane Doe, aged 30. Signed: Jane Doe"


def test_normalize_document_type():
    assert normalize_document_type(" Simple  Affidavit ") == "simple_affidavit"
    assert normalize_document_type("Mutual-NDA") == "mutual_nda"


def test_catalog_lists_templates(catalog):
    assert catalog.list_templates("English") == ["Agreement", "Bail Application", "Mutual NDA", "Simple Affidavit"]
    assert catalog.list_templates("hindi") == ["Simple Affidavit"]
    assert catalog.list_templates("Klingon") == []
    assert "Mutual NDA" in catalog.list_templates()


def test_catalog_resolves_exact_then_closest(catalog):
    assert catalog.get_template("simple affidavit", "english").source == "English/Simple_Affidavit.txt"
    assert catalog.get_template("Affidavit", "English").document_type == "Simple Affidavit"
    assert "[Full Name]" in catalog.get_template("Simple Affidavit", "Hindi").body


@pytest.mark.parametrize(
    "document_type, language",
    [("Sale Deed", "English"), ("Simple Affidavit", "Klingon")],
)
def test_catalog_unknown_template(catalog, document_type, language):
    with pytest.raises(TemplateNotFound) as exc_info:
        catalog.get_template(document_type, language)
    assert exc_info.value.code == "template_not_found"


def test_affidavit_draft_contains_supplied_values(catalog):
    model = ScriptedChatModel({DRAFT_MARKER: echo_template})
    draft = asyncio.run(draft_document(model, catalog, "Simple Affidavit", "English", "Name: Jane Doe, Age: 30"))

    assert "Jane Doe" in draft
    assert "[Full Name]" not in draft
    assert "aged 30 years" in draft
    assert "AFFIDAVIT" in draft


def test_unsupplied_placeholders_survive_both_passes(catalog):
    model = ScriptedChatModel({DRAFT_MARKER: echo_template})
    draft = asyncio.run(draft_document(model, catalog, "Simple Affidavit", "English", "Name: Jane Doe, Age: 30"))

    assert "I, Jane Doe, son/daughter of [Father's Name], aged 30 years" in draft
    assert draft.count("Jane Doe") == 1


def test_output_pass_only_replaces_tokens_filled_before_the_model_call(catalog):
    model = ScriptedChatModel({DRAFT_MARKER: "I, [Full Name], son/daughter of [Father's Name]."})
    draft = asyncio.run(draft_document(model, catalog, "Simple Affidavit", "English", "Name: Jane Doe"))
    assert draft == "I, Jane Doe, son/daughter of [Father's Name]."


def test_known_values_are_substituted_into_the_model_output(catalog):
    model = ScriptedChatModel({DRAFT_MARKER: "```\nAFFIDAVIT\nI, [Full Name], aged [Age] years.\n```"})
    draft = asyncio.run(draft_document(model, catalog, "Simple Affidavit", "English", "Name: Jane Doe, Age: 30"))
    assert draft == "AFFIDAVIT\nI, Jane Doe, aged 30 years."


def test_prompt_carries_template_and_details(catalog):
    model = ScriptedChatModel({DRAFT_MARKER: echo_template})
    asyncio.run(draft_document(model, catalog, "Mutual NDA", "English", "Party A Name: Acme Ltd, Term: two years"))

    prompt = model.prompts[0]
    assert "MUTUAL NON-DISCLOSURE AGREEMENT" in prompt
    assert "Acme Ltd" in prompt
    assert "Write the document in English only." in prompt


def test_template_not_found_is_not_a_generation_failure(catalog):
    model = ScriptedChatModel()
    with pytest.raises(TemplateNotFound):
        asyncio.run(draft_document(model, catalog, "Sale Deed", "English", "Buyer: Jane Doe"))
    assert model.calls == []


@pytest.mark.parametrize("reply", ["", "```\n\n```", RuntimeError("quota exceeded")])
def test_unusable_model_output_is_a_generation_failure(catalog, reply):
    model = ScriptedChatModel({DRAFT_MARKER: reply})
    with pytest.raises(GenerationFailure):
        asyncio.run(draft_document(model, catalog, "Simple Affidavit", "English", "Name: Jane Doe"))


@pytest.mark.parametrize(
    "document_type, language, user_inputs",
    [("", "English", "Name: Jane"), ("Simple Affidavit", " ", "Name: Jane"), ("Simple Affidavit", "English", "")],
)
def test_missing_request_fields(catalog, document_type, language, user_inputs):
    with pytest.raises(ValidationError):
        asyncio.run(draft_document(ScriptedChatModel(), catalog, document_type, language, user_inputs))


def s3_listing(*keys: str, truncated: bool = False, token: str | None = None) -> dict:
    response = {"Contents": [{"Key": key} for key in keys], "IsTruncated": truncated}
    if token:
        response["NextContinuationToken"] = token
    return response


def test_s3_store_resolves_and_downloads():
    s3_client = MagicMock()
    s3_client.list_objects_v2.return_value = s3_listing(
        "English/", "English/Simple_Affidavit.txt", "English/Mutual_NDA.txt", "English/notes.json"
    )
    s3_client.get_object.return_value = {"Body": io.BytesIO("I, [Full Name], aged [Age].".encode("utf-8"))}

    template = S3TemplateStore(s3_client).get_template("Simple Affidavit", "English")

    assert template.body == "I, [Full Name], aged [Age]."
    assert template.source == "English/Simple_Affidavit.txt"
    s3_client.list_objects_v2.assert_called_once_with(Bucket=settings.BUCKET_NAME, Prefix="English/")
    s3_client.get_object.assert_called_once_with(Bucket=settings.BUCKET_NAME, Key="English/Simple_Affidavit.txt")


def test_s3_store_follows_pagination():
    s3_client = MagicMock()
    s3_client.list_objects_v2.side_effect = [
        s3_listing("English/Agreement.txt", truncated=True, token="next"),
        s3_listing("English/Simple_Affidavit.txt"),
    ]
    assert S3TemplateStore(s3_client).list_templates("English") == ["Agreement", "Simple Affidavit"]
    assert s3_client.list_objects_v2.call_args_list[1].kwargs["ContinuationToken"] == "next"


def test_s3_store_unknown_template():
    s3_client = MagicMock()
    s3_client.list_objects_v2.return_value = s3_listing("English/Mutual_NDA.txt")
    with pytest.raises(TemplateNotFound):
        S3TemplateStore(s3_client).get_template("Bail Application", "English")
    s3_client.get_object.assert_not_called()


def test_s3_listing_errors_give_an_empty_list():
    s3_client = MagicMock()
    s3_client.list_objects_v2.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "ListObjectsV2"
    )
    assert S3TemplateStore(s3_client).list_templates("English") == []


def test_repository_selection():
    assert isinstance(get_template_repository("static"), StaticTemplateCatalog)
    assert isinstance(get_template_repository("s3"), S3TemplateStore)
    with pytest.raises(ValueError):
        get_template_repository("gcs")
