import asyncio
import json
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from letterstudio.services import editing
from letterstudio.services.document import LetterDocument
from letterstudio.services.errors import (
    BackendError,
    BackendUnavailableError,
    EmptyVariationListError,
    GenerationFailedError,
    PlaceholderNotFoundError,
)
from letterstudio.services.generation import GenerationBackend
from letterstudio.services.placeholders import PersonalInfo


class DummyBackend(GenerationBackend):
    name = "dummy"

    def __init__(self, *replies, error=None):
        self.replies = list(replies)
        self.error = error
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


@pytest.fixture
def document():
    return LetterDocument(
        "Dear Hiring Manager,\n\n"
        "I am applying for the [position] role at your company.\n\n"
        "Sincerely,\n[your name]"
    )


def test_parse_variations_reads_json_in_code_fence():
    raw = "```json\n[\"One.\", \"Two.\", \"Three.\", \"Four.\"]\n```"

    assert editing.parse_variations(raw) == ["One.", "Two.", "Three."]


def test_parse_variations_reads_numbered_lines():
    raw = "1. First option.\n2) Second option.\n- Third option."

    assert editing.parse_variations(raw) == ["First option.", "Second option.", "Third option."]


def test_parse_variations_single_answer_and_empty_array():
    assert editing.parse_variations("Just one rewrite.") == ["Just one rewrite."]
    assert editing.parse_variations("Kind regards,\n[your name]") == ["Kind regards,\n[your name]"]
    assert editing.parse_variations("[]") == []


def test_rewrite_tone_records_three_variations(document):
    backend = DummyBackend(json.dumps(["Formal A.", "Formal B by John Doe.", "Formal C."]))

    variations = asyncio.run(editing.rewrite_paragraph_tone(document, 1, "formal", backend))

    assert variations == ["Formal A.", "Formal B by [your name].", "Formal C."]
    assert document.paragraph(1) == "Formal A."
    assert document.variations.count(1) == 3
    assert "formal" in backend.prompts[0]


def test_rewrite_tone_with_no_candidates_keeps_paragraph(document):
    original = document.paragraph(1)

    with pytest.raises(EmptyVariationListError):
        asyncio.run(editing.rewrite_paragraph_tone(document, 1, "warm", DummyBackend("[]")))

    assert document.paragraph(1) == original
    assert not document.variations.has_variations(1)


def test_shorten_substitutes_personal_info_and_keeps_placeholders(document):
    document.replace_paragraph(1, "Reach me at [your email] about the [position] opening.")
    backend = DummyBackend("Email a@b.com about [Position].")

    result = asyncio.run(
        editing.shorten_paragraph(
            document,
            1,
            backend,
            personal_info=PersonalInfo(email="a@b.com"),
        )
    )

    assert result == "Email a@b.com about [position]."
    assert "a@b.com" in backend.prompts[0]
    assert not document.variations.has_variations(1)


def test_shorten_failure_leaves_paragraph(document):
    original = document.paragraph(1)
    backend = DummyBackend("I am applying for the analyst role.")

    with pytest.raises(GenerationFailedError):
        asyncio.run(editing.shorten_paragraph(document, 1, backend))

    assert document.paragraph(1) == original


def test_complete_paragraph_replaces_text_and_clears_variations(document):
    document.variations.record(0, ["Hello,", "Hi,"])

    asyncio.run(editing.complete_paragraph(document, 0, DummyBackend("Dear Ms. Smith,")))

    assert document.paragraph(0) == "Dear Ms. Smith,"
    assert document.variations.count(0) == 1


def test_autocomplete_placeholder_date_needs_no_backend(document):
    document.replace_paragraph(0, "Paris, [date]")
    backend = DummyBackend()

    asyncio.run(editing.autocomplete_placeholder(document, 0, "[date]", backend, language="fr"))

    assert document.paragraph(0) == "Paris, " + date.today().strftime("%d/%m/%Y")
    assert backend.prompts == []


def test_autocomplete_placeholder_missing_raises(document):
    with pytest.raises(PlaceholderNotFoundError):
        asyncio.run(editing.autocomplete_placeholder(document, 0, "[nothing]", DummyBackend("x")))


def test_generate_letter_records_history():
    document = LetterDocument()
    letter = "**Motivation Letter for Example Corp**\n\nI am writing to apply to Example Corp for the role."

    entry = asyncio.run(
        editing.generate_letter(document, DummyBackend(letter), destination="Example Corp", goal="Apply")
    )

    assert document.paragraph(0) == "Motivation Letter for Example Corp"
    assert entry.title == "Motivation Letter for Example"
    assert document.history.entries()[0].id == entry.id


def test_run_operation_maps_unavailable_backend():
    async def failing():
        raise BackendUnavailableError("The selected AI model (claude) is not available.", provider="claude")

    result = asyncio.run(editing.run_operation(failing()))

    assert result.success is False
    assert result.kind == "backend_unavailable"
    assert "Configure an API key" in result.reason
    assert result.to_dict()["failed"] is True


def test_run_operation_maps_generation_failure(document):
    backend = DummyBackend(error=BackendError("quota", kind="rate_limit", provider="dummy"))

    result = asyncio.run(editing.run_operation(editing.complete_paragraph(document, 1, backend)))

    assert result.kind == "generation_failed"
    assert result.reason.startswith("The AI request failed")


def test_run_operation_success_payload():
    async def succeeding():
        return {"paragraph": "done"}

    result = asyncio.run(editing.run_operation(succeeding()))

    assert result.to_dict() == {"success": True, "paragraph": "done"}
