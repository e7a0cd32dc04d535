from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from flask import current_app, jsonify, session
from flask_wtf import FlaskForm

from ..services.document import LetterDocument
from ..services.editing import (
    OperationResult,
    apply_paragraph,
    apply_placeholder,
    apply_variations,
    propose_concise_paragraph,
    propose_letter,
    propose_paragraph_completion,
    propose_tone_variations,
    run_operation,
)
from ..services.errors import PlaceholderNotFoundError
from ..services.generation import get_generation_backend
from ..services.history import HistoryRecorder
from ..services.placeholders import PersonalInfo, resolve_placeholder
from ..services.storage import (
    LETTER_DOCUMENT_KEY,
    PERSONAL_INFO_KEY,
    DatabaseStore,
    load_json,
    save_json,
)
from . import bp
from .forms import (
    GenerateLetterForm,
    LetterContentForm,
    ManualPlaceholderForm,
    ParagraphActionForm,
    ParagraphEditForm,
    PlaceholderForm,
    ToneRewriteForm,
)

WORKSPACE_SESSION_KEY = "workspace_id"

# Failures that are not listed answer with 400.
STATUS_BY_KIND = {
    "index_out_of_range": 404,
    "generation_failed": 502,
    "empty_variation_list": 502,
}


def workspace_store() -> DatabaseStore:
    workspace_id = session.get(WORKSPACE_SESSION_KEY)
    if not workspace_id:
        workspace_id = uuid.uuid4().hex
        session[WORKSPACE_SESSION_KEY] = workspace_id
    return DatabaseStore(workspace_id)


def _load_document(store: DatabaseStore) -> LetterDocument:
    history = HistoryRecorder(store, limit=current_app.config.get("LETTER_HISTORY_LIMIT", 10))
    return LetterDocument.from_state(load_json(store, LETTER_DOCUMENT_KEY), history=history)


def _save_document(store: DatabaseStore, document: LetterDocument) -> None:
    save_json(store, LETTER_DOCUMENT_KEY, document.to_state())


def _personal_info(store: DatabaseStore) -> Optional[PersonalInfo]:
    return PersonalInfo.from_mapping(load_json(store, PERSONAL_INFO_KEY))


def _paragraph_payload(document: LetterDocument, index: int) -> Dict[str, Any]:
    return {
        "index": index,
        "paragraph": document.paragraph(index),
        "has_variations": document.variations.has_variations(index),
        "current_variation": document.variations.current_index(index),
        "variation_count": document.variations.count(index),
    }


def _letter_payload(document: LetterDocument) -> Dict[str, Any]:
    return {"content": document.content, "paragraphs": document.variation_summary()}


def failure_response(reason: str, kind: str, status: int = 400):
    return jsonify(OperationResult(success=False, reason=reason, kind=kind).to_dict()), status


def _invalid_form(form: FlaskForm):
    for field_name, messages in form.errors.items():
        if messages:
            return failure_response(f"{field_name}: {messages[0]}", "invalid_input")
    return failure_response("The request could not be validated.", "invalid_input")


def _respond(result: OperationResult):
    if result.success:
        return jsonify(result.to_dict())
    status = STATUS_BY_KIND.get(result.kind or "", 400)
    current_app.logger.info("Letter operation failed (%s): %s", result.kind, result.reason)
    return jsonify(result.to_dict()), status


@bp.route("/", methods=["GET"])
def show():
    document = _load_document(workspace_store())
    return jsonify({"success": True, **_letter_payload(document)})


@bp.route("/generate", methods=["POST"])
async def generate():
    form = GenerateLetterForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        backend = get_generation_backend(form.model.data)
        letter = await propose_letter(
            destination=form.destination.data.strip(),
            goal=form.goal.data.strip(),
            language=form.language.data,
            additional_info=(form.additional_info.data or "").strip(),
            backend=backend,
        )
        document = _load_document(store)
        entry = document.set_content(letter, record_history=True)
        _save_document(store, document)
        return {**_letter_payload(document), "history_entry": entry.to_dict() if entry else None}

    return _respond(await run_operation(operation()))


@bp.route("/content", methods=["PUT"])
async def update_content():
    form = LetterContentForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        document = _load_document(store)
        entry = document.set_content(form.content.data or "", record_history=bool(form.record_history.data))
        _save_document(store, document)
        return {**_letter_payload(document), "history_entry": entry.to_dict() if entry else None}

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>", methods=["PUT"])
async def edit_paragraph(index: int):
    form = ParagraphEditForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        document = _load_document(store)
        document.replace_paragraph(index, form.text.data)
        _save_document(store, document)
        return _paragraph_payload(document, index)

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>/placeholder", methods=["POST"])
async def fill_placeholder(index: int):
    form = ManualPlaceholderForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()
    placeholder = form.placeholder.data

    async def operation():
        document = _load_document(store)
        if placeholder not in document.paragraph(index):
            raise PlaceholderNotFoundError(placeholder, index)
        apply_placeholder(document, index, placeholder, form.value.data)
        _save_document(store, document)
        return _paragraph_payload(document, index)

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>/rewrite", methods=["POST"])
async def rewrite(index: int):
    form = ToneRewriteForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        paragraph = _load_document(store).paragraph(index)
        backend = get_generation_backend(form.model.data)
        variations = await propose_tone_variations(
            paragraph, form.tone.data.strip(), form.language.data, backend
        )
        # Reload so edits made to other paragraphs during the call survive.
        document = _load_document(store)
        apply_variations(document, index, variations)
        _save_document(store, document)
        return {**_paragraph_payload(document, index), "variations": variations}

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>/shorten", methods=["POST"])
async def shorten(index: int):
    form = ParagraphActionForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        paragraph = _load_document(store).paragraph(index)
        backend = get_generation_backend(form.model.data)
        concise = await propose_concise_paragraph(
            paragraph,
            form.language.data,
            backend,
            personal_info=_personal_info(store),
        )
        document = _load_document(store)
        apply_paragraph(document, index, concise)
        _save_document(store, document)
        return _paragraph_payload(document, index)

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>/complete", methods=["POST"])
async def complete(index: int):
    form = ParagraphActionForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()

    async def operation():
        paragraph = _load_document(store).paragraph(index)
        backend = get_generation_backend(form.model.data)
        completion = await propose_paragraph_completion(paragraph, form.language.data, backend)
        document = _load_document(store)
        apply_paragraph(document, index, completion)
        _save_document(store, document)
        return _paragraph_payload(document, index)

    return _respond(await run_operation(operation()))


@bp.route("/paragraphs/<int:index>/autocomplete", methods=["POST"])
async def autocomplete(index: int):
    form = PlaceholderForm()
    if not form.validate_on_submit():
        return _invalid_form(form)

    store = workspace_store()
    placeholder = form.placeholder.data

    async def operation():
        paragraph = _load_document(store).paragraph(index)
        if placeholder not in paragraph:
            raise PlaceholderNotFoundError(placeholder, index)
        backend = get_generation_backend(form.model.data)
        completion = await resolve_placeholder(
            paragraph,
            placeholder,
            form.language.data,
            _personal_info(store),
            backend,
        )
        document = _load_document(store)
        if placeholder not in document.paragraph(index):
            raise PlaceholderNotFoundError(placeholder, index)
        apply_placeholder(document, index, placeholder, completion)
        _save_document(store, document)
        return {**_paragraph_payload(document, index), "completion": completion}

    return _respond(await run_operation(operation()))


def _cycle(index: int, forward: bool):
    store = workspace_store()

    async def operation():
        document = _load_document(store)
        document.paragraph(index)
        step = document.variations.next if forward else document.variations.previous
        changed = step(index)
        if changed:
            _save_document(store, document)
        return {**_paragraph_payload(document, index), "changed": changed}

    return operation()


@bp.route("/paragraphs/<int:index>/next", methods=["POST"])
async def next_variation(index: int):
    return _respond(await run_operation(_cycle(index, forward=True)))


@bp.route("/paragraphs/<int:index>/previous", methods=["POST"])
async def previous_variation(index: int):
    return _respond(await run_operation(_cycle(index, forward=False)))


@bp.route("/history", methods=["GET"])
def history():
    document = _load_document(workspace_store())
    return jsonify({"success": True, "entries": [entry.to_dict() for entry in document.history.entries()]})


@bp.route("/history/<int:entry_id>/load", methods=["POST"])
def load_history_entry(entry_id: int):
    store = workspace_store()
    document = _load_document(store)
    loaded = document.load_from_history(entry_id)
    if loaded:
        _save_document(store, document)
    return jsonify({"success": True, "loaded": loaded, **_letter_payload(document)})


@bp.route("/history/<int:entry_id>", methods=["DELETE"])
def delete_history_entry(entry_id: int):
    document = _load_document(workspace_store())
    removed = document.remove_history_entry(entry_id)
    return jsonify(
        {
            "success": True,
            "removed": removed,
            "entries": [entry.to_dict() for entry in document.history.entries()],
        }
    )
