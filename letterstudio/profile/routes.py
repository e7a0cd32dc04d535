from flask import current_app, jsonify

from ..letters.routes import failure_response, workspace_store
from ..services.placeholders import PersonalInfo
from ..services.storage import PERSONAL_INFO_KEY, load_json, save_json
from . import bp
from .forms import PersonalInfoForm


@bp.route("", methods=["GET"])
def show():
    info = PersonalInfo.from_mapping(load_json(workspace_store(), PERSONAL_INFO_KEY)) or PersonalInfo()
    return jsonify({"success": True, "personal_info": info.to_dict()})


@bp.route("", methods=["PUT"])
def update():
    form = PersonalInfoForm()
    if not form.validate_on_submit():
        field_name, messages = next(iter(form.errors.items()), ("request", ["Invalid personal information."]))
        return failure_response(f"{field_name}: {messages[0]}", "invalid_input")

    info = PersonalInfo(
        **{name: (getattr(form, name).data or "").strip() for name in PersonalInfo.field_names()}
    )
    save_json(workspace_store(), PERSONAL_INFO_KEY, info.to_dict())
    current_app.logger.info("Personal information updated for the current workspace.")
    return jsonify({"success": True, "personal_info": info.to_dict()})
