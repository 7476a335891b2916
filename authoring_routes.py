"""
Authoring Wizard Routes - Flask Blueprint
=========================================

Thin JSON wrappers around authoring_wizard.py. Every route returns the
wizard render; on failure the error body also carries the render so the UI
can stay on the current step.

Routes:
    /wizard/start           - Open a wizard (mode: create | edit | delete)
    /wizard/subject         - Choose subject (loads sections)
    /wizard/section         - Choose existing section
    /wizard/section/new     - Create a section and choose it
    /wizard/section/edit    - Edit a section's name/title/description
    /wizard/game-type       - Choose game type (create flow)
    /wizard/level           - Choose level (edit/delete flows)
    /wizard/details         - Set level name/title/icon
    /wizard/stage           - Add a stage, or replace one with editing_index
    /wizard/stage/remove    - Remove a stage
    /wizard/save            - Persist the level
    /wizard/confirm-delete  - Delete the chosen level
    /wizard/back            - Go back one step
    /wizard/cancel          - Abort without writing
    /wizard/<wizard_id>     - Current render
"""

from flask import Blueprint, current_app, jsonify, request

import authoring_wizard
from level_errors import (
    AlreadyExists,
    LevelAuthoringError,
    NotFound,
    StoreError,
    StoreUnavailable,
    SubmitInProgress,
    ValidationFailed,
)
from level_store_supabase import get_level_store

wizard_bp = Blueprint('wizard', __name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_store():
    """The app's level store, created from the environment on first use."""
    store = current_app.config.get('LEVEL_STORE')
    if store is None:
        store = get_level_store()
        current_app.config['LEVEL_STORE'] = store
        print(f"Using level store: {type(store).__name__}")
    return store


def error_status(exc):
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, (AlreadyExists, SubmitInProgress)):
        return 409
    if isinstance(exc, StoreUnavailable):
        return 503
    if isinstance(exc, LevelAuthoringError):
        return 400
    return 500


def error_body(exc):
    body = {'error': str(exc), 'type': type(exc).__name__}
    if isinstance(exc, ValidationFailed):
        body['violations'] = exc.violations
    field = getattr(exc, 'field', None)
    if field:
        body['field'] = field
    return body


def _payload():
    data = request.get_json(silent=True)
    if not data:
        return None, None
    return data, data.get('wizard_id')


def _no_data():
    return jsonify({'error': 'No data provided'}), 400


@wizard_bp.errorhandler(LevelAuthoringError)
@wizard_bp.errorhandler(StoreError)
def wizard_error(exc):
    body = error_body(exc)
    data = request.get_json(silent=True) or {}
    wizard_id = data.get('wizard_id')
    if wizard_id in authoring_wizard._sessions:
        body['render'] = authoring_wizard.get_render(wizard_id)
    return jsonify(body), error_status(exc)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@wizard_bp.route('/start', methods=['POST'])
def wizard_start():
    data = request.get_json(silent=True) or {}
    render = authoring_wizard.start_wizard(get_store(), data.get('mode', 'create'))
    return jsonify(render)


@wizard_bp.route('/<wizard_id>', methods=['GET'])
def wizard_render(wizard_id):
    if wizard_id not in authoring_wizard._sessions:
        return jsonify({'error': 'Invalid wizard_id'}), 404
    return jsonify(authoring_wizard.get_render(wizard_id))


@wizard_bp.route('/subject', methods=['POST'])
def wizard_subject():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.choose_subject(wizard_id, data.get('subject')))


@wizard_bp.route('/section', methods=['POST'])
def wizard_section():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.choose_section(wizard_id, data.get('section_id')))


@wizard_bp.route('/section/new', methods=['POST'])
def wizard_new_section():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    render = authoring_wizard.create_section(
        wizard_id, data.get('name', ''), data.get('title', ''), data.get('description'))
    return jsonify(render)


@wizard_bp.route('/section/edit', methods=['POST'])
def wizard_edit_section():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    render = authoring_wizard.update_section(wizard_id, data.get('section_id'), data.get('fields', {}))
    return jsonify(render)


@wizard_bp.route('/game-type', methods=['POST'])
def wizard_game_type():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.choose_game_type(wizard_id, data.get('game_type')))


@wizard_bp.route('/level', methods=['POST'])
def wizard_level():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.choose_level(wizard_id, data.get('level_id')))


@wizard_bp.route('/details', methods=['POST'])
def wizard_details():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    render = authoring_wizard.set_details(
        wizard_id, name=data.get('name'), title=data.get('title'), icon=data.get('icon'))
    return jsonify(render)


@wizard_bp.route('/stage', methods=['POST'])
def wizard_stage():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    editing_index = data.get('editing_index')
    if editing_index is not None and (not isinstance(editing_index, int) or isinstance(editing_index, bool)):
        return jsonify({'error': "'editing_index' must be an integer"}), 400
    try:
        render = authoring_wizard.add_stage(
            wizard_id, data.get('stage'),
            stage_game_type=data.get('stage_game_type'),
            editing_index=editing_index)
    except IndexError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(render)


@wizard_bp.route('/stage/remove', methods=['POST'])
def wizard_remove_stage():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    index = data.get('index')
    if not isinstance(index, int):
        return jsonify({'error': "'index' must be an integer"}), 400
    try:
        return jsonify(authoring_wizard.remove_stage(wizard_id, index))
    except IndexError as e:
        return jsonify({'error': str(e)}), 400


@wizard_bp.route('/save', methods=['POST'])
def wizard_save():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.save(wizard_id))


@wizard_bp.route('/confirm-delete', methods=['POST'])
def wizard_confirm_delete():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.confirm_delete(wizard_id))


@wizard_bp.route('/back', methods=['POST'])
def wizard_back():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.back(wizard_id))


@wizard_bp.route('/cancel', methods=['POST'])
def wizard_cancel():
    data, wizard_id = _payload()
    if not data:
        return _no_data()
    return jsonify(authoring_wizard.cancel(wizard_id))
