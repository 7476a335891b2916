#!/usr/bin/env python3
"""
Level Authoring Server
======================

JSON API for authoring game levels: subjects, sections and levels CRUD,
the game type catalog, stage validation, and the step-by-step authoring
wizard (registered under /wizard).

Usage:
    python level_server.py

Configuration comes from the environment / .env:
    LEVEL_STORE       supabase (default) or local
    LEVEL_STORE_PATH  directory for the local store (default: levels_data)
    SUPABASE_URL, SUPABASE_ANON_KEY
    PORT              default 8080
"""

import os
import traceback

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

import level_builder
from authoring_routes import error_body, error_status, get_store, wizard_bp
from game_catalog import catalog_summary, check_subject
from level_errors import LevelAuthoringError, MissingRequiredField, NotFound, StoreError
from validate_stage import run_checks

app = Flask(__name__)

# Register wizard Blueprint (all /wizard/* routes)
app.register_blueprint(wizard_bp, url_prefix='/wizard')


@app.errorhandler(LevelAuthoringError)
def handle_authoring_error(e):
    return jsonify(error_body(e)), error_status(e)


@app.errorhandler(StoreError)
def handle_store_error(e):
    print(f"[Store] {type(e).__name__}: {e}")
    return jsonify(error_body(e)), error_status(e)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    traceback.print_exc()
    return jsonify({'error': str(e)}), 500


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) and data else None


def _no_data():
    return jsonify({'error': 'No data provided'}), 400


@app.route('/')
def index():
    return jsonify({'message': 'Level authoring server running'})


@app.route('/status')
def status():
    """Return server status including storage backend type."""
    store = get_store()
    store_type = type(store).__name__
    is_supabase = store_type == 'LevelStoreSupabase'

    return jsonify({
        'storage_backend': 'supabase' if is_supabase else 'local',
        'store_type': store_type,
        'connected': True
    })


# ===================================
# Catalog & validation
# ===================================

@app.route('/catalog', methods=['GET'])
def catalog():
    return jsonify(catalog_summary())


@app.route('/catalog/<subject>', methods=['GET'])
def subject_catalog(subject):
    return jsonify(catalog_summary(subject))


@app.route('/validate-stage', methods=['POST'])
def validate_stage():
    """Check one stage without saving anything."""
    data = _json_body()
    if not data:
        return _no_data()

    normalized, violations = run_checks(
        data.get('subject'), data.get('gameType'), data.get('stage'), data.get('stageGameType'))
    return jsonify({
        'valid': not violations,
        'violations': violations,
        'stage': normalized if not violations else None,
    })


# ===================================
# Subjects
# ===================================

@app.route('/subjects', methods=['GET'])
def list_subjects():
    return jsonify({'subjects': get_store().list_subjects()})


@app.route('/subjects', methods=['POST'])
def create_subject():
    data = _json_body()
    if not data:
        return _no_data()
    subject_id = data.get('id')
    check_subject(subject_id)
    if not (data.get('name') or '').strip():
        raise MissingRequiredField('name')

    get_store().create_subject(subject_id, {
        'name': data['name'].strip(),
        'description': data.get('description', ''),
    })
    return jsonify({'success': True, 'id': subject_id}), 201


@app.route('/subjects/<subject>', methods=['GET'])
def get_subject(subject):
    doc = get_store().get_subject(subject)
    if doc is None:
        return jsonify({'error': 'Subject not found'}), 404
    return jsonify(doc)


@app.route('/subjects/<subject>', methods=['PATCH'])
def update_subject(subject):
    data = _json_body()
    if not data:
        return _no_data()
    fields = {k: data[k] for k in ('name', 'description') if k in data}
    get_store().update_subject(subject, fields)
    return jsonify({'success': True})


@app.route('/subjects/<subject>', methods=['DELETE'])
def delete_subject(subject):
    if get_store().delete_subject(subject):
        return jsonify({'success': True})
    return jsonify({'error': 'Subject not found'}), 404


# ===================================
# Sections
# ===================================

@app.route('/subjects/<subject>/sections', methods=['GET'])
def list_sections(subject):
    check_subject(subject)
    return jsonify({'sections': get_store().list_sections(subject)})


@app.route('/subjects/<subject>/sections', methods=['POST'])
def create_section(subject):
    data = _json_body()
    if not data:
        return _no_data()
    check_subject(subject)
    for field in ('name', 'title'):
        if not (data.get(field) or '').strip():
            raise MissingRequiredField(field, 'Section name and title are required')

    fields = {
        'name': data['name'].strip(),
        'title': data['title'].strip(),
        'description': (data.get('description') or '').strip() or None,
        'backgroundImage': data.get('backgroundImage'),
    }
    section_id = get_store().create_section(subject, fields)
    return jsonify({'success': True, 'id': section_id}), 201


@app.route('/subjects/<subject>/sections/<section_id>', methods=['GET'])
def get_section(subject, section_id):
    doc = get_store().get_section(subject, section_id)
    if doc is None:
        return jsonify({'error': 'Section not found'}), 404
    return jsonify(doc)


@app.route('/subjects/<subject>/sections/<section_id>', methods=['PATCH'])
def update_section(subject, section_id):
    data = _json_body()
    if not data:
        return _no_data()
    fields = {k: data[k] for k in ('name', 'title', 'description', 'backgroundImage') if k in data}
    for field in ('name', 'title'):
        if field in fields and not (fields[field] or '').strip():
            raise MissingRequiredField(field, 'Section name and title are required')
    get_store().update_section(subject, section_id, fields)
    return jsonify({'success': True})


@app.route('/subjects/<subject>/sections/<section_id>', methods=['DELETE'])
def delete_section(subject, section_id):
    """Delete a section. Its levels are not deleted."""
    if get_store().delete_section(subject, section_id):
        return jsonify({'success': True})
    return jsonify({'error': 'Section not found'}), 404


# ===================================
# Levels
# ===================================

@app.route('/subjects/<subject>/sections/<section_id>/levels', methods=['GET'])
def list_levels(subject, section_id):
    check_subject(subject)
    levels = get_store().list_levels(subject, section_id)
    return jsonify({
        'levels': levels,
        'nextLevelIndex': level_builder.next_level_index(levels),
    })


@app.route('/subjects/<subject>/sections/<section_id>/levels', methods=['POST'])
def create_level(subject, section_id):
    data = _json_body()
    if not data:
        return _no_data()
    store = get_store()
    if store.get_section(subject, section_id) is None:
        raise NotFound(f"Section not found: {subject}/{section_id}")

    level_id, level = level_builder.create_level(
        store, subject, section_id, data.get('gameType'),
        data.get('name'), data.get('title'), data.get('icon'), data.get('stages') or [])
    return jsonify({'success': True, 'id': level_id, 'level': store.get_level(subject, section_id, level_id)}), 201


@app.route('/subjects/<subject>/sections/<section_id>/levels/<level_id>', methods=['GET'])
def get_level(subject, section_id, level_id):
    doc = get_store().get_level(subject, section_id, level_id)
    if doc is None:
        return jsonify({'error': 'Level not found'}), 404
    return jsonify(doc)


@app.route('/subjects/<subject>/sections/<section_id>/levels/<level_id>', methods=['PUT'])
def update_level(subject, section_id, level_id):
    """Replace name/title/icon/stages. gameType and levelIndex never change."""
    data = _json_body()
    if not data:
        return _no_data()
    level = level_builder.update_level(
        get_store(), subject, section_id, level_id,
        data.get('name'), data.get('title'), data.get('icon'), data.get('stages') or [])
    return jsonify({'success': True, 'level': level})


@app.route('/subjects/<subject>/sections/<section_id>/levels/<level_id>', methods=['DELETE'])
def delete_level(subject, section_id, level_id):
    if get_store().delete_level(subject, section_id, level_id):
        return jsonify({'success': True})
    return jsonify({'error': 'Level not found'}), 404


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    print("Starting Level Authoring Server...")
    print(f"Open http://localhost:{port}/status in your browser")
    app.run(debug=True, port=port, host='0.0.0.0')
