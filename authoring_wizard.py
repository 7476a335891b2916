"""
Authoring Wizard - Step Sequencer
=================================

Drives one author through a linear flow of steps, validating each step
before moving forward. Three flows share the engine:

    create:  subject -> section -> gameType -> details -> persisted
    edit:    subject -> section -> level    -> details -> persisted
    delete:  subject -> section -> level    -> confirm -> deleted

Rules:
  - Forward moves only on an explicit action for the current step.
  - back() returns exactly one step. Cancel drops the session; nothing has
    been written before the final step, so there is nothing to undo.
  - The terminal step is reached only after a single successful store write.
    Its render is the last one; the session is released with it.
  - While that write is outstanding the session is busy and a second save is
    refused; the render tells the UI to disable the submit control.

Failures are recorded on the session as a user-facing message and the
wizard stays on the step where they happened.
"""

import secrets
import traceback

from game_catalog import (
    DEFAULT_ICONS,
    GAME_TYPES,
    MIXED_SUBTYPES,
    check_subject,
    get_game_type,
    icon_for,
    is_single_stage,
)
from level_builder import add_stage as _add_stage
from level_builder import create_level, next_level_index, update_level
from level_builder import remove_stage as _remove_stage
from level_errors import (
    LevelAuthoringError,
    MissingRequiredField,
    StoreError,
    SubmitInProgress,
    WizardStepError,
)

FLOWS = {
    'create': ('subject', 'section', 'gameType', 'details', 'persisted'),
    'edit': ('subject', 'section', 'level', 'details', 'persisted'),
    'delete': ('subject', 'section', 'level', 'confirm', 'deleted'),
}

TERMINAL_STEPS = frozenset({'persisted', 'deleted'})

# wizard_id -> session dict
_sessions = {}

_SESSION_FIELDS = {
    'mode': 'create',
    'step': 'subject',
    'subject': None,
    'sections': [],
    'section_id': None,
    'levels': [],
    'level_id': None,
    'level_index': None,
    'game_type': None,
    'name': '',
    'title': '',
    'icon': None,
    'stages': [],
    'busy': False,
    'error': None,
    'saved_id': None,
}


def _new_session(store, mode):
    session = {k: (list(v) if isinstance(v, list) else v) for k, v in _SESSION_FIELDS.items()}
    session['mode'] = mode
    session['store'] = store
    return session


def _get_session(wizard_id):
    session = _sessions.get(wizard_id)
    if session is None:
        raise WizardStepError(f"No wizard session '{wizard_id}'")
    return session


def _expect_step(session, *steps):
    if session['step'] not in steps:
        raise WizardStepError(
            f"Action not allowed at step '{session['step']}' (expected {' or '.join(steps)})")


def _advance(session):
    flow = FLOWS[session['mode']]
    session['step'] = flow[flow.index(session['step']) + 1]
    session['error'] = None


def _fail(session, message, exc):
    """Record a store failure on the session and log it."""
    session['error'] = message
    print(f"[Wizard] {message}: {exc}")
    traceback.print_exc()


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

def start_wizard(store, mode='create'):
    """Open a new wizard session. Returns the render (includes wizardId)."""
    if mode not in FLOWS:
        raise WizardStepError(f"Unknown wizard mode '{mode}'. Expected one of {list(FLOWS)}")
    wizard_id = secrets.token_hex(8)
    _sessions[wizard_id] = _new_session(store, mode)
    return get_render(wizard_id)


def clear_session(wizard_id):
    _sessions.pop(wizard_id, None)


def _finish(wizard_id):
    """Final render of a completed flow; the session is released."""
    render = get_render(wizard_id)
    clear_session(wizard_id)
    return render


def cancel(wizard_id):
    """Abort the wizard. Nothing has been written, so nothing is rolled back."""
    clear_session(wizard_id)
    return {'wizardId': wizard_id, 'cancelled': True}


def back(wizard_id):
    """Return exactly one step. No-op on the first step."""
    session = _get_session(wizard_id)
    flow = FLOWS[session['mode']]
    idx = flow.index(session['step'])
    if idx > 0:
        session['step'] = flow[idx - 1]
        session['error'] = None
    return get_render(wizard_id)


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------

def choose_subject(wizard_id, subject):
    session = _get_session(wizard_id)
    _expect_step(session, 'subject')
    check_subject(subject)

    try:
        sections = session['store'].list_sections(subject)
    except StoreError as e:
        _fail(session, 'Failed to load sections', e)
        raise

    session['subject'] = subject
    session['sections'] = sections
    session['section_id'] = None
    _advance(session)
    return get_render(wizard_id)


def _enter_section(session, section_id):
    """Load what the step after 'section' needs."""
    session['section_id'] = section_id
    store = session['store']
    try:
        levels = store.list_levels(session['subject'], section_id)
    except StoreError as e:
        _fail(session, 'Failed to load levels', e)
        raise
    session['levels'] = levels
    if session['mode'] == 'create':
        # Preview only; the store assigns the real index at save time
        session['level_index'] = next_level_index(levels)


def choose_section(wizard_id, section_id):
    session = _get_session(wizard_id)
    _expect_step(session, 'section')
    if section_id not in {s['id'] for s in session['sections']}:
        raise WizardStepError(f"Section '{section_id}' does not exist in {session['subject']}")

    _enter_section(session, section_id)
    _advance(session)
    return get_render(wizard_id)


def create_section(wizard_id, name, title, description=None):
    """Create a new section from the section step and move past it."""
    session = _get_session(wizard_id)
    _expect_step(session, 'section')
    if session['mode'] != 'create':
        raise WizardStepError("Sections can only be created from the create flow")
    if not (name or '').strip() or not (title or '').strip():
        session['error'] = 'Section name and title are required'
        raise MissingRequiredField('name' if not (name or '').strip() else 'title',
                                   'Section name and title are required')

    store = session['store']
    data = {'name': name.strip(), 'title': title.strip()}
    if description and description.strip():
        data['description'] = description.strip()
    try:
        section_id = store.create_section(session['subject'], data)
    except StoreError as e:
        _fail(session, 'Failed to create section', e)
        raise

    session['sections'].append({'id': section_id, **data})
    _enter_section(session, section_id)
    _advance(session)
    return get_render(wizard_id)


def update_section(wizard_id, section_id, fields):
    """Edit an existing section's name/title/description while on the section step."""
    session = _get_session(wizard_id)
    _expect_step(session, 'section')
    fields = {k: v for k, v in fields.items() if k in ('name', 'title', 'description')}
    for key in ('name', 'title'):
        if key in fields and not (fields[key] or '').strip():
            session['error'] = 'Section name and title are required'
            raise MissingRequiredField(key, 'Section name and title are required')

    store = session['store']
    try:
        store.update_section(session['subject'], section_id, fields)
        session['sections'] = store.list_sections(session['subject'])
    except StoreError as e:
        _fail(session, 'Failed to update section', e)
        raise
    session['error'] = None
    return get_render(wizard_id)


def choose_game_type(wizard_id, game_type):
    session = _get_session(wizard_id)
    _expect_step(session, 'gameType')
    get_game_type(session['subject'], game_type)

    session['game_type'] = game_type
    session['stages'] = []
    session['icon'] = icon_for(session['subject'], game_type)
    _advance(session)
    return get_render(wizard_id)


def choose_level(wizard_id, level_id):
    """Pick the level to edit or delete; loads it into the session."""
    session = _get_session(wizard_id)
    _expect_step(session, 'level')
    level = next((lvl for lvl in session['levels'] if lvl['id'] == level_id), None)
    if level is None:
        raise WizardStepError(f"Level '{level_id}' does not exist in {session['subject']}/{session['section_id']}")

    session['level_id'] = level_id
    session['level_index'] = level.get('levelIndex')
    session['game_type'] = level.get('gameType')
    session['name'] = level.get('name', '')
    session['title'] = level.get('title', '')
    session['icon'] = level.get('icon')
    session['stages'] = list(level.get('stages') or [])
    _advance(session)
    return get_render(wizard_id)


def set_details(wizard_id, name=None, title=None, icon=None):
    session = _get_session(wizard_id)
    _expect_step(session, 'details')
    if name is not None:
        session['name'] = name
    if title is not None:
        session['title'] = title
    if icon is not None:
        session['icon'] = icon_for(session['subject'], session['game_type'], icon)
    return get_render(wizard_id)


def add_stage(wizard_id, stage, stage_game_type=None, editing_index=None):
    """Validate and append a stage (or replace the one at editing_index)."""
    session = _get_session(wizard_id)
    _expect_step(session, 'details')
    try:
        session['stages'] = _add_stage(
            session['subject'], session['game_type'], session['stages'], stage,
            stage_game_type=stage_game_type, editing_index=editing_index)
    except LevelAuthoringError as e:
        session['error'] = str(e)
        raise
    session['error'] = None
    return get_render(wizard_id)


def remove_stage(wizard_id, index):
    session = _get_session(wizard_id)
    _expect_step(session, 'details')
    session['stages'] = _remove_stage(session['stages'], index)
    return get_render(wizard_id)


def save(wizard_id):
    """Persist the level in one write and move to the terminal step."""
    session = _get_session(wizard_id)
    _expect_step(session, 'details')
    if session['busy']:
        raise SubmitInProgress()

    editing = session['mode'] == 'edit'
    store = session['store']
    subject, section_id = session['subject'], session['section_id']

    session['busy'] = True
    try:
        if editing:
            update_level(store, subject, section_id, session['level_id'],
                         session['name'], session['title'], session['icon'], session['stages'])
            session['saved_id'] = session['level_id']
        else:
            session['saved_id'], _ = create_level(store, subject, section_id, session['game_type'],
                                                  session['name'], session['title'], session['icon'],
                                                  session['stages'])
    except LevelAuthoringError as e:
        session['error'] = str(e)
        raise
    except StoreError as e:
        _fail(session, 'Failed to update level' if editing else 'Failed to create level', e)
        raise
    finally:
        session['busy'] = False

    _advance(session)
    return _finish(wizard_id)


def confirm_delete(wizard_id):
    session = _get_session(wizard_id)
    _expect_step(session, 'confirm')
    if session['busy']:
        raise SubmitInProgress()

    store = session['store']
    session['busy'] = True
    try:
        store.delete_level(session['subject'], session['section_id'], session['level_id'])
    except StoreError as e:
        _fail(session, 'Failed to delete level', e)
        raise
    finally:
        session['busy'] = False

    _advance(session)
    return _finish(wizard_id)


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------

def _step_options(session):
    step = session['step']
    subject = session['subject']
    if step == 'subject':
        return {'subjects': list(GAME_TYPES)}
    if step == 'section':
        return {'sections': session['sections'], 'canCreate': session['mode'] == 'create'}
    if step == 'gameType':
        return {'gameTypes': list(GAME_TYPES[subject])}
    if step == 'level':
        return {'levels': [
            {'id': lvl['id'], 'levelIndex': lvl.get('levelIndex'), 'name': lvl.get('name'),
             'gameType': lvl.get('gameType')}
            for lvl in session['levels']
        ]}
    if step == 'details':
        options = {
            'singleStage': is_single_stage(session['game_type']),
            'canAddStage': not (is_single_stage(session['game_type']) and session['stages']),
            'iconEditable': subject in DEFAULT_ICONS,
        }
        if session['game_type'] == 'mixed':
            options['stageGameTypes'] = list(MIXED_SUBTYPES.get(subject, ()))
        return options
    return {}


def get_render(wizard_id):
    """Build the render dict the UI draws from."""
    session = _get_session(wizard_id)
    flow = FLOWS[session['mode']]
    return {
        'wizardId': wizard_id,
        'mode': session['mode'],
        'step': session['step'],
        'stepIndex': flow.index(session['step']),
        'steps': list(flow),
        'complete': session['step'] in TERMINAL_STEPS,
        'subject': session['subject'],
        'sectionId': session['section_id'],
        'levelId': session['saved_id'] or session['level_id'],
        'levelIndex': session['level_index'],
        'gameType': session['game_type'],
        'name': session['name'],
        'title': session['title'],
        'icon': session['icon'],
        'stages': session['stages'],
        'options': _step_options(session),
        'busy': session['busy'],
        'submitDisabled': session['busy'] or session['step'] in TERMINAL_STEPS,
        'error': session['error'],
    }
