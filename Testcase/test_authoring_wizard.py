"""
Test Case: authoring wizard create / edit / delete flows.

Drives the step sequencer directly against a LevelStore in a temp dir and
checks the render after each step, the way the UI would see it.
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import authoring_wizard as wizard
from level_errors import (
    EmptyStageList,
    MissingRequiredField,
    StoreUnavailable,
    SubmitInProgress,
    TooManyStages,
    ValidationFailed,
    WizardStepError,
)
from level_store import LevelStore


class FailingStore(LevelStore):
    def create_level(self, subject_id, section_id, level):
        raise StoreUnavailable("disk full")


@pytest.fixture
def store(tmp_path):
    return LevelStore(tmp_path)


def _to_details(store, subject='colors', game_type='matching'):
    wid = wizard.start_wizard(store)['wizardId']
    wizard.choose_subject(wid, subject)
    wizard.create_section(wid, 'Basics', 'The basics')
    wizard.choose_game_type(wid, game_type)
    return wid


def test_create_flow_persists_level(store):
    render = wizard.start_wizard(store)
    wid = render['wizardId']
    assert render['step'] == 'subject'
    assert render['options']['subjects'] == ['alphabet', 'numbers', 'colors', 'shapes']

    render = wizard.choose_subject(wid, 'colors')
    assert render['step'] == 'section'
    assert render['options'] == {'sections': [], 'canCreate': True}

    render = wizard.create_section(wid, 'Basics', 'The basics')
    assert render['step'] == 'gameType'
    assert render['sectionId'] == 'section1'
    assert render['levelIndex'] == 1

    render = wizard.choose_game_type(wid, 'matching')
    assert render['step'] == 'details'
    assert render['icon'] == {'set': 'MaterialIcons', 'name': 'extension'}

    wizard.add_stage(wid, {'colors': 'Red, blue, green, yellow'})
    wizard.set_details(wid, name='Match 1', title='Match the colors')
    render = wizard.save(wid)

    assert render['step'] == 'persisted'
    assert render['complete'] is True
    assert render['submitDisabled'] is True
    assert wid not in wizard._sessions

    level = store.get_level('colors', 'section1', render['levelId'])
    assert level['levelIndex'] == 1
    assert level['gameType'] == 'matching'
    assert level['stages'] == [{'colors': ['red', 'blue', 'green', 'yellow'], 'gameType': 'matching'}]


def test_actions_only_on_their_step(store):
    wid = wizard.start_wizard(store)['wizardId']
    with pytest.raises(WizardStepError):
        wizard.choose_game_type(wid, 'matching')
    with pytest.raises(WizardStepError):
        wizard.save(wid)
    with pytest.raises(WizardStepError):
        wizard.start_wizard(store, mode='publish')


def test_choose_unknown_section(store):
    wid = wizard.start_wizard(store)['wizardId']
    wizard.choose_subject(wid, 'shapes')
    with pytest.raises(WizardStepError):
        wizard.choose_section(wid, 'section7')


def test_back_moves_exactly_one_step(store):
    wid = _to_details(store)
    assert wizard.back(wid)['step'] == 'gameType'
    assert wizard.back(wid)['step'] == 'section'
    assert wizard.back(wid)['step'] == 'subject'
    # no-op on the first step
    assert wizard.back(wid)['step'] == 'subject'


def test_cancel_writes_nothing(store):
    wid = _to_details(store, 'shapes', 'racing')
    wizard.add_stage(wid, {'correctShape': 'star'})
    wizard.set_details(wid, name='Race', title='Race')
    assert wizard.cancel(wid) == {'wizardId': wid, 'cancelled': True}
    assert wid not in wizard._sessions
    assert store.list_levels('shapes', 'section1') == []


def test_section_requires_name_and_title(store):
    wid = wizard.start_wizard(store)['wizardId']
    wizard.choose_subject(wid, 'numbers')
    with pytest.raises(MissingRequiredField):
        wizard.create_section(wid, 'Counting', '  ')
    render = wizard.get_render(wid)
    assert render['step'] == 'section'
    assert render['error'] == 'Section name and title are required'


def test_invalid_stage_keeps_wizard_on_details(store):
    wid = _to_details(store)
    with pytest.raises(ValidationFailed):
        wizard.add_stage(wid, {'colors': ['red', 'red', 'blue', 'green']})
    render = wizard.get_render(wid)
    assert render['step'] == 'details'
    assert render['stages'] == []
    assert 'Duplicate' in render['error']


def test_catching_single_stage(store):
    wid = _to_details(store, 'numbers', 'catching')
    render = wizard.add_stage(wid, {'correctNumber': 4})
    assert render['options']['canAddStage'] is False
    with pytest.raises(TooManyStages):
        wizard.add_stage(wid, {'correctNumber': 5})
    assert wizard.get_render(wid)['error'] == "Catching game type only allows one stage"
    render = wizard.add_stage(wid, {'correctNumber': 5}, editing_index=0)
    assert render['stages'][0]['correctNumber'] == '5'


def test_save_without_stages(store):
    wid = _to_details(store, 'shapes', 'racing')
    wizard.set_details(wid, name='Race', title='Race')
    with pytest.raises(EmptyStageList):
        wizard.save(wid)
    render = wizard.get_render(wid)
    assert render['step'] == 'details'
    assert render['busy'] is False


def test_save_refused_while_busy(store):
    wid = _to_details(store, 'shapes', 'racing')
    wizard._sessions[wid]['busy'] = True
    assert wizard.get_render(wid)['submitDisabled'] is True
    with pytest.raises(SubmitInProgress):
        wizard.save(wid)


def test_store_failure_reports_and_stays(tmp_path):
    store = FailingStore(tmp_path)
    wid = _to_details(store, 'shapes', 'racing')
    wizard.add_stage(wid, {'correctShape': 'star'})
    wizard.set_details(wid, name='Race', title='Race')
    with pytest.raises(StoreUnavailable):
        wizard.save(wid)
    render = wizard.get_render(wid)
    assert render['step'] == 'details'
    assert render['error'] == 'Failed to create level'
    assert render['busy'] is False


def test_mixed_level_stage_types(store):
    wid = _to_details(store, 'alphabet', 'mixed')
    render = wizard.get_render(wid)
    assert render['options']['stageGameTypes'] == ['phonics', 'image', 'cards', 'sound']
    assert render['icon'] == {'set': 'MaterialIcons', 'name': 'star'}

    wizard.add_stage(wid, {'correctLetter': 'a', 'choices': 'a,b'}, stage_game_type='phonics')
    render = wizard.add_stage(wid, {'soundPairs': 'm,s'}, stage_game_type='sound')
    assert [s['gameType'] for s in render['stages']] == ['phonics', 'sound']

    render = wizard.remove_stage(wid, 0)
    assert [s['gameType'] for s in render['stages']] == ['sound']


def _seed_level(store):
    section_id = store.create_section('alphabet', {'name': 'a', 'title': 'Letters'})
    level_id = store.create_level('alphabet', section_id, {
        'name': 'Trace',
        'title': 'Trace A',
        'icon': {'set': 'MaterialIcons', 'name': 'star'},
        'gameType': 'tracing',
        'stages': [
            {'letter': 'A', 'strokeOrder': ['1', '2'], 'gameType': 'tracing'},
            {'letter': 'B', 'strokeOrder': ['1'], 'gameType': 'tracing'},
        ],
    })
    return section_id, level_id


def test_edit_flow_updates_in_place(store):
    section_id, level_id = _seed_level(store)
    wid = wizard.start_wizard(store, mode='edit')['wizardId']
    wizard.choose_subject(wid, 'alphabet')
    render = wizard.choose_section(wid, section_id)
    assert render['step'] == 'level'
    assert render['options']['levels'][0]['id'] == level_id

    render = wizard.choose_level(wid, level_id)
    assert render['step'] == 'details'
    assert render['name'] == 'Trace'
    assert len(render['stages']) == 2

    wizard.add_stage(wid, {'letter': 'c', 'strokeOrder': '1,2,3'}, editing_index=1)
    render = wizard.save(wid)
    assert render['step'] == 'persisted'
    assert render['levelId'] == level_id

    level = store.get_level('alphabet', section_id, level_id)
    assert level['levelIndex'] == 1
    assert [s['letter'] for s in level['stages']] == ['A', 'C']
    assert len(store.list_levels('alphabet', section_id)) == 1
    assert wid not in wizard._sessions


def test_edit_flow_cannot_create_sections(store):
    wid = wizard.start_wizard(store, mode='edit')['wizardId']
    wizard.choose_subject(wid, 'alphabet')
    with pytest.raises(WizardStepError):
        wizard.create_section(wid, 'New', 'New')


def test_delete_flow(store):
    section_id, level_id = _seed_level(store)
    wid = wizard.start_wizard(store, mode='delete')['wizardId']
    wizard.choose_subject(wid, 'alphabet')
    wizard.choose_section(wid, section_id)
    render = wizard.choose_level(wid, level_id)
    assert render['step'] == 'confirm'

    render = wizard.confirm_delete(wid)
    assert render['step'] == 'deleted'
    assert render['complete'] is True
    assert store.get_level('alphabet', section_id, level_id) is None
    # the finished session is released
    assert wid not in wizard._sessions
    with pytest.raises(WizardStepError):
        wizard.back(wid)


def test_update_section_from_wizard(store):
    store.create_section('colors', {'name': 'c', 'title': 'Colors'})
    wid = wizard.start_wizard(store)['wizardId']
    wizard.choose_subject(wid, 'colors')
    render = wizard.update_section(wid, 'section1', {'title': 'All colors', 'id': 'ignored'})
    assert render['step'] == 'section'
    assert render['options']['sections'][0]['title'] == 'All colors'
    assert render['options']['sections'][0]['id'] == 'section1'
