"""
Test Case: level assembly, stage-list editing and level index assignment.
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from level_builder import (
    add_stage,
    build_level,
    create_level,
    next_level_index,
    remove_stage,
    update_level,
)
from level_errors import (
    EmptyStageList,
    MissingRequiredField,
    NotFound,
    TooManyStages,
    ValidationFailed,
)
from level_store import LevelStore


def test_next_level_index():
    assert next_level_index([]) == 1
    assert next_level_index([{'levelIndex': 1}, {'levelIndex': 2}, {'levelIndex': 4}]) == 5
    assert next_level_index([{'levelIndex': 3}]) == 4


def test_add_stage_appends_normalized():
    stages = add_stage('alphabet', 'phonics', [], {'correctLetter': 'a', 'choices': 'a,b'})
    stages = add_stage('alphabet', 'phonics', stages, {'correctLetter': 'c', 'choices': 'c,d'})
    assert [s['correctLetter'] for s in stages] == ['A', 'C']


def test_add_stage_does_not_mutate_input():
    original = [{'gameType': 'rocket', 'correctChoice': 'red'}]
    add_stage('colors', 'rocket', original, {'correctChoice': 'blue'})
    assert len(original) == 1


def test_catching_rejects_second_stage_before_validation():
    stages = add_stage('numbers', 'catching', [], {'correctNumber': 7})
    with pytest.raises(TooManyStages) as exc:
        # invalid stage: the cap is checked first
        add_stage('numbers', 'catching', stages, {})
    assert str(exc.value) == "Catching game type only allows one stage"


def test_catching_allows_replacing_its_stage():
    stages = add_stage('colors', 'catching', [], {'correctColor': 'red'})
    stages = add_stage('colors', 'catching', stages, {'correctColor': 'blue'}, editing_index=0)
    assert stages == [{'correctColor': 'blue', 'gameType': 'catching'}]


def test_editing_index_out_of_range():
    with pytest.raises(IndexError):
        add_stage('colors', 'rocket', [], {'correctChoice': 'red'}, editing_index=0)


def test_remove_stage():
    stages = [{'correctChoice': 'red'}, {'correctChoice': 'blue'}, {'correctChoice': 'green'}]
    assert remove_stage(stages, 1) == [{'correctChoice': 'red'}, {'correctChoice': 'green'}]
    with pytest.raises(IndexError):
        remove_stage(stages, 3)


def test_build_level_requires_name_title_and_stages():
    stage = {'correctShape': 'circle'}
    with pytest.raises(MissingRequiredField) as exc:
        build_level('shapes', 'racing', '  ', 'Race', None, [stage])
    assert exc.value.field == 'name'
    with pytest.raises(MissingRequiredField) as exc:
        build_level('shapes', 'racing', 'Race 1', None, None, [stage])
    assert exc.value.field == 'title'
    with pytest.raises(EmptyStageList):
        build_level('shapes', 'racing', 'Race 1', 'Race', None, [])


def test_build_level_revalidates_stages():
    with pytest.raises(ValidationFailed):
        build_level('shapes', 'racing', 'Race 1', 'Race', None, [{'correctShape': 'diamond'}])
    with pytest.raises(TooManyStages):
        build_level('shapes', 'catching', 'Catch', 'Catch', None,
                    [{'correctShape': 'star'}, {'correctShape': 'oval'}])


def test_build_level_document():
    level = build_level('shapes', 'racing', ' Race 1 ', 'Race', {'set': 'FontAwesome', 'name': 'x'},
                        [{'correctShape': 'Circle'}])
    assert level == {
        'name': 'Race 1',
        'title': 'Race',
        'icon': {'set': 'FontAwesome5', 'name': 'car'},
        'gameType': 'racing',
        'stages': [{'correctShape': 'circle', 'gameType': 'racing'}],
    }


def test_create_level_assigns_next_index(tmp_path):
    store = LevelStore(tmp_path)
    section_id = store.create_section('numbers', {'name': 'n', 'title': 'Numbers'})
    stage = {'correctCount': 3}

    first_id, _ = create_level(store, 'numbers', section_id, 'dragndrop', 'One', 'One', None, [stage])
    second_id, _ = create_level(store, 'numbers', section_id, 'dragndrop', 'Two', 'Two', None, [stage])

    assert store.get_level('numbers', section_id, first_id)['levelIndex'] == 1
    assert store.get_level('numbers', section_id, second_id)['levelIndex'] == 2
    assert store.get_level('numbers', section_id, first_id)['icon'] == {'set': 'MaterialIcons', 'name': 'looks-one'}


def test_noop_edit_preserves_level(tmp_path):
    store = LevelStore(tmp_path)
    section_id = store.create_section('alphabet', {'name': 'a', 'title': 'Letters'})
    stages = [
        {'correctLetter': 'A', 'choices': ['A', 'B']},
        {'correctLetter': 'B', 'choices': ['B', 'C']},
        {'correctLetter': 'C', 'choices': ['C', 'D']},
    ]
    create_level(store, 'alphabet', section_id, 'phonics', 'Other', 'Other', None, stages[:1])
    level_id, _ = create_level(store, 'alphabet', section_id, 'phonics', 'ABC', 'Letters ABC', None, stages)
    before = store.get_level('alphabet', section_id, level_id)

    update_level(store, 'alphabet', section_id, level_id,
                 before['name'], before['title'], before['icon'], before['stages'])
    after = store.get_level('alphabet', section_id, level_id)

    assert after['levelIndex'] == before['levelIndex'] == 2
    assert after['stages'] == before['stages']
    assert [s['correctLetter'] for s in after['stages']] == ['A', 'B', 'C']
    assert after['gameType'] == 'phonics'


def test_update_missing_level(tmp_path):
    store = LevelStore(tmp_path)
    with pytest.raises(NotFound):
        update_level(store, 'colors', 'section1', 'nope', 'x', 'y', None, [{'correctChoice': 'red'}])
