"""
Test Case: backup_subject.py dump and import_levels.py YAML import.
"""

import sys
import os
import json

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backup_subject import backup_subject
from import_levels import check_import, import_levels, load_import_file
from level_store import LevelStore

IMPORT_YAML = """
subject: alphabet
section: section1
levels:
  - name: Letter A
    title: Find the letter A
    gameType: phonics
    stages:
      - correctLetter: a
        choices: A, B, C
      - correctLetter: b
        choices: [a, b]
  - name: Catch vowels
    title: Catch the vowels
    gameType: catching
    icon: {set: FontAwesome, name: star}
    stages:
      - correctLetters: A, E, I, O, U
"""


@pytest.fixture
def store(tmp_path):
    store = LevelStore(tmp_path / 'data')
    store.create_subject('alphabet', {'name': 'Alphabet'})
    store.create_section('alphabet', {'name': 'a', 'title': 'Letters'})
    return store


@pytest.fixture
def import_file(tmp_path):
    path = tmp_path / 'levels.yaml'
    path.write_text(IMPORT_YAML)
    return path


def test_import_creates_levels_in_order(store, import_file):
    data = load_import_file(import_file)
    assert check_import(data) == []

    created = import_levels(data, store)
    assert len(created) == 2

    levels = store.list_levels('alphabet', 'section1')
    assert [lvl['name'] for lvl in levels] == ['Letter A', 'Catch vowels']
    assert [lvl['levelIndex'] for lvl in levels] == [1, 2]
    assert levels[0]['stages'][0]['choices'] == ['A', 'B', 'C']
    assert levels[1]['icon'] == {'set': 'FontAwesome', 'name': 'star'}


def test_dry_run_writes_nothing(store, import_file):
    assert import_levels(load_import_file(import_file), store, dry_run=True) == []
    assert store.list_levels('alphabet', 'section1') == []


def test_import_reports_every_error_and_writes_nothing(store):
    data = {
        'subject': 'alphabet',
        'section': 'section1',
        'levels': [
            {'name': 'Ok', 'title': 'Ok', 'gameType': 'tracing',
             'stages': [{'letter': 'A', 'strokeOrder': '1,2'}]},
            {'name': 'Bad', 'title': 'Bad', 'gameType': 'phonics', 'stages': [{'choices': 'A'}]},
            {'name': 'Empty', 'title': 'Empty', 'gameType': 'sound', 'stages': []},
        ],
    }
    errors = check_import(data)
    assert len(errors) == 3
    assert errors[-1] == "Level 2 (Empty): At least one stage is required"

    with pytest.raises(ValueError):
        import_levels(data, store)
    assert store.list_levels('alphabet', 'section1') == []


def test_import_into_missing_section(store):
    data = {
        'subject': 'alphabet',
        'section': 'section9',
        'levels': [{'name': 'x', 'title': 'y', 'gameType': 'matching', 'stages': [{'cardPairs': 'A,B'}]}],
    }
    with pytest.raises(ValueError):
        import_levels(data, store)


def test_backup_subject(store, tmp_path):
    section_id = store.create_section('alphabet', {'name': 'b', 'title': 'More letters'})
    store.create_level('alphabet', section_id, {'name': 'L', 'gameType': 'tracing', 'stages': []})

    backups_dir = tmp_path / 'backups'
    assert backup_subject('alphabet', store=store, backups_dir=str(backups_dir)) == 1

    with open(backups_dir / 'alphabet.json') as f:
        tree = json.load(f)
    assert tree['subject']['name'] == 'Alphabet'
    assert [s['id'] for s in tree['sections']] == ['section1', 'section2']
    assert tree['sections'][1]['levels'][0]['name'] == 'L'


def test_backup_empty_subject(tmp_path):
    store = LevelStore(tmp_path / 'data')
    assert backup_subject('shapes', store=store, backups_dir=str(tmp_path / 'b')) == -1
