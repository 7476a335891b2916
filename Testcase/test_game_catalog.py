"""
Test Case: game type catalog lookups and icon resolution.
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from game_catalog import (
    GAME_TYPES,
    REQUIRED_FIELDS,
    allowed_stage_types,
    catalog_summary,
    get_game_type,
    icon_for,
    is_single_stage,
)
from level_errors import UnknownGameType, UnknownSubject


def test_every_game_type_has_required_fields_and_icon():
    for subject, game_types in GAME_TYPES.items():
        for game_type in game_types:
            info = get_game_type(subject, game_type)
            assert info.required_fields == REQUIRED_FIELDS[subject][game_type]
            assert info.icon.set and info.icon.name


def test_unknown_pairs_are_rejected():
    with pytest.raises(UnknownSubject):
        get_game_type('music', 'phonics')
    with pytest.raises(UnknownGameType):
        get_game_type('numbers', 'phonics')
    with pytest.raises(UnknownGameType):
        get_game_type('alphabet', 'racing')


def test_catalog_tables_are_read_only():
    with pytest.raises(TypeError):
        GAME_TYPES['music'] = ('x',)


def test_icon_for_colors_and_shapes_ignores_author_choice():
    icon = icon_for('shapes', 'racing', {'set': 'MaterialIcons', 'name': 'star'})
    assert icon == {'set': 'FontAwesome5', 'name': 'car'}
    assert icon_for('colors', 'rocket') == {'set': 'FontAwesome5', 'name': 'rocket'}


def test_icon_for_alphabet_uses_choice_or_default():
    assert icon_for('alphabet', 'phonics') == {'set': 'MaterialIcons', 'name': 'star'}
    assert icon_for('numbers', 'counting') == {'set': 'MaterialIcons', 'name': 'looks-one'}
    chosen = icon_for('alphabet', 'cards', {'set': 'FontAwesome', 'name': 'book'})
    assert chosen == {'set': 'FontAwesome', 'name': 'book'}
    assert icon_for('alphabet', 'cards', ('FontAwesome', ' ')) == {'set': 'FontAwesome', 'name': 'star'}


def test_single_stage_and_mixed_subtypes():
    assert is_single_stage('catching')
    assert not is_single_stage('phonics')
    assert allowed_stage_types('alphabet', 'mixed') == ('phonics', 'image', 'cards', 'sound')
    assert allowed_stage_types('numbers', 'counting') == ('counting',)


def test_catalog_summary():
    summary = catalog_summary()
    assert set(summary) == {'alphabet', 'numbers', 'colors', 'shapes'}
    assert 'rhombus' in summary['shapes']['options']['catchShapes']
    assert summary['alphabet']['mixedSubtypes'] == ['phonics', 'image', 'cards', 'sound']

    colors = catalog_summary('colors')
    assert list(colors) == ['colors']
    catching = [g for g in colors['colors']['gameTypes'] if g['gameType'] == 'catching'][0]
    assert catching['singleStage'] is True
    assert len(colors['colors']['options']['colors']) == 11
