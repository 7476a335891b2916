"""
Level Builder
=============

Assembles a level from its basic info (name, title, icon) and an ordered
list of validated stages, assigns the level index, and hands the document to
the store.

Stage lists are edited client-side and written in one go: add_stage() and
remove_stage() return new lists and never touch the store.
"""

from game_catalog import get_game_type, icon_for, is_single_stage
from level_errors import EmptyStageList, MissingRequiredField, NotFound, TooManyStages
from validate_stage import validate_stage


def next_level_index(levels):
    """1 for an empty section, otherwise max(existing levelIndex) + 1.

    Read-then-write with no transaction: two authors saving into the same
    section at once can get the same index.
    """
    indices = [lvl.get('levelIndex') for lvl in levels if isinstance(lvl.get('levelIndex'), int)]
    return max(indices) + 1 if indices else 1


def add_stage(subject, game_type, stages, stage, stage_game_type=None, editing_index=None):
    """
    Validate a stage and return a new stage list with it appended (or with
    the stage at editing_index replaced).

    Catching levels hold a single stage: a second add is refused with
    TooManyStages before the candidate stage is even looked at. Replacing
    the existing stage is allowed.
    """
    get_game_type(subject, game_type)
    if editing_index is None and is_single_stage(game_type) and len(stages) >= 1:
        raise TooManyStages(game_type)

    normalized = validate_stage(subject, game_type, stage, stage_game_type)

    updated = list(stages)
    if editing_index is None:
        updated.append(normalized)
    else:
        if not 0 <= editing_index < len(updated):
            raise IndexError(f"No stage at index {editing_index} (level has {len(updated)})")
        updated[editing_index] = normalized
    return updated


def remove_stage(stages, index):
    if not 0 <= index < len(stages):
        raise IndexError(f"No stage at index {index} (level has {len(stages)})")
    return [s for i, s in enumerate(stages) if i != index]


def _require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise MissingRequiredField(field, 'Level name and title are required')
    return value.strip()


def build_level(subject, game_type, name, title, icon, stages):
    """
    Return the level body (everything except levelIndex and timestamps).

    Raises MissingRequiredField for a blank name/title, EmptyStageList when
    there are no stages, and lets ValidationFailed from any stage through
    unchanged.
    """
    get_game_type(subject, game_type)
    name = _require_text(name, 'name')
    title = _require_text(title, 'title')
    if not stages:
        raise EmptyStageList()

    if is_single_stage(game_type) and len(stages) > 1:
        raise TooManyStages(game_type)

    # Re-checking is a no-op for stages that came through add_stage()
    checked = [validate_stage(subject, game_type, stage) for stage in stages]

    return {
        'name': name,
        'title': title,
        'icon': icon_for(subject, game_type, icon),
        'gameType': game_type,
        'stages': checked,
    }


def create_level(store, subject, section_id, game_type, name, title, icon, stages):
    """Build and persist a new level. Returns (level_id, level)."""
    level = build_level(subject, game_type, name, title, icon, stages)
    level_id = store.create_level(subject, section_id, level)
    print(f"[Builder] Created {subject}/{section_id} level {level_id} ({game_type}, {len(level['stages'])} stages)")
    return level_id, level


def update_level(store, subject, section_id, level_id, name, title, icon, stages):
    """
    Replace name/title/icon/stages of an existing level as one write.

    gameType and levelIndex are fixed at creation and carried over from the
    stored document, so saving an unchanged level reproduces it exactly.
    Returns the updated level body.
    """
    existing = store.get_level(subject, section_id, level_id)
    if existing is None:
        raise NotFound(f"Level not found: {subject}/{section_id}/{level_id}")

    level = build_level(subject, existing['gameType'], name, title, icon, stages)
    level['levelIndex'] = existing['levelIndex']
    store.update_level(subject, section_id, level_id, level)
    print(f"[Builder] Updated {subject}/{section_id} level {level_id} (index {level['levelIndex']})")
    return level
