#!/usr/bin/env python3
"""
Stage Validator
===============

Checks a candidate stage against the rule for its (subject, game type) and
produces a normalized stage record. Run standalone to audit every level in
the configured store, or import validate_stage() / check_stage() for use in
the builder, wizard and import pipelines.

Every violated constraint is reported, not just the first, so the author can
fix all of them in one pass. A violation is a dict:

    {'field': 'choices', 'message': "'choices' must have at least 2 entries"}

Normalization mirrors what the authoring forms do to raw input:
comma-separated strings become lists, alphabet letters are upper-cased,
sound pair ids are derived from their letter. Normalizing an already
normalized stage returns it unchanged.

Usage:
    python3 validate_stage.py                 # Audit all subjects
    python3 validate_stage.py alphabet        # Audit one subject
"""

import re
import sys
from types import MappingProxyType

from game_catalog import (
    AVAILABLE_COLORS,
    CATCH_COLORS,
    CATCH_SHAPES,
    GAME_TYPES,
    MIXED_SUBTYPES,
    SHAPES_LIBRARY,
    SUBJECTS,
    UNSET_COLOR,
    VOWELS,
    VOWELS_MARKER,
    get_game_type,
)
from level_errors import ValidationFailed

MIN_CHOICES = 2
CARD_PAIRS_EXACT = 3
MIN_MATCHING_PAIRS = 2
MIN_SOUND_PAIRS = 2
MAX_SOUND_PAIRS = 5
COUNTING_CHOICES_EXACT = 3
MATCHING_COLORS_EXACT = 4
DRAG_COUNT_RANGE = (1, 9)

_LETTER_RE = re.compile(r'^[A-Z]$')


def _violation(field, message):
    return {'field': field, 'message': message}


def _present(value):
    """Truthiness as the authoring forms see it: None, '' and [] are absent."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def _as_list(value, transform=None):
    """Turn 'A, B,C' or ['A', ' B'] into a trimmed list without blanks."""
    if value is None:
        return None
    if isinstance(value, str):
        items = value.split(',')
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return value
    result = []
    for item in items:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
            if transform:
                item = transform(item)
        result.append(item)
    return result


def _as_int(value):
    """Coerce digit strings to int. Leaves anything else (including bools) alone."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and re.fullmatch(r'\s*-?\d+\s*', value):
        return int(value)
    return value


def _strip(value, transform=None):
    if isinstance(value, str):
        value = value.strip()
        if transform:
            value = transform(value)
    return value


# ---------------------------------------------------------------------------
# Normalizers (one per subject)
# ---------------------------------------------------------------------------

def _upper_letter(value):
    if isinstance(value, str) and value.strip().lower() == VOWELS_MARKER:
        return VOWELS_MARKER
    return _strip(value, str.upper)


def _normalize_alphabet(stage):
    out = dict(stage)
    if 'correctLetter' in out:
        out['correctLetter'] = _upper_letter(out['correctLetter'])
    if 'letter' in out:
        out['letter'] = _strip(out['letter'], str.upper)
    for key in ('choices', 'correctLetters'):
        if key in out:
            out[key] = _as_list(out[key], str.upper)
    if 'strokeOrder' in out:
        out['strokeOrder'] = _as_list(out['strokeOrder'])

    if 'cardPairs' in out:
        pairs = _as_list(out['cardPairs'])
        if isinstance(pairs, list):
            normalized = []
            for pair in pairs:
                if isinstance(pair, str):
                    pair = {'letter': pair}
                if isinstance(pair, dict):
                    pair = dict(pair)
                    pair['letter'] = _strip(pair.get('letter'), str.upper)
                normalized.append(pair)
            pairs = normalized
        out['cardPairs'] = pairs

    if 'soundPairs' in out:
        pairs = _as_list(out['soundPairs'])
        if isinstance(pairs, list):
            normalized = []
            for pair in pairs:
                if isinstance(pair, str):
                    pair = {'letter': pair}
                if isinstance(pair, dict):
                    pair = dict(pair)
                    letter = _strip(pair.get('letter'), str.upper)
                    pair['letter'] = letter
                    if isinstance(letter, str) and letter:
                        pair['soundId'] = f"sound_{letter}"
                normalized.append(pair)
            pairs = normalized
        out['soundPairs'] = pairs
    return out


def _normalize_numbers(stage):
    out = dict(stage)
    for key in ('correctAnswer', 'correctNumber'):
        if key in out and out[key] is not None and not isinstance(out[key], bool):
            out[key] = str(out[key]).strip()
    if 'choices' in out:
        choices = out['choices']
        if isinstance(choices, (list, tuple)):
            choices = [str(c) if isinstance(c, int) and not isinstance(c, bool) else c for c in choices]
        out['choices'] = _as_list(choices)
    for key in ('imageCount', 'correctCount'):
        if key in out:
            out[key] = _as_int(out[key])
    return out


def _normalize_colors(stage):
    out = dict(stage)
    for key in ('correctColor', 'correctChoice'):
        if key in out:
            out[key] = _strip(out[key], str.lower)
    if 'colors' in out:
        out['colors'] = _as_list(out['colors'], str.lower)
    return out


def _normalize_shapes(stage):
    out = dict(stage)
    if 'correctShape' in out:
        out['correctShape'] = _strip(out['correctShape'], str.lower)
    return out


NORMALIZERS = MappingProxyType({
    'alphabet': _normalize_alphabet,
    'numbers': _normalize_numbers,
    'colors': _normalize_colors,
    'shapes': _normalize_shapes,
})


# ---------------------------------------------------------------------------
# Rule checks: each takes a normalized stage and returns a violation list
# ---------------------------------------------------------------------------

def _require(stage, field, errors):
    if not _present(stage.get(field)):
        errors.append(_violation(field, f"Missing required field: '{field}'"))
        return False
    return True


def _check_single_letter(stage, field, errors):
    if not _require(stage, field, errors):
        return
    value = stage[field]
    if not isinstance(value, str) or len(value) != 1:
        errors.append(_violation(field, f"'{field}' must be a single character, got {value!r}"))


def _check_min_list(stage, field, minimum, errors):
    if not _require(stage, field, errors):
        return
    value = stage[field]
    if not isinstance(value, list):
        errors.append(_violation(field, f"'{field}' must be a list"))
    elif len(value) < minimum:
        errors.append(_violation(field, f"'{field}' must have at least {minimum} entries (has {len(value)})"))


def _check_exact_list(stage, field, count, errors):
    if not _require(stage, field, errors):
        return
    value = stage[field]
    if not isinstance(value, list):
        errors.append(_violation(field, f"'{field}' must be a list"))
    elif len(value) != count:
        errors.append(_violation(field, f"'{field}' must have exactly {count} entries (has {len(value)})"))


def _check_option(stage, field, options, errors):
    if not _require(stage, field, errors):
        return
    if stage[field] not in options:
        errors.append(_violation(field, f"'{field}' must be one of {list(options)}, got {stage[field]!r}"))


def _check_letter_choice(stage):
    """phonics / image: a single correct letter plus at least 2 choices."""
    errors = []
    _check_single_letter(stage, 'correctLetter', errors)
    _check_min_list(stage, 'choices', MIN_CHOICES, errors)
    return errors


def _check_alphabet_catching(stage):
    """(correctLetter AND choices) OR correctLetters; correctLetters must be the vowel set."""
    errors = []
    letters = stage.get('correctLetters')
    if _present(letters):
        if isinstance(letters, list) and not all(isinstance(x, str) for x in letters):
            errors.append(_violation('correctLetters', "'correctLetters' entries must be letters"))
        elif not isinstance(letters, list) or set(letters) != VOWELS or len(letters) != len(VOWELS):
            errors.append(_violation(
                'correctLetters',
                f"'correctLetters' must be exactly {sorted(VOWELS)}, got {letters!r}"))
        return errors

    has_letter = _require(stage, 'correctLetter', errors)
    _require(stage, 'choices', errors)
    if has_letter and stage['correctLetter'] == VOWELS_MARKER:
        errors.append(_violation('correctLetters', "Vowel stages must list 'correctLetters'"))
    elif has_letter:
        letter = stage['correctLetter']
        if not isinstance(letter, str) or len(letter) != 1:
            errors.append(_violation(
                'correctLetter', f"'correctLetter' must be a single character, got {letter!r}"))
    return errors


def _check_tracing(stage):
    errors = []
    _check_single_letter(stage, 'letter', errors)
    _check_min_list(stage, 'strokeOrder', 1, errors)
    return errors


def _check_card_pair_letters(stage, errors):
    for i, pair in enumerate(stage.get('cardPairs') or []):
        if not isinstance(pair, dict) or not _present(pair.get('letter')):
            errors.append(_violation('cardPairs', f"cardPairs[{i}] has no letter"))


def _check_cards(stage):
    errors = []
    _check_exact_list(stage, 'cardPairs', CARD_PAIRS_EXACT, errors)
    if isinstance(stage.get('cardPairs'), list):
        _check_card_pair_letters(stage, errors)
    return errors


def _check_matching_pairs(stage):
    errors = []
    _check_min_list(stage, 'cardPairs', MIN_MATCHING_PAIRS, errors)
    if isinstance(stage.get('cardPairs'), list):
        _check_card_pair_letters(stage, errors)
    return errors


def _check_sound(stage):
    errors = []
    _check_min_list(stage, 'soundPairs', MIN_SOUND_PAIRS, errors)
    pairs = stage.get('soundPairs')
    if not isinstance(pairs, list):
        return errors
    if len(pairs) > MAX_SOUND_PAIRS:
        errors.append(_violation(
            'soundPairs', f"'soundPairs' allows at most {MAX_SOUND_PAIRS} entries (has {len(pairs)})"))
    for i, pair in enumerate(pairs):
        letter = pair.get('letter') if isinstance(pair, dict) else None
        if not isinstance(letter, str) or not _LETTER_RE.match(letter):
            errors.append(_violation('soundPairs', f"soundPairs[{i}] letter must be A-Z, got {letter!r}"))
    return errors


def _check_counting(stage):
    errors = []
    has_answer = _require(stage, 'correctAnswer', errors)
    if _require(stage, 'imageCount', errors):
        count = stage['imageCount']
        if not isinstance(count, int) or isinstance(count, bool) or count < 1:
            errors.append(_violation('imageCount', f"'imageCount' must be a positive integer, got {count!r}"))
    _check_exact_list(stage, 'choices', COUNTING_CHOICES_EXACT, errors)
    choices = stage.get('choices')
    if has_answer and isinstance(choices, list) and choices and stage['correctAnswer'] not in choices:
        errors.append(_violation(
            'choices', f"'choices' must contain the correct answer '{stage['correctAnswer']}'"))
    return errors


def _check_dragndrop(stage):
    errors = []
    if not _require(stage, 'correctCount', errors):
        return errors
    count = stage['correctCount']
    low, high = DRAG_COUNT_RANGE
    if not isinstance(count, int) or isinstance(count, bool) or not low <= count <= high:
        errors.append(_violation('correctCount', f"'correctCount' must be an integer in [{low},{high}], got {count!r}"))
    return errors


def _check_number_catching(stage):
    errors = []
    _require(stage, 'correctNumber', errors)
    return errors


def _check_color_choice(stage):
    errors = []
    _check_option(stage, 'correctColor', AVAILABLE_COLORS, errors)
    return errors


def _check_color_catching(stage):
    errors = []
    _check_option(stage, 'correctColor', CATCH_COLORS, errors)
    return errors


def _check_rocket(stage):
    errors = []
    _require(stage, 'correctChoice', errors)
    return errors


def _check_color_matching(stage):
    """Exactly 4 colors, none left unset, all different."""
    errors = []
    _check_exact_list(stage, 'colors', MATCHING_COLORS_EXACT, errors)
    colors = stage.get('colors')
    if not isinstance(colors, list):
        return errors
    for i, color in enumerate(colors):
        if not isinstance(color, str):
            errors.append(_violation('colors', f"Color slot {i + 1} must be a color name, got {color!r}"))
        elif color == UNSET_COLOR:
            errors.append(_violation('colors', f"Color slot {i + 1} is not selected"))
    seen = set()
    for color in colors:
        if not isinstance(color, str) or color == UNSET_COLOR:
            continue
        if color in seen:
            errors.append(_violation('colors', f"Duplicate color '{color}'"))
        seen.add(color)
    return errors


def _check_shape_library(stage):
    errors = []
    _check_option(stage, 'correctShape', SHAPES_LIBRARY, errors)
    return errors


def _check_catch_shape(stage):
    errors = []
    _check_option(stage, 'correctShape', CATCH_SHAPES, errors)
    return errors


RULES = MappingProxyType({
    ('alphabet', 'phonics'): _check_letter_choice,
    ('alphabet', 'image'): _check_letter_choice,
    ('alphabet', 'catching'): _check_alphabet_catching,
    ('alphabet', 'tracing'): _check_tracing,
    ('alphabet', 'cards'): _check_cards,
    ('alphabet', 'sound'): _check_sound,
    ('alphabet', 'matching'): _check_matching_pairs,
    ('numbers', 'counting'): _check_counting,
    ('numbers', 'dragndrop'): _check_dragndrop,
    ('numbers', 'catching'): _check_number_catching,
    ('colors', 'colorMultipleChoice'): _check_color_choice,
    ('colors', 'catching'): _check_color_catching,
    ('colors', 'rocket'): _check_rocket,
    ('colors', 'matching'): _check_color_matching,
    ('shapes', 'shapesMultipleChoice'): _check_shape_library,
    ('shapes', 'rocketShapes'): _check_shape_library,
    ('shapes', 'racing'): _check_catch_shape,
    ('shapes', 'catching'): _check_catch_shape,
})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_checks(subject, game_type, stage, stage_game_type=None):
    """Normalize and check. Returns (normalized_stage, violations).

    For a 'mixed' level the concrete type comes from stage_game_type or the
    stage's own 'gameType' tag and must be one of the subject's mixed
    subtypes. Raises UnknownGameType for pairs missing from the catalog.
    """
    get_game_type(subject, game_type)
    if not isinstance(stage, dict):
        return None, [_violation('stage', f"Stage must be a mapping, got {type(stage).__name__}")]

    normalized = NORMALIZERS[subject](stage)
    tag = stage_game_type or normalized.get('gameType')

    if game_type == 'mixed':
        allowed = MIXED_SUBTYPES.get(subject, ())
        if not _present(tag):
            return normalized, [_violation('gameType', "Mixed stages must declare their own 'gameType'")]
        if tag not in allowed:
            return normalized, [_violation(
                'gameType', f"Mixed stage type must be one of {list(allowed)}, got '{tag}'")]
        concrete = tag
    else:
        if _present(tag) and tag != game_type:
            return normalized, [_violation(
                'gameType', f"Stage is tagged '{tag}' but the level's game type is '{game_type}'")]
        concrete = game_type

    violations = RULES[(subject, concrete)](normalized)
    normalized['gameType'] = concrete
    return normalized, violations


def check_stage(subject, game_type, stage, stage_game_type=None):
    """Return the list of violated constraints (empty when the stage is valid)."""
    _, violations = run_checks(subject, game_type, stage, stage_game_type)
    return violations


def validate_stage(subject, game_type, stage, stage_game_type=None):
    """Return the normalized stage tagged with its concrete game type.

    Raises ValidationFailed listing every violation.
    """
    normalized, violations = run_checks(subject, game_type, stage, stage_game_type)
    if violations:
        raise ValidationFailed(violations)
    return normalized


def check_level(subject, level):
    """
    Audit a stored level document. Returns (errors, warnings) as lists of
    strings, in the same shape the audit CLI prints.
    """
    errors = []
    warnings = []

    game_type = level.get('gameType')
    if game_type not in GAME_TYPES.get(subject, ()):
        errors.append(f"Invalid gameType '{game_type}' for subject '{subject}'")
        return errors, warnings

    for field in ('name', 'title'):
        value = level.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"Missing required field: '{field}'")

    index = level.get('levelIndex')
    if not isinstance(index, int) or isinstance(index, bool) or index < 1:
        errors.append(f"'levelIndex' must be a positive integer, got {index!r}")

    icon = level.get('icon')
    if not isinstance(icon, dict) or not icon.get('set') or not icon.get('name'):
        warnings.append("Level has no icon set/name")

    stages = level.get('stages')
    if not isinstance(stages, list) or not stages:
        errors.append("'stages' must be a non-empty array")
        return errors, warnings

    if game_type == 'catching' and len(stages) > 1:
        errors.append(f"Catching levels allow one stage (has {len(stages)})")

    for i, stage in enumerate(stages):
        for v in check_stage(subject, game_type, stage):
            errors.append(f"Stage {i} ({v['field']}): {v['message']}")
        if isinstance(stage, dict) and 'gameType' not in stage:
            warnings.append(f"Stage {i}: no 'gameType' tag")

    return errors, warnings


def validate_all(subject=None):
    """Validate every level in the configured store. Returns (total, passed, failed)."""
    from level_store_supabase import get_level_store

    store = get_level_store()
    subjects = [subject] if subject else list(SUBJECTS)

    total = 0
    passed = 0
    failed = 0

    for subject_id in subjects:
        for section in store.list_sections(subject_id):
            for level in store.list_levels(subject_id, section['id']):
                total += 1
                label = f"{subject_id}/{section['id']}/level {level.get('levelIndex', '?')}"
                errors, warnings_list = check_level(subject_id, level)

                if errors:
                    failed += 1
                    print(f"\n✗ {label} ({level.get('name', '?')})")
                    for err in errors:
                        print(f"  ERROR: {err}")
                    for warn in warnings_list:
                        print(f"  WARNING: {warn}")
                elif warnings_list:
                    passed += 1
                    print(f"\n⚠ {label} ({level.get('name', '?')})")
                    for warn in warnings_list:
                        print(f"  WARNING: {warn}")
                else:
                    passed += 1
                    print(f"✓ {label}")

    print(f"\n{'='*40}")
    print(f"Total: {total}  Passed: {passed}  Failed: {failed}")

    return total, passed, failed


if __name__ == "__main__":
    subject_arg = sys.argv[1] if len(sys.argv) > 1 else None
    if subject_arg and subject_arg not in SUBJECTS:
        print(f"ERROR: Unknown subject '{subject_arg}'. Expected one of {list(SUBJECTS)}")
        sys.exit(2)
    total, passed, failed = validate_all(subject_arg)
    sys.exit(1 if failed > 0 else 0)
