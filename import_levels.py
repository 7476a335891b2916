#!/usr/bin/env python3
"""
Import Levels from YAML
=======================

Reads a YAML file of levels for one section, validates every level and
every stage, and creates them in the configured level store. Nothing is
written unless the whole file validates.

File format:

    subject: alphabet
    section: section1
    levels:
      - name: Letter A
        title: Find the letter A
        gameType: phonics
        icon: {set: MaterialIcons, name: star}
        stages:
          - correctLetter: a
            choices: A, B, C

Usage:
    python3 import_levels.py levels.yaml             # Validate and import
    python3 import_levels.py levels.yaml --dry-run   # Validate only
"""

import sys
import os

import yaml

# Add script directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from level_builder import build_level, create_level
from level_errors import LevelAuthoringError, ValidationFailed
from level_store_supabase import get_level_store


def load_import_file(path):
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def check_import(data):
    """
    Validate every level in an import document.

    Returns a list of error strings, empty when everything is valid. All
    levels are checked so the file can be fixed in one pass.
    """
    errors = []
    subject = data.get('subject')
    if not data.get('section'):
        errors.append("Missing 'section'")
    levels = data.get('levels')
    if not isinstance(levels, list) or not levels:
        errors.append("'levels' must be a non-empty list")
        return errors

    for i, level in enumerate(levels):
        label = f"Level {i} ({level.get('name', '?') if isinstance(level, dict) else '?'})"
        if not isinstance(level, dict):
            errors.append(f"{label}: must be a mapping")
            continue
        try:
            build_level(subject, level.get('gameType'), level.get('name'), level.get('title'),
                        level.get('icon'), level.get('stages') or [])
        except ValidationFailed as e:
            for v in e.violations:
                errors.append(f"{label} ({v['field']}): {v['message']}")
        except LevelAuthoringError as e:
            errors.append(f"{label}: {e}")
    return errors


def import_levels(data, store, dry_run=False):
    """Validate then create the levels. Returns the list of new level ids."""
    errors = check_import(data)
    if errors:
        for err in errors:
            print(f"  ✗ {err}")
        raise ValueError(f"{len(errors)} validation error(s); nothing imported")

    subject = data['subject']
    section_id = data['section']
    if store.get_section(subject, section_id) is None:
        raise ValueError(f"Section not found: {subject}/{section_id}")

    created = []
    for level in data['levels']:
        if dry_run:
            print(f"  {level['name']}: {level['gameType']}, {len(level['stages'])} stages")
            continue
        level_id, _ = create_level(store, subject, section_id, level['gameType'], level['name'],
                                   level['title'], level.get('icon'), level['stages'])
        print(f"[Import] ✓ {level['name']} -> {level_id}")
        created.append(level_id)
    return created


def main():
    args = [a for a in sys.argv[1:] if not a.startswith('--')]
    dry_run = '--dry-run' in sys.argv
    if len(args) != 1:
        print("Usage: python3 import_levels.py levels.yaml [--dry-run]")
        return 1

    try:
        data = load_import_file(args[0])
    except (OSError, yaml.YAMLError, ValueError) as e:
        print(f"ERROR: Cannot read {args[0]}: {e}")
        return 1

    if dry_run:
        print("\n=== DRY RUN: no changes will be written ===\n")

    try:
        created = import_levels(data, get_level_store(), dry_run=dry_run)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\n=== Summary ===")
    if dry_run:
        print(f"Validated: {len(data['levels'])}")
        print(f"\nDry run complete. Run without --dry-run to import.")
    else:
        print(f"Imported: {len(created)}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
