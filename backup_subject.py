#!/usr/bin/env python3
"""
Backup a subject's sections and levels to a JSON file.

Dumps the subject document, every section and every section's levels from
the configured level store into backups/{subject}.json. Commit the file to
git for version history.

Usage:
    python3 backup_subject.py --subject alphabet
"""

import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from game_catalog import SUBJECTS
from level_store_supabase import get_level_store


def dump_subject(store, subject):
    """Collect the subject tree as one JSON-serializable dict."""
    sections = []
    for section in store.list_sections(subject):
        sections.append({
            **section,
            'levels': store.list_levels(subject, section['id']),
        })
    return {
        'subject': store.get_subject(subject),
        'sections': sections,
    }


def backup_subject(subject, store=None, backups_dir=None):
    """Backup a subject to backups/{subject}.json.

    Returns the number of levels backed up, or -1 on error.
    """
    if store is None:
        store = get_level_store()
    tree = dump_subject(store, subject)

    if tree['subject'] is None and not tree['sections']:
        print(f"ERROR: No data found for subject '{subject}'")
        return -1

    if backups_dir is None:
        script_dir = os.path.dirname(os.path.abspath(__file__))
        backups_dir = os.path.join(script_dir, 'backups')
    os.makedirs(backups_dir, exist_ok=True)

    backup_path = os.path.join(backups_dir, f'{subject}.json')
    with open(backup_path, 'w') as f:
        json.dump(tree, f, indent=2)

    level_count = sum(len(s['levels']) for s in tree['sections'])
    print(f"Backed up {len(tree['sections'])} sections, {level_count} levels to backups/{subject}.json")
    return level_count


def main():
    if '--subject' not in sys.argv:
        print("Usage: python3 backup_subject.py --subject alphabet")
        return 1

    idx = sys.argv.index('--subject')
    if idx + 1 >= len(sys.argv):
        print("ERROR: --subject requires a subject name")
        return 1

    subject = sys.argv[idx + 1]
    if subject not in SUBJECTS:
        print(f"ERROR: Unknown subject '{subject}'. Expected one of {list(SUBJECTS)}")
        return 1

    result = backup_subject(subject)
    return 0 if result >= 0 else 1


if __name__ == '__main__':
    sys.exit(main())
