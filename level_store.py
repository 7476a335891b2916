#!/usr/bin/env python3
"""
Level Storage Manager
=====================

Stores subjects, sections and levels as JSON documents on the local
filesystem. Same API as LevelStoreSupabase, for development and tests.

Storage structure:
    levels_data/
    ├── alphabet/
    │   ├── subject.json               # Subject document
    │   └── sections/
    │       ├── section1/
    │       │   ├── section.json       # Section document
    │       │   └── levels/
    │       │       ├── 3f9c0a....json # One file per level
    │       │       └── ...
    │       └── section2/
    │           └── ...
    └── numbers/
        └── ...

Deletes remove only the document itself: deleting a section leaves its
levels/ folder on disk, the same way the document store keeps
sub-collections of a deleted parent.
"""

import json
import os
import uuid
from datetime import datetime
from pathlib import Path

from game_catalog import check_subject
from level_builder import next_level_index
from level_errors import AlreadyExists, NotFound, StoreUnavailable
from section_allocator import next_section_id, section_number


def _now():
    return datetime.now().isoformat()


def _safe_name(value):
    """Sanitize an id for use as a path component."""
    safe = "".join(c for c in str(value) if c.isalnum() or c in '-_').strip()
    if not safe:
        raise ValueError(f"Invalid document id: {value!r}")
    return safe


class LevelStore:
    def __init__(self, base_path='levels_data'):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    # Paths

    def _subject_dir(self, subject_id):
        return self.base_path / _safe_name(subject_id)

    def _section_dir(self, subject_id, section_id):
        return self._subject_dir(subject_id) / 'sections' / _safe_name(section_id)

    def _levels_dir(self, subject_id, section_id):
        return self._section_dir(subject_id, section_id) / 'levels'

    def _level_file(self, subject_id, section_id, level_id):
        return self._levels_dir(subject_id, section_id) / f"{_safe_name(level_id)}.json"

    # File helpers

    def _read(self, path):
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"Cannot read {path}: {e}") from e

    def _write(self, path, data):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix('.tmp')
            with open(tmp_path, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {path}: {e}") from e

    def _merge(self, path, fields, what):
        if not path.exists():
            raise NotFound(f"{what} not found")
        data = self._read(path)
        data.update({k: v for k, v in fields.items() if k != 'id'})
        data['updatedAt'] = _now()
        self._write(path, data)
        return data

    def _delete(self, path):
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StoreUnavailable(f"Cannot delete {path}: {e}") from e
        return True

    # ===================================
    # Subjects
    # ===================================

    def list_subjects(self):
        subjects = []
        for item in sorted(self.base_path.iterdir()):
            subject_file = item / 'subject.json'
            if item.is_dir() and subject_file.exists():
                subjects.append({'id': item.name, **self._read(subject_file)})
        return subjects

    def get_subject(self, subject_id):
        subject_file = self._subject_dir(subject_id) / 'subject.json'
        if not subject_file.exists():
            return None
        return {'id': subject_id, **self._read(subject_file)}

    def create_subject(self, subject_id, data):
        """Create a subject document. Refuses to overwrite an existing one."""
        check_subject(subject_id)
        subject_file = self._subject_dir(subject_id) / 'subject.json'
        if subject_file.exists():
            raise AlreadyExists(f"Subject already exists: {subject_id}")
        now = _now()
        record = {k: v for k, v in data.items() if k != 'id'}
        record.update({'createdAt': now, 'updatedAt': now})
        self._write(subject_file, record)

    def update_subject(self, subject_id, data):
        self._merge(self._subject_dir(subject_id) / 'subject.json', data, f"Subject {subject_id}")

    def delete_subject(self, subject_id):
        return self._delete(self._subject_dir(subject_id) / 'subject.json')

    # ===================================
    # Sections
    # ===================================

    def list_sections(self, subject_id):
        sections_dir = self._subject_dir(subject_id) / 'sections'
        if not sections_dir.exists():
            return []
        sections = []
        for item in sections_dir.iterdir():
            section_file = item / 'section.json'
            if item.is_dir() and section_file.exists():
                sections.append({'id': item.name, **self._read(section_file)})
        sections.sort(key=lambda s: (section_number(s['id']) or 0, s['id']))
        return sections

    def get_section(self, subject_id, section_id):
        section_file = self._section_dir(subject_id, section_id) / 'section.json'
        if not section_file.exists():
            return None
        return {'id': section_id, **self._read(section_file)}

    def create_section(self, subject_id, data):
        """Create a section with the next sequential id. Returns the id."""
        check_subject(subject_id)
        existing = [s['id'] for s in self.list_sections(subject_id)]
        section_id = next_section_id(existing, self._orphaned_section_ids(subject_id))

        now = _now()
        record = {k: v for k, v in data.items() if k != 'id' and v is not None}
        record.update({'createdAt': now, 'updatedAt': now})
        self._write(self._section_dir(subject_id, section_id) / 'section.json', record)
        print(f"[Store] Created section {subject_id}/{section_id}")
        return section_id

    def update_section(self, subject_id, section_id, data):
        self._merge(self._section_dir(subject_id, section_id) / 'section.json', data,
                    f"Section {subject_id}/{section_id}")

    def delete_section(self, subject_id, section_id):
        """Delete the section document. Its levels are left in place."""
        return self._delete(self._section_dir(subject_id, section_id) / 'section.json')

    def _orphaned_section_ids(self, subject_id):
        """Ids of deleted sections whose levels are still on disk."""
        sections_dir = self._subject_dir(subject_id) / 'sections'
        if not sections_dir.exists():
            return []
        return [
            item.name for item in sections_dir.iterdir()
            if item.is_dir() and not (item / 'section.json').exists()
            and (item / 'levels').is_dir() and any((item / 'levels').glob('*.json'))
        ]

    # ===================================
    # Levels
    # ===================================

    def list_levels(self, subject_id, section_id):
        """All levels of a section, ascending by levelIndex."""
        levels_dir = self._levels_dir(subject_id, section_id)
        if not levels_dir.exists():
            return []
        levels = []
        for level_file in levels_dir.glob('*.json'):
            levels.append({'id': level_file.stem, **self._read(level_file)})
        levels.sort(key=lambda lvl: (lvl.get('levelIndex', 0), lvl['id']))
        return levels

    def get_level(self, subject_id, section_id, level_id):
        level_file = self._level_file(subject_id, section_id, level_id)
        if not level_file.exists():
            return None
        return {'id': level_id, **self._read(level_file)}

    def create_level(self, subject_id, section_id, level):
        """Store a new level with levelIndex = max + 1. Returns the level id."""
        check_subject(subject_id)
        level_index = next_level_index(self.list_levels(subject_id, section_id))
        level_id = uuid.uuid4().hex[:20]

        now = _now()
        record = {k: v for k, v in level.items() if k not in ('id', 'levelIndex')}
        record.update({'levelIndex': level_index, 'createdAt': now, 'updatedAt': now})
        self._write(self._level_file(subject_id, section_id, level_id), record)
        return level_id

    def update_level(self, subject_id, section_id, level_id, data):
        self._merge(self._level_file(subject_id, section_id, level_id), data,
                    f"Level {subject_id}/{section_id}/{level_id}")

    def delete_level(self, subject_id, section_id, level_id):
        return self._delete(self._level_file(subject_id, section_id, level_id))
