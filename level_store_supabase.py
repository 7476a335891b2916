#!/usr/bin/env python3
"""
Level Storage Manager - Supabase Backend
========================================

Stores subjects, sections and levels in Supabase PostgreSQL.
Maintains same API as file-based LevelStore for compatibility.

Tables:
    subjects - id (alphabet/numbers/colors/shapes), name, description
    sections - (subject_id, section_id) unique; name, title, description,
               background_image
    levels   - uuid id; subject_id, section_id, level_index, name, title,
               icon (jsonb), game_type, stages (jsonb)

There are no foreign-key cascades: deleting a section leaves its levels
rows in place.
"""

import os
import subprocess
from datetime import datetime
from typing import Dict, List, Optional

from dotenv import load_dotenv
from supabase import Client, create_client

from game_catalog import check_subject
from level_builder import next_level_index
from level_errors import AlreadyExists, NotFound, StoreUnavailable
from section_allocator import next_section_id, section_number

# Load environment variables; search multiple locations for .env
# (worktrees don't share the main repo's .env)
_script_dir = os.path.dirname(os.path.abspath(__file__))


def _find_dotenv():
    """Find .env file: local dir, then main git repo root."""
    # 1. Standard: same directory as this script
    local_env = os.path.join(_script_dir, '.env')
    if os.path.isfile(local_env):
        return local_env
    # 2. Git worktree: find the main repo and check there
    try:
        main_tree = subprocess.check_output(
            ['git', 'worktree', 'list', '--porcelain'],
            cwd=_script_dir, stderr=subprocess.DEVNULL
        ).decode()
    except (OSError, subprocess.CalledProcessError):
        return None
    for line in main_tree.splitlines():
        if line.startswith('worktree '):
            candidate = os.path.join(line.split(' ', 1)[1], '.env')
            if os.path.isfile(candidate):
                return candidate
    return None


_env_path = _find_dotenv()
if _env_path:
    load_dotenv(_env_path)
    print(f"Loaded .env from {_env_path}")
else:
    print(f"[WARNING] No .env file found in {_script_dir} or any git worktree root, using process environment")


# Document field <-> column name
_SUBJECT_COLUMNS = {'name': 'name', 'description': 'description'}
_SECTION_COLUMNS = {
    'name': 'name',
    'title': 'title',
    'description': 'description',
    'backgroundImage': 'background_image',
}
_LEVEL_COLUMNS = {
    'levelIndex': 'level_index',
    'name': 'name',
    'title': 'title',
    'icon': 'icon',
    'gameType': 'game_type',
    'stages': 'stages',
}


def _now():
    return datetime.now().isoformat()


def _to_row(fields, columns):
    return {columns[k]: v for k, v in fields.items() if k in columns}


def _from_row(row, columns):
    doc = {field: row.get(column) for field, column in columns.items() if column in row}
    if 'created_at' in row:
        doc['createdAt'] = row['created_at']
    if 'updated_at' in row:
        doc['updatedAt'] = row['updated_at']
    return doc


class LevelStoreSupabase:
    """Supabase-backed level storage with same API as file-based LevelStore."""

    def __init__(self, client: Optional[Client] = None):
        if client is None:
            url = os.environ.get("SUPABASE_URL")
            key = os.environ.get("SUPABASE_ANON_KEY")

            if not url or not key:
                raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment")

            client = create_client(url, key)
        self.client = client

    def _execute(self, query, action):
        """Run a query; any client/network failure becomes StoreUnavailable."""
        try:
            return query.execute()
        except Exception as e:
            raise StoreUnavailable(f"Supabase {action} failed: {e}") from e

    # ===================================
    # Subjects
    # ===================================

    def list_subjects(self) -> List[Dict]:
        result = self._execute(self.client.table('subjects').select('*').order('id'), 'list subjects')
        return [{'id': row['id'], **_from_row(row, _SUBJECT_COLUMNS)} for row in result.data or []]

    def get_subject(self, subject_id: str) -> Optional[Dict]:
        result = self._execute(
            self.client.table('subjects').select('*').eq('id', subject_id), 'get subject')
        if not result.data:
            return None
        row = result.data[0]
        return {'id': row['id'], **_from_row(row, _SUBJECT_COLUMNS)}

    def create_subject(self, subject_id: str, data: Dict) -> None:
        """Create a subject row. Refuses to overwrite an existing one."""
        check_subject(subject_id)
        if self.get_subject(subject_id) is not None:
            raise AlreadyExists(f"Subject already exists: {subject_id}")

        now = _now()
        record = _to_row(data, _SUBJECT_COLUMNS)
        record.update({'id': subject_id, 'created_at': now, 'updated_at': now})
        self._execute(self.client.table('subjects').insert(record), 'create subject')

    def update_subject(self, subject_id: str, data: Dict) -> None:
        record = _to_row(data, _SUBJECT_COLUMNS)
        record['updated_at'] = _now()
        result = self._execute(
            self.client.table('subjects').update(record).eq('id', subject_id), 'update subject')
        if not result.data:
            raise NotFound(f"Subject {subject_id} not found")

    def delete_subject(self, subject_id: str) -> bool:
        result = self._execute(
            self.client.table('subjects').delete().eq('id', subject_id), 'delete subject')
        return bool(result.data)

    # ===================================
    # Sections
    # ===================================

    def list_sections(self, subject_id: str) -> List[Dict]:
        result = self._execute(
            self.client.table('sections').select('*').eq('subject_id', subject_id), 'list sections')
        sections = [{'id': row['section_id'], **_from_row(row, _SECTION_COLUMNS)} for row in result.data or []]
        sections.sort(key=lambda s: (section_number(s['id']) or 0, s['id']))
        return sections

    def get_section(self, subject_id: str, section_id: str) -> Optional[Dict]:
        result = self._execute(
            self.client.table('sections').select('*').eq(
                'subject_id', subject_id
            ).eq('section_id', section_id), 'get section')
        if not result.data:
            return None
        row = result.data[0]
        return {'id': row['section_id'], **_from_row(row, _SECTION_COLUMNS)}

    def create_section(self, subject_id: str, data: Dict) -> str:
        """Create a section with the next sequential id. Returns the id."""
        check_subject(subject_id)
        existing = [s['id'] for s in self.list_sections(subject_id)]
        section_id = next_section_id(existing, self._orphaned_section_ids(subject_id, existing))

        now = _now()
        record = _to_row({k: v for k, v in data.items() if v is not None}, _SECTION_COLUMNS)
        record.update({
            'subject_id': subject_id,
            'section_id': section_id,
            'created_at': now,
            'updated_at': now,
        })
        self._execute(self.client.table('sections').insert(record), 'create section')
        print(f"[Store] Created section {subject_id}/{section_id}")
        return section_id

    def update_section(self, subject_id: str, section_id: str, data: Dict) -> None:
        record = _to_row(data, _SECTION_COLUMNS)
        record['updated_at'] = _now()
        result = self._execute(
            self.client.table('sections').update(record).eq(
                'subject_id', subject_id
            ).eq('section_id', section_id), 'update section')
        if not result.data:
            raise NotFound(f"Section {subject_id}/{section_id} not found")

    def delete_section(self, subject_id: str, section_id: str) -> bool:
        """Delete the section row. Its levels are left in place."""
        result = self._execute(
            self.client.table('sections').delete().eq(
                'subject_id', subject_id
            ).eq('section_id', section_id), 'delete section')
        return bool(result.data)

    def _orphaned_section_ids(self, subject_id: str, live_ids: List[str]) -> List[str]:
        """Section ids still referenced by levels rows whose section is gone."""
        result = self._execute(
            self.client.table('levels').select('section_id').eq('subject_id', subject_id), 'list level sections')
        return sorted({row['section_id'] for row in result.data or []} - set(live_ids))

    # ===================================
    # Levels
    # ===================================

    def list_levels(self, subject_id: str, section_id: str) -> List[Dict]:
        """All levels of a section, ascending by levelIndex."""
        result = self._execute(
            self.client.table('levels').select('*').eq(
                'subject_id', subject_id
            ).eq('section_id', section_id).order('level_index'), 'list levels')
        return [{'id': row['id'], **_from_row(row, _LEVEL_COLUMNS)} for row in result.data or []]

    def get_level(self, subject_id: str, section_id: str, level_id: str) -> Optional[Dict]:
        result = self._execute(
            self.client.table('levels').select('*').eq(
                'subject_id', subject_id
            ).eq('section_id', section_id).eq('id', level_id), 'get level')
        if not result.data:
            return None
        row = result.data[0]
        return {'id': row['id'], **_from_row(row, _LEVEL_COLUMNS)}

    def create_level(self, subject_id: str, section_id: str, level: Dict) -> str:
        """Insert a new level with levelIndex = max + 1. Returns the level id."""
        check_subject(subject_id)
        level_index = next_level_index(self.list_levels(subject_id, section_id))

        now = _now()
        record = _to_row({k: v for k, v in level.items() if k != 'levelIndex'}, _LEVEL_COLUMNS)
        record.update({
            'subject_id': subject_id,
            'section_id': section_id,
            'level_index': level_index,
            'created_at': now,
            'updated_at': now,
        })
        result = self._execute(self.client.table('levels').insert(record), 'create level')
        if not result.data:
            raise StoreUnavailable("Failed to save level")
        return result.data[0]['id']

    def update_level(self, subject_id: str, section_id: str, level_id: str, data: Dict) -> None:
        record = _to_row(data, _LEVEL_COLUMNS)
        record['updated_at'] = _now()
        result = self._execute(
            self.client.table('levels').update(record).eq(
                'subject_id', subject_id
            ).eq('section_id', section_id).eq('id', level_id), 'update level')
        if not result.data:
            raise NotFound(f"Level {subject_id}/{section_id}/{level_id} not found")

    def delete_level(self, subject_id: str, section_id: str, level_id: str) -> bool:
        result = self._execute(
            self.client.table('levels').delete().eq(
                'subject_id', subject_id
            ).eq('section_id', section_id).eq('id', level_id), 'delete level')
        return bool(result.data)


# Factory function: backend picked by LEVEL_STORE (default: supabase)
def get_level_store():
    """Get the configured level store instance. Raises if not configured."""
    backend = os.environ.get("LEVEL_STORE", "supabase").strip().lower()
    if backend == 'local':
        from level_store import LevelStore
        return LevelStore(os.environ.get("LEVEL_STORE_PATH", "levels_data"))
    if backend != 'supabase':
        raise ValueError(f"Unknown LEVEL_STORE '{backend}'. Expected 'supabase' or 'local'.")

    url = os.environ.get("SUPABASE_URL")
    if not url:
        raise ValueError("SUPABASE_URL not set in environment. Check .env file.")
    return LevelStoreSupabase()
