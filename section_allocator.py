"""
Section id allocation.

New sections are named "section" + (number of existing sections + 1). The
count is read and the new id written in two separate calls, so two authors
creating sections at the same moment can collide. The tool is used by one
operator at a time, so this is accepted.
"""

import re

SECTION_PREFIX = 'section'

_SECTION_ID_RE = re.compile(r'^section(\d+)$')


def section_number(section_id):
    """'section12' -> 12, or None for ids outside the sectionN scheme."""
    match = _SECTION_ID_RE.match(section_id or '')
    return int(match.group(1)) if match else None


def next_section_id(existing_ids, used_ids=()):
    """
    Next section id for a subject given the ids already present.

    Starts at count + 1 over the live sections. When a section was deleted
    the count can point at an id that is still live (delete section2 out of
    1..3 and count + 1 is section3), so the number advances until it finds a
    free id instead of overwriting. used_ids are ids of deleted sections that
    still own levels; they are skipped too, so orphaned levels never show up
    under a new section. Existing sections are never renumbered.

    A deleted id that nothing references any more is not remembered: delete
    section3 out of 1..3, with no levels left under it, and the next id is
    section3 again.
    """
    taken = set(existing_ids) | set(used_ids)
    number = len(set(existing_ids)) + 1
    while f"{SECTION_PREFIX}{number}" in taken:
        number += 1
    return f"{SECTION_PREFIX}{number}"
