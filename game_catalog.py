"""
Game Type Catalog - Shared Definitions
======================================

Single source of truth for subjects, game types, default icons and the
option libraries (colors, shapes) used by validate_stage.py,
level_builder.py and the authoring wizard.

Every table here is built once at import and never mutated.
"""

from collections import namedtuple
from types import MappingProxyType

from level_errors import UnknownGameType, UnknownSubject

SUBJECTS = ('alphabet', 'numbers', 'colors', 'shapes')

# Authorable game types per subject, in wizard display order
GAME_TYPES = MappingProxyType({
    'alphabet': ('phonics', 'image', 'catching', 'tracing', 'cards', 'sound', 'matching', 'mixed'),
    'numbers': ('counting', 'dragndrop', 'catching'),
    'colors': ('colorMultipleChoice', 'catching', 'rocket', 'matching'),
    'shapes': ('shapesMultipleChoice', 'rocketShapes', 'racing', 'catching'),
})

# Concrete types a 'mixed' stage may declare
MIXED_SUBTYPES = MappingProxyType({
    'alphabet': ('phonics', 'image', 'cards', 'sound'),
})

# Game types capped at one stage per level
SINGLE_STAGE_GAME_TYPES = frozenset({'catching'})

REQUIRED_FIELDS = MappingProxyType({
    'alphabet': MappingProxyType({
        'phonics': ('correctLetter', 'choices'),
        'image': ('correctLetter', 'choices'),
        'catching': ('correctLetter', 'choices'),
        'tracing': ('letter', 'strokeOrder'),
        'cards': ('cardPairs',),
        'sound': ('soundPairs',),
        'matching': ('cardPairs',),
        'mixed': ('gameType',),
    }),
    'numbers': MappingProxyType({
        'counting': ('correctAnswer', 'imageCount', 'choices'),
        'dragndrop': ('correctCount',),
        'catching': ('correctNumber',),
    }),
    'colors': MappingProxyType({
        'colorMultipleChoice': ('correctColor',),
        'catching': ('correctColor',),
        'rocket': ('correctChoice',),
        'matching': ('colors',),
    }),
    'shapes': MappingProxyType({
        'shapesMultipleChoice': ('correctShape',),
        'rocketShapes': ('correctShape',),
        'racing': ('correctShape',),
        'catching': ('correctShape',),
    }),
})

# ---------------------------------------------------------------------------
# Icons: must match the icon sets supported by the mobile app
# ---------------------------------------------------------------------------

Icon = namedtuple('Icon', ['set', 'name'])

VALID_ICON_SETS = frozenset({'MaterialIcons', 'FontAwesome', 'FontAwesome5'})

GAME_TYPE_ICONS = MappingProxyType({
    'alphabet': MappingProxyType({
        'phonics': Icon('MaterialIcons', 'volume-up'),
        'image': Icon('MaterialIcons', 'image'),
        'catching': Icon('MaterialIcons', 'shopping-basket'),
        'tracing': Icon('MaterialIcons', 'create'),
        'cards': Icon('MaterialIcons', 'style'),
        'sound': Icon('MaterialIcons', 'volume-up'),
        'matching': Icon('MaterialIcons', 'extension'),
        'mixed': Icon('MaterialIcons', 'star'),
    }),
    'numbers': MappingProxyType({
        'counting': Icon('MaterialIcons', 'filter-9-plus'),
        'dragndrop': Icon('MaterialIcons', 'touch-app'),
        'catching': Icon('MaterialIcons', 'shopping-basket'),
    }),
    'colors': MappingProxyType({
        'colorMultipleChoice': Icon('MaterialIcons', 'palette'),
        'catching': Icon('MaterialIcons', 'shopping-basket'),
        'rocket': Icon('FontAwesome5', 'rocket'),
        'matching': Icon('MaterialIcons', 'extension'),
    }),
    'shapes': MappingProxyType({
        'shapesMultipleChoice': Icon('MaterialIcons', 'category'),
        'rocketShapes': Icon('FontAwesome5', 'rocket'),
        'racing': Icon('FontAwesome5', 'car'),
        'catching': Icon('MaterialIcons', 'shopping-basket'),
    }),
})

# Subjects whose icon is picked by the author rather than the game type
AUTHOR_CHOSEN_ICON_SUBJECTS = frozenset({'alphabet', 'numbers'})

DEFAULT_ICONS = MappingProxyType({
    'alphabet': Icon('MaterialIcons', 'star'),
    'numbers': Icon('MaterialIcons', 'looks-one'),
})

# ---------------------------------------------------------------------------
# Option libraries
# ---------------------------------------------------------------------------

AVAILABLE_COLORS = (
    'red', 'orange', 'yellow', 'gray', 'brown', 'green',
    'white', 'black', 'pink', 'violet', 'blue',
)

# Catching uses a reduced palette (no gray, brown or pink sprites)
CATCH_COLORS = ('black', 'blue', 'green', 'orange', 'red', 'violet', 'white', 'yellow')

# Placeholder value of an unselected color slot
UNSET_COLOR = '-'

# shapesLibrary (shapesMultipleChoice, rocketShapes)
SHAPES_LIBRARY = (
    'circle', 'square', 'triangle', 'star', 'heart',
    'diamond', 'rectangle', 'oval', 'crescent',
)

# CatchShapes (catching, racing): rhombus instead of diamond
CATCH_SHAPES = (
    'circle', 'crescent', 'heart', 'oval', 'rectangle',
    'rhombus', 'square', 'star', 'triangle',
)

VOWELS = frozenset({'A', 'E', 'I', 'O', 'U'})

# Marker stored in correctLetter when a catching stage targets all vowels
VOWELS_MARKER = 'vowels'


GameTypeInfo = namedtuple('GameTypeInfo', ['subject', 'game_type', 'required_fields', 'icon'])


def check_subject(subject):
    """Raise UnknownSubject unless subject is in the closed set."""
    if subject not in SUBJECTS:
        raise UnknownSubject(subject)
    return subject


def get_game_type(subject, game_type):
    """Look up a (subject, game_type) pair. Raises UnknownGameType if undefined."""
    check_subject(subject)
    if game_type not in GAME_TYPES[subject]:
        raise UnknownGameType(subject, game_type)
    return GameTypeInfo(
        subject=subject,
        game_type=game_type,
        required_fields=REQUIRED_FIELDS[subject][game_type],
        icon=GAME_TYPE_ICONS[subject][game_type],
    )


def icon_for(subject, game_type, chosen=None):
    """
    Resolve the icon stored on a level.

    colors/shapes: always the catalog icon for the game type.
    alphabet/numbers: the author's choice (set + name, not checked for
    existence), or the subject default when nothing was chosen.

    Returns a plain dict {'set': ..., 'name': ...}.
    """
    info = get_game_type(subject, game_type)
    if subject not in AUTHOR_CHOSEN_ICON_SUBJECTS:
        return dict(info.icon._asdict())

    default = DEFAULT_ICONS[subject]
    if not chosen:
        return dict(default._asdict())
    if isinstance(chosen, (tuple, list)):
        icon_set, icon_name = chosen
    else:
        icon_set, icon_name = chosen.get('set'), chosen.get('name')
    return {
        'set': (icon_set or '').strip() or default.set,
        'name': (icon_name or '').strip() or default.name,
    }


def is_single_stage(game_type):
    return game_type in SINGLE_STAGE_GAME_TYPES


def allowed_stage_types(subject, game_type):
    """Concrete types a stage of this level may carry."""
    get_game_type(subject, game_type)
    if game_type == 'mixed':
        return MIXED_SUBTYPES.get(subject, ())
    return (game_type,)


def catalog_summary(subject=None):
    """JSON-friendly dump of the catalog, for the /catalog endpoint."""
    subjects = [check_subject(subject)] if subject else list(SUBJECTS)
    summary = {}
    for s in subjects:
        summary[s] = {
            'gameTypes': [
                {
                    'gameType': gt,
                    'requiredFields': list(REQUIRED_FIELDS[s][gt]),
                    'icon': dict(GAME_TYPE_ICONS[s][gt]._asdict()),
                    'singleStage': is_single_stage(gt),
                }
                for gt in GAME_TYPES[s]
            ],
            'authorChosenIcon': s in AUTHOR_CHOSEN_ICON_SUBJECTS,
        }
        if s in MIXED_SUBTYPES:
            summary[s]['mixedSubtypes'] = list(MIXED_SUBTYPES[s])
    if subject == 'colors' or subject is None:
        summary['colors']['options'] = {
            'colors': list(AVAILABLE_COLORS),
            'catchColors': list(CATCH_COLORS),
        }
    if subject == 'shapes' or subject is None:
        summary['shapes']['options'] = {
            'shapes': list(SHAPES_LIBRARY),
            'catchShapes': list(CATCH_SHAPES),
        }
    return summary
