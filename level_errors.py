"""
Level Authoring Errors
======================

Exceptions raised by the catalog, validator, builder, wizard and stores.

Authoring errors (LevelAuthoringError) are recoverable: the author fixes the
input and resubmits. Store errors (StoreError) come from the persistence
layer and are surfaced as a generic failure banner.
"""


class LevelAuthoringError(Exception):
    """Base class for input and workflow errors."""


class ValidationFailed(LevelAuthoringError):
    """One or more stage/level field constraints are unmet.

    `violations` is a list of {'field': ..., 'message': ...} dicts, one per
    violated constraint.
    """

    def __init__(self, violations, message=None):
        self.violations = list(violations)
        if message is None:
            message = "; ".join(v['message'] for v in self.violations) or "Validation failed"
        super().__init__(message)


class MissingRequiredField(LevelAuthoringError):
    def __init__(self, field, message=None):
        self.field = field
        super().__init__(message or f"Missing required field: '{field}'")


class EmptyStageList(LevelAuthoringError):
    def __init__(self, message="At least one stage is required"):
        super().__init__(message)


class TooManyStages(LevelAuthoringError):
    def __init__(self, game_type='catching'):
        self.game_type = game_type
        super().__init__(f"{game_type.capitalize()} game type only allows one stage")


class UnknownSubject(LevelAuthoringError):
    def __init__(self, subject):
        self.subject = subject
        super().__init__(f"Unknown subject: '{subject}'")


class UnknownGameType(LevelAuthoringError):
    def __init__(self, subject, game_type):
        self.subject = subject
        self.game_type = game_type
        super().__init__(f"Game type '{game_type}' is not defined for subject '{subject}'")


class WizardStepError(LevelAuthoringError):
    """An action was sent for a step the wizard is not on."""


class SubmitInProgress(LevelAuthoringError):
    def __init__(self, message="A save is already in progress"):
        super().__init__(message)


class StoreError(Exception):
    """Base class for persistence failures."""


class StoreUnavailable(StoreError):
    pass


class NotFound(StoreError):
    pass


class AlreadyExists(StoreError):
    pass
