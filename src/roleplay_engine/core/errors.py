from __future__ import annotations


class RoleplayError(Exception):
    pass


class InvalidTurnOrder(RoleplayError):
    """Turn order references unknown characters or the GM character."""


class AttachmentFetchFailed(RoleplayError):
    pass


class IdentityResolutionFailed(RoleplayError):
    def __init__(self, character_id: str, reason: str = "unresolved"):
        super().__init__(f"{character_id}: {reason}")
        self.character_id = character_id
        self.reason = reason


class SessionNotFound(RoleplayError):
    pass


class CharacterNotFound(RoleplayError):
    pass


class InvalidClassification(RoleplayError, ValueError):
    pass


class InvalidInformation(RoleplayError, ValueError):
    pass


class InvalidColor(RoleplayError, ValueError):
    pass
