"""Error taxonomy shared by the game authority and its collaborators."""


class CubetagError(Exception):
    """Base class for every error raised by this package."""


class ClientProtocolError(CubetagError):
    """Malformed or late client message. Dropped without a reply."""


class ValidationFailure(CubetagError):
    """A well-formed request that the game rules refuse."""


class CollaboratorError(CubetagError):
    """An external collaborator (database, moderation API) failed."""


class PersistenceError(CollaboratorError):
    pass


class ModerationError(CollaboratorError):
    pass


class FatalConfigError(CubetagError):
    """Required configuration is missing; the server must not start."""
