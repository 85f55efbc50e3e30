class GameRentalError(Exception):
    """Base class for errors raised by the rental store itself."""


class ValidationError(GameRentalError, ValueError):
    """User input does not have the required format."""


class NotFoundError(GameRentalError, LookupError):
    """A referenced user, game, order or tracking record does not exist."""


class AuthorizationError(GameRentalError, PermissionError):
    """
    The logged-in user's role does not allow the requested operation.
    """

    def __init__(self, login: str | None, required: tuple[str, ...]):
        self.login = login
        self.required = required
        roles = " or ".join(required)
        super().__init__(f"{login or 'anonymous'} is not authorized ({roles} only)")
