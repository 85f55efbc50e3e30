from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when user logged in, so the screen can refresh
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when a new rental order is placed.
    Listened to by the order history screen.
    """

    bubble = True


class CatalogChangedMessage(Message):
    """
    Fired by the manager catalog screen after a game is added, edited or deleted.
    Must be posted at App level to reach screens in other modes.
    """

    bubble = True


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
