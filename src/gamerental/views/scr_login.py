import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

import gamerental.db.crud as crud
from gamerental import config
from gamerental.utils.logger import get_logger
from gamerental.utils.messages import UserLoginMessage
from gamerental.utils.validation import (
    full_phone_number,
    is_valid_login,
    is_valid_password,
    is_valid_phone_number,
)
from gamerental.views.base_screen import BaseScreen
from gamerental.views.modal_dialog import QuitDialogModal, SimpleDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Log in or create a customer account. Dismissed once a user has logged in;
    the user is then available on app.state.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Log In", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Log In", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Username")
                    yield Input(placeholder="alice", id="input-login-user")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Log In", id="btn-login", variant="primary")

            with TabPane("Create User", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label(f"Username (at most {config.MAX_LOGIN_LENGTH} characters)")
                    yield Input(
                        id="input-reg-user", max_length=config.MAX_LOGIN_LENGTH
                    )
                    yield Label(
                        f"Password (at most {config.MAX_PASSWORD_LENGTH} characters)"
                    )
                    yield Input(
                        placeholder="*********",
                        password=True,
                        id="input-reg-pwd",
                        max_length=config.MAX_PASSWORD_LENGTH,
                    )
                    yield Label("Phone Number (+1 assumed)")
                    yield Input(placeholder="123-456-7890", id="input-reg-phone")
                    with Container(id="div-reg-btns"):
                        yield Button("Create User", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-user").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "enter" and self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        if event.key == "enter" and self.focused == self.query_one("#input-reg-phone"):
            self.handle_registration_submit()

    def _mark_invalid(self, input_id: str, message: str) -> None:
        widget = self.query_one(input_id, Input)
        widget.add_class("-invalid")
        widget.focus()
        self.notify(message, severity="error")

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        login = self.query_one("#input-login-user", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value

        if not login or not pwd:
            self.notify("Username or password cannot be empty!", severity="error")
            return

        try:
            user = await crud.login(login, pwd)
        except aiosqlite.Error as e:
            _logger.error(f"Login lookup failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        if user:
            self.app.state.start_session(user.login, user.role)
            _logger.info(f"{user.login!r} logged in as {user.role}")

            self.notify(f"Welcome, {user.login}!")
            self.app.post_message(UserLoginMessage())
            self.dismiss()
        else:
            self.notify("Incorrect username or password.", severity="error")
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        login = self.query_one("#input-reg-user", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value
        phone = self.query_one("#input-reg-phone", Input).value.strip()

        if not is_valid_login(login):
            self._mark_invalid("#input-reg-user", "Invalid username.")
            return
        if not is_valid_password(pwd):
            self._mark_invalid("#input-reg-pwd", "Invalid password.")
            return
        if not is_valid_phone_number(phone):
            self._mark_invalid("#input-reg-phone", "Phone number must look like 123-456-7890.")
            return

        try:
            if not await crud.username_available(login):
                self._mark_invalid("#input-reg-user", "Username already taken.")
                return
            await crud.create_user(login, pwd, full_phone_number(phone))
        except aiosqlite.Error as e:
            _logger.error(f"Account creation failed for {login!r}: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        await self.app.push_screen_wait(
            SimpleDialogModal(f"Account {login} created successfully.")
        )

        self.get_child_by_type(TabbedContent).active = "tab-login"
        input_login_user = self.query_one("#input-login-user", Input)
        input_login_pwd = self.query_one("#input-login-pwd", Input)

        input_login_user.value = login
        input_login_pwd.value = pwd
        input_login_pwd.focus()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
