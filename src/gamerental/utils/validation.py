# pure input checks shared by the screens and the order workflow
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from gamerental import config

_PHONE_RE = re.compile(r"^[0-9]{3}-[0-9]{3}-[0-9]{4}$")
_GAME_ID_RE = re.compile(
    rf"^{config.GAME_ID_PREFIX}[0-9]{{{config.GAME_ID_DIGITS}}}$"
)
_DIGITS_RE = re.compile(r"^[0-9]+$")


def is_valid_login(login: str) -> bool:
    return 0 < len(login) <= config.MAX_LOGIN_LENGTH and not login.isspace()


def is_valid_password(password: str) -> bool:
    return 0 < len(password) <= config.MAX_PASSWORD_LENGTH


def is_valid_phone_number(phone: str) -> bool:
    """Local part of a phone number, e.g. ``123-456-7890`` (country code is added on save)."""
    return bool(_PHONE_RE.fullmatch(phone))


def full_phone_number(phone: str) -> str:
    return config.COUNTRY_CODE + phone


def is_game_id_format(game_id: str) -> bool:
    """``game`` followed by exactly four digits. Existence is checked separately."""
    return bool(_GAME_ID_RE.fullmatch(game_id))


def parse_positive_int(text: str) -> Optional[int]:
    """
    Return the value of a non-empty string of ASCII decimal digits if it is >= 1,
    otherwise None. Signs, spaces and other characters are rejected.
    """
    if not _DIGITS_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value >= 1 else None


def parse_non_negative_int(text: str) -> Optional[int]:
    if not _DIGITS_RE.fullmatch(text):
        return None
    return int(text)


def parse_price(text: str) -> Optional[Decimal]:
    """Non-negative amount with at most two decimal places."""
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        return None
    if not value.is_finite() or value < 0:
        return None
    if value.as_tuple().exponent < -2:
        return None
    return value.quantize(Decimal("0.01"))


def parse_yes_no(text: str) -> Optional[bool]:
    answer = text.strip().lower()
    if answer in ("y", "yes"):
        return True
    if answer in ("n", "no"):
        return False
    return None


def is_valid_role(role: str) -> bool:
    return role in config.ROLES
