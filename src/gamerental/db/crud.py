# src/gamerental/db/crud.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import aiosqlite

from gamerental import config
from gamerental.db import models
from gamerental.db.database import connect, transaction
from gamerental.utils.errors import ValidationError
from gamerental.utils.logger import get_logger

_logger = get_logger(__name__)


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _ts(when: datetime) -> str:
    return when.strftime(config.TIMESTAMP_FORMAT)


def _parse_ts(val: str) -> datetime:
    return datetime.fromisoformat(val)


def _row_to_user(row) -> models.User:
    return models.User(
        login=row["login"],
        password=row["password"],
        role=row["role"],
        fav_games=row["favGames"],
        phone_num=row["phoneNum"],
        num_overdue_games=int(row["numOverDueGames"]),
    )


def _row_to_game(row) -> models.CatalogEntry:
    return models.CatalogEntry(
        game_id=row["gameID"],
        name=row["gameName"],
        genre=row["genre"],
        price=float(row["price"]),
        description=row["description"],
        image_url=row["imageURL"],
    )


def _row_to_order(row) -> models.RentalOrder:
    return models.RentalOrder(
        rental_order_id=row["rentalOrderID"],
        login=row["login"],
        total_copies=int(row["noOfGames"]),
        total_price=float(row["totalPrice"]),
        ordered_at=_parse_ts(row["orderTimestamp"]),
        due_date=_parse_ts(row["dueDate"]),
    )


def _row_to_tracking(row) -> models.TrackingInfo:
    return models.TrackingInfo(
        tracking_id=row["trackingID"],
        rental_order_id=row["rentalOrderID"],
        status=row["status"],
        current_location=row["currentLocation"],
        courier=row["courierName"],
        last_updated=_parse_ts(row["lastUpdateDate"]),
        comments=row["additionalComments"],
    )


_USER_COLS = "login, password, role, favGames, phoneNum, numOverDueGames"
_GAME_COLS = "gameID, gameName, genre, price, description, imageURL"
_ORDER_COLS = "rentalOrderID, login, noOfGames, totalPrice, orderTimestamp, dueDate"
_TRACKING_COLS = (
    "trackingID, rentalOrderID, status, currentLocation, courierName, "
    "lastUpdateDate, additionalComments"
)


# ---------------------------
# Users: Auth & Registration
# ---------------------------


async def username_available(login: str) -> bool:
    """True if no user already registered with the given login."""
    async with connect() as conn:
        cur = await conn.execute("SELECT 1 FROM Users WHERE login = ? LIMIT 1;", (login,))
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def create_user(login: str, password: str, phone_num: str) -> models.User:
    """
    Create a new customer account. phone_num is stored as given, so callers pass
    the full number including country code.
    """
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO Users(login, password, role, favGames, phoneNum, numOverDueGames)
            VALUES (?, ?, 'customer', NULL, ?, 0);
            """,
            (login, password, phone_num),
        )
        await conn.commit()
    _logger.info(f"Created customer account {login!r}")
    return models.User(login, password, "customer", None, phone_num, 0)


async def login(login: str, password: str) -> Optional[models.User]:
    """Return User if login/password match; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_USER_COLS} FROM Users WHERE login = ? AND password = ?;",
            (login, password),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        _logger.debug(f"Failed login for {login!r}")
        return None
    return _row_to_user(row)


async def get_user(login: str) -> Optional[models.User]:
    """Return a User object for the given login, or None if not found."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_USER_COLS} FROM Users WHERE login = ?;", (login,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_user(row) if row else None


async def get_user_role(login: str) -> Optional[str]:
    """Return the role if the user exists; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute("SELECT role FROM Users WHERE login = ?;", (login,))
        row = await cur.fetchone()
        await cur.close()
        return row[0] if row else None


async def check_user_role(login: str, *roles: str) -> bool:
    return (await get_user_role(login)) in roles


async def search_users(query: str) -> List[models.User]:
    """Case-insensitive substring match on login; empty query lists everybody."""
    like = f"%{(query or '').strip().lower()}%"
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_USER_COLS} FROM Users WHERE LOWER(login) LIKE ? ORDER BY login;",
            (like,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_user(row) for row in rows]


async def _update_user_column(login: str, column: str, value) -> bool:
    # column names come from the callers below, never from input
    async with connect() as conn:
        res = await conn.execute(
            f"UPDATE Users SET {column} = ? WHERE login = ?;", (value, login)
        )
        await conn.commit()
        return res.rowcount > 0


async def update_password(login: str, password: str) -> bool:
    return await _update_user_column(login, "password", password)


async def update_phone_number(login: str, phone_num: str) -> bool:
    return await _update_user_column(login, "phoneNum", phone_num)


async def update_favorite_games(login: str, fav_games: str) -> bool:
    return await _update_user_column(login, "favGames", fav_games or None)


async def update_user(
    login: str,
    role: Optional[str] = None,
    num_overdue_games: Optional[int] = None,
    phone_num: Optional[str] = None,
    fav_games: Optional[str] = None,
) -> bool:
    """
    Manager-side update of another user's record. Only provided fields change.
    Return True if a row was updated.
    """
    changes: Dict[str, object] = {}
    if role is not None:
        if role not in config.ROLES:
            raise ValidationError(f"Unknown role {role!r}.")
        changes["role"] = role
    if num_overdue_games is not None:
        if num_overdue_games < 0:
            raise ValidationError("Overdue count cannot be negative.")
        changes["numOverDueGames"] = num_overdue_games
    if phone_num is not None:
        changes["phoneNum"] = phone_num
    if fav_games is not None:
        changes["favGames"] = fav_games or None
    if not changes:
        return False

    assignments = ", ".join(f"{col} = ?" for col in changes)
    async with connect() as conn:
        res = await conn.execute(
            f"UPDATE Users SET {assignments} WHERE login = ?;",
            (*changes.values(), login),
        )
        await conn.commit()
        updated = res.rowcount > 0
    if updated:
        _logger.info(f"Updated user {login!r}: {', '.join(changes)}")
    return updated


# ---------------------------
# ID allocation
# ---------------------------


@dataclass(frozen=True)
class IdSequence:
    """A prefixed, increasing text identifier such as ``gamerentalorder42``."""

    table: str
    column: str
    prefix: str
    width: int = 0  # zero-pad the number to this many digits

    @property
    def last_number(self) -> Optional[int]:
        return 10**self.width - 1 if self.width else None

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}" if self.width else f"{self.prefix}{number}"


ORDER_IDS = IdSequence("RentalOrder", "rentalOrderID", config.ORDER_ID_PREFIX)
TRACKING_IDS = IdSequence("TrackingInfo", "trackingID", config.TRACKING_ID_PREFIX)
GAME_IDS = IdSequence(
    "Catalog", "gameID", config.GAME_ID_PREFIX, width=config.GAME_ID_DIGITS
)

ID_SEED = 1


async def allocate_id(conn: aiosqlite.Connection, seq: IdSequence) -> str:
    """
    Return the next identifier of a sequence: the prefix plus one more than the
    largest numeric suffix in the table, or the prefix plus ID_SEED when the
    table has no such rows.

    Must be called on a connection inside database.transaction() so that the
    read and the following insert are serialized against other writers.
    Raises ValidationError once a fixed-width sequence has used its last number.
    """
    start = len(seq.prefix) + 1
    cur = await conn.execute(
        f"""
        SELECT MAX(CAST(SUBSTR({seq.column}, ?) AS INTEGER))
        FROM {seq.table}
        WHERE {seq.column} GLOB ?
          AND SUBSTR({seq.column}, ?) NOT GLOB '*[^0-9]*';
        """,
        (start, seq.prefix + "[0-9]*", start),
    )
    row = await cur.fetchone()
    await cur.close()
    current = _to_int(row[0]) if row else None
    number = ID_SEED if current is None else current + 1
    if seq.last_number is not None and number > seq.last_number:
        raise ValidationError(
            f"No {seq.table} identifiers left after {seq.format(seq.last_number)}."
        )
    return seq.format(number)


async def next_id(seq: IdSequence) -> str:
    """Preview the next identifier. Not a reservation."""
    async with connect() as conn:
        return await allocate_id(conn, seq)


# ---------------------------
# Catalog
# ---------------------------


async def list_catalog(
    genre: str = "",
    max_price: float = 0.0,
    sort: Literal["ASC", "DESC"] = "DESC",
) -> List[models.CatalogEntry]:
    """
    List catalog entries ordered by price.
    - genre: exact genre match (case-insensitive); empty means any genre.
    - max_price: only games priced strictly below it; 0 or less means no limit.
    - sort: "ASC" or "DESC" by price, then gameID.
    """
    direction = "ASC" if str(sort).upper() == "ASC" else "DESC"
    where: List[str] = []
    params: List[object] = []
    genre = (genre or "").strip()
    if genre:
        where.append("LOWER(genre) = LOWER(?)")
        params.append(genre)
    if max_price and max_price > 0:
        where.append("price < ?")
        params.append(max_price)
    where_clause = ("WHERE " + " AND ".join(where)) if where else ""

    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {_GAME_COLS}
            FROM Catalog
            {where_clause}
            ORDER BY price {direction}, gameID;
            """,
            tuple(params),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_game(row) for row in rows]


async def list_genres() -> List[str]:
    async with connect() as conn:
        cur = await conn.execute("SELECT DISTINCT genre FROM Catalog ORDER BY genre;")
        rows = await cur.fetchall()
        await cur.close()
    return [row[0] for row in rows]


async def search_catalog(query: str) -> List[models.CatalogEntry]:
    """
    Used by the manager screen. Empty -> everything by gameID; otherwise a
    case-insensitive match on gameID, name or genre.
    """
    like = f"%{(query or '').strip().lower()}%"
    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {_GAME_COLS}
            FROM Catalog
            WHERE LOWER(gameID) LIKE ? OR LOWER(gameName) LIKE ? OR LOWER(genre) LIKE ?
            ORDER BY gameID;
            """,
            (like, like, like),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_game(row) for row in rows]


async def get_game(game_id: str) -> Optional[models.CatalogEntry]:
    """Fetch a catalog entry by gameID."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_GAME_COLS} FROM Catalog WHERE gameID = ?;", (game_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_game(row) if row else None


async def game_exists(game_id: str) -> bool:
    async with connect() as conn:
        cur = await conn.execute("SELECT 1 FROM Catalog WHERE gameID = ?;", (game_id,))
        row = await cur.fetchone()
        await cur.close()
        return row is not None


async def get_prices(game_ids: Iterable[str]) -> Dict[str, float]:
    """Return {gameID: price} for every given gameID found, in one query."""
    ids = list(dict.fromkeys(game_ids))
    if not ids:
        return {}
    placeholders = ", ".join("?" * len(ids))
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT gameID, price FROM Catalog WHERE gameID IN ({placeholders});",
            tuple(ids),
        )
        rows = await cur.fetchall()
        await cur.close()
    return {row[0]: float(row[1]) for row in rows}


async def add_game(
    name: str,
    genre: str,
    price: float | Decimal,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> models.CatalogEntry:
    """Insert a new catalog entry under the next free gameID and return it."""
    async with transaction() as conn:
        game_id = await allocate_id(conn, GAME_IDS)
        await conn.execute(
            f"INSERT INTO Catalog({_GAME_COLS}) VALUES (?, ?, ?, ?, ?, ?);",
            (game_id, name, genre, float(price), description, image_url),
        )
    _logger.info(f"Added {game_id} ({name!r}) to the catalog")
    return models.CatalogEntry(
        game_id, name, genre, float(price), description, image_url
    )


async def update_game(
    game_id: str,
    name: Optional[str] = None,
    genre: Optional[str] = None,
    price: Optional[float | Decimal] = None,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> bool:
    """
    Update only the provided fields of a catalog entry. Return True if a row was updated.
    """
    changes: Dict[str, object] = {}
    if name is not None:
        changes["gameName"] = name
    if genre is not None:
        changes["genre"] = genre
    if price is not None:
        if price < 0:
            raise ValidationError("Price cannot be negative.")
        changes["price"] = float(price)
    if description is not None:
        changes["description"] = description or None
    if image_url is not None:
        changes["imageURL"] = image_url or None
    if not changes:
        return False

    assignments = ", ".join(f"{col} = ?" for col in changes)
    async with connect() as conn:
        res = await conn.execute(
            f"UPDATE Catalog SET {assignments} WHERE gameID = ?;",
            (*changes.values(), game_id),
        )
        await conn.commit()
        updated = res.rowcount > 0
    if updated:
        _logger.info(f"Updated {game_id}: {', '.join(changes)}")
    return updated


async def delete_game(game_id: str) -> bool:
    """
    Delete a catalog entry. Games that appear in any rental order are kept
    (their order lines reference them) and False is returned.
    """
    async with transaction() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM GamesInOrder WHERE gameID = ? LIMIT 1;", (game_id,)
        )
        in_use = await cur.fetchone()
        await cur.close()
        if in_use:
            return False
        res = await conn.execute("DELETE FROM Catalog WHERE gameID = ?;", (game_id,))
        deleted = res.rowcount > 0
    if deleted:
        _logger.info(f"Deleted {game_id} from the catalog")
    return deleted


# ---------------------------
# Rental orders
# ---------------------------


async def create_rental_order(
    login: str,
    lines: Sequence[models.CartLine],
    total_copies: int,
    total_price: float | Decimal,
    ordered_at: datetime,
) -> Tuple[models.RentalOrder, models.TrackingInfo]:
    """
    Persist a checkout: the RentalOrder row, its initial TrackingInfo row and
    one GamesInOrder row per cart line, all in a single transaction. If any
    insert fails nothing is written and the error propagates.
    """
    if not lines:
        raise ValueError("An order needs at least one game.")
    ordered_at = ordered_at.replace(microsecond=0)
    due_date = ordered_at + timedelta(days=config.ORDER_DUE_DAYS)

    async with transaction() as conn:
        order_id = await allocate_id(conn, ORDER_IDS)
        await conn.execute(
            f"INSERT INTO RentalOrder({_ORDER_COLS}) VALUES (?, ?, ?, ?, ?, ?);",
            (
                order_id,
                login,
                total_copies,
                float(total_price),
                _ts(ordered_at),
                _ts(due_date),
            ),
        )

        tracking_id = await allocate_id(conn, TRACKING_IDS)
        await conn.execute(
            f"INSERT INTO TrackingInfo({_TRACKING_COLS}) VALUES (?, ?, ?, ?, ?, ?, NULL);",
            (
                tracking_id,
                order_id,
                config.INITIAL_TRACKING_STATUS,
                config.INITIAL_TRACKING_LOCATION,
                config.INITIAL_COURIER,
                _ts(ordered_at),
            ),
        )

        await conn.executemany(
            "INSERT INTO GamesInOrder(rentalOrderID, gameID, unitsOrdered) VALUES (?, ?, ?);",
            [(order_id, line.game_id, line.quantity) for line in lines],
        )

    _logger.info(
        f"Rental order {order_id} placed by {login!r}: "
        f"{total_copies} copies, ${float(total_price):.2f}"
    )
    order = models.RentalOrder(
        order_id, login, total_copies, float(total_price), ordered_at, due_date
    )
    tracking = models.TrackingInfo(
        tracking_id,
        order_id,
        config.INITIAL_TRACKING_STATUS,
        config.INITIAL_TRACKING_LOCATION,
        config.INITIAL_COURIER,
        ordered_at,
        None,
    )
    return order, tracking


async def list_orders(
    login: str, page: int, page_size: int = config.PAGE_SIZE
) -> Tuple[List[models.RentalOrder], int]:
    """
    List a user's rental orders in reverse chronological order, paginated.
    Return (orders_for_page, total_count).
    """
    return await _list_orders_where("WHERE login = ?", (login,), page, page_size)


async def list_all_orders(
    page: int, page_size: int = config.PAGE_SIZE
) -> Tuple[List[models.RentalOrder], int]:
    """Every user's rental orders, newest first. For employees and managers."""
    return await _list_orders_where("", (), page, page_size)


async def _list_orders_where(
    where_clause: str, params: tuple, page: int, page_size: int
) -> Tuple[List[models.RentalOrder], int]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT COUNT(*) FROM RentalOrder {where_clause};", params
        )
        total = (await cur.fetchone())[0]
        await cur.close()
        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT {_ORDER_COLS}
            FROM RentalOrder
            {where_clause}
            ORDER BY orderTimestamp DESC, rentalOrderID DESC
            LIMIT ? OFFSET ?;
            """,
            (*params, page_size, offset),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_order(row) for row in rows], total


async def list_recent_orders(
    login: str, limit: int = config.PAGE_SIZE
) -> List[models.RentalOrder]:
    """The user's most recent rental orders, newest first."""
    orders, _ = await list_orders(login, page=1, page_size=limit)
    return orders


async def get_order_detail(
    order_id: str,
) -> Tuple[Optional[models.RentalOrder], List[models.OrderLine]]:
    """
    Return (order, lines) for a specific rental order, or (None, []).
    """
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_ORDER_COLS} FROM RentalOrder WHERE rentalOrderID = ?;",
            (order_id,),
        )
        order_row = await cur.fetchone()
        await cur.close()
        if not order_row:
            return None, []
        cur = await conn.execute(
            """
            SELECT rentalOrderID, gameID, unitsOrdered
            FROM GamesInOrder
            WHERE rentalOrderID = ?
            ORDER BY gameID;
            """,
            (order_id,),
        )
        line_rows = await cur.fetchall()
        await cur.close()
    lines = [
        models.OrderLine(rental_order_id=row[0], game_id=row[1], quantity=int(row[2]))
        for row in line_rows
    ]
    return _row_to_order(order_row), lines


# ---------------------------
# Tracking
# ---------------------------


async def get_tracking(tracking_id: str) -> Optional[models.TrackingInfo]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_TRACKING_COLS} FROM TrackingInfo WHERE trackingID = ?;",
            (tracking_id,),
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_tracking(row) if row else None


async def get_tracking_for_order(order_id: str) -> Optional[models.TrackingInfo]:
    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {_TRACKING_COLS}
            FROM TrackingInfo
            WHERE rentalOrderID = ?
            ORDER BY lastUpdateDate DESC
            LIMIT 1;
            """,
            (order_id,),
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_tracking(row) if row else None


async def get_order_owner(order_id: str) -> Optional[str]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT login FROM RentalOrder WHERE rentalOrderID = ?;", (order_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return row[0] if row else None


async def update_tracking(
    tracking_id: str,
    when: datetime,
    status: Optional[str] = None,
    current_location: Optional[str] = None,
    courier: Optional[str] = None,
    comments: Optional[str] = None,
) -> bool:
    """
    Update the provided tracking fields and stamp lastUpdateDate with `when`.
    Return True if a row was updated.
    """
    changes: Dict[str, object] = {}
    if status is not None:
        changes["status"] = status
    if current_location is not None:
        changes["currentLocation"] = current_location
    if courier is not None:
        changes["courierName"] = courier
    if comments is not None:
        changes["additionalComments"] = comments or None
    if not changes:
        return False
    changes["lastUpdateDate"] = _ts(when)

    assignments = ", ".join(f"{col} = ?" for col in changes)
    async with connect() as conn:
        res = await conn.execute(
            f"UPDATE TrackingInfo SET {assignments} WHERE trackingID = ?;",
            (*changes.values(), tracking_id),
        )
        await conn.commit()
        updated = res.rowcount > 0
    if updated:
        _logger.info(f"Tracking {tracking_id} updated: {', '.join(changes)}")
    return updated
