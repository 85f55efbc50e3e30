from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Literal, Mapping, Optional, Sequence

from gamerental.db.models import CartLine, CatalogEntry, OrderSummary, PricedLine

CENTS = Decimal("0.01")


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of cell values (None renders as "-").
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [_cell(h) for h in headers]
    rows = [[_cell(c) for c in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def _cell(value) -> str:
    if value is None:
        return "-"
    # a bare pipe would split the cell
    return str(value).replace("|", "\\|")


def to_money(value) -> Decimal:
    """Convert a float/str/Decimal price to a Decimal rounded to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    return f"${to_money(value):.2f}"


def price_cart(
    cart: Sequence[CartLine], prices: Mapping[str, float | Decimal]
) -> OrderSummary:
    """
    Price every cart line against the catalog prices.

    Each line total is quantity x unit price; the order total is the sum of
    line totals and total copies the sum of quantities. Lines are kept in cart
    order. A KeyError is raised if a game in the cart has no price.
    """
    lines: List[PricedLine] = []
    for item in cart:
        unit_price = to_money(prices[item.game_id])
        lines.append(
            PricedLine(
                game_id=item.game_id,
                quantity=item.quantity,
                unit_price=unit_price,
                line_total=to_money(unit_price * item.quantity),
            )
        )
    return OrderSummary(
        lines=lines,
        total_copies=sum(line.quantity for line in lines),
        total_price=to_money(sum((line.line_total for line in lines), Decimal("0"))),
    )


def summary_rows(summary: OrderSummary) -> List[List[str]]:
    return [
        [line.game_id, line.quantity, format_money(line.unit_price), format_money(line.line_total)]
        for line in summary.lines
    ]


def catalog_changes(
    game: CatalogEntry,
    name: str,
    genre: str,
    price: Decimal,
    description: str,
    image_url: str,
) -> Dict[str, object]:
    """
    Keyword arguments for crud.update_game that turn `game` into the edited values.
    A blank name or genre keeps the current one; a blank description or image URL clears it.
    """
    changes: Dict[str, object] = {}
    if name and name != game.name:
        changes["name"] = name
    if genre and genre != game.genre:
        changes["genre"] = genre
    if to_money(price) != to_money(game.price):
        changes["price"] = price
    if description != (game.description or ""):
        changes["description"] = description
    if image_url != (game.image_url or ""):
        changes["image_url"] = image_url
    return changes
