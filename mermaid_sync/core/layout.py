"""
Placement for nodes the text form gives no position to.

Text carries no coordinates, so every parse has to invent positions:
- Fallback grid: nodes laid out left-to-right in rows of three, by insertion order
- Drop position: a random point in a fixed box for nodes added from the canvas

Placement is simple and deterministic; there is no layout optimization.
"""

import random
from typing import Optional

from .models import Position


# Default layout parameters
COLUMNS = 3
SPACING_X = 250
SPACING_Y = 100
DROP_AREA = 400

PLACEHOLDER_POSITION = Position(x=250, y=100)


def fallback_position(
    index: int,
    columns: int = COLUMNS,
    spacing_x: float = SPACING_X,
    spacing_y: float = SPACING_Y,
) -> Position:
    """
    Grid position for the node inserted at `index`.

    The row advances every time the node count reaches a multiple of
    `columns`, so index 0-2 share row 0, index 3-5 row 1, and so on.
    """
    row = index // columns
    col = index % columns
    return Position(x=col * spacing_x, y=row * spacing_y)


def random_position(rng: Optional[random.Random] = None, area: float = DROP_AREA) -> Position:
    """Random drop position inside an `area` x `area` box."""
    rng = rng or random
    return Position(x=rng.uniform(0, area), y=rng.uniform(0, area))
