import math

from cubetag.errors import ClientProtocolError

from .sessions import SessionEntry


def parse_position(data) -> tuple:
    """Extract a finite (x, y) pair from a move payload."""
    if not isinstance(data, dict):
        raise ClientProtocolError('move payload must be an object')
    try:
        x = float(data['x'])
        y = float(data['y'])
    except (KeyError, TypeError, ValueError):
        raise ClientProtocolError('move payload needs numeric x and y')
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ClientProtocolError('move coordinates must be finite')
    return x, y


def apply_move(entry: SessionEntry, x: float, y: float) -> float:
    """Move entry to (x, y) and accumulate the travelled distance.

    Position is not clamped and speed is not checked.
    """
    delta = math.hypot(x - entry.x, y - entry.y)
    entry.pending_distance += delta
    entry.x = x
    entry.y = y
    return delta
