"""
Positional ordering – shift-and-insert reordering inside one transaction.
"""

from typing import Sequence

from sqlalchemy import and_, func, select, update

from zook_admin.errors import NotFoundError, ValidationError


def next_position(conn, table, group: Sequence) -> int:
    """Position for a new row appended to the end of its group."""
    current = conn.execute(
        select(func.max(table.c.position)).where(*group)
    ).scalar()
    return 0 if current is None else current + 1


def reposition(conn, table, row_id: str, new_position: int, group: Sequence) -> int:
    """
    Move *row_id* to *new_position* within the rows matching *group*.

    Must run inside the caller's transaction. The target is clamped to
    [0, max position]; rows between the old and new slot shift by one.
    Returns the position actually applied.
    """
    if new_position is None or new_position < 0:
        raise ValidationError("position must be a non-negative integer")

    old = conn.execute(
        select(table.c.position).where(table.c.id == row_id)
    ).scalar()
    if old is None:
        raise NotFoundError("Row to reposition not found")

    max_pos = conn.execute(select(func.max(table.c.position)).where(*group)).scalar() or 0
    target = min(new_position, max_pos)
    if target == old:
        return old

    if target < old:
        # moving up: [target, old) slide down one slot
        conn.execute(
            update(table)
            .where(and_(*group, table.c.position >= target, table.c.position < old,
                        table.c.id != row_id))
            .values(position=table.c.position + 1)
        )
    else:
        # moving down: (old, target] slide up one slot
        conn.execute(
            update(table)
            .where(and_(*group, table.c.position > old, table.c.position <= target,
                        table.c.id != row_id))
            .values(position=table.c.position - 1)
        )

    conn.execute(update(table).where(table.c.id == row_id).values(position=target))
    return target
