from enum import IntEnum


class EntryClass(IntEnum):
    """Rendering class of an entry within its user-day.

    Values are the legacy bit flags stored in the ``entries.class`` column.
    """
    PLAIN = 1
    DAYBREAK = 2
    PAUSE = 4
    OVERLAP = 8
