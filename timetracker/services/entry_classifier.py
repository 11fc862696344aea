from datetime import date, time
from typing import List, Optional, Sequence, Tuple
import logging

from timetracker.constants.entry_class import EntryClass
from timetracker.models import TimeEntry
from timetracker.repositories import TimetrackerRepository

log = logging.getLogger(__name__)


def _minute_of_day(value: time) -> Tuple[int, int]:
    # Seconds are not part of an entry's identity
    return value.hour, value.minute


def compute_entry_classes(entries: Sequence[TimeEntry]) -> List[EntryClass]:
    """
    Computes the class of every entry of one user-day.

    Entries must be sorted by start time. The first entry opens the day
    (DAYBREAK); each following entry is compared with the end of its
    predecessor: a later start is a PAUSE, an earlier one an OVERLAP and an
    exact continuation is PLAIN.
    """
    classes: List[EntryClass] = []
    previous: Optional[TimeEntry] = None

    for entry in entries:
        if previous is None:
            classes.append(EntryClass.DAYBREAK)
        else:
            start = _minute_of_day(entry.start)
            previous_end = _minute_of_day(previous.end)
            if start > previous_end:
                classes.append(EntryClass.PAUSE)
            elif start < previous_end:
                classes.append(EntryClass.OVERLAP)
            else:
                classes.append(EntryClass.PLAIN)
        previous = entry

    return classes


def classify_entries(entries: List[TimeEntry]) -> List[TimeEntry]:
    """Assigns the computed classes in place and returns the same list."""
    for entry, entry_class in zip(entries, compute_entry_classes(entries)):
        entry.entry_class = int(entry_class)
    return entries


class EntryClassifier:
    """Recomputes and persists the classes of a user's day."""

    def __init__(self, repository: TimetrackerRepository):
        self.repository = repository

    def reclassify_day(self, user_id: int, day: date) -> int:
        """Returns the number of entries whose class changed."""
        entries = self.repository.find_entries_for_user_day(user_id, day)
        if not entries:
            return 0

        changed = []
        for entry, entry_class in zip(entries, compute_entry_classes(entries)):
            if entry.entry_class != int(entry_class):
                entry.entry_class = int(entry_class)
                changed.append(entry)

        self.repository.save_entries(changed)
        log.debug(f"Reclassified {len(entries)} entries of user {user_id} on {day}, {len(changed)} changed")
        return len(changed)
