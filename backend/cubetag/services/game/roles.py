import random
from dataclasses import dataclass
from typing import Optional

from .sessions import SessionEntry, SessionStore

CUBE_SIZE = 50
# Cube size plus a 40px lag margin, checked on each axis independently.
# Comparing dx*dx + dy*dy against TAG_TOLERANCE**2 would be a stricter variant.
TAG_TOLERANCE = 90
TAG_COOLDOWN_MS = 1000


@dataclass(frozen=True)
class Tag:
    tagger: SessionEntry
    target: SessionEntry
    impact_x: float
    impact_y: float


class RoleArbiter:
    """Owns the wolf role: who holds it, tag validation and handoff.

    Timestamps are seconds from the authority's monotonic clock.
    """

    def __init__(
        self,
        sessions: SessionStore,
        tolerance: float = TAG_TOLERANCE,
        cooldown_ms: int = TAG_COOLDOWN_MS,
        cube_size: float = CUBE_SIZE,
        rng: Optional[random.Random] = None,
    ):
        self.sessions = sessions
        self.tolerance = tolerance
        self.cooldown = cooldown_ms / 1000.0
        self.cube_size = cube_size
        self._rng = rng or random.Random()
        self.holder: Optional[str] = None
        self.last_move_at = 0.0
        self.last_tag_at: Optional[float] = None

    def claim_if_empty(self, sid: str, now: float) -> bool:
        if self.holder is not None or sid not in self.sessions:
            return False
        self.holder = sid
        self.last_move_at = now
        return True

    def touch(self, sid: str, now: float) -> None:
        if sid == self.holder:
            self.last_move_at = now

    def in_range(self, a: SessionEntry, b: SessionEntry) -> bool:
        return abs(a.x - b.x) < self.tolerance and abs(a.y - b.y) < self.tolerance

    def cooldown_remaining(self, now: float) -> float:
        if self.last_tag_at is None:
            return 0.0
        return max(0.0, self.cooldown - (now - self.last_tag_at))

    def try_tag(self, requester: str, target_id: str, now: float) -> Optional[Tag]:
        """Hand the role to target_id if the tag is legal, else return None."""
        if requester != self.holder or target_id == requester:
            return None
        tagger = self.sessions.get(requester)
        target = self.sessions.get(target_id)
        if tagger is None or target is None:
            return None
        if not self.in_range(tagger, target):
            return None
        if self.cooldown_remaining(now) > 0:
            return None
        self.holder = target_id
        self.last_move_at = now
        self.last_tag_at = now
        half = self.cube_size / 2
        return Tag(tagger=tagger, target=target, impact_x=target.x + half, impact_y=target.y + half)

    def release(self, sid: str, now: float) -> bool:
        """Re-establish the holder after sid left the store.

        Returns True when the holder changed.
        """
        if self.holder is not None and self.holder in self.sessions:
            return False
        remaining = self.sessions.ids()
        if not remaining:
            changed = self.holder is not None
            self.holder = None
            return changed
        self.holder = self._rng.choice(remaining)
        self.last_move_at = now
        # New wolf cannot be tagged back instantly
        self.last_tag_at = now
        return True

    def is_idle(self, now: float, timeout: float) -> bool:
        if self.holder is None or len(self.sessions) < 2:
            return False
        return now - self.last_move_at > timeout
