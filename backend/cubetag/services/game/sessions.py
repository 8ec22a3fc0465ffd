import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

# Spawn rectangle, upper bounds exclusive
SPAWN_X = (50, 550)
SPAWN_Y = (50, 450)


@dataclass(frozen=True)
class Guest:
    """A connection without a durable account. Its stats are never saved."""


@dataclass(frozen=True)
class Registered:
    handle: str


GUEST = Guest()
AccountRef = Union[Guest, Registered]


def random_color(rng: random.Random) -> str:
    return '#{:06x}'.format(rng.randrange(0x1000000))


@dataclass
class SessionEntry:
    sid: str
    x: float
    y: float
    color: str
    account: AccountRef = GUEST
    pending_distance: float = 0.0

    @property
    def handle(self) -> Optional[str]:
        if isinstance(self.account, Registered):
            return self.account.handle
        return None

    def to_dict(self):
        return {
            'id': self.sid,
            'x': self.x,
            'y': self.y,
            'color': self.color,
            'username': self.handle,
        }


class SessionStore:
    """In-memory registry of live players keyed by connection id.

    Not thread safe on its own; GameAuthority serializes every call.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._entries: Dict[str, SessionEntry] = {}

    def join(self, sid: str, account: AccountRef = GUEST, color: Optional[str] = None) -> Optional[SessionEntry]:
        """Spawn a player. Returns None when the sid already joined."""
        if sid in self._entries:
            return None
        entry = SessionEntry(
            sid=sid,
            x=self._rng.randrange(*SPAWN_X),
            y=self._rng.randrange(*SPAWN_Y),
            color=color or random_color(self._rng),
            account=account,
        )
        self._entries[sid] = entry
        return entry

    def leave(self, sid: str) -> Optional[SessionEntry]:
        return self._entries.pop(sid, None)

    def get(self, sid: str) -> Optional[SessionEntry]:
        return self._entries.get(sid)

    def all(self) -> List[SessionEntry]:
        return list(self._entries.values())

    def ids(self) -> List[str]:
        return list(self._entries)

    def snapshot(self) -> Dict[str, dict]:
        return {sid: entry.to_dict() for sid, entry in self._entries.items()}

    def __contains__(self, sid) -> bool:
        return sid in self._entries

    def __len__(self) -> int:
        return len(self._entries)
