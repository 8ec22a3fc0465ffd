import base64
import binascii
import math
from collections import namedtuple
from typing import Dict, Optional, Set

from cubetag.errors import ValidationFailure

BackgroundOutcome = namedtuple('BackgroundOutcome', ['accepted', 'reason'])

DEFAULT_COOLDOWN_SEC = 30.0
DEFAULT_PENALTY_SEC = 600.0
DEFAULT_PLACEHOLDER = '/img/background-removed.png'


def decode_image(data, max_bytes: int) -> bytes:
    """Decode a base64 data URL (or bare base64 string) into raw bytes."""
    if isinstance(data, (bytes, bytearray)):
        raw = bytes(data)
    elif isinstance(data, str):
        payload = data
        if payload.startswith('data:'):
            header, _, payload = payload.partition(',')
            if ';base64' not in header or not header[5:].startswith('image/'):
                raise ValidationFailure('Only base64 encoded images are accepted.')
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationFailure('The image could not be decoded.')
    else:
        raise ValidationFailure('No image received.')
    if not raw:
        raise ValidationFailure('No image received.')
    if len(raw) > max_bytes:
        raise ValidationFailure(f'Image is too large (max {max_bytes // 1024} KB).')
    return raw


class BackgroundGate:
    """Shared background value plus per-connection upload cooldowns.

    A connection may have at most one upload under moderation at a time.
    Cooldown deadlines only ever move forward.
    """

    def __init__(
        self,
        cooldown_sec: float = DEFAULT_COOLDOWN_SEC,
        penalty_sec: float = DEFAULT_PENALTY_SEC,
        placeholder: str = DEFAULT_PLACEHOLDER,
    ):
        self.cooldown_sec = cooldown_sec
        self.penalty_sec = penalty_sec
        self.placeholder = placeholder
        self.current: Optional[str] = None
        self._blocked_until: Dict[str, float] = {}
        self._pending: Set[str] = set()

    def remaining(self, sid: str, now: float) -> float:
        return max(0.0, self._blocked_until.get(sid, 0.0) - now)

    def wait_message(self, sid: str, now: float) -> str:
        seconds = math.ceil(self.remaining(sid, now))
        return f'Please wait {seconds}s before changing the background again.'

    def begin(self, sid: str) -> bool:
        """Mark an upload from sid as in flight. False if one already is."""
        if sid in self._pending:
            return False
        self._pending.add(sid)
        return True

    def finish(self, sid: str) -> None:
        self._pending.discard(sid)

    def in_flight(self, sid: str) -> bool:
        return sid in self._pending

    def accept(self, sid: str, image: str, now: float) -> str:
        self.current = image
        self._block(sid, now + self.cooldown_sec)
        return image

    def punish(self, sid: str, now: float) -> str:
        self.current = self.placeholder
        self._block(sid, now + self.penalty_sec)
        return self.placeholder

    def forget(self, sid: str) -> None:
        self._blocked_until.pop(sid, None)
        self._pending.discard(sid)

    def _block(self, sid: str, until: float) -> None:
        self._blocked_until[sid] = max(self._blocked_until.get(sid, 0.0), until)
