"""The single writer for all live game state.

GameAuthority owns the session store, the wolf role and the shared
background. Every mutation happens under one re-entrant lock and the
broadcast describing it is emitted before the lock is released. Calls to
collaborators (account store, moderation API) run outside the lock and
re-check that the connection still exists before committing.
"""
import logging
import random
import re
import threading
import time
from typing import Callable, List, Optional

from cubetag.errors import ModerationError, PersistenceError, ValidationFailure

from .achievements import lookup_code, normalize_code
from .backgrounds import BackgroundGate, BackgroundOutcome, decode_image
from .catalog import ACHIEVEMENTS_BY_ID
from .movement import apply_move
from .roles import RoleArbiter, Tag
from .sessions import GUEST, AccountRef, Registered, SessionEntry, SessionStore

FORCED_REASONS = ('afk', 'banned', 'maintenance', 'kicked')
PLAIN_COLOR = re.compile(r'^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$')

Emit = Callable[..., None]


def _noop(account):
    pass


class GameAuthority:
    def __init__(
        self,
        emit: Emit,
        accounts,
        moderation,
        *,
        tolerance: float = 90,
        cooldown_ms: int = 1000,
        cube_size: float = 50,
        afk_timeout: float = 15.0,
        background_cooldown: float = 30.0,
        background_penalty: float = 600.0,
        background_placeholder: str = '/img/background-removed.png',
        max_background_bytes: int = 5 * 1024 * 1024,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._emit = emit
        self.accounts = accounts
        self.moderation = moderation
        self.afk_timeout = afk_timeout
        self.max_background_bytes = max_background_bytes
        self._clock = clock
        self._lock = threading.RLock()
        self.logger = logger or logging.getLogger(__name__)
        rng = rng or random.Random()
        self.sessions = SessionStore(rng=rng)
        self.roles = RoleArbiter(self.sessions, tolerance=tolerance, cooldown_ms=cooldown_ms, cube_size=cube_size, rng=rng)
        self.backgrounds = BackgroundGate(
            cooldown_sec=background_cooldown,
            penalty_sec=background_penalty,
            placeholder=background_placeholder,
        )

    @classmethod
    def from_config(cls, config, emit, accounts, moderation, logger=None) -> 'GameAuthority':
        return cls(
            emit,
            accounts,
            moderation,
            tolerance=config.get('TAG_TOLERANCE', 90),
            cooldown_ms=config.get('TAG_COOLDOWN_MS', 1000),
            cube_size=config.get('CUBE_SIZE', 50),
            afk_timeout=config.get('AFK_TIMEOUT_SEC', 15.0),
            background_cooldown=config.get('BACKGROUND_COOLDOWN_SEC', 30.0),
            background_penalty=config.get('BACKGROUND_PENALTY_SEC', 600.0),
            background_placeholder=config.get('BACKGROUND_PLACEHOLDER', '/img/background-removed.png'),
            max_background_bytes=config.get('MAX_BACKGROUND_BYTES', 5 * 1024 * 1024),
            logger=logger,
        )

    # ---- read side ----

    @property
    def holder(self) -> Optional[str]:
        return self.roles.holder

    @property
    def background(self) -> Optional[str]:
        return self.backgrounds.current

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    # ---- connection lifecycle ----

    def connect(self, sid: str) -> None:
        """Send a spectator view of the game to a fresh connection."""
        with self._lock:
            self._emit('current_players', self.sessions.snapshot(), to=sid)
            self._emit('current_role_holder', {'holder': self.roles.holder}, to=sid)
            if self.backgrounds.current:
                self._emit('background_changed', {'image': self.backgrounds.current}, to=sid)

    def join(self, sid: str, account: AccountRef = GUEST, now: Optional[float] = None) -> Optional[SessionEntry]:
        with self._lock:
            if sid in self.sessions:
                return None

        skin = None
        if isinstance(account, Registered):
            try:
                record = self.accounts.find(account.handle)
            except PersistenceError as exc:
                self.logger.warning(f"[join] account lookup failed for {account.handle}: {exc}")
                record = None
            if record is None:
                account = GUEST
            elif record.is_banned:
                self.logger.info(f"[join] refused banned account {account.handle} sid={sid}")
                self._emit('forced_to_lobby', {'reason': 'banned'}, to=sid)
                return None
            else:
                skin = record.current_skin

        now = self._now(now)
        with self._lock:
            entry = self.sessions.join(sid, account, color=skin)
            if entry is None:
                return None
            info = entry.to_dict()
            self._emit('game_joined', {'id': sid, 'info': info}, to=sid)
            self._emit('new_player', {'id': sid, 'info': info}, skip_sid=sid)
            if self.roles.claim_if_empty(sid, now):
                self._emit('role_changed', {'holder': sid})
            self.logger.info(f"[join] sid={sid} account={entry.handle or 'guest'} players={len(self.sessions)}")

        if entry.handle:
            self._record(sid, entry.handle, games_joined=1)
        return entry

    def leave(self, sid: str, now: Optional[float] = None) -> Optional[SessionEntry]:
        now = self._now(now)
        with self._lock:
            entry = self._remove(sid, now)
        if entry is not None:
            self._flush_removed(entry)
        return entry

    def disconnect(self, sid: str, now: Optional[float] = None) -> Optional[SessionEntry]:
        entry = self.leave(sid, now)
        with self._lock:
            self.backgrounds.forget(sid)
        return entry

    def force_to_lobby(self, sid: str, reason: str, now: Optional[float] = None) -> bool:
        if reason not in FORCED_REASONS:
            raise ValueError(f'unknown lobby reason {reason}')
        now = self._now(now)
        with self._lock:
            if sid not in self.sessions:
                return False
            self._emit('forced_to_lobby', {'reason': reason}, to=sid)
            entry = self._remove(sid, now)
        self._flush_removed(entry)
        return True

    def kick(self, sid: str) -> bool:
        return self.force_to_lobby(sid, 'kicked')

    def shutdown(self) -> None:
        """Flush everyone's distance, then send every player back to the lobby."""
        self.flush_stats()
        now = self._now(None)
        with self._lock:
            removed = []
            for sid in self.sessions.ids():
                self._emit('forced_to_lobby', {'reason': 'maintenance'}, to=sid)
                removed.append(self._remove(sid, now))
        for entry in removed:
            self._flush_removed(entry)
        self.logger.info(f"[shutdown] removed {len(removed)} players")

    def _remove(self, sid: str, now: float) -> Optional[SessionEntry]:
        # Caller holds the lock.
        entry = self.sessions.leave(sid)
        if entry is None:
            return None
        self._emit('player_removed', {'id': sid})
        if self.roles.release(sid, now):
            self._emit('role_changed', {'holder': self.roles.holder})
            self.logger.info(f"[handoff] {sid} left, holder is now {self.roles.holder}")
        return entry

    # ---- movement & tagging ----

    def move(self, sid: str, x: float, y: float, now: Optional[float] = None) -> bool:
        now = self._now(now)
        with self._lock:
            entry = self.sessions.get(sid)
            if entry is None:
                return False
            apply_move(entry, x, y)
            self.roles.touch(sid, now)
            self._emit('player_moved', {'id': sid, 'x': entry.x, 'y': entry.y}, skip_sid=sid)
        return True

    def tag(self, sid: str, target_id: str, now: Optional[float] = None) -> Optional[Tag]:
        now = self._now(now)
        with self._lock:
            tag = self.roles.try_tag(sid, target_id, now)
            if tag is None:
                return None
            self._emit('role_changed', {'holder': target_id})
            self._emit('player_tagged', {'x': tag.impact_x, 'y': tag.impact_y, 'color': tag.target.color})
            self.logger.info(f"[tag] {sid} tagged {target_id}")

        if tag.tagger.handle:
            self._record(tag.tagger.sid, tag.tagger.handle, tags_inflicted=1)
        if tag.target.handle:
            self._record(tag.target.sid, tag.target.handle, times_tagged=1)
        return tag

    # ---- backgrounds ----

    def change_background(self, sid: str, image, now: Optional[float] = None) -> Optional[BackgroundOutcome]:
        requested_at = now
        now = self._now(now)
        with self._lock:
            entry = self.sessions.get(sid)
            if entry is None:
                return None
            handle = entry.handle
            if self.backgrounds.remaining(sid, now) > 0:
                return self._reject_upload(sid, self.backgrounds.wait_message(sid, now))
            if not self.backgrounds.begin(sid):
                return self._reject_upload(sid, 'Your previous background is still being checked.')

        try:
            outcome = self._moderate_background(sid, image, requested_at)
        finally:
            with self._lock:
                self.backgrounds.finish(sid)

        if outcome is not None and outcome.accepted and handle:
            self._record(sid, handle, backgrounds_changed=1)
        return outcome

    def _moderate_background(self, sid: str, image, requested_at: Optional[float]) -> Optional[BackgroundOutcome]:
        if not self.moderation.configured:
            return self._reject_upload(sid, 'Background uploads are disabled: moderation is not configured.')
        try:
            raw = decode_image(image, self.max_background_bytes)
        except ValidationFailure as exc:
            return self._reject_upload(sid, str(exc))

        try:
            verdict = self.moderation.check(raw)
        except ModerationError as exc:
            self.logger.warning(f"[moderation] check failed for {sid}: {exc}")
            return self._reject_upload(sid, 'Moderation service unavailable, please try again.')

        with self._lock:
            if sid not in self.sessions:
                return None
            # Cooldowns run from the moment the background is committed
            now = self._now(requested_at)
            if verdict.flagged:
                placeholder = self.backgrounds.punish(sid, now)
                self._emit('background_changed', {'image': placeholder})
                self.logger.info(f"[moderation] flagged upload from {sid} scores={verdict.scores}")
                return self._reject_upload(sid, 'Image refused by moderation. Uploads are blocked for a while.')
            self.backgrounds.accept(sid, image, now)
            self._emit('background_changed', {'image': image})
            return BackgroundOutcome(True, None)

    def _reject_upload(self, sid: str, reason: str) -> BackgroundOutcome:
        self._emit('upload_rejected', {'reason': reason}, to=sid)
        return BackgroundOutcome(False, reason)

    # ---- cosmetics ----

    def change_cosmetic(self, sid: str, color) -> bool:
        if not isinstance(color, str) or not color.strip():
            return False
        color = color.strip()
        with self._lock:
            entry = self.sessions.get(sid)
            if entry is None:
                return False
            handle = entry.handle

        account = None
        if handle:
            try:
                account = self.accounts.find(handle)
            except PersistenceError as exc:
                self.logger.warning(f"[cosmetic] lookup failed for {handle}: {exc}")
                return False
        if not PLAIN_COLOR.match(color) and (account is None or not account.owns_skin(color)):
            return False

        with self._lock:
            entry = self.sessions.get(sid)
            if entry is None:
                return False
            entry.color = color
            self._emit('cosmetic_changed', {'id': sid, 'color': color})

        if account is not None:
            account.current_skin = color
            try:
                self.accounts.save(account)
            except PersistenceError as exc:
                self.logger.warning(f"[cosmetic] could not save skin for {handle}: {exc}")
        return True

    def redeem_code(self, sid: str, code) -> bool:
        with self._lock:
            entry = self.sessions.get(sid)
            if entry is None:
                return False
            handle = entry.handle

        if not handle:
            return self._reject_code(sid, 'Log in to redeem codes.')
        secret = lookup_code(code)
        if secret is None:
            return self._reject_code(sid, 'Invalid code.')

        def _redeem(account):
            if account.has_redeemed(secret.code):
                raise ValidationFailure('Code already used.')
            account.record_code(secret.code)
            account.grant_skin(secret.skin)

        try:
            result = self.accounts.update(handle, _redeem)
        except ValidationFailure as exc:
            return self._reject_code(sid, str(exc))
        except PersistenceError as exc:
            self.logger.warning(f"[code] redeem {normalize_code(code)} failed for {handle}: {exc}")
            return self._reject_code(sid, 'Could not redeem the code right now, please try again.')
        if result is None:
            return self._reject_code(sid, 'Log in to redeem codes.')
        account, unlocked = result

        self.logger.info(f"[code] {handle} redeemed {secret.code}")
        self._emit('code_accepted', {'code': secret.code, 'name': secret.name, 'skin': secret.skin}, to=sid)
        self._emit('cosmetics_unlocked', {'skins': account.skins}, to=sid)
        if unlocked:
            self._notify_unlocks(sid, account, unlocked)
        return True

    def _reject_code(self, sid: str, reason: str) -> bool:
        self._emit('code_rejected', {'reason': reason}, to=sid)
        return False

    # ---- periodic sweeps ----

    def sweep_idle_holder(self, now: Optional[float] = None) -> Optional[str]:
        """Send an idle wolf back to the lobby. Never fires for a lone player."""
        now = self._now(now)
        with self._lock:
            if not self.roles.is_idle(now, self.afk_timeout):
                return None
            sid = self.roles.holder
            self.logger.info(f"[afk-kick] holder {sid} idle for {now - self.roles.last_move_at:.1f}s")
            self._emit('forced_to_lobby', {'reason': 'afk'}, to=sid)
            entry = self._remove(sid, now)
        self._flush_removed(entry)
        return sid

    def flush_stats(self) -> int:
        """Move pending distance of live registered players into their accounts.

        Failures are isolated per account; a failed amount goes back to the
        session if it is still live. Returns the number of accounts updated.
        """
        with self._lock:
            batch = []
            for entry in self.sessions.all():
                if entry.handle and entry.pending_distance > 0:
                    batch.append((entry.sid, entry.handle, entry.pending_distance))
                    entry.pending_distance = 0.0

        flushed = 0
        for sid, handle, amount in batch:
            if self._record(sid, handle, distance_traveled=round(amount)):
                flushed += 1
                continue
            with self._lock:
                entry = self.sessions.get(sid)
                if entry is not None:
                    entry.pending_distance += amount
        if batch:
            self.logger.info(f"[stats-flush] {flushed}/{len(batch)} accounts updated")
        return flushed

    def _flush_removed(self, entry: Optional[SessionEntry]) -> None:
        if entry is None or not entry.handle or entry.pending_distance <= 0:
            return
        amount = entry.pending_distance
        entry.pending_distance = 0.0
        self._record(entry.sid, entry.handle, distance_traveled=round(amount))

    # ---- account bookkeeping ----

    def _record(self, sid: str, handle: str, **amounts) -> bool:
        """Increment counters, evaluate achievements, notify sid of unlocks.

        Returns True once the increment is committed, even if the follow-up
        achievement pass fails; the next update re-evaluates anyway.
        """
        try:
            if any(amounts.values()):
                self.accounts.increment(handle, **amounts)
        except PersistenceError as exc:
            self.logger.warning(f"[stats] could not update {handle} {amounts}: {exc}")
            return False
        try:
            result = self.accounts.update(handle, _noop)
        except PersistenceError as exc:
            self.logger.warning(f"[achievement] evaluation failed for {handle}: {exc}")
            return True
        if result is None:
            return False
        account, unlocked = result
        if unlocked:
            self._notify_unlocks(sid, account, unlocked)
        return True

    def _notify_unlocks(self, sid: str, account, unlocked: List[str]) -> None:
        with self._lock:
            if sid not in self.sessions:
                return
            for achievement_id in unlocked:
                self._emit('achievement_unlocked', ACHIEVEMENTS_BY_ID[achievement_id].to_dict(), to=sid)
            if any(ACHIEVEMENTS_BY_ID[a].reward_skin for a in unlocked):
                self._emit('cosmetics_unlocked', {'skins': account.skins}, to=sid)
        self.logger.info(f"[achievement] {account.username} unlocked {', '.join(unlocked)}")
