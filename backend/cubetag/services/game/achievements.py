from typing import Iterable, List, Optional

from .catalog import ACHIEVEMENTS, SECRET_CODES, Achievement, SecretCode


def evaluate(account, catalog: Iterable[Achievement] = ACHIEVEMENTS) -> List[str]:
    """Unlock every achievement whose predicate now holds.

    Grants the reward skin when the account does not own it yet and returns
    the newly unlocked ids in catalog order. Nothing is saved here: the
    caller commits the account, and a failed save discards the unlocks.
    """
    counters = account.counters()
    unlocked = []
    for achievement in catalog:
        if account.has_achievement(achievement.id):
            continue
        if not achievement.predicate(counters):
            continue
        account.grant_achievement(achievement.id)
        if achievement.reward_skin:
            account.grant_skin(achievement.reward_skin)
        unlocked.append(achievement.id)
    return unlocked


def normalize_code(code) -> str:
    if not isinstance(code, str):
        return ''
    return code.strip().upper()


def lookup_code(code) -> Optional[SecretCode]:
    return SECRET_CODES.get(normalize_code(code))
