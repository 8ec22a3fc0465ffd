"""Static achievement and secret code tables, loaded once at import."""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple


@dataclass(frozen=True)
class Counters:
    """Lifetime account counters, the only input achievement predicates see."""
    tags_inflicted: int = 0
    times_tagged: int = 0
    games_joined: int = 0
    distance_traveled: int = 0
    backgrounds_changed: int = 0


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    predicate: Callable[[Counters], bool]
    reward_skin: Optional[str] = None
    skin_name: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'skin': self.reward_skin,
            'skin_name': self.skin_name,
        }


@dataclass(frozen=True)
class SecretCode:
    code: str
    skin: str
    name: str


ACHIEVEMENTS: Tuple[Achievement, ...] = (
    Achievement(
        'first_blood', 'First Blood', 'Tag 1 player',
        lambda c: c.tags_inflicted >= 1,
        '#ff0000', 'Blood Red',
    ),
    Achievement(
        'hunter_pro', 'Pro Hunter', 'Tag 10 players',
        lambda c: c.tags_inflicted >= 10,
        'linear-gradient(45deg, #ff9a9e 0%, #fecfef 99%, #fecfef 100%)', 'Dawn',
    ),
    Achievement(
        'master_hunter', 'Master Hunter', 'Tag 50 players',
        lambda c: c.tags_inflicted >= 50,
        'skin-neon', 'Future Neon',
    ),
    Achievement(
        'traveler', 'Traveler', 'Travel 5,000px',
        lambda c: c.distance_traveled >= 5000,
        '#00ccff', 'Azure',
    ),
    Achievement(
        'marathon', 'Marathoner', 'Travel 20,000px',
        lambda c: c.distance_traveled >= 20000,
        'linear-gradient(to right, #f12711, #f5af19)', 'Fire',
    ),
    Achievement(
        'veteran', 'Veteran', 'Travel 1,000,000px',
        lambda c: c.distance_traveled >= 1000000,
        'skin-plasma', 'Fluid Plasma',
    ),
    Achievement(
        'architect', 'Architect', 'Change the background 5 times',
        lambda c: c.backgrounds_changed >= 5,
        '#9b59b6', 'Amethyst',
    ),
    Achievement(
        'survivor', 'Punching Bag', 'Get tagged 10 times',
        lambda c: c.times_tagged >= 10,
        '#7f8c8d', 'Ghost',
    ),
    Achievement(
        'god_mode', 'Game God', 'Unlock everything (impossible)',
        lambda c: False,
        'skin-rainbow', 'Divine Light',
    ),
    Achievement(
        'white_walker', 'White Walker', 'Travel 2,000,000px',
        lambda c: c.distance_traveled >= 2000000,
        'skin-snow', 'Eternal Winter',
    ),
    Achievement(
        'badapple', 'Bad Apple!', 'Join 100 games',
        lambda c: c.games_joined >= 100,
        'https://files.catbox.moe/8a4984.gif', 'Bad Apple!',
    ),
    Achievement(
        'cat', 'Kawaii Cat', 'Join 1000 games',
        lambda c: c.games_joined >= 1000,
        'skin-kawaii-cat', 'Kawaii Cat',
    ),
    Achievement(
        'inverser', 'Upside Down', 'Tag 100 players',
        lambda c: c.tags_inflicted >= 100,
        'skin-negative', 'Negative',
    ),
    Achievement(
        'hiden', 'Hidden Cube', 'Get tagged 100 times',
        lambda c: c.times_tagged >= 100,
        'skin-hiden', 'Hidden Cube',
    ),
    Achievement(
        'triangle', 'Triangle Cube?', 'Change the background 5 times',
        lambda c: c.backgrounds_changed >= 5,
        'skin-triangle', 'Triangle Cube?',
    ),
    Achievement(
        'eyes', 'Cube 👁️👄👁️', 'Travel 4,000,000px',
        lambda c: c.distance_traveled >= 4000000,
        'skin-eyes', '👁️👄👁️',
    ),
)

ACHIEVEMENTS_BY_ID: Dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}

SECRET_CODES: Dict[str, SecretCode] = {
    s.code: s for s in (
        SecretCode('PATPAT', 'linear-gradient(135deg, #667eea 0%, #764ba2 100%)', 'Admin Skin'),
        SecretCode('DEV2025', '#00ff00', 'Hacker Green'),
        SecretCode('GOLD', 'linear-gradient(to bottom, #f7971e, #ffd200)', 'Solid Gold'),
        SecretCode('RAINBOW', 'skin-rainbow', 'Rainbow'),
        SecretCode('MATRIX', 'skin-glitch', 'Matrix'),
        SecretCode('BOOM', 'skin-pulse', 'Pulse'),
        SecretCode('PLASMA', 'skin-plasma', 'Free Plasma'),
        SecretCode('GENTLEMAN', 'skin-tophat', 'The Dapper'),
        SecretCode('PIXEL', 'https://art.pixilart.com/original/sr5z26073f1b17aws3.gif', 'Pixel Art'),
    )
}
