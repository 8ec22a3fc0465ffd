from cubetag import db, bcrypt
from flask_login import UserMixin
import json

from cubetag.services.game.catalog import Counters

COUNTER_FIELDS = ('tags_inflicted', 'times_tagged', 'games_joined', 'distance_traveled', 'backgrounds_changed')


def _load_list(raw):
    try:
        value = json.loads(raw) if raw else []
    except ValueError:
        value = []
    return value if isinstance(value, list) else []


class Account(UserMixin, db.Model):
    __tablename__ = 'account'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    # Lifetime counters
    tags_inflicted = db.Column(db.Integer, default=0, nullable=False)
    times_tagged = db.Column(db.Integer, default=0, nullable=False)
    games_joined = db.Column(db.Integer, default=0, nullable=False)
    distance_traveled = db.Column(db.Integer, default=0, nullable=False)
    backgrounds_changed = db.Column(db.Integer, default=0, nullable=False)
    current_skin = db.Column(db.String(512), nullable=True)
    # JSON-encoded lists used as grow-only sets
    unlocked_achievements = db.Column(db.Text, nullable=True)
    unlocked_skins = db.Column(db.Text, nullable=True)
    redeemed_codes = db.Column(db.Text, nullable=True)
    is_banned = db.Column(db.Boolean, default=False, nullable=False)

    def __init__(self, **kwargs):
        for field in COUNTER_FIELDS:
            kwargs.setdefault(field, 0)
        kwargs.setdefault('is_banned', False)
        super(Account, self).__init__(**kwargs)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def counters(self) -> Counters:
        return Counters(**{field: int(getattr(self, field) or 0) for field in COUNTER_FIELDS})

    @property
    def achievements(self):
        return _load_list(self.unlocked_achievements)

    @property
    def skins(self):
        return _load_list(self.unlocked_skins)

    @property
    def codes(self):
        return _load_list(self.redeemed_codes)

    def has_achievement(self, achievement_id):
        return achievement_id in self.achievements

    def grant_achievement(self, achievement_id):
        current = self.achievements
        if achievement_id in current:
            return False
        self.unlocked_achievements = json.dumps(current + [achievement_id])
        return True

    def owns_skin(self, skin):
        return skin in self.skins

    def grant_skin(self, skin):
        current = self.skins
        if skin in current:
            return False
        self.unlocked_skins = json.dumps(current + [skin])
        return True

    def has_redeemed(self, code):
        return code in self.codes

    def record_code(self, code):
        current = self.codes
        if code in current:
            return False
        self.redeemed_codes = json.dumps(current + [code])
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'stats': {field: int(getattr(self, field) or 0) for field in COUNTER_FIELDS},
            'current_skin': self.current_skin,
            'achievements': self.achievements,
            'skins': self.skins,
        }
