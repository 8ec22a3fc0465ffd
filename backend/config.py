import os

class Config:
    # Required: create_app refuses to start without it
    SECRET_KEY = os.environ.get('SECRET_KEY')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///cubetag.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Tagging (pixels / milliseconds)
    CUBE_SIZE = int(os.environ.get('CUBE_SIZE', '50'))
    TAG_TOLERANCE = int(os.environ.get('TAG_TOLERANCE', '90'))
    TAG_COOLDOWN_MS = int(os.environ.get('TAG_COOLDOWN_MS', '1000'))
    # Liveness monitor (seconds)
    AFK_TIMEOUT_SEC = float(os.environ.get('AFK_TIMEOUT_SEC', '15'))
    AFK_SWEEP_SEC = float(os.environ.get('AFK_SWEEP_SEC', '1'))
    # Distance flush into account stats (seconds)
    STATS_FLUSH_SEC = float(os.environ.get('STATS_FLUSH_SEC', '3600'))
    # Shared background uploads
    BACKGROUND_COOLDOWN_SEC = float(os.environ.get('BACKGROUND_COOLDOWN_SEC', '30'))
    BACKGROUND_PENALTY_SEC = float(os.environ.get('BACKGROUND_PENALTY_SEC', '600'))
    BACKGROUND_PLACEHOLDER = os.environ.get('BACKGROUND_PLACEHOLDER', '/img/background-removed.png')
    MAX_BACKGROUND_BYTES = int(os.environ.get('MAX_BACKGROUND_BYTES', str(5 * 1024 * 1024)))
    # Image moderation; uploads are refused while the credentials are unset
    MODERATION_URL = os.environ.get('MODERATION_URL', 'https://api.sightengine.com/1.0/check.json')
    MODERATION_API_USER = os.environ.get('MODERATION_API_USER')
    MODERATION_API_SECRET = os.environ.get('MODERATION_API_SECRET')
    MODERATION_MODELS = os.environ.get('MODERATION_MODELS', 'nudity-2.1,gore-2.0')
    MODERATION_THRESHOLD = float(os.environ.get('MODERATION_THRESHOLD', '0.5'))
    MODERATION_TIMEOUT_SEC = float(os.environ.get('MODERATION_TIMEOUT_SEC', '10'))
