"""Client for the external image moderation API (Sightengine check.json)."""
from collections import namedtuple
from typing import Dict, Optional

import requests

from cubetag.errors import ModerationError

ModerationVerdict = namedtuple('ModerationVerdict', ['flagged', 'scores'])

NUDITY_CLASSES = ('sexual_activity', 'sexual_display', 'erotica')


class ModerationClient:
    def __init__(
        self,
        url: str,
        api_user: Optional[str],
        api_secret: Optional[str],
        models: str = 'nudity-2.1,gore-2.0',
        threshold: float = 0.5,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.api_user = api_user
        self.api_secret = api_secret
        self.models = models
        self.threshold = threshold
        self.timeout = timeout
        self._http = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> 'ModerationClient':
        return cls(
            url=config.get('MODERATION_URL'),
            api_user=config.get('MODERATION_API_USER'),
            api_secret=config.get('MODERATION_API_SECRET'),
            models=config.get('MODERATION_MODELS', 'nudity-2.1,gore-2.0'),
            threshold=float(config.get('MODERATION_THRESHOLD', 0.5)),
            timeout=float(config.get('MODERATION_TIMEOUT_SEC', 10)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.api_user and self.api_secret)

    def check(self, image: bytes) -> ModerationVerdict:
        if not self.configured:
            raise ModerationError('moderation service is not configured')
        try:
            response = self._http.post(
                self.url,
                data={'models': self.models, 'api_user': self.api_user, 'api_secret': self.api_secret},
                files={'media': ('background', image)},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise ModerationError(f'moderation request failed: {exc}') from exc
        except ValueError as exc:
            raise ModerationError('moderation response was not JSON') from exc
        if body.get('status') != 'success':
            message = (body.get('error') or {}).get('message', 'unknown error')
            raise ModerationError(f'moderation service error: {message}')
        scores = self.extract_scores(body)
        flagged = any(score >= self.threshold for score in scores.values())
        return ModerationVerdict(flagged=flagged, scores=scores)

    @staticmethod
    def extract_scores(body: dict) -> Dict[str, float]:
        scores: Dict[str, float] = {}
        nudity = body.get('nudity') or {}
        for key in NUDITY_CLASSES:
            if key in nudity:
                scores[key] = float(nudity[key])
        gore = body.get('gore') or {}
        if 'prob' in gore:
            scores['gore'] = float(gore['prob'])
        return scores
