"""
Schedule oracle: asks an OpenAI chat model for the next air date of an
ongoing anime that AniList has no live schedule for.

Every failure degrades to "no schedule data" (confidence 0).
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from constants import OPENAI_URL
from sources.base import as_float, as_int, as_str

logger = logging.getLogger("main")

PROMPT = (
    'Anime "{title}" has status "{status}"{episode}. Return ONLY a JSON object: '
    '{{"nextEpisodeDate": "YYYY-MM-DDTHH:MM:SSZ" or null, "nextEpisodeNumber": number or null, '
    '"confidence": number between 0 and 1}}. Use null dates for finished, cancelled or hiatus shows.'
)


@dataclass
class ScheduleGuess:
    next_date: Optional[str] = None
    next_number: Optional[int] = None
    confidence: float = 0.0


NO_SCHEDULE = ScheduleGuess()


class ScheduleOracle:
    """Thin client for the schedule-guessing model"""

    def __init__(self, api_key: str = None, url: str = OPENAI_URL, model: str = "gpt-4o-mini", timeout: int = 30,
                 session: requests.Session = None):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self):
        return bool(self.api_key)

    def estimate(self, title: str, status: str, current_episode: int = None) -> ScheduleGuess:
        if not self.enabled:
            return NO_SCHEDULE

        episode = f" and current episode {current_episode}" if current_episode else ""
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": PROMPT.format(title=title, status=status, episode=episode)}],
            "temperature": 0.1,
            "max_tokens": 200,
        }
        try:
            response = self.session.post(
                self.url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
            result = json.loads(content)
        except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Schedule oracle failed for '{title}': {e}")
            return NO_SCHEDULE

        if not isinstance(result, dict):
            return NO_SCHEDULE

        confidence = as_float(result.get("confidence")) or 0.0
        return ScheduleGuess(
            next_date=as_str(result.get("nextEpisodeDate")),
            next_number=as_int(result.get("nextEpisodeNumber")),
            confidence=max(0.0, min(confidence, 1.0)),
        )
