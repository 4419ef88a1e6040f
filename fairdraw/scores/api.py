import logging
import os
from decimal import Decimal
from typing import Any, Mapping, Optional
from urllib.parse import urljoin

import requests
from dotenv import load_dotenv

from ..draw.seed import AuxiliaryInput, format_score

logger = logging.getLogger(__name__)


class FantasyScoresClient:
    """Fetch weekly team scores from a fantasy-league HTTP API.

    The API is expected to answer ``GET /weeks/<week>/scores`` with a JSON
    list of ``{"name": ..., "score": ...}`` objects (or an object wrapping that
    list under ``"scores"``).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = 45,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        url = base_url or os.getenv("FANTASY_API_BASE_URL")
        if not url:
            raise ValueError("Environment variable 'FANTASY_API_BASE_URL' is not set")

        self.base_url = url.rstrip("/")
        self.token = token or os.getenv("FANTASY_API_TOKEN")
        self.session = session or requests.Session()
        self.timeout = timeout

    # -------- headers --------
    @property
    def headers(self) -> Mapping[str, str]:
        if self.token:
            return {"Accept": "application/json", "Authorization": f"Bearer {self.token}"}
        return {"Accept": "application/json"}

    # -------- core request --------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
    ) -> Any:
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        r = self.session.request(
            method=method.upper(),
            url=url,
            headers=self.headers,
            params=params,
            timeout=self.timeout,
        )
        r.raise_for_status()
        return r.json() if r.content else None

    # -------- API callers --------
    def week_scores(self, week: int) -> list[dict]:
        payload = self._request("GET", f"/weeks/{week}/scores")
        if isinstance(payload, dict):
            payload = payload.get("scores")
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RuntimeError(f"Unexpected scores response for week {week}: {payload!r}")
        return payload

    def lowest_score(self, week: int) -> Optional[AuxiliaryInput]:
        """Return the week's lowest score and scorer, or ``None`` if not yet played.

        Ties on the score go to the alphabetically first name so that repeated
        lookups always agree.
        """
        entries = []
        for item in self.week_scores(week):
            try:
                name = item.get("name", item.get("team"))
                score = item.get("score", item.get("points"))
                if name is None or score is None:
                    raise KeyError("name/score")
                entries.append((Decimal(format_score(score)), str(name), score))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise RuntimeError(f"Malformed score entry for week {week}: {item!r}") from exc

        if not entries:
            logger.debug(f"No scores published yet for week {week}")
            return None
        _, name, score = min(entries, key=lambda entry: (entry[0], entry[1]))
        return AuxiliaryInput(score=score, scorer=name)
