"""Best-effort special-toll detection through a chat-completions model.

The model is asked which catalog tunnels the default driving route between
the given places passes through. Any problem (missing key, transport error,
unparsable answer) yields an empty set so that geometric detection takes over.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

import httpx
from django.conf import settings

from toll_estimator.services.country_rules import iter_special_tolls, special_toll_ids

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a European toll road expert. Respond only with valid JSON arrays."
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)

ROUTING_HINTS = """IMPORTANT RULES:
1. Only include tunnels that are on the MAIN/DEFAULT driving route (what a navigation system would suggest)
2. For Salzburg to Ljubljana via A10: Tauern Tunnel (at-tauern) AND Karawanken Tunnel (at-karawanken) are BOTH required
3. For Ljubljana to Salzburg via A10: Karawanken Tunnel (at-karawanken) AND Tauern Tunnel (at-tauern) are BOTH required
4. The A10 Tauern Autobahn goes: Salzburg -> Tauern Tunnel -> Villach -> Karawanken Tunnel -> Slovenia
5. If traveling through Graz instead (A9 route), use Bosruck and Gleinalm tunnels, NOT Tauern/Karawanken"""


def build_prompt(
    origin: str,
    destination: str,
    waypoints: Sequence[str],
    countries: Sequence[str],
) -> str:
    candidates = [
        f"- {toll.id}: {toll.name} ({rule.name}) - {toll.route or ''}"
        for rule, toll in iter_special_tolls()
        if not countries or rule.code in countries
    ]
    via = f"Via: {', '.join(waypoints)}\n" if waypoints else ""
    return (
        "You are a European toll road expert. A driver is traveling:\n"
        f"From: {origin}\n"
        f"To: {destination}\n"
        f"{via}"
        f"Countries on route: {', '.join(countries) or 'Unknown'}\n\n"
        "Based on the standard driving routes between these locations, which tunnels "
        "from this list would they DEFINITELY pass through?\n\n"
        "Available tunnels:\n"
        + "\n".join(candidates)
        + "\n\n"
        + ROUTING_HINTS
        + '\n\nRespond with ONLY a JSON array of tunnel IDs, like: ["at-tauern", "at-karawanken"]\n'
        "If no tunnels are needed, respond with: []"
    )


def parse_toll_ids(content: str) -> frozenset[str]:
    match = _JSON_ARRAY.search(content)
    if match is None:
        return frozenset()
    try:
        values = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Tunnel detection answer is not valid JSON: %r", content)
        return frozenset()
    if not isinstance(values, list):
        return frozenset()
    known = special_toll_ids()
    return frozenset(value for value in values if isinstance(value, str) and value in known)


class TunnelDetectionClient:
    def __init__(self) -> None:
        self.base_url = settings.TUNNEL_DETECTION_BASE_URL.rstrip("/")
        self.api_key = settings.TUNNEL_DETECTION_API_KEY
        self.model = settings.TUNNEL_DETECTION_MODEL
        self.timeout = settings.TUNNEL_DETECTION_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def detect(
        self,
        origin: str,
        destination: str,
        waypoints: Sequence[str] = (),
        countries: Sequence[str] = (),
    ) -> frozenset[str]:
        if not self.is_configured:
            logger.info("Tunnel detection model not configured, skipping")
            return frozenset()
        if not origin or not destination:
            return frozenset()

        request_body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(origin, destination, waypoints, countries)},
            ],
            "temperature": 0.1,
            "max_tokens": 200,
        }
        try:
            response = httpx.post(
                f"{self.base_url}/chat/completions",
                json=request_body,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            content = self._message_content(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Tunnel detection request failed: %s", exc)
            return frozenset()

        detected = parse_toll_ids(content)
        logger.info("Tunnel detection model suggested %d special tolls", len(detected))
        return detected

    @staticmethod
    def _message_content(payload: Any) -> str:
        try:
            return str(payload["choices"][0]["message"]["content"] or "[]")
        except (KeyError, IndexError, TypeError):
            return "[]"
