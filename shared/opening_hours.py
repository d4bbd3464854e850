# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""
Opening hours for a listing.

Stored as a JSON object keyed by weekday. Listings created before the
structured editor keep a free text block ("Monday: 09:00 - 18:00"), which is
still parsed for display.
"""

import json
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

DAY_ORDER = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

DEFAULT_FROM = "09:00"
DEFAULT_TO = "18:00"

DAY_LABELS = {
    "en": dict(zip(DAY_ORDER, (
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    ))),
    "nl": dict(zip(DAY_ORDER, (
        "Maandag", "Dinsdag", "Woensdag", "Donderdag", "Vrijdag", "Zaterdag", "Zondag",
    ))),
    "es": dict(zip(DAY_ORDER, (
        "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo",
    ))),
    "pap": dict(zip(DAY_ORDER, (
        "Djaluna", "Djamars", "Djarason", "Djaweps", "Djabierne", "Djasabra", "Djadumingu",
    ))),
}

CLOSED_WORDS = ("gesloten", "closed", "cerrado", "será")

_TIME_RANGE = re.compile(r"(\d{1,2}:\d{2}).*?(\d{1,2}:\d{2})")

OpeningHours = Dict[str, Dict[str, object]]


@dataclass
class OpeningLine:
    day: str
    closed: bool
    from_time: str
    to_time: str


def get_day_labels(locale: str) -> Dict[str, str]:
    return DAY_LABELS.get(locale, DAY_LABELS["en"])


def _time_or_default(value, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def normalize_opening_hours(data: Optional[dict]) -> OpeningHours:
    data = data or {}
    fixed: OpeningHours = {}
    for day in DAY_ORDER:
        entry = data.get(day)
        if not isinstance(entry, dict):
            fixed[day] = {"closed": True, "from": DEFAULT_FROM, "to": DEFAULT_TO}
            continue
        fixed[day] = {
            "closed": bool(entry.get("closed")),
            "from": _time_or_default(entry.get("from"), DEFAULT_FROM),
            "to": _time_or_default(entry.get("to"), DEFAULT_TO),
        }
    return fixed


def _parse_legacy_text(text: str) -> List[OpeningLine]:
    lines: List[OpeningLine] = []
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        day_part, _, rest_part = line.partition(":")
        day = day_part.strip() or "?"
        rest = rest_part.strip().lower()
        if not rest:
            continue

        if any(word in rest for word in CLOSED_WORDS):
            lines.append(OpeningLine(day=day, closed=True, from_time="", to_time=""))
            continue

        match = _TIME_RANGE.search(rest)
        if not match:
            lines.append(OpeningLine(day=day, closed=False, from_time="", to_time=""))
            continue
        lines.append(
            OpeningLine(day=day, closed=False, from_time=match.group(1), to_time=match.group(2))
        )
    return lines


def get_opening_lines(raw: Optional[str], locale: str = "en") -> List[OpeningLine]:
    """Display lines for a stored opening-hours value (JSON or legacy text)."""
    if not raw or not raw.strip():
        return []

    trimmed = raw.strip()
    if trimmed.startswith("{"):
        try:
            data = json.loads(trimmed)
        except ValueError:
            data = None
        if isinstance(data, dict):
            labels = get_day_labels(locale)
            lines = []
            for day in DAY_ORDER:
                entry = data.get(day)
                if not isinstance(entry, dict):
                    continue
                lines.append(
                    OpeningLine(
                        day=labels[day],
                        closed=bool(entry.get("closed")),
                        from_time=entry.get("from") or DEFAULT_FROM,
                        to_time=entry.get("to") or DEFAULT_TO,
                    )
                )
            if lines:
                return lines

    return _parse_legacy_text(trimmed)


def parse_opening_hours(raw: Optional[str]) -> OpeningHours:
    """Turns a stored value into the structured form used by the editor."""
    if raw and raw.strip().startswith("{"):
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, dict):
                return normalize_opening_hours(parsed)
        except ValueError:
            pass

    base: OpeningHours = {
        day: {"closed": True, "from": DEFAULT_FROM, "to": DEFAULT_TO} for day in DAY_ORDER
    }
    # Legacy lines carry free-form day names, so map them by position.
    for day, line in zip(DAY_ORDER, get_opening_lines(raw, "nl")):
        base[day] = {
            "closed": line.closed,
            "from": line.from_time or DEFAULT_FROM,
            "to": line.to_time or DEFAULT_TO,
        }
    return base


def stringify_opening_hours(data: Optional[dict]) -> str:
    return json.dumps(normalize_opening_hours(data))
