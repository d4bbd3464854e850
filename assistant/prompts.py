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

from typing import Optional

from shared.types import ISLAND_LABELS, parse_island

LANGUAGE_NAMES = {
    "en": "English",
    "nl": "Dutch",
    "pap": "Papiamento",
    "es": "Spanish",
}

DETAILED_PLANS = {"premium", "growth", "pro"}
SHORT_LENGTH = "five sentences"
DETAILED_LENGTH = "ten sentences"

_GUIDE_PROMPT = """You are Guide Me ABC, a friendly local guide for Aruba, Bonaire and Curaçao.
Answer the visitor's question in {language}. Keep the answer short (at most
{length}) and practical. If you are not sure about opening hours or prices,
say so and suggest checking with the business directly.
{island_line}
Question: {question}
"""


def make_guide_prompt(
    question: str, island: Optional[str], lang: str, plan: Optional[str] = None
) -> str:
    parsed = parse_island(island)
    island_line = (
        f"The visitor is interested in {ISLAND_LABELS[parsed]}." if parsed else ""
    )
    return _GUIDE_PROMPT.format(
        language=LANGUAGE_NAMES.get(lang, "English"),
        length=DETAILED_LENGTH if (plan or "").lower() in DETAILED_PLANS else SHORT_LENGTH,
        island_line=island_line,
        question=question.strip(),
    )
