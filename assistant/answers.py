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
"""Generates answers for the island guide assistant."""

from typing import Optional

from assistant import gemini
from assistant import prompts


def placeholder_answer(question: str) -> str:
    return f"Placeholder answer to: {question.strip()}"


def generate_guide_answer(
    question: str,
    island: Optional[str],
    lang: str,
    plan: Optional[str],
    api_key: Optional[str],
    model: str = gemini.DEFAULT_MODEL,
    temperature: float = 0.4,
) -> str:
    """
    Answers a visitor question about the islands.

    Without an API key (local development, tests) a placeholder answer is
    returned so the quota bookkeeping can still be exercised end to end.
    """
    if not api_key:
        return placeholder_answer(question)

    prompt = prompts.make_guide_prompt(question, island, lang, plan)
    return gemini.call_predict(
        prompt, api_key=api_key, model=model, temperature=temperature
    ).strip()
