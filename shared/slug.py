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

import re
import unicodedata
import uuid
from typing import Callable

MAX_SLUG_ATTEMPTS = 50


def slugify(text: str) -> str:
    folded = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode()
    slug = re.sub(r"[^a-z0-9]+", "-", folded.lower())
    return slug.strip("-")


def generate_unique_slug(name: str, exists: Callable[[str], bool]) -> str:
    """Tries base, base-2, ... base-50 and falls back to a random suffix."""
    base = slugify(name) or "business"
    for i in range(MAX_SLUG_ATTEMPTS):
        slug = base if i == 0 else f"{base}-{i + 1}"
        if not exists(slug):
            return slug
    return f"{base}-{uuid.uuid4().hex[:8]}"
