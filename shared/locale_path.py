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
"""Helpers for reading and rewriting the language segment of URL paths."""

import re
from typing import Optional, Tuple

LOCALES = ("en", "nl", "pap", "es")
DEFAULT_LOCALE = "en"

_MULTI_SLASH = re.compile(r"/{2,}")


def is_locale(value: Optional[str]) -> bool:
    return bool(value) and value in LOCALES


def normalize(pathname: Optional[str]) -> Tuple[str, bool]:
    """
    Cleans up a path: leading slash, no duplicate slashes, no ?query or #hash.

    Returns:
        (path, had_trailing_slash)
    """
    path = (pathname or "/").strip()

    hash_idx = path.find("#")
    if hash_idx >= 0:
        path = path[:hash_idx]
    query_idx = path.find("?")
    if query_idx >= 0:
        path = path[:query_idx]

    if not path.startswith("/"):
        path = "/" + path
    path = _MULTI_SLASH.sub("/", path)

    had_trailing_slash = len(path) > 1 and path.endswith("/")
    return path, had_trailing_slash


def _segments(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _join(parts: list[str], had_trailing_slash: bool) -> str:
    result = "/" + "/".join(parts) if parts else "/"
    if had_trailing_slash and result != "/" and not result.endswith("/"):
        result += "/"
    return result


def get_lang_from_path(pathname: Optional[str]) -> str:
    """Language of the first path segment; unknown falls back to the default."""
    path, _ = normalize(pathname)
    parts = _segments(path)
    first = parts[0] if parts else ""
    return first if is_locale(first) else DEFAULT_LOCALE


def replace_lang_in_path(pathname: Optional[str], new_lang: str) -> str:
    """Replaces or inserts the language segment, keeping a trailing slash."""
    path, had_trailing_slash = normalize(pathname)
    parts = _segments(path)

    if not parts:
        return f"/{new_lang}"

    if is_locale(parts[0]):
        parts[0] = new_lang
    else:
        parts.insert(0, new_lang)

    return _join(parts, had_trailing_slash)


def strip_lang_from_path(pathname: Optional[str]) -> str:
    """Removes a leading language segment from a path."""
    path, had_trailing_slash = normalize(pathname)
    parts = _segments(path)

    if not parts:
        return "/"

    if is_locale(parts[0]):
        parts = parts[1:]

    return _join(parts, had_trailing_slash)


def with_locale(base_path: str, lang: str) -> str:
    return replace_lang_in_path(strip_lang_from_path(base_path), lang)


def lang_href(lang: Optional[str], path: str) -> str:
    """
    Builds an in-app link for a language.

    lang_href("nl", "/business/auth") -> "/nl/business/auth"
    lang_href("es", "/") -> "/es"
    A path that already carries a language is returned unchanged.
    """
    safe_lang = lang if is_locale(lang) else DEFAULT_LOCALE

    if not path.startswith("/"):
        path = "/" + path

    segments = path.split("/")
    first_segment = segments[1] if len(segments) > 1 else ""
    if is_locale(first_segment):
        return path

    if path == "/":
        return f"/{safe_lang}"

    return f"/{safe_lang}{path}"


def guess_from_accept_language(accept: Optional[str]) -> str:
    value = (accept or "").lower()
    if value.startswith("nl"):
        return "nl"
    if value.startswith("es"):
        return "es"
    if "pap" in value:
        return "pap"
    return DEFAULT_LOCALE
