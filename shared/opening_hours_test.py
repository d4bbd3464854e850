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

import json
import unittest

from shared import opening_hours
from shared import slug


class OpeningHoursTest(unittest.TestCase):

    def test_normalize_fills_missing_days(self):
        fixed = opening_hours.normalize_opening_hours(
            {"monday": {"closed": False, "from": "08:00", "to": ""}}
        )
        self.assertEqual(fixed["monday"], {"closed": False, "from": "08:00", "to": "18:00"})
        self.assertEqual(fixed["sunday"], {"closed": True, "from": "09:00", "to": "18:00"})
        self.assertEqual(list(fixed), list(opening_hours.DAY_ORDER))

    def test_json_lines_are_localized(self):
        raw = json.dumps({"tuesday": {"closed": True}, "monday": {"from": "10:00", "to": "16:00"}})
        lines = opening_hours.get_opening_lines(raw, "pap")
        self.assertEqual([line.day for line in lines], ["Djaluna", "Djamars"])
        self.assertEqual(lines[0].from_time, "10:00")
        self.assertTrue(lines[1].closed)

    def test_legacy_text(self):
        raw = "Maandag: 09:00 - 17:30\nZondag: gesloten\nZaterdag: op afspraak"
        lines = opening_hours.get_opening_lines(raw)
        self.assertEqual(lines[0].from_time, "09:00")
        self.assertEqual(lines[0].to_time, "17:30")
        self.assertTrue(lines[1].closed)
        self.assertEqual((lines[2].from_time, lines[2].to_time), ("", ""))

    def test_parse_legacy_maps_by_position(self):
        parsed = opening_hours.parse_opening_hours("Mon: 07:00 - 15:00\nTue: closed")
        self.assertEqual(parsed["monday"], {"closed": False, "from": "07:00", "to": "15:00"})
        self.assertTrue(parsed["tuesday"]["closed"])
        self.assertTrue(parsed["wednesday"]["closed"])

    def test_broken_json_falls_back(self):
        self.assertEqual(opening_hours.get_opening_lines("{not json"), [])
        self.assertEqual(opening_hours.get_opening_lines("   "), [])

    def test_stringify(self):
        data = json.loads(opening_hours.stringify_opening_hours({}))
        self.assertEqual(len(data), 7)


class SlugTest(unittest.TestCase):

    def test_slugify(self):
        self.assertEqual(slug.slugify("Café Curaçao & Co."), "cafe-curacao-co")
        self.assertEqual(slug.slugify("!!!"), "")

    def test_generate_unique_slug(self):
        taken = {"zeerover", "zeerover-2"}
        self.assertEqual(slug.generate_unique_slug("Zeerover", taken.__contains__), "zeerover-3")
        self.assertEqual(slug.generate_unique_slug("", taken.__contains__), "business")

    def test_generate_unique_slug_random_suffix(self):
        value = slug.generate_unique_slug("Busy", lambda s: True)
        self.assertTrue(value.startswith("busy-"))
        self.assertEqual(len(value), len("busy-") + 8)


if __name__ == "__main__":
    unittest.main()
