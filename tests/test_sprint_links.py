"""
Unit Tests for Sprint Link Resolution
Tests each sprint field shape and the field search order.
"""

import unittest

from jira_mirror.sync.sprint_links import (
    Absent,
    ArrayOfRefs,
    LegacyEncodedString,
    SingleRef,
    classify_sprint_field,
    extract_sprint_id,
    resolve_sprint_id
)

FIELDS = ['customfield_10020', 'customfield_10010', 'sprint', 'sprints']

LEGACY = (
    'com.atlassian.greenhopper.service.sprint.Sprint@1f3c2a[id=123,rapidViewId=7,'
    'state=ACTIVE,name=Sprint 12,startDate=2024-01-01T09:00:00.000Z,sequence=123]'
)


class TestClassification(unittest.TestCase):
    """Test shape classification."""

    def test_shapes(self):
        self.assertIsInstance(classify_sprint_field([{'id': 1}]), ArrayOfRefs)
        self.assertIsInstance(classify_sprint_field({'id': 1}), SingleRef)
        self.assertIsInstance(classify_sprint_field(LEGACY), LegacyEncodedString)
        self.assertIsInstance(classify_sprint_field(None), Absent)
        self.assertIsInstance(classify_sprint_field([]), Absent)
        self.assertIsInstance(classify_sprint_field(''), Absent)
        self.assertIsInstance(classify_sprint_field(42), Absent)


class TestSprintIdExtraction(unittest.TestCase):
    """Test that every encoding of sprint 123 resolves to 123."""

    def test_array_of_objects(self):
        fields = {'customfield_10020': [{'id': 123, 'name': 'Sprint 12', 'state': 'active'}]}
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 123)

    def test_single_object(self):
        fields = {'customfield_10020': {'id': 123, 'name': 'Sprint 12'}}
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 123)

    def test_legacy_string(self):
        fields = {'customfield_10020': LEGACY}
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 123)

    def test_array_takes_most_recent(self):
        fields = {'customfield_10020': [{'id': 100}, {'id': 110}, {'id': 123}]}
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 123)

    def test_array_of_legacy_strings(self):
        fields = {'customfield_10020': ['...Sprint@1[id=99,state=CLOSED]', LEGACY]}
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 123)

    def test_legacy_id_at_end_of_string(self):
        self.assertEqual(extract_sprint_id(LegacyEncodedString('Sprint@1[state=ACTIVE,id=55]')), 55)

    def test_unparseable_values(self):
        self.assertIsNone(extract_sprint_id(SingleRef({'name': 'no id'})))
        self.assertIsNone(extract_sprint_id(LegacyEncodedString('no identifier here')))
        self.assertIsNone(extract_sprint_id(LegacyEncodedString('Sprint@1[id=,state=ACTIVE]')))
        self.assertIsNone(extract_sprint_id(ArrayOfRefs([[{'id': 1}]])))
        self.assertIsNone(extract_sprint_id(Absent()))


class TestFieldSearchOrder(unittest.TestCase):
    """Test the ordered search across candidate fields."""

    def test_first_field_with_an_id_wins(self):
        fields = {
            'customfield_10020': None,
            'customfield_10010': {'id': 7},
            'sprint': {'id': 8},
        }
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 7)

    def test_unparseable_field_is_passed_over(self):
        fields = {
            'customfield_10020': 'garbage',
            'sprints': [{'id': 9}],
        }
        self.assertEqual(resolve_sprint_id(fields, FIELDS), 9)

    def test_no_sprint_fields(self):
        self.assertIsNone(resolve_sprint_id({'summary': 'x'}, FIELDS))


if __name__ == '__main__':
    unittest.main()
