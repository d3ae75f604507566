import unittest
from datetime import datetime

from socialclock.services.alarm_event import QuerySyntaxError, all_of, any_of, order_by, where
from socialclock.services.alarm_event.query import AllOf, Condition, Operator, parse_predicate


class TestPredicates(unittest.TestCase):

    def test_unknown_field_is_rejected(self):
        with self.assertRaises(QuerySyntaxError):
            where("password", "eq", "x")

    def test_unknown_operator_is_rejected(self):
        with self.assertRaises(QuerySyntaxError):
            where("event_id", "like", "x%")

    def test_comparison_needs_a_value(self):
        with self.assertRaises(QuerySyntaxError):
            where("end_at", "eq", None)

    def test_null_check_takes_no_value(self):
        with self.assertRaises(QuerySyntaxError):
            where("end_at", "is_null", datetime(2025, 1, 1))

    def test_value_type_must_match_field(self):
        with self.assertRaises(QuerySyntaxError):
            where("snooze_times", "gt", "3")
        with self.assertRaises(QuerySyntaxError):
            where("snooze_times", "gt", True)
        with self.assertRaises(QuerySyntaxError):
            where("start_at", "gt", "yesterday")

    def test_iso_strings_are_accepted_for_timestamps(self):
        condition = where("start_at", "ge", "2025-01-01T07:00:00")
        self.assertEqual(condition.value, datetime(2025, 1, 1, 7, 0))
        self.assertIs(condition.op, Operator.GE)

    def test_empty_any_of_is_rejected(self):
        with self.assertRaises(QuerySyntaxError):
            any_of()

    def test_empty_all_of_is_allowed(self):
        self.assertEqual(all_of().conditions, [])

    def test_nested_mapping_is_parsed(self):
        predicate = parse_predicate({
            "kind": "all",
            "conditions": [
                {"kind": "condition", "field": "user_id", "op": "eq", "value": "42"},
                {"kind": "any", "conditions": [{"field": "end_at", "op": "is_null"}]},
            ],
        })
        self.assertIsInstance(predicate, AllOf)
        self.assertIsInstance(predicate.conditions[0], Condition)

    def test_nested_malformed_mapping_is_rejected(self):
        with self.assertRaises(QuerySyntaxError):
            parse_predicate({"kind": "all", "conditions": [{"field": "end_at", "op": "nope"}]})

    def test_raw_sql_is_rejected(self):
        with self.assertRaises(QuerySyntaxError):
            parse_predicate("end_at NOT NULL")

    def test_order_by_field_is_checked(self):
        self.assertFalse(order_by("snooze_times", descending=False).descending)
        with self.assertRaises(QuerySyntaxError):
            order_by("random()")


if __name__ == '__main__':
    unittest.main()
