"""
test_queries.py - Unit Tests
Tests for: transaction query assembly, calendar windows, log masking
"""

import sys
import os
import unittest
import itertools
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from finance_api.database import QueryBuilder, transactions_query
from finance_common.utils import mask_sensitive, period_cutoff, subtract_months


# ─────────────────────────────────────────────
class TestQueryBuilder(unittest.TestCase):

    def test_first_predicate_opens_where(self):
        sql, params = QueryBuilder("SELECT 1 FROM t").where("a = {}", 5).where("b = {}", 6).build()
        self.assertEqual(sql, "SELECT 1 FROM t WHERE a = %s AND b = %s")
        self.assertEqual(params, (5, 6))

    def test_no_predicates(self):
        sql, params = QueryBuilder("SELECT 1 FROM t").order_by("a").build()
        self.assertEqual(sql, "SELECT 1 FROM t ORDER BY a")
        self.assertEqual(params, ())


# ─────────────────────────────────────────────
class TestTransactionsQuery(unittest.TestCase):

    SINCE = datetime(2026, 9, 19, 8, 0, 0)

    def test_user_only(self):
        sql, params = transactions_query(1)
        self.assertEqual(
            sql,
            "SELECT user_id, category_id, amount, date, description FROM transactions "
            "WHERE user_id = %s ORDER BY category_id, date DESC",
        )
        self.assertEqual(params, (1,))

    def test_all_filters(self):
        sql, params = transactions_query(1, category_id=7, since=self.SINCE)
        self.assertEqual(
            sql,
            "SELECT user_id, category_id, amount, date, description FROM transactions "
            "WHERE user_id = %s AND category_id = %s AND date >= %s::timestamp "
            "ORDER BY category_id, date DESC",
        )
        self.assertEqual(params, (1, 7, self.SINCE))

    def test_placeholder_count_matches_filters(self):
        """N+1 parameters where N counts the optional category and date predicates."""
        for category_id, since in itertools.product((None, 7), (None, self.SINCE)):
            sql, params = transactions_query("42", category_id, since)
            expected = 1 + (category_id is not None) + (since is not None)
            self.assertEqual(len(params), expected)
            self.assertEqual(sql.count("%s"), expected)
            self.assertNotIn("42", sql)
            self.assertTrue(sql.endswith("ORDER BY category_id, date DESC"))

    def test_hostile_values_stay_out_of_sql(self):
        sql, params = transactions_query("1; DROP TABLE users", category_id=3)
        self.assertNotIn("DROP", sql)
        self.assertEqual(params, ("1; DROP TABLE users", 3))


# ─────────────────────────────────────────────
class TestCalendarWindows(unittest.TestCase):

    NOW = datetime(2026, 5, 15, 10, 20, 30)

    def test_month(self):
        self.assertEqual(period_cutoff("месяц", self.NOW), datetime(2026, 4, 15, 10, 20, 30))

    def test_three_months(self):
        self.assertEqual(period_cutoff("три месяца", self.NOW), datetime(2026, 2, 15, 10, 20, 30))

    def test_year(self):
        self.assertEqual(period_cutoff("год", self.NOW), datetime(2025, 5, 15, 10, 20, 30))

    def test_all_time_has_no_cutoff(self):
        self.assertIsNone(period_cutoff("всё время", self.NOW))

    def test_unknown_period_has_no_cutoff(self):
        self.assertIsNone(period_cutoff("unknown", self.NOW))
        self.assertIsNone(period_cutoff("", self.NOW))

    def test_non_string_period_has_no_cutoff(self):
        for period in (["год"], {"год": 1}, 12, None):
            self.assertIsNone(period_cutoff(period, self.NOW))

    def test_defaults_to_current_time(self):
        before = datetime.now()
        cutoff = period_cutoff("год")
        self.assertLess(cutoff, before)
        self.assertGreater(cutoff, subtract_months(before, 13))

    def test_crosses_year_boundary(self):
        self.assertEqual(subtract_months(datetime(2026, 1, 10), 1), datetime(2025, 12, 10))
        self.assertEqual(subtract_months(datetime(2026, 2, 10), 3), datetime(2025, 11, 10))

    def test_clamps_to_month_end(self):
        self.assertEqual(subtract_months(datetime(2024, 3, 31), 1), datetime(2024, 2, 29))
        self.assertEqual(subtract_months(datetime(2025, 5, 31), 3), datetime(2025, 2, 28))
        self.assertEqual(subtract_months(datetime(2024, 2, 29), 12), datetime(2023, 2, 28))


# ─────────────────────────────────────────────
class TestMasking(unittest.TestCase):

    def test_password_hidden(self):
        masked = mask_sensitive({"login": "alice", "password": "p@ss"})
        self.assertEqual(masked["login"], "alice")
        self.assertEqual(masked["password"], "<password: 4 chars>")

    def test_nested(self):
        masked = mask_sensitive({"data": {"token": "abc.def.ghi"}})
        self.assertNotIn("abc", str(masked))


# ─────────────────────────────────────────────
if __name__ == "__main__":
    unittest.main(verbosity=2)
