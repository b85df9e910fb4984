"""Tests for filter evaluation."""

import re
from unittest import TestCase

from job_relay.filters import HOST_NAME, FilterRule, evaluate


class TestEvaluate(TestCase):
    """Tests for evaluate."""

    def test_no_rule_passes_everything(self):
        self.assertTrue(evaluate({"host_name": "anything"}, None))

    def test_anchored_rule(self):
        rule = FilterRule.compile(HOST_NAME, "^web")
        self.assertTrue(evaluate({"host_name": "web1"}, rule))
        self.assertFalse(evaluate({"host_name": "db1"}, rule))

    def test_rule_matches_anywhere_in_value(self):
        rule = FilterRule.compile(HOST_NAME, "eb")
        self.assertTrue(evaluate({"host_name": "web1"}, rule))

    def test_rule_applies_to_its_own_field(self):
        rule = FilterRule.compile("state", "^CRIT")
        tokens = {"host_name": "web1", "state": "CRITICAL"}
        self.assertTrue(evaluate(tokens, rule))

    def test_compile_rejects_bad_pattern(self):
        with self.assertRaises(re.error):
            FilterRule.compile(HOST_NAME, "web[")
