"""Tests for jmlog/classifier.py"""

import unittest

from jmlog.classifier import (
    EVENT_TYPES,
    RULES,
    TAKER_EVENT_TYPES,
    classify,
)


class TestClassify(unittest.TestCase):
    """Each known prefix maps to its event type."""

    CASES = [
        ("Added utxos=", "utxos_added"),
        ("Removed utxos=", "utxos_removed"),
        ("chosen orders =", "chosen_orders"),
        ("cj amount = 4990000", "cj_amount"),
        ("total cj fee = 1250", "cj_fee"),
        ("total coinjoin fee = 0.05%", "cj_fee"),
        ("obtained tx", "tx_obtained"),
        ("txid = dddd4444", "tx_send"),
        ("schedule item was: [0, 1000, 3, 'addr']", "schedule_item"),
        ("filling offer, mixdepth=1, amount=5000000", "filling_offer"),
        ("sending output to address=bc1qx", "sending_output"),
        ("tx in a block: abcd with 1 confirmations", "tx_confirmed"),
        ("potentially earned = 0.00000250 BTC (250 sats)", "cj_earned"),
        ("mycjaddr, mychange = bc1qa, bc1qb", "cj_info"),
    ]

    def test_known_prefixes(self):
        for payload, expected in self.CASES:
            with self.subTest(payload=payload):
                rule = classify(payload)
                self.assertIsNotNone(rule)
                self.assertEqual(rule.event_type, expected)

    def test_unrecognized_payload(self):
        self.assertIsNone(classify("starting yield generator"))

    def test_empty_payload(self):
        self.assertIsNone(classify(""))

    def test_prefix_must_start_payload(self):
        self.assertIsNone(classify("the txid = abc"))

    def test_txid_requires_trailing_space(self):
        self.assertIsNone(classify("txid =abc"))

    def test_case_sensitive(self):
        self.assertIsNone(classify("Obtained tx"))

    def test_payload_kept_for_single_line_events(self):
        self.assertTrue(classify("cj amount = 10").keeps_payload)
        self.assertTrue(classify("txid = abc").keeps_payload)

    def test_payload_dropped_for_block_events(self):
        self.assertFalse(classify("obtained tx").keeps_payload)
        self.assertFalse(classify("Added utxos=").keeps_payload)
        self.assertFalse(classify("chosen orders =").keeps_payload)


class TestEnabledTypes(unittest.TestCase):
    def test_disabled_type_does_not_match(self):
        self.assertIsNone(classify("filling offer, mixdepth=1, amount=5", TAKER_EVENT_TYPES))

    def test_enabled_type_still_matches(self):
        rule = classify("txid = abc", TAKER_EVENT_TYPES)
        self.assertEqual(rule.event_type, "tx_send")

    def test_taker_types_exclude_maker_events(self):
        for event_type in ("filling_offer", "sending_output", "cj_earned", "cj_info"):
            self.assertNotIn(event_type, TAKER_EVENT_TYPES)


class TestRuleTable(unittest.TestCase):
    def test_every_rule_has_known_type(self):
        for rule in RULES:
            self.assertIn(rule.event_type, EVENT_TYPES)

    def test_every_type_reachable(self):
        self.assertEqual({r.event_type for r in RULES}, set(EVENT_TYPES))


if __name__ == "__main__":
    unittest.main()
