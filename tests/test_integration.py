"""Integration tests — E2E via subprocess against logs/sample."""

import json
import os
import subprocess
import sys
import tempfile
import unittest

from jmlog.config import Config
from jmlog.pipeline import run

SAMPLE_DIR = os.path.join(os.path.dirname(__file__), "..", "logs", "sample")
MAIN_PY = os.path.join(os.path.dirname(__file__), "..", "main.py")

MAKER_KEY = "2024-03-01T10:05:12"
TAKER_KEY = "2024-03-01T11:00:00"
DEPOSIT_KEY = "2024-03-01T09:00:00"


def _run(*args: str, cwd: str) -> subprocess.CompletedProcess:
    """Run main.py with given args, return CompletedProcess."""
    return subprocess.run(
        [sys.executable, os.path.abspath(MAIN_PY), *args],
        capture_output=True,
        text=True,
        cwd=cwd,
    )


class TestFullMode(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmpdir = tempfile.mkdtemp()
        cls.result = _run(os.path.abspath(SAMPLE_DIR), cwd=cls.tmpdir)
        with open(os.path.join(cls.tmpdir, "joinmarket.json")) as f:
            cls.sessions = json.load(f)
        with open(os.path.join(cls.tmpdir, "joinmarket-bip329.json")) as f:
            cls.labels = [json.loads(line) for line in f if line.strip()]

    def test_exit_code(self):
        self.assertEqual(self.result.returncode, 0, self.result.stderr)

    def test_session_keys(self):
        self.assertEqual(list(self.sessions), [DEPOSIT_KEY, MAKER_KEY, TAKER_KEY])

    def test_maker_session_records(self):
        types = [r["type"] for r in self.sessions[MAKER_KEY]]
        self.assertEqual(types, [
            "filling_offer", "sending_output", "tx_obtained", "cj_earned",
            "cj_info", "utxos_added", "tx_confirmed",
        ])

    def test_taker_session_records(self):
        types = [r["type"] for r in self.sessions[TAKER_KEY]]
        self.assertEqual(types, [
            "chosen_orders", "cj_amount", "cj_fee", "tx_obtained",
            "utxos_removed", "schedule_item", "tx_send",
        ])

    def test_records_carry_session_timestamp(self):
        for key, records in self.sessions.items():
            for record in records:
                self.assertEqual(record["timestamp"], key)

    def test_legacy_tx_normalized(self):
        tx = next(r for r in self.sessions[TAKER_KEY] if r["type"] == "tx_obtained")
        self.assertEqual(tx["inputs"][0]["outpoint"], "cccc3333:1")
        self.assertIsNone(tx["inputs"][0]["witness"])
        self.assertEqual(tx["outputs"][0]["value_sats"], 4990000)
        self.assertNotIn("content", tx)

    def test_chosen_orders_parsed(self):
        orders = self.sessions[TAKER_KEY][0]["orders"]
        self.assertEqual([o["counterparty"] for o in orders], ["J5abc", "J5def"])

    def test_labels(self):
        self.assertEqual(self.labels, [
            {"type": "output", "ref": "ffff0000:0", "label": "Funding"},
            {"type": "tx", "ref": "cccc3333", "label": "Mixdepth 1 Maker"},
            {"type": "addr", "ref": "bc1qmakercj", "label": "Mixdepth 1 Maker Coinjoined"},
            {"type": "addr", "ref": "bc1qmakerchange", "label": "Mixdepth 1 Maker Change"},
            {"type": "output", "ref": "cccc3333:1", "label": "Mixdepth 1 Maker Coinjoined"},
            {"type": "output", "ref": "cccc3333:2", "label": "Mixdepth 1 Maker Change"},
            {"type": "tx", "ref": "dddd4444", "label": "Mixdepth 2 Taker"},
            {"type": "input", "ref": "cccc3333:1", "label": "Mixdepth 1 Maker Coinjoined, Withdrawal"},
        ])


class TestReducedMode(unittest.TestCase):
    def test_taker_events_only_and_no_labels(self):
        tmpdir = tempfile.mkdtemp()
        result = _run(os.path.abspath(SAMPLE_DIR), "taker.json", "--mode", "reduced", cwd=tmpdir)
        self.assertEqual(result.returncode, 0, result.stderr)
        with open(os.path.join(tmpdir, "taker.json")) as f:
            sessions = json.load(f)
        types = {r["type"] for records in sessions.values() for r in records}
        self.assertNotIn("filling_offer", types)
        self.assertNotIn("cj_info", types)
        self.assertIn("tx_send", types)
        self.assertFalse(os.path.exists(os.path.join(tmpdir, "joinmarket-bip329.json")))


class TestErrors(unittest.TestCase):
    def test_missing_directory_exits_1(self):
        tmpdir = tempfile.mkdtemp()
        result = _run(os.path.join(tmpdir, "nope"), cwd=tmpdir)
        self.assertEqual(result.returncode, 1)
        self.assertIn("Aborting", result.stderr)

    def test_bad_mode_from_env_exits_1(self):
        tmpdir = tempfile.mkdtemp()
        env = dict(os.environ, JMLOG_MODE="bogus")
        result = subprocess.run(
            [sys.executable, os.path.abspath(MAIN_PY), os.path.abspath(SAMPLE_DIR)],
            capture_output=True, text=True, cwd=tmpdir, env=env,
        )
        self.assertEqual(result.returncode, 1)
        self.assertIn("Unknown mode", result.stderr)

    def test_unreadable_config_reported_without_traceback(self):
        tmpdir = tempfile.mkdtemp()
        result = _run(os.path.abspath(SAMPLE_DIR), "--config", tmpdir, cwd=tmpdir)
        self.assertEqual(result.returncode, 1)
        self.assertIn("Cannot read config", result.stderr)
        self.assertNotIn("Traceback", result.stderr)

    def test_missing_directory_argument(self):
        result = _run(cwd=tempfile.mkdtemp())
        self.assertEqual(result.returncode, 2)


class TestRunInProcess(unittest.TestCase):
    def test_stats_file_and_result(self):
        tmpdir = tempfile.mkdtemp()
        config = Config(
            directory=os.path.abspath(SAMPLE_DIR),
            output_path=os.path.join(tmpdir, "s.json"),
            labels_path=os.path.join(tmpdir, "l.json"),
            stats_path=os.path.join(tmpdir, "stats.json"),
        )
        result = run(config)
        self.assertEqual(len(result.labels), 8)
        with open(config.stats_path) as f:
            counters = json.load(f)["counters"]
        self.assertEqual(counters["files"], 2)
        self.assertEqual(counters["records"], 15)
        self.assertEqual(counters["labels.written"], 8)
        self.assertEqual(counters["correlation.bound"], 3)
        self.assertEqual(counters["labels.invalid"], 0)

    def test_invalid_labels_counted(self):
        tmpdir = tempfile.mkdtemp()
        logdir = os.path.join(tmpdir, "logs")
        os.makedirs(logdir)
        with open(os.path.join(logdir, "maker.log"), "w") as f:
            f.write("2024-03-01 10:00:00,000 [INFO]  mycjaddr, mychange = ?, ?\n")
        config = Config(
            directory=logdir,
            output_path=os.path.join(tmpdir, "s.json"),
            labels_path=os.path.join(tmpdir, "l.json"),
        )
        result = run(config)
        self.assertEqual(result.metrics.get("labels.derived"), 2)
        self.assertEqual(result.metrics.get("labels.invalid"), 2)
        self.assertEqual(result.metrics.get("labels.written"), 0)


if __name__ == "__main__":
    unittest.main()
