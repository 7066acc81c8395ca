from datetime import datetime, timedelta

import pytest

from jmlog.models import LogRecord

BASE_TIME = datetime(2024, 3, 1, 10, 0, 0)


@pytest.fixture
def make_record():
    """Build a normalized record ``offset`` seconds after BASE_TIME."""

    def _make(event_type, offset=0, source_file="test.log", **fields):
        return LogRecord(
            timestamp=BASE_TIME + timedelta(seconds=offset),
            type=event_type,
            source_file=source_file,
            raw_content=None,
            fields=fields,
        )

    return _make


@pytest.fixture
def utxo():
    def _utxo(outpoint, address="bc1qaddr", value=100000, path="m/84'/1'/0'/0/0"):
        return {"outpoint": outpoint, "path": path, "address": address, "value": value}

    return _utxo
