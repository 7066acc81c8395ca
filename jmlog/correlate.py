"""Correlation engine — fold sorted records into timestamp-keyed sessions.

Two strategies move a record into an earlier session:

* exact cross-reference: a wallet/confirmation event searches the existing
  sessions, in map order, for one whose records reference the same outpoint
  or address and that holds no record of the searching type yet;
* positional adjacency: an event directly following one of a fixed set of
  event types (in global order, whatever its session) takes that record's
  timestamp.

In both cases the record's timestamp is rewritten, so a record's
``session_key`` always names the session it lives in.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from jmlog.classifier import (
    CHOSEN_ORDERS,
    CJ_AMOUNT,
    CJ_EARNED,
    CJ_FEE,
    CJ_INFO,
    FILLING_OFFER,
    SCHEDULE_ITEM,
    SENDING_OUTPUT,
    TX_CONFIRMED,
    TX_OBTAINED,
    TX_SEND,
    UTXOS_ADDED,
    UTXOS_REMOVED,
)
from jmlog.metrics import Metrics
from jmlog.models import LogRecord

logger = logging.getLogger(__name__)

Session = list[LogRecord]

ADOPTS_FROM: dict[str, frozenset[str]] = {
    SENDING_OUTPUT: frozenset({FILLING_OFFER}),
    TX_OBTAINED: frozenset({SENDING_OUTPUT, FILLING_OFFER, CJ_FEE, CJ_AMOUNT, CHOSEN_ORDERS}),
    CJ_EARNED: frozenset({UTXOS_REMOVED, TX_OBTAINED}),
    CJ_INFO: frozenset({CJ_EARNED, TX_OBTAINED}),
    SCHEDULE_ITEM: frozenset({UTXOS_REMOVED, TX_OBTAINED}),
    TX_SEND: frozenset({SCHEDULE_ITEM}),
}


def _first_utxo(record: LogRecord) -> dict | None:
    utxos = record.get("utxos")
    return utxos[0] if utxos else None


def _spends_removed_utxo(record: LogRecord, session: Session) -> bool:
    """Session holds an obtained tx with the removed UTXO among its inputs."""
    outpoint = _first_utxo(record)["outpoint"]
    return any(
        r.type == TX_OBTAINED
        and any(i.get("outpoint") == outpoint for i in r.get("inputs") or [])
        for r in session
    )


def _pays_own_address(record: LogRecord, session: Session) -> bool:
    """Session announced the added UTXO's address as coinjoin or change address."""
    address = _first_utxo(record)["address"]
    return any(
        r.type == CJ_INFO and address in (r.get("cjaddr"), r.get("change"))
        for r in session
    )


def _confirms_added_utxo(record: LogRecord, session: Session) -> bool:
    # Compares the logged block hash with the txid part of an outpoint.
    # Kept as-is to stay compatible with existing exports.
    block = record.get("block")
    return any(
        r.type == UTXOS_ADDED
        and any(u["outpoint"].startswith(block) for u in r.get("utxos") or [])
        for r in session
    )


def _has_utxos(record: LogRecord) -> bool:
    return _first_utxo(record) is not None


def _has_block(record: LogRecord) -> bool:
    return bool(record.get("block"))


# type -> (can search, session predicate)
CROSS_REFERENCES: dict[str, tuple[Callable[[LogRecord], bool], Callable[[LogRecord, Session], bool]]] = {
    UTXOS_REMOVED: (_has_utxos, _spends_removed_utxo),
    UTXOS_ADDED: (_has_utxos, _pays_own_address),
    TX_CONFIRMED: (_has_block, _confirms_added_utxo),
}


@dataclass
class _FoldState:
    sessions: dict[str, Session] = field(default_factory=dict)
    previous: LogRecord | None = None


def find_session(
    sessions: dict[str, Session],
    record: LogRecord,
    predicate: Callable[[LogRecord, Session], bool],
) -> str | None:
    """Return the first session key, in map order, that the record binds to.

    Sessions already holding a record of the same type are skipped.
    """
    for key, session in sessions.items():
        if any(r.type == record.type for r in session):
            continue
        if predicate(record, session):
            return key
    return None


def _place(state: _FoldState, record: LogRecord, metrics: Metrics | None) -> None:
    reference = CROSS_REFERENCES.get(record.type)
    if reference is not None:
        can_search, predicate = reference
        if can_search(record):
            key = find_session(state.sessions, record, predicate)
            if key is not None:
                record.timestamp = state.sessions[key][0].timestamp
                if metrics is not None:
                    metrics.increment("correlation.bound")
        return

    allowed = ADOPTS_FROM.get(record.type)
    previous = state.previous
    if allowed and previous is not None and previous.type in allowed:
        record.timestamp = previous.timestamp
        if metrics is not None:
            metrics.increment("correlation.adopted")


def correlate(records: list[LogRecord], metrics: Metrics | None = None) -> dict[str, Session]:
    """Fold the merged, normalized records into an ordered session map."""
    state = _FoldState()
    for record in records:
        _place(state, record, metrics)
        state.sessions.setdefault(record.session_key, []).append(record)
        state.previous = record

    logger.info("Correlated %d records into %d sessions", len(records), len(state.sessions))
    if metrics is not None:
        metrics.increment("sessions", len(state.sessions))
    return state.sessions
