"""BIP-329 label derivation from a finished session map."""

from typing import Iterable

from jmlog.classifier import (
    CJ_INFO,
    FILLING_OFFER,
    SCHEDULE_ITEM,
    TX_SEND,
    UTXOS_ADDED,
    UTXOS_REMOVED,
)
from jmlog.models import Label, LogRecord

FUNDING_LABEL = "Funding"
WITHDRAWAL_LABEL = "Withdrawal"


def _first(session: Iterable[LogRecord], event_type: str) -> LogRecord | None:
    return next((r for r in session if r.type == event_type), None)


def _with_role(role: str, suffix: str) -> str:
    return f"{role} {suffix}".strip()


def _role_label(prefix: str, mixdepth) -> str:
    if mixdepth is None:
        return prefix
    return f"Mixdepth {mixdepth} {prefix}"


def _previous_output_label(labels: list[Label], outpoint: str) -> str | None:
    for label in labels:
        if label.type == "output" and label.ref == outpoint and label.label != FUNDING_LABEL:
            return label.label
    return None


def session_labels(session: list[LogRecord], labels: list[Label]) -> list[Label]:
    """Labels for one session; *labels* holds everything emitted before it."""
    filling_offer = _first(session, FILLING_OFFER)
    tx_send = _first(session, TX_SEND)
    schedule_item = _first(session, SCHEDULE_ITEM)
    utxos_added = _first(session, UTXOS_ADDED)
    utxos_removed = _first(session, UTXOS_REMOVED)
    cj_info = _first(session, CJ_INFO)

    added = (utxos_added.get("utxos") if utxos_added else None) or []
    removed = (utxos_removed.get("utxos") if utxos_removed else None) or []

    emitted: list[Label] = []
    role = ""
    if filling_offer and utxos_added:
        role = _role_label("Maker", filling_offer.get("mixdepth"))
        if added:
            emitted.append(Label("tx", added[0]["outpoint"].split(":")[0], role))
    elif utxos_removed and tx_send:
        mixdepth = schedule_item.get("mixdepth") if schedule_item else None
        role = _role_label("Taker", mixdepth)
        emitted.append(Label("tx", tx_send.get("txid"), role))

    coinjoined = _with_role(role, "Coinjoined")
    change = _with_role(role, "Change")

    if cj_info:
        emitted.append(Label("addr", cj_info.get("cjaddr"), coinjoined))
        emitted.append(Label("addr", cj_info.get("change"), change))

    for utxo in added:
        if cj_info:
            text = coinjoined if utxo["address"] == cj_info.get("cjaddr") else change
        else:
            text = FUNDING_LABEL
        emitted.append(Label("output", utxo["outpoint"], text))

    for utxo in removed:
        text = coinjoined if cj_info else WITHDRAWAL_LABEL
        earlier = _previous_output_label(labels + emitted, utxo["outpoint"])
        if earlier:
            text = ", ".join([earlier, text])
        emitted.append(Label("input", utxo["outpoint"], text))

    return emitted


def derive_labels(sessions: dict[str, list[LogRecord]]) -> list[Label]:
    """Walk sessions in map order and collect their labels."""
    labels: list[Label] = []
    for session in sessions.values():
        labels.extend(session_labels(session, labels))
    return labels
