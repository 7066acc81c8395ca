"""Global merge and per-type field extraction.

Each parser takes the trimmed raw content of one record and returns either a
dict of typed fields or None. None means the record keeps its raw content;
a bad record never aborts the run.
"""

import json
import logging
import re
from itertools import chain
from typing import Any, Callable, Iterable

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

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

_CJ_AMOUNT_RE = re.compile(r"cj amount = (\d+)")
_FEE_RE = re.compile(r" = (.*)")
_TXID_RE = re.compile(r"txid = (\w+)")
_OFFER_RE = re.compile(r"filling offer, mixdepth=(\d+), amount=(\d+)")
_SENDING_RE = re.compile(r"sending output to address=(\w+)")
_CJ_INFO_RE = re.compile(r"mycjaddr, mychange = (\w+), (\w+)")
_UTXO_RE = re.compile(r"(\w+):(\d+) - path: (.*), address: (.*), value: (\d+)")
_EARNED_PREFIX_RE = re.compile(r".* BTC \(")
_SCHEDULE_RE = re.compile(r"schedule item was: (\[.*\])")
_CONFIRMED_RE = re.compile(r"tx in a block: (\w+) with (\d+) confirmations")
_LEADING_INT_RE = re.compile(r"\s*(-?\d+)")
_ORDER_START_RE = re.compile(r"[\s\S]\{")


def _loads_single_quoted(text: str) -> Any:
    """Decode python-repr style text by swapping single for double quotes."""
    return json.loads(text.replace("'", '"'))


def _leading_int(text: str) -> int | None:
    match = _LEADING_INT_RE.match(text)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Per-type parsers
# ---------------------------------------------------------------------------


def parse_chosen_orders(content: str) -> dict | None:
    """One order object per line, joined into a single array."""
    text = _ORDER_START_RE.sub(",{", content.replace("'", '"'))
    try:
        orders = json.loads(f"[{text}]")
    except json.JSONDecodeError:
        return None
    return {"orders": orders}


def parse_cj_amount(content: str) -> dict | None:
    match = _CJ_AMOUNT_RE.search(content)
    if not match:
        return None
    return {"amount_sats": int(match.group(1))}


def parse_cj_fee(content: str) -> dict | None:
    """Fee is either a percentage (kept as text) or an absolute sat value."""
    match = _FEE_RE.search(content)
    if not match:
        return None
    value = match.group(1).strip()
    if value.endswith("%"):
        return {"fee_percent": value}
    sats = _leading_int(value)
    if sats is None:
        return None
    return {"fee_sats": sats}


def _legacy_inputs(ins: list[dict]) -> list[dict]:
    return [
        {
            "outpoint": f"{i['outpoint']['hash']}:{i['outpoint']['index']}",
            "scriptSig": i.get("script"),
            "nSequence": i.get("sequence"),
            "witness": None,
        }
        for i in ins
    ]


def _legacy_outputs(outs: list[dict]) -> list[dict]:
    return [
        {
            "value_sats": o.get("value"),
            "scriptPubKey": o.get("script"),
            "address": None,
        }
        for o in outs
    ]


def parse_tx_obtained(content: str, source_file: str = "") -> dict | None:
    """Deserialize a transaction dump and unify legacy and current layouts.

    Pre-segwit dumps carry ``ins``/``outs``; they are rewritten into the
    ``inputs``/``outputs`` shape of current dumps.
    """
    if not content.startswith(("[", "{")):
        return None

    try:
        tx = _loads_single_quoted(content)
    except json.JSONDecodeError as exc:
        logger.warning("Could not decode obtained tx in %s: %s", source_file, exc)
        return None

    if not isinstance(tx, dict):
        logger.warning("Obtained tx in %s is not an object, keeping raw content", source_file)
        return None

    fields = dict(tx)
    try:
        if "ins" in fields:
            fields["inputs"] = _legacy_inputs(fields.pop("ins"))
        if "outs" in fields:
            fields["outputs"] = _legacy_outputs(fields.pop("outs"))
    except (KeyError, TypeError, AttributeError) as exc:
        logger.warning("Malformed legacy tx in %s: %r", source_file, exc)
        return None
    return fields


def parse_tx_send(content: str) -> dict | None:
    match = _TXID_RE.search(content)
    if not match:
        return None
    return {"txid": match.group(1)}


def parse_filling_offer(content: str) -> dict | None:
    match = _OFFER_RE.search(content)
    if not match:
        return None
    return {"mixdepth": int(match.group(1)), "amount_sats": int(match.group(2))}


def parse_sending_output(content: str) -> dict | None:
    match = _SENDING_RE.search(content)
    if not match:
        return None
    return {"to_address": match.group(1)}


def parse_cj_info(content: str) -> dict | None:
    match = _CJ_INFO_RE.search(content)
    if not match:
        return None
    return {"cjaddr": match.group(1), "change": match.group(2)}


def parse_utxos(content: str) -> dict | None:
    """Every line must describe one UTXO, otherwise nothing is extracted."""
    utxos = []
    for line in content.split("\n"):
        match = _UTXO_RE.search(line)
        if not match:
            return None
        txid, vout, path, address, value = match.groups()
        utxos.append({
            "outpoint": f"{txid}:{vout}",
            "path": path,
            "address": address.strip(),
            "value": int(value),
        })
    return {"utxos": utxos}


def parse_cj_earned(content: str) -> dict | None:
    text = content.replace("potentially earned = ", "", 1)
    text = _EARNED_PREFIX_RE.sub("", text, count=1)
    sats = _leading_int(text)
    if sats is None:
        return None
    return {"sats": sats}


def parse_schedule_item(content: str) -> dict | None:
    match = _SCHEDULE_RE.search(content)
    if not match:
        return None
    try:
        item = _loads_single_quoted(match.group(1))
    except json.JSONDecodeError:
        return None
    if len(item) < 4:
        return None
    mixdepth, amount, counterparties, to_address = item[:4]
    return {
        "mixdepth": mixdepth,
        "amount_sats": amount,
        "counterparties": counterparties,
        "to_address": to_address,
    }


def parse_tx_confirmed(content: str) -> dict | None:
    match = _CONFIRMED_RE.search(content)
    if not match:
        return None
    return {"block": match.group(1), "confirmations": int(match.group(2))}


def parse_generic(content: str) -> dict | None:
    return {"content": content}


PARSERS: dict[str, Callable[[str], dict | None]] = {
    CHOSEN_ORDERS: parse_chosen_orders,
    CJ_AMOUNT: parse_cj_amount,
    CJ_FEE: parse_cj_fee,
    TX_SEND: parse_tx_send,
    FILLING_OFFER: parse_filling_offer,
    SENDING_OUTPUT: parse_sending_output,
    CJ_INFO: parse_cj_info,
    UTXOS_ADDED: parse_utxos,
    UTXOS_REMOVED: parse_utxos,
    CJ_EARNED: parse_cj_earned,
    SCHEDULE_ITEM: parse_schedule_item,
    TX_CONFIRMED: parse_tx_confirmed,
}

# ---------------------------------------------------------------------------
# Merge + normalize
# ---------------------------------------------------------------------------


def merge_records(per_file: Iterable[list[LogRecord]]) -> list[LogRecord]:
    """Concatenate per-file lists and sort by timestamp (stable on ties)."""
    return sorted(chain.from_iterable(per_file), key=lambda r: r.timestamp)


def normalize_record(record: LogRecord) -> bool:
    """Replace a record's raw content with typed fields.

    Returns False when extraction failed and the trimmed raw content stays.
    """
    content = (record.raw_content or "").strip()
    if record.type == TX_OBTAINED:
        fields = parse_tx_obtained(content, record.source_file)
    else:
        fields = PARSERS.get(record.type, parse_generic)(content)

    if fields is None:
        logger.debug("No fields extracted from %s record in %s", record.type, record.source_file)
        record.raw_content = content
        return False

    record.fields.update(fields)
    record.raw_content = None
    return True


def normalize_all(records: list[LogRecord], metrics: Metrics | None = None) -> list[LogRecord]:
    """Normalize every record in place and return the same list."""
    for record in records:
        ok = normalize_record(record)
        if metrics is not None:
            metrics.increment(f"records.{record.type}")
            if not ok:
                metrics.increment(f"fallbacks.{record.type}")
    return records
