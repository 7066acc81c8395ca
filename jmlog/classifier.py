"""Event classifier — ordered literal-prefix rules over a log line payload."""

from dataclasses import dataclass

UTXOS_ADDED = "utxos_added"
UTXOS_REMOVED = "utxos_removed"
CHOSEN_ORDERS = "chosen_orders"
CJ_AMOUNT = "cj_amount"
CJ_FEE = "cj_fee"
TX_OBTAINED = "tx_obtained"
TX_SEND = "tx_send"
SCHEDULE_ITEM = "schedule_item"
FILLING_OFFER = "filling_offer"
SENDING_OUTPUT = "sending_output"
TX_CONFIRMED = "tx_confirmed"
CJ_EARNED = "cj_earned"
CJ_INFO = "cj_info"

EVENT_TYPES = (
    UTXOS_ADDED,
    UTXOS_REMOVED,
    CHOSEN_ORDERS,
    CJ_AMOUNT,
    CJ_FEE,
    TX_OBTAINED,
    TX_SEND,
    SCHEDULE_ITEM,
    FILLING_OFFER,
    SENDING_OUTPUT,
    TX_CONFIRMED,
    CJ_EARNED,
    CJ_INFO,
)

# Events logged by a taker run; maker-side events are left out.
TAKER_EVENT_TYPES = frozenset({
    UTXOS_ADDED,
    UTXOS_REMOVED,
    CHOSEN_ORDERS,
    CJ_AMOUNT,
    CJ_FEE,
    TX_OBTAINED,
    TX_SEND,
    SCHEDULE_ITEM,
    TX_CONFIRMED,
})


@dataclass(frozen=True)
class EventRule:
    prefix: str
    event_type: str
    keeps_payload: bool  # payload line seeds the content buffer


# Order matters: first match wins.
RULES = (
    EventRule("Added utxos=", UTXOS_ADDED, False),
    EventRule("Removed utxos=", UTXOS_REMOVED, False),
    EventRule("chosen orders =", CHOSEN_ORDERS, False),
    EventRule("cj amount =", CJ_AMOUNT, True),
    EventRule("total cj fee =", CJ_FEE, True),
    EventRule("total coinjoin fee =", CJ_FEE, True),
    EventRule("obtained tx", TX_OBTAINED, False),
    EventRule("txid = ", TX_SEND, True),
    EventRule("schedule item was: ", SCHEDULE_ITEM, True),
    EventRule("filling offer", FILLING_OFFER, True),
    EventRule("sending output to address=", SENDING_OUTPUT, True),
    EventRule("tx in a block", TX_CONFIRMED, True),
    EventRule("potentially earned", CJ_EARNED, True),
    EventRule("mycjaddr, mychange", CJ_INFO, True),
)


def classify(payload: str, enabled_types: frozenset[str] | None = None) -> EventRule | None:
    """Return the first rule whose prefix starts the payload, or None.

    Rules for types outside ``enabled_types`` never match.
    """
    for rule in RULES:
        if enabled_types is not None and rule.event_type not in enabled_types:
            continue
        if payload.startswith(rule.prefix):
            return rule
    return None
