"""
Trigger body codec.

The same pipe-delimited text is sent as an SMS body or as the ``body`` field
of a push message; the Android app parses it and runs the USSD flow:

    SM|<phone>|<amount>                 send money
    PO|<phone>|<amount>                 pochi la biashara
    TL|<till>|<amount>                  buy goods (till)
    PB|<business>|<account>|<amount>    paybill
    WD|<agent>|<store>|<amount>         withdraw cash
"""

from typing import Any, Optional

from pesamirror.errors import InvalidIntent
from pesamirror.models.intent import TransactionMode, intent_adapter

REQUIRED_FIELDS_MESSAGE = "Please fill all required fields."

MODE_CODES = {
    TransactionMode.SEND_MONEY: "SM",
    TransactionMode.POCHI: "PO",
    TransactionMode.TILL: "TL",
    TransactionMode.PAYBILL: "PB",
    TransactionMode.WITHDRAW: "WD",
}

MODE_FIELDS = {
    TransactionMode.SEND_MONEY: ("phone",),
    TransactionMode.POCHI: ("phone",),
    TransactionMode.TILL: ("till",),
    TransactionMode.PAYBILL: ("business", "account"),
    TransactionMode.WITHDRAW: ("agent", "store"),
}


def validate_intent_fields(mode: TransactionMode, fields: dict[str, Any]) -> Optional[str]:
    """Return the first missing required field for ``mode`` (amount last), or None."""
    for name in MODE_FIELDS.get(mode, ()) + ("amount",):
        value = fields.get(name)
        if not isinstance(value, str) or not value.strip():
            return name
    return None


def build_body(mode: TransactionMode, fields: dict[str, Any]) -> str:
    """Encode form-style fields for ``mode`` into a trigger body."""
    mode = TransactionMode(mode)
    if mode not in MODE_CODES:
        raise InvalidIntent(f"{mode.value} must be resolved to a concrete payment first.")
    missing = validate_intent_fields(mode, fields)
    if missing:
        raise InvalidIntent(REQUIRED_FIELDS_MESSAGE, field=missing)
    parts = [fields[name].strip() for name in MODE_FIELDS[mode] + ("amount",)]
    for name, value in zip(MODE_FIELDS[mode] + ("amount",), parts):
        if "|" in value:
            raise InvalidIntent(f"{name} must not contain '|'.", field=name)
    return "|".join([MODE_CODES[mode], *parts])


def build_trigger_body(intent: Any) -> str:
    """Encode a resolved TransactionIntent into a trigger body."""
    data = intent_adapter.dump_python(intent)
    return build_body(TransactionMode(data["type"]), data)
