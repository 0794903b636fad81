"""
Transaction intents and voice contacts.

An intent is what the parser extracts from an utterance (or what a form
submits). SEND_MONEY / POCHI may still carry a contact name in ``phone``
until the orchestrator resolves it.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class TransactionMode(str, Enum):
    SEND_MONEY = "SEND_MONEY"
    POCHI = "POCHI"
    TILL = "TILL"
    PAYBILL = "PAYBILL"
    WITHDRAW = "WITHDRAW"
    NAMED_PAYMENT = "NAMED_PAYMENT"


class SendMoneyIntent(BaseModel):
    type: Literal["SEND_MONEY"] = "SEND_MONEY"
    amount: str
    phone: str


class PochiIntent(BaseModel):
    type: Literal["POCHI"] = "POCHI"
    amount: str
    phone: str


class TillIntent(BaseModel):
    type: Literal["TILL"] = "TILL"
    amount: str
    till: str


class PaybillIntent(BaseModel):
    type: Literal["PAYBILL"] = "PAYBILL"
    amount: str
    business: str
    account: str


class WithdrawIntent(BaseModel):
    type: Literal["WITHDRAW"] = "WITHDRAW"
    amount: str
    agent: str
    store: str


class NamedPaymentIntent(BaseModel):
    """"pay KFC 300" — the target is only known by its contact name."""
    type: Literal["NAMED_PAYMENT"] = "NAMED_PAYMENT"
    amount: str
    contact_name: str = Field(alias="contactName")

    model_config = {"populate_by_name": True}


TransactionIntent = Annotated[
    Union[SendMoneyIntent, PochiIntent, TillIntent, PaybillIntent, WithdrawIntent, NamedPaymentIntent],
    Field(discriminator="type"),
]

intent_adapter: TypeAdapter = TypeAdapter(TransactionIntent)


class ContactType(str, Enum):
    MOBILE = "mobile"
    POCHI = "pochi"
    TILL = "till"
    PAYBILL = "paybill"


class Contact(BaseModel):
    name: str
    type: ContactType = ContactType.MOBILE
    phone: str  # phone, till number or paybill business number depending on type
    account_number: Optional[str] = Field(default=None, alias="accountNumber")

    model_config = {"populate_by_name": True}


def contact_to_intent(contact: Contact, amount: str) -> Optional[TransactionIntent]:
    """Map a resolved contact + amount to a concrete intent.

    Returns None for a paybill contact without an account number.
    """
    if contact.type == ContactType.TILL:
        return TillIntent(amount=amount, till=contact.phone)
    if contact.type == ContactType.PAYBILL:
        if not contact.account_number:
            return None
        return PaybillIntent(amount=amount, business=contact.phone, account=contact.account_number)
    if contact.type == ContactType.POCHI:
        return PochiIntent(amount=amount, phone=contact.phone)
    return SendMoneyIntent(amount=amount, phone=contact.phone)


def describe_intent(intent: TransactionIntent) -> str:
    """Human-readable sentence used for the spoken confirmation."""
    amount = f"{intent.amount} shillings"
    if isinstance(intent, SendMoneyIntent):
        return f"Send {amount} to {intent.phone}."
    if isinstance(intent, PochiIntent):
        return f"Pay {amount} to Pochi la Biashara {intent.phone}."
    if isinstance(intent, TillIntent):
        return f"Pay {amount} to till number {intent.till}."
    if isinstance(intent, PaybillIntent):
        return f"Pay {amount} to paybill {intent.business}, account {intent.account}."
    if isinstance(intent, WithdrawIntent):
        return f"Withdraw {amount} from agent {intent.agent}, store {intent.store}."
    return f"Pay {amount} to {intent.contact_name}."
