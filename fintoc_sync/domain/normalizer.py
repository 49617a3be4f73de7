"""Movement normalization - turns Fintoc movements into Lunch Money transactions"""

import logging
import re
from typing import Iterable, List, Tuple

from fintoc_sync.domain.exceptions import UnsupportedCurrencyError
from fintoc_sync.domain.models import Movement, MovementType, Transaction, TransactionStatus
from fintoc_sync.domain.money import Amount

# Prefixes the bank prepends to card and recurring charges
# TODO: map common merchants to prettier payee names
DESCRIPTION_PREFIX_PATTERN = re.compile(
    r"^(COMPRA INTERNACIONAL|COMPRA NACIONAL|PAGO RECURRENTE|COMPRA INTER\.)\s",
    re.IGNORECASE,
)


def clean_description(description: str) -> str:
    """Strip a known bank-generated prefix from the start of a description"""
    return DESCRIPTION_PREFIX_PATTERN.sub("", description, count=1)


def derive_payee(movement: Movement) -> str:
    """
    Pick the payee display name for a movement.

    Transfers name the counterparty on the other side of the money flow:
    incoming (positive) amounts come from the sender, outgoing ones go to the
    recipient. The institution is appended in parentheses when known.
    Everything else falls back to the cleaned bank description.
    """
    if movement.type == MovementType.TRANSFER:
        counterparty = movement.sender_account if movement.amount > 0 else movement.recipient_account
        if counterparty is not None:
            if counterparty.institution is not None:
                return f"{counterparty.holder_name} ({counterparty.institution.name})"
            return counterparty.holder_name

    return clean_description(movement.description)


def normalize_movement(movement: Movement, asset_id: int) -> Transaction:
    """
    Build the Lunch Money transaction for a movement.

    Raises:
        UnsupportedCurrencyError: Movement currency has no known scale
    """
    amount = Amount.from_minor_units(movement.amount, movement.currency)

    return Transaction(
        date=movement.transaction_date or movement.post_date,
        payee=derive_payee(movement),
        amount=amount,
        currency=movement.currency.lower(),
        asset_id=asset_id,
        status=TransactionStatus.UNCLEARED,
        notes=movement.comment,
        external_id=movement.id,
        original_name=movement.description,
        is_pending=movement.pending,
    )


def normalize_movements(movements: Iterable[Movement], asset_id: int) -> Tuple[List[Transaction], int]:
    """
    Normalize every movement, skipping the ones that cannot be converted.

    Returns: (transactions, skipped_count)
    """
    transactions = []
    skipped = 0

    for movement in movements:
        try:
            transactions.append(normalize_movement(movement, asset_id))
        except UnsupportedCurrencyError as e:
            skipped += 1
            logging.warning(
                f"Skipping movement {movement.id}: {e}",
                extra={"movement_id": movement.id, "step": "normalize"},
            )

    return transactions, skipped
