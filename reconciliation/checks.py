"""
reconciliation/checks.py - Per-account and supply reconciliation checks.

Each check compares a live ledger view with the snapshot's expectation and
returns the mismatches it found. Checks never raise on a disagreement and
never log; the validator decides how findings are reported.
"""

import re
from decimal import Decimal
from typing import List, Optional

from ledger.models import LiveAccount
from reconciliation.results import Mismatch, MismatchType
from snapshot.models import AccountRecord
from utils.formatters import ZERO, format_amount, quantize

_DESCRIPTOR_SPLIT = re.compile(r"[,/\s]+")


def _or_zero(value: Optional[Decimal]) -> Decimal:
    return ZERO if value is None else value


def live_total(live: LiveAccount) -> Decimal:
    """Liquid + CPU weight + NET weight, absent parts counting as zero."""
    return _or_zero(live.liquid) + _or_zero(live.cpu_weight) + _or_zero(live.net_weight)


def check_balance(
    live: LiveAccount, record: AccountRecord, validate_stake: bool = False
) -> List[Mismatch]:
    mismatches: List[Mismatch] = []
    name = record.account_name

    cpu = _or_zero(live.cpu_weight)
    net = _or_zero(live.net_weight)
    liquid = _or_zero(live.liquid)

    if validate_stake:
        if quantize(cpu) != quantize(record.cpu_stake):
            mismatches.append(Mismatch(
                type=MismatchType.CPU_STAKE_MISMATCH,
                account_name=name,
                expected=format_amount(record.cpu_stake),
                actual=format_amount(cpu),
                message=(
                    f"Account: {name} did not have expected cpu: "
                    f"{format_amount(record.cpu_stake)} it had: {format_amount(cpu)}"
                ),
            ))
        if quantize(net) != quantize(record.net_stake):
            mismatches.append(Mismatch(
                type=MismatchType.NET_STAKE_MISMATCH,
                account_name=name,
                expected=format_amount(record.net_stake),
                actual=format_amount(net),
                message=(
                    f"Account: {name} did not have expected net: "
                    f"{format_amount(record.net_stake)} it had: {format_amount(net)}"
                ),
            ))

    if quantize(liquid) != quantize(record.liquid):
        mismatches.append(Mismatch(
            type=MismatchType.LIQUID_MISMATCH,
            account_name=name,
            expected=format_amount(record.liquid),
            actual=format_amount(liquid),
            message=(
                f"Account: {name} did not have expected liquid: "
                f"{format_amount(record.liquid)} it had: {format_amount(liquid)}"
            ),
        ))

    found = quantize(live_total(live))
    expected = quantize(record.balance)
    if found != expected:
        mismatches.append(Mismatch(
            type=MismatchType.BALANCE_MISMATCH,
            account_name=name,
            expected=format_amount(expected),
            actual=format_amount(found),
            message=(
                f"Account: {name} did not have expected balance: "
                f"{format_amount(expected)} it had: {format_amount(found)}"
            ),
        ))

    return mismatches


def balance_matches(mismatches: List[Mismatch]) -> bool:
    return not any(m.type == MismatchType.BALANCE_MISMATCH for m in mismatches)


def descriptor_tokens(descriptor: Optional[str]) -> set:
    """'alice@active,bob@owner' -> {'alice@active', 'bob@owner'}."""
    if not descriptor:
        return set()
    return {token for token in _DESCRIPTOR_SPLIT.split(descriptor) if token}


def check_permissions(live: LiveAccount, record: AccountRecord) -> List[Mismatch]:
    mismatches: List[Mismatch] = []
    name = record.account_name

    if live.privileged is not None and live.privileged != record.privileged:
        mismatches.append(Mismatch(
            type=MismatchType.PRIVILEGED_MISMATCH,
            account_name=name,
            expected=record.privileged,
            actual=live.privileged,
            message=(
                f"{name} privileged does not match. "
                f"Expected: {record.privileged}. Actual: {live.privileged}"
            ),
        ))

    matched = 0
    for permission in live.permissions:
        key = permission.key
        if key not in record.permissions:
            mismatches.append(Mismatch(
                type=MismatchType.UNEXPECTED_PERMISSION,
                account_name=name,
                expected=None,
                actual=key,
                message=f"Unexpected permission '{permission.perm_name}' for account '{name}'",
            ))
            continue

        matched += 1
        expected_tokens = descriptor_tokens(record.permissions[key])
        for authority in permission.accounts:
            if authority not in expected_tokens:
                mismatches.append(Mismatch(
                    type=MismatchType.PERMISSION_MISMATCH,
                    account_name=name,
                    expected=record.permissions[key],
                    actual=authority,
                    message=(
                        f"Permission mismatch. {authority} does not exist in "
                        f"{name} -> {permission.perm_name}"
                    ),
                ))

    if matched != len(record.permissions):
        mismatches.append(Mismatch(
            type=MismatchType.PERMISSION_COUNT_MISMATCH,
            account_name=name,
            expected=len(record.permissions),
            actual=matched,
            message=(
                f"Permission count mismatch for {name}. "
                f"Parsed {matched}, expected {len(record.permissions)}"
            ),
        ))

    return mismatches


def check_supply(
    total_balance: Decimal, contract_supply: Decimal, symbol: str
) -> List[Mismatch]:
    """The snapshot total must equal the ledger's issued supply at four decimals."""
    snapshot_supply = quantize(total_balance)
    ledger_supply = quantize(contract_supply)
    if snapshot_supply == ledger_supply:
        return []
    delta = format_amount(total_balance - contract_supply)
    return [Mismatch(
        type=MismatchType.SUPPLY_MISMATCH,
        account_name=None,
        expected=format_amount(ledger_supply),
        actual=format_amount(snapshot_supply),
        message=(
            f"Contract supply was {format_amount(ledger_supply)} {symbol} and snapshot "
            f"file had {format_amount(snapshot_supply)} {symbol}, a difference of "
            f"{delta} {symbol}"
        ),
    )]
