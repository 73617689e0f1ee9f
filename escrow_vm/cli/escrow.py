from __future__ import annotations

"""
escrow_vm.cli.escrow
--------------------

Non-interactive tooling around a deal:

- address         derive a deal's address from its creation parameters
- royalty         guarantor royalty for an amount and rate
- wallet-address  a holder's token wallet address
- simulate        deploy, fund and settle a deal in the local sandbox and
                  print the transaction trace

Amounts are given in coins ("10", "0.05") and printed in both coins and nano.

Examples
--------
escrow-vm royalty --amount 10 --ppm 5000
escrow-vm address --id 7 --seller 0:ab.. --guarantor 0:cd.. --amount 10 --ppm 5000
escrow-vm simulate --token --outcome cancel --json
"""

import json
import os
from typing import Any, Dict, List, Optional

import typer

from .. import logging as elog
from ..config import load_config
from ..runtime.assets import deal_address, derive_wallet_address
from ..runtime.contract import EscrowContract
from ..runtime.royalty import calculate_royalty, seller_share
from ..sandbox.ledger import Ledger, SendResult
from ..sandbox.token import Mint, TokenMinter, token_balance, transfer_body
from ..types.address import Address, AddressError
from ..types.deal import DealInit
from ..types.message import (
    COMMENT_APPROVE,
    COMMENT_CANCEL,
    COMMENT_FUNDING,
    Initialize,
    comment,
)
from ..utils.units import from_nano, to_nano

app = typer.Typer(
    name="escrow-vm",
    add_completion=False,
    no_args_is_help=True,
    help="Derive deal addresses, compute royalties and run sandbox settlements.",
)

# -------------------- utils --------------------


def _fail(msg: str) -> None:
    typer.secho(msg, fg=typer.colors.RED, err=True)
    raise typer.Exit(2)


def _addr(value: Optional[str], what: str) -> Optional[Address]:
    if value is None:
        return None
    try:
        return Address.parse(value)
    except AddressError as e:
        _fail(f"invalid {what} address: {e}")
    return None


def _nano(value: str, what: str) -> int:
    try:
        return to_nano(value)
    except (TypeError, ValueError) as e:
        _fail(f"invalid {what}: {e}")
    return 0


def _template(hex_value: Optional[str]) -> Optional[bytes]:
    if hex_value is None:
        return None
    try:
        return bytes.fromhex(hex_value[2:] if hex_value.startswith(("0x", "0X")) else hex_value)
    except ValueError:
        _fail("wallet template must be hex")
    return None


def _amount_view(nano: int) -> Dict[str, Any]:
    return {"nano": nano, "coins": from_nano(nano)}


def _emit(payload: Dict[str, Any], json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    for k, v in payload.items():
        typer.echo(f"{k}: {v}")


# -------------------- commands --------------------


@app.command("address")
def cmd_address(
    deal_id: int = typer.Option(..., "--id", min=0, max=0xFFFF_FFFF, help="Deal id (u32)."),
    seller: str = typer.Option(..., "--seller", help="Seller address (wc:hex)."),
    guarantor: str = typer.Option(..., "--guarantor", help="Guarantor address (wc:hex)."),
    amount: str = typer.Option(..., "--amount", help="Deal amount in coins."),
    ppm: int = typer.Option(0, "--ppm", min=0, max=0xFFFF_FFFF, help="Royalty in parts per 100000."),
    asset: Optional[str] = typer.Option(None, "--asset", help="Token minter address; omit for native coin."),
    template: Optional[str] = typer.Option(None, "--template", help="Token wallet template (hex)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Print the address a deal with these parameters lives at."""
    try:
        init = DealInit(
            id=deal_id,
            seller=_addr(seller, "seller"),
            guarantor=_addr(guarantor, "guarantor"),
            deal_amount=_nano(amount, "amount"),
            royalty_ppm=ppm,
            asset_address=_addr(asset, "asset"),
            wallet_template=_template(template),
        )
    except ValueError as e:
        _fail(str(e))
        return
    _emit({"address": str(deal_address(init))}, json_out)


@app.command("royalty")
def cmd_royalty(
    amount: str = typer.Option(..., "--amount", help="Deal amount in coins."),
    ppm: int = typer.Option(..., "--ppm", min=0, help="Royalty in parts per 100000."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Guarantor royalty (rate clamped to 90%)."""
    deal_amount = _nano(amount, "amount")
    try:
        royalty = calculate_royalty(deal_amount, ppm)
        share = seller_share(deal_amount, ppm)
    except ValueError as e:
        _fail(str(e))
        return
    payload = {
        "royalty": _amount_view(royalty),
        "seller_share": _amount_view(share),
    }
    if json_out:
        _emit(payload, True)
        return
    typer.echo(f"royalty: {from_nano(royalty)} ({royalty} nano)")
    typer.echo(f"seller_share: {from_nano(share)} ({share} nano)")


@app.command("wallet-address")
def cmd_wallet_address(
    asset: str = typer.Option(..., "--asset", help="Token minter address."),
    owner: str = typer.Option(..., "--owner", help="Holder address."),
    template: str = typer.Option(..., "--template", help="Token wallet template (hex)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Print `owner`'s wallet address for a token."""
    wallet = derive_wallet_address(_addr(asset, "asset"), _addr(owner, "owner"), _template(template))
    _emit({"wallet": str(wallet)}, json_out)


def _check(res: SendResult, step: str) -> None:
    failed = [t for t in res.transactions if not t.success and not t.bounced]
    if failed:
        t = failed[0]
        _fail(f"{step} failed: {t.to} exit_code={t.exit_code}")


@app.command("simulate")
def cmd_simulate(
    amount: str = typer.Option("10", "--amount", help="Deal amount in coins (or tokens)."),
    ppm: int = typer.Option(5_000, "--ppm", min=0, help="Royalty in parts per 100000."),
    token: bool = typer.Option(False, "--token/--native", help="Settle in a sandbox token instead of the native coin."),
    outcome: str = typer.Option("approve", "--outcome", help="approve | cancel"),
    approve_value: Optional[str] = typer.Option(None, "--value", help="Value attached to approve/cancel (coins)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Run deploy → fund → approve/cancel in a fresh sandbox ledger."""
    if outcome not in ("approve", "cancel"):
        _fail("--outcome must be approve or cancel")
    deal_amount = _nano(amount, "amount")
    cfg = load_config()
    attach = _nano(approve_value, "value") if approve_value else cfg.min_approve_value(is_token=token)

    ledger = Ledger()
    deployer = ledger.treasury("deployer")
    seller = ledger.treasury("seller")
    guarantor = ledger.treasury("guarantor")
    buyer = ledger.treasury("buyer")
    steps: List[Dict[str, Any]] = []

    minter: Optional[TokenMinter] = None
    if token:
        minter = TokenMinter("sandbox-token", deployer)
        res = ledger.deploy(minter, sender=deployer, value=to_nano("0.1"), body=Mint(buyer, deal_amount).encode())
        _check(res, "mint")
        steps.append({"step": "mint", "transactions": res.to_list()})

    init = DealInit(
        id=1,
        seller=seller,
        guarantor=guarantor,
        deal_amount=deal_amount,
        royalty_ppm=ppm,
        asset_address=minter.address if minter else None,
        wallet_template=minter.template if minter else None,
    )
    contract = EscrowContract.from_init(init, config=cfg)
    res = ledger.deploy(contract, sender=deployer, value=to_nano("0.05"), body=Initialize(init).encode())
    _check(res, "deploy")
    steps.append({"step": "deploy", "transactions": res.to_list()})

    if minter is not None:
        res = ledger.send(
            buyer,
            minter.wallet_address(buyer),
            to_nano("0.1"),
            transfer_body(deal_amount, contract.address, response_destination=buyer, forward_amount=to_nano("0.05")),
        )
    else:
        res = ledger.send(buyer, contract.address, deal_amount, comment(COMMENT_FUNDING))
    _check(res, "fund")
    steps.append({"step": "fund", "transactions": res.to_list()})

    body = comment(COMMENT_APPROVE if outcome == "approve" else COMMENT_CANCEL)
    res = ledger.send(guarantor, contract.address, attach, body)
    _check(res, outcome)
    steps.append({"step": outcome, "transactions": res.to_list()})

    parties = {"seller": seller, "guarantor": guarantor, "buyer": buyer}
    summary: Dict[str, Any] = {
        "deal": str(contract.address),
        "deal_exists": ledger.exists(contract.address),
        "balances": {k: ledger.balance(a) for k, a in parties.items()},
    }
    if minter is not None:
        summary["token_balances"] = {k: token_balance(ledger, minter, a) for k, a in parties.items()}

    if json_out:
        typer.echo(json.dumps({"steps": steps, "summary": summary}, indent=2, sort_keys=True))
        return
    for s in steps:
        typer.secho(f"{s['step']}:", bold=True)
        for t in s["transactions"]:
            status = "ok " if t["status"] == "success" else f"ERR {t['exitCode']}"
            typer.echo(f"  {status} {t['from'][:10]}… → {t['to'][:10]}…  value={from_nano(t['value'])} op={t['op']}")
    typer.secho("summary:", bold=True)
    typer.echo(f"  deal {summary['deal']} exists={summary['deal_exists']}")
    for k, v in summary["balances"].items():
        typer.echo(f"  {k} balance: {from_nano(v)}")
    for k, v in summary.get("token_balances", {}).items():
        typer.echo(f"  {k} tokens: {from_nano(v)}")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG | INFO | WARNING (default: env or WARNING)."),
    log_json: Optional[bool] = typer.Option(None, "--log-json/--log-text", help="Log format (default: env or TTY detection)."),
) -> None:
    # default WARNING; stdout is reserved for command output
    elog.configure(json=log_json, level=log_level or os.environ.get("ESCROW_VM_LOG_LEVEL", "WARNING"))


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
