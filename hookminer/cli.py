"""
hookminer — mine CREATE2 salts for hook-flagged strategy addresses.

Commands
  mine          -> Search salts until the predicted strategy address carries the hook bits
  inner-salt    -> Re-derive the salt the deployment transaction must pass
  check         -> Test an address against the hook bit mask
  config-data   -> Print the example strategy config data used by `mine`

Notes
- `mine` asks the factory's getLBPAddress view over JSON-RPC; nothing is sent on-chain.
- The printed salt is the *outer* salt. distributeToken expects it as-is; the
  launcher hashes it with the user address (see `inner-salt`).

Examples
  $ hookminer mine --token 0x2804... --user 0x595e... --rpc-url https://...
  $ hookminer inner-salt --user 0x595e... --salt 0x...01c2
  $ hookminer check 0xABCD000000000000000000000000000000002000
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click
from eth_utils import is_address, to_checksum_address

from . import encoding
from .errors import MinerError
from .hooks import REQUIRED_HOOK_BITS, V4_ALL_HOOK_MASK, HookBits, low16
from .launcher import (LIQUIDITY_LAUNCHER_ADDRESS,
                       VIRTUAL_LBP_STRATEGY_FACTORY_ADDRESS,
                       example_config_data)
from .miner import SaltMiner
from .models import Exhausted, Found, MiningRequest, TimedOut
from .oracle import FactoryOracle

DEFAULT_RPC_URL = "https://ethereum-sepolia-rpc.publicnode.com"
DEFAULT_TOTAL_SUPPLY = 10 ** 27  # 1B tokens at 18 decimals

# -------------------------- Logging --------------------------

class FriendlyFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",  # cyan
        logging.INFO: "\033[32m",  # green
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",  # red
        logging.CRITICAL: "\033[41m",  # red background
    }
    RESET = "\033[0m"

    def __init__(self, *, use_color: bool) -> None:
        super().__init__(fmt="[%(asctime)s] %(level_display)s %(shortname)s | %(message)s", datefmt="%H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.rsplit(".", 1)[-1]
        level_name = record.levelname
        if self.use_color and record.levelno in self.LEVEL_COLORS:
            level_name = f"{self.LEVEL_COLORS[record.levelno]}{level_name}{self.RESET}"
        record.level_display = level_name.ljust(8)
        return super().format(record)


def setup_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(FriendlyFormatter(use_color=sys.stderr.isatty()))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(getattr(logging, level.upper()))
    root.addHandler(handler)

# -------------------------- Option parsing --------------------------

def _address(ctx, param, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_address(value):
        raise click.BadParameter("must be a 0x-prefixed 20-byte address")
    return to_checksum_address(value)

def _int_auto(ctx, param, value):
    if value is None or isinstance(value, int):
        return value
    try:
        return int(value, 0)
    except ValueError:
        raise click.BadParameter(f"not an integer: {value!r}")

def _hex_bytes(ctx, param, value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    try:
        return encoding.to_bytes(value)
    except ValueError as e:
        raise click.BadParameter(str(e))

def _hook_bits(mask: int, required_bits: int) -> HookBits:
    try:
        return HookBits(mask, required_bits)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--mask/--required-bits")

# -------------------------- CLI --------------------------

@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("--log-level", envvar="HOOKMINER_LOG_LEVEL", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False), help="Log verbosity.")
def cli(log_level):
    """hookminer — CREATE2 salt miner for hook-flagged strategy addresses."""
    setup_logging(log_level)

@cli.command("mine")
@click.option("--token", required=True, callback=_address, help="Token address being distributed.")
@click.option("--user", required=True, callback=_address, help="Deployer address folded into the salt.")
@click.option("--total-supply", default=str(DEFAULT_TOTAL_SUPPLY), callback=_int_auto, show_default=True, help="Amount handed to the strategy (base units).")
@click.option("--factory", envvar="HOOKMINER_FACTORY", default=VIRTUAL_LBP_STRATEGY_FACTORY_ADDRESS, callback=_address, show_default=True, help="Strategy factory address.")
@click.option("--sender", default=LIQUIDITY_LAUNCHER_ADDRESS, callback=_address, show_default=True, help="Launcher passed as sender to the prediction.")
@click.option("--config-data", type=str, default=None, callback=_hex_bytes, help="Strategy config data (0x...). Defaults to the example config.")
@click.option("--governance", default=None, callback=_address, help="Governance address; switches the example config to the virtual LBP layout.")
@click.option("--block", type=int, default=None, help="Block number for the example config (otherwise read from the RPC).")
@click.option("--rpc-url", envvar="HOOKMINER_RPC_URL", default=DEFAULT_RPC_URL, show_default=True, help="JSON-RPC endpoint.")
@click.option("--max-attempts", envvar="HOOKMINER_MAX_ATTEMPTS", type=int, default=10000, show_default=True, help="Salts to try.")
@click.option("--timeout", envvar="HOOKMINER_TIMEOUT", type=float, default=600.0, show_default=True, help="Search deadline in seconds.")
@click.option("--window", type=int, default=1, show_default=True, help="Predictions kept in flight.")
@click.option("--mask", default=hex(V4_ALL_HOOK_MASK), callback=_int_auto, show_default=True, help="Hook bit mask over the low 16 address bits.")
@click.option("--required-bits", default=hex(REQUIRED_HOOK_BITS), callback=_int_auto, show_default=True, help="Bits that must be set under the mask.")
@click.option("--progress-every", type=int, default=500, show_default=True, help="Print progress every N attempts.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
def mine_cmd(token, user, total_supply, factory, sender, config_data, governance, block, rpc_url,
             max_attempts, timeout, window, mask, required_bits, progress_every, as_json):
    """Search for a salt whose predicted strategy address carries the hook bits."""
    bits = _hook_bits(mask, required_bits)
    oracle = FactoryOracle.from_rpc_url(rpc_url, factory)
    try:
        miner = SaltMiner(mask=bits.mask, required_bits=bits.required, progress_every=progress_every, window=window)
    except MinerError as e:
        raise click.ClickException(e.message)

    async def run():
        data = config_data
        if data is None:
            current = block if block is not None else await oracle.block_number()
            data = example_config_data(user, current, governance)
        request = MiningRequest(
            factory_address=factory,
            token_address=token,
            total_supply=total_supply,
            config_data=data,
            deployer_address=sender,
            user_address=user,
            max_attempts=max_attempts,
            timeout_millis=int(timeout * 1000),
        )
        if not as_json:
            click.echo(f"Mining salt for hook address ({bits.required:#06x} under mask {bits.mask:#06x})")
            click.echo(f"Token: {token}")
            click.echo(f"User: {user}")
            click.echo(f"Total Supply: {total_supply}")
            click.echo(f"Factory: {factory}")
            click.echo(f"ConfigData length: {len(data)} bytes")

        def progress(done, total):
            if not as_json and done < total:
                click.echo(f"Tried {done}/{total} salts...", err=True)

        return await miner.mine(request, oracle, progress)

    try:
        result = asyncio.run(run())
    except MinerError as e:
        raise click.ClickException(e.message)

    if as_json:
        click.echo(json.dumps(_result_dict(result), indent=2))
        if not isinstance(result, Found):
            click.get_current_context().exit(1)
        return

    if isinstance(result, Found):
        click.echo("")
        click.echo("FOUND VALID SALT")
        click.echo(f"Salt: {result.salt_hex}")
        click.echo(f"Predicted Address: {result.predicted_address}")
        click.echo(f"Address ends in: {low16(result.predicted_address):#06x}")
        click.echo(f"Attempts: {result.attempts_used}/{max_attempts}")
        click.echo(f"Time: {result.elapsed_millis / 1000:.2f}s")
        return
    if isinstance(result, Exhausted) and result.oracle_unavailable:
        raise click.ClickException(f"Oracle unavailable: all {result.attempts_used} predictions failed (last error: {result.last_oracle_error})")
    elif isinstance(result, Exhausted):
        raise click.ClickException(f"No valid salt in {result.attempts_used} attempts; consider raising --max-attempts")
    elif isinstance(result, TimedOut):
        raise click.ClickException(f"Timed out after {result.elapsed_millis / 1000:.2f}s and {result.attempts_used} attempts; consider raising --timeout")
    else:
        raise click.ClickException(f"Cancelled after {result.attempts_used} attempts")

def _result_dict(result) -> dict:
    out = {"status": type(result).__name__.lower(), "attempts_used": result.attempts_used,
           "elapsed_millis": result.elapsed_millis}
    if isinstance(result, Found):
        out["salt"] = result.salt_hex
        out["inner_salt"] = "0x" + result.inner_salt.hex()
        out["predicted_address"] = result.predicted_address
    if isinstance(result, (Exhausted, TimedOut)):
        out["oracle_errors"] = result.oracle_errors
        if result.last_oracle_error is not None:
            out["last_oracle_error"] = result.last_oracle_error.to_dict()
    if isinstance(result, Exhausted):
        out["oracle_unavailable"] = result.oracle_unavailable
    return out

@cli.command("inner-salt")
@click.option("--user", required=True, callback=_address, help="Deployer address.")
@click.option("--salt", required=True, type=str, help="Outer salt (0x hex word or integer).")
def inner_salt_cmd(user, salt):
    """Derive the inner salt the launcher uses for a mined outer salt."""
    try:
        word = encoding.as_word(salt if salt.startswith(("0x", "0X")) else int(salt, 10))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--salt")
    out = {"user": user, "salt": "0x" + word.hex(), "inner_salt": "0x" + encoding.inner_salt(user, word).hex()}
    click.echo(json.dumps(out, indent=2))

@cli.command("check")
@click.argument("address", callback=_address)
@click.option("--mask", default=hex(V4_ALL_HOOK_MASK), callback=_int_auto, show_default=True)
@click.option("--required-bits", default=hex(REQUIRED_HOOK_BITS), callback=_int_auto, show_default=True)
def check_cmd(address, mask, required_bits):
    """Check whether ADDRESS carries the required hook bits. Exit 1 if not."""
    bits = _hook_bits(mask, required_bits)
    valid = bits.matches(address)
    click.echo(json.dumps({"address": address, "low16": f"{low16(address):#06x}", "mask": f"{bits.mask:#06x}",
                           "required": f"{bits.required:#06x}", "valid": valid}, indent=2))
    if not valid:
        click.get_current_context().exit(1)

@cli.command("config-data")
@click.option("--user", required=True, callback=_address, help="Deployer address used as recipient/operator.")
@click.option("--block", type=int, default=None, help="Current block number (otherwise read from the RPC).")
@click.option("--governance", default=None, callback=_address, help="Emit the virtual LBP layout with this governance address.")
@click.option("--rpc-url", envvar="HOOKMINER_RPC_URL", default=DEFAULT_RPC_URL, show_default=True)
@click.option("--factory", envvar="HOOKMINER_FACTORY", default=VIRTUAL_LBP_STRATEGY_FACTORY_ADDRESS, callback=_address)
def config_data_cmd(user, block, governance, rpc_url, factory):
    """Print the example strategy config data."""
    if block is None:
        block = asyncio.run(FactoryOracle.from_rpc_url(rpc_url, factory).block_number())
    click.echo("0x" + example_config_data(user, block, governance).hex())

if __name__ == "__main__":
    cli()
