"""
CLI entry point for the shadow duel engine.

Parses arguments, wires components, and runs a single duel operation
against a JSON store directory.
"""

import argparse
import re
import sys
from argparse import Namespace
from datetime import datetime
from pathlib import Path

from prettytable import PrettyTable

from .allocation import parse_allocation
from .client import DuelClient
from .engine import DuelEngine, EngineConfig
from .exceptions import ConfigurationError, DuelError, TransientStoreError, ValidationError
from .formatting import format_stake, parse_stake, shorten_party
from .logging_config import get_logger, setup_logging
from .models import Duel, DuelStatus, LobbyEntry
from .resolver import TieBreakPolicy
from .storage.json_store import JSONDuelStore
from .storage.secret_store import JSONSecretStore
from .watcher import DuelWatcher


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="shadow_duel",
        description="Shadow Duel - commit-reveal power allocation duels",
    )
    _ = parser.add_argument(
        "--store-dir",
        default="duels",
        help="Directory holding duel records and party secrets (default: ./duels)"
    )
    _ = parser.add_argument(
        "--tie-break",
        choices=[p.value for p in TieBreakPolicy],
        default=TieBreakPolicy.POWER_THEN_SEED.value,
        help="Policy for duels tied on rounds won (default: power_then_seed)"
    )
    _ = parser.add_argument(
        "--poll-interval",
        type=float,
        default=1.0,
        help="Seconds between polls for the watch command (default: 1.0)"
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Open a new duel")
    _ = create.add_argument("--party", required=True, help="Creator identifier")
    stake = create.add_mutually_exclusive_group(required=True)
    _ = stake.add_argument("--stake", type=int, help="Stake in lamports")
    _ = stake.add_argument("--stake-sol", help="Stake in SOL, e.g. 0.25")

    join = commands.add_parser("join", help="Join an open duel")
    _ = join.add_argument("duel_id")
    _ = join.add_argument("--party", required=True, help="Opponent identifier")

    commit = commands.add_parser("commit", help="Commit to an allocation")
    _ = commit.add_argument("duel_id")
    _ = commit.add_argument("--party", required=True)
    _ = commit.add_argument("--allocation", required=True, help="Three powers summing to 10, e.g. 6,2,2")

    reveal = commands.add_parser("reveal", help="Reveal the committed allocation")
    _ = reveal.add_argument("duel_id")
    _ = reveal.add_argument("--party", required=True)

    advance = commands.add_parser("advance", help="Resolve the next round")
    _ = advance.add_argument("duel_id")
    _ = advance.add_argument("--all", action="store_true", help="Resolve every remaining round")

    show = commands.add_parser("show", help="Show one duel")
    _ = show.add_argument("duel_id")

    listing = commands.add_parser("list", help="List open duels, or a party's duels")
    _ = listing.add_argument("--party", help="Only duels this party is in")
    _ = listing.add_argument("--all", action="store_true", help="Every duel in the store")

    delete = commands.add_parser("delete", help="Remove a duel (administrative)")
    _ = delete.add_argument("duel_id")

    watch = commands.add_parser("watch", help="Wait until a duel reaches a status")
    _ = watch.add_argument("duel_id")
    _ = watch.add_argument("--status", choices=[s.value for s in DuelStatus], required=True)
    _ = watch.add_argument("--timeout", type=float, default=60.0)

    return parser.parse_args(argv)


def secrets_path(store_dir: Path, party: str) -> Path:
    """Per-party secret file inside the store directory."""
    safe = re.sub(r"[^A-Za-z0-9_.-]", "_", party)
    return store_dir / "secrets" / f"{safe}.json"


def wire_components(args: Namespace) -> DuelEngine:
    """Wire store, configuration and engine."""
    logger = get_logger("wire_components")

    config = EngineConfig(
        tie_break=TieBreakPolicy(args.tie_break),
        poll_interval=args.poll_interval,
    )
    logger.info(f"Configuration: tie_break={config.tie_break.value}, poll_interval={config.poll_interval}")

    store_dir = Path(args.store_dir)
    logger.info(f"Opening JSON duel store at {store_dir}")
    return DuelEngine(JSONDuelStore(store_dir), config)


def render_duel(duel: Duel) -> str:
    """Render one duel as a two-column table plus its rounds."""
    table = PrettyTable()
    table.field_names = ["Field", "Value"]
    table.align["Field"] = "l"
    table.align["Value"] = "l"
    table.add_row(["Duel", duel.id])
    table.add_row(["Status", duel.status.value])
    table.add_row(["Creator", duel.creator])
    table.add_row(["Opponent", duel.opponent or "-"])
    table.add_row(["Stake (SOL)", format_stake(duel.stake)])
    table.add_row(["Creator committed", "yes" if duel.creator_commit else "no"])
    table.add_row(["Opponent committed", "yes" if duel.opponent_commit else "no"])
    table.add_row(["Creator revealed", "yes" if duel.creator_reveal else "no"])
    table.add_row(["Opponent revealed", "yes" if duel.opponent_reveal else "no"])
    table.add_row(["Winner", duel.winner or "-"])
    output = str(table)

    if duel.revealed_rounds:
        rounds = PrettyTable()
        rounds.field_names = ["Round", "Creator", "Opponent", "Taken by"]
        rounds.align["Creator"] = "r"
        rounds.align["Opponent"] = "r"
        for i, result in enumerate(duel.revealed_rounds, 1):
            taker = duel.party_for(result.outcome) or "tie"
            rounds.add_row([i, result.creator_power, result.opponent_power, taker])
        output += "\n" + str(rounds)
    return output


def render_list(duels: list[Duel]) -> str:
    table = PrettyTable()
    table.field_names = ["Duel", "Status", "Creator", "Opponent", "Stake (SOL)", "Winner"]
    table.align["Stake (SOL)"] = "r"
    for duel in duels:
        table.add_row([
            duel.id,
            duel.status.value,
            shorten_party(duel.creator),
            shorten_party(duel.opponent) if duel.opponent else "-",
            format_stake(duel.stake),
            shorten_party(duel.winner) if duel.winner else "-",
        ])
    return str(table)


def render_lobby(entries: list[LobbyEntry]) -> str:
    """Render open duels as lobby rows."""
    table = PrettyTable()
    table.field_names = ["Duel", "Creator", "Stake (SOL)", "Opened"]
    table.align["Stake (SOL)"] = "r"
    for entry in entries:
        opened = datetime.fromtimestamp(entry.created_at).strftime("%Y-%m-%d %H:%M:%S")
        table.add_row([entry.id, shorten_party(entry.creator), format_stake(entry.stake), opened])
    return str(table)


def run_command(args: Namespace, engine: DuelEngine) -> str:
    """Execute the selected command and return text to print."""
    store_dir = Path(args.store_dir)

    if args.command == "create":
        stake = args.stake if args.stake is not None else parse_stake(args.stake_sol)
        duel = engine.create_duel(args.party, stake)
        return f"Created duel {duel.id}"

    if args.command == "join":
        return render_duel(engine.join_duel(args.duel_id, args.party))

    if args.command in ("commit", "reveal"):
        client = DuelClient(engine, args.party, JSONSecretStore(secrets_path(store_dir, args.party)))
        if args.command == "commit":
            duel = client.commit(args.duel_id, parse_allocation(args.allocation))
        else:
            duel = client.reveal(args.duel_id)
        return render_duel(duel)

    if args.command == "advance":
        duel = engine.play_out(args.duel_id) if args.all else engine.advance_round(args.duel_id)
        return render_duel(duel)

    if args.command == "show":
        return render_duel(engine.get_duel(args.duel_id))

    if args.command == "list":
        if args.all:
            return render_list(engine.list_all_duels())
        if args.party:
            return render_list(engine.list_duels_for(args.party))
        return render_lobby([duel.lobby_entry() for duel in engine.list_open_duels()])

    if args.command == "delete":
        engine.delete_duel(args.duel_id)
        return f"Deleted duel {args.duel_id}"

    if args.command == "watch":
        watcher = DuelWatcher(engine)
        duel = watcher.wait_for_status(args.duel_id, DuelStatus(args.status), args.timeout)
        return render_duel(duel)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(level=args.log_level, debug=args.debug, log_dir=Path(args.store_dir) / "logs")
    logger = get_logger("main")

    try:
        engine = wire_components(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except TransientStoreError as e:
        print(f"Error: {e}")
        sys.exit(2)

    try:
        print(run_command(args, engine))
    except DuelError as e:
        logger.warning(f"{args.command} failed: {type(e).__name__}: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except (ValidationError, ValueError, TimeoutError) as e:
        logger.warning(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        sys.exit(1)
    except TransientStoreError as e:
        logger.error(f"{args.command} failed on store access: {e}")
        print(f"Error (store unavailable, safe to retry): {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user")
        sys.exit(1)
    finally:
        engine.close()


if __name__ == "__main__":
    main()
