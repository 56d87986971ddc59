#!/usr/bin/env python3
"""Live alert watcher for a tenant.

Reads ``FLEET_*`` configuration from the environment, subscribes to the
alert engine and prints every alert list it publishes. Useful to check
that the change feed, the vehicle registry and the alert service are
wired up before embedding the engine in a UI.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time

from pyfleetalerts import FleetAlertsClient, FleetAlertsConfig, FleetAlertsError, PersistedAlert

_LOG = logging.getLogger("watch_alerts")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print alert lists published by the fleet alert engine.",
    )
    parser.add_argument(
        "--tenant",
        default=None,
        help="Tenant id (defaults to FLEET_TENANT_ID).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--active-only",
        action="store_true",
        help="Hide resolved alerts.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_alerts(alerts: list[PersistedAlert], *, active_only: bool) -> None:
    shown = [alert for alert in alerts if alert.is_active or not active_only]
    stamp = time.strftime("%H:%M:%S")
    print(f"[watch] {stamp} {len(shown)} alert(s)")
    for alert in shown:
        print(
            f"[watch]   {alert.severity:<8} {alert.type:<11} {alert.status:<12} "
            f"device={alert.device_id} {alert.details}"
        )


async def _run(args: argparse.Namespace) -> int:
    overrides = {"tenant_id": args.tenant} if args.tenant else {}
    config = FleetAlertsConfig.from_env(**overrides)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    async with FleetAlertsClient(config) as client:
        registry = client.alert_registry()
        try:
            unsubscribe = await registry.subscribe(
                lambda alerts: _print_alerts(alerts, active_only=args.active_only),
            )
        except FleetAlertsError as exc:
            print(f"[watch] Startup failed: {exc}", file=sys.stderr)
            return 2

        print(f"[watch] Watching tenant {registry.tenant_id}")
        try:
            if args.duration > 0:
                try:
                    await asyncio.wait_for(stop.wait(), timeout=args.duration)
                except TimeoutError:
                    pass
            else:
                await stop.wait()
        finally:
            unsubscribe()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except FleetAlertsError as exc:
        _LOG.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
