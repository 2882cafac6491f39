#!/usr/bin/env python3
"""Run a pylocate node from the command line.

Modes:
- ``local``: agent and device in one process over a loopback transport,
  scanning with nmcli. Runs one locate cycle and prints the result.
- ``agent``: agent node over MQTT; serves device requests until stopped.
- ``device``: device node over MQTT; runs one locate cycle and prints it.

Configuration comes from the environment:
- LOCATOR_API_KEY (or LOCATOR_GEOLOCATION_KEY / LOCATOR_GEOCODING_KEY /
  LOCATOR_TIMEZONE_KEY) for the agent,
- LOCATOR_MQTT_HOST, LOCATOR_MQTT_PORT, ... for the MQTT modes,
- LOCATOR_DEBUG=1 to trace provider requests.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pylocate import (
    EdgeAgent,
    EdgeDevice,
    LocatorConfig,
    LocatorError,
    LoopbackTransport,
    MqttSettings,
    MqttTransport,
    NmcliScanner,
)


def _print_result(node: EdgeAgent | EdgeDevice) -> None:
    result: dict[str, Any] = {
        "location": node.get_location(),
        "timezone": node.get_timezone(),
    }
    print(json.dumps(result, indent=2, default=str))


async def _run_local(args: argparse.Namespace) -> int:
    config = LocatorConfig.from_env()
    agent_side, device_side = LoopbackTransport.pair()
    scanner = NmcliScanner(interface=args.interface)
    async with EdgeAgent(agent_side, config) as agent, EdgeDevice(device_side, scanner, config) as device:
        await device.async_locate(use_previous=False)
        _print_result(device)
        return 0 if "error" not in agent.get_location() else 1


async def _run_agent(_args: argparse.Namespace) -> int:
    config = LocatorConfig.from_env()
    transport = MqttTransport(MqttSettings.from_env(topic_prefix=config.topic_prefix))
    agent = EdgeAgent(transport, config)
    transport.start()
    try:
        await asyncio.Event().wait()
    finally:
        await agent.close()
        transport.stop()
    return 0


async def _run_device(args: argparse.Namespace) -> int:
    config = LocatorConfig.from_env()
    transport = MqttTransport(MqttSettings.from_env(topic_prefix=config.topic_prefix))
    device = EdgeDevice(transport, NmcliScanner(interface=args.interface), config)
    transport.start()
    try:
        await device.async_locate(use_previous=False)
        _print_result(device)
    finally:
        await device.close()
        transport.stop()
    return 0 if "error" not in device.get_location() else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a pylocate node")
    parser.add_argument("mode", choices=("local", "agent", "device"))
    parser.add_argument("--interface", default=None, help="WiFi interface to scan (device/local modes)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    runners = {"local": _run_local, "agent": _run_agent, "device": _run_device}
    try:
        return asyncio.run(runners[args.mode](args))
    except LocatorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
