"""Utility that launches a sample Redis Docker container for redisui."""

from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from redisui.config import load_config
from redisui.errors import ConnectError, UpstreamError
from redisui.gateway import DEMO_KEYSPACE, RedisStoreGateway
from redisui.models import ConnectionProfile
from redisui.registry import ConnectionRegistry

DEFAULT_CONTAINER = "redisui-sample"
DEFAULT_PORT = 6380
DEFAULT_BULK_KEYS = 2500
DOCKER_IMAGE = "redis:7-alpine"
PROFILE_NAME = "Docker Sample"


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(name: str, port: int) -> None:
    if container_exists(name):
        print(f"Container '{name}' already exists. Reusing it.")
        run(["docker", "start", name], check=False)
    else:
        run(["docker", "run", "-d", "--name", name, "-p", f"{port}:6379", DOCKER_IMAGE])
    wait_for_start(name)


def wait_for_start(name: str, retries: int = 15, delay: float = 1.0) -> None:
    for _ in range(retries):
        result = subprocess.run(
            ["docker", "exec", name, "redis-cli", "ping"],
            text=True,
            capture_output=True,
        )
        if result.returncode == 0 and "PONG" in result.stdout:
            return
        time.sleep(delay)
    print("Warning: Redis did not answer PING; continuing anyway.")


async def seed_data(profile: ConnectionProfile, bulk_keys: int) -> None:
    """Write one key of every type plus a bulk keyspace for paging."""

    gateway = RedisStoreGateway()
    await gateway.connect(profile)
    try:
        for key, value in DEMO_KEYSPACE.items():
            await gateway.set_key_value(key, value)
        await gateway.set_key_value("cache:homepage", DEMO_KEYSPACE["user:1001:name"], ttl=3600)
        for idx in range(bulk_keys):
            await gateway.set_key_value(f"bulk:{idx:05d}", DEMO_KEYSPACE["counter:visits"])
    finally:
        await gateway.disconnect()


def register_profile(port: int) -> None:
    registry = ConnectionRegistry(load_config().resolved_connections_file())
    existing = {profile.name for profile in registry.list()}
    if PROFILE_NAME in existing:
        print(f"Profile '{PROFILE_NAME}' already present; leaving as-is.")
        return
    registry.upsert(ConnectionProfile(name=PROFILE_NAME, host="localhost", port=port))
    print(f"Added '{PROFILE_NAME}' profile to {registry.path}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Redis on")
    parser.add_argument("--bulk-keys", type=int, default=DEFAULT_BULK_KEYS, help="Extra keys to exercise paging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args.container, args.port)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    profile = ConnectionProfile(name=PROFILE_NAME, host="localhost", port=args.port)
    try:
        asyncio.run(seed_data(profile, args.bulk_keys))
    except (ConnectError, UpstreamError) as exc:
        print(f"Seeding failed: {exc}")
        return 1
    register_profile(args.port)
    print(f"Sample Redis is ready on localhost:{args.port}. Connect using the '{PROFILE_NAME}' profile.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
