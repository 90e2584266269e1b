#!/usr/bin/env python3
"""
CLI entry point for the control-plane workers.

    python -m src.workers                     # all loops
    python -m src.workers reconciler          # a single loop
    python -m src.workers seed-registry       # create worker identity rows
    python -m src.workers enqueue --instance-id 123
    python -m src.workers destroy --instance-id 123
"""
import argparse
import asyncio
import sys

from src.workers.bootstrap import LifecycleContainer, build_container
from src.workers.manager import WORKER_NAMES, create_worker_manager

COMMANDS = ("seed-registry", "enqueue", "destroy")


async def run_workers(container: LifecycleContainer, only: str) -> None:
    manager = create_worker_manager(container, only)
    await manager.start_all()
    try:
        await manager.wait_for_shutdown()
    finally:
        await manager.shutdown()


async def seed_registry(container: LifecycleContainer) -> int:
    settings = container.settings
    async with container.uow_factory() as uow:
        created = await uow.worker_identities.seed(settings.WORKER_ID_MIN, settings.WORKER_ID_MAX)
        await uow.commit()
    return created


async def enqueue(container: LifecycleContainer, instance_id: int) -> bool:
    async with container.uow_factory() as uow:
        queued = await uow.queue.enqueue(instance_id)
        await uow.commit()
    return queued


async def run_command(args: argparse.Namespace) -> int:
    container = build_container()
    try:
        if args.command == "seed-registry":
            print(f"Created {await seed_registry(container)} worker identity rows")
        elif args.command == "enqueue":
            queued = await enqueue(container, args.instance_id)
            print(f"Instance {args.instance_id} {'queued' if queued else 'already queued'}")
        elif args.command == "destroy":
            await container.destruction_pipeline.run(args.instance_id)
        else:
            await run_workers(container, args.command)
    finally:
        await container.aclose()
    return 0


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Instance lifecycle control-plane workers")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["all", *WORKER_NAMES, *COMMANDS],
        default="all",
        help="Which loop to run, or an operator command (default: all loops)",
    )
    parser.add_argument("--instance-id", type=int, help="Target instance for enqueue/destroy")

    args = parser.parse_args()
    if args.command in ("enqueue", "destroy") and args.instance_id is None:
        parser.error(f"{args.command} requires --instance-id")

    try:
        sys.exit(asyncio.run(run_command(args)))
    except KeyboardInterrupt:
        print("\nShutting down workers...")


if __name__ == "__main__":
    main()
