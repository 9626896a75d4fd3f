#!/usr/bin/env python3
"""
Submit a demo video to a running narrator server and wait for the result.

Usage:
    python submit_video.py demo.mp4 --app-name Acme --description "task manager"
    python submit_video.py demo.mp4 --app-name Acme --description "task manager" --template social_viral
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
load_dotenv()

from src.client import MAX_POLLS, POLL_INTERVAL_SECONDS, VideoJobClient
from src.models.template import TEMPLATES


def print_update(status: dict) -> None:
    print(f"  [{status.get('status')}] {status.get('message', '')}")


async def run(args: argparse.Namespace) -> int:
    client = VideoJobClient(
        base_url=args.server,
        poll_interval=args.interval,
        max_polls=args.max_polls,
    )

    job_id = await client.submit(args.video, args.app_name, args.description, args.template)
    print(f"Job submitted: {job_id}")

    outcome = await client.wait_for_completion(job_id, on_update=print_update)

    if outcome.status == "completed":
        print(f"Video ready: {client.download_url(outcome)}")
        return 0
    if outcome.timed_out:
        print(f"Gave up after {outcome.polls} polls; the server is still working on {job_id}")
        return 2
    if outcome.status == "not_found":
        print(f"Job not found: the server has no record of {job_id}")
        return 1
    print(f"Job failed: {outcome.message}")
    return 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Turn a demo video into a narrated video")
    parser.add_argument("video", type=Path, help="Demo video file")
    parser.add_argument("--app-name", required=True, help="Application name")
    parser.add_argument("--description", required=True, help="What the application does")
    parser.add_argument("--template", choices=sorted(TEMPLATES), default=None)
    parser.add_argument("--server", default="http://localhost:5000", help="Server base URL")
    parser.add_argument("--interval", type=float, default=POLL_INTERVAL_SECONDS)
    parser.add_argument("--max-polls", type=int, default=MAX_POLLS)
    args = parser.parse_args()

    if not args.video.is_file():
        parser.error(f"video not found: {args.video}")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
