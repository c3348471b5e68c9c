from __future__ import annotations

import argparse
import json
import signal
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _run() -> int:
    from f12.bootstrap import build_loop
    from f12.errors import SchedulerInitFailed

    try:
        loop = build_loop()
    except (SchedulerInitFailed, ValueError) as e:
        print(f"Startup failed: {e}", file=sys.stderr)
        return 1

    # SIGTERM from docker stop ends the loop the same way Ctrl-C does.
    signal.signal(signal.SIGTERM, lambda *_: loop.stop())
    try:
        loop.run_forever()
    except KeyboardInterrupt:
        loop.stop()
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Force12 scheduler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="Status API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("run", help="Run the control loop in the foreground")

    s_serve = sub.add_parser("serve", help="Run the control loop behind the status API")
    s_serve.add_argument("--host", default="0.0.0.0")
    s_serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("tasks", help="Show task classes and scaling state")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--task", default=None)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "run":
        return _run()

    if args.cmd == "serve":
        import uvicorn

        uvicorn.run("f12.api:app", host=args.host, port=args.port)
        return 0

    if args.cmd == "tasks":
        r = requests.get(f"{base}/tasks", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.task:
            params["task"] = args.task
        r = requests.get(f"{base}/events", params=params, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
