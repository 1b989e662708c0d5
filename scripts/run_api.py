#!/usr/bin/env python
"""
Development server - serves the quote, order and shipment API with uvicorn.

Usage:
    python scripts/run_api.py [--port 8000] [--no-reload]

Orders are stored in CAP_PRICING_ORDERS_PATH when it is set.
"""
import argparse
import os
import subprocess
import sys
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Run the cap pricing API")
    parser.add_argument("--host", default=os.environ.get("CAP_PRICING_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("CAP_PRICING_PORT", "8000")))
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    src_path = str(project_root / "src")
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)

    command = [
        sys.executable, "-m", "uvicorn", "cap_pricing.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
        "--log-level", os.environ.get("CAP_PRICING_LOG_LEVEL", "info"),
    ]
    if not args.no_reload:
        command += ["--reload", "--reload-dir", src_path]

    print(f"Cap Pricing API on http://{args.host}:{args.port} (docs at /docs)")
    try:
        subprocess.run(command, env=env, cwd=project_root)
    except KeyboardInterrupt:
        print("\nAPI stopped.")


if __name__ == "__main__":
    main()
