#!/usr/bin/env python3
import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / 'backend'


def spawn_backend(port: int, *, migrate: bool) -> subprocess.Popen:
    env = os.environ.copy()
    if migrate:
        subprocess.run([sys.executable, '-m', 'alembic', 'upgrade', 'head'], cwd=str(BACKEND_DIR), env=env, check=True)

    cmd = [
        sys.executable,
        '-m',
        'uvicorn',
        'siterouter.main:app',
        '--host',
        '0.0.0.0',
        '--port',
        str(port),
        '--reload',
    ]
    return subprocess.Popen(cmd, cwd=str(BACKEND_DIR), env=env)


def main() -> int:
    parser = argparse.ArgumentParser(description='Run the domain router API with auto-reload.')
    parser.add_argument('--port', type=int, default=8001)
    parser.add_argument('--migrate', action='store_true', help='Apply alembic migrations before starting.')
    args = parser.parse_args()

    backend = spawn_backend(args.port, migrate=args.migrate)

    def handle_signal(_sig: int, _frame: object) -> None:
        if backend.poll() is None:
            backend.terminate()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    return backend.wait() or 0


if __name__ == '__main__':
    raise SystemExit(main())
