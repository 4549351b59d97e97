#!/usr/bin/env python3
"""
AI Grammar API - Development Launcher

Starts the FastAPI backend with uvicorn after a couple of quick checks.

Usage:
    python run.py                    # Start on localhost:8000 with reload
    python run.py --host 0.0.0.0     # Network accessible
    python run.py --port 9000        # Different port
    python run.py --check-only       # Run checks without starting the server

Environment Variables (all optional):
    - OPENAI_API_KEY, GROQ_API_KEY, DEEPSEEK_API_KEY, QWEN_API_KEY,
      OPENROUTER_API_KEY, LMSTUDIO_API_KEY: provider credentials
    - OLLAMA_URL: Defaults to http://localhost:11434
    - HOSTED_DEPLOYMENT: Replace ollama requests with a configured cloud provider
"""

import argparse
import os
import socket
import sys
from pathlib import Path

DEFAULT_HOST = "localhost"
DEFAULT_BACKEND_PORT = 8000
BACKEND_DIR = Path(__file__).resolve().parent / "backend"
PROVIDER_KEYS = (
    "OPENAI_API_KEY",
    "GROQ_API_KEY",
    "DEEPSEEK_API_KEY",
    "QWEN_API_KEY",
    "OPENROUTER_API_KEY",
)


def check_python_version() -> bool:
    if sys.version_info < (3, 11):
        print(f"Python 3.11+ is required (found {sys.version.split()[0]})")
        return False
    return True


def check_port_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            print(f"Port {port} on {host} is already in use")
            return False
    return True


def report_providers() -> None:
    configured = [key for key in PROVIDER_KEYS if os.environ.get(key)]
    if configured:
        print(f"Cloud providers configured: {', '.join(configured)}")
    else:
        print("No cloud provider keys set; only ollama and lmstudio will work without a per-request apiKey")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="AI Grammar API - Development Launcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--host",
        type=str,
        default=DEFAULT_HOST,
        help=f"Host to bind to (default: {DEFAULT_HOST}). Use 0.0.0.0 for network access",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_BACKEND_PORT,
        help=f"Backend port (default: {DEFAULT_BACKEND_PORT})",
    )
    parser.add_argument(
        "--no-reload",
        action="store_false",
        dest="reload",
        help="Disable auto-reload",
    )
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Run checks only, do not start the server",
    )
    return parser


def main() -> int:
    args = create_argument_parser().parse_args()

    if not check_python_version() or not check_port_free(args.host, args.port):
        return 1
    report_providers()
    if args.check_only:
        return 0

    import uvicorn

    os.chdir(BACKEND_DIR)
    sys.path.insert(0, str(BACKEND_DIR))
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=[str(BACKEND_DIR / "app")] if args.reload else None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
