#!/usr/bin/env python3
"""
Serve the Borrowdesk API with uvicorn.
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the Borrowdesk API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run(
        "borrowdesk.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
