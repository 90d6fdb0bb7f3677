#!/usr/bin/env python3
"""
Realtime Chat Server - Main Entry Point

Unified entry point for the server application that serves:
- Account registration, login and logout (HTTP, cookie session)
- Message history (HTTP)
- Realtime authentication and message broadcast (WebSocket)

Usage:
    python main_server.py

Optional arguments:
    --host HOST             Bind address (default: $HOST or 0.0.0.0)
    --port PORT             TCP port (default: $PORT or 3000)
    --database-url URL      SQLAlchemy async URL (default: $DATABASE_URL or sqlite+aiosqlite:///chat.db)
    --static-dir DIR        Directory served at / (default: $STATIC_DIR, disabled if unset)
    --log-dir DIR           Directory for chat_history.log (default: $LOG_DIR or logs)
    --debug                 Enable debug logging
"""

import argparse
import asyncio
import logging


def main():
    from server.main_server import ChatApplication
    from server.utils.config import ServerConfig
    from server.utils.logger import logger

    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Realtime Chat Server')
    parser.add_argument('--host', type=str, default=None,
                        help='Host to bind to (default: $HOST or 0.0.0.0)')
    parser.add_argument('--port', type=int, default=None,
                        help='TCP port (default: $PORT or 3000)')
    parser.add_argument('--database-url', type=str, default=None,
                        help='SQLAlchemy async database URL (default: $DATABASE_URL)')
    parser.add_argument('--static-dir', type=str, default=None,
                        help='Directory of static assets served at / (default: $STATIC_DIR)')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Directory for chat log files (default: $LOG_DIR or logs)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args()

    # Command line flags override the environment
    config = ServerConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.database_url:
        config.database_url = args.database_url
    if args.static_dir:
        config.static_dir = args.static_dir
    if args.log_dir:
        config.logs_dir = args.log_dir

    logger.configure(log_level=logging.DEBUG if args.debug else None, **config.get_log_settings())

    # Create and start the server
    try:
        server = ChatApplication(config)
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except Exception as e:
        logger.log_error("server", e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
