#!/usr/bin/env python3
"""
Realtime Chat Client - Main Entry Point

Command-line chat client: logs in (or registers) over HTTP, prints the
recent history, then sends typed lines and prints new messages live.

Usage:
    python main_client.py --username NAME [--register]

Optional arguments:
    --server-ip HOST     Server address (default: localhost)
    --port PORT          Server port (default: 3000)
    --password PASS      Password (prompted if omitted)
    --register           Create the account instead of logging in
    --secure             Use https/wss
"""

import argparse
import asyncio
import getpass


def main():
    """Main entry point."""
    from client.main_client import RealtimeChatClient
    from client.utils.config import ClientConfig
    from client.utils.logger import logger
    from common.constants import DEFAULT_HOST, DEFAULT_PORT

    parser = argparse.ArgumentParser(description='Realtime Chat Client')
    parser.add_argument('--username', type=str, default=None,
                        help='Account username (prompted if omitted)')
    parser.add_argument('--password', type=str, default=None,
                        help='Account password (prompted if omitted)')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                        help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'Server port (default: {DEFAULT_PORT})')
    parser.add_argument('--register', action='store_true',
                        help='Register a new account')
    parser.add_argument('--secure', action='store_true',
                        help='Connect with https/wss')

    args = parser.parse_args()

    username = args.username or input("Enter username: ").strip()
    password = args.password or getpass.getpass("Enter password: ")

    config = ClientConfig(args.server_ip, args.port, username, password, secure=args.secure)
    client = RealtimeChatClient(config)

    try:
        asyncio.run(client.interactive_mode(register=args.register))
    except KeyboardInterrupt:
        print("\n[INFO] Client terminated")
    except Exception as e:
        logger.log_error("client", e)


if __name__ == "__main__":
    main()
