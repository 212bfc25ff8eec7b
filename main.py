#!/usr/bin/env python3
"""
Question Bank - Main Entry Point

Runs the Discord front-end for the question bank, or imports a question
file into the stored session without starting the bot.

Usage:
    python main.py
    python main.py --import questions.json
    python main.py --stats

Configuration:
    config.json (optional) with "bot", "storage", "quiz" and "logging" sections

Environment Variables:
    DISCORD_BOT_TOKEN: Your Discord bot token (overrides config.json)
    QBANK_STORAGE_PATH: Session store file (overrides config.json)
"""

import argparse
import asyncio
import sys
import os
import json
import logging
from pathlib import Path

from qbank.config_manager import ConfigManager
from qbank.data_manager import QuestionImportError
from qbank.quiz_controller import create_session


def load_config(config_path: str = "config.json"):
    """Load configuration from a JSON file; a missing file means defaults."""
    path = Path(config_path)

    if not path.exists():
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in {config_path}: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading {config_path}: {e}")
        sys.exit(1)

    if not isinstance(config, dict):
        print(f"❌ Error: {config_path} must contain a JSON object")
        sys.exit(1)
    return config


def get_bot_token(config):
    """Get bot token from environment variable or config file."""
    # Environment variable takes precedence
    token = os.getenv('DISCORD_BOT_TOKEN')
    if token:
        return token

    token = config.get('bot', {}).get('token')
    if not token or token == "YOUR_DISCORD_BOT_TOKEN_HERE":
        print("❌ Error: Discord bot token not configured!")
        print("Either:")
        print("  1. Set DISCORD_BOT_TOKEN environment variable")
        print("  2. Update the 'token' field in config.json")
        sys.exit(1)

    return token


def setup_logging_from_config(config):
    """Set up logging based on configuration."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))

    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "qbank.log", encoding='utf-8')
        ]
    )

    logging.getLogger('discord').setLevel(logging.WARNING)  # Reduce discord.py noise
    logging.getLogger('discord.http').setLevel(logging.WARNING)


def build_config_manager(config) -> ConfigManager:
    """Apply config.json and environment overrides to a ConfigManager."""
    config_manager = ConfigManager()
    for problem in config_manager.apply_config(config):
        print(problem)

    storage_path = os.getenv('QBANK_STORAGE_PATH')
    if storage_path:
        result = config_manager.set_storage_path(storage_path)
        if not result['success']:
            print(result['user_message'])

    return config_manager


def import_file(config_manager: ConfigManager, file_path: str) -> int:
    """Import a question file into the stored session."""
    session = create_session(config_manager.get_settings())
    try:
        raw = session.data_manager.read_import_file(file_path)
    except QuestionImportError as e:
        print(f"❌ {e.user_message} ({e})")
        return 1

    result = session.import_questions(raw)
    if not result['success']:
        print(f"❌ {result['user_message']} ({result['error']})")
        return 1

    print(f"✅ {result['user_message']}")
    return 0


def print_stats(config_manager: ConfigManager) -> int:
    """Print the stored session's per-topic accuracy."""
    session = create_session(config_manager.get_settings())
    summary = session.accuracy_summary()
    print(f"{session.total_questions} questions, at question {session.current_index + 1}")
    if not summary:
        print("No questions answered yet")
    for entry in summary:
        print(f"{entry.topic}: {entry.correct}/{entry.total} ({entry.percent}%)")
    return 0


async def run_bot_with_config(config, config_manager: ConfigManager):
    """Run the bot with configuration."""
    token = get_bot_token(config)

    from qbank.bot import run_bot
    await run_bot(token, config, config_manager)


def main():
    parser = argparse.ArgumentParser(description="Multiple-choice question bank")
    parser.add_argument("--config", default="config.json", help="Path to config.json")
    parser.add_argument("--import", dest="import_path", metavar="PATH",
                        help="Replace the stored question bank with a JSON file and exit")
    parser.add_argument("--stats", action="store_true", help="Show stored accuracy and exit")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging_from_config(config)
    config_manager = build_config_manager(config)

    if args.import_path:
        sys.exit(import_file(config_manager, args.import_path))
    if args.stats:
        sys.exit(print_stats(config_manager))

    try:
        print("🤖 Starting question bank bot...")
        asyncio.run(run_bot_with_config(config, config_manager))
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")


if __name__ == "__main__":
    main()
