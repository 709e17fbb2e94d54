#!/usr/bin/env python3
"""
Analytics cleanup tool.

Shows current analytics totals (views, comments, likes, queued views and the
five most viewed documents) and optionally deletes one category of data.

Usage:
    python -m doc_archive.dev_tools.cleanup_analytics            # interactive menu
    python -m doc_archive.dev_tools.cleanup_analytics views --yes
    python -m doc_archive.dev_tools.cleanup_analytics 4 --yes    # numeric menu choice
"""

import argparse
import os
import sys
from typing import Callable, Dict, List, Optional

from dotenv import load_dotenv

from doc_archive import database

load_dotenv()

# Menu number -> action name, matching the interactive menu
MENU = {
    '1': 'views',
    '2': 'comments',
    '3': 'likes',
    '4': 'all',
    '5': 'stats',
    '6': 'exit',
}

PROMPTS = {
    'views': "⚠️  Are you sure you want to delete all view analytics? (yes/no): ",
    'comments': "⚠️  Are you sure you want to delete all comments? (yes/no): ",
    'likes': "⚠️  Are you sure you want to delete all likes? (yes/no): ",
    'all': "⚠️  ⚠️  WARNING: This will delete ALL analytics data (views, comments, and likes). Are you sure? (yes/no): ",
}


def show_stats() -> Dict[str, int]:
    print("\n📊 Current Analytics Statistics:\n")
    summary = database.get_analytics_summary()
    print(f"  Views:        {summary['views']:,} total views across {summary['viewed_documents']} documents")
    print(f"  Comments:     {summary['comments']:,} total comments on {summary['commented_documents']} documents")
    print(f"  Likes:        {summary['liked_documents']:,} documents with likes ({summary['likes']:,} total likes)")
    print(f"  Queue:        {summary['queued_views']:,} views pending processing")

    top = database.get_top_viewed_documents(5)
    if top:
        print("\n  Top 5 Most Viewed Documents:")
        for i, row in enumerate(top, start=1):
            print(f"    {i}. {row['document_id']}: {row['views']:,} views")
    return summary


def cleanup_views() -> Dict[str, int]:
    print("\n🗑️  Cleaning up view analytics...")
    deleted = database.delete_view_analytics()
    print(f"  ✅ Deleted {deleted['document_views']:,} view records")
    print(f"  ✅ Deleted {deleted['view_queue']:,} queued views")
    return deleted


def cleanup_comments() -> Dict[str, int]:
    print("\n🗑️  Cleaning up comments...")
    deleted = database.delete_all_comments()
    print(f"  ✅ Deleted {deleted['comments']:,} comments")
    return deleted


def cleanup_likes() -> Dict[str, int]:
    print("\n🗑️  Cleaning up likes...")
    deleted = database.delete_all_likes()
    print(f"  ✅ Deleted {deleted['document_stats']:,} document like records")
    return deleted


def cleanup_all() -> Dict[str, int]:
    print("\n🗑️  Cleaning up ALL analytics data...")
    deleted: Dict[str, int] = {}
    deleted.update(cleanup_views())
    deleted.update(cleanup_comments())
    deleted.update(cleanup_likes())
    print("\n  ✅ All analytics data has been reset.")
    return deleted


ACTIONS: Dict[str, Callable[[], Dict[str, int]]] = {
    'views': cleanup_views,
    'comments': cleanup_comments,
    'likes': cleanup_likes,
    'all': cleanup_all,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Show or delete archive analytics data (destructive)')
    parser.add_argument('choice', nargs='?',
                        help='views|comments|likes|all|stats|exit or the menu number 1-6')
    parser.add_argument('--yes', '-y', action='store_true',
                        help='Auto-confirm destructive actions (or set CONFIRM_RESET=1)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would be deleted without deleting it')
    return parser


def _normalise_choice(raw: str) -> Optional[str]:
    value = raw.strip().lower()
    value = MENU.get(value, value)
    if value in ACTIONS or value in ('stats', 'exit'):
        return value
    return None


def main(argv: Optional[List[str]] = None, input_fn: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)

    print("🧹 Analytics Cleanup Script\n")
    show_stats()

    if args.choice is None:
        print("\n📋 Cleanup Options:")
        print("  1. Delete all view analytics (views only)")
        print("  2. Delete all comments")
        print("  3. Delete all likes")
        print("  4. Delete ALL analytics data (views + comments + likes)")
        print("  5. Show stats only (no cleanup)")
        print("  6. Exit")
        try:
            raw_choice = input_fn("\nEnter your choice (1-6): ")
        except EOFError:
            print("\nError reading input. Pass the choice as an argument, e.g. `cleanup_analytics 4 --yes`")
            return 1
    else:
        raw_choice = args.choice

    choice = _normalise_choice(raw_choice)
    if choice is None:
        print("Invalid choice. Exiting...")
        return 2
    if choice == 'stats':
        return 0
    if choice == 'exit':
        print("Exiting...")
        return 0

    if args.dry_run:
        print(f"DRY-RUN: would delete {choice} analytics data")
        return 0

    env_confirm = os.getenv('CONFIRM_RESET', '0').lower() in ('1', 'true', 't')
    if not (args.yes or env_confirm):
        try:
            answer = input_fn("\n" + PROMPTS[choice])
        except EOFError:
            print(f"\n⚠️  Interactive mode not available. Use: cleanup_analytics {choice} --yes")
            return 1
        if answer.strip().lower() != 'yes':
            print("Cancelled.")
            return 0

    ACTIONS[choice]()
    show_stats()
    return 0


if __name__ == "__main__":
    sys.exit(main())
