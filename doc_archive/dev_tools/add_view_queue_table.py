#!/usr/bin/env python3
"""
Add the `view_queue` table to an existing archive database.

Databases created before view batching existed only have `document_views`.
Safe to run repeatedly.

Usage: python -m doc_archive.dev_tools.add_view_queue_table [--db PATH]
"""

import argparse
import logging
import sys
import sqlite3

from doc_archive.database import resolve_db_path
from doc_archive.database_setup import add_view_queue_table


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Create the view_queue table and index if missing')
    parser.add_argument('--db', help='Database path (defaults to DATABASE_PATH)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
    db_path = args.db or resolve_db_path()
    print(f"Adding view_queue table to {db_path}...")
    try:
        add_view_queue_table(db_path)
    except sqlite3.Error as e:
        print(f"❌ Error adding view_queue table: {e}")
        return 1
    print("✅ Migration completed successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
