#!/usr/bin/env python3
"""
Console demo for the lending engine.

Usage:
  python backend/demo.py populate
  python backend/demo.py borrow --reader 1 --books 1 2 3 --days 14 [--staff 3]
  python backend/demo.py extend --borrowing 1 --days 7
  python backend/demo.py return --borrowing 1
  python backend/demo.py status --reader 1

Uses DATABASE_URL, LIBRARY_LOG_LEVEL, LIBRARY_LOG_FILE and the LIBRARY_*
policy overrides from the environment.
"""

import argparse
import os
import sys
from datetime import datetime

from constants import EnvKeys
from database import SessionLocal
from dependencies import (
    get_book_domain_service,
    get_book_service,
    get_borrow_request_service,
    get_loan_lifecycle_service,
)
from exceptions import ApplicationError
from init_db import init_database
from models import Book, Reader
from utils.logging_utils import configure_logging


def populate(db) -> None:
    """Create a small domain tree, a few books and three readers."""
    domains = get_book_domain_service(db)
    books = get_book_service(db)

    science = domains.create_domain("Science")
    physics = domains.create_domain("Physics", science.id)
    computing = domains.create_domain("Computer Science", science.id)
    literature = domains.create_domain("Literature")

    catalog = [
        (Book(title="Classical Mechanics", isbn="9780201657029", total_copies=5, reading_room_only_copies=1), [physics.id]),
        (Book(title="Structure and Interpretation", isbn="9780262510875", total_copies=4, reading_room_only_copies=0), [computing.id]),
        (Book(title="The Art of Programming", isbn="9780201896831", total_copies=3, reading_room_only_copies=1), [computing.id]),
        (Book(title="War and Peace", isbn="9780140447934", total_copies=6, reading_room_only_copies=2), [literature.id]),
        (Book(title="Reference Atlas", isbn="9780198607816", total_copies=2, reading_room_only_copies=2), [science.id]),
    ]
    for book, domain_ids in catalog:
        books.create_book(book, domain_ids)

    db.add_all([
        Reader(first_name="Ana", last_name="Pop", email="ana@example.org"),
        Reader(first_name="Radu", last_name="Ionescu", email="radu@example.org"),
        Reader(first_name="Elena", last_name="Marin", email="elena@example.org", is_staff=True),
    ])
    db.commit()

    print(f"✓ {len(domains.get_all_domains())} domains, {len(catalog)} books, 3 readers")


def status(db, reader_id: int) -> None:
    lifecycle = get_loan_lifecycle_service(db)
    active = lifecycle.get_active_borrowings(reader_id)
    reader = db.get(Reader, reader_id)
    print(f"{reader.full_name} (reader {reader_id}): {len(active)} active borrowings")
    for b in active:
        print(f"  #{b.id:<4} book {b.book_id:<4} due {b.due_date:%Y-%m-%d}  extended {b.total_extension_days}d")


def main():
    ap = argparse.ArgumentParser(description="Library lending demo")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("populate", help="Create demo domains, books and readers")

    borrow = sub.add_parser("borrow", help="Borrow one or more books")
    borrow.add_argument("--reader", type=int, required=True)
    borrow.add_argument("--books", type=int, nargs="+", required=True)
    borrow.add_argument("--days", type=int, default=14)
    borrow.add_argument("--staff", type=int, default=None)

    extend = sub.add_parser("extend", help="Extend a borrowing")
    extend.add_argument("--borrowing", type=int, required=True)
    extend.add_argument("--days", type=int, required=True)

    ret = sub.add_parser("return", help="Return a borrowing")
    ret.add_argument("--borrowing", type=int, required=True)

    stat = sub.add_parser("status", help="Show a reader's active borrowings")
    stat.add_argument("--reader", type=int, required=True)

    args = ap.parse_args()

    configure_logging(os.environ.get(EnvKeys.LOG_LEVEL, "INFO"), os.environ.get(EnvKeys.LOG_FILE))
    init_database()

    db = SessionLocal()
    try:
        if args.command == "populate":
            populate(db)
        elif args.command == "borrow":
            created = get_borrow_request_service(db).create_borrowings(
                args.reader, args.books, datetime.now(), args.days, staff_id=args.staff
            )
            print(f"✅ Created {len(created)} borrowing(s): {[b.id for b in created]}")
        elif args.command == "extend":
            b = get_loan_lifecycle_service(db).extend_borrowing_advanced(args.borrowing, args.days)
            print(f"✅ Borrowing {b.id} now due {b.due_date:%Y-%m-%d}")
        elif args.command == "return":
            b = get_loan_lifecycle_service(db).return_borrowing(args.borrowing, datetime.now())
            print(f"✅ Borrowing {b.id} returned")
        elif args.command == "status":
            status(db, args.reader)
    except ApplicationError as e:
        print(f"❌ {e.message} {e.details or ''}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
