#!/usr/bin/env python3
import argparse
import sqlite3
from othershorts.app.db import connect, init_db

COUNTRIES = [
    "Argentina", "Australia", "Brazil", "Canada", "China", "France", "Germany",
    "India", "Indonesia", "Italy", "Japan", "Mexico", "Netherlands", "Nigeria",
    "Philippines", "Poland", "Romania", "South Africa", "South Korea", "Spain",
    "Sweden", "Turkey", "Ukraine", "United Kingdom", "United States", "Vietnam",
]

def load_names(path: str) -> list[str]:
    names = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            name = line.strip()
            if name and not name.startswith("#"):
                names.append(name)
    return names

def seed_countries(conn: sqlite3.Connection, names: list[str]) -> int:
    before = conn.total_changes
    conn.executemany(
        "INSERT OR IGNORE INTO countries(name) VALUES(?)",
        [(n,) for n in names],
    )
    return conn.total_changes - before

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--file", default=None, help="One country name per line (default: built-in list)")
    args = ap.parse_args()

    names = load_names(args.file) if args.file else COUNTRIES

    conn = connect()
    init_db(conn)
    added = seed_countries(conn, names)
    conn.commit()
    conn.close()
    print(f"Seeding complete ({added} new countries).")

if __name__ == "__main__":
    main()
