"""Create every settlement table on the configured database."""

from skinbag_settlement.db.session import create_tables

if __name__ == "__main__":
    create_tables()
    print("Database initialized.")
