#!/usr/bin/env python3
"""
Script to create the dispatch board tables in the database.
This can be run manually if needed, or the tables will be created automatically on server startup.
"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from dispatch_board.db import Base, engine
from dispatch_board.models import models  # noqa: F401


def main():
    print("Creating dispatch board tables...")
    try:
        existing = set(inspect(engine).get_table_names())
        wanted = set(Base.metadata.tables.keys())
        for name in sorted(wanted & existing):
            print(f"✅ {name} already exists")
        Base.metadata.create_all(bind=engine)
        for name in sorted(wanted - existing):
            print(f"✅ Created {name}")
    except Exception as e:
        print(f"❌ Error creating tables: {e}")
        raise


if __name__ == "__main__":
    main()
