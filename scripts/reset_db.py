import sys
import os

# Add the project root to the python path so we can import from database
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy import text, inspect
from dotenv import load_dotenv

# Load environment variables from .env.local (or .env)
env_path = os.path.join(os.path.dirname(__file__), '..', '.env.local')
if not os.path.exists(env_path):
    env_path = os.path.join(os.path.dirname(__file__), '..', '.env')
load_dotenv(env_path)

from database.db import engine

# Children first so the fallback DELETE path never trips a foreign key
LIBRARY_TABLES = [
    "entry_similarities",
    "annotations",
    "entry_tags",
    "entry_projects",
    "tags",
    "projects",
    "entries",
]


def reset_library(include_users: bool = False):
    """
    Clears library data (entries, tags, projects, similarities) while keeping the schema.
    Users are kept unless include_users is set.
    """
    tables = LIBRARY_TABLES + (["users"] if include_users else [])

    print("WARNING: This will delete ALL data from the following tables:")
    for t in tables:
        print(f" - {t}")

    confirm = input("Are you sure you want to proceed? (yes/no): ")
    if confirm.lower() != "yes":
        print("Operation cancelled.")
        return

    existing_tables = set(inspect(engine).get_table_names())
    missing_tables = [t for t in tables if t not in existing_tables]
    if missing_tables:
        print(f"Error: The following tables were not found in the database: {missing_tables}")
        return

    preparer = engine.dialect.identifier_preparer
    quoted_tables = [preparer.quote(t) for t in tables]

    with engine.begin() as connection:
        if engine.dialect.name == "postgresql":
            connection.execute(text(f"TRUNCATE TABLE {', '.join(quoted_tables)} RESTART IDENTITY CASCADE;"))
        else:
            for table in quoted_tables:
                connection.execute(text(f"DELETE FROM {table}"))

    print("Successfully reset library tables.")


if __name__ == "__main__":
    reset_library(include_users="--all" in sys.argv)
