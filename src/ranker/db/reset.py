"""Reset database (development only)."""

from ranker.config import get_settings
from ranker.db.migrate import migrate


def reset() -> None:
    """Delete and recreate the database."""
    settings = get_settings()
    db_path = settings.db_path

    if db_path.exists():
        db_path.unlink()
        print(f"✓ Deleted {db_path}")

    # WAL and SHM files go with it
    for suffix in (".db-wal", ".db-shm"):
        db_path.with_suffix(suffix).unlink(missing_ok=True)

    migrate()
    print("✓ Database reset complete")


if __name__ == "__main__":
    reset()
