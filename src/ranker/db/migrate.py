"""Database migrations for the ranker."""

from ranker.db.connection import get_connection

SCHEMA = """
-- One row per (context, item); id preserves creation order for stable rankings
CREATE TABLE IF NOT EXISTS elo_ratings (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  context TEXT NOT NULL,
  item_id TEXT NOT NULL,
  item_type TEXT,
  rating REAL NOT NULL DEFAULT 1500.0,
  battles INTEGER NOT NULL DEFAULT 0,
  wins INTEGER NOT NULL DEFAULT 0,
  losses INTEGER NOT NULL DEFAULT 0,
  ties INTEGER NOT NULL DEFAULT 0,
  last_updated TIMESTAMP NOT NULL,
  created_at TIMESTAMP NOT NULL,

  UNIQUE (context, item_id)
);

CREATE INDEX IF NOT EXISTS idx_ratings_context_rating ON elo_ratings(context, rating DESC);

-- One row per sequencer run
CREATE TABLE IF NOT EXISTS ranking_sessions (
  session_id TEXT PRIMARY KEY,
  context TEXT NOT NULL,
  total_battles INTEGER NOT NULL,
  completed_battles INTEGER NOT NULL DEFAULT 0,
  created_at TIMESTAMP NOT NULL,
  completed_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_sessions_context ON ranking_sessions(context, created_at DESC);
"""


def migrate() -> None:
    """Run database migrations."""
    with get_connection() as conn:
        conn.executescript(SCHEMA)
        conn.commit()
    print("✓ Database migrations complete")


if __name__ == "__main__":
    migrate()
