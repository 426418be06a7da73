SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS countries (
  id   INTEGER PRIMARY KEY,
  name TEXT NOT NULL UNIQUE
);

-- profile fields (age, gender, country_id) are all NULL until onboarding
-- sets them together

CREATE TABLE IF NOT EXISTS users (
  id            INTEGER PRIMARY KEY,
  google_raw_id TEXT,
  google_hash   TEXT NOT NULL UNIQUE,     -- public user id (sha256 hex)
  age           INTEGER,
  gender        TEXT,
  country_id    INTEGER,
  created_at    TEXT NOT NULL DEFAULT (datetime('now')),
  FOREIGN KEY (country_id) REFERENCES countries(id)
);

CREATE TABLE IF NOT EXISTS videos (
  id         INTEGER PRIMARY KEY AUTOINCREMENT,
  url        TEXT NOT NULL UNIQUE,        -- https://www.youtube.com/shorts/<id>
  user_id    TEXT NOT NULL,               -- owner's google_hash
  created_at TEXT NOT NULL DEFAULT (datetime('now')),
  FOREIGN KEY (user_id) REFERENCES users(google_hash)
);

CREATE INDEX IF NOT EXISTS idx_videos_user_id ON videos(user_id);

-- ratings are append-only: no UPDATE / DELETE anywhere in the app

CREATE TABLE IF NOT EXISTS ratings (
  id             INTEGER PRIMARY KEY AUTOINCREMENT,
  target_user_id TEXT NOT NULL,           -- uploader being rated
  reviewer_id    TEXT NOT NULL,
  video_url      TEXT,                    -- NULL for clients that don't send it
  rating         INTEGER NOT NULL CHECK (rating BETWEEN 0 AND 100),
  political      INTEGER NOT NULL CHECK (political IN (0, 1)),
  created_at     TEXT NOT NULL DEFAULT (datetime('now')),
  FOREIGN KEY (target_user_id) REFERENCES users(google_hash),
  FOREIGN KEY (reviewer_id) REFERENCES users(google_hash)
);

CREATE INDEX IF NOT EXISTS idx_ratings_reviewer_video
ON ratings(reviewer_id, video_url);

CREATE INDEX IF NOT EXISTS idx_ratings_target
ON ratings(target_user_id);
"""
