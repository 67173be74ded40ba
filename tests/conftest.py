"""Pytest fixtures for loadfeed tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from loadfeed.models import Record


@pytest.fixture
def posts_csv(tmp_path: Path) -> Path:
    """Three posts, two columns."""
    p = tmp_path / "posts.csv"
    p.write_text("PostId,Title\n1,First\n2,Second\n3,Third\n", encoding="utf-8")
    return p


@pytest.fixture
def records() -> list[Record]:
    return [Record({"PostId": str(i), "Title": f"Post {i}"}) for i in range(1, 4)]


@pytest.fixture
def users_db(tmp_path: Path) -> Path:
    """SQLite database with a users table (one NULL email)."""
    db = tmp_path / "users.db"
    conn = sqlite3.connect(db)
    try:
        conn.execute("CREATE TABLE users (UserId INTEGER, Name TEXT, Email TEXT)")
        conn.executemany(
            "INSERT INTO users VALUES (?, ?, ?)",
            [(1, "alice", "alice@example.com"), (2, "bob", None)],
        )
        conn.commit()
    finally:
        conn.close()
    return db


@pytest.fixture
def scenario_config_path(tmp_path: Path, posts_csv: Path) -> Path:
    """Scenario file with one data-driven GET and one static POST."""
    content = """
users: 2
duration_seconds: 5
iterations: 3
scenarios:
  - name: get_post
    request:
      method: GET
      url: https://api.example.com/posts/{PostId}
      headers:
        Accept: application/json
        X-Title: "{Title}"
      expected_status: 200
      timeout_ms: 5000
      step: get_post
      data_source:
        type: CSV
        file_path: posts.csv
        feed_strategy: Circular
  - name: create_post
    request:
      method: post
      url: https://api.example.com/posts
      body:
        title: hello
        userId: 1
"""
    p = tmp_path / "scenarios.yaml"
    p.write_text(content, encoding="utf-8")
    return p
