from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from scripts.create_user import main as create_user_main
from userregistry.database import Database
from userregistry.repository import SQLiteUserRepository


def test_creates_user_and_rejects_duplicate(tmp_path, capsys) -> None:
    db_path = tmp_path / "users.sqlite3"

    first = create_user_main(["John Doe", "john@example.com", "1234567890", "--db", str(db_path)])
    second = create_user_main(["Johnny", "john@example.com", "555", "--db", str(db_path)])

    captured = capsys.readouterr()
    assert first == 0
    assert second == 1
    assert "Created user #1: John Doe <john@example.com>" in captured.out
    assert "Email already exists: john@example.com" in captured.err

    users = SQLiteUserRepository(Database(db_path)).find_all()
    assert [user.name for user in users] == ["John Doe"]


def test_invalid_email_is_rejected_before_storage(tmp_path, capsys) -> None:
    db_path = tmp_path / "users.sqlite3"

    status = create_user_main(["John", "nope", "1", "--db", str(db_path)])

    assert status == 1
    assert "not a valid email address" in capsys.readouterr().err
    assert not db_path.exists()


def test_script_does_not_load_http_layer() -> None:
    root = Path(__file__).resolve().parent.parent
    code = "import sys, scripts.create_user; print('userregistry.api' in sys.modules, 'fastapi' in sys.modules)"

    result = subprocess.run(
        [sys.executable, "-c", code],
        cwd=root,
        capture_output=True,
        text=True,
        check=True,
    )

    assert result.stdout.strip() == "False False"
