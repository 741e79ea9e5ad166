"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def db_args(tmp_path, monkeypatch) -> list[str]:
    """Point the CLI at a temporary database and ignore any local .env."""
    monkeypatch.chdir(tmp_path)
    return ["--db", str(tmp_path / "cli.db")]


def _run(db_args: list[str], *args: str) -> int:
    from skillswap.__main__ import main

    return main([*db_args, *args])


def test_cli_without_command_prints_help(capsys) -> None:
    from skillswap.__main__ import main

    assert main([]) == 0
    assert "skillswap" in capsys.readouterr().out


def test_cli_init_creates_database(db_args, tmp_path, capsys) -> None:
    assert _run(db_args, "init") == 0

    assert (tmp_path / "cli.db").exists()
    assert "Initialized" in capsys.readouterr().out


def test_cli_user_set_and_show(db_args, capsys) -> None:
    assert (
        _run(
            db_args,
            "user", "set", "alice",
            "--name", "Alice",
            "--teach", "Guitar",
            "--learn", "Python",
            "--learn", "Yoga",
        )
        == 0
    )
    capsys.readouterr()

    assert _run(db_args, "user", "show", "alice") == 0
    profile = json.loads(capsys.readouterr().out)

    assert profile["name"] == "Alice"
    assert profile["teaching_skills"] == ["Guitar"]
    assert profile["learning_interests"] == ["Python", "Yoga"]


def test_cli_matches_lists_teachers(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice", "--learn", "Guitar")
    _run(db_args, "user", "set", "bob", "--name", "Bob", "--teach", "guitar lessons")
    capsys.readouterr()

    assert _run(db_args, "matches", "alice") == 0

    out = capsys.readouterr().out
    assert "bob Bob teaches Guitar" in out


def test_cli_matches_reports_none(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice", "--learn", "Guitar")
    capsys.readouterr()

    assert _run(db_args, "matches", "alice") == 0
    assert "No matches" in capsys.readouterr().out


def test_cli_exchange_lifecycle(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice", "--learn", "Guitar")
    _run(db_args, "user", "set", "bob", "--teach", "Guitar")
    capsys.readouterr()

    assert (
        _run(
            db_args,
            "exchange", "create",
            "--teacher", "bob",
            "--student", "alice",
            "--skill", "Guitar",
            "--hours", "2",
        )
        == 0
    )
    exchange_id = capsys.readouterr().out.strip()

    assert (
        _run(
            db_args,
            "exchange", "schedule", exchange_id,
            "--date", "2030-05-01",
            "--time", "10:00",
            "--as", "alice",
        )
        == 0
    )
    assert "scheduled 2030-05-01T10:00:00+00:00" in capsys.readouterr().out

    assert _run(db_args, "exchange", "complete", exchange_id) == 0
    assert "2 credits transferred" in capsys.readouterr().out

    assert _run(db_args, "progress", "show", "bob") == 0
    progress = json.loads(capsys.readouterr().out)
    assert progress["time_balance"] == 2
    assert progress["exchange_counts"]["completed"] == 1


def test_cli_schedule_requires_a_time(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice")
    _run(db_args, "user", "set", "bob")
    _run(
        db_args,
        "exchange", "create", "--teacher", "bob", "--student", "alice",
        "--skill", "Guitar",
    )
    exchange_id = capsys.readouterr().out.strip().splitlines()[-1]

    assert _run(db_args, "exchange", "schedule", exchange_id) == 1
    assert "--at" in capsys.readouterr().err


def test_cli_reports_domain_errors(db_args, capsys) -> None:
    assert _run(db_args, "user", "show", "nobody") == 1

    err = capsys.readouterr().err
    assert "Error:" in err
    assert "nobody" in err


def test_cli_rejects_completing_pending_exchange(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice")
    _run(db_args, "user", "set", "bob")
    capsys.readouterr()
    _run(
        db_args,
        "exchange", "create", "--teacher", "bob", "--student", "alice",
        "--skill", "Guitar",
    )
    exchange_id = capsys.readouterr().out.strip()

    assert _run(db_args, "exchange", "complete", exchange_id) == 1
    assert "pending" in capsys.readouterr().err


def test_cli_seed_and_search_skills(db_args, capsys) -> None:
    assert _run(db_args, "seed") == 0
    assert "Added 17 skills" in capsys.readouterr().out

    assert _run(db_args, "seed") == 0
    assert "Added 0 skills" in capsys.readouterr().out

    assert _run(db_args, "skills", "--search", "guitar") == 0
    assert "Guitar" in capsys.readouterr().out


def test_cli_rejects_non_positive_hours(db_args) -> None:
    with pytest.raises(SystemExit):
        _run(
            db_args,
            "exchange", "create", "--teacher", "bob", "--student", "alice",
            "--skill", "Guitar", "--hours", "0",
        )


def test_cli_user_import(db_args, tmp_path, capsys) -> None:
    path = tmp_path / "people.yaml"
    path.write_text(
        "users:\n"
        "  - user_id: alice\n"
        "    learning_interests: [Guitar]\n"
        "  - user_id: bob\n"
        "    teaching_skills: [Guitar]\n",
        encoding="utf-8",
    )

    assert _run(db_args, "user", "import", str(path)) == 0
    assert "Imported 2 profiles" in capsys.readouterr().out

    assert _run(db_args, "matches", "alice") == 0
    assert "bob" in capsys.readouterr().out


def test_cli_records_skill_progress_and_achievements(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice", "--learn", "Guitar")
    capsys.readouterr()

    assert (
        _run(
            db_args,
            "progress", "skill", "alice", "Guitar",
            "--level", "Intermediate",
            "--percent", "40",
            "--hours", "6",
            "--sessions", "3",
        )
        == 0
    )
    assert "Guitar: Intermediate, 40%" in capsys.readouterr().out

    assert _run(db_args, "progress", "achieve", "alice", "--title", "First Chord") == 0
    assert capsys.readouterr().out.strip() == "awarded"
    assert _run(db_args, "progress", "achieve", "alice", "--title", "First Chord") == 0
    assert capsys.readouterr().out.strip() == "already awarded"

    assert _run(db_args, "progress", "show", "alice") == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["skill_progress"]["Guitar"]["hours_learned"] == 6
    assert [a["title"] for a in summary["achievements"]] == ["First Chord"]


def test_cli_rejects_out_of_range_progress(db_args, capsys) -> None:
    _run(db_args, "user", "set", "alice")
    capsys.readouterr()

    assert (
        _run(db_args, "progress", "skill", "alice", "Guitar", "--percent", "150")
        == 1
    )
    assert "Error:" in capsys.readouterr().err
