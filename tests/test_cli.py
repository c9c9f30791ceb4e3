"""Tests for the click commands in main."""

from __future__ import annotations

import re

import pytest
from click.testing import CliRunner

from main import cli
from services.auth import decode_token


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> str:
    path = str(tmp_path / "shop.db")
    monkeypatch.setattr("config.settings.database_path", path)
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_init_db(runner, db_path) -> None:
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0
    assert db_path in result.output


def test_create_role(runner, db_path) -> None:
    runner.invoke(cli, ["init-db"])
    args = ["create-role", "--name", "Editor", "--type", "editor", "--permission", "product.update"]
    result = runner.invoke(cli, args)
    assert result.exit_code == 0
    assert "Created role Editor (editor)" in result.output
    again = runner.invoke(cli, args)
    assert "already exists" in again.output


def test_create_user_prints_token(runner, db_path) -> None:
    runner.invoke(cli, ["init-db"])
    result = runner.invoke(cli, ["create-user", "ann", "ann@example.com", "--role", "admin"])
    assert result.exit_code == 0
    token = re.search(r"Token: (\S+)", result.output).group(1)
    assert decode_token(token)["id"] == 1


def test_create_user_unknown_role(runner, db_path) -> None:
    runner.invoke(cli, ["init-db"])
    result = runner.invoke(cli, ["create-user", "ann", "ann@example.com", "--role", "root"])
    assert "Unknown role type: root" in result.output


def test_generate_ids(runner) -> None:
    result = runner.invoke(cli, ["generate-ids", "--count", "3", "--kind", "session"])
    lines = result.output.split()
    assert len(lines) == 3
    assert all(line.startswith("CART-") for line in lines)
