"""
Tests for the operator CLI.
"""

import pytest

from zook_admin import cli
from zook_admin.controllers.admins import AdminController


def test_create_super_admin_can_log_in(engine):
    admin_id = cli.create_super_admin(engine, "boss", "super-secret-1", "boss@example.com")
    admin = AdminController(engine).authenticate("boss", "super-secret-1")
    assert admin["id"] == admin_id
    assert admin["role"] == "super_admin"
    assert admin["country_id"] is None


def test_create_super_admin_rejects_duplicates(engine):
    cli.create_super_admin(engine, "boss", "super-secret-1")
    with pytest.raises(ValueError):
        cli.create_super_admin(engine, "boss", "another-secret-1")


def test_create_super_admin_short_password(engine):
    with pytest.raises(ValueError):
        cli.create_super_admin(engine, "boss", "short")


def test_main_usage(capsys):
    assert cli.main(["frobnicate"]) == 2
    assert "usage: zook-admin" in capsys.readouterr().err
    assert cli.main([]) == 2


def test_main_init_db(monkeypatch, engine):
    created = []
    monkeypatch.setattr(cli, "init_engine", lambda: engine)
    monkeypatch.setattr(cli, "create_schema", lambda eng: created.append(eng))
    assert cli.main(["init-db"]) == 0
    assert created == [engine]


def test_main_create_super_admin_prompts(monkeypatch, engine, capsys):
    answers = iter(["chief", ""])
    secrets = iter(["chief-pass-1", "chief-pass-1"])
    monkeypatch.setattr(cli, "init_engine", lambda: engine)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(secrets))
    assert cli.main(["create-super-admin"]) == 0
    assert "Super admin 'chief' created" in capsys.readouterr().out


def test_main_create_super_admin_mismatch(monkeypatch, engine, capsys):
    answers = iter(["chief", ""])
    secrets = iter(["chief-pass-1", "other-pass-1"])
    monkeypatch.setattr(cli, "init_engine", lambda: engine)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(secrets))
    assert cli.main(["create-super-admin"]) == 1
    assert "Passwords do not match" in capsys.readouterr().err
