from main import _delete_user, _list_users, _parse_args
from useradmin.store import current_timestamp


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080", "--reload-templates"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080
    assert args.reload_templates is True


def test_admin_subcommand_still_available() -> None:
    args = _parse_args(["admin", "--config", "settings.yaml"])
    assert args.command == "admin"
    assert str(args.config) == "settings.yaml"


def test_list_users_prints_table_without_passwords(store, capsys) -> None:
    user = store.create_user(username="alice", email="a@x.com", password="hidden-pw", created=current_timestamp())

    _list_users(store)

    output = capsys.readouterr().out
    assert "1 user(s) found" in output
    assert user.id in output
    assert "alice" in output
    assert "hidden-pw" not in output


def test_list_users_reports_empty_collection(store, capsys) -> None:
    _list_users(store)
    assert "No users are currently registered." in capsys.readouterr().out


def test_delete_user_prompts_for_id(store, capsys, monkeypatch) -> None:
    user = store.create_user(username="bob", email="b@x.com", password="pw")

    monkeypatch.setattr("builtins.input", lambda _: user.id)
    _delete_user(store)
    assert f"Deleted user {user.id}." in capsys.readouterr().out
    assert store.get_user(user.id) is None

    monkeypatch.setattr("builtins.input", lambda _: "bogus")
    _delete_user(store)
    assert "not a valid user ID" in capsys.readouterr().out
