from shopledger.cli import audit_ledger, create_user_cli, seed_demo
from shopledger.models import Customer, Product, User


def test_seed_demo_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(seed_demo)
    second = runner.invoke(seed_demo)

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0
    assert "(0 new records)" in second.output
    assert db_session.query(User).count() == 2
    assert db_session.query(Product).count() == 4
    assert db_session.query(Customer).count() == 1


def test_create_user(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(create_user_cli, ["--username", "amina", "--full-name", "Amina", "--role", "seller"])
    duplicate = runner.invoke(create_user_cli, ["--username", "amina", "--full-name", "Amina", "--role", "seller"])

    assert result.exit_code == 0, result.output
    assert duplicate.exit_code == 1
    assert "already exists" in duplicate.output


def test_ledger_audit_exit_codes(app, db_session, make_customer):
    runner = app.test_cli_runner()

    clean = runner.invoke(audit_ledger)
    assert clean.exit_code == 0
    assert "PASS" in clean.output

    make_customer(name="Ghost debt", debt=500)
    dirty = runner.invoke(audit_ledger)
    assert dirty.exit_code == 1
    assert "Ghost debt" in dirty.output
