"""Tests for the ledger interface shared by both backends."""

import inspect

from ledger import Ledger, PostgresLedger


def public_methods(cls):
    return {
        name for name, _ in inspect.getmembers(cls, inspect.isfunction)
        if not name.startswith('_')
    }


def test_postgres_ledger_only_exposes_ledger_statements():
    """No raw statement entry points beyond the typed interface."""
    assert public_methods(PostgresLedger) <= public_methods(Ledger)
