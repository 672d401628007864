"""Tests for the PII log gate script."""

import importlib.util
from pathlib import Path

ROOT = Path(__file__).parent.parent

_spec = importlib.util.spec_from_file_location("gate_security_pii", ROOT / "scripts" / "gate_security_pii.py")
gate = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(gate)


def test_source_tree_passes():
    errors = []
    for pyfile in sorted((ROOT / "src").rglob("*.py")):
        errors.extend(gate.check_file(pyfile))
    assert errors == []


def test_print_rejected():
    assert gate.check_source('print("hello")\n')


def test_commented_print_allowed():
    assert gate.check_source('# print("hello")\n') == []


def test_unredacted_user_reference_rejected():
    source = (
        "logger.info(\n"
        '    "saved",\n'
        '    extra={"extra_fields": {"user": submission.user_reference_id}},\n'
        ")\n"
    )
    errors = gate.check_source(source)
    assert len(errors) == 1
    assert "user_reference_id" in errors[0]


def test_redacted_call_allowed():
    source = (
        "logger.info(\n"
        '    "saved",\n'
        '    extra={"extra_fields": safe_log_context(user_hash=hash_identifier(user_reference_id))},\n'
        ")\n"
    )
    assert gate.check_source(source) == []
