#!/usr/bin/env python3
"""Gate: no consent subject data in logs.

Fails if:
- print( found in runtime code (src/**)
- a logger call mentions a user reference, IP, e-mail or submission payload
  without passing it through safe_log_context / redact_value / hash_identifier

The whole call (up to its closing parenthesis) is checked, so multi-line
``logger.info(...)`` calls are covered.

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Keywords that must not appear in logger calls without redaction
SENSITIVE_KEYWORDS = (
    "user_reference_id",
    "userreferenceid",
    "userid",
    "ip_address",
    "email",
    "payload",
    "request.json",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
    "hash_identifier",
    "_log_ctx",
)


def _call_text(lines: list[str], start: int) -> str:
    """Text of the logger call beginning on lines[start], until parens balance."""
    depth = 0
    collected = []
    for line in lines[start:]:
        collected.append(line)
        depth += line.count("(") - line.count(")")
        if depth <= 0:
            break
    return "\n".join(collected)


def check_source(content: str, filename: str = "<string>") -> list[str]:
    """Check source text. Returns list of error messages."""
    errors = []
    lines = content.splitlines()

    for index, line in enumerate(lines):
        lineno = index + 1
        code_part = line.split("#")[0]
        if not code_part.strip():
            continue

        if PRINT_PATTERN.search(code_part):
            errors.append(f"{filename}:{lineno}: print() not allowed in runtime code")

        if LOGGER_CALL_PATTERN.search(code_part):
            call = _call_text(lines, index)
            call_lower = call.lower()
            if any(rp in call for rp in REDACTION_PATTERNS):
                continue
            for keyword in SENSITIVE_KEYWORDS:
                if keyword in call_lower:
                    errors.append(
                        f"{filename}:{lineno}: logger call with '{keyword}' "
                        "must use redaction (safe_log_context/hash_identifier)"
                    )

    return errors


def check_file(filepath: Path) -> list[str]:
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []
    return check_source(content, str(filepath))


def main() -> int:
    """Run gate check on src directory."""
    src_dir = Path("src")

    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"

    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))

    if all_errors:
        sys.stderr.write("PII log gate FAILED:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII log gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
