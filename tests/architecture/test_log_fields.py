"""
Log field contract.

Keys passed through ``extra={...}`` must not collide with attributes that
every ``logging.LogRecord`` already carries (``created``, ``name``,
``module`` ...).  The stdlib raises KeyError for such a key at the call
site, so a colliding log line turns a successful operation into a crash.

These tests read source code via AST -- they cannot break anything.
"""

import ast
import logging
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

PACKAGES = (
    "purchasing_kernel",
    "purchasing_engines",
    "purchasing_services",
    "purchasing_config",
)

RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def _extra_keys(filepath: Path) -> list[tuple[int, str]]:
    """(line_number, key) for every literal key of an ``extra=`` dict."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    found: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if not isinstance(node, ast.Call):
            continue
        for keyword in node.keywords:
            if keyword.arg == "extra" and isinstance(keyword.value, ast.Dict):
                found.extend(
                    (key.lineno, key.value)
                    for key in keyword.value.keys
                    if isinstance(key, ast.Constant) and isinstance(key.value, str)
                )
    return found


class TestLogExtraKeys:

    def test_extra_keys_found(self):
        keys = [
            key
            for package in PACKAGES
            for filepath in (ROOT / package).rglob("*.py")
            for _, key in _extra_keys(filepath)
        ]
        assert "invoice_number" in keys

    def test_no_reserved_record_attributes(self):
        violations = [
            f"  {filepath.relative_to(ROOT)}:{lineno} uses '{key}'"
            for package in PACKAGES
            for filepath in sorted((ROOT / package).rglob("*.py"))
            for lineno, key in _extra_keys(filepath)
            if key in RESERVED
        ]
        assert not violations, (
            "Log extra keys collide with LogRecord attributes:\n" + "\n".join(violations)
        )
