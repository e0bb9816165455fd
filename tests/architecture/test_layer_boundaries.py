"""
Layer boundary contract.

1. purchasing_kernel/** may NOT import purchasing_engines,
   purchasing_services or purchasing_config. The kernel never depends
   upward.

2. purchasing_engines/** may import only purchasing_kernel, and never its
   db/ or models/ packages. Engines also never import SQLAlchemy or
   anything that performs I/O.

3. purchasing_config/** may import only purchasing_kernel.

These tests read source code via AST -- they cannot break anything.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    """Return all .py files under a top-level package."""
    return sorted(Path(p) for p in glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:

    def test_packages_exist(self):
        for package in ("purchasing_kernel", "purchasing_engines",
                        "purchasing_services", "purchasing_config"):
            assert _python_files(package), f"{package} has no modules"

    def test_kernel_does_not_import_outer_layers(self):
        violations = _violations(
            "purchasing_kernel",
            ("purchasing_engines", "purchasing_services", "purchasing_config"),
        )
        assert not violations, (
            "Kernel boundary violation -- purchasing_kernel/** must not import "
            "outer layers:\n" + "\n".join(violations)
        )


class TestEnginePurity:

    FORBIDDEN = (
        "purchasing_services",
        "purchasing_config",
        "purchasing_kernel.db",
        "purchasing_kernel.models",
        "sqlalchemy",
        "yaml",
        "requests",
        "socket",
        "random",
    )

    def test_engines_import_only_pure_kernel(self):
        violations = _violations("purchasing_engines", self.FORBIDDEN)
        assert not violations, (
            "Engine purity violation -- purchasing_engines/** may only import "
            "the pure kernel:\n" + "\n".join(violations)
        )


class TestConfigBoundary:

    def test_config_does_not_import_engines_or_services(self):
        violations = _violations(
            "purchasing_config", ("purchasing_engines", "purchasing_services")
        )
        assert not violations, (
            "Config boundary violation -- purchasing_config/** may only import "
            "the kernel:\n" + "\n".join(violations)
        )
