"""
Import-boundary and purity enforcement.

1. Kernel independence -- quote_kernel/** may not import quote_config,
                          quote_modules or YAML.
2. Module purity      -- quote_modules/** and quote_kernel/domain/** may not
                          read the clock, the environment or a random source.
3. Config centralisation -- only quote_config itself may import its
                          loader and validator sub-modules.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(f"{ROOT / package}/**/*.py", recursive=True))


def _parse(filepath: str) -> ast.AST:
    return ast.parse(Path(filepath).read_text(), filename=filepath)


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(filepath)):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(filepath)):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


class TestKernelIndependence:
    FORBIDDEN_PREFIXES = ("quote_config", "quote_modules", "yaml")

    def test_kernel_has_no_upward_imports(self):
        violations = [
            f"  {path}:{lineno} imports '{module}'"
            for path in _python_files("quote_kernel")
            for lineno, module in _extract_imports(path)
            if _matches_any(module, self.FORBIDDEN_PREFIXES)
        ]
        assert not violations, "quote_kernel must not depend on:\n" + "\n".join(violations)

    def test_scan_finds_files(self):
        assert _python_files("quote_kernel")
        assert _python_files("quote_modules")


class TestModulePurity:
    FORBIDDEN_IMPORTS = ("random", "time", "os", "secrets", "quote_config")
    FORBIDDEN_CALLS = frozenset(
        {
            "datetime.now",
            "datetime.utcnow",
            "datetime.today",
            "date.today",
            "time.time",
            "os.environ",
            "os.getenv",
        }
    )

    def _files(self) -> list[str]:
        return _python_files("quote_modules") + _python_files("quote_kernel/domain")

    def test_no_impure_imports(self):
        violations = [
            f"  {path}:{lineno} imports '{module}'"
            for path in self._files()
            for lineno, module in _extract_imports(path)
            if _matches_any(module, self.FORBIDDEN_IMPORTS)
        ]
        assert not violations, "Pricing code must be deterministic:\n" + "\n".join(violations)

    def test_no_clock_or_environment_reads(self):
        violations = [
            f"  {path}:{lineno} uses '{call}'"
            for path in self._files()
            for lineno, call in _extract_attribute_calls(path)
            if call in self.FORBIDDEN_CALLS
        ]
        assert not violations, "Pricing code must be deterministic:\n" + "\n".join(violations)


class TestConfigCentralisation:
    INTERNAL = ("quote_config.loader", "quote_config.validator")

    def test_only_config_package_imports_internals(self):
        violations = [
            f"  {path}:{lineno} imports '{module}'"
            for package in ("quote_kernel", "quote_modules", "scripts")
            for path in _python_files(package)
            for lineno, module in _extract_imports(path)
            if _matches_any(module, self.INTERNAL)
        ]
        assert not violations, "Use quote_config.get_active_policy():\n" + "\n".join(violations)
