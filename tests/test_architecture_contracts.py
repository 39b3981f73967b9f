# tests/test_architecture_contracts.py
"""
Architecture contract tests for django-service-agreements.

These tests enforce structural invariants that unit tests don't catch:
- Version consistency (__init__.py vs pyproject.toml)
- GenericForeignKey field types (CharField for UUID support)
- AUTH_USER_MODEL usage (not direct User imports)
- Lazy imports in __init__.py (prevent AppRegistryNotReady)
- Append-only renewal history
- Engine modules never read the clock
- Recurrence arithmetic stays free of Django imports
- Test/doc file existence
"""
from __future__ import annotations

import ast
import re
from pathlib import Path
from typing import List, Set

ROOT_DIR = Path(__file__).parent.parent
PACKAGES_DIR = ROOT_DIR / "packages"

# Modules whose functions take "now" from the caller
ENGINE_MODULES = ["recurrence.py", "lifecycle.py", "validation.py", "services.py", "store.py"]

# Calls that read the current date or time
CLOCK_CALLS = re.compile(
    r"\b(?:date\.today|datetime\.now|datetime\.utcnow|datetime\.today|timezone\.now|timezone\.localdate|time\.time)\s*\("
)


def get_package_dirs() -> List[Path]:
    """Get all django-* package directories."""
    return sorted([p for p in PACKAGES_DIR.iterdir() if p.is_dir() and p.name.startswith("django-")])


def src_dir(pkg_dir: Path) -> Path:
    return pkg_dir / "src" / pkg_dir.name.replace("-", "_")


def get_imports_from_file(path: Path) -> Set[str]:
    """Extract all top-level import names from a Python file."""
    if not path.exists():
        return set()

    try:
        tree = ast.parse(path.read_text())
    except (SyntaxError, UnicodeDecodeError):
        return set()

    imports = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                imports.add(alias.name.split('.')[0])
        elif isinstance(node, ast.ImportFrom):
            if node.module and node.level == 0:
                imports.add(node.module.split('.')[0])
            elif node.module:
                imports.add(f".{node.module}")
    return imports


def test_packages_exist():
    """The repository ships at least one package."""
    assert get_package_dirs(), f"No django-* packages found under {PACKAGES_DIR}"


# -----------------------------
# 1) Version consistency
# -----------------------------

def test_version_consistency():
    """
    __init__.py __version__ must match the root pyproject.toml version.
    """
    pyproject_text = (ROOT_DIR / "pyproject.toml").read_text()
    match = re.search(r'^version\s*=\s*["\']([^"\']+)["\']', pyproject_text, re.MULTILINE)
    assert match, "pyproject.toml has no version"
    pyproject_version = match.group(1)

    mismatches = []
    for pkg_dir in get_package_dirs():
        init_py = src_dir(pkg_dir) / "__init__.py"
        if not init_py.exists():
            continue

        match = re.search(r'__version__\s*=\s*["\']([^"\']+)["\']', init_py.read_text())
        if not match:
            mismatches.append(f"{pkg_dir.name}: __init__.py missing __version__")
            continue

        if match.group(1) != pyproject_version:
            mismatches.append(
                f"{pkg_dir.name}: pyproject.toml={pyproject_version}, __init__.py={match.group(1)}"
            )

    assert not mismatches, (
        "Version mismatches detected:\n" + "\n".join(mismatches)
    )


# -----------------------------
# 2) GenericForeignKey object_id types
# -----------------------------

def test_genericfk_object_id_uses_charfield():
    """
    GenericForeignKey id fields should use CharField, not integer fields.

    This keeps UUID-keyed business models usable as agreement holders.
    """
    violations = []

    for pkg_dir in get_package_dirs():
        models_py = src_dir(pkg_dir) / "models.py"
        if not models_py.exists():
            continue

        for i, line in enumerate(models_py.read_text().split('\n'), 1):
            if re.search(r'_id\s*=\s*models\.(Positive)?(Big)?IntegerField', line):
                violations.append(
                    f"{pkg_dir.name}/models.py:{i}: GenericFK id uses an integer field "
                    "(should be CharField for UUID support)"
                )

    assert not violations, (
        "GenericForeignKey id fields should use CharField:\n" + "\n".join(violations)
    )


# -----------------------------
# 3) AUTH_USER_MODEL usage
# -----------------------------

def test_uses_auth_user_model_not_direct_import():
    """
    Packages should use settings.AUTH_USER_MODEL, not direct User imports.
    """
    violations = []

    for pkg_dir in get_package_dirs():
        for py_file in src_dir(pkg_dir).rglob("*.py"):
            source = py_file.read_text()
            if re.search(r'from django\.contrib\.auth\.models import.*\bUser\b', source):
                violations.append(
                    f"{pkg_dir.name}/{py_file.name}: imports User directly. "
                    "Use settings.AUTH_USER_MODEL instead."
                )

    assert not violations, (
        "Direct User imports detected (breaks swappable user model):\n"
        + "\n".join(violations)
    )


# -----------------------------
# 4) Lazy imports in __init__.py
# -----------------------------

def test_init_uses_lazy_imports():
    """
    __init__.py should not import submodules eagerly.

    Eager model imports in __init__.py cause AppRegistryNotReady.
    """
    warnings = []

    for pkg_dir in get_package_dirs():
        init_py = src_dir(pkg_dir) / "__init__.py"
        if not init_py.exists():
            continue

        source = init_py.read_text()
        if re.search(r'^from \.\w+ import', source, re.MULTILINE):
            warnings.append(f"{pkg_dir.name}/__init__.py: eager submodule import")
        if '__getattr__' not in source:
            warnings.append(f"{pkg_dir.name}/__init__.py: no lazy __getattr__")

    assert not warnings, (
        "Eager imports in __init__.py (use lazy imports):\n" + "\n".join(warnings)
    )


# -----------------------------
# 5) Append-only renewal history
# -----------------------------

def test_append_only_models_block_updates():
    """
    Ledger models should override save() to block updates.
    """
    append_only_models = [
        ("django-service-agreements", "AgreementRenewal"),
    ]

    violations = []

    for pkg_name, model_name in append_only_models:
        models_py = src_dir(PACKAGES_DIR / pkg_name) / "models.py"
        source = models_py.read_text()

        class_pattern = f"class {model_name}"
        assert class_pattern in source, f"{pkg_name}: {model_name} not found"

        class_start = source.find(class_pattern)
        next_class = source.find("\nclass ", class_start + 1)
        if next_class == -1:
            next_class = len(source)
        class_source = source[class_start:next_class]

        if "def save" not in class_source:
            violations.append(f"{pkg_name}/{model_name}: append-only model missing save() override")
        elif "self._state.adding" not in class_source and "self.pk" not in class_source:
            violations.append(f"{pkg_name}/{model_name}: save() doesn't check for existing row")

    assert not violations, (
        "Append-only models missing update protection:\n" + "\n".join(violations)
    )


# -----------------------------
# 6) No clock reads in the engine
# -----------------------------

def test_engine_modules_do_not_read_clock():
    """
    Date-dependent engine functions take "now" from the caller.

    Only the admin and management commands may read today's date.
    """
    violations = []

    for pkg_dir in get_package_dirs():
        for module in ENGINE_MODULES:
            path = src_dir(pkg_dir) / module
            if not path.exists():
                continue
            for i, line in enumerate(path.read_text().split('\n'), 1):
                if CLOCK_CALLS.search(line):
                    violations.append(f"{pkg_dir.name}/{module}:{i}: {line.strip()}")

    assert not violations, (
        "Engine modules read the clock (pass now in instead):\n" + "\n".join(violations)
    )


def test_recurrence_is_framework_free():
    """Recurrence arithmetic imports neither Django nor the models."""
    for pkg_dir in get_package_dirs():
        path = src_dir(pkg_dir) / "recurrence.py"
        if not path.exists():
            continue
        imports = get_imports_from_file(path)
        assert "django" not in imports, f"{pkg_dir.name}/recurrence.py imports django"
        assert ".models" not in imports, f"{pkg_dir.name}/recurrence.py imports models"


# -----------------------------
# 7) Test and README existence
# -----------------------------

def test_packages_have_tests():
    """All packages should have test files."""
    missing = []

    for pkg_dir in get_package_dirs():
        tests_dir = pkg_dir / "tests"

        if not tests_dir.exists():
            missing.append(f"{pkg_dir.name}: no tests/ directory")
            continue

        if not list(tests_dir.glob("test_*.py")):
            missing.append(f"{pkg_dir.name}: no test_*.py files in tests/")

    assert not missing, (
        "Packages missing tests:\n" + "\n".join(missing)
    )


def test_packages_have_readme():
    """All packages should have README.md."""
    missing = [pkg_dir.name for pkg_dir in get_package_dirs() if not (pkg_dir / "README.md").exists()]

    assert not missing, (
        f"Packages missing README.md: {', '.join(missing)}"
    )
