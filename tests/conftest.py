import sys
from pathlib import Path
from typing import Any, Dict

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'promptstack'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from promptstack.core.config import clear_all_caches  # noqa: E402
from promptstack.core.stdlib_logging import reset_stdlib_logging_for_tests  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point project-root detection at a fresh tmp dir and reset caches.

    Any ``PROMPTSTACK_*`` override leaking from the outer environment is
    removed so bundled defaults apply unless a test sets its own.
    """
    import os

    for key in list(os.environ):
        if key.startswith("PROMPTSTACK_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PROMPTSTACK_PROJECT_ROOT", str(tmp_path))
    clear_all_caches()
    yield tmp_path
    clear_all_caches()
    reset_stdlib_logging_for_tests()


@pytest.fixture
def write_project_config(isolated_project_root: Path):
    """Write ``.promptstack/config/<name>`` in the isolated project."""

    def _write(name: str, text: str) -> Path:
        cfg_dir = isolated_project_root / ".promptstack" / "config"
        cfg_dir.mkdir(parents=True, exist_ok=True)
        path = cfg_dir / name
        path.write_text(text, encoding="utf-8")
        clear_all_caches()
        return path

    return _write


def make_module(module_id: str, name: str, sort_order: int, **extra: Any) -> Dict[str, Any]:
    module = {"id": module_id, "title": name, "description": f"{name} basics", "sortOrder": sort_order}
    module.update(extra)
    return module


@pytest.fixture
def caller() -> Dict[str, Any]:
    return {"id": "caller-1", "name": "Ada", "email": "ada@example.com", "domain": None}


@pytest.fixture
def minimal_bag(caller: Dict[str, Any]) -> Dict[str, Any]:
    """A first-call subject with nothing else known."""
    return {"caller": caller, "memories": [], "recentCalls": [], "callCount": 0}


@pytest.fixture
def subject_curriculum() -> Dict[str, Any]:
    """subjectSources with one subject carrying three curriculum modules."""
    return {
        "subjects": [
            {
                "name": "Food Safety",
                "qualificationRef": "L2-FS",
                "defaultTrustLevel": "ACCREDITED_MATERIAL",
                "sources": [],
                "curriculum": {
                    "slug": "food-safety-l2",
                    "notableInfo": {
                        "modules": [
                            make_module("MOD-1", "Hygiene", 0, learningOutcomes=["LO1: Explain hygiene"]),
                            make_module("MOD-2", "Temperature Control", 1, learningOutcomes=["LO2: Explain danger zone"]),
                            make_module("MOD-3", "Allergens", 2, learningOutcomes=["LO3: List allergens"]),
                        ]
                    },
                },
            }
        ]
    }


@pytest.fixture
def content_spec() -> Dict[str, Any]:
    return {
        "id": "spec-content",
        "slug": "CURR-FS",
        "name": "Food Safety Curriculum",
        "specRole": "CONTENT",
        "config": {
            "curriculum": {"name": "Food Safety L2"},
            "modules": [
                {"id": "m1", "slug": "m1", "name": "Hygiene", "description": "Handwashing", "sortOrder": 0},
                {"id": "m2", "slug": "m2", "name": "Temperature", "description": "Danger zone", "sortOrder": 1},
            ],
        },
    }


@pytest.fixture
def identity_spec() -> Dict[str, Any]:
    return {
        "id": "spec-identity",
        "slug": "TUT-001",
        "name": "Patient Tutor",
        "specRole": "IDENTITY",
        "description": "A tutor",
        "config": {
            "roleStatement": "You are a patient tutor who explains things clearly.",
            "primaryGoal": "Build understanding",
        },
    }
